"""
Configuration parameters for the skin scan pipeline.
Every threshold, weight and floor used by the analysis lives here.
"""

import json
import logging
import os
from dataclasses import dataclass, asdict, field, fields

from skinscan.core.models import METRIC_KEYS


logger = logging.getLogger(__name__)


@dataclass
class ScanConfig:
    """Tunable scan parameters."""

    # Face locator (coarse RGB skin heuristic)
    sample_stride: int = 20
    skin_r_min: int = 40
    skin_g_min: int = 20
    skin_b_min: int = 10
    min_skin_samples: int = 50
    face_width_scale: float = 1.5
    face_aspect: float = 1.35  # face_height = face_width * face_aspect

    # ROI geometry, relative to face width (W) / height (H)
    roi_size_factor: float = 0.25
    forehead_offset: float = 0.35  # above center, * H
    cheek_offset: float = 0.05  # below center, * H
    cheek_inner: float = 0.28  # left cheek origin, * W
    cheek_outer: float = 0.08  # right cheek origin, * W
    eye_offset: float = 0.12  # above center, * H
    nose_offset: float = 0.10  # below center, * H

    # Frame validation
    no_face_ratio: float = 0.15
    min_face_ratio: float = 0.25
    max_face_ratio: float = 0.85
    min_luma: float = 40.0
    max_luma: float = 230.0
    max_motion_ratio: float = 0.10
    sharpness_window: int = 10  # radius in pixels
    sharpness_norm: float = 12.0
    warning_confidence_factor: float = 0.5

    # Metric extraction
    score_floor: int = 10
    score_ceiling: int = 99
    acne_baseline_step: int = 4
    acne_redness_offset: float = 18.0
    acne_density_penalty: float = 1000.0
    redness_healthy_a: float = 18.0
    redness_healthy_score: float = 95.0
    redness_penalty: float = 3.0
    redness_floor: float = 20.0
    redness_healthy_cr: float = 150.0
    texture_noise_floor: float = 5.0
    texture_edge_ceiling: float = 80.0
    texture_baseline: float = 2.5
    texture_penalty: float = 10.0
    wrinkle_threshold: float = 60.0
    wrinkle_penalty: float = 300.0
    wrinkle_floor: float = 20.0
    deep_wrinkle_offset: float = 10.0
    glow_luma_min: float = 160.0
    glow_luma_max: float = 245.0
    glow_sat_min: float = 0.05
    glow_sat_max: float = 0.4
    glow_target: float = 0.12
    hydration_penalty: float = 200.0
    hydration_floor: float = 20.0
    dark_circle_penalty: float = 2.0
    dark_circle_floor: float = 30.0
    acne_scar_offset: float = 10.0
    blackhead_offset: float = 5.0
    pigmentation_offset: float = 5.0
    # No in-frame heuristic exists for sagging; held constant
    sagging_placeholder: float = 85.0

    # Overall score weights (must sum to 1.0)
    overall_weights: dict = field(default_factory=lambda: {
        "acne_active": 0.25,
        "redness": 0.15,
        "texture": 0.20,
        "wrinkle_fine": 0.15,
        "hydration": 0.15,
        "dark_circles": 0.10,
    })

    # Temporal accumulation
    trim_fraction: float = 0.2
    min_trim_samples: int = 5
    max_buffer_frames: int = 120
    progress_step: float = 1.5

    # Remote refinement
    refinement_model: str = "claude-sonnet-4-20250514"
    refinement_max_tokens: int = 800
    refinement_history: int = 3
    refinement_retry_delay: float = 2.0
    snapshot_quality: int = 98

    def validate(self) -> bool:
        """Validate configuration values."""
        try:
            self._check()
            return True
        except ValueError as e:
            logger.error(f"Configuration validation failed: {e}")
            return False

    def _check(self) -> None:
        if self.sample_stride <= 0:
            raise ValueError("sample_stride must be positive")
        if not 0 < self.no_face_ratio <= self.min_face_ratio < self.max_face_ratio <= 1.0:
            raise ValueError("face ratios must satisfy 0 < no_face <= min_face < max_face <= 1")
        if not 0 <= self.min_luma < self.max_luma <= 255:
            raise ValueError("luma limits must lie within 0-255")
        if not 0.0 <= self.trim_fraction < 0.5:
            raise ValueError("trim_fraction must be in [0, 0.5)")
        if not 0.0 <= self.warning_confidence_factor <= 1.0:
            raise ValueError("warning_confidence_factor must be in [0, 1]")
        if self.score_floor >= self.score_ceiling:
            raise ValueError("score_floor must be below score_ceiling")
        if not isinstance(self.overall_weights, dict) or not all(
            isinstance(w, (int, float)) for w in self.overall_weights.values()
        ):
            raise ValueError("overall_weights must map metric keys to numbers")
        unknown = set(self.overall_weights) - set(METRIC_KEYS)
        if unknown:
            raise ValueError(f"overall_weights has unknown metric keys: {sorted(unknown)}")
        if abs(sum(self.overall_weights.values()) - 1.0) >= 1e-6:
            raise ValueError("overall_weights must sum to 1.0")

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def load(cls, filepath: str) -> "ScanConfig":
        """Load configuration overrides from a JSON file, falling back to defaults."""
        try:
            if os.path.exists(filepath):
                with open(filepath, "r") as f:
                    data = json.load(f)
                known = {f.name for f in fields(cls)}
                unknown = set(data) - known
                if unknown:
                    logger.warning(f"Ignoring unknown config keys: {sorted(unknown)}")
                config = cls(**{k: v for k, v in data.items() if k in known})
                if config.validate():
                    return config
                logger.warning("Invalid configuration, using defaults")
            else:
                logger.warning(f"Config file {filepath} not found, using defaults")
        except (OSError, ValueError, TypeError) as e:
            logger.error(f"Failed to load configuration: {e}")

        return cls()


# Default configuration instance
DEFAULT_CONFIG = ScanConfig()


# Overlay colors (RGB, frames are RGB(A))
COLORS = {
    "good": (16, 185, 129),
    "fair": (245, 158, 11),
    "poor": (244, 63, 94),
    "inflamed": (255, 50, 50),
    "label": (255, 255, 255),
    "debug_face": (0, 120, 255),
}
