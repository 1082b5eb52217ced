"""
Per-region skin metric extraction.

Each calculator reads one region's pixels and returns a raw 0-100 style score
where higher means healthier: defect densities are inverted before they are
returned. Calculators accept regions of any size, including empty ones cut
off at the frame edge.
"""

import logging

import cv2
import numpy as np

from skinscan.config import ScanConfig, DEFAULT_CONFIG
from skinscan.core.color_space import rgb_to_lab_array, rgb_to_ycbcr_array, luma
from skinscan.core.models import RegionOfInterest, as_rgb
from skinscan.core.face_locator import REGION_NAMES
from skinscan.utils.exceptions import MetricsError


logger = logging.getLogger(__name__)


def _flat_pixels(roi: np.ndarray) -> np.ndarray:
    return np.asarray(roi, dtype=np.float64)[..., :3].reshape(-1, 3)


def _gray(roi: np.ndarray) -> np.ndarray:
    return np.asarray(roi, dtype=np.float64)[..., :3].mean(axis=2)


# -- calculators --

def acne_score(roi: np.ndarray, config: ScanConfig = DEFAULT_CONFIG) -> float:
    """Inflamed-pixel density against the region's own redness baseline."""
    pixels = _flat_pixels(roi)
    total = len(pixels)
    if total == 0:
        return 100.0

    lab_a = rgb_to_lab_array(pixels)[:, 1]
    # Baseline from a coarse sample; adaptive so skin tone does not bias the count
    baseline = float(lab_a[::config.acne_baseline_step].mean())
    inflamed = int(np.count_nonzero(lab_a > baseline + config.acne_redness_offset))

    density = inflamed / total
    return max(float(config.score_floor), 100.0 - density * config.acne_density_penalty)


def redness_score(roi: np.ndarray, config: ScanConfig = DEFAULT_CONFIG) -> float:
    """Mean Lab a (erythema). Flat score up to the healthy ceiling, linear penalty above."""
    pixels = _flat_pixels(roi)
    if len(pixels) == 0:
        return config.redness_healthy_score

    avg_a = float(rgb_to_lab_array(pixels)[:, 1].mean())
    if avg_a <= config.redness_healthy_a:
        return config.redness_healthy_score
    penalty = (avg_a - config.redness_healthy_a) * config.redness_penalty
    return max(config.redness_floor, 100.0 - penalty)


def redness_score_ycbcr(roi: np.ndarray, config: ScanConfig = DEFAULT_CONFIG) -> float:
    """Cheaper redness signal from mean Cr chrominance."""
    pixels = _flat_pixels(roi)
    if len(pixels) == 0:
        return config.redness_healthy_score

    avg_cr = float(rgb_to_ycbcr_array(pixels)[:, 2].mean())
    if avg_cr <= config.redness_healthy_cr:
        return config.redness_healthy_score
    penalty = (avg_cr - config.redness_healthy_cr) * config.redness_penalty
    return max(config.redness_floor, 100.0 - penalty)


def texture_score(roi: np.ndarray, config: ScanConfig = DEFAULT_CONFIG) -> float:
    """
    Roughness from a 4-neighbour Laplacian sampled on a stride-2 grid.

    Responses at or below the noise floor and at or above the edge ceiling
    (hair, feature edges) are excluded from the sum but still counted as
    sampled pixels.
    """
    gray = _gray(roi)
    h, w = gray.shape[:2]

    if h < 3 or w < 3:
        avg_roughness = 0.0
    else:
        # 4-neighbour kernel; only interior pixels on the stride-2 grid are read
        full = cv2.Laplacian(gray, cv2.CV_64F, ksize=1)
        laplacian = np.abs(full[1:h - 1:2, 1:w - 1:2])
        band = (laplacian > config.texture_noise_floor) & (laplacian < config.texture_edge_ceiling)
        avg_roughness = float(laplacian[band].sum() / laplacian.size)

    score = 100.0 - (avg_roughness - config.texture_baseline) * config.texture_penalty
    return float(np.clip(score, config.score_floor, config.score_ceiling))


def wrinkle_score(roi: np.ndarray, config: ScanConfig = DEFAULT_CONFIG) -> float:
    """Density of strong horizontal lines (vertical Sobel gradient) on luma."""
    lum = luma(roi)
    h, w = lum.shape[:2]
    if h * w == 0:
        return 100.0

    edge_pixels = 0
    if h >= 3 and w >= 3:
        sobel_y = cv2.Sobel(lum, cv2.CV_64F, 0, 1, ksize=3)[1:-1, 1:-1]
        # High threshold keeps pore-scale texture out of the count
        edge_pixels = int(np.count_nonzero(np.abs(sobel_y) > config.wrinkle_threshold))

    density = edge_pixels / (h * w)
    return max(config.wrinkle_floor, 100.0 - density * config.wrinkle_penalty)


def glow_density(roi: np.ndarray, config: ScanConfig = DEFAULT_CONFIG) -> float:
    """Fraction of pixels in the specular-highlight band (bright, low saturation)."""
    pixels = _flat_pixels(roi)
    if len(pixels) == 0:
        return 0.0

    lum = luma(pixels)
    high = pixels.max(axis=1)
    low = pixels.min(axis=1)
    sat = np.divide(high - low, high, out=np.zeros_like(high), where=high > 0)

    glow = (
        (lum > config.glow_luma_min)
        & (lum < config.glow_luma_max)
        & (sat > config.glow_sat_min)
        & (sat < config.glow_sat_max)
    )
    return float(np.count_nonzero(glow) / len(pixels))


def hydration_score(roi: np.ndarray, config: ScanConfig = DEFAULT_CONFIG) -> float:
    """
    Distance of the highlight density from a healthy target.

    Too little glow (dry) and too much (oily) are both penalised.
    """
    deviation = abs(glow_density(roi, config) - config.glow_target)
    return max(config.hydration_floor, 100.0 - deviation * config.hydration_penalty)


def dark_circle_score(eye_roi: np.ndarray, cheek_roi: np.ndarray, config: ScanConfig = DEFAULT_CONFIG) -> float:
    """Under-eye darkening relative to the cheek."""
    eye = luma(eye_roi)
    cheek = luma(cheek_roi)
    if eye.size == 0 or cheek.size == 0:
        diff = 0.0
    else:
        diff = max(0.0, float(cheek.mean()) - float(eye.mean()))
    return max(config.dark_circle_floor, 100.0 - diff * config.dark_circle_penalty)


class MetricExtractor:
    """Run every calculator over the regions of one frame."""

    def __init__(self, config: ScanConfig | None = None):
        self.config = config or DEFAULT_CONFIG

    def extract(self, frame: np.ndarray, regions: dict[str, RegionOfInterest]) -> dict[str, float]:
        """
        Compute raw scores for one frame.

        Args:
            frame: RGB or RGBA frame
            regions: Regions from face_regions() for this frame

        Returns:
            Mapping of metric key to raw (unclamped, unrounded) score
        """
        missing = [name for name in REGION_NAMES if name not in regions]
        if missing:
            raise MetricsError(f"Missing regions for extraction: {missing}")

        rgb = as_rgb(frame)
        cfg = self.config
        forehead = regions["forehead"].crop(rgb)
        left_cheek = regions["left_cheek"].crop(rgb)
        right_cheek = regions["right_cheek"].crop(rgb)
        under_eye = regions["under_eye"].crop(rgb)
        nose = regions["nose"].crop(rgb)

        # Cheeks show breakouts best
        acne = acne_score(left_cheek, cfg)
        redness = (redness_score(left_cheek, cfg) + redness_score(nose, cfg)) / 2
        texture = texture_score(right_cheek, cfg)
        wrinkles = wrinkle_score(forehead, cfg)
        hydration = hydration_score(right_cheek, cfg)
        dark_circles = dark_circle_score(under_eye, left_cheek, cfg)
        pores = texture_score(nose, cfg)
        # T-zone shine
        oiliness = (hydration_score(forehead, cfg) + hydration_score(nose, cfg)) / 2

        raw = {
            "acne_active": acne,
            "acne_scars": acne + cfg.acne_scar_offset,
            "pore_size": pores,
            "blackheads": pores + cfg.blackhead_offset,
            "wrinkle_fine": wrinkles,
            "wrinkle_deep": max(float(cfg.score_floor), wrinkles - cfg.deep_wrinkle_offset),
            # Placeholder: no jawline measurement is attempted
            "sagging": cfg.sagging_placeholder,
            # Tracks texture; not modelled separately
            "pigmentation": texture + cfg.pigmentation_offset,
            "redness": redness,
            "texture": texture,
            "hydration": hydration,
            "oiliness": oiliness,
            "dark_circles": dark_circles,
        }
        rounded = {k: round(v, 1) for k, v in raw.items()}
        logger.debug(f"Raw scores: {rounded}")
        return raw
