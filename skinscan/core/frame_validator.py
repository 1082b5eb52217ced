"""
Per-frame quality gate.

Decides whether a frame may feed the scan buffer and what the user should be
told. Checks run in a fixed order and the first failing check decides the
status. Only a missing face blocks extraction; WARNING frames are still
measured, with reduced confidence.
"""

import numpy as np

from skinscan.config import ScanConfig, DEFAULT_CONFIG
from skinscan.core.color_space import luma
from skinscan.core.models import FaceBounds, FrameCheck, FrameStatus, as_rgb


def _center_luma(rgb: np.ndarray, bounds: FaceBounds) -> float:
    h, w = rgb.shape[:2]
    x = min(max(int(bounds.center_x), 0), w - 1)
    y = min(max(int(bounds.center_y), 0), h - 1)
    return float(luma(rgb[y, x]))


def sharpness_score(rgb: np.ndarray, bounds: FaceBounds, config: ScanConfig = DEFAULT_CONFIG) -> float:
    """Mean adjacent-pixel luma difference around the face center, scaled to 0-1."""
    h, w = rgb.shape[:2]
    r = config.sharpness_window
    cx, cy = int(bounds.center_x), int(bounds.center_y)

    x0, x1 = max(0, cx - r), min(w, cx + r + 1)
    y0, y1 = max(0, cy - r), min(h, cy + r + 1)
    window = luma(rgb[y0:y1, x0:x1])

    if window.shape[0] < 2 or window.shape[1] < 2:
        return 0.0

    total = np.abs(np.diff(window, axis=1)).sum() + np.abs(np.diff(window, axis=0)).sum()
    mean_diff = total / window.size
    return float(min(1.0, mean_diff / config.sharpness_norm))


def centering_score(bounds: FaceBounds, frame_width: int) -> float:
    """1 when the face is horizontally centered, falling to 0 at the frame edge."""
    half = frame_width / 2
    if half <= 0:
        return 0.0
    offset = abs(bounds.center_x - half) / half
    return float(min(1.0, max(0.0, 1.0 - offset)))


def validate_frame(
    frame: np.ndarray,
    face_bounds: FaceBounds,
    previous_bounds: FaceBounds | None = None,
    config: ScanConfig = DEFAULT_CONFIG,
) -> FrameCheck:
    """
    Check distance, lighting and stability of a frame.

    Args:
        frame: RGB or RGBA frame
        face_bounds: Face box detected in this frame
        previous_bounds: Face box of the previous admissible frame, if any
        config: Scan configuration

    Returns:
        FrameCheck with status, user instruction and confidence in [0, 1]
    """
    rgb = as_rgb(frame)
    width = rgb.shape[1]
    face_width = face_bounds.face_width

    if face_width < width * config.no_face_ratio:
        return FrameCheck(
            is_good=False,
            confidence=0.0,
            status=FrameStatus.ERROR,
            message="No Face",
            instruction="Position face in circle",
            face_bounds=face_bounds,
        )

    status, message, instruction = FrameStatus.OK, "Perfect", "Hold steady..."
    brightness = _center_luma(rgb, face_bounds)

    if face_width < width * config.min_face_ratio:
        status, message, instruction = FrameStatus.WARNING, "Move Closer", "Move Closer"
    elif face_width > width * config.max_face_ratio:
        status, message, instruction = FrameStatus.WARNING, "Too Close", "Back up slightly"
    elif brightness < config.min_luma:
        status, message, instruction = FrameStatus.WARNING, "Low Light", "Face light source"
    elif brightness > config.max_luma:
        status, message, instruction = FrameStatus.WARNING, "Too Bright", "Reduce glare"
    elif previous_bounds is not None and previous_bounds.detected and _displacement(
        face_bounds, previous_bounds
    ) > width * config.max_motion_ratio:
        status, message, instruction = FrameStatus.WARNING, "Hold Still", "Hold Still"

    confidence = sharpness_score(rgb, face_bounds, config) * centering_score(face_bounds, width)
    if status == FrameStatus.WARNING:
        confidence *= config.warning_confidence_factor

    return FrameCheck(
        is_good=True,
        confidence=confidence,
        status=status,
        message=message,
        instruction=instruction,
        face_bounds=face_bounds,
    )


def _displacement(current: FaceBounds, previous: FaceBounds) -> float:
    return float(np.hypot(current.center_x - previous.center_x, current.center_y - previous.center_y))
