"""
Face localisation from raw pixel statistics.

No landmark model is used: the frame is sampled on a coarse grid, skin-like
samples are counted, and the face box is derived from their centroid and
count. The coarse grid keeps this cheap enough to run on every video frame.
"""

import numpy as np

from skinscan.config import ScanConfig, DEFAULT_CONFIG
from skinscan.core.models import FaceBounds, RegionOfInterest, as_rgb


REGION_NAMES = ("forehead", "left_cheek", "right_cheek", "under_eye", "nose")


def skin_sample_mask(pixels: np.ndarray, config: ScanConfig = DEFAULT_CONFIG) -> np.ndarray:
    """Boolean mask of skin-like pixels: red dominant and above minimum brightness."""
    rgb = np.asarray(pixels, dtype=np.int16)[..., :3]
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]
    return (
        (r > config.skin_r_min)
        & (g > config.skin_g_min)
        & (b > config.skin_b_min)
        & (r > g)
        & (r > b)
    )


def detect_face_bounds(frame: np.ndarray, config: ScanConfig = DEFAULT_CONFIG) -> FaceBounds:
    """
    Estimate the face box of a frame.

    Args:
        frame: RGB or RGBA frame of shape (H, W, C)
        config: Scan configuration

    Returns:
        FaceBounds. face_width is 0 when too few skin samples were found,
        with the center at the frame midpoint.
    """
    rgb = as_rgb(frame)
    h, w = rgb.shape[:2]
    step = config.sample_stride

    samples = rgb[::step, ::step]
    mask = skin_sample_mask(samples, config)
    count = int(mask.sum())

    if count < config.min_skin_samples:
        return FaceBounds.none(w, h)

    ys, xs = np.nonzero(mask)
    center_x = float(xs.mean() * step)
    center_y = float(ys.mean() * step)

    face_width = float(np.sqrt(count * step * step) * config.face_width_scale)
    face_height = face_width * config.face_aspect

    return FaceBounds(
        center_x=center_x,
        center_y=center_y,
        face_width=face_width,
        face_height=face_height,
    )


def face_regions(
    bounds: FaceBounds,
    frame_width: int,
    frame_height: int,
    config: ScanConfig = DEFAULT_CONFIG,
) -> dict[str, RegionOfInterest]:
    """
    Compute the measurement regions for a face, clamped to the frame.

    Returns:
        Mapping of region name to RegionOfInterest, empty when no face was found
    """
    if not bounds.detected:
        return {}

    cx, cy = bounds.center_x, bounds.center_y
    fw, fh = bounds.face_width, bounds.face_height
    roi = int(fw * config.roi_size_factor)

    cheek_y = cy + fh * config.cheek_offset
    windows = {
        "forehead": (cx - roi, cy - fh * config.forehead_offset, roi * 2, roi * 0.6),
        "left_cheek": (cx - fw * config.cheek_inner, cheek_y, roi, roi),
        "right_cheek": (cx + fw * config.cheek_outer, cheek_y, roi, roi),
        "under_eye": (cx - roi, cy - fh * config.eye_offset, roi * 2, roi * 0.4),
        "nose": (cx - roi / 2, cy + fh * config.nose_offset, roi, roi * 0.5),
    }

    return {
        name: RegionOfInterest.clamped(name, x, y, rw, rh, frame_width, frame_height)
        for name, (x, y, rw, rh) in windows.items()
    }
