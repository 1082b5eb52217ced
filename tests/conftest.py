"""
Shared synthetic frames for the skin scan tests.
"""

from datetime import datetime

import numpy as np
import pytest

from skinscan.core.models import SkinMetrics, METRIC_KEYS


SKIN = (220, 170, 140)
INFLAMED = (200, 40, 40)
BACKGROUND = (128, 128, 128)
BLUE = (0, 0, 255)

# Face patch: 960x480 frame, skin columns 220-739 over the full height.
# Detected face: width ~749, center (470, 230); every region lands on skin.
FRAME_W, FRAME_H = 960, 480
PATCH_X0, PATCH_X1 = 220, 740


def solid(width: int, height: int, color: tuple, alpha: int = 255) -> np.ndarray:
    frame = np.empty((height, width, 4), dtype=np.uint8)
    frame[:, :, :3] = color
    frame[:, :, 3] = alpha
    return frame


def with_spots(frame: np.ndarray, color: tuple = INFLAMED) -> np.ndarray:
    """Paint 1-in-20 pixels (x % 5 == 2 and y % 4 == 1) with the given color."""
    out = frame.copy()
    out[1::4, 2::5, :3] = color
    return out


@pytest.fixture
def solid_frame():
    return solid


@pytest.fixture
def face_frame():
    def build(spots: bool = False, skin: tuple = SKIN) -> np.ndarray:
        frame = solid(FRAME_W, FRAME_H, BACKGROUND)
        patch = solid(PATCH_X1 - PATCH_X0, FRAME_H, skin)
        if spots:
            # keep the pattern aligned with absolute frame coordinates
            full = with_spots(solid(FRAME_W, FRAME_H, skin))
            patch = full[:, PATCH_X0:PATCH_X1]
        frame[:, PATCH_X0:PATCH_X1] = patch
        return frame
    return build


@pytest.fixture
def make_metrics():
    def build(value: int = 80, **overrides) -> SkinMetrics:
        scores = {key: value for key in METRIC_KEYS}
        scores["overall_score"] = value
        scores.update(overrides)
        return SkinMetrics(timestamp=datetime(2024, 1, 1, 12, 0, 0), **scores)
    return build
