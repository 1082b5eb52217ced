"""
Color space conversions used by the metric extractors.

sRGB -> CIE-Lab (D65) separates lightness from the red-green axis, so the
`a` channel tracks redness largely independent of exposure. BT.601 YCbCr
gives a cheaper red chrominance signal (Cr).
"""

from typing import NamedTuple

import numpy as np


# D65 reference white
WHITE_X = 0.95047
WHITE_Y = 1.00000
WHITE_Z = 1.08883

# linear sRGB -> XYZ
RGB_TO_XYZ = np.array([
    [0.4124, 0.3576, 0.1805],
    [0.2126, 0.7152, 0.0722],
    [0.0193, 0.1192, 0.9505],
])

# XYZ -> linear sRGB
XYZ_TO_RGB = np.array([
    [3.2406, -1.5372, -0.4986],
    [-0.9689, 1.8758, 0.0415],
    [0.0557, -0.2040, 1.0570],
])

LAB_EPSILON = 0.008856
LAB_KAPPA = 7.787


class LabColor(NamedTuple):
    L: float
    a: float
    b: float


class YCbCrColor(NamedTuple):
    y: float
    cb: float
    cr: float


def _srgb_to_linear(c: np.ndarray) -> np.ndarray:
    return np.where(c > 0.04045, ((c + 0.055) / 1.055) ** 2.4, c / 12.92)


def _linear_to_srgb(c: np.ndarray) -> np.ndarray:
    c = np.maximum(c, 0.0)
    return np.where(c > 0.0031308, 1.055 * c ** (1 / 2.4) - 0.055, 12.92 * c)


def _lab_f(t: np.ndarray) -> np.ndarray:
    return np.where(t > LAB_EPSILON, np.cbrt(t), LAB_KAPPA * t + 16 / 116)


def _lab_f_inv(t: np.ndarray) -> np.ndarray:
    t3 = t ** 3
    return np.where(t3 > LAB_EPSILON, t3, (t - 16 / 116) / LAB_KAPPA)


def rgb_to_lab_array(pixels: np.ndarray) -> np.ndarray:
    """
    Convert an array of RGB(A) pixels to Lab.

    Args:
        pixels: Array of shape (..., 3) or (..., 4), channel values 0-255.
            Alpha is ignored.

    Returns:
        Float array of shape (..., 3) holding L, a, b
    """
    rgb = np.asarray(pixels, dtype=np.float64)[..., :3] / 255.0
    linear = _srgb_to_linear(rgb)

    xyz = linear @ RGB_TO_XYZ.T
    xyz = xyz / np.array([WHITE_X, WHITE_Y, WHITE_Z])

    f = _lab_f(xyz)
    fx, fy, fz = f[..., 0], f[..., 1], f[..., 2]

    lab = np.empty(f.shape, dtype=np.float64)
    lab[..., 0] = 116 * fy - 16
    lab[..., 1] = 500 * (fx - fy)
    lab[..., 2] = 200 * (fy - fz)
    return lab


def rgb_to_lab(r: float, g: float, b: float) -> LabColor:
    """Convert a single 0-255 sRGB triple to CIE-Lab."""
    L, a, b_ = rgb_to_lab_array(np.array([r, g, b]))
    return LabColor(float(L), float(a), float(b_))


def lab_to_rgb(L: float, a: float, b: float) -> tuple[int, int, int]:
    """Convert CIE-Lab back to an 8-bit sRGB triple, clamped to 0-255."""
    fy = (L + 16) / 116
    f = np.array([a / 500 + fy, fy, fy - b / 200])
    xyz = _lab_f_inv(f) * np.array([WHITE_X, WHITE_Y, WHITE_Z])

    srgb = _linear_to_srgb(XYZ_TO_RGB @ xyz)
    r, g, b_ = np.clip(np.round(srgb * 255), 0, 255).astype(int)
    return int(r), int(g), int(b_)


def rgb_to_ycbcr_array(pixels: np.ndarray) -> np.ndarray:
    """ITU-R BT.601 full-range YCbCr for an array of RGB(A) pixels."""
    rgb = np.asarray(pixels, dtype=np.float64)[..., :3]
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]

    out = np.empty(rgb.shape, dtype=np.float64)
    out[..., 0] = 0.299 * r + 0.587 * g + 0.114 * b
    out[..., 1] = 128 - 0.168736 * r - 0.331264 * g + 0.5 * b
    out[..., 2] = 128 + 0.5 * r - 0.418688 * g - 0.081312 * b
    return out


def rgb_to_ycbcr(r: float, g: float, b: float) -> YCbCrColor:
    """Convert a single 0-255 RGB triple to YCbCr."""
    y, cb, cr = rgb_to_ycbcr_array(np.array([r, g, b]))
    return YCbCrColor(float(y), float(cb), float(cr))


def luma(pixels: np.ndarray) -> np.ndarray:
    """BT.601 luma of RGB(A) pixels, as float."""
    rgb = np.asarray(pixels, dtype=np.float64)[..., :3]
    return 0.299 * rgb[..., 0] + 0.587 * rgb[..., 1] + 0.114 * rgb[..., 2]
