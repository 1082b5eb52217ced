import numpy as np
import pytest

from skinscan.core.color_space import (
    lab_to_rgb,
    luma,
    rgb_to_lab,
    rgb_to_lab_array,
    rgb_to_ycbcr,
    rgb_to_ycbcr_array,
)


def test_white_is_neutral_full_lightness():
    L, a, b = rgb_to_lab(255, 255, 255)
    assert L == pytest.approx(100.0, abs=0.01)
    assert a == pytest.approx(0.0, abs=0.05)
    assert b == pytest.approx(0.0, abs=0.05)


def test_black_is_zero():
    assert rgb_to_lab(0, 0, 0) == pytest.approx((0.0, 0.0, 0.0), abs=1e-9)


def test_mid_grey_lightness():
    L, a, b = rgb_to_lab(128, 128, 128)
    assert L == pytest.approx(53.59, abs=0.1)
    assert abs(a) < 0.05 and abs(b) < 0.05


def test_pure_red_has_strong_a_channel():
    L, a, b = rgb_to_lab(255, 0, 0)
    assert a > 70
    assert b > 50


def test_array_matches_scalar_and_ignores_alpha():
    pixels = np.array([[[220, 170, 140, 255], [200, 40, 40, 0]]], dtype=np.uint8)
    lab = rgb_to_lab_array(pixels)
    assert lab.shape == (1, 2, 3)
    assert tuple(lab[0, 0]) == pytest.approx(tuple(rgb_to_lab(220, 170, 140)))
    assert tuple(lab[0, 1]) == pytest.approx(tuple(rgb_to_lab(200, 40, 40)))


def test_lab_to_rgb_recovers_skin_tone():
    r, g, b = lab_to_rgb(*rgb_to_lab(220, 170, 140))
    assert abs(r - 220) <= 1 and abs(g - 170) <= 1 and abs(b - 140) <= 1


def test_lab_to_rgb_clamps_out_of_gamut():
    r, g, b = lab_to_rgb(50, 200, -200)
    assert all(0 <= c <= 255 for c in (r, g, b))


def test_ycbcr_white_and_red():
    y, cb, cr = rgb_to_ycbcr(255, 255, 255)
    assert y == pytest.approx(255.0)
    assert cb == pytest.approx(128.0, abs=0.01)
    assert cr == pytest.approx(128.0, abs=0.01)

    y, cb, cr = rgb_to_ycbcr(255, 0, 0)
    assert y == pytest.approx(76.245)
    assert cr == pytest.approx(255.5)


def test_ycbcr_array_shape():
    pixels = np.zeros((4, 5, 4), dtype=np.uint8)
    assert rgb_to_ycbcr_array(pixels).shape == (4, 5, 3)


def test_luma_weights_sum_to_one():
    assert float(luma(np.array([255, 255, 255]))) == pytest.approx(255.0)
    assert float(luma(np.array([100, 100, 100, 0]))) == pytest.approx(100.0)
