import numpy as np
import pytest

from skinscan.config import ScanConfig
from skinscan.core.face_locator import detect_face_bounds
from skinscan.core.frame_validator import centering_score, sharpness_score, validate_frame
from skinscan.core.models import FaceBounds, FrameStatus


SKIN = (220, 170, 140)


def bounds(width, cx=320.0, cy=240.0):
    return FaceBounds(center_x=cx, center_y=cy, face_width=width, face_height=width * 1.35)


def test_no_face_is_error(solid_frame):
    check = validate_frame(solid_frame(640, 480, SKIN), bounds(0.1 * 640))
    assert check.status == FrameStatus.ERROR
    assert not check.is_good
    assert check.confidence == 0.0
    assert check.message == "No Face"
    assert check.instruction == "Position face in circle"


def test_undetected_bounds_is_error(solid_frame):
    check = validate_frame(solid_frame(640, 480, SKIN), FaceBounds.none(640, 480))
    assert check.status == FrameStatus.ERROR


def test_good_frame_is_ok(solid_frame):
    check = validate_frame(solid_frame(640, 480, SKIN), bounds(320))
    assert check.status == FrameStatus.OK
    assert check.is_good
    assert check.message == "Perfect"
    assert check.instruction == "Hold steady..."


@pytest.mark.parametrize("width, color, message, instruction", [
    (0.2 * 640, SKIN, "Move Closer", "Move Closer"),
    (0.9 * 640, SKIN, "Too Close", "Back up slightly"),
    (320, (30, 20, 15), "Low Light", "Face light source"),
    (320, (250, 245, 240), "Too Bright", "Reduce glare"),
])
def test_warnings_still_admit_frame(solid_frame, width, color, message, instruction):
    check = validate_frame(solid_frame(640, 480, color), bounds(width))
    assert check.status == FrameStatus.WARNING
    assert check.is_good
    assert check.message == message
    assert check.instruction == instruction


def test_first_failing_check_wins(solid_frame):
    # Both too close and too dark: distance is checked first
    check = validate_frame(solid_frame(640, 480, (30, 20, 15)), bounds(0.9 * 640))
    assert check.message == "Too Close"


def test_motion_against_previous_bounds(solid_frame):
    frame = solid_frame(640, 480, SKIN)
    moved = validate_frame(frame, bounds(320), previous_bounds=bounds(320, cx=200))
    assert moved.message == "Hold Still"
    assert moved.instruction == "Hold Still"

    small_shift = validate_frame(frame, bounds(320), previous_bounds=bounds(320, cx=300))
    assert small_shift.status == FrameStatus.OK

    no_previous_face = validate_frame(frame, bounds(320), previous_bounds=FaceBounds.none(640, 480))
    assert no_previous_face.status == FrameStatus.OK


def test_warning_halves_confidence(face_frame):
    frame = face_frame(spots=True)
    face = detect_face_bounds(frame)
    ok = validate_frame(frame, face)
    shifted = FaceBounds(face.center_x - 200, face.center_y, face.face_width, face.face_height)
    warned = validate_frame(frame, face, previous_bounds=shifted)

    assert ok.status == FrameStatus.OK
    assert warned.status == FrameStatus.WARNING
    assert ok.confidence > 0.5
    assert warned.confidence == pytest.approx(ok.confidence * 0.5)


def test_warning_factor_is_configurable(face_frame):
    frame = face_frame(spots=True)
    face = detect_face_bounds(frame)
    shifted = FaceBounds(face.center_x - 200, face.center_y, face.face_width, face.face_height)
    config = ScanConfig(warning_confidence_factor=1.0)

    ok = validate_frame(frame, face, config=config)
    warned = validate_frame(frame, face, previous_bounds=shifted, config=config)
    assert warned.confidence == pytest.approx(ok.confidence)


def test_confidence_in_unit_range(face_frame, solid_frame):
    frames = [face_frame(), face_frame(spots=True), solid_frame(640, 480, SKIN)]
    for frame in frames:
        check = validate_frame(frame, detect_face_bounds(frame))
        assert 0.0 <= check.confidence <= 1.0


def test_flat_frame_has_no_sharpness(solid_frame):
    rgb = solid_frame(640, 480, SKIN)[:, :, :3]
    assert sharpness_score(rgb, bounds(320)) == 0.0


def test_sharpness_near_corner_does_not_fail(solid_frame):
    rgb = solid_frame(64, 48, SKIN)[:, :, :3]
    assert sharpness_score(rgb, bounds(30, cx=0, cy=0)) == 0.0


def test_centering_score():
    assert centering_score(bounds(100, cx=320), 640) == pytest.approx(1.0)
    assert centering_score(bounds(100, cx=160), 640) == pytest.approx(0.5)
    assert centering_score(bounds(100, cx=0), 640) == pytest.approx(0.0)
    assert centering_score(bounds(100, cx=-50), 640) == 0.0
