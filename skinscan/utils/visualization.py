"""
Visualization utilities for live scan feedback.
Every function draws on a copy; the analysed frame is never modified.
"""

import cv2
import numpy as np

from skinscan.config import COLORS
from skinscan.core.color_space import rgb_to_lab_array
from skinscan.core.models import FaceBounds, FrameCheck, FrameStatus, SkinMetrics, as_rgb


def _color(rgb: tuple[int, int, int], channels: int) -> tuple:
    return (*rgb, 255) if channels == 4 else rgb


def _score_color(score: float) -> tuple[int, int, int]:
    if score > 80:
        return COLORS["good"]
    if score < 60:
        return COLORS["poor"]
    return COLORS["fair"]


def draw_biometric_overlay(
    frame: np.ndarray,
    bounds: FaceBounds,
    metrics: SkinMetrics,
) -> np.ndarray:
    """
    Mark the measurement regions with score-coloured circles and labels.

    Args:
        frame: RGB(A) frame
        bounds: Face box for this frame
        metrics: Scores to display

    Returns:
        Annotated copy (unchanged copy when no face was found)
    """
    annotated = np.ascontiguousarray(frame).copy()
    if not bounds.detected:
        return annotated

    channels = annotated.shape[2]
    cx, cy = bounds.center_x, bounds.center_y
    fw, fh = bounds.face_width, bounds.face_height
    radius = max(4, int(fw * 0.12))

    markers = [
        (cx, cy - fh * 0.35, radius, metrics.wrinkle_fine, "Wrinkles"),
        (cx - fw * 0.2, cy + fh * 0.05, radius, metrics.acne_active, "Acne"),
        (cx + fw * 0.2, cy + fh * 0.05, radius, metrics.redness, "Tone"),
        (cx, cy + fh * 0.1, int(radius * 0.8), metrics.pore_size, "Pores"),
        (cx - fw * 0.15, cy - fh * 0.1, int(radius * 0.8), metrics.dark_circles, "Eyes"),
    ]

    fill = annotated.copy()
    for x, y, r, score, _ in markers:
        cv2.circle(fill, (int(x), int(y)), r, _color(_score_color(score), channels), -1)
    annotated = cv2.addWeighted(annotated, 0.8, fill, 0.2, 0)

    font = cv2.FONT_HERSHEY_SIMPLEX
    for x, y, r, score, label in markers:
        center = (int(x), int(y))
        cv2.circle(annotated, center, r, _color(_score_color(score), channels), 2)
        cv2.putText(
            annotated,
            f"{label}: {round(score)}",
            (int(x - r), int(y - r - 5)),
            font,
            0.4,
            _color(COLORS["label"], channels),
            1,
        )

    return annotated


def apply_medical_processing(frame: np.ndarray) -> np.ndarray:
    """Warm the red channel slightly and stretch contrast around mid-grey."""
    out = np.array(frame, copy=True)
    rgb = as_rgb(out).astype(np.float64)
    rgb[:, :, 0] = np.minimum(255.0, rgb[:, :, 0] * 1.05)
    rgb = (rgb - 128.0) * 1.1 + 128.0
    out[:, :, :3] = np.clip(np.round(rgb), 0, 255).astype(np.uint8)
    return out


def draw_clinical_overlay(frame: np.ndarray, bounds: FaceBounds, scan_step: int = 8) -> np.ndarray:
    """
    Highlight visibly red skin inside the face box on a contrast-enhanced copy.

    Returns:
        Processed copy (plain copy when no face was found)
    """
    if not bounds.detected:
        return np.array(frame, copy=True)

    processed = np.ascontiguousarray(apply_medical_processing(frame))
    h, w = processed.shape[:2]
    channels = processed.shape[2]

    x0 = max(0, int(bounds.center_x - bounds.face_width * 0.45))
    x1 = min(w, int(bounds.center_x + bounds.face_width * 0.45))
    y0 = max(0, int(bounds.center_y - bounds.face_height * 0.45))
    y1 = min(h, int(bounds.center_y + bounds.face_height * 0.5))
    if x1 <= x0 or y1 <= y0:
        return processed

    grid = processed[y0:y1:scan_step, x0:x1:scan_step]
    lab_a = rgb_to_lab_array(grid)[:, :, 1]
    # Skip fully transparent pixels
    visible = grid[:, :, 3] > 0 if channels == 4 else np.ones(lab_a.shape, dtype=bool)
    rows, cols = np.nonzero((lab_a > 20) & visible)

    markers = processed.copy()
    color = _color(COLORS["inflamed"], channels)
    for row, col in zip(rows, cols):
        x = int(x0 + col * scan_step)
        y = int(y0 + row * scan_step)
        cv2.rectangle(markers, (x, y), (x + 1, y + 1), color, -1)

    return cv2.addWeighted(processed, 0.6, markers, 0.4, 0)


def draw_face_bounds(frame: np.ndarray, check: FrameCheck) -> np.ndarray:
    """Debug view: face box and validator status text."""
    debug_img = np.ascontiguousarray(frame).copy()
    channels = debug_img.shape[2]
    bounds = check.face_bounds

    status_colors = {
        FrameStatus.OK: COLORS["good"],
        FrameStatus.WARNING: COLORS["fair"],
        FrameStatus.ERROR: COLORS["poor"],
    }
    color = _color(status_colors[check.status], channels)

    if bounds.detected:
        x = int(bounds.center_x - bounds.face_width / 2)
        y = int(bounds.center_y - bounds.face_height / 2)
        cv2.rectangle(
            debug_img,
            (x, y),
            (int(x + bounds.face_width), int(y + bounds.face_height)),
            _color(COLORS["debug_face"], channels),
            2,
        )

    cv2.putText(
        debug_img,
        f"{check.status.value}: {check.instruction} ({check.confidence:.2f})",
        (10, 30),
        cv2.FONT_HERSHEY_SIMPLEX,
        0.7,
        color,
        2,
    )
    return debug_img
