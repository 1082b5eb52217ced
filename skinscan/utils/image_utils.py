"""
Frame loading, conversion and encoding utilities.
Frames inside the pipeline are RGBA uint8 arrays.
"""

import io

import cv2
import numpy as np
from PIL import Image

from skinscan.core.color_space import luma
from skinscan.core.models import as_rgb


def load_frame_from_bytes(data: bytes) -> np.ndarray:
    """
    Load a frame from encoded image bytes.

    Args:
        data: Raw image bytes (JPEG, PNG, ...)

    Returns:
        RGBA frame as numpy array
    """
    # Use PIL to handle various formats
    pil_image = Image.open(io.BytesIO(data))

    if pil_image.mode != "RGBA":
        pil_image = pil_image.convert("RGBA")

    return np.array(pil_image)


def load_frame_from_path(path: str) -> np.ndarray | None:
    """
    Load a frame from a file path.

    Returns:
        RGBA frame or None if the file could not be read
    """
    image = cv2.imread(path)
    if image is None:
        return None
    return bgr_to_rgba(image)


def bgr_to_rgba(image: np.ndarray) -> np.ndarray:
    """Convert an OpenCV BGR image to an RGBA frame."""
    return cv2.cvtColor(image, cv2.COLOR_BGR2RGBA)


def rgba_to_bgr(frame: np.ndarray) -> np.ndarray:
    """Convert an RGB(A) frame back to OpenCV BGR."""
    return cv2.cvtColor(np.ascontiguousarray(as_rgb(frame)), cv2.COLOR_RGB2BGR)


def resize_frame(
    frame: np.ndarray,
    max_dimension: int = 1280,
) -> tuple[np.ndarray, float]:
    """
    Resize a frame if larger than max dimension while preserving aspect ratio.

    Returns:
        Tuple of (resized frame, scale factor)
    """
    h, w = frame.shape[:2]
    scale = 1.0

    if max(h, w) > max_dimension:
        scale = max_dimension / max(h, w)
        new_w = int(w * scale)
        new_h = int(h * scale)
        frame = cv2.resize(frame, (new_w, new_h), interpolation=cv2.INTER_AREA)

    return frame, scale


def preprocess_for_ai(frame: np.ndarray, contrast: float = 1.15) -> np.ndarray:
    """
    Normalise exposure and lift contrast before hand-off to the remote model.

    Mean luma (sampled on every 4th pixel) is shifted to 128, then contrast
    is stretched around mid-grey. Returns a new frame; the input is untouched.
    """
    rgb = as_rgb(frame).astype(np.float64)
    sampled = rgb.reshape(-1, 3)[::4]
    avg_luma = float(luma(sampled).mean()) if len(sampled) else 128.0

    exposure_bias = 128.0 - avg_luma
    intercept = 128.0 * (1 - contrast)
    adjusted = (rgb + exposure_bias) * contrast + intercept

    out = np.array(frame, copy=True)
    out[:, :, :3] = np.clip(np.round(adjusted), 0, 255).astype(np.uint8)
    return out


def encode_frame_to_bytes(frame: np.ndarray, format: str = "JPEG", quality: int = 95) -> bytes:
    """
    Encode a frame for hand-off or download.

    Args:
        frame: RGB(A) frame
        format: Output format (JPEG, PNG)
        quality: JPEG quality

    Returns:
        Encoded image bytes
    """
    rgb_image = np.ascontiguousarray(as_rgb(frame))
    pil_image = Image.fromarray(rgb_image)

    buffer = io.BytesIO()
    if format.upper() == "JPEG":
        pil_image.save(buffer, format="JPEG", quality=quality)
    else:
        pil_image.save(buffer, format=format)
    return buffer.getvalue()
