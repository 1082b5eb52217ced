"""
Data models for the skin scan pipeline.
"""

from dataclasses import dataclass, field
from enum import Enum
from datetime import datetime
import numpy as np

from skinscan.utils.exceptions import FrameFormatError, MetricsError


# The thirteen per-region scores, in report order. overall_score is derived.
METRIC_KEYS = (
    "acne_active",
    "acne_scars",
    "pore_size",
    "blackheads",
    "wrinkle_fine",
    "wrinkle_deep",
    "sagging",
    "pigmentation",
    "redness",
    "texture",
    "hydration",
    "oiliness",
    "dark_circles",
)

SCORE_KEYS = ("overall_score",) + METRIC_KEYS

# Wire names used by the refinement service and the report layer
WIRE_KEYS = {
    "overall_score": "overallScore",
    "acne_active": "acneActive",
    "acne_scars": "acneScars",
    "pore_size": "poreSize",
    "blackheads": "blackheads",
    "wrinkle_fine": "wrinkleFine",
    "wrinkle_deep": "wrinkleDeep",
    "sagging": "sagging",
    "pigmentation": "pigmentation",
    "redness": "redness",
    "texture": "texture",
    "hydration": "hydration",
    "oiliness": "oiliness",
    "dark_circles": "darkCircles",
}


def as_rgb(frame: np.ndarray) -> np.ndarray:
    """Return the RGB channels of an RGBA or RGB frame (a view, no copy)."""
    if not isinstance(frame, np.ndarray) or frame.ndim != 3 or frame.shape[2] not in (3, 4):
        shape = getattr(frame, "shape", None)
        raise FrameFormatError(f"Expected HxWx3 or HxWx4 pixel array, got shape {shape}")
    return frame[:, :, :3]


class FrameStatus(Enum):
    """Outcome of the per-frame quality gate."""
    OK = "OK"
    WARNING = "WARNING"
    ERROR = "ERROR"


@dataclass(frozen=True)
class FaceBounds:
    """Estimated face box in frame pixel coordinates. face_width == 0 means no face."""
    center_x: float
    center_y: float
    face_width: float
    face_height: float

    @property
    def detected(self) -> bool:
        return self.face_width > 0

    @classmethod
    def none(cls, frame_width: int, frame_height: int) -> "FaceBounds":
        return cls(frame_width / 2, frame_height / 2, 0.0, 0.0)

    def to_dict(self) -> dict:
        return {
            "centerX": round(self.center_x, 1),
            "centerY": round(self.center_y, 1),
            "faceWidth": round(self.face_width, 1),
            "faceHeight": round(self.face_height, 1),
        }


@dataclass(frozen=True)
class RegionOfInterest:
    """Rectangular window inside a frame, already clamped to the frame bounds."""
    name: str
    x: int
    y: int
    width: int
    height: int

    @classmethod
    def clamped(
        cls,
        name: str,
        x: float,
        y: float,
        width: float,
        height: float,
        frame_width: int,
        frame_height: int,
    ) -> "RegionOfInterest":
        # Negative origins are pulled onto the frame edge, extents cut at the far edge
        x0 = min(max(0, int(x)), frame_width)
        y0 = min(max(0, int(y)), frame_height)
        w = max(0, min(int(width), frame_width - x0))
        h = max(0, min(int(height), frame_height - y0))
        return cls(name=name, x=x0, y=y0, width=w, height=h)

    @property
    def area(self) -> int:
        return self.width * self.height

    def crop(self, frame: np.ndarray) -> np.ndarray:
        return frame[self.y:self.y + self.height, self.x:self.x + self.width]

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
        }


@dataclass
class SkinMetrics:
    """Aggregate skin measurement. Every score is higher-is-better."""
    overall_score: int
    acne_active: int
    acne_scars: int
    pore_size: int
    blackheads: int
    wrinkle_fine: int
    wrinkle_deep: int
    sagging: int
    pigmentation: int
    redness: int
    texture: int
    hydration: int
    oiliness: int
    dark_circles: int
    timestamp: datetime = field(default_factory=datetime.now)
    # Populated only by the external refinement step
    skin_age: int | None = None
    analysis_summary: str | None = None
    observations: dict[str, str] | None = None

    def scores(self) -> dict[str, int]:
        return {key: getattr(self, key) for key in SCORE_KEYS}

    def to_dict(self) -> dict:
        data = {WIRE_KEYS[key]: value for key, value in self.scores().items()}
        data["timestamp"] = self.timestamp.isoformat()
        if self.skin_age is not None:
            data["skinAge"] = self.skin_age
        if self.analysis_summary is not None:
            data["analysisSummary"] = self.analysis_summary
        if self.observations is not None:
            data["observations"] = dict(self.observations)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "SkinMetrics":
        """
        Build a record from its wire form.

        Raises:
            MetricsError: If the record is not a mapping, lacks a score or holds unusable values
        """
        if not isinstance(data, dict):
            raise MetricsError(f"Metrics record must be an object, got {type(data).__name__}")
        missing = [wire for wire in WIRE_KEYS.values() if wire not in data]
        if missing:
            raise MetricsError(f"Metrics record is missing scores: {missing}")

        try:
            kwargs = {key: int(data[wire]) for key, wire in WIRE_KEYS.items()}
            timestamp = data.get("timestamp")
            if isinstance(timestamp, str):
                kwargs["timestamp"] = datetime.fromisoformat(timestamp)
            elif isinstance(timestamp, datetime):
                kwargs["timestamp"] = timestamp
            if data.get("skinAge") is not None:
                kwargs["skin_age"] = int(data["skinAge"])
            kwargs["analysis_summary"] = data.get("analysisSummary")
            if data.get("observations") is not None:
                kwargs["observations"] = dict(data["observations"])
        except (TypeError, ValueError, OverflowError) as e:
            raise MetricsError(f"Malformed metrics record: {e}") from e
        return cls(**kwargs)


@dataclass
class FrameCheck:
    """Result of validating one frame."""
    is_good: bool
    confidence: float
    status: FrameStatus
    message: str
    instruction: str
    face_bounds: FaceBounds

    def to_dict(self) -> dict:
        return {
            "isGood": self.is_good,
            "confidence": round(self.confidence, 3),
            "status": self.status.value,
            "message": self.message,
            "instruction": self.instruction,
            "faceBounds": self.face_bounds.to_dict(),
        }


@dataclass
class FrameSample:
    """One buffered measurement with its reliability weight."""
    metrics: SkinMetrics
    confidence: float = 1.0


@dataclass
class FrameFeedback:
    """Live per-frame output for the view layer."""
    status: FrameStatus
    message: str
    instruction: str
    face_bounds: FaceBounds
    progress: float
    accepted: bool

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "message": self.message,
            "instruction": self.instruction,
            "faceBounds": self.face_bounds.to_dict(),
            "progress": round(self.progress, 1),
            "accepted": self.accepted,
        }


@dataclass
class ScanResult:
    """Final hand-off of a completed scan."""
    metrics: SkinMetrics
    frames_used: int
    refined: bool = False
    # Not serialized
    image: bytes | None = None

    def to_dict(self) -> dict:
        return {
            "metrics": self.metrics.to_dict(),
            "frames_used": self.frames_used,
            "refined": self.refined,
        }
