"""
Remote refinement of locally computed metrics with a vision-language model.

The service is treated as unreliable: any failure (no API key, network error,
rate limit, malformed reply) returns the local metrics unchanged, so a scan
always completes with valid numbers.
"""

import base64
import json
import logging
import math
import os
import time
from datetime import datetime
from typing import Sequence

import anthropic

from skinscan.config import ScanConfig, DEFAULT_CONFIG
from skinscan.core.frame_aggregator import normalize_score
from skinscan.core.models import SkinMetrics, WIRE_KEYS
from skinscan.utils.exceptions import RefinementError


logger = logging.getLogger(__name__)


def is_refinement_available() -> bool:
    """Check if remote refinement can be attempted (API key set)."""
    api_key = os.environ.get("ANTHROPIC_API_KEY")
    return api_key is not None and len(api_key) > 0


def build_request_text(metrics: SkinMetrics, history: Sequence[SkinMetrics]) -> str:
    """Request body: local measurement as the base, recent scans as anchors."""
    lines = [
        "Review this face photo against the measured skin metrics.",
        f"MEASURED METRICS: {json.dumps(metrics.to_dict())}",
    ]
    if history:
        lines.append(f"PREVIOUS SCANS (oldest first): {json.dumps([h.to_dict() for h in history])}")
    lines += [
        "Scores are 10-99 and higher is healthier.",
        "Keep each score within 5 points of the measured value unless the photo shows a clear anomaly.",
        "Return ONLY a JSON object with the same keys, plus skinAge (number),",
        "analysisSummary (string) and observations (object of metric key -> location note).",
    ]
    return "\n".join(lines)


def parse_metrics_response(text: str, local: SkinMetrics, config: ScanConfig = DEFAULT_CONFIG) -> SkinMetrics:
    """
    Parse a model reply into SkinMetrics, merged over the local record.

    Raises:
        RefinementError: If the reply is not a JSON object of well-typed values
    """
    if not text or not text.strip():
        raise RefinementError("Empty refinement response")

    cleaned = text.replace("```json", "").replace("```", "").strip()
    first, last = cleaned.find("{"), cleaned.rfind("}")
    if first != -1 and last > first:
        cleaned = cleaned[first:last + 1]

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise RefinementError(f"Response is not JSON: {e}") from e

    if not isinstance(data, dict):
        raise RefinementError(f"Response is a {type(data).__name__}, expected an object")

    scores = local.scores()
    for key, wire in WIRE_KEYS.items():
        if wire in data:
            scores[key] = normalize_score(_number(data[wire], wire), config)

    skin_age = None
    if data.get("skinAge") is not None:
        skin_age = int(round(_number(data["skinAge"], "skinAge")))

    summary = data.get("analysisSummary")
    if summary is not None and not isinstance(summary, str):
        raise RefinementError("analysisSummary is not a string")

    observations = data.get("observations")
    if observations is not None:
        if not isinstance(observations, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in observations.items()
        ):
            raise RefinementError("observations is not a mapping of strings")

    return SkinMetrics(
        timestamp=datetime.now(),
        skin_age=skin_age,
        analysis_summary=summary,
        observations=observations,
        **scores,
    )


def _number(value, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise RefinementError(f"{name} is not a number: {value!r}")
    return float(value)


class MetricsRefiner:
    """Call the remote model and fall back to local metrics on any failure."""

    def __init__(self, config: ScanConfig | None = None, client: "anthropic.Anthropic | None" = None):
        self.config = config or DEFAULT_CONFIG
        self.client = client

    def refine(
        self,
        image: bytes,
        metrics: SkinMetrics,
        history: Sequence[SkinMetrics] | None = None,
    ) -> tuple[SkinMetrics, bool]:
        """
        Ask the remote model to revise the local metrics.

        Args:
            image: JPEG bytes of the final scan frame
            metrics: Locally computed metrics
            history: Earlier scans, oldest first; only the most recent few are sent

        Returns:
            Tuple of (metrics, refined). On failure the local metrics are
            returned verbatim with refined=False.
        """
        if self.client is None:
            if not is_refinement_available():
                logger.info("ANTHROPIC_API_KEY not set, keeping local metrics")
                return metrics, False
            self.client = anthropic.Anthropic()

        recent = list(history or [])[-self.config.refinement_history:] if self.config.refinement_history > 0 else []

        try:
            text = self._call_with_retry(image, build_request_text(metrics, recent))
            refined = parse_metrics_response(text, metrics, self.config)
        except (anthropic.APIError, RefinementError) as e:
            logger.warning(f"Refinement failed, keeping local metrics: {e}")
            return metrics, False

        logger.info(f"Refinement applied: overall {metrics.overall_score} -> {refined.overall_score}")
        return refined, True

    def _call_with_retry(self, image: bytes, prompt: str) -> str:
        try:
            return self._call(image, prompt)
        except anthropic.RateLimitError:
            logger.warning(f"Rate limited, retrying in {self.config.refinement_retry_delay}s")
            time.sleep(self.config.refinement_retry_delay)
            return self._call(image, prompt)

    def _call(self, image: bytes, prompt: str) -> str:
        response = self.client.messages.create(
            model=self.config.refinement_model,
            max_tokens=self.config.refinement_max_tokens,
            messages=[{
                "role": "user",
                "content": [
                    {
                        "type": "image",
                        "source": {
                            "type": "base64",
                            "media_type": "image/jpeg",
                            "data": base64.standard_b64encode(image).decode("utf-8"),
                        }
                    },
                    {
                        "type": "text",
                        "text": prompt
                    }
                ]
            }]
        )

        blocks = getattr(response, "content", None) or []
        texts = [getattr(block, "text", None) for block in blocks]
        texts = [t for t in texts if isinstance(t, str)]
        if not texts:
            raise RefinementError("Response has no text content")
        return "\n".join(texts)
