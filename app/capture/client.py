import logging

import httpx
from pydantic import ValidationError

from app.capture.state import (
    AnalysisFailed,
    AnalysisStarted,
    AnalysisSucceeded,
    CaptureState,
    ImageChosen,
    ImageRejected,
    Reset,
    transition,
)
from app.schemas.detection import DetectionResult
from app.services.image_validator import ImageRejected as ImageRejectedError
from app.services.image_validator import encode_data_url, validate_image

logger = logging.getLogger(__name__)

ANALYZE_ENDPOINT = "/api/v1/analyze-pill"
GENERIC_FAILURE = "Failed to analyze the image. Please try again."


def result_slots(result: DetectionResult) -> dict[str, dict]:
    """Group a result into the fixed display sections of the result card."""
    return {
        "identity": {
            "name": result.name,
            "genericName": result.generic_name,
            "brandName": result.brand_name,
            "drugClass": result.drug_class,
            "confidence": round(result.confidence * 100),
        },
        "physical": {
            "color": result.color,
            "shape": result.shape,
            "imprint": result.imprint,
        },
        "usage": {
            "description": result.description,
            "usage": result.usage,
        },
        "warnings": {"items": list(result.warnings)},
    }


class PillCaptureFlow:
    """Select one image, submit it for analysis, keep the outcome.

    ``client`` is any ``httpx.AsyncClient`` pointed at the API.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        endpoint: str = ANALYZE_ENDPOINT,
        api_key: str | None = None,
        max_size: int | None = None,
    ) -> None:
        self.client = client
        self.endpoint = endpoint
        self.api_key = api_key
        self.max_size = max_size
        self.state = CaptureState()

    def _apply(self, event: object) -> CaptureState:
        self.state = transition(self.state, event)
        return self.state

    def select(self, filename: str | None, content: bytes, content_type: str | None = None) -> CaptureState:
        try:
            mime = validate_image(filename, content_type, len(content), self.max_size)
        except ImageRejectedError as e:
            logger.info("Rejected %s: %s", filename, e.message)
            return self._apply(ImageRejected(e.message))
        return self._apply(ImageChosen(image=encode_data_url(content, mime), filename=filename))

    def select_path(self, path: str) -> CaptureState:
        with open(path, "rb") as f:
            content = f.read()
        return self.select(path, content)

    async def analyze(self, hint: str | None = None) -> CaptureState:
        self._apply(AnalysisStarted())

        payload = {"image": self.state.image}
        if hint and hint.strip():
            payload["hint"] = hint.strip()
        headers = {"X-API-Key": self.api_key} if self.api_key else {}

        try:
            response = await self.client.post(self.endpoint, json=payload, headers=headers)
            body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Analysis request failed: %s", e)
            return self._apply(AnalysisFailed(GENERIC_FAILURE))

        if not isinstance(body, dict):
            return self._apply(AnalysisFailed(GENERIC_FAILURE))

        if response.status_code == 200 and body.get("success"):
            try:
                result = DetectionResult.model_validate(body.get("result") or {})
            except ValidationError:
                logger.warning("Analysis response did not contain a valid result")
                return self._apply(AnalysisFailed(GENERIC_FAILURE))
            return self._apply(AnalysisSucceeded(result))

        return self._apply(AnalysisFailed(body.get("error") or GENERIC_FAILURE))

    def reset(self) -> CaptureState:
        return self._apply(Reset())
