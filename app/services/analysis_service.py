import json
import logging
import re
from dataclasses import dataclass

from openai import APIConnectionError, APIStatusError
from pydantic import ValidationError

from app.config import settings
from app.schemas.detection import DetectionResult, UpstreamDetection, NON_PILL_SENTINEL
from app.services.enrichment import Enricher, get_enricher
from app.services.history_service import HistorySaveStatus, save_history
from app.services.normalization import (
    DEFAULT_CONFIDENCE,
    STANDARD_WARNINGS,
    UNCONFIRMED,
    USAGE_FALLBACK,
    coerce_confidence,
    normalize_result,
)
from app.utils.exceptions import MissingImage, ServiceMisconfigured, UpstreamError

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = f"""\
You are an expert pharmaceutical identification assistant. Analyze pill images and provide detailed identification information.

IMPORTANT: Respond with ONLY a valid JSON object in this exact format, no markdown or additional text:
{{
  "name": "Generic name (Brand name)",
  "genericName": "Generic (active ingredient) name",
  "brandName": "Most common brand name",
  "drugClass": "Pharmacological class",
  "confidence": 0.85,
  "description": "Brief description of the medication",
  "color": "Color of the pill",
  "shape": "Shape of the pill (round, oval, capsule, etc.)",
  "imprint": "Any visible text, numbers, or symbols on the pill",
  "usage": "Common medical uses for this medication",
  "warnings": ["Warning 1", "Warning 2"]
}}

Identification rules:
- The imprint code is the strongest evidence; combine it with color and shape to narrow down the medication.
- If the image does not show a pharmaceutical pill, tablet or capsule, set "name" to "{NON_PILL_SENTINEL}" and describe what is shown instead.
- If you cannot identify the pill with confidence, still give your best analysis with a lower confidence (0.3-0.5) and mention the uncertainty in the description.
- Use plain text only: no markdown, no links.
"""

USER_PROMPT = (
    "Please analyze this pill image and identify it. Provide the pill name, confidence level, "
    "physical characteristics (color, shape, imprint), usage, and any important warnings."
)

FALLBACK_NAME = "Unidentified Pill"


class MalformedUpstreamResponse(ValueError):
    """The completion text is not a JSON object of the expected shape."""


@dataclass(frozen=True)
class AnalysisOutcome:
    result: DetectionResult
    history: HistorySaveStatus
    used_fallback: bool = False
    enriched: bool = False


def _mask_secrets(text: str) -> str:
    return re.sub(r"sk-[A-Za-z0-9_-]+", "sk-***", text)


def _build_messages(image: str, hint: str | None) -> list[dict]:
    text = USER_PROMPT
    if hint and hint.strip():
        text += f"\n\nAdditional context from the user: {hint.strip()}"
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {
            "role": "user",
            "content": [
                {"type": "text", "text": text},
                {"type": "image_url", "image_url": {"url": image}},
            ],
        },
    ]


def _build_api_kwargs(model: str, messages: list[dict]) -> dict:
    """Build completion kwargs based on model type."""
    api_kwargs: dict = {"model": model, "messages": messages}

    if model.startswith("o"):
        # o-series reasoning models take no temperature and use max_completion_tokens
        api_kwargs["max_completion_tokens"] = 4096
    else:
        api_kwargs["max_tokens"] = 1024
        api_kwargs["temperature"] = 0.3

    return api_kwargs


async def _request_completion(image: str, hint: str | None) -> str:
    """Send the image to the completion service and return the raw reply text."""
    from openai import AsyncOpenAI

    model = settings.openai_model
    logger.info("Calling completion service model=%s", model)

    api_kwargs = _build_api_kwargs(model, _build_messages(image, hint))

    # one attempt per analysis, failures go straight back to the caller
    try:
        async with AsyncOpenAI(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            max_retries=0,
        ) as client:
            response = await client.chat.completions.create(**api_kwargs)
    except APIStatusError as e:
        logger.error("Completion service error %d: %s", e.status_code, _mask_secrets(str(e)))
        raise UpstreamError(f"AI analysis failed: {e.status_code}") from e
    except APIConnectionError as e:
        logger.error("Completion service unreachable: %s", _mask_secrets(str(e)))
        raise UpstreamError("AI analysis failed: service unreachable") from e

    raw_text = ""
    if response.choices:
        raw_text = response.choices[0].message.content or ""
    if not raw_text.strip():
        raise UpstreamError("No analysis content received from AI")

    logger.info("Completion raw response (%d chars): %s", len(raw_text), raw_text[:500])
    return raw_text


def strip_code_fence(text: str) -> str:
    """Drop ```json / ``` fence lines wrapped around a reply."""
    json_text = text.strip()
    if json_text.startswith("```"):
        lines = json_text.split("\n")
        lines = [l for l in lines if not l.strip().startswith("```")]
        json_text = "\n".join(lines)
    return json_text.strip()


def parse_detection(raw_text: str) -> DetectionResult:
    """Parse and validate the completion text.

    Raises MalformedUpstreamResponse when the text is not JSON, not an object,
    or does not match the expected field types.
    """
    try:
        parsed = json.loads(strip_code_fence(raw_text))
    except json.JSONDecodeError as e:
        raise MalformedUpstreamResponse(f"invalid JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise MalformedUpstreamResponse(f"expected a JSON object, got {type(parsed).__name__}")

    try:
        upstream = UpstreamDetection.model_validate(parsed)
    except ValidationError as e:
        raise MalformedUpstreamResponse(f"schema mismatch: {e.error_count()} error(s)") from e

    return DetectionResult(
        name=upstream.name,
        generic_name=upstream.generic_name or "",
        brand_name=upstream.brand_name or "",
        drug_class=upstream.drug_class or "",
        confidence=coerce_confidence(upstream.confidence),
        description=upstream.description or "",
        color=upstream.color or "",
        shape=upstream.shape or "",
        imprint=upstream.imprint or "",
        usage=upstream.usage or "",
        warnings=upstream.warnings or [],
    )


def fallback_result() -> DetectionResult:
    return DetectionResult(
        name=FALLBACK_NAME,
        generic_name=UNCONFIRMED,
        brand_name=UNCONFIRMED,
        drug_class=UNCONFIRMED,
        confidence=DEFAULT_CONFIDENCE,
        description="Unable to identify this pill with certainty. Please consult a pharmacist.",
        color="Undetermined",
        shape="Undetermined",
        imprint="Unable to determine",
        usage=USAGE_FALLBACK,
        warnings=list(STANDARD_WARNINGS),
    )


async def _enrich(result: DetectionResult, enricher: Enricher) -> tuple[DetectionResult, bool]:
    try:
        return await enricher.enrich(result)
    except Exception as e:
        logger.warning("Enrichment skipped for %r: %s", result.name, e)
        return result, False


async def analyze_pill(image: str | None, hint: str | None = None, enricher: Enricher | None = None) -> AnalysisOutcome:
    """Identify the pill in ``image`` and record the answer in the history."""
    if not image:
        raise MissingImage()

    if not settings.openai_api_key:
        logger.error("OPENAI_API_KEY not configured, cannot analyze pill image")
        raise ServiceMisconfigured()

    raw_text = await _request_completion(image, hint)

    used_fallback = False
    try:
        result = parse_detection(raw_text)
    except MalformedUpstreamResponse as e:
        logger.warning("Malformed completion response (%s), using fallback record", e)
        result = fallback_result()
        used_fallback = True

    result = normalize_result(result)

    enriched = False
    if result.is_pill and not used_fallback:
        result, enriched = await _enrich(result, enricher or get_enricher())
        if enriched:
            result = normalize_result(result)

    history = await save_history(result)
    if not history.saved:
        logger.warning("Returning analysis for %r without a history row", result.name)

    logger.info(
        "Analysis completed: name=%r confidence=%.2f fallback=%s enriched=%s",
        result.name, result.confidence, used_fallback, enriched,
    )
    return AnalysisOutcome(result=result, history=history, used_fallback=used_fallback, enriched=enriched)
