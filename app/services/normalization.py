"""Cleanup rules applied to detection results before they leave the service."""
import math
import re

from app.schemas.detection import DetectionResult, NON_PILL_SENTINEL

DEFAULT_CONFIDENCE = 0.35
UNCONFIRMED = "Unconfirmed"
NO_IMPRINT = "No visible imprint"
USAGE_FALLBACK = (
    "Usage information could not be confirmed from the image. "
    "Please consult a pharmacist or healthcare professional."
)
STANDARD_WARNINGS = [
    "Always verify medications with a licensed pharmacist before use.",
    "Do not take any medication without a prescription or medical advice.",
]

# field -> default used when the value is empty or a placeholder
FIELD_DEFAULTS: dict[str, str] = {
    "generic_name": UNCONFIRMED,
    "brand_name": UNCONFIRMED,
    "drug_class": UNCONFIRMED,
    "imprint": NO_IMPRINT,
    "usage": USAGE_FALLBACK,
}

TEXT_FIELDS = (
    "name", "generic_name", "brand_name", "drug_class", "description",
    "color", "shape", "imprint", "usage",
)

_PLACEHOLDER = re.compile(r"^(n/?a|none|unknown)?$", re.IGNORECASE)

_IMAGE_OR_LINK = re.compile(r"!?\[([^\]]*)\]\([^)]*\)")
_URL = re.compile(r"(?:https?://|www\.)\S+", re.IGNORECASE)
_CODE = re.compile(r"`+([^`]*)`+")
_EMPHASIS = re.compile(r"(?<!\w)(\*{1,3}|_{1,3})(\S(?:.*?\S)?)\1(?!\w)")
_HEADING = re.compile(r"^[ \t]*#{1,6}[ \t]+", re.MULTILINE)
_BULLET = re.compile(r"^[ \t]*[-*+][ \t]+", re.MULTILINE)
# leftover markers only, a single * inside a token (imprint "M*30") is kept
_STRAY = re.compile(r"`+|\*{2,}|(?<!\S)\*(?!\S)")
_SPACES = re.compile(r"[ \t]{2,}")
_SPACE_BEFORE_PUNCT = re.compile(r"[ \t]+([.,;:!?)])")


def _strip_once(text: str) -> str:
    text = _IMAGE_OR_LINK.sub(r"\1", text)
    text = _URL.sub("", text)
    text = _CODE.sub(r"\1", text)
    text = _EMPHASIS.sub(r"\2", text)
    text = _HEADING.sub("", text)
    text = _BULLET.sub("", text)
    text = _STRAY.sub("", text)
    text = _SPACE_BEFORE_PUNCT.sub(r"\1", text)
    text = _SPACES.sub(" ", text)
    return text.strip()


def strip_markdown(text: str) -> str:
    """Remove markdown emphasis, links, code spans and raw URLs.

    Applied until the text stops changing, so a cleaned string is a fixed
    point: ``strip_markdown(strip_markdown(s)) == strip_markdown(s)``.
    """
    previous = None
    while text != previous:
        previous = text
        text = _strip_once(text)
    return text


def is_placeholder(value: str | None) -> bool:
    if value is None:
        return True
    return bool(_PLACEHOLDER.match(value.strip()))


def coerce_confidence(value) -> float:
    """Map any upstream confidence to a finite float in [0, 1]."""
    if isinstance(value, bool):
        return DEFAULT_CONFIDENCE
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return DEFAULT_CONFIDENCE
    if not isinstance(value, (int, float)):
        return DEFAULT_CONFIDENCE
    value = float(value)
    if math.isnan(value) or math.isinf(value):
        return DEFAULT_CONFIDENCE
    return min(1.0, max(0.0, value))


def normalize_result(result: DetectionResult) -> DetectionResult:
    """Return the cleaned copy of ``result``.

    Non-pill results only get their confidence clamped.
    """
    confidence = coerce_confidence(result.confidence)
    if strip_markdown(result.name) == NON_PILL_SENTINEL:
        return result.model_copy(update={"name": NON_PILL_SENTINEL, "confidence": confidence})

    updates: dict = {"confidence": confidence}
    for field in TEXT_FIELDS:
        updates[field] = strip_markdown(getattr(result, field) or "")
    for field, default in FIELD_DEFAULTS.items():
        if is_placeholder(updates[field]):
            updates[field] = default

    warnings = [strip_markdown(w) for w in result.warnings if w]
    warnings = [w for w in warnings if not is_placeholder(w)]
    updates["warnings"] = warnings or list(STANDARD_WARNINGS)
    return result.model_copy(update=updates)
