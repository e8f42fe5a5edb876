"""Best-effort lookup of an identified pill on a drug reference site.

Nothing raised in here reaches the caller: every failure means "not found"
and the model answer is kept as-is.
"""
import html
import logging
import re
from dataclasses import dataclass, field

import httpx

from app.config import settings
from app.schemas.detection import DetectionResult
from app.services.normalization import UNCONFIRMED

logger = logging.getLogger(__name__)

SEARCH_URL = "https://www.googleapis.com/customsearch/v1"

_BLOCK_TAGS = re.compile(r"<\s*(?:br|/p|/h[1-6]|/li|/div|/tr|/ul|/ol)\b[^>]*>", re.IGNORECASE)
_SCRIPTS = re.compile(r"<(script|style|noscript)\b.*?</\1\s*>", re.IGNORECASE | re.DOTALL)
_TAGS = re.compile(r"<[^>]+>")
_BLANKS = re.compile(r"[ \t\xa0]+")

_GENERIC = re.compile(r"Generic name:\s*([^\[\n]+)", re.IGNORECASE)
_BRANDS = re.compile(r"Brand names?:\s*([^\n]+)", re.IGNORECASE)
_DRUG_CLASS = re.compile(r"Drug class(?:es)?:\s*([^\n]+)", re.IGNORECASE)
_USAGE = re.compile(r"^What is [^\n?]+\?\s*\n+([^\n]+)", re.IGNORECASE | re.MULTILINE)
_WARNINGS = re.compile(r"^Warnings\s*\n+([^\n]+)", re.IGNORECASE | re.MULTILINE)
_SENTENCE = re.compile(r"(?<=[.!?])\s+")


@dataclass
class EnrichmentMatch:
    source_url: str
    generic_name: str | None = None
    brand_name: str | None = None
    drug_class: str | None = None
    usage: str | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return bool(self.generic_name or self.brand_name or self.drug_class)


def html_to_text(page: str) -> str:
    page = _SCRIPTS.sub("", page)
    page = _BLOCK_TAGS.sub("\n", page)
    page = html.unescape(_TAGS.sub("", page))
    lines = (_BLANKS.sub(" ", line).strip() for line in page.splitlines())
    return "\n".join(line for line in lines if line)


def _first(pattern: re.Pattern, text: str, limit: int = 300) -> str | None:
    match = pattern.search(text)
    if not match:
        return None
    value = match.group(1).strip().rstrip(",;")
    return value[:limit] or None


def extract_drug_info(text: str, source_url: str) -> EnrichmentMatch:
    """Pull the labelled facts out of a reference page rendered as text."""
    warnings: list[str] = []
    paragraph = _first(_WARNINGS, text, limit=1000)
    if paragraph:
        warnings = [s.strip() for s in _SENTENCE.split(paragraph) if s.strip()][:3]

    return EnrichmentMatch(
        source_url=source_url,
        generic_name=_first(_GENERIC, text),
        brand_name=_first(_BRANDS, text),
        drug_class=_first(_DRUG_CLASS, text),
        usage=_first(_USAGE, text, limit=600),
        warnings=warnings,
    )


def apply_match(result: DetectionResult, match: EnrichmentMatch, boost: float) -> DetectionResult:
    updates: dict = {"confidence": min(1.0, result.confidence + boost)}
    for name in ("generic_name", "brand_name", "drug_class", "usage"):
        value = getattr(match, name)
        if value:
            updates[name] = value
    if match.warnings:
        updates["warnings"] = list(match.warnings)
    return result.model_copy(update=updates)


class Enricher:
    async def lookup(self, query: str) -> EnrichmentMatch | None:
        raise NotImplementedError

    async def enrich(self, result: DetectionResult) -> tuple[DetectionResult, bool]:
        """Return (possibly updated result, whether a match was applied)."""
        query = result.generic_name if result.generic_name and result.generic_name != UNCONFIRMED else result.name
        match = await self.lookup(query)
        if match is None or not match.found:
            return result, False
        logger.info("Enrichment match for %r from %s", query, match.source_url)
        return apply_match(result, match, settings.enrichment_confidence_boost), True


class NoopEnricher(Enricher):
    async def lookup(self, query: str) -> EnrichmentMatch | None:
        return None


class SearchEnricher(Enricher):
    """Web search restricted to one reference site, then scrape the first hit."""

    def __init__(self, api_key: str, engine_id: str, site: str, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.api_key = api_key
        self.engine_id = engine_id
        self.site = site
        self.transport = transport

    async def lookup(self, query: str) -> EnrichmentMatch | None:
        try:
            async with httpx.AsyncClient(follow_redirects=True, transport=self.transport) as client:
                response = await client.get(SEARCH_URL, params={
                    "key": self.api_key,
                    "cx": self.engine_id,
                    "q": f"{query} site:{self.site}",
                    "num": 1,
                })
                if response.status_code != 200:
                    logger.warning("Enrichment search returned %d", response.status_code)
                    return None

                items = response.json().get("items") or []
                if not items or not items[0].get("link"):
                    logger.info("Enrichment search found nothing for %r", query)
                    return None

                link = items[0]["link"]
                page = await client.get(link)
                if page.status_code != 200:
                    logger.warning("Enrichment page %s returned %d", link, page.status_code)
                    return None
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Enrichment lookup failed for %r: %s", query, e)
            return None

        return extract_drug_info(html_to_text(page.text), link)


def get_enricher() -> Enricher:
    if not (settings.search_api_key and settings.search_engine_id):
        return NoopEnricher()
    return SearchEnricher(settings.search_api_key, settings.search_engine_id, settings.enrichment_site)
