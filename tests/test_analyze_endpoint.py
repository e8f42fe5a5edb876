import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from openai import APIStatusError
from sqlalchemy import select

from app.database import async_session
from app.main import app
from app.models.history import DetectionHistory
from app.schemas.detection import NON_PILL_SENTINEL

IMAGE = "data:image/png;base64,iVBORw0KGgo="

METFORMIN = {
    "name": "Metformin 500 mg",
    "genericName": "Metformin",
    "brandName": "Glucophage",
    "drugClass": "Biguanide",
    "confidence": 0.74,
    "description": "White oval film-coated tablet",
    "color": "White",
    "shape": "Oval",
    "imprint": "G 45",
    "usage": "Type 2 diabetes",
    "warnings": ["Risk of lactic acidosis"],
}


def _completion(text):
    return patch("app.services.analysis_service._request_completion", AsyncMock(return_value=text))


def _no_enrichment():
    from app.services.enrichment import NoopEnricher
    return patch("app.services.analysis_service.get_enricher", return_value=NoopEnricher())


@pytest.mark.asyncio
async def test_missing_image_returns_400():
    mock = AsyncMock(return_value="{}")
    with patch("app.services.analysis_service._request_completion", mock):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post("/api/v1/analyze-pill", json={"hint": "small white pill"})

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "No image provided"}
    mock.assert_not_called()


@pytest.mark.asyncio
async def test_empty_body_returns_400():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.post("/api/v1/analyze-pill")

    assert response.status_code == 400
    assert response.json()["error"] == "No image provided"


@pytest.mark.asyncio
async def test_missing_credential_returns_500():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.post("/api/v1/analyze-pill", json={"image": IMAGE})

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "AI service not configured"}


@pytest.mark.asyncio
async def test_successful_analysis(openai_key):
    with _completion(json.dumps(METFORMIN)), _no_enrichment():
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post("/api/v1/analyze-pill", json={"image": IMAGE})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    result = body["result"]
    assert result["name"] == "Metformin 500 mg"
    assert result["genericName"] == "Metformin"
    assert result["brandName"] == "Glucophage"
    assert result["drugClass"] == "Biguanide"
    assert result["confidence"] == pytest.approx(0.74)
    assert result["warnings"] == ["Risk of lactic acidosis"]

    async with async_session() as db:
        rows = await db.execute(select(DetectionHistory).where(DetectionHistory.pill_name == "Metformin 500 mg"))
        assert rows.scalars().first() is not None


@pytest.mark.asyncio
async def test_na_drug_class_becomes_unconfirmed(openai_key):
    payload = dict(METFORMIN, drugClass="N/A")
    with _completion(json.dumps(payload)), _no_enrichment():
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post("/api/v1/analyze-pill", json={"image": IMAGE})

    assert response.json()["result"]["drugClass"] == "Unconfirmed"


@pytest.mark.asyncio
async def test_unparsable_reply_returns_fallback(openai_key):
    with _completion("The image appears to show a tablet."), _no_enrichment():
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post("/api/v1/analyze-pill", json={"image": IMAGE})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["result"]["confidence"] == pytest.approx(0.35)
    assert len(body["result"]["warnings"]) == 2


@pytest.mark.asyncio
async def test_non_pill_sentinel_passes_through(openai_key):
    payload = {"name": NON_PILL_SENTINEL, "drugClass": "N/A", "genericName": "N/A", "confidence": 0.95}
    with _completion(json.dumps(payload)), _no_enrichment():
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post("/api/v1/analyze-pill", json={"image": IMAGE})

    result = response.json()["result"]
    assert result["name"] == NON_PILL_SENTINEL
    assert result["drugClass"] == "N/A"
    assert result["genericName"] == "N/A"


@pytest.mark.asyncio
async def test_upstream_error_returns_500(openai_key):
    request = httpx.Request("POST", "https://gateway.test/v1/chat/completions")
    error = APIStatusError("bad gateway", response=httpx.Response(502, request=request), body=None)
    client_obj = MagicMock()
    client_obj.chat.completions.create = AsyncMock(side_effect=error)
    client_obj.__aenter__.return_value = client_obj
    with patch("openai.AsyncOpenAI", MagicMock(return_value=client_obj)):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post("/api/v1/analyze-pill", json={"image": IMAGE})

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "AI analysis failed: 502"}


@pytest.mark.asyncio
async def test_hint_too_long_is_rejected():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.post("/api/v1/analyze-pill", json={"image": IMAGE, "hint": "x" * 501})

    assert response.status_code == 400
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_cors_preflight():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.options(
            "/api/v1/analyze-pill",
            headers={
                "Origin": "https://pilldetect.example",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "content-type",
            },
        )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"
    assert "POST" in response.headers["access-control-allow-methods"]


@pytest.mark.asyncio
async def test_plain_options_request():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.options("/api/v1/analyze-pill")

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"
    assert response.content == b""
