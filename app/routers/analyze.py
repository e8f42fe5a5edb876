from fastapi import APIRouter, Response

from app.schemas.detection import AnalyzeRequest
from app.services.analysis_service import analyze_pill
from app.utils.response import result_response

router = APIRouter(tags=["analysis"])

PREFLIGHT_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "authorization, x-client-info, x-api-key, apikey, content-type",
}


@router.options("/analyze-pill")
async def analyze_pill_preflight():
    return Response(status_code=200, headers=PREFLIGHT_HEADERS)


@router.post("/analyze-pill")
async def analyze(payload: AnalyzeRequest | None = None):
    payload = payload or AnalyzeRequest()
    outcome = await analyze_pill(payload.image, payload.hint)
    return result_response(outcome.result.to_response())
