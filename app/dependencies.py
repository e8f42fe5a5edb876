from fastapi import Header, Request

from app.config import settings
from app.utils.exceptions import AppException


async def verify_api_key(request: Request, x_api_key: str = Header(default="")) -> None:
    if not settings.api_key:
        return
    # preflight requests never carry custom headers
    if request.method == "OPTIONS":
        return
    if x_api_key != settings.api_key:
        raise AppException("Invalid or missing API key", status_code=403)
