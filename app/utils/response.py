from typing import Any


def success_response(data: Any = None, **extra: Any) -> dict:
    body = {"success": True, "data": data}
    body.update(extra)
    return body


def result_response(result: Any) -> dict:
    """Envelope used by the analysis endpoint."""
    return {"success": True, "result": result}


def error_response(message: str) -> dict:
    return {"success": False, "error": message}
