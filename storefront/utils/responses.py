import traceback
from datetime import datetime, timezone

from fastapi import Request
from fastapi.responses import JSONResponse

from storefront import config
from storefront.errors import ShopError


def error_body(request: Request, status_code: int, message, error: str) -> dict:
    return {
        "statusCode": status_code,
        "message": message,
        "error": error,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "path": request.url.path,
        "method": request.method,
    }


def error_response(request: Request, exc: ShopError) -> JSONResponse:
    return JSONResponse(
        error_body(request, exc.status_code, exc.message, exc.error),
        status_code=exc.status_code,
    )


def internal_error_response(request: Request, exc: Exception) -> JSONResponse:
    body = error_body(request, 500, "Internal server error", type(exc).__name__)
    if config.ENV != "production":
        body["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return JSONResponse(body, status_code=500)
