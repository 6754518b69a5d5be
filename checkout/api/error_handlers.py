# checkout/api/error_handlers.py
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from checkout.domain.errors import CheckoutError
from checkout.utils.logging import get_logger

logger = get_logger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(CheckoutError)
    async def checkout_error_handler(request: Request, exc: CheckoutError):
        logger.info(f"{request.url.path} rejected: {exc.code} {exc.message}")
        return JSONResponse(status_code=exc.http_status, content=exc.to_response())

    @app.exception_handler(PermissionError)
    async def permission_error_handler(request: Request, exc: PermissionError):
        return JSONResponse(status_code=403, content={"error": {"code": "FORBIDDEN", "message": str(exc)}})

    @app.exception_handler(Exception)
    async def internal_error_handler(request: Request, exc: Exception):
        # bez kodu biznesowego i bez szczegolow wewnetrznych
        logger.error(f"Unhandled error on {request.url.path}: {exc!r}")
        return JSONResponse(
            status_code=500,
            content={"error": {"code": "INTERNAL_ERROR", "message": "Internal server error"}},
        )
