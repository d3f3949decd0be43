"""Exception handlers mapping domain errors to JSON responses"""

import logging
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from rewards_analytics.domain.exceptions import ValidationError


def register_error_handlers(app: FastAPI) -> None:
    """Register domain and fallback exception handlers on the app"""

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        request_id = getattr(request.state, "request_id", None)
        logging.info(
            f"Rejected input: {exc.field} {exc.message}",
            extra={"request_id": request_id, "field": exc.field},
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": {"field": exc.field, "message": exc.message}, "request_id": request_id},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        request_id = getattr(request.state, "request_id", None)
        logging.error(f"Unhandled error: {exc}", exc_info=exc, extra={"request_id": request_id})
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error", "request_id": request_id},
        )
