"""Custom exception handlers for FastAPI application.

Domain exceptions raised inside endpoints become JSON responses of the form
``{"error": <exception class>, "message": <human readable text>}``.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from medialibrary.domain.exceptions import (
    CatalogStoreError,
    DomainException,
    InvalidStateException,
)

logger = logging.getLogger(__name__)


def _error_response(status_code: int, exc: DomainException) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": type(exc).__name__, "message": exc.message},
    )


# Hey future me, handlers are matched by the exception's MRO, so the specific ones win over the
# DomainException catch-all. Register them during app setup, before any request arrives.
def register_exception_handlers(app: FastAPI) -> None:
    """Register handlers that map domain exceptions to HTTP responses.

    - CatalogStoreError → 503 (store unavailable, retry later)
    - InvalidStateException → 409
    - any other DomainException → 500
    """

    @app.exception_handler(CatalogStoreError)
    async def catalog_store_error_handler(
        request: Request, exc: CatalogStoreError
    ) -> JSONResponse:
        logger.error(
            "Catalog store error at %s: %s",
            request.url.path,
            exc.message,
            extra={"path": request.url.path, "operation": exc.operation},
        )
        return _error_response(status.HTTP_503_SERVICE_UNAVAILABLE, exc)

    @app.exception_handler(InvalidStateException)
    async def invalid_state_exception_handler(
        request: Request, exc: InvalidStateException
    ) -> JSONResponse:
        logger.info("Invalid state at %s: %s", request.url.path, exc.message)
        return _error_response(status.HTTP_409_CONFLICT, exc)

    @app.exception_handler(DomainException)
    async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
        logger.error(
            "Unhandled domain error at %s: %s", request.url.path, exc.message, exc_info=exc
        )
        return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, exc)
