import logging
from typing import Optional, Type
from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from shared.helpers.json_response_helper import failure_body
from shared.utils.app_status_code import AppStatusCode

logger = logging.getLogger(__name__)


def setup_exception_handlers(app: FastAPI, domain_error: Optional[Type[Exception]] = None):
    """Render every error as a ``JsonOutResult`` failure envelope.

    ``domain_error`` is the service's exception base class; instances carry
    ``message``, ``status_code`` (app code) and ``http_status``.
    """

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        # error_response() already packs the envelope into detail
        if isinstance(exc.detail, dict) and "status_code" in exc.detail:
            body = exc.detail
        else:
            body = failure_body(str(exc.detail), str(exc.status_code))
        return JSONResponse(content=body, status_code=exc.status_code, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            content=failure_body(str(exc), AppStatusCode.INVALID_INPUT), status_code=422)

    if domain_error is not None:
        @app.exception_handler(domain_error)
        async def domain_exception_handler(request: Request, exc):
            logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
            return JSONResponse(
                content=failure_body(exc.message, exc.status_code), status_code=exc.http_status)

    # Catch all unhandled exceptions
    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception on {request.url.path}")
        return JSONResponse(
            content=failure_body("Internal server error"), status_code=500)
