# backend/jayple/errors.py
"""
RFC 7807-style problem responses.

Every error body carries ``code``, the RPC error kind (not-found,
failed-precondition, ...), next to the HTTP status. Domain exceptions are
rendered directly; ``HTTPException`` raised through
``DomainException.to_http_exception()`` keeps its code, and bare framework
errors (unknown route, wrong method) get the code implied by their status.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.exceptions import DomainException

logger = logging.getLogger(__name__)

# status -> (title, rpc code)
_STATUS_INFO = {
    400: ("Bad Request", "invalid-argument"),
    401: ("Unauthorized", "unauthenticated"),
    403: ("Forbidden", "permission-denied"),
    404: ("Not Found", "not-found"),
    405: ("Method Not Allowed", "invalid-argument"),
    409: ("Conflict", "failed-precondition"),
    429: ("Too Many Requests", "resource-exhausted"),
    500: ("Internal Server Error", "internal"),
}


def problem_response(
    request: Request,
    status: int,
    detail: str,
    *,
    code: Optional[str] = None,
    errors: Any = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    title, default_code = _STATUS_INFO.get(status, ("Error", "internal"))
    body: Dict[str, Any] = {
        "type": "about:blank",
        "title": title,
        "status": status,
        "detail": detail,
        "instance": request.url.path,
        "code": code or default_code,
    }
    if errors:
        body["errors"] = jsonable_encoder(errors)
    return JSONResponse(body, status_code=status, headers=headers)


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainException)
    async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("Internal error on %s: %s", request.url.path, exc.message)
        return problem_response(
            request, exc.status_code, exc.message, code=exc.code, errors=exc.details
        )

    @app.exception_handler(HTTPException)
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if isinstance(exc.detail, dict):
            return problem_response(
                request,
                exc.status_code,
                str(exc.detail.get("message", "")),
                code=exc.detail.get("code"),
                errors=exc.detail.get("details"),
                headers=getattr(exc, "headers", None),
            )
        return problem_response(
            request,
            exc.status_code,
            str(exc.detail or ""),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return problem_response(
            request, 400, "Request validation failed", code="invalid-argument", errors=exc.errors()
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled error on %s", request.url.path, exc_info=exc)
        return problem_response(request, 500, "Internal Server Error", code="internal")
