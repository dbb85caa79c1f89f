# backend/barbershop/errors.py
"""
Problem-details (RFC 7807 style) error responses.

Every error leaves the API as::

    {"type", "title", "status", "detail", "instance", "code"?, "errors"?}

Domain exceptions carry their own status and code; request validation
failures become 422 with the field errors attached.
"""

from http import HTTPStatus
import logging
from typing import Any, Mapping, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.exceptions import DomainException

logger = logging.getLogger(__name__)

VALIDATION_ERROR_CODE = "validation_error"


def problem_response(
    request: Request,
    status: int,
    *,
    detail: Any = None,
    code: Optional[str] = None,
    errors: Any = None,
    headers: Optional[Mapping[str, str]] = None,
) -> JSONResponse:
    try:
        title = HTTPStatus(status).phrase
    except ValueError:
        title = "Error"
    body: dict[str, Any] = {
        "type": "about:blank",
        "title": title,
        "status": status,
        "detail": detail if detail is not None else "",
        "instance": request.url.path,
    }
    if code:
        body["code"] = code
    if errors is not None:
        body["errors"] = jsonable_encoder(errors)
    return JSONResponse(body, status_code=status, headers=dict(headers) if headers else None)


def _from_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    detail = exc.detail
    if isinstance(detail, dict):
        code = detail.get("code")
        return problem_response(
            request,
            exc.status_code,
            detail=detail.get("message") or detail.get("detail"),
            code=code if isinstance(code, str) else None,
            errors=detail.get("details") or detail.get("errors"),
            headers=exc.headers,
        )
    return problem_response(
        request,
        exc.status_code,
        detail=None if detail is None else str(detail),
        headers=exc.headers,
    )


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return _from_http_exception(request, exc)

    @app.exception_handler(DomainException)
    async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
        return _from_http_exception(request, exc.to_http_exception())

    @app.exception_handler(RequestValidationError)
    @app.exception_handler(ValidationError)
    async def validation_exception_handler(request: Request, exc: Any) -> JSONResponse:
        errors = jsonable_encoder(exc.errors())
        return problem_response(
            request, 422, detail=errors, code=VALIDATION_ERROR_CODE, errors=errors
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s", request.url.path)
        return problem_response(
            request, 500, detail="Internal Server Error", code="internal_server_error"
        )
