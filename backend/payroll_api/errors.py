"""
Error envelope shared by every route.

Rule violations (editing a posted record, picking an inactive parent, an
unknown field name) are reported as HTTP 422 with a per-field error map:

    {"message": "...", "errors": {"field": ["..."]}}

Request-body validation failures raised by FastAPI are rendered in the same
shape so the desktop client only has to understand one format.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class UnprocessableError(HTTPException):
    """A request that is well-formed but breaks a business rule."""

    def __init__(self, message: str, errors: Optional[Dict[str, List[str]]] = None):
        super().__init__(status_code=422, detail=message)
        self.message = message
        self.errors = errors or {"general": [message]}


def field_error(field: str, message: str) -> UnprocessableError:
    """Shortcut for a single-field validation failure."""

    return UnprocessableError(message, {field: [message]})


async def handle_unprocessable(request: Request, exc: UnprocessableError) -> JSONResponse:
    logger.info("Rejected %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message, "errors": exc.errors},
    )


async def handle_request_validation(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors: Dict[str, List[str]] = {}
    for item in exc.errors():
        loc = [str(part) for part in item.get("loc", ()) if part not in ("body", "query", "path")]
        key = ".".join(loc) or "general"
        errors.setdefault(key, []).append(item.get("msg", "Invalid value"))
    logger.info("Validation failed for %s %s: %s", request.method, request.url.path, errors)
    return JSONResponse(
        status_code=422,
        content={"message": "Validation failed", "errors": errors},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the 422 envelope handlers to the application."""

    app.add_exception_handler(UnprocessableError, handle_unprocessable)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
