from __future__ import annotations

"""
HTTP error types and "problem+json" handlers for the verification service.

- `ApiError` and subclasses carry ``status_code``, a stable ``code``, a human
  ``message`` and optional ``details``; ``to_problem()`` renders RFC 7807.
- `install_error_handlers(app)` maps ApiError, package errors, request
  validation errors and unexpected exceptions to problem responses. Stack
  traces are logged, never returned.
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..errors import ArtifactLoadFailure, CircuitNotFound, MalformedInput, ZKPredicateError
from ..logging import get_logger

log = get_logger(__name__)

PROBLEM_CT = "application/problem+json"

TITLES = {
    "bad_request": "Bad Request",
    "not_found": "Not Found",
    "unavailable": "Service Unavailable",
    "server_error": "Internal Server Error",
}


@dataclass
class ApiError(Exception):
    message: str
    status_code: int = 400
    code: str = "bad_request"
    details: Optional[Mapping[str, Any]] = None

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def to_problem(self, instance: str = "") -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "type": "about:blank",
            "title": TITLES.get(self.code, self.message or "Error"),
            "status": self.status_code,
            "code": self.code,
            "detail": self.message,
        }
        if instance:
            body["instance"] = instance
        if self.details:
            body["details"] = dict(self.details)
        return body

    def to_response(self, instance: str = "") -> JSONResponse:
        return JSONResponse(self.to_problem(instance), status_code=self.status_code, media_type=PROBLEM_CT)

    @classmethod
    def from_package_error(cls, err: ZKPredicateError) -> "ApiError":
        if isinstance(err, MalformedInput):
            return BadRequest(err.message, details={"code": err.code})
        if isinstance(err, CircuitNotFound):
            return NotFound(err.message, details={"code": err.code})
        if isinstance(err, ArtifactLoadFailure):
            return Unavailable(err.message, details={"code": err.code})
        return ServerError(err.message, details={"code": err.code})


class BadRequest(ApiError):
    def __init__(self, message: str = "Bad request", *, details: Optional[Mapping[str, Any]] = None):
        super().__init__(message=message, status_code=400, code="bad_request", details=details)


class NotFound(ApiError):
    def __init__(self, message: str = "Not found", *, details: Optional[Mapping[str, Any]] = None):
        super().__init__(message=message, status_code=404, code="not_found", details=details)


class Unavailable(ApiError):
    def __init__(self, message: str = "Service unavailable", *, details: Optional[Mapping[str, Any]] = None):
        super().__init__(message=message, status_code=503, code="unavailable", details=details)


class ServerError(ApiError):
    def __init__(self, message: str = "Internal server error", *, details: Optional[Mapping[str, Any]] = None):
        super().__init__(message=message, status_code=500, code="server_error", details=details)


# --------------------------- Handlers ---------------------------


async def _handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
    if exc.status_code >= 500:
        log.error("request_failed", path=request.url.path, code=exc.code, detail=exc.message)
    return exc.to_response(request.url.path)


async def _handle_package_error(request: Request, exc: ZKPredicateError) -> JSONResponse:
    return await _handle_api_error(request, ApiError.from_package_error(exc))


async def _handle_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg", ""), "type": e.get("type", "")}
        for e in exc.errors()
    ]
    return BadRequest("Invalid request body", details={"errors": errors}).to_response(request.url.path)


async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    log.exception("unhandled_error", path=request.url.path, exc_type=type(exc).__name__)
    return ServerError("Unhandled server error").to_response(request.url.path)


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, _handle_api_error)
    app.add_exception_handler(ZKPredicateError, _handle_package_error)
    app.add_exception_handler(RequestValidationError, _handle_validation)
    app.add_exception_handler(Exception, _handle_unexpected)


__all__ = [
    "ApiError",
    "BadRequest",
    "NotFound",
    "Unavailable",
    "ServerError",
    "install_error_handlers",
]
