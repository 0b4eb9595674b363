from __future__ import annotations

import uuid
from typing import Optional

from fastapi import FastAPI, Request

from ..artifacts import ArtifactLoader
from ..config import Settings, get_settings
from ..logging import bind_request_context, clear_request_context, get_logger
from ..registry import CircuitRegistry, default_registry, load_registry
from ..verifier import Verifier
from ..version import __version__
from .errors import install_error_handlers
from .routes import router

log = get_logger(__name__)


def build_registry(settings: Settings) -> CircuitRegistry:
    if settings.registry_path:
        return load_registry(settings.registry_path, settings.artifact_base)
    return default_registry(settings.artifact_base)


def build_verifier(settings: Settings, registry: Optional[CircuitRegistry] = None) -> Verifier:
    """Load verification keys once; raises ArtifactLoadFailure if any is missing."""
    return Verifier.from_registry(
        registry or build_registry(settings),
        ArtifactLoader(timeout=settings.http_timeout_seconds),
        max_concurrency=settings.verifier.max_concurrency,
    )


REQUEST_ID_HEADER = "X-Request-Id"


def install_request_id(app: FastAPI) -> None:
    """Propagate or mint X-Request-Id and bind it into the log context for the request."""

    @app.middleware("http")
    async def _request_id(request: Request, call_next):
        rid = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = rid
        bind_request_context(request_id=rid, path=request.url.path)
        try:
            response = await call_next(request)
        finally:
            clear_request_context("request_id", "path")
        response.headers[REQUEST_ID_HEADER] = rid
        return response


def create_app(settings: Optional[Settings] = None, verifier: Optional[Verifier] = None) -> FastAPI:
    """
    FastAPI factory. The verifier (registry + parsed keys) is built once here
    and shared read-only by every request.
    """
    cfg = settings or get_settings()

    app = FastAPI(title="zkpredicates verifier", version=__version__)
    app.state.settings = cfg
    app.state.verifier = verifier or build_verifier(cfg)

    install_request_id(app)
    install_error_handlers(app)
    app.include_router(router, prefix="")

    log.info("app_created", circuits=app.state.verifier.circuits())
    return app


__all__ = ["create_app", "build_registry", "build_verifier", "install_request_id"]
