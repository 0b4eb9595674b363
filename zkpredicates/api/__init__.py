"""HTTP verification service (FastAPI)."""

from __future__ import annotations

from .app import build_registry, build_verifier, create_app

__all__ = ["create_app", "build_registry", "build_verifier"]
