from __future__ import annotations

"""
Configuration loader for zkpredicates.

- Reads environment variables (optionally from `.env`) via pydantic-settings.
- Provides typed sub-configs for the prover and the verifier.
- Exposes a cached `get_settings()` accessor.

Environment variables (prefix ZKP_, nested groups use "__"):
    ZKP_LOG_LEVEL                       (str, default "INFO")
    ZKP_LOG_FORMAT                      ("json" | "console", default "json")
    ZKP_ARTIFACT_BASE                   (path or URL, default "./circuits")
    ZKP_REGISTRY_PATH                   (YAML/JSON registry document, optional)
    ZKP_HTTP_TIMEOUT_SECONDS            (float, default 30)

Prover:
    ZKP_PROVER__NODE_BINARY             (str, default "node")
    ZKP_PROVER__SNARKJS_MODULE          (str, default "snarkjs")
    ZKP_PROVER__SINGLE_THREADED_HOST    (bool, default True)
    ZKP_PROVER__MAX_CONCURRENT_PROOFS   (int, default 1; ignored on single-threaded hosts)
    ZKP_PROVER__PROOF_TIMEOUT_SECONDS   (float, default 60, at most 60)
    ZKP_PROVER__CACHE_ARTIFACTS         (bool, default False)

Verifier:
    ZKP_VERIFIER__MAX_CONCURRENCY       (int, optional; defaults to CPU count)

Server:
    ZKP_HOST / ZKP_PORT
"""

from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Proofs that have not finished after this long are treated as abandoned.
PROOF_TIMEOUT_CEILING = 60.0


# ----------------------------- Sub-configs ---------------------------------- #


class ProverConfig(BaseModel):
    node_binary: str = "node"
    snarkjs_module: str = "snarkjs"
    single_threaded_host: bool = Field(
        True, description="Serialize all proofs in this process (browser-like hosts)."
    )
    max_concurrent_proofs: int = Field(1, ge=1, le=64)
    proof_timeout_seconds: float = Field(PROOF_TIMEOUT_CEILING, gt=0, le=PROOF_TIMEOUT_CEILING)
    cache_artifacts: bool = False

    @property
    def effective_concurrency(self) -> int:
        return 1 if self.single_threaded_host else self.max_concurrent_proofs


class VerifierConfig(BaseModel):
    max_concurrency: Optional[int] = Field(None, ge=1, le=256)


# --------------------------------- Settings ---------------------------------- #


class Settings(BaseSettings):
    log_level: str = Field("INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    log_format: str = Field("json", description="json or console")

    artifact_base: str = Field("./circuits", description="Directory or URL holding circuit artifacts")
    registry_path: Optional[str] = Field(None, description="Optional registry document (YAML/JSON)")
    http_timeout_seconds: float = Field(30.0, gt=0)

    prover: ProverConfig = Field(default_factory=ProverConfig)
    verifier: VerifierConfig = Field(default_factory=VerifierConfig)

    host: str = "127.0.0.1"
    port: int = Field(8787, ge=1, le=65535)

    model_config = SettingsConfigDict(
        env_prefix="ZKP_",
        env_file=".env",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper(cls, v):
        return str(v).upper() if v is not None else "INFO"

    @field_validator("log_format", mode="before")
    @classmethod
    def _fmt(cls, v):
        v = str(v or "json").lower()
        if v not in ("json", "console"):
            raise ValueError("log_format must be 'json' or 'console'")
        return v


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


__all__ = [
    "PROOF_TIMEOUT_CEILING",
    "ProverConfig",
    "VerifierConfig",
    "Settings",
    "get_settings",
]
