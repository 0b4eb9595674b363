from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterator

import pytest

from zkpredicates.artifacts import ArtifactLoader
from zkpredicates.config import ProverConfig, Settings, get_settings
from zkpredicates.prover import ProofGenerator
from zkpredicates.registry import CircuitRegistry, default_descriptors, default_registry
from zkpredicates.verifier import Verifier

from tests import SimulatedBackend, TrapdoorSetup, write_artifacts

# Stable seeds so every session sees the same keys.
SEEDS = {"age_range": 11, "range_check": 23, "set_membership": 37}


# ----------------------------
# Artifacts & keys
# ----------------------------
@pytest.fixture(scope="session")
def setups() -> Dict[str, TrapdoorSetup]:
    return {
        d.name: TrapdoorSetup(d.public_signal_count, seed=SEEDS[d.name])
        for d in default_descriptors("unused")
    }


@pytest.fixture(scope="session")
def artifact_base(tmp_path_factory: pytest.TempPathFactory, setups) -> Path:
    """Directory laid out like a circuits/ build: wasm, zkey and verification keys."""
    base = tmp_path_factory.mktemp("circuits")
    write_artifacts(default_descriptors(base), setups)
    return base


@pytest.fixture(scope="session")
def registry(artifact_base: Path) -> CircuitRegistry:
    return default_registry(artifact_base)


@pytest.fixture(scope="session")
def verifier(registry: CircuitRegistry) -> Verifier:
    return Verifier.from_registry(registry, ArtifactLoader(), max_concurrency=4)


# ----------------------------
# Prover
# ----------------------------
@pytest.fixture
def backend(setups) -> SimulatedBackend:
    return SimulatedBackend(setups)


@pytest.fixture
def generator(registry: CircuitRegistry, backend: SimulatedBackend) -> ProofGenerator:
    return ProofGenerator(registry, backend, config=ProverConfig(proof_timeout_seconds=30))


@pytest.fixture(scope="session")
def session_generator(registry: CircuitRegistry, setups) -> ProofGenerator:
    return ProofGenerator(registry, SimulatedBackend(setups))


@pytest.fixture(scope="session")
def age_package(session_generator: ProofGenerator):
    """A user aged 30 proving 25 <= age <= 65 (range_check)."""
    return session_generator.generate_blocking("range_check", {"value": 30}, {"min": 25, "max": 65})


@pytest.fixture(scope="session")
def country_package(session_generator: ProofGenerator):
    """A user in "us" proving membership of [us, uk, ca]."""
    return session_generator.generate_blocking(
        "set_membership", {"value": "us"}, {"set": ["us", "uk", "ca"]}
    )


# ----------------------------
# Settings / app
# ----------------------------
@pytest.fixture(autouse=True)
def _clean_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep ZKP_* from the outer environment out of tests; reset the settings cache."""
    import os

    for key in list(os.environ):
        if key.startswith("ZKP_"):
            monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings(artifact_base: Path) -> Settings:
    return Settings(artifact_base=str(artifact_base), log_format="console")


@pytest.fixture
def client(settings: Settings, verifier: Verifier):
    from fastapi.testclient import TestClient

    from zkpredicates.api import create_app

    app = create_app(settings, verifier=verifier)
    with TestClient(app) as c:
        yield c
