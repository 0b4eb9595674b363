import pytest
from pydantic import ValidationError

from zkpredicates.config import PROOF_TIMEOUT_CEILING, ProverConfig, Settings, get_settings


def test_defaults():
    s = Settings()
    assert s.log_level == "INFO"
    assert s.log_format == "json"
    assert s.prover.single_threaded_host is True
    assert s.prover.effective_concurrency == 1
    assert s.prover.proof_timeout_seconds == PROOF_TIMEOUT_CEILING
    assert s.verifier.max_concurrency is None


def test_env_and_nested_groups(monkeypatch):
    monkeypatch.setenv("ZKP_LOG_LEVEL", "debug")
    monkeypatch.setenv("ZKP_ARTIFACT_BASE", "https://cdn.example.org/zk")
    monkeypatch.setenv("ZKP_PROVER__SINGLE_THREADED_HOST", "false")
    monkeypatch.setenv("ZKP_PROVER__MAX_CONCURRENT_PROOFS", "4")
    monkeypatch.setenv("ZKP_VERIFIER__MAX_CONCURRENCY", "8")
    s = get_settings()
    assert s.log_level == "DEBUG"
    assert s.artifact_base == "https://cdn.example.org/zk"
    assert s.prover.effective_concurrency == 4
    assert s.verifier.max_concurrency == 8
    assert get_settings() is s


def test_single_threaded_host_ignores_concurrency():
    assert ProverConfig(max_concurrent_proofs=8).effective_concurrency == 1


@pytest.mark.parametrize("kwargs", [
    {"prover": {"proof_timeout_seconds": PROOF_TIMEOUT_CEILING + 1}},
    {"prover": {"max_concurrent_proofs": 0}},
    {"log_format": "xml"},
    {"port": 0},
])
def test_rejects_bad_values(kwargs):
    with pytest.raises(ValidationError):
        Settings(**kwargs)
