import json

import pytest
import structlog
from typer.testing import CliRunner

from zkpredicates import cli
from zkpredicates.field import encode_string
from zkpredicates.prover import ProofGenerator

from tests import SimulatedBackend

runner = CliRunner()


@pytest.fixture(autouse=True)
def quiet_cli(monkeypatch, artifact_base):
    monkeypatch.setattr(cli, "configure_from_settings", lambda *a, **kw: None)
    monkeypatch.setenv("ZKP_ARTIFACT_BASE", str(artifact_base))
    with structlog.testing.capture_logs() as logs:
        yield logs


def invoke(*args):
    return runner.invoke(cli.app, list(args))


def test_encode_string_and_member():
    r = invoke("encode-string", "us")
    assert r.exit_code == 0, r.output
    assert r.stdout.strip() == encode_string("us")
    r = invoke("encode-member", "  US ")
    assert r.stdout.strip() == encode_string("us")


def test_pad_set():
    r = invoke("pad-set", "us", "uk")
    assert r.exit_code == 0, r.output
    out = json.loads(r.stdout)
    assert len(out) == 10 and out[2:] == ["0"] * 8
    r = invoke("pad-set", *[str(i) for i in range(11)])
    assert r.exit_code == 2
    assert "SET_TOO_LARGE" in r.output


def test_circuits():
    r = invoke("circuits")
    assert r.exit_code == 0, r.output
    assert [c["name"] for c in json.loads(r.stdout)] == ["age_range", "range_check", "set_membership"]


@pytest.mark.slow
def test_verify(tmp_path, age_package, quiet_cli):
    bundle = tmp_path / "proof.json"
    bundle.write_bytes(age_package.to_json())

    r = invoke("verify", str(bundle), "--requirement", '{"min": 25, "max": 65}')
    assert r.exit_code == 0, r.output
    assert json.loads(r.stdout)["valid"] is True
    assert any(e["event"] == "proof_verified" for e in quiet_cli)

    r = invoke("verify", str(bundle), "-r", '{"min": 18, "max": 65}')
    assert r.exit_code == 1
    assert json.loads(r.stdout)["reason"] == "REQUIREMENT_MISMATCH"


def test_verify_needs_a_circuit_name(tmp_path):
    bundle = tmp_path / "proof.json"
    bundle.write_text(json.dumps({"proof": {}, "publicSignals": []}))
    r = invoke("verify", str(bundle))
    assert r.exit_code == 2


def test_verify_rejects_non_object_bundle(tmp_path):
    bundle = tmp_path / "proof.json"
    bundle.write_text(json.dumps([{"circuitName": "range_check"}]))
    r = invoke("verify", str(bundle))
    assert r.exit_code == 2
    assert "JSON object" in r.output


def test_prove(monkeypatch, setups, tmp_path):
    def from_settings(cls, settings, registry, backend=None):
        return cls(registry, SimulatedBackend(setups))

    monkeypatch.setattr(ProofGenerator, "from_settings", classmethod(from_settings))

    r = invoke("prove", "set_membership", "-p", "value=UK", "-P", "set=us,uk,ca")
    assert r.exit_code == 0, r.output
    pkg = json.loads(r.stdout)
    assert pkg["circuitName"] == "set_membership"
    assert pkg["publicSignals"][0] == "1"

    out = tmp_path / "age.json"
    r = invoke("prove", "age_range", "-p", "age=30", "-P", "minAge=25", "-P", "maxAge=65", "-o", str(out))
    assert r.exit_code == 0, r.output
    assert json.loads(out.read_bytes())["publicSignals"] == ["1", "25", "65"]

    r = invoke("prove", "age_range", "-p", "age=17", "-P", "minAge=18", "-P", "maxAge=65")
    assert r.exit_code == 1
    assert json.loads(r.stdout)["claim"] is False


def test_prove_bad_input():
    r = invoke("prove", "range_check", "-p", "value")
    assert r.exit_code == 2
