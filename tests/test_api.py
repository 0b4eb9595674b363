import asyncio

import pytest

from zkpredicates.version import __version__


def test_healthz(client):
    r = client.get("/healthz")
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True
    assert body["version"] == __version__
    assert body["circuits"] == ["age_range", "range_check", "set_membership"]
    assert body["uptimeS"] >= 0


def test_circuits_listing(client):
    r = client.get("/circuits")
    assert r.status_code == 200
    names = {c["name"]: c for c in r.json()}
    assert names["set_membership"]["setArity"] == 10
    assert names["range_check"]["publicSignals"] == ["valid", "min", "max"]


def test_describe_endpoint(client):
    r = client.get("/verify-proof")
    assert r.status_code == 200
    assert r.json()["availableCircuits"] == ["age_range", "range_check", "set_membership"]


@pytest.mark.slow
def test_verify_single_with_campaign_requirements(client, age_package):
    payload = {**age_package.to_dict(), "campaignRequirements": {"min": 25, "max": 65},
               "metadata": {"offerId": "o-1"}}
    r = client.post("/verify-proof", json=payload)
    assert r.status_code == 200
    body = r.json()
    assert body["valid"] is True
    assert body["metadata"] == {"offerId": "o-1"}
    assert body["results"][0]["reason"] == "VERIFIED"
    assert "verifiedAt" in body


@pytest.mark.slow
def test_verify_single_mismatch_is_200_invalid(client, age_package):
    payload = {**age_package.to_dict(), "requirement": {"min": 18, "max": 65}}
    r = client.post("/verify-proof", json=payload)
    assert r.status_code == 200
    res = r.json()["results"][0]
    assert res["valid"] is False
    assert res["cryptographicallyValid"] is True
    assert res["requirementSatisfied"] is False
    assert res["reason"] == "REQUIREMENT_MISMATCH"


@pytest.mark.slow
def test_verify_batch(client, age_package, country_package):
    forged = age_package.to_dict()
    forged["publicSignals"] = ["1", "18", "65"]
    r = client.post("/verify-proof", json={"proofs": [country_package.to_dict(), forged]})
    assert r.status_code == 200
    body = r.json()
    assert body["valid"] is False
    assert body["validCount"] == 1
    assert [x["valid"] for x in body["results"]] == [True, False]


def test_unknown_circuit_is_200_invalid(client, age_package):
    payload = {**age_package.to_dict(), "circuitName": "ghost"}
    r = client.post("/verify-proof", json=payload)
    assert r.status_code == 200
    assert r.json()["results"][0]["reason"] == "UNKNOWN_CIRCUIT"


@pytest.mark.parametrize("payload, detail", [
    ({"proof": {"pi_a": [], "pi_b": [], "pi_c": []}, "publicSignals": []}, "circuitName is required"),
    ({"circuitName": "range_check", "proof": {}, "publicSignals": []},
     "proof object must contain pi_a, pi_b, and pi_c arrays"),
    ({"circuitName": "range_check", "proof": {"pi_a": [], "pi_b": [], "pi_c": []}},
     "publicSignals must be an array"),
    ({"proofs": []}, "proofs array must not be empty"),
])
def test_bad_envelopes_are_400(client, payload, detail):
    r = client.post("/verify-proof", json=payload)
    assert r.status_code == 400
    assert r.headers["content-type"].startswith("application/problem+json")
    assert r.json()["detail"] == detail


def test_malformed_requirement_is_400(client, age_package):
    payload = {**age_package.to_dict(), "requirement": {"min": 70, "max": 10}}
    r = client.post("/verify-proof", json=payload)
    assert r.status_code == 400
    assert r.json()["details"]["code"] == "MALFORMED_INPUT"


def test_non_json_body_is_400(client):
    r = client.post("/verify-proof", content=b"not json", headers={"content-type": "application/json"})
    assert r.status_code == 400


def test_oversized_signal_is_200_invalid(client, age_package):
    payload = {**age_package.to_dict(), "publicSignals": ["1", "25", "9" * 5000]}
    r = client.post("/verify-proof", json=payload)
    assert r.status_code == 200
    res = r.json()["results"][0]
    assert res["valid"] is False
    assert res["reason"] == "CRYPTOGRAPHIC_INVALID"


def test_oversized_requirement_bound_is_400(client, age_package):
    payload = {**age_package.to_dict(), "requirement": {"min": "1" * 5000, "max": 65}}
    r = client.post("/verify-proof", json=payload)
    assert r.status_code == 400
    assert r.json()["details"]["code"] == "MALFORMED_INPUT"


def test_single_proof_is_verified_off_the_event_loop(client, verifier, age_package, monkeypatch):
    threads = []
    original = verifier.verify_item

    def verify_item(item):
        try:
            asyncio.get_running_loop()
            threads.append("event-loop")
        except RuntimeError:
            threads.append("worker")
        return original(item)

    monkeypatch.setattr(verifier, "verify_item", verify_item)
    r = client.post("/verify-proof", json={**age_package.to_dict(), "circuitName": "ghost"})
    assert r.status_code == 200
    assert threads == ["worker"]


def test_request_id_is_propagated_or_minted(client):
    r = client.get("/healthz", headers={"X-Request-Id": "req-42"})
    assert r.headers["X-Request-Id"] == "req-42"
    minted = client.get("/healthz").headers["X-Request-Id"]
    assert len(minted) == 32
