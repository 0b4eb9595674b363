import pytest

from zkpredicates.errors import MalformedInput, SetTooLarge
from zkpredicates.types import (
    ProofPackage,
    RangeRequirement,
    SetRequirement,
    VerificationReason,
    VerificationResult,
    parse_requirement,
)


def test_parse_requirement_shapes():
    assert parse_requirement(None) is None
    assert parse_requirement({"min": "18", "max": 65}) == RangeRequirement(18, 65)
    assert parse_requirement({"allowedValues": ["us"]}) == SetRequirement(("us",))
    assert parse_requirement({"allowed_values": ("us", "uk")}).allowed_values == ("us", "uk")


@pytest.mark.parametrize("bad", [
    {"min": 1},
    {"min": 5, "max": 1},
    {"min": -1, "max": 1},
    {"allowedValues": "us"},
    {"allowedValues": []},
    {"allowedValues": ["us", 3]},
    {},
    ["min", "max"],
])
def test_parse_requirement_rejects(bad):
    with pytest.raises(MalformedInput):
        parse_requirement(bad)


def test_set_requirement_limit():
    with pytest.raises(SetTooLarge):
        SetRequirement(tuple(str(i) for i in range(11)))


def test_package_wire_format(age_package):
    wire = age_package.to_json()
    assert b'"circuitName":"range_check"' in wire
    back = ProofPackage.from_json(wire)
    assert back == age_package
    with pytest.raises(MalformedInput):
        ProofPackage.from_json(b'{"circuitName": "x"}')
    with pytest.raises(MalformedInput):
        ProofPackage.from_mapping({"circuitName": "x", "proof": {"pi_a": []}, "publicSignals": []})


def test_result_serialization():
    r = VerificationResult(False, True, False, VerificationReason.REQUIREMENT_MISMATCH, "m", "range_check",
                           ("1", "25", "65"), 1.23456)
    assert not r
    assert r.to_dict() == {
        "valid": False,
        "circuitName": "range_check",
        "cryptographicallyValid": True,
        "requirementSatisfied": False,
        "reason": "REQUIREMENT_MISMATCH",
        "message": "m",
        "publicSignals": ["1", "25", "65"],
        "elapsedMs": 1.235,
    }
