import pytest

from zkpredicates.offers import display_name, validate_offer_proofs, validate_offer_proofs_blocking

pytestmark = pytest.mark.slow


def test_display_names():
    assert display_name("range_check", "age") == "Age (range proof)"
    assert display_name("set_membership", "location") == "Location (set membership)"
    assert display_name("set_membership") == "Set Membership"
    assert display_name("custom_circuit") == "custom_circuit"


async def test_keyed_offer_all_valid(verifier, age_package, country_package):
    proofs = {"age": age_package.to_dict(), "location": country_package.to_dict()}
    out = await validate_offer_proofs(
        verifier, proofs, {"age": {"min": 25, "max": 65}, "location": {"allowedValues": ["us", "uk", "ca"]}}
    )
    assert out.is_valid is True
    assert out.valid_proofs == ["Age (range proof)", "Location (set membership)"]
    assert out.summary.startswith("2 valid proofs: Age (range proof), Location (set membership)")


async def test_list_offer_partial(verifier, age_package, country_package):
    location = country_package.to_dict()
    location["proofType"] = "location"
    proofs = {"proofs": [location, {"circuitName": "range_check", "proofType": "age"}]}
    out = await validate_offer_proofs(verifier, proofs)
    assert out.is_valid is False
    assert out.valid_proofs == ["Location (set membership)"]
    assert out.invalid_proofs == ["Age (range proof)"]
    assert out.summary.startswith("Partial validation: 1 valid")
    assert out.to_dict()["details"][1]["valid"] is False


async def test_requirement_mismatch_invalidates_offer(verifier, age_package):
    out = await validate_offer_proofs(verifier, {"age": age_package.to_dict()}, {"age": {"min": 18, "max": 65}})
    assert out.is_valid is False
    assert out.summary.startswith("All proofs invalid: Age (range proof)")


@pytest.mark.parametrize("proofs", [None, [], {}, {"proofs": []}])
def test_empty_offer_is_not_valid(verifier, proofs):
    out = validate_offer_proofs_blocking(verifier, proofs)
    assert out.is_valid is False
    assert out.summary == "No ZK proofs provided"
