"""
zkpredicates.offers
===================

Validate the set of proofs attached to an offer.

Proofs arrive either keyed by the attribute they speak about::

    {"age": {circuitName, proof, publicSignals}, "location": {...}}

or as a list (optionally wrapped as ``{"proofs": [...]}``)::

    [{circuitName, proof, publicSignals, proofType?}, ...]

The attribute key says WHAT is proven, the circuit says HOW; both feed the
display names used in summaries ("Age (range proof)"). An offer is valid only
if it carries at least one proof and every proof verifies. Requirements may be
supplied per attribute; proofs without one are checked cryptographically only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .errors import MalformedInput
from .logging import get_logger
from .types import VerificationReason, VerificationResult
from .verifier import VerificationItem, Verifier

log = get_logger(__name__)

__all__ = ["OfferValidation", "validate_offer_proofs", "validate_offer_proofs_blocking", "display_name"]

ATTRIBUTE_NAMES = {
    "age": "Age",
    "age_range": "Age",
    "location": "Location",
    "interest": "Interest",
    "interests": "Interests",
    "geo": "Geography",
    "income": "Income",
    "time": "Timestamp",
}

CIRCUIT_KINDS = {
    "range_check": "range proof",
    "age_range": "range proof",
    "set_membership": "set membership",
}

CIRCUIT_NAMES = {
    "range_check": "Range Proof",
    "set_membership": "Set Membership",
    "age_range": "Age",
}


def display_name(circuit_name: str, proof_type: Optional[str] = None) -> str:
    if proof_type:
        label = ATTRIBUTE_NAMES.get(proof_type.lower(), proof_type)
        how = CIRCUIT_KINDS.get(circuit_name.lower())
        return f"{label} ({how})" if how else label
    return CIRCUIT_NAMES.get(circuit_name.lower(), circuit_name)


@dataclass(frozen=True)
class OfferValidation:
    is_valid: bool
    valid_proofs: List[str] = field(default_factory=list)
    invalid_proofs: List[str] = field(default_factory=list)
    summary: str = ""
    details: List[VerificationResult] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isValid": self.is_valid,
            "validProofs": list(self.valid_proofs),
            "invalidProofs": list(self.invalid_proofs),
            "summary": self.summary,
            "details": [d.to_dict() for d in self.details],
        }


# -----------------------------------------------------------------------------
# Normalization
# -----------------------------------------------------------------------------


def _entries(proofs: Any) -> List[Tuple[Optional[str], Any]]:
    """Flatten the accepted shapes into (proof_type, raw_item) pairs."""
    if proofs is None:
        return []
    if isinstance(proofs, Mapping) and isinstance(proofs.get("proofs"), list):
        proofs = proofs["proofs"]
    if isinstance(proofs, list):
        return [(p.get("proofType") if isinstance(p, Mapping) else None, p) for p in proofs]
    if isinstance(proofs, Mapping):
        return [(str(k), v) for k, v in proofs.items()]
    raise MalformedInput("proofs must be a list or an object keyed by attribute")


def _item(proof_type: Optional[str], raw: Any, requirements: Mapping[str, Any]) -> VerificationItem:
    if not isinstance(raw, Mapping):
        raise MalformedInput("proof item must be an object")
    data = dict(raw)
    data.setdefault("circuitName", data.get("circuit") or proof_type)
    if proof_type is not None and proof_type in requirements and "requirement" not in data:
        data["requirement"] = requirements[proof_type]
    return VerificationItem.from_mapping(data)


def _label(proof_type: Optional[str], raw: Any) -> str:
    circuit = ""
    if isinstance(raw, Mapping):
        circuit = str(raw.get("circuitName") or raw.get("circuit") or proof_type or "")
    return display_name(circuit or (proof_type or "unknown"), proof_type)


def _invalid(name: str, message: str) -> VerificationResult:
    return VerificationResult(
        valid=False,
        cryptographically_valid=False,
        requirement_satisfied=None,
        reason=VerificationReason.CRYPTOGRAPHIC_INVALID,
        message=message,
        circuit_name=name,
    )


def _summarize(labels: List[str], results: List[VerificationResult]) -> OfferValidation:
    if not results:
        return OfferValidation(is_valid=False, summary="No ZK proofs provided")

    valid = [lbl for lbl, r in zip(labels, results) if r.valid]
    invalid = [lbl for lbl, r in zip(labels, results) if not r.valid]
    is_valid = not invalid and bool(valid)
    if is_valid:
        plural = "s" if len(valid) > 1 else ""
        summary = f"{len(valid)} valid proof{plural}: {', '.join(valid)} - user meets targeting requirements"
    elif valid:
        summary = (
            f"Partial validation: {len(valid)} valid ({', '.join(valid)}), "
            f"{len(invalid)} invalid ({', '.join(invalid)})"
        )
    else:
        summary = f"All proofs invalid: {', '.join(invalid)} - user does NOT meet targeting requirements"

    log.info("offer_proofs_validated", valid=len(valid), invalid=len(invalid), is_valid=is_valid)
    return OfferValidation(is_valid, valid, invalid, summary, list(results))


def _prepare(proofs: Any, requirements: Optional[Mapping[str, Any]]):
    reqs = requirements or {}
    labels: List[str] = []
    slots: List[Any] = []  # VerificationItem or an already-failed result
    for proof_type, raw in _entries(proofs):
        labels.append(_label(proof_type, raw))
        try:
            slots.append(_item(proof_type, raw, reqs))
        except MalformedInput as e:
            name = raw.get("circuitName", "") if isinstance(raw, Mapping) else ""
            slots.append(_invalid(str(name or ""), e.message))
    return labels, slots


# -----------------------------------------------------------------------------
# Public API
# -----------------------------------------------------------------------------


async def validate_offer_proofs(
    verifier: Verifier,
    proofs: Any,
    requirements: Optional[Mapping[str, Any]] = None,
) -> OfferValidation:
    labels, slots = _prepare(proofs, requirements)
    items = [s for s in slots if isinstance(s, VerificationItem)]
    batch = await verifier.verify_batch(items) if items else None
    verified = iter(batch.results if batch else ())
    results = [next(verified) if isinstance(s, VerificationItem) else s for s in slots]
    return _summarize(labels, results)


def validate_offer_proofs_blocking(
    verifier: Verifier,
    proofs: Any,
    requirements: Optional[Mapping[str, Any]] = None,
) -> OfferValidation:
    labels, slots = _prepare(proofs, requirements)
    results = [verifier.verify_isolated(s) if isinstance(s, VerificationItem) else s for s in slots]
    return _summarize(labels, results)
