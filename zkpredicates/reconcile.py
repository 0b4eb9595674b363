"""
zkpredicates.reconcile
======================

Phase 2 of verification: does a cryptographically sound proof attest to the
claim the relying party actually requires?

Expected public values are re-derived with the same encoder the prover used
and compared as exact strings, position by position:

RANGE            signals = [valid, min, max]
                 valid == "1", min == encode_numeric(req.min), max == encode_numeric(req.max)
SET_MEMBERSHIP   signals = [isMember, set[0], ..., set[arity-1]]
                 isMember == "1", set[...] == pad_set(req.allowed_values)

Set order matters: ["us", "uk"] and ["uk", "us"] are different requirements.
"""

from __future__ import annotations

from typing import Optional, Sequence, Tuple

from .field import encode_numeric, pad_set
from .types import CircuitDescriptor, PredicateKind, Requirement

__all__ = ["reconcile", "range_bounds", "CLAIM_TRUE"]

# Value of the circuit's output flag when the predicate holds.
CLAIM_TRUE = "1"


def reconcile(
    descriptor: CircuitDescriptor, public_signals: Sequence[str], requirement: Requirement
) -> Tuple[bool, str]:
    """Return (satisfied, message). `public_signals` must already be shape-checked."""
    if requirement.kind is not descriptor.kind:
        return False, (
            f"Requirement kind {requirement.kind.value} does not apply to "
            f"{descriptor.kind.value} circuit {descriptor.name}"
        )
    if public_signals[0] != CLAIM_TRUE:
        return False, "Proof does not assert the predicate (output flag is not 1)"

    match descriptor.kind:
        case PredicateKind.RANGE:
            expected = [encode_numeric(requirement.min), encode_numeric(requirement.max)]
            got = list(public_signals[1:3])
            if got != expected:
                return False, (
                    "Public signals don't match campaign requirements. "
                    f"Expected [{expected[0]}, {expected[1]}], got [{got[0]}, {got[1]}]"
                )
            return True, f"Value proven within [{expected[0]}, {expected[1]}]"
        case PredicateKind.SET_MEMBERSHIP:
            expected = pad_set(requirement.allowed_values, descriptor.set_arity)
            if list(public_signals[1 : 1 + descriptor.set_arity]) != expected:
                return False, "Public set does not match campaign requirements"
            return True, f"Value proven to be one of {len(requirement.allowed_values)} allowed values"


def range_bounds(descriptor: CircuitDescriptor, public_signals: Sequence[str]) -> Optional[Tuple[int, int]]:
    """The [min, max] a range proof discloses, or None for other kinds."""
    if descriptor.kind is not PredicateKind.RANGE or len(public_signals) < 3:
        return None
    return int(public_signals[1]), int(public_signals[2])
