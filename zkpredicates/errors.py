"""
zkpredicates.errors
===================

Exception taxonomy for proof generation and verification.

Every error carries a stable machine ``code`` (class attribute, overridable per
instance) next to the human ``message``. Callers route on the class or the code.

Only *faults* are raised. Expected negative outcomes are values:

- a false claim during proving is a :class:`zkpredicates.types.ProvingFailure`
  returned by the generator;
- a forged or mismatched proof is a :class:`zkpredicates.types.VerificationResult`
  with ``valid=False``.

Codes
-----
CIRCUIT_NOT_FOUND       unknown circuit name (programming error, not retryable)
ARTIFACT_LOAD_FAILURE   witness program / proving key / verification key unreadable
MALFORMED_INPUT         extra or missing input names, bad value types
SET_TOO_LARGE           more members than the circuit's fixed set arity
REGISTRY_ERROR          invalid registry document
PROVER_ERROR            the proving primitive failed for a non-constraint reason
CONSTRAINT_VIOLATION    no satisfying witness (mapped to ProvingFailure)
PROOF_TIMEOUT           the caller stopped waiting on an in-flight proof
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional


class ZKPredicateError(Exception):
    """Base error for the package."""

    code: str = "ZKP_ERROR"

    def __init__(self, message: str, *, code: Optional[str] = None):
        super().__init__(message)
        if code:
            self.code = code
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message}


class CircuitNotFound(ZKPredicateError):
    code = "CIRCUIT_NOT_FOUND"

    def __init__(self, name: str, available: Iterable[str] = ()):
        avail = ", ".join(sorted(available)) or "<none>"
        super().__init__(f"Circuit not found: {name}. Available: {avail}")
        self.name = name


class ArtifactLoadFailure(ZKPredicateError):
    code = "ARTIFACT_LOAD_FAILURE"

    def __init__(self, ref: str, reason: str):
        super().__init__(f"Failed to load artifact {ref}: {reason}")
        self.ref = ref
        self.reason = reason


class MalformedInput(ZKPredicateError):
    code = "MALFORMED_INPUT"


class SetTooLarge(MalformedInput):
    code = "SET_TOO_LARGE"

    def __init__(self, size: int, limit: int):
        super().__init__(f"Set size exceeds maximum of {limit} elements (got {size})")
        self.size = size
        self.limit = limit


class RegistryError(ZKPredicateError):
    code = "REGISTRY_ERROR"


class ProverError(ZKPredicateError):
    code = "PROVER_ERROR"


class ConstraintViolation(ProverError):
    """Raised by proving backends when the inputs admit no satisfying witness."""

    code = "CONSTRAINT_VIOLATION"


class ProofTimeout(ZKPredicateError):
    code = "PROOF_TIMEOUT"


__all__ = [
    "ZKPredicateError",
    "CircuitNotFound",
    "ArtifactLoadFailure",
    "MalformedInput",
    "SetTooLarge",
    "RegistryError",
    "ProverError",
    "ConstraintViolation",
    "ProofTimeout",
]
