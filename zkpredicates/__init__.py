"""
zkpredicates
============

Zero-knowledge proofs of predicates over private attributes ("age is in
[25, 65]", "country is one of {us, uk, ca}") with two-phase verification:
the Groth16 proof must check out, and its public signals must encode exactly
what the relying party asked for.

Layout
------
- :mod:`zkpredicates.field`     canonical field encoding (numbers, strings, sets)
- :mod:`zkpredicates.registry`  immutable circuit registry
- :mod:`zkpredicates.prover`    proof generation (snarkjs backend)
- :mod:`zkpredicates.verifier`  verification + requirement reconciliation
- :mod:`zkpredicates.offers`    multi-attribute offer validation
- :mod:`zkpredicates.api`       FastAPI verification service
"""

from __future__ import annotations

from .errors import (
    ArtifactLoadFailure,
    CircuitNotFound,
    ConstraintViolation,
    MalformedInput,
    ProofTimeout,
    ProverError,
    RegistryError,
    SetTooLarge,
    ZKPredicateError,
)
from .field import FIELD_MODULUS, SET_SIZE, encode_member, encode_numeric, encode_string, pad_set
from .registry import CircuitRegistry, default_registry, load_registry
from .types import (
    CircuitDescriptor,
    PredicateKind,
    ProofPackage,
    ProvingFailure,
    RangeRequirement,
    SetRequirement,
    VerificationReason,
    VerificationResult,
    parse_requirement,
)
from .verifier import BatchResult, VerificationItem, Verifier, all_valid
from .version import __version__

__all__ = [
    "__version__",
    # field
    "FIELD_MODULUS",
    "SET_SIZE",
    "encode_numeric",
    "encode_string",
    "encode_member",
    "pad_set",
    # registry
    "CircuitRegistry",
    "default_registry",
    "load_registry",
    # records
    "CircuitDescriptor",
    "PredicateKind",
    "ProofPackage",
    "ProvingFailure",
    "RangeRequirement",
    "SetRequirement",
    "VerificationReason",
    "VerificationResult",
    "parse_requirement",
    # verification
    "Verifier",
    "VerificationItem",
    "BatchResult",
    "all_valid",
    # errors
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
