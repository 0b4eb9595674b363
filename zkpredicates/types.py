"""
zkpredicates.types
==================

Records shared by the registry, generator and verifier.

- `PredicateKind`: closed set of predicate shapes; every consumer matches on it
  exhaustively.
- `CircuitDescriptor`: static description of one compiled predicate circuit.
- `Groth16Proof` / `ProofPackage`: **msgspec** structs for the wire format
  (snarkjs proof layout; camelCase package keys).
- `RangeRequirement` / `SetRequirement`: what a relying party demands.
- `VerificationResult` / `ProvingFailure`: typed negative outcomes.

Conventions
-----------
- Field elements are canonical decimal strings everywhere.
- `ProofPackage` never carries private inputs. Its only channel for values is
  `publicSignals`, whose layout is fixed by the circuit.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import msgspec

from .errors import MalformedInput, SetTooLarge
from .field import SET_SIZE, encode_numeric
from .version import PROOF_FORMAT_VERSION

__all__ = [
    "PredicateKind",
    "CircuitDescriptor",
    "Groth16Proof",
    "ProofPackage",
    "RangeRequirement",
    "SetRequirement",
    "Requirement",
    "parse_requirement",
    "VerificationReason",
    "VerificationResult",
    "ProvingFailure",
    "OfferProofs",
]


# -----------------------------------------------------------------------------
# Circuits
# -----------------------------------------------------------------------------


class PredicateKind(str, Enum):
    RANGE = "range"
    SET_MEMBERSHIP = "set_membership"


@dataclass(frozen=True, slots=True)
class CircuitDescriptor:
    """
    Static description of one predicate circuit.

    Fields:
        name: registry key, e.g. "range_check".
        kind: predicate shape (drives encoding and reconciliation).
        private_inputs: names of witness-only inputs.
        public_inputs: names of public inputs, in circuit order.
        public_signals: names of the public signals in `publicSignals` order
            (outputs first, then public inputs, arrays flattened).
        wasm: reference to the witness-generation program.
        zkey: reference to the proving key.
        verification_key: reference to the snarkjs verification key JSON.
        set_arity: fixed length of set-valued public inputs.
    """

    name: str
    kind: PredicateKind
    private_inputs: Tuple[str, ...]
    public_inputs: Tuple[str, ...]
    public_signals: Tuple[str, ...]
    wasm: str
    zkey: str
    verification_key: str
    set_arity: int = SET_SIZE
    description: str = ""

    @property
    def input_names(self) -> Tuple[str, ...]:
        return self.private_inputs + self.public_inputs

    @property
    def public_signal_count(self) -> int:
        return len(self.public_signals)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind.value,
            "description": self.description,
            "privateInputs": list(self.private_inputs),
            "publicInputs": list(self.public_inputs),
            "publicSignals": list(self.public_signals),
            "setArity": self.set_arity,
        }


# -----------------------------------------------------------------------------
# Wire records (msgspec)
# -----------------------------------------------------------------------------


class Groth16Proof(msgspec.Struct, frozen=True):
    """snarkjs Groth16 proof: three point groups plus protocol/curve tags."""

    pi_a: List[str]
    pi_b: List[List[str]]
    pi_c: List[str]
    protocol: str = "groth16"
    curve: str = "bn128"

    @classmethod
    def from_mapping(cls, obj: Mapping[str, Any]) -> "Groth16Proof":
        """Build from a snarkjs proof object; numbers are coerced to decimal strings."""
        try:
            return cls(
                pi_a=[str(x) for x in obj["pi_a"]],
                pi_b=[[str(x) for x in row] for row in obj["pi_b"]],
                pi_c=[str(x) for x in obj["pi_c"]],
                protocol=str(obj.get("protocol", "groth16")),
                curve=str(obj.get("curve", "bn128")),
            )
        except (KeyError, TypeError) as e:
            raise MalformedInput(f"proof object must contain pi_a, pi_b and pi_c arrays: {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        return msgspec.to_builtins(self)


class ProofPackage(msgspec.Struct, frozen=True, rename="camel"):
    """
    Serializable output of proof generation.

    Wire keys: circuitName, proof, publicSignals, generatedAt (epoch ms),
    formatVersion.
    """

    circuit_name: str
    proof: Groth16Proof
    public_signals: List[str]
    generated_at: int = msgspec.field(default_factory=lambda: int(time.time() * 1000))
    format_version: str = PROOF_FORMAT_VERSION

    def to_dict(self) -> Dict[str, Any]:
        return msgspec.to_builtins(self)

    def to_json(self) -> bytes:
        return msgspec.json.encode(self)

    @classmethod
    def from_json(cls, data: Union[bytes, str]) -> "ProofPackage":
        try:
            return msgspec.json.decode(data, type=cls)
        except (msgspec.ValidationError, msgspec.DecodeError) as e:
            raise MalformedInput(f"invalid proof package: {e}") from e

    @classmethod
    def from_mapping(cls, obj: Mapping[str, Any]) -> "ProofPackage":
        try:
            return msgspec.convert(dict(obj), type=cls)
        except msgspec.ValidationError as e:
            raise MalformedInput(f"invalid proof package: {e}") from e


# -----------------------------------------------------------------------------
# Requirements
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RangeRequirement:
    min: int
    max: int

    def __post_init__(self) -> None:
        lo, hi = int(encode_numeric(self.min)), int(encode_numeric(self.max))
        if lo > hi:
            raise MalformedInput(f"range requirement has min > max ({lo} > {hi})")
        object.__setattr__(self, "min", lo)
        object.__setattr__(self, "max", hi)

    @property
    def kind(self) -> PredicateKind:
        return PredicateKind.RANGE

    def to_dict(self) -> Dict[str, Any]:
        return {"min": self.min, "max": self.max}


@dataclass(frozen=True, slots=True)
class SetRequirement:
    allowed_values: Tuple[str, ...]

    def __post_init__(self) -> None:
        if isinstance(self.allowed_values, str):
            raise MalformedInput("allowedValues must be a list of strings")
        values = tuple(self.allowed_values)
        if not values:
            raise MalformedInput("allowedValues must not be empty")
        if len(values) > SET_SIZE:
            raise SetTooLarge(len(values), SET_SIZE)
        if not all(isinstance(v, str) for v in values):
            raise MalformedInput("allowedValues must contain only strings")
        object.__setattr__(self, "allowed_values", values)

    @property
    def kind(self) -> PredicateKind:
        return PredicateKind.SET_MEMBERSHIP

    def to_dict(self) -> Dict[str, Any]:
        return {"allowedValues": list(self.allowed_values)}


Requirement = Union[RangeRequirement, SetRequirement]


def parse_requirement(obj: Union[Requirement, Mapping[str, Any], None]) -> Optional[Requirement]:
    """
    Accept a requirement instance or one of the wire shapes:

        {"min": 25, "max": 65}
        {"allowedValues": ["us", "uk"]}   (also "allowed_values")
    """
    if obj is None or isinstance(obj, (RangeRequirement, SetRequirement)):
        return obj
    if not isinstance(obj, Mapping):
        raise MalformedInput(f"requirement must be an object, got {type(obj).__name__}")
    if "min" in obj or "max" in obj:
        if "min" not in obj or "max" not in obj:
            raise MalformedInput("range requirement needs both min and max")
        return RangeRequirement(min=obj["min"], max=obj["max"])
    allowed = obj.get("allowedValues", obj.get("allowed_values"))
    if allowed is not None:
        if isinstance(allowed, str) or not isinstance(allowed, Sequence):
            raise MalformedInput("allowedValues must be a list of strings")
        return SetRequirement(allowed_values=tuple(allowed))
    raise MalformedInput("requirement must contain {min, max} or {allowedValues}")


# -----------------------------------------------------------------------------
# Outcomes
# -----------------------------------------------------------------------------


class VerificationReason(str, Enum):
    VERIFIED = "VERIFIED"
    CRYPTOGRAPHIC_INVALID = "CRYPTOGRAPHIC_INVALID"
    REQUIREMENT_MISMATCH = "REQUIREMENT_MISMATCH"
    UNKNOWN_CIRCUIT = "UNKNOWN_CIRCUIT"


@dataclass(frozen=True, slots=True)
class VerificationResult:
    """
    Two-phase verification outcome.

    `requirement_satisfied` is None when Phase 2 did not run (no requirement,
    or Phase 1 already failed).
    """

    valid: bool
    cryptographically_valid: bool
    requirement_satisfied: Optional[bool]
    reason: VerificationReason
    message: str = ""
    circuit_name: str = ""
    public_signals: Tuple[str, ...] = ()
    elapsed_ms: float = 0.0

    def __bool__(self) -> bool:  # convenience: truthiness == valid
        return self.valid

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "circuitName": self.circuit_name,
            "cryptographicallyValid": self.cryptographically_valid,
            "requirementSatisfied": self.requirement_satisfied,
            "reason": self.reason.value,
            "message": self.message,
            "publicSignals": list(self.public_signals),
            "elapsedMs": round(self.elapsed_ms, 3),
        }


@dataclass(frozen=True, slots=True)
class ProvingFailure:
    """The private value does not satisfy the predicate; no proof exists."""

    circuit_name: str
    message: str
    claim: bool = False

    def __bool__(self) -> bool:
        return False

    def to_dict(self) -> Dict[str, Any]:
        return {"circuitName": self.circuit_name, "claim": self.claim, "message": self.message}


@dataclass(frozen=True)
class OfferProofs:
    """Result of multi-attribute generation, keyed by attribute type."""

    packages: Dict[str, ProofPackage] = field(default_factory=dict)
    dropped: Dict[str, ProvingFailure] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "proofs": {k: v.to_dict() for k, v in self.packages.items()},
            "dropped": {k: v.to_dict() for k, v in self.dropped.items()},
        }
