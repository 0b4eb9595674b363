"""
zkpredicates.verifier
=====================

Two-phase verification of predicate proofs.

Phase 1 (cryptographic)
    Shape checks on the proof and the public signals, then the Groth16
    pairing equation against the circuit's verifying key. Any malformed
    input fails closed. Failures are logged at WARNING as forged/corrupted.

Phase 2 (reconciliation, only when a requirement is given)
    The public signals must encode exactly the requirement, see
    :mod:`zkpredicates.reconcile`. Failures are logged at INFO as a sound
    proof of the wrong claim.

``valid = phase1 and (no requirement or phase2)``

The verifier holds no mutable state: the registry and the parsed verifying
keys are read-only after construction, so one instance serves concurrent
callers. Batches run concurrently, bounded by a semaphore, and items never
affect each other.
"""

from __future__ import annotations

import asyncio
import os
import time
from concurrent.futures import Executor
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .artifacts import ArtifactLoader
from .errors import ArtifactLoadFailure, MalformedInput, ZKPredicateError
from .field import is_field_element
from .logging import get_logger
from .reconcile import reconcile
from .registry import CircuitRegistry
from .types import (
    CircuitDescriptor,
    Groth16Proof,
    ProofPackage,
    Requirement,
    VerificationReason,
    VerificationResult,
    parse_requirement,
)
from .verifiers import VerifyingKey, load_vk, verify_groth16

log = get_logger(__name__)

RequirementLike = Union[Requirement, Mapping[str, Any], None]

__all__ = ["VerificationItem", "BatchResult", "Verifier", "all_valid"]


# -----------------------------------------------------------------------------
# Request records
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class VerificationItem:
    circuit_name: str
    proof: Any
    public_signals: Any
    requirement: RequirementLike = None

    @classmethod
    def from_mapping(cls, obj: Mapping[str, Any]) -> "VerificationItem":
        """
        Accept the wire shape ``{circuitName, proof, publicSignals,
        requirement | campaignRequirements}``. Only the envelope is checked
        here; proof contents are judged by the verifier.
        """
        if not isinstance(obj, Mapping):
            raise MalformedInput("proof item must be an object")
        name = obj.get("circuitName", obj.get("circuit_name"))
        if not name or not isinstance(name, str):
            raise MalformedInput("circuitName is required")
        proof = obj.get("proof")
        if not isinstance(proof, Mapping) or not all(
            isinstance(proof.get(k), list) for k in ("pi_a", "pi_b", "pi_c")
        ):
            raise MalformedInput("proof object must contain pi_a, pi_b, and pi_c arrays")
        signals = obj.get("publicSignals", obj.get("public_signals"))
        if not isinstance(signals, list):
            raise MalformedInput("publicSignals must be an array")
        req = obj.get("requirement", obj.get("campaignRequirements"))
        return cls(circuit_name=name, proof=dict(proof), public_signals=signals, requirement=req)

    @classmethod
    def from_package(cls, package: ProofPackage, requirement: RequirementLike = None) -> "VerificationItem":
        return cls(package.circuit_name, package.proof.to_dict(), list(package.public_signals), requirement)


@dataclass(frozen=True)
class BatchResult:
    results: Tuple[VerificationResult, ...]

    @property
    def all_valid(self) -> bool:
        return all_valid(self.results)

    @property
    def valid_count(self) -> int:
        return sum(1 for r in self.results if r.valid)

    def accepts(self, min_valid: Optional[int] = None) -> bool:
        """All-or-nothing by default; with `min_valid`, partial acceptance."""
        if min_valid is None:
            return self.all_valid
        return self.valid_count >= min_valid

    def __len__(self) -> int:
        return len(self.results)

    def __iter__(self):
        return iter(self.results)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.all_valid,
            "validCount": self.valid_count,
            "total": len(self.results),
            "results": [r.to_dict() for r in self.results],
        }


def all_valid(results: Iterable[VerificationResult]) -> bool:
    """True iff there is at least one result and every result is valid."""
    results = list(results)
    return bool(results) and all(r.valid for r in results)


# -----------------------------------------------------------------------------
# Shape checks
# -----------------------------------------------------------------------------


def _check_signals(descriptor: CircuitDescriptor, public_signals: Any) -> Tuple[Optional[List[str]], str]:
    if not isinstance(public_signals, (list, tuple)):
        return None, "publicSignals must be an array"
    if len(public_signals) != descriptor.public_signal_count:
        return None, (
            f"{descriptor.name} exposes {descriptor.public_signal_count} public signals, "
            f"got {len(public_signals)}"
        )
    out: List[str] = []
    for i, s in enumerate(public_signals):
        if isinstance(s, int) and not isinstance(s, bool):
            s = str(s)
        if not is_field_element(s):
            return None, f"public signal {i} is not a canonical field element"
        out.append(s)
    return out, ""


def _check_proof(proof: Any) -> Tuple[Optional[Dict[str, Any]], str]:
    if isinstance(proof, Groth16Proof):
        proof = proof.to_dict()
    if not isinstance(proof, Mapping):
        return None, "proof must be an object"
    for k in ("pi_a", "pi_b", "pi_c"):
        if not isinstance(proof.get(k), (list, tuple)):
            return None, "proof object must contain pi_a, pi_b, and pi_c arrays"
    if proof.get("protocol", "groth16") != "groth16":
        return None, f"unsupported protocol {proof.get('protocol')!r}"
    if proof.get("curve", "bn128") not in ("bn128", "bn254"):
        return None, f"unsupported curve {proof.get('curve')!r}"
    return dict(proof), ""


# -----------------------------------------------------------------------------
# Verifier
# -----------------------------------------------------------------------------


class Verifier:
    def __init__(
        self,
        registry: CircuitRegistry,
        keys: Mapping[str, VerifyingKey],
        *,
        max_concurrency: Optional[int] = None,
    ) -> None:
        self.registry = registry
        self._keys: Mapping[str, VerifyingKey] = MappingProxyType(dict(keys))
        self.max_concurrency = max_concurrency

    @classmethod
    def from_registry(
        cls,
        registry: CircuitRegistry,
        loader: Optional[ArtifactLoader] = None,
        *,
        max_concurrency: Optional[int] = None,
    ) -> "Verifier":
        """
        Load and parse every circuit's verification key once.

        Raises
        ------
        ArtifactLoadFailure
            If a key is unreadable, malformed, or sized for a different
            number of public signals than the descriptor declares.
        """
        loader = loader or ArtifactLoader()
        keys: Dict[str, VerifyingKey] = {}
        for d in registry:
            raw = loader.load_json(d.verification_key)
            try:
                vk = load_vk(raw)
            except (ValueError, TypeError, AttributeError) as e:
                raise ArtifactLoadFailure(d.verification_key, f"invalid verification key: {e}") from e
            if vk.n_public != d.public_signal_count:
                raise ArtifactLoadFailure(
                    d.verification_key,
                    f"key has {vk.n_public} public inputs, {d.name} declares {d.public_signal_count}",
                )
            keys[d.name] = vk
        log.info("verification_keys_loaded", circuits=sorted(keys))
        return cls(registry, keys, max_concurrency=max_concurrency)

    def circuits(self) -> List[str]:
        return sorted(self._keys)

    # -- single ---------------------------------------------------------------

    def verify(
        self,
        circuit_name: str,
        proof: Any,
        public_signals: Any,
        requirement: RequirementLike = None,
    ) -> VerificationResult:
        """
        Verify one proof and, if given, reconcile it against `requirement`.

        Raises
        ------
        MalformedInput
            Only for a malformed `requirement` (the relying party's own input).
            Malformed proofs and signals are reported as invalid results.
        """
        t0 = time.perf_counter()
        req = parse_requirement(requirement)

        def done(reason: VerificationReason, message: str, *, crypto: bool = False,
                 satisfied: Optional[bool] = None, signals: Sequence[str] = ()) -> VerificationResult:
            valid = crypto and satisfied is not False
            return VerificationResult(
                valid=valid,
                cryptographically_valid=crypto,
                requirement_satisfied=satisfied,
                reason=reason,
                message=message,
                circuit_name=circuit_name if isinstance(circuit_name, str) else "",
                public_signals=tuple(signals),
                elapsed_ms=(time.perf_counter() - t0) * 1000,
            )

        descriptor = self.registry.get(circuit_name) if isinstance(circuit_name, str) else None
        key = self._keys.get(circuit_name) if descriptor is not None else None
        if descriptor is None or key is None:
            log.warning("proof_rejected", audit="unknown_circuit", circuit=str(circuit_name))
            return done(VerificationReason.UNKNOWN_CIRCUIT, f"Unknown circuit: {circuit_name}")

        # Phase 1
        signals, problem = _check_signals(descriptor, public_signals)
        proof_obj, proof_problem = _check_proof(proof) if signals is not None else (None, "")
        problem = problem or proof_problem
        if problem:
            log.warning("proof_rejected", audit="forged_or_corrupted", circuit=circuit_name, detail=problem)
            return done(VerificationReason.CRYPTOGRAPHIC_INVALID, problem)
        if not verify_groth16(key, proof_obj, signals):
            log.warning("proof_rejected", audit="forged_or_corrupted", circuit=circuit_name,
                        detail="pairing check failed")
            return done(VerificationReason.CRYPTOGRAPHIC_INVALID, "Proof verification failed",
                        signals=signals)

        # Phase 2
        if req is None:
            log.info("proof_verified", circuit=circuit_name, requirement=False)
            return done(VerificationReason.VERIFIED, "Proof verified", crypto=True, signals=signals)

        satisfied, message = reconcile(descriptor, signals, req)
        if not satisfied:
            log.info("requirement_mismatch", audit="wrong_claim", circuit=circuit_name, detail=message)
            return done(VerificationReason.REQUIREMENT_MISMATCH, message, crypto=True,
                        satisfied=False, signals=signals)

        log.info("proof_verified", circuit=circuit_name, requirement=True)
        return done(VerificationReason.VERIFIED, message, crypto=True, satisfied=True, signals=signals)

    def verify_package(self, package: ProofPackage, requirement: RequirementLike = None) -> VerificationResult:
        return self.verify(package.circuit_name, package.proof, list(package.public_signals), requirement)

    def verify_item(self, item: Union[VerificationItem, Mapping[str, Any]]) -> VerificationResult:
        if not isinstance(item, VerificationItem):
            item = VerificationItem.from_mapping(item)
        return self.verify(item.circuit_name, item.proof, item.public_signals, item.requirement)

    # -- batch ----------------------------------------------------------------

    def verify_batch_blocking(self, items: Sequence[Union[VerificationItem, Mapping[str, Any]]]) -> BatchResult:
        return BatchResult(tuple(self.verify_isolated(item) for item in items))

    async def verify_batch(
        self,
        items: Sequence[Union[VerificationItem, Mapping[str, Any]]],
        *,
        max_concurrency: Optional[int] = None,
        executor: Optional[Executor] = None,
    ) -> BatchResult:
        """
        Verify items concurrently (bounded) and return results in input order.
        A failing item yields its own invalid result and never aborts the batch.
        """
        limit = max_concurrency or self.max_concurrency or os.cpu_count() or 4
        sem = asyncio.Semaphore(limit)
        loop = asyncio.get_running_loop()

        async def one(item: Any) -> VerificationResult:
            async with sem:
                return await loop.run_in_executor(executor, self.verify_isolated, item)

        results = await asyncio.gather(*(one(i) for i in items))
        batch = BatchResult(tuple(results))
        log.info("batch_verified", total=len(batch), valid=batch.valid_count, concurrency=limit)
        return batch

    def verify_isolated(self, item: Any) -> VerificationResult:
        """verify_item, with package errors turned into an invalid result."""
        try:
            return self.verify_item(item)
        except ZKPredicateError as e:
            name = item.get("circuitName", "") if isinstance(item, Mapping) else getattr(item, "circuit_name", "")
            log.warning("proof_rejected", audit="malformed_item", circuit=str(name), detail=e.message)
            return VerificationResult(
                valid=False,
                cryptographically_valid=False,
                requirement_satisfied=None,
                reason=VerificationReason.CRYPTOGRAPHIC_INVALID,
                message=e.message,
                circuit_name=name if isinstance(name, str) else "",
            )
