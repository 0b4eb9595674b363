"""
zkpredicates.prover.generator
=============================

Proof generation: descriptor lookup -> input validation -> canonical encoding
-> artifact loading -> single-threaded Groth16 primitive -> ProofPackage.

Outcomes
--------
- `ProofPackage` when the private value satisfies the predicate.
- `ProvingFailure(claim=False)` when it does not. This is returned, never
  raised, and never retried.
- Faults raise: `CircuitNotFound`, `MalformedInput`, `ArtifactLoadFailure`,
  `ProverError`, and `ProofTimeout` for callers that stop waiting.

Concurrency
-----------
Every proof runs with ``single_thread=True``. On a single-threaded host
(the default) all proofs in the process are serialized; otherwise up to
``max_concurrent_proofs`` independent calls run side by side.

The async API runs the blocking call in an executor. A caller timeout only
abandons the *wait*: the in-flight proof keeps running to completion and
keeps its slot until then. Proofs are bounded by the timeout ceiling, so the
leak is bounded too.
"""

from __future__ import annotations

import asyncio
import functools
import threading
import time
from concurrent.futures import Executor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

from ..artifacts import ArtifactLoader
from ..config import ProverConfig, Settings
from ..errors import ConstraintViolation, MalformedInput, ProofTimeout, ProverError
from ..field import encode_member, encode_numeric, pad_set
from ..logging import get_logger
from ..registry import CircuitRegistry, validate_inputs
from ..types import (
    CircuitDescriptor,
    Groth16Proof,
    OfferProofs,
    PredicateKind,
    ProofPackage,
    ProvingFailure,
    Requirement,
    parse_requirement,
)
from .backend import ProvingBackend, SnarkjsBackend

log = get_logger(__name__)

Outcome = Union[ProofPackage, ProvingFailure]

__all__ = ["ProofRequest", "ProofGenerator", "encode_inputs", "public_inputs_for"]


@dataclass(frozen=True)
class ProofRequest:
    circuit_name: str
    private_inputs: Mapping[str, Any] = field(repr=False)
    public_inputs: Mapping[str, Any] = field(default_factory=dict)


# -----------------------------------------------------------------------------
# Encoding
# -----------------------------------------------------------------------------


def encode_inputs(
    descriptor: CircuitDescriptor,
    private_inputs: Mapping[str, Any],
    public_inputs: Mapping[str, Any],
) -> Dict[str, Union[str, List[str]]]:
    """
    Validate names and encode every input into field-element strings.

    Raises
    ------
    MalformedInput
        Missing or unexpected names, wrong value types, out-of-range numbers.
    SetTooLarge
        More set members than the circuit arity.
    """
    problems = validate_inputs(descriptor, private_inputs, public_inputs)
    if problems:
        raise MalformedInput(f"{descriptor.name}: " + "; ".join(problems))

    encoded: Dict[str, Union[str, List[str]]] = {}
    match descriptor.kind:
        case PredicateKind.RANGE:
            for name in descriptor.input_names:
                value = private_inputs[name] if name in private_inputs else public_inputs[name]
                encoded[name] = encode_numeric(value)
        case PredicateKind.SET_MEMBERSHIP:
            for name in descriptor.private_inputs:
                encoded[name] = encode_member(private_inputs[name])
            for name in descriptor.public_inputs:
                encoded[name] = pad_set(public_inputs[name], descriptor.set_arity)
    return encoded


def public_inputs_for(descriptor: CircuitDescriptor, requirement: Requirement) -> Dict[str, Any]:
    """Public inputs that make a proof reconcile against `requirement`."""
    if requirement.kind is not descriptor.kind:
        raise MalformedInput(
            f"{descriptor.name} is a {descriptor.kind.value} circuit, "
            f"requirement is {requirement.kind.value}"
        )
    match requirement.kind:
        case PredicateKind.RANGE:
            low, high = descriptor.public_inputs
            return {low: requirement.min, high: requirement.max}
        case PredicateKind.SET_MEMBERSHIP:
            return {descriptor.public_inputs[0]: list(requirement.allowed_values)}


# -----------------------------------------------------------------------------
# Generator
# -----------------------------------------------------------------------------


class ProofGenerator:
    def __init__(
        self,
        registry: CircuitRegistry,
        backend: ProvingBackend,
        loader: Optional[ArtifactLoader] = None,
        *,
        config: Optional[ProverConfig] = None,
        executor: Optional[Executor] = None,
        verbose: bool = False,
    ) -> None:
        cfg = config or ProverConfig()
        self.registry = registry
        self.backend = backend
        self.loader = loader or ArtifactLoader(cache=cfg.cache_artifacts)
        self.single_threaded_host = cfg.single_threaded_host
        self.concurrency = cfg.effective_concurrency
        self.timeout = cfg.proof_timeout_seconds
        self.verbose = verbose
        self._executor = executor
        self._slots = threading.BoundedSemaphore(self.concurrency)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        registry: CircuitRegistry,
        backend: Optional[ProvingBackend] = None,
    ) -> "ProofGenerator":
        cfg = settings.prover
        backend = backend or SnarkjsBackend(
            node_binary=cfg.node_binary, snarkjs_module=cfg.snarkjs_module
        )
        loader = ArtifactLoader(timeout=settings.http_timeout_seconds, cache=cfg.cache_artifacts)
        return cls(registry, backend, loader, config=cfg, verbose=settings.log_level == "DEBUG")

    # -- blocking -------------------------------------------------------------

    def generate_blocking(
        self,
        circuit_name: str,
        private_inputs: Mapping[str, Any],
        public_inputs: Mapping[str, Any],
    ) -> Outcome:
        descriptor = self.registry.lookup(circuit_name)
        inputs = encode_inputs(descriptor, private_inputs, public_inputs)
        if self.verbose:
            log.debug("proof_inputs_encoded", circuit=circuit_name,
                      public_inputs={k: inputs[k] for k in descriptor.public_inputs})

        wasm = self.loader.fetch(descriptor.wasm)
        zkey = self.loader.fetch(descriptor.zkey)

        with self._slots:
            t0 = time.perf_counter()
            try:
                proof, signals = self.backend.prove(descriptor, wasm, zkey, inputs, single_thread=True)
            except ConstraintViolation as e:
                log.info("proof_claim_false", circuit=circuit_name,
                         elapsed_ms=round((time.perf_counter() - t0) * 1000, 1))
                return ProvingFailure(circuit_name=circuit_name, message=e.message)
            elapsed_ms = (time.perf_counter() - t0) * 1000

        if len(signals) != descriptor.public_signal_count:
            raise ProverError(
                f"{circuit_name}: backend returned {len(signals)} public signals, "
                f"expected {descriptor.public_signal_count}"
            )
        try:
            groth16 = Groth16Proof.from_mapping(proof)
        except MalformedInput as e:
            raise ProverError(f"{circuit_name}: backend returned a malformed proof ({e.message})") from e

        package = ProofPackage(circuit_name=circuit_name, proof=groth16, public_signals=list(signals))
        log.info("proof_generated", circuit=circuit_name, elapsed_ms=round(elapsed_ms, 1),
                 signals=len(signals))
        if self.verbose:
            log.debug("proof_public_signals", circuit=circuit_name, public_signals=signals)
        return package

    # -- async ----------------------------------------------------------------

    async def generate(
        self,
        circuit_name: str,
        private_inputs: Mapping[str, Any],
        public_inputs: Mapping[str, Any],
        *,
        timeout: Optional[float] = None,
    ) -> Outcome:
        """
        Await a proof. Raises ProofTimeout if it is not ready within `timeout`
        seconds (default: the configured ceiling); the proof itself keeps
        running in the background.
        """
        limit = self.timeout if timeout is None else timeout
        loop = asyncio.get_running_loop()
        fut = loop.run_in_executor(
            self._executor,
            functools.partial(self.generate_blocking, circuit_name, private_inputs, public_inputs),
        )
        try:
            return await asyncio.wait_for(asyncio.shield(fut), timeout=limit)
        except asyncio.TimeoutError:
            fut.add_done_callback(_retrieve)
            log.warning("proof_wait_abandoned", circuit=circuit_name, timeout_s=limit)
            raise ProofTimeout(f"{circuit_name}: no proof after {limit}s") from None

    async def generate_for_requirement(
        self,
        circuit_name: str,
        private_value: Any,
        requirement: Union[Requirement, Mapping[str, Any]],
        *,
        timeout: Optional[float] = None,
    ) -> Outcome:
        descriptor = self.registry.lookup(circuit_name)
        req = parse_requirement(requirement)
        if req is None:
            raise MalformedInput("requirement is required")
        private = {descriptor.private_inputs[0]: private_value}
        return await self.generate(
            circuit_name, private, public_inputs_for(descriptor, req), timeout=timeout
        )

    async def generate_age_proof(
        self, age: int, min_age: int, max_age: int, *, timeout: Optional[float] = None
    ) -> Outcome:
        return await self.generate(
            "age_range", {"age": age}, {"minAge": min_age, "maxAge": max_age}, timeout=timeout
        )

    async def generate_offer(
        self, requests: Mapping[str, ProofRequest], *, timeout: Optional[float] = None
    ) -> OfferProofs:
        """
        Prove several attributes one after another. An attribute whose value
        fails its predicate is dropped; the others still get proofs.
        """
        result = OfferProofs()
        for attribute, req in requests.items():
            outcome = await self.generate(
                req.circuit_name, req.private_inputs, req.public_inputs, timeout=timeout
            )
            if isinstance(outcome, ProvingFailure):
                result.dropped[attribute] = outcome
            else:
                result.packages[attribute] = outcome
        log.info("offer_proofs_generated", proved=sorted(result.packages),
                 dropped=sorted(result.dropped))
        return result


def _retrieve(fut: "asyncio.Future[Any]") -> None:
    # consume the late result so an abandoned failure is logged once
    if fut.cancelled():
        return
    exc = fut.exception()
    if exc is not None:
        log.warning("abandoned_proof_failed", error=str(exc), error_type=type(exc).__name__)
