"""
zkpredicates test helpers

Exports:
- TEST_ROOT
- TrapdoorSetup: Groth16 setup with a known trapdoor. It emits a snarkjs-style
  verification key and real proofs for chosen public signals, so the pairing
  verifier is exercised end to end without compiled circuits.
- SimulatedBackend: ProvingBackend that evaluates the predicate in Python and
  proves with a TrapdoorSetup; raises ConstraintViolation on a false claim.
- write_artifacts(descriptors, setups) -> None
- claim_signals(descriptor, inputs): public signals for a true claim, else None
- g1_json / g2_json: snarkjs-style point encodings of k*G

Proofs from a trapdoor setup verify under the matching key exactly like
proofs from a real circuit; they say nothing about any witness.
"""

from __future__ import annotations

import json
import random
import threading
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from py_ecc.optimized_bn128 import G1, G2, curve_order, multiply

from zkpredicates.errors import ConstraintViolation
from zkpredicates.field import ZERO
from zkpredicates.types import CircuitDescriptor, PredicateKind
from zkpredicates.verifiers.pairing_bn254 import normalize_g1, normalize_g2

TEST_ROOT: Path = Path(__file__).resolve().parent

R = int(curve_order)


def g1_json(k: int) -> List[str]:
    x, y = normalize_g1(multiply(G1, k))
    return [str(x), str(y), "1"]


def g2_json(k: int) -> List[List[str]]:
    (x0, x1), (y0, y1) = normalize_g2(multiply(G2, k))
    return [[str(x0), str(x1)], [str(y0), str(y1)], ["1", "0"]]


class TrapdoorSetup:
    """
    alpha, beta, gamma, delta and the IC scalars are known, so for any public
    inputs x we can pick a, b and solve for c in

        a*b = alpha*beta + vk_x(x)*gamma + c*delta   (mod r)

    which is the exponent form of the Groth16 pairing equation.
    """

    def __init__(self, n_public: int, seed: int = 0):
        self._rng = random.Random(seed)
        self.n_public = n_public
        self.alpha, self.beta, self.gamma, self.delta = (self._rng.randrange(1, R) for _ in range(4))
        self.ic = [self._rng.randrange(1, R) for _ in range(n_public + 1)]
        self._lock = threading.Lock()
        self._vk: Optional[Dict[str, Any]] = None

    def verification_key(self) -> Dict[str, Any]:
        if self._vk is None:
            self._vk = {
                "protocol": "groth16",
                "curve": "bn128",
                "nPublic": self.n_public,
                "vk_alpha_1": g1_json(self.alpha),
                "vk_beta_2": g2_json(self.beta),
                "vk_gamma_2": g2_json(self.gamma),
                "vk_delta_2": g2_json(self.delta),
                "IC": [g1_json(k) for k in self.ic],
            }
        return self._vk

    def prove(self, public_signals: Sequence[str]) -> Dict[str, Any]:
        if len(public_signals) != self.n_public:
            raise ValueError(f"expected {self.n_public} public signals, got {len(public_signals)}")
        vkx = self.ic[0]
        for i, s in enumerate(public_signals):
            vkx = (vkx + int(s) * self.ic[i + 1]) % R
        with self._lock:
            while True:
                a, b = self._rng.randrange(1, R), self._rng.randrange(1, R)
                c = (a * b - self.alpha * self.beta - vkx * self.gamma) * pow(self.delta, -1, R) % R
                if c:
                    break
        return {
            "pi_a": g1_json(a),
            "pi_b": g2_json(b),
            "pi_c": g1_json(c),
            "protocol": "groth16",
            "curve": "bn128",
        }


def claim_signals(descriptor: CircuitDescriptor, inputs: Mapping[str, Any]) -> Optional[List[str]]:
    """Public signals the circuit would output, or None when the predicate fails."""
    value = inputs[descriptor.private_inputs[0]]
    match descriptor.kind:
        case PredicateKind.RANGE:
            low, high = (inputs[n] for n in descriptor.public_inputs)
            if not int(low) <= int(value) <= int(high):
                return None
            return ["1", str(low), str(high)]
        case PredicateKind.SET_MEMBERSHIP:
            members = list(inputs[descriptor.public_inputs[0]])
            if value == ZERO or value not in members:
                return None
            return ["1", *members]


class SimulatedBackend:
    def __init__(self, setups: Mapping[str, TrapdoorSetup]):
        self.setups = setups
        self.calls = 0
        self.last_inputs: Optional[Dict[str, Any]] = None

    def prove(self, descriptor, wasm, zkey, inputs, *, single_thread):
        assert single_thread is True
        assert wasm and zkey
        self.calls += 1
        self.last_inputs = dict(inputs)
        signals = claim_signals(descriptor, inputs)
        if signals is None:
            raise ConstraintViolation(f"{descriptor.name}: no satisfying witness")
        return self.setups[descriptor.name].prove(signals), signals


def write_artifacts(descriptors: Sequence[CircuitDescriptor], setups: Mapping[str, TrapdoorSetup]) -> None:
    """Write placeholder wasm/zkey bytes and real verification keys where the descriptors point."""
    for d in descriptors:
        for ref, payload in ((d.wasm, b"\0asm-placeholder"), (d.zkey, b"zkey-placeholder")):
            p = Path(ref)
            p.parent.mkdir(parents=True, exist_ok=True)
            p.write_bytes(payload)
        vk = Path(d.verification_key)
        vk.parent.mkdir(parents=True, exist_ok=True)
        vk.write_text(json.dumps(setups[d.name].verification_key()), encoding="utf-8")


__all__ = [
    "TEST_ROOT",
    "TrapdoorSetup",
    "SimulatedBackend",
    "claim_signals",
    "g1_json",
    "g2_json",
    "write_artifacts",
]
