"""
zkpredicates.prover
===================

Proof generation around an external single-threaded Groth16 primitive.

- `ProofGenerator`: validation, encoding, artifact loading, serialization.
- `ProvingBackend`: protocol for the primitive; `SnarkjsBackend` drives
  snarkjs through Node.js.
"""

from __future__ import annotations

from .backend import ProvingBackend, SnarkjsBackend
from .generator import ProofGenerator, ProofRequest, encode_inputs, public_inputs_for

__all__ = [
    "ProofGenerator",
    "ProofRequest",
    "ProvingBackend",
    "SnarkjsBackend",
    "encode_inputs",
    "public_inputs_for",
]
