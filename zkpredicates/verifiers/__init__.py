"""
zkpredicates.verifiers
======================

Pure-Python Groth16 verification over BN254.

Verification is a pure function of (verifying key, proof, public inputs) and
never raises for malformed proof material; callers get ``False``.

Usage
-----
>>> from zkpredicates.verifiers import load_vk, verify_groth16
>>> vk = load_vk(vk_json)                 # parse once
>>> verify_groth16(vk, proof_json, ["1", "25", "65"])
True
"""

from __future__ import annotations

from .groth16_bn254 import Proof, VerifyingKey, load_proof, load_vk, verify_groth16

__all__ = ["Proof", "VerifyingKey", "load_proof", "load_vk", "verify_groth16"]
