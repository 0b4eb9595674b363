"""
zkpredicates.verifiers.groth16_bn254
====================================

Groth16 verifier for BN254 (altbn128), compatible with the `snarkjs` JSON
layout.

Verification equation
---------------------
    e(A, B) == e(alpha1, beta2) * e(VK_x, gamma2) * e(C, delta2)

implemented as a product check in GT:
    e(A, B) * e(-alpha1, beta2) * e(-VK_x, gamma2) * e(-C, delta2) == 1

JSON compatibility (snarkjs)
----------------------------
- Verifying key:
  {
    "protocol": "groth16", "curve": "bn128", "nPublic": n,
    "vk_alpha_1": [ax, ay, "1"],
    "vk_beta_2":  [[bx0, bx1], [by0, by1], ["1", "0"]],
    "vk_gamma_2": ..., "vk_delta_2": ...,
    "IC": [[ic0x, ic0y, "1"], ...]          # length = 1 + n
  }

- Proof:
  {
    "pi_a": [ax, ay, "1"],
    "pi_b": [[bx0, bx1], [by0, by1], ["1", "0"]],
    "pi_c": [cx, cy, "1"],
    "protocol": "groth16", "curve": "bn128"
  }

Coordinates are canonical decimal strings (ints are tolerated). The optional
third coordinate is the projective Z and must be 1. G2 coordinates are Fq2
elements c0 + c1 * i encoded as [c0, c1].

Parsing is strict: every coordinate must be a canonical base-field element,
points must be on their curve, and B must lie in the G2 subgroup. Public
inputs must already be reduced (0 <= x < r); nothing is reduced silently.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, List, Mapping, Sequence, Tuple, Union

from py_ecc.optimized_bn128 import FQ, FQ2, add, field_modulus, multiply, neg

from .pairing_bn254 import check_pairing_product, curve_order, in_g2_subgroup, is_inf, is_on_curve_g1, is_on_curve_g2

G1Point = Any
G2Point = Any

_FR = curve_order()
_FQ = int(field_modulus)

_DEC_RE = re.compile(r"^(0|[1-9][0-9]*)$")
_FQ_DIGITS = len(str(_FQ))

__all__ = [
    "VerifyingKey",
    "Proof",
    "load_vk",
    "load_proof",
    "verify_groth16",
]


# ---------------------------
# Coordinate parsing
# ---------------------------


def _coord(z: Union[int, str]) -> int:
    """Parse one base-field coordinate; raise ValueError unless canonical."""
    if isinstance(z, bool):
        raise ValueError("boolean is not a coordinate")
    if isinstance(z, int):
        v = z
    elif isinstance(z, str) and len(z) <= _FQ_DIGITS and _DEC_RE.match(z):
        v = int(z)
    else:
        raise ValueError(f"invalid coordinate {z!r:.40}")
    if not 0 <= v < _FQ:
        raise ValueError("coordinate out of field range")
    return v


def _g1(pt: Sequence[Any]) -> G1Point:
    if not isinstance(pt, (list, tuple)) or len(pt) not in (2, 3):
        raise ValueError("G1 point must be [x, y] or [x, y, 1]")
    if len(pt) == 3 and _coord(pt[2]) != 1:
        raise ValueError("G1 point must be affine (z == 1)")
    x, y = _coord(pt[0]), _coord(pt[1])
    if x == 0 and y == 0:
        return (FQ(1), FQ(1), FQ(0))  # infinity convention [0, 0]
    return (FQ(x), FQ(y), FQ(1))


def _fq2(pair: Sequence[Any]) -> Tuple[int, int]:
    if not isinstance(pair, (list, tuple)) or len(pair) != 2:
        raise ValueError("Fq2 element must be [c0, c1]")
    return _coord(pair[0]), _coord(pair[1])


def _g2(pt: Sequence[Any]) -> G2Point:
    if not isinstance(pt, (list, tuple)) or len(pt) not in (2, 3):
        raise ValueError("G2 point must be [[x0, x1], [y0, y1]] (+ optional [1, 0])")
    if len(pt) == 3 and _fq2(pt[2]) != (1, 0):
        raise ValueError("G2 point must be affine (z == 1)")
    x0, x1 = _fq2(pt[0])
    y0, y1 = _fq2(pt[1])
    if x0 == x1 == y0 == y1 == 0:
        return (FQ2([1, 0]), FQ2([1, 0]), FQ2([0, 0]))
    return (FQ2([x0, x1]), FQ2([y0, y1]), FQ2([1, 0]))


# ---------------------------
# Data classes
# ---------------------------


@dataclass(frozen=True)
class VerifyingKey:
    alpha1: G1Point
    beta2: G2Point
    gamma2: G2Point
    delta2: G2Point
    IC: Tuple[G1Point, ...]  # (IC0, IC1, ..., ICn)

    @property
    def n_public(self) -> int:
        return len(self.IC) - 1


@dataclass(frozen=True)
class Proof:
    A: G1Point
    B: G2Point
    C: G1Point


# ---------------------------
# Loaders (snarkjs JSON)
# ---------------------------


def load_vk(vk_json: Mapping[str, Any]) -> VerifyingKey:
    """
    Parse a snarkjs verifying key.

    Raises
    ------
    ValueError
        On missing fields, wrong protocol/curve tags, or off-curve points.
    """
    if vk_json.get("protocol", "groth16") != "groth16":
        raise ValueError(f"unsupported protocol {vk_json.get('protocol')!r}")
    if vk_json.get("curve", "bn128") not in ("bn128", "bn254"):
        raise ValueError(f"unsupported curve {vk_json.get('curve')!r}")
    try:
        alpha1 = _g1(vk_json["vk_alpha_1"])
        beta2 = _g2(vk_json["vk_beta_2"])
        gamma2 = _g2(vk_json["vk_gamma_2"])
        delta2 = _g2(vk_json["vk_delta_2"])
        ic_pts = tuple(_g1(p) for p in vk_json["IC"])
    except KeyError as e:
        raise ValueError(f"verifying key missing field {e}") from e

    if not (is_on_curve_g1(alpha1) and all(is_on_curve_g1(p) for p in ic_pts)):
        raise ValueError("VK G1 points are not on curve")
    if not all(is_on_curve_g2(q) for q in (beta2, gamma2, delta2)):
        raise ValueError("VK G2 points are not on curve")
    if not ic_pts:
        raise ValueError("VK has empty IC")
    n = vk_json.get("nPublic")
    if n is not None and int(n) != len(ic_pts) - 1:
        raise ValueError(f"nPublic {n} disagrees with IC length {len(ic_pts)}")

    return VerifyingKey(alpha1=alpha1, beta2=beta2, gamma2=gamma2, delta2=delta2, IC=ic_pts)


def load_proof(proof_json: Mapping[str, Any]) -> Proof:
    """
    Parse a snarkjs proof object.

    Raises
    ------
    ValueError
        On malformed coordinates, points at infinity, off-curve points, or a B
        outside the G2 subgroup.
    """
    if proof_json.get("protocol", "groth16") != "groth16":
        raise ValueError(f"unsupported protocol {proof_json.get('protocol')!r}")
    if proof_json.get("curve", "bn128") not in ("bn128", "bn254"):
        raise ValueError(f"unsupported curve {proof_json.get('curve')!r}")
    try:
        A = _g1(proof_json["pi_a"])
        B = _g2(proof_json["pi_b"])
        C = _g1(proof_json["pi_c"])
    except KeyError as e:
        raise ValueError(f"proof missing field {e}") from e

    if is_inf(A) or is_inf(B) or is_inf(C):
        raise ValueError("proof points must not be the point at infinity")
    if not (is_on_curve_g1(A) and is_on_curve_g2(B) and is_on_curve_g1(C)):
        raise ValueError("proof points are not on curve")
    if not in_g2_subgroup(B):
        raise ValueError("pi_b is not in the G2 subgroup")
    return Proof(A=A, B=B, C=C)


# ---------------------------
# Core verification
# ---------------------------


def _scalar(v: Union[int, str]) -> int:
    s = v if isinstance(v, int) and not isinstance(v, bool) else _coord(v)
    if not 0 <= s < _FR:
        raise ValueError("public input is not a reduced scalar")
    return s


def _vk_x(IC: Sequence[G1Point], inputs: Sequence[Union[int, str]]) -> G1Point:
    """VK_x = IC[0] + sum_i inputs[i] * IC[i+1] in G1."""
    if len(IC) != len(inputs) + 1:
        raise ValueError(f"IC length {len(IC)} != 1 + len(inputs) {len(inputs)}")
    acc = IC[0]
    for i, v in enumerate(inputs):
        s = _scalar(v)
        if s != 0:
            acc = add(acc, multiply(IC[i + 1], s))
    return acc


def verify_groth16(
    vk: Union[VerifyingKey, Mapping[str, Any]],
    proof_json: Mapping[str, Any],
    public_inputs: Sequence[Union[int, str]],
) -> bool:
    """
    Verify a Groth16 proof against a verifying key and public inputs.

    Returns True on success, False otherwise. Routine failures (malformed
    JSON, bad points, wrong input count) never raise.
    """
    try:
        key = vk if isinstance(vk, VerifyingKey) else load_vk(vk)
        pf = load_proof(proof_json)
        vkx = _vk_x(key.IC, list(public_inputs))
        pairs: List[Tuple[G1Point, G2Point]] = [
            (pf.A, pf.B),
            (neg(key.alpha1), key.beta2),
            (neg(vkx), key.gamma2),
            (neg(pf.C), key.delta2),
        ]
        return check_pairing_product(pairs)
    except (ValueError, TypeError, KeyError, AttributeError, ZeroDivisionError, AssertionError):
        return False
