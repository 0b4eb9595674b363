"""
zkpredicates.verifiers.pairing_bn254
====================================

BN254 (altbn128) pairing helpers over `py_ecc`'s optimized backend.

Public API
----------
- product_of_pairings(pairs) -> GTElement
- check_pairing_product(pairs) -> bool
- is_on_curve_g1(P), is_on_curve_g2(Q), in_g2_subgroup(Q)
- normalize_g1(P) / normalize_g2(Q)  (to affine ints)
- g1_generator(), g2_generator(), curve_order()

Notes
-----
- Point ordering follows the convention e(P, Q) with P in G1, Q in G2.
  `py_ecc` expects (Q, P); this wrapper handles it.
- The product runs one Miller loop per pair and a single final
  exponentiation at the end.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional, Tuple

from py_ecc.optimized_bn128 import FQ12, G1, G2, b, b2, curve_order as _R, eq, is_on_curve, multiply, neg, normalize
from py_ecc.optimized_bn128.optimized_pairing import final_exponentiate, pairing

# Opaque projective tuples understood by py_ecc.
G1Point = Any
G2Point = Any
GTElement = FQ12

__all__ = [
    "product_of_pairings",
    "check_pairing_product",
    "is_inf",
    "is_on_curve_g1",
    "is_on_curve_g2",
    "in_g2_subgroup",
    "normalize_g1",
    "normalize_g2",
    "g1_generator",
    "g2_generator",
    "curve_order",
]


def curve_order() -> int:
    """Return the BN254 subgroup order r."""
    return int(_R)


def g1_generator() -> G1Point:
    return G1


def g2_generator() -> G2Point:
    return G2


def is_inf(P: Any) -> bool:
    """Projective point with Z == 0 (py_ecc's point at infinity)."""
    if P is None:
        return True
    return P[2] == P[2].zero()


def is_on_curve_g1(P: G1Point) -> bool:
    return is_inf(P) or bool(is_on_curve(P, b))


def is_on_curve_g2(Q: G2Point) -> bool:
    return is_inf(Q) or bool(is_on_curve(Q, b2))


def in_g2_subgroup(Q: G2Point) -> bool:
    """
    True if Q lies in the order-r subgroup of the twist.

    G1 has cofactor 1 on BN254, so on-curve is enough there; G2 does not.
    (r - 1)·Q == -Q holds exactly when r·Q is the identity.
    """
    if is_inf(Q):
        return True
    return bool(eq(multiply(Q, curve_order() - 1), neg(Q)))


def _limb(c: Any) -> int:
    return c if isinstance(c, int) else int(c.n)


def normalize_g1(P: G1Point) -> Optional[Tuple[int, int]]:
    if is_inf(P):
        return None
    ax, ay = normalize(P)
    return _limb(ax), _limb(ay)


def normalize_g2(Q: G2Point) -> Optional[Tuple[Tuple[int, int], Tuple[int, int]]]:
    """Affine ((x_c0, x_c1), (y_c0, y_c1)); FQ2 value = c0 + c1 * i."""
    if is_inf(Q):
        return None
    ax, ay = normalize(Q)
    return (_limb(ax.coeffs[0]), _limb(ax.coeffs[1])), (_limb(ay.coeffs[0]), _limb(ay.coeffs[1]))


def product_of_pairings(pairs: Iterable[Tuple[G1Point, G2Point]], *, validate: bool = True) -> GTElement:
    """
    Compute ∏ e(P_i, Q_i) over (P_i, Q_i) pairs.

    Raises
    ------
    ValueError
        If validate=True and a point is off its curve.
    """
    acc = FQ12.one()
    for P, Q in pairs:
        if validate:
            if not is_on_curve_g1(P):
                raise ValueError("G1 point is not on curve")
            if not is_on_curve_g2(Q):
                raise ValueError("G2 point is not on curve")
        # pairings involving infinity contribute the identity
        if is_inf(P) or is_inf(Q):
            continue
        acc *= pairing(Q, P, final_exponentiate=False)
    return final_exponentiate(acc)


def check_pairing_product(pairs: Iterable[Tuple[G1Point, G2Point]], *, validate: bool = True) -> bool:
    """Return True iff ∏ e(P_i, Q_i) == 1 in GT."""
    return product_of_pairings(pairs, validate=validate) == FQ12.one()
