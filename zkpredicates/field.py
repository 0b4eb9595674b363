# SPDX-License-Identifier: MIT
"""
zkpredicates.field
==================

Canonical mapping of attribute values into the BN254 scalar field.

Every value that reaches a circuit, and every value a verifier compares
against, passes through this module. Field elements cross every boundary as
canonical decimal strings.

- Numbers pass through unchanged so that ordering comparisons inside the
  circuit keep their meaning.
- Strings are hashed: ``int(SHA-256(utf8(s))) mod P``.
- Set members are normalized (trim + lowercase) before hashing, on the prover
  and on the verifier side alike.
- Sets are padded to the circuit arity with the literal ``"0"``.
"""

from __future__ import annotations

import hashlib
import re
from typing import Iterable, List, Union

from .errors import MalformedInput, SetTooLarge

# BN254 scalar field order (the Groth16 "r").
FIELD_MODULUS = 21888242871839275222246405745257275088548364400416034343698204186575808495617
P = FIELD_MODULUS

# Fixed array arity of the set-membership circuit.
SET_SIZE = 10

# Padding value for unused set slots. Not encode_string("").
ZERO = "0"

_CANONICAL_RE = re.compile(r"^(0|[1-9][0-9]*)$")

# Decimal digits of P; no canonical element is longer. Checked before int().
MAX_DIGITS = len(str(P))

Numeric = Union[int, str]


def is_field_element(value: object) -> bool:
    """True if ``value`` is a canonical decimal string strictly below P."""
    if not isinstance(value, str) or len(value) > MAX_DIGITS or not _CANONICAL_RE.match(value):
        return False
    return int(value) < P


def encode_numeric(n: Numeric) -> str:
    """
    Encode a non-negative integer as a field element string.

    Accepts ``int`` or a decimal digit string. Values are not reduced: a value
    outside ``[0, P)`` would break the ordering semantics of range circuits, so
    it is rejected instead.

    Raises
    ------
    MalformedInput
        For booleans, floats, negative numbers, non-digit strings, or values >= P.
    """
    if isinstance(n, bool):
        raise MalformedInput(f"numeric value must be an integer, got bool {n!r}")
    if isinstance(n, int):
        v = n
    elif isinstance(n, str) and re.fullmatch(r"[0-9]+", n.strip()):
        digits = n.strip()
        if len(digits) > MAX_DIGITS:
            raise MalformedInput(f"numeric value has {len(digits)} digits; the field modulus has {MAX_DIGITS}")
        v = int(digits)
    else:
        raise MalformedInput(f"numeric value must be an integer, got {type(n).__name__} {n!r:.40}")
    if v < 0:
        raise MalformedInput(f"numeric value must be non-negative, got {v}")
    if v >= P:
        raise MalformedInput("numeric value must be below the field modulus")
    return str(v)


def encode_string(s: str) -> str:
    """SHA-256 of the UTF-8 bytes, read big-endian, reduced mod P."""
    if not isinstance(s, str):
        raise MalformedInput(f"string value expected, got {type(s).__name__}")
    digest = hashlib.sha256(s.encode("utf-8")).digest()
    return str(int.from_bytes(digest, "big") % P)


def normalize_member(s: str) -> str:
    """The one normalization rule for set members: strip, then lowercase."""
    if not isinstance(s, str):
        raise MalformedInput(f"set member must be a string, got {type(s).__name__}")
    return s.strip().lower()


def encode_member(s: str) -> str:
    return encode_string(normalize_member(s))


def pad_set(elements: Iterable[str], size: int = SET_SIZE) -> List[str]:
    """
    Encode set members and right-pad with ``"0"`` to exactly ``size`` entries.

    Order is preserved: slot i holds the i-th member. Verification compares
    slots positionally, so both sides must present members in the same order.

    Raises
    ------
    SetTooLarge
        If more than ``size`` members are given.
    """
    members = list(elements)
    if len(members) > size:
        raise SetTooLarge(len(members), size)
    out = [encode_member(m) for m in members]
    out.extend([ZERO] * (size - len(out)))
    return out


__all__ = [
    "FIELD_MODULUS",
    "P",
    "SET_SIZE",
    "ZERO",
    "MAX_DIGITS",
    "is_field_element",
    "encode_numeric",
    "encode_string",
    "normalize_member",
    "encode_member",
    "pad_set",
]
