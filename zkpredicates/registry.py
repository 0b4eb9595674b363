"""
zkpredicates.registry
=====================

Read-only catalog of predicate circuits.

The registry is built once at process start and never mutated afterwards; it
is injected into the generator and the verifier, which makes unsynchronized
concurrent reads safe.

Built-in circuits
-----------------
- "age_range"       RANGE           private age,   public minAge, maxAge
- "range_check"     RANGE           private value, public min, max
- "set_membership"  SET_MEMBERSHIP  private value, public set[10]

Artifact layout under a base directory or URL::

    <base>/<name>/<name>.wasm
    <base>/<name>/<name>_0000.zkey
    <base>/verification_keys/<name>_verification_key.json

Registry documents
------------------
`load_registry()` accepts YAML or JSON::

    circuits:
      range_check:
        kind: range
        private_inputs: [value]
        public_inputs: [min, max]
        public_signals: [valid, min, max]
        wasm: range_check/range_check.wasm          # relative to artifact base
        zkey: range_check/range_check_0000.zkey
        verification_key: verification_keys/range_check_verification_key.json
"""

from __future__ import annotations

import json
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Union

import yaml

from .errors import CircuitNotFound, RegistryError
from .field import SET_SIZE
from .types import CircuitDescriptor, PredicateKind

__all__ = [
    "CircuitRegistry",
    "default_descriptors",
    "default_registry",
    "load_registry",
    "join_ref",
    "range_signals",
    "set_signals",
    "validate_inputs",
]


# =============================================================================
# Helpers
# =============================================================================


def join_ref(base: Union[str, Path], rel: str) -> str:
    """Join an artifact reference onto a base that may be a path or URL."""
    if "://" in rel or Path(rel).is_absolute():
        return rel
    b = str(base)
    if "://" in b:
        return b.rstrip("/") + "/" + rel.lstrip("/")
    return str(Path(b) / rel)


def range_signals(low: str, high: str) -> tuple:
    return ("valid", low, high)


def set_signals(name: str = "set", arity: int = SET_SIZE) -> tuple:
    return ("isMember",) + tuple(f"{name}[{i}]" for i in range(arity))


def _artifacts(base: Union[str, Path], name: str) -> Dict[str, str]:
    return {
        "wasm": join_ref(base, f"{name}/{name}.wasm"),
        "zkey": join_ref(base, f"{name}/{name}_0000.zkey"),
        "verification_key": join_ref(base, f"verification_keys/{name}_verification_key.json"),
    }


def default_descriptors(artifact_base: Union[str, Path] = "./circuits") -> List[CircuitDescriptor]:
    return [
        CircuitDescriptor(
            name="age_range",
            kind=PredicateKind.RANGE,
            private_inputs=("age",),
            public_inputs=("minAge", "maxAge"),
            public_signals=range_signals("minAge", "maxAge"),
            description="Proves minAge <= age <= maxAge without revealing age",
            **_artifacts(artifact_base, "age_range"),
        ),
        CircuitDescriptor(
            name="range_check",
            kind=PredicateKind.RANGE,
            private_inputs=("value",),
            public_inputs=("min", "max"),
            public_signals=range_signals("min", "max"),
            description="Proves min <= value <= max without revealing value",
            **_artifacts(artifact_base, "range_check"),
        ),
        CircuitDescriptor(
            name="set_membership",
            kind=PredicateKind.SET_MEMBERSHIP,
            private_inputs=("value",),
            public_inputs=("set",),
            public_signals=set_signals("set", SET_SIZE),
            description="Proves value is one of up to 10 public set members",
            **_artifacts(artifact_base, "set_membership"),
        ),
    ]


# =============================================================================
# Registry
# =============================================================================


class CircuitRegistry:
    """
    Immutable name -> CircuitDescriptor mapping.

    Raises
    ------
    RegistryError
        On duplicate names or malformed descriptors at construction time.
    """

    __slots__ = ("_by_name",)

    def __init__(self, descriptors: Iterable[CircuitDescriptor]):
        table: Dict[str, CircuitDescriptor] = {}
        for d in descriptors:
            if d.name in table:
                raise RegistryError(f"duplicate circuit name: {d.name}", code="ALREADY_REGISTERED")
            _check_descriptor(d)
            table[d.name] = d
        self._by_name: Mapping[str, CircuitDescriptor] = MappingProxyType(table)

    def lookup(self, name: str) -> CircuitDescriptor:
        try:
            return self._by_name[name]
        except KeyError:
            raise CircuitNotFound(name, self._by_name.keys()) from None

    def get(self, name: str) -> Optional[CircuitDescriptor]:
        return self._by_name.get(name)

    def names(self) -> List[str]:
        return sorted(self._by_name)

    def by_kind(self, kind: PredicateKind) -> List[CircuitDescriptor]:
        return [d for d in self._by_name.values() if d.kind is kind]

    def descriptors(self) -> List[CircuitDescriptor]:
        return [self._by_name[n] for n in self.names()]

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __iter__(self) -> Iterator[CircuitDescriptor]:
        return iter(self.descriptors())

    def __len__(self) -> int:
        return len(self._by_name)

    def __repr__(self) -> str:
        return f"CircuitRegistry({', '.join(self.names())})"


def _check_descriptor(d: CircuitDescriptor) -> None:
    if not isinstance(d.kind, PredicateKind):
        raise RegistryError(f"{d.name}: kind must be a PredicateKind", code="MISSING_FIELD")
    if len(d.private_inputs) != 1:
        raise RegistryError(f"{d.name}: exactly one private input expected", code="MISSING_FIELD")
    match d.kind:
        case PredicateKind.RANGE:
            if len(d.public_inputs) != 2 or len(d.public_signals) != 3:
                raise RegistryError(
                    f"{d.name}: range circuits take two public bounds and expose three signals",
                    code="MISSING_FIELD",
                )
        case PredicateKind.SET_MEMBERSHIP:
            if len(d.public_inputs) != 1 or len(d.public_signals) != 1 + d.set_arity:
                raise RegistryError(
                    f"{d.name}: set circuits take one public set and expose 1 + arity signals",
                    code="MISSING_FIELD",
                )


def default_registry(artifact_base: Union[str, Path] = "./circuits") -> CircuitRegistry:
    return CircuitRegistry(default_descriptors(artifact_base))


# =============================================================================
# Document loading
# =============================================================================


def _descriptor_from_mapping(
    name: str, entry: Mapping[str, Any], base: Union[str, Path]
) -> CircuitDescriptor:
    try:
        kind = PredicateKind(str(entry["kind"]).lower())
    except (KeyError, ValueError) as e:
        raise RegistryError(f"{name}: missing or unknown kind ({e})", code="MISSING_FIELD") from e

    arity = int(entry.get("set_arity", SET_SIZE))
    public_inputs = tuple(entry.get("public_inputs") or ())
    if "public_signals" in entry:
        signals = tuple(entry["public_signals"])
    elif kind is PredicateKind.RANGE and len(public_inputs) == 2:
        signals = range_signals(*public_inputs)
    elif kind is PredicateKind.SET_MEMBERSHIP and public_inputs:
        signals = set_signals(public_inputs[0], arity)
    else:
        raise RegistryError(f"{name}: cannot infer public_signals", code="MISSING_FIELD")

    defaults = _artifacts(base, name)
    return CircuitDescriptor(
        name=name,
        kind=kind,
        private_inputs=tuple(entry.get("private_inputs") or ()),
        public_inputs=public_inputs,
        public_signals=signals,
        wasm=join_ref(base, entry["wasm"]) if "wasm" in entry else defaults["wasm"],
        zkey=join_ref(base, entry["zkey"]) if "zkey" in entry else defaults["zkey"],
        verification_key=(
            join_ref(base, entry["verification_key"])
            if "verification_key" in entry
            else defaults["verification_key"]
        ),
        set_arity=arity,
        description=str(entry.get("description", "")),
    )


def load_registry(
    path: Union[str, Path], artifact_base: Optional[Union[str, Path]] = None
) -> CircuitRegistry:
    """
    Load a registry document (YAML or JSON).

    Relative artifact references resolve against `artifact_base`, or against
    the document's own directory when no base is given.
    """
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise RegistryError(f"cannot read registry {p}: {e}") from e
    try:
        doc = json.loads(text) if p.suffix == ".json" else yaml.safe_load(text)
    except (ValueError, yaml.YAMLError) as e:
        raise RegistryError(f"cannot parse registry {p}: {e}") from e

    circuits = (doc or {}).get("circuits") if isinstance(doc, dict) else None
    if not isinstance(circuits, dict) or not circuits:
        raise RegistryError(f"{p}: expected a non-empty 'circuits' mapping")

    base = artifact_base if artifact_base is not None else p.parent
    return CircuitRegistry(
        _descriptor_from_mapping(str(name), entry or {}, base) for name, entry in circuits.items()
    )


# =============================================================================
# Input validation
# =============================================================================


def validate_inputs(
    descriptor: CircuitDescriptor,
    private_inputs: Mapping[str, Any],
    public_inputs: Mapping[str, Any],
) -> List[str]:
    """
    Return the problems with a proving request; an empty list means valid.

    Checks names on both sides (missing / unexpected / wrong side) and the
    value types each predicate kind accepts.
    """
    errors: List[str] = []
    for side, given, expected in (
        ("private", private_inputs, descriptor.private_inputs),
        ("public", public_inputs, descriptor.public_inputs),
    ):
        for name in expected:
            if name not in given:
                errors.append(f"Missing required {side} input: {name}")
        for name in given:
            if name not in expected:
                errors.append(f"Unexpected {side} input: {name}")

    match descriptor.kind:
        case PredicateKind.RANGE:
            for name, value in [*private_inputs.items(), *public_inputs.items()]:
                if isinstance(value, bool) or not isinstance(value, (int, str)):
                    errors.append(f"Input {name} must be an integer")
        case PredicateKind.SET_MEMBERSHIP:
            for name, value in private_inputs.items():
                if not isinstance(value, str):
                    errors.append(f"Input {name} must be a string")
            for name, value in public_inputs.items():
                if isinstance(value, str) or not isinstance(value, (list, tuple)):
                    errors.append(f"Input {name} must be a list of strings")
                elif not all(isinstance(v, str) for v in value):
                    errors.append(f"Input {name} must contain only strings")
    return errors
