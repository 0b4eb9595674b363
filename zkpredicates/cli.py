"""
Command line for zkpredicates.

Utilities:
  - encode-string   : SHA-256 field encoding of a string
  - encode-member   : normalized set-member encoding
  - pad-set         : encode and pad a set to the circuit arity
  - circuits        : list registered circuits
  - verify          : verify a proof bundle (optionally against a requirement)
  - prove           : generate a proof (requires Node.js + snarkjs)
  - serve           : run the verification HTTP service (uvicorn)

Usage:
  python -m zkpredicates <command> [options]
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer

from .config import get_settings
from .errors import ZKPredicateError
from .field import SET_SIZE, encode_member, encode_string, pad_set
from .logging import configure_from_settings
from .types import PredicateKind, ProvingFailure

app = typer.Typer(add_completion=False, help="zkpredicates: private attribute predicate proofs")


def _echo_json(obj: Any) -> None:
    typer.echo(json.dumps(obj, indent=2, sort_keys=False))


def _fail(err: ZKPredicateError) -> None:
    typer.echo(f"error [{err.code}]: {err.message}", err=True)
    raise typer.Exit(code=2)


def _registry():
    from .api.app import build_registry

    return build_registry(get_settings())


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override ZKP_LOG_LEVEL"),
):
    """
    Shared options for all subcommands.
    """
    configure_from_settings(get_settings(), level=log_level)


@app.command("encode-string")
def cmd_encode_string(value: str = typer.Argument(..., help="Raw string (no normalization)")):
    """Print SHA-256(value) mod P."""
    typer.echo(encode_string(value))


@app.command("encode-member")
def cmd_encode_member(value: str = typer.Argument(..., help="Set member (trimmed + lowercased)")):
    typer.echo(encode_member(value))


@app.command("pad-set")
def cmd_pad_set(
    values: List[str] = typer.Argument(..., help="Set members in order"),
    size: int = typer.Option(SET_SIZE, "--size", help="Circuit set arity"),
):
    """Print the padded, encoded set as a JSON array."""
    try:
        _echo_json(pad_set(values, size))
    except ZKPredicateError as e:
        _fail(e)


@app.command("circuits")
def cmd_circuits():
    """List registered circuits."""
    _echo_json([d.to_dict() for d in _registry()])


def _parse_pairs(pairs: List[str], kind: PredicateKind, set_names: tuple) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for p in pairs:
        name, sep, value = p.partition("=")
        if not sep:
            raise typer.BadParameter(f"expected name=value, got {p!r}")
        if kind is PredicateKind.SET_MEMBERSHIP and name in set_names:
            out[name] = [v for v in value.split(",") if v.strip()]
        else:
            out[name] = value
    return out


@app.command("prove")
def cmd_prove(
    circuit: str = typer.Argument(..., help="Circuit name, e.g. range_check"),
    private: List[str] = typer.Option([], "--private", "-p", help="name=value (repeatable)"),
    public: List[str] = typer.Option([], "--public", "-P", help="name=value; sets as a,b,c"),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Write the proof package here"),
):
    """
    Generate a proof package. Exits 1 if the value does not satisfy the predicate.
    """
    from .prover import ProofGenerator

    settings = get_settings()
    try:
        registry = _registry()
        descriptor = registry.lookup(circuit)
        private_inputs = _parse_pairs(private, descriptor.kind, ())
        public_inputs = _parse_pairs(public, descriptor.kind, descriptor.public_inputs)
        generator = ProofGenerator.from_settings(settings, registry)
        outcome = asyncio.run(generator.generate(circuit, private_inputs, public_inputs))
    except ZKPredicateError as e:
        _fail(e)
        return

    if isinstance(outcome, ProvingFailure):
        _echo_json(outcome.to_dict())
        raise typer.Exit(code=1)
    if out is not None:
        out.write_bytes(outcome.to_json())
        typer.echo(f"wrote {out}")
    else:
        _echo_json(outcome.to_dict())


@app.command("verify")
def cmd_verify(
    bundle: Path = typer.Argument(..., exists=True, readable=True, help="Proof package or {proof, publicSignals} JSON"),
    circuit: Optional[str] = typer.Option(None, "--circuit", "-c", help="Circuit name if the bundle lacks one"),
    requirement: Optional[str] = typer.Option(None, "--requirement", "-r", help='JSON, e.g. {"min":25,"max":65}'),
):
    """Verify a proof; exits 1 when invalid."""
    from .api.app import build_verifier

    try:
        data = json.loads(bundle.read_text(encoding="utf-8"))
        req = json.loads(requirement) if requirement else None
    except ValueError as e:
        raise typer.BadParameter(f"invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise typer.BadParameter("bundle must be a JSON object")

    name = circuit or data.get("circuitName") or data.get("circuit_name")
    if not name:
        raise typer.BadParameter("bundle has no circuitName; pass --circuit")
    try:
        verifier = build_verifier(get_settings())
        result = verifier.verify(name, data.get("proof"), data.get("publicSignals"), req)
    except ZKPredicateError as e:
        _fail(e)
        return

    _echo_json(result.to_dict())
    if not result.valid:
        raise typer.Exit(code=1)


@app.command("serve")
def cmd_serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default: ZKP_HOST)"),
    port: Optional[int] = typer.Option(None, "--port", help="Port (default: ZKP_PORT)"),
    workers: int = typer.Option(1, "--workers", help="Number of uvicorn workers"),
):
    """Run the verification service."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "zkpredicates.api.app:create_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        workers=workers,
        log_level=settings.log_level.lower(),
        log_config=None,
    )


if __name__ == "__main__":  # pragma: no cover
    app()
