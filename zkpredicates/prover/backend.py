"""
zkpredicates.prover.backend
===========================

Proving backends: the external Groth16 primitive behind a small protocol.

A backend receives already-encoded circuit inputs (decimal field-element
strings, arrays flattened per the circuit) plus the raw artifact bytes, and
returns ``(proof_dict, public_signals)`` in snarkjs layout.

Contract
--------
- ``single_thread=True`` must be honoured: the primitive may not spawn
  worker threads.
- No satisfying witness -> raise :class:`~zkpredicates.errors.ConstraintViolation`.
- Anything else going wrong -> raise :class:`~zkpredicates.errors.ProverError`.

`SnarkjsBackend` shells out to Node.js and the ``snarkjs`` package through the
bundled ``fullprove.mjs`` driver. Inputs and artifacts are written into a
private temporary directory that is removed when the call returns.
"""

from __future__ import annotations

import json
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple, Union, runtime_checkable

from ..errors import ConstraintViolation, ProverError
from ..logging import get_logger
from ..types import CircuitDescriptor

log = get_logger(__name__)

CircuitInputs = Mapping[str, Union[str, List[str]]]
BackendResult = Tuple[Dict[str, Any], List[str]]

DRIVER = Path(__file__).with_name("fullprove.mjs")

# Exit status the driver uses for witness constraint failures.
EXIT_CONSTRAINT = 3

__all__ = ["ProvingBackend", "SnarkjsBackend", "DRIVER", "EXIT_CONSTRAINT"]


@runtime_checkable
class ProvingBackend(Protocol):
    def prove(
        self,
        descriptor: CircuitDescriptor,
        wasm: bytes,
        zkey: bytes,
        inputs: CircuitInputs,
        *,
        single_thread: bool,
    ) -> BackendResult: ...


class SnarkjsBackend:
    """Run ``snarkjs.groth16.fullProve`` in a Node.js subprocess."""

    def __init__(
        self,
        *,
        node_binary: str = "node",
        snarkjs_module: str = "snarkjs",
        driver: Path = DRIVER,
        timeout: Optional[float] = None,
    ) -> None:
        self.node_binary = node_binary
        self.snarkjs_module = snarkjs_module
        self.driver = Path(driver)
        self.timeout = timeout

    def _node(self) -> str:
        node = shutil.which(self.node_binary)
        if node is None:
            raise ProverError(f"Node.js binary not found: {self.node_binary}")
        return node

    def prove(
        self,
        descriptor: CircuitDescriptor,
        wasm: bytes,
        zkey: bytes,
        inputs: CircuitInputs,
        *,
        single_thread: bool,
    ) -> BackendResult:
        node = self._node()
        with tempfile.TemporaryDirectory(prefix="zkp-") as tmp:
            work = Path(tmp)
            wasm_path = work / f"{descriptor.name}.wasm"
            zkey_path = work / f"{descriptor.name}.zkey"
            input_path = work / "input.json"
            wasm_path.write_bytes(wasm)
            zkey_path.write_bytes(zkey)
            input_path.write_text(json.dumps(dict(inputs)), encoding="utf-8")

            command = [
                node,
                str(self.driver),
                self.snarkjs_module,
                str(input_path),
                str(wasm_path),
                str(zkey_path),
                "1" if single_thread else "0",
            ]
            try:
                result = subprocess.run(
                    command,
                    capture_output=True,
                    text=True,
                    check=False,
                    timeout=self.timeout,
                )
            except subprocess.TimeoutExpired as e:
                raise ProverError(f"snarkjs timed out after {self.timeout}s") from e
            except OSError as e:
                raise ProverError(f"cannot start Node.js: {e}") from e

        stderr = (result.stderr or "").strip()
        if result.returncode == EXIT_CONSTRAINT:
            raise ConstraintViolation(f"{descriptor.name}: no satisfying witness")
        if result.returncode != 0:
            log.error("snarkjs_failed", circuit=descriptor.name, returncode=result.returncode,
                      stderr=stderr[-2000:])
            raise ProverError(f"snarkjs exited with {result.returncode}: {stderr.splitlines()[-1:] or ''}")

        try:
            out = json.loads(result.stdout)
            proof, signals = out["proof"], out["publicSignals"]
        except (ValueError, KeyError, TypeError) as e:
            raise ProverError(f"unparseable snarkjs output: {e}") from e
        return dict(proof), [str(s) for s in signals]
