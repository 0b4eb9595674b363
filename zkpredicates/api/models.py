from __future__ import annotations

"""
Request/response models for the verification endpoint.

- VerifyProofRequest: either a single proof (circuitName, proof,
  publicSignals, requirement | campaignRequirements) or a batch (proofs).
  Only the envelope is typed; proof contents stay loose so that malformed
  proofs come back as ``valid: false`` items instead of request errors.
- ResultOut / VerifyProofResponse: camelCase on the wire.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _Camel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class VerifyProofRequest(_Camel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    circuit_name: Optional[str] = Field(default=None, description="Registry name of the circuit.")
    proof: Optional[Any] = Field(default=None, description="snarkjs Groth16 proof object.")
    public_signals: Optional[Any] = Field(default=None, description="Public signals, decimal strings.")
    requirement: Optional[Dict[str, Any]] = Field(
        default=None, description="{min, max} or {allowedValues: [...]}"
    )
    campaign_requirements: Optional[Dict[str, Any]] = Field(
        default=None, description="Alias of requirement used by campaign clients."
    )
    proofs: Optional[List[Dict[str, Any]]] = Field(default=None, description="Batch form.")
    metadata: Optional[Dict[str, Any]] = None

    @property
    def is_batch(self) -> bool:
        return self.proofs is not None

    def single_item(self) -> Dict[str, Any]:
        return {
            "circuitName": self.circuit_name,
            "proof": self.proof,
            "publicSignals": self.public_signals,
            "requirement": self.requirement if self.requirement is not None else self.campaign_requirements,
        }


class ResultOut(_Camel):
    valid: bool
    circuit_name: str
    cryptographically_valid: bool
    requirement_satisfied: Optional[bool] = None
    reason: str
    message: str = ""
    public_signals: List[str] = Field(default_factory=list)
    elapsed_ms: float = 0.0


class VerifyProofResponse(_Camel):
    valid: bool
    valid_count: int
    total: int
    results: List[ResultOut]
    metadata: Optional[Dict[str, Any]] = None
    verified_at: str


class CircuitOut(_Camel):
    name: str
    kind: str
    description: str = ""
    private_inputs: List[str]
    public_inputs: List[str]
    public_signals: List[str]
    set_arity: int


class HealthResponse(_Camel):
    ok: bool = True
    status: str = "ok"
    version: str
    circuits: List[str] = Field(default_factory=list)
    uptime_s: float


__all__ = [
    "VerifyProofRequest",
    "ResultOut",
    "VerifyProofResponse",
    "CircuitOut",
    "HealthResponse",
]
