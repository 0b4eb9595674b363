from __future__ import annotations

"""
Routers

Endpoints:
  - POST /verify-proof   : verify one proof or a batch (``proofs``)
  - GET  /verify-proof   : endpoint description and available circuits
  - GET  /circuits       : registry listing
  - GET  /healthz        : liveness + version

Verification outcomes (including forged or mismatched proofs) are 200s with
``valid: false``; only an unusable request envelope is a 400.
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Any, Dict, List

from fastapi import APIRouter, Request

from ..errors import MalformedInput
from ..logging import get_logger
from ..verifier import BatchResult, VerificationItem, Verifier
from ..version import __version__
from .errors import ApiError, BadRequest
from .models import CircuitOut, HealthResponse, VerifyProofRequest, VerifyProofResponse

log = get_logger(__name__)
router = APIRouter(tags=["verify"])

_PROCESS_START = time.time()


def _verifier(request: Request) -> Verifier:
    return request.app.state.verifier


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.post(
    "/verify-proof",
    summary="Verify a predicate proof (or a batch) and reconcile it against a requirement",
    response_model=VerifyProofResponse,
)
async def post_verify_proof(req: VerifyProofRequest, request: Request) -> Dict[str, Any]:
    verifier = _verifier(request)

    if req.is_batch:
        if not req.proofs:
            raise BadRequest("proofs array must not be empty")
        batch = await verifier.verify_batch(req.proofs)
    else:
        try:
            item = VerificationItem.from_mapping(req.single_item())
            loop = asyncio.get_running_loop()
            result = await loop.run_in_executor(None, verifier.verify_item, item)
        except MalformedInput as e:
            raise ApiError.from_package_error(e) from e
        batch = BatchResult((result,))

    body = batch.to_dict()
    body["metadata"] = req.metadata
    body["verifiedAt"] = _utcnow_iso()
    return body


@router.get("/verify-proof", summary="Describe the verification endpoint")
async def describe_verify_proof(request: Request) -> Dict[str, Any]:
    return {
        "endpoint": "/verify-proof",
        "method": "POST",
        "description": "Verify zero-knowledge predicate proofs",
        "availableCircuits": _verifier(request).circuits(),
        "singleProofFormat": {
            "circuitName": "string (e.g. 'range_check', 'set_membership')",
            "proof": "object with pi_a, pi_b, pi_c",
            "publicSignals": "array of decimal strings",
            "requirement": "optional {min, max} or {allowedValues}",
            "metadata": "optional object",
        },
        "batchFormat": {"proofs": "array of single proof objects", "metadata": "optional object"},
    }


@router.get("/circuits", summary="List registered circuits", response_model=List[CircuitOut])
async def list_circuits(request: Request) -> List[Dict[str, Any]]:
    return [d.to_dict() for d in _verifier(request).registry]


@router.get("/healthz", tags=["health"], response_model=HealthResponse)
async def healthz(request: Request) -> Dict[str, Any]:
    return {
        "ok": True,
        "status": "ok",
        "version": __version__,
        "circuits": _verifier(request).circuits(),
        "uptimeS": round(max(0.0, time.time() - _PROCESS_START), 3),
    }


def get_router() -> APIRouter:
    return router


__all__ = ["router", "get_router"]
