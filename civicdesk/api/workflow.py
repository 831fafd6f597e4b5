"""Workflow approval guards for certificates and blotters.

These endpoints only run the authorization check (including staff
delegation) and report the decision; the certificate and blotter records
themselves live in the records modules.
"""

from fastapi import APIRouter, Depends

from civicdesk.api.deps import CheckPermission
from civicdesk.schemas.schemas import ApprovalDecisionOut
from civicdesk.services.access_engine import Decision

router = APIRouter(prefix="/workflow", tags=["workflow"])


@router.post("/certificates/{certificate_id}/approve", response_model=ApprovalDecisionOut)
async def approve_certificate(
    certificate_id: int,
    decision: Decision = Depends(CheckPermission("certificates.approve")),
):
    return ApprovalDecisionOut(
        target_type="certificate",
        target_id=certificate_id,
        permission=decision.permission,
        allowed=decision.allowed,
        delegated=decision.delegated,
    )


@router.post("/blotters/{blotter_id}/approve", response_model=ApprovalDecisionOut)
async def approve_blotter(
    blotter_id: int,
    decision: Decision = Depends(CheckPermission("blotter.approve")),
):
    return ApprovalDecisionOut(
        target_type="blotter",
        target_id=blotter_id,
        permission=decision.permission,
        allowed=decision.allowed,
        delegated=decision.delegated,
    )
