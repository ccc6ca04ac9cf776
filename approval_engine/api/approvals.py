"""
Administrator approval endpoints.

The API layer is thin — it handles HTTP concerns and delegates
the state machine to the DecisionEngine. Losing a race to
another administrator answers 409; the client should re-fetch
the queue rather than resend.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from approval_engine.models.base import get_db
from approval_engine.models.enums import VerificationKind
from approval_engine.services.decision_engine import DecisionEngine
from approval_engine.services.errors import VerificationError
from approval_engine.services.queue_projector import QueueProjector
from approval_engine.schemas.verification import (
    Decision,
    DecisionRequest,
    PendingApprovalsResponse,
    PendingItem,
    VerificationRecordResponse,
)

router = APIRouter(prefix="/approvals", tags=["Approvals"])


@router.get("/pending", response_model=PendingApprovalsResponse)
def get_pending_approvals(db: Session = Depends(get_db)):
    """Account and KYB queues together."""
    projector = QueueProjector(db)
    try:
        return projector.pending_approvals()
    except VerificationError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/pending/{kind}", response_model=list[PendingItem])
def list_pending(
    kind: VerificationKind,
    db: Session = Depends(get_db),
):
    """Records of one kind awaiting a decision, oldest first."""
    projector = QueueProjector(db)
    try:
        return projector.list_pending(kind)
    except VerificationError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post(
    "/{principal_id}/{kind}/decision",
    response_model=VerificationRecordResponse,
)
def decide(
    principal_id: int,
    kind: VerificationKind,
    request: DecisionRequest,
    db: Session = Depends(get_db),
):
    """
    Approve or reject a pending verification.

    Exactly one decision commits per pending record; the
    record is returned in its final state.
    """
    engine = DecisionEngine(db)
    decision = Decision(
        principal_id=principal_id,
        kind=kind,
        action=request.action,
        actor=request.actor,
        reason=request.reason,
    )
    try:
        return engine.apply(decision)
    except VerificationError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
