"""
KYB evidence endpoints, used by a company assembling its submission.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from approval_engine.models.base import get_db
from approval_engine.services.document_intake import DocumentIntake
from approval_engine.services.errors import VerificationError
from approval_engine.schemas.verification import (
    DocumentAttach,
    SubmissionRequest,
    VerificationRecordResponse,
)

router = APIRouter(prefix="/kyb", tags=["KYB"])


@router.post(
    "/{principal_id}/documents",
    response_model=VerificationRecordResponse,
    status_code=201,
)
def attach_document(
    principal_id: int,
    request: DocumentAttach,
    db: Session = Depends(get_db),
):
    """
    Attach an uploaded document to the company's evidence.

    Refused while the submission is under review or after
    it was verified.
    """
    intake = DocumentIntake(db)
    try:
        return intake.attach(principal_id, request.document_ref)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except VerificationError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post("/{principal_id}/submit", response_model=VerificationRecordResponse)
def submit_for_review(
    principal_id: int,
    request: SubmissionRequest | None = None,
    db: Session = Depends(get_db),
):
    """Hand the attached evidence in and join the KYB queue."""
    intake = DocumentIntake(db)
    actor = request.actor if request else None
    try:
        return intake.finalize_submission(principal_id, actor=actor)
    except VerificationError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
