"""
Principal registration and status endpoints.

The status endpoint is what the session/authorization service
calls before letting a principal log in or use a privileged
company feature.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from approval_engine.models.base import get_db
from approval_engine.models.enums import VerificationKind
from approval_engine.services.access_gate import AccessGate
from approval_engine.services.errors import VerificationError
from approval_engine.services.registration_service import RegistrationService
from approval_engine.schemas.verification import (
    PrincipalCreate,
    PrincipalResponse,
    StatusResponse,
)

router = APIRouter(prefix="/principals", tags=["Principals"])


@router.post("", response_model=PrincipalResponse, status_code=201)
def register_principal(
    request: PrincipalCreate,
    db: Session = Depends(get_db),
):
    """
    Register a user or company.

    The account verification record is created and placed
    in the approval queue in the same transaction.
    """
    service = RegistrationService(db)
    try:
        return service.register(request)
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))
    except VerificationError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/{principal_id}", response_model=PrincipalResponse)
def get_principal(
    principal_id: int,
    db: Session = Depends(get_db),
):
    service = RegistrationService(db)
    try:
        return service.get_principal(principal_id)
    except VerificationError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/{principal_id}/status/{kind}", response_model=StatusResponse)
def get_status(
    principal_id: int,
    kind: VerificationKind,
    db: Session = Depends(get_db),
):
    """Current committed status plus the capabilities it grants."""
    gate = AccessGate(db)
    try:
        status = gate.current_status(principal_id, kind)
        capabilities = gate.capabilities(principal_id)
    except VerificationError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    return StatusResponse(
        principal_id=principal_id,
        kind=kind,
        status=status,
        capabilities=capabilities,
    )
