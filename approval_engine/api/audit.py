"""
Audit trail endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from sqlalchemy.orm import Session

from approval_engine.models.base import get_db
from approval_engine.models.enums import VerificationKind
from approval_engine.services.audit_emitter import AuditEmitter
from approval_engine.services.errors import VerificationError
from approval_engine.schemas.audit import AuditEntryResponse

router = APIRouter(prefix="/audit", tags=["Audit"])


@router.get("/{principal_id}/{kind}", response_model=list[AuditEntryResponse])
def get_history(
    principal_id: int,
    kind: VerificationKind,
    db: Session = Depends(get_db),
):
    """Every committed transition for (principal, kind), in order."""
    emitter = AuditEmitter(db)
    try:
        return emitter.history(principal_id, kind)
    except VerificationError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/{principal_id}/{kind}/export")
def export_history(
    principal_id: int,
    kind: VerificationKind,
    db: Session = Depends(get_db),
):
    """Download the audit trail as CSV."""
    emitter = AuditEmitter(db)
    try:
        content = emitter.export_csv(principal_id, kind)
    except VerificationError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    filename = f"audit-{principal_id}-{kind.value.lower()}.csv"
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
