"""
Pydantic schemas for the audit trail.
"""

from datetime import datetime

from pydantic import BaseModel

from approval_engine.models.enums import VerificationKind, VerificationStatus


class AuditEntryResponse(BaseModel):
    id: int
    record_id: int
    history_sequence: int
    principal_id: int
    kind: VerificationKind
    event_type: str
    actor: str
    from_status: VerificationStatus
    to_status: VerificationStatus
    details: str
    created_at: datetime

    model_config = {"from_attributes": True}
