"""
Pydantic schemas for principals, verification records and decisions.

These define the API contract — what data comes in,
what data goes out. They are separate from the database
models because the API shape and the storage shape
are often different.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from approval_engine.models.enums import (
    Capability,
    DecisionAction,
    PrincipalKind,
    VerificationKind,
    VerificationStatus,
)


# --- Principal Schemas ---

class PrincipalCreate(BaseModel):
    """Registration of a new user or company."""
    kind: PrincipalKind
    display_name: str = Field(min_length=1, max_length=200)
    email: str = Field(min_length=5, max_length=255)


class PrincipalResponse(BaseModel):
    id: int
    external_id: uuid.UUID
    kind: PrincipalKind
    display_name: str
    email: str
    created_at: datetime

    model_config = {"from_attributes": True}


class StatusResponse(BaseModel):
    """Answer to the session service's gate query."""
    principal_id: int
    kind: VerificationKind
    status: VerificationStatus
    capabilities: list[Capability]


# --- Decision Schemas ---

class DecisionRequest(BaseModel):
    """Body of an administrator's decision."""
    action: DecisionAction
    actor: str = Field(min_length=1, max_length=100)
    reason: str | None = Field(default=None, max_length=500)


class Decision(DecisionRequest):
    """
    A request to move a PENDING record to its outcome.

    Not persisted on its own — applying it produces one
    history entry.
    """
    principal_id: int
    kind: VerificationKind


# --- Evidence Schemas ---

class DocumentAttach(BaseModel):
    """An opaque reference returned by the file storage service."""
    document_ref: str = Field(min_length=1, max_length=255)

    @field_validator("document_ref")
    @classmethod
    def must_not_be_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("document_ref must not be blank")
        return v


class SubmissionRequest(BaseModel):
    actor: str | None = Field(default=None, max_length=100)


# --- Record Schemas ---

class HistoryEntryResponse(BaseModel):
    sequence: int
    from_status: VerificationStatus
    to_status: VerificationStatus
    actor: str
    note: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class VerificationRecordResponse(BaseModel):
    id: int
    principal_id: int
    kind: VerificationKind
    status: VerificationStatus
    version: int
    evidence: list[str]
    history: list[HistoryEntryResponse]
    pending_since: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PendingItem(BaseModel):
    """One row of the approval queue."""
    record_id: int
    principal_id: int
    principal_kind: PrincipalKind
    display_name: str
    email: str
    kind: VerificationKind
    status: VerificationStatus
    version: int
    evidence: list[str]
    pending_since: datetime
    registered_at: datetime


class PendingApprovalsResponse(BaseModel):
    """Both queues, as shown on the admin approvals screen."""
    account: list[PendingItem]
    kyb: list[PendingItem]
