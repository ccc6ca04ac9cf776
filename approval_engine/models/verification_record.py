"""
Verification record model.

One record per (principal, verification kind). The record
carries its current status, the evidence submitted for review
and an append-only history of status changes.

The status column is a cache of the history: replaying the
history from UNVERIFIED must always produce it. Both are
written in the same database transaction, guarded by the
version column.
"""

from datetime import datetime

from sqlalchemy import (
    Integer, DateTime, ForeignKey, UniqueConstraint,
    Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from approval_engine.models.base import Base
from approval_engine.models.enums import VerificationKind, VerificationStatus


S = VerificationStatus

# Valid state transitions per kind
VALID_TRANSITIONS: dict[VerificationKind, dict[VerificationStatus, set[VerificationStatus]]] = {
    VerificationKind.ACCOUNT: {
        S.UNVERIFIED: {S.PENDING},
        S.PENDING: {S.ACTIVE, S.REJECTED},
        S.ACTIVE: set(),    # Terminal
        S.REJECTED: set(),  # Terminal: rejected accounts are not re-reviewed
    },
    VerificationKind.KYB: {
        S.UNVERIFIED: {S.PENDING},
        S.PENDING: {S.VERIFIED, S.REJECTED},
        S.VERIFIED: set(),  # Terminal
        S.REJECTED: {S.PENDING},  # Re-submission with fresh evidence
    },
}

# The status an APPROVE decision lands on
APPROVED_STATUS: dict[VerificationKind, VerificationStatus] = {
    VerificationKind.ACCOUNT: S.ACTIVE,
    VerificationKind.KYB: S.VERIFIED,
}

# Evidence may only be edited before submission or after a rejection
EDITABLE_STATUSES = {S.UNVERIFIED, S.REJECTED}

INITIAL_STATUS = S.UNVERIFIED


def fold_history(kind: VerificationKind, transitions) -> VerificationStatus:
    """
    Replay (from_status, to_status) pairs and return the final status.

    Raises ValueError if the history does not describe a legal
    path through the state machine for this kind.
    """
    status = INITIAL_STATUS
    for from_status, to_status in transitions:
        if from_status != status:
            raise ValueError(
                f"History breaks at {from_status.value}: "
                f"expected {status.value}"
            )
        if to_status not in VALID_TRANSITIONS[kind].get(status, set()):
            raise ValueError(
                f"History contains illegal transition "
                f"{from_status.value} -> {to_status.value}"
            )
        status = to_status
    return status


class VerificationRecord(Base):
    __tablename__ = "verification_records"
    __table_args__ = (
        UniqueConstraint("principal_id", "kind", name="uq_record_principal_kind"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    principal_id: Mapped[int] = mapped_column(
        ForeignKey("principals.id"), nullable=False, index=True
    )
    kind: Mapped[VerificationKind] = mapped_column(
        SAEnum(
            VerificationKind,
            name="verification_kind_enum",
            create_constraint=True,
        ),
        nullable=False,
    )
    status: Mapped[VerificationStatus] = mapped_column(
        SAEnum(
            VerificationStatus,
            name="verification_status_enum",
            create_constraint=True,
        ),
        nullable=False,
        default=INITIAL_STATUS,
        index=True,
    )
    # Compare-and-set token. SQLAlchemy adds "AND version = :old"
    # to every UPDATE and raises StaleDataError when no row matches.
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    # Evidence batch currently being assembled, and the last batch
    # handed in for review. A batch is open while batch > submitted.
    evidence_batch: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1
    )
    submitted_batch: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    pending_since: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True, default=None, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    principal: Mapped["Principal"] = relationship(back_populates="records")
    history: Mapped[list["HistoryEntry"]] = relationship(
        back_populates="record",
        order_by="HistoryEntry.sequence",
    )
    documents: Mapped[list["EvidenceDocument"]] = relationship(
        back_populates="record",
        order_by="EvidenceDocument.id",
    )

    @property
    def evidence(self) -> list[str]:
        """Document references of the current evidence batch, in order."""
        return [
            doc.document_ref for doc in self.documents
            if doc.batch == self.evidence_batch
        ]

    @property
    def has_open_batch(self) -> bool:
        return self.evidence_batch > self.submitted_batch

    def can_transition_to(self, new_status: VerificationStatus) -> bool:
        """Check if a state transition is valid."""
        return new_status in VALID_TRANSITIONS[self.kind].get(self.status, set())

    def folded_status(self) -> VerificationStatus:
        """Status obtained by replaying the stored history."""
        return fold_history(
            self.kind,
            ((e.from_status, e.to_status) for e in self.history),
        )

    def __repr__(self) -> str:
        return (
            f"<VerificationRecord {self.principal_id} "
            f"{self.kind.value} ({self.status.value}) v{self.version}>"
        )
