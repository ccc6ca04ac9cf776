"""
Audit log model.

Records every committed verification decision for compliance
review. Each committed history entry produces exactly one
audit row — the unique constraint on (record_id,
history_sequence) makes a repeated append a no-op.
"""

from datetime import datetime

from sqlalchemy import (
    Integer, String, DateTime, Text, UniqueConstraint,
    Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column

from approval_engine.models.base import Base
from approval_engine.models.enums import VerificationKind, VerificationStatus


class AuditLog(Base):
    """
    Immutable record of a committed transition.

    Audit rows are append-only. You never update or delete
    an audit record. Rows deliberately copy the principal and
    kind instead of relying on joins, so the trail reads the
    same even if related rows change shape later.
    """

    __tablename__ = "audit_log"
    __table_args__ = (
        UniqueConstraint(
            "record_id", "history_sequence", name="uq_audit_record_sequence"
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    record_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    history_sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    principal_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    kind: Mapped[VerificationKind] = mapped_column(
        SAEnum(
            VerificationKind,
            name="verification_kind_enum",
        ),
        nullable=False,
    )
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    actor: Mapped[str] = mapped_column(String(100), nullable=False)
    from_status: Mapped[VerificationStatus] = mapped_column(
        SAEnum(
            VerificationStatus,
            name="verification_status_enum",
        ),
        nullable=False,
    )
    to_status: Mapped[VerificationStatus] = mapped_column(
        SAEnum(
            VerificationStatus,
            name="verification_status_enum",
        ),
        nullable=False,
    )
    details: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<AuditLog {self.event_type} record={self.record_id}#{self.history_sequence}>"
