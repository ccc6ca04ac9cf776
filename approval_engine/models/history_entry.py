"""
History entry model.

Each entry records one committed status change of a
verification record. Entries are immutable — once written,
they are never modified or deleted.
"""

from datetime import datetime

from sqlalchemy import (
    Integer, String, DateTime, Text, ForeignKey, UniqueConstraint,
    Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from approval_engine.models.base import Base
from approval_engine.models.enums import VerificationStatus


class HistoryEntry(Base):
    """
    One step of a record's state machine.

    sequence starts at 1 and is unique per record, so two
    writers that both computed the same next step collide
    at the database instead of both landing.
    """

    __tablename__ = "history_entries"
    __table_args__ = (
        UniqueConstraint("record_id", "sequence", name="uq_history_record_sequence"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    record_id: Mapped[int] = mapped_column(
        ForeignKey("verification_records.id"), nullable=False, index=True
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
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
    actor: Mapped[str] = mapped_column(String(100), nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    record: Mapped["VerificationRecord"] = relationship(
        back_populates="history"
    )

    def __repr__(self) -> str:
        return (
            f"<HistoryEntry #{self.sequence} "
            f"{self.from_status.value} -> {self.to_status.value}>"
        )
