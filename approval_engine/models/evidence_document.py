"""
Evidence document model.

An opaque reference to a file held by the file storage
service. The engine never inspects the document itself.
"""

from datetime import datetime

from sqlalchemy import Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from approval_engine.models.base import Base


class EvidenceDocument(Base):
    __tablename__ = "evidence_documents"

    id: Mapped[int] = mapped_column(primary_key=True)
    record_id: Mapped[int] = mapped_column(
        ForeignKey("verification_records.id"), nullable=False, index=True
    )
    # Submission round this document belongs to
    batch: Mapped[int] = mapped_column(Integer, nullable=False)
    document_ref: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    record: Mapped["VerificationRecord"] = relationship(
        back_populates="documents"
    )

    def __repr__(self) -> str:
        return f"<EvidenceDocument {self.document_ref} (batch {self.batch})>"
