"""
Principal model.

A user account or a company. Display metadata (name, email)
is carried for the approval queue but is opaque to the
verification state machine.
"""

import uuid
from datetime import datetime

from sqlalchemy import String, DateTime, Enum as SAEnum, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from approval_engine.models.base import Base
from approval_engine.models.enums import PrincipalKind


class Principal(Base):
    __tablename__ = "principals"

    id: Mapped[int] = mapped_column(primary_key=True)
    external_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, unique=True, nullable=False, default=uuid.uuid4
    )
    kind: Mapped[PrincipalKind] = mapped_column(
        SAEnum(PrincipalKind, name="principal_kind_enum", create_constraint=True),
        nullable=False,
    )
    display_name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    # One record per verification kind
    records: Mapped[list["VerificationRecord"]] = relationship(
        back_populates="principal"
    )

    def __repr__(self) -> str:
        return f"<Principal {self.display_name} ({self.kind.value})>"
