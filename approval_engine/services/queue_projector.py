"""
Approval queue projector — what is waiting for a decision.

A read-only view computed on demand from the record store.
Nothing is cached: each call reads committed rows, so a
principal disappears from the queue as soon as the decision
on it commits, and a record is never seen half approved.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from approval_engine.models.enums import VerificationKind, VerificationStatus
from approval_engine.models.principal import Principal
from approval_engine.models.verification_record import VerificationRecord
from approval_engine.schemas.verification import (
    PendingApprovalsResponse,
    PendingItem,
)
from approval_engine.services.record_store import VerificationRecordStore


class QueueProjector:

    def __init__(self, db: Session):
        self.db = db
        self.store = VerificationRecordStore(db)

    def list_pending(self, kind: VerificationKind) -> list[PendingItem]:
        """
        Return every PENDING record of a kind, oldest submission first.

        populate_existing overwrites anything this session already
        holds with the committed row, so long-lived sessions do not
        serve stale statuses.
        """
        query = (
            select(VerificationRecord, Principal)
            .join(Principal, VerificationRecord.principal_id == Principal.id)
            .where(
                VerificationRecord.kind == kind,
                VerificationRecord.status == VerificationStatus.PENDING,
            )
            .options(selectinload(VerificationRecord.documents))
            .order_by(VerificationRecord.pending_since, VerificationRecord.id)
            .execution_options(populate_existing=True)
        )
        with self.store.guard(f"list pending {kind.value}"):
            rows = self.db.execute(query).all()

        return [
            PendingItem(
                record_id=record.id,
                principal_id=principal.id,
                principal_kind=principal.kind,
                display_name=principal.display_name,
                email=principal.email,
                kind=record.kind,
                status=record.status,
                version=record.version,
                evidence=record.evidence,
                pending_since=record.pending_since,
                registered_at=principal.created_at,
            )
            for record, principal in rows
        ]

    def pending_approvals(self) -> PendingApprovalsResponse:
        """Both queues at once."""
        return PendingApprovalsResponse(
            account=self.list_pending(VerificationKind.ACCOUNT),
            kyb=self.list_pending(VerificationKind.KYB),
        )
