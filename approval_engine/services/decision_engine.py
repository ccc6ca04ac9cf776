"""
Decision engine — the verification state machine.

This is the only code that writes a record's status and
history. Each decision:
1. Loads the record and checks it is PENDING
2. Stages the history entry and the new status together
3. Commits them with a compare-and-set on the record version
4. Appends the audit entry (retried until durable)
5. Publishes a DecisionCommitted event to collaborators

A decision that loses a race to another writer is refused
with StaleStateError and leaves no trace. The engine never
retries a decision on its own.
"""

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from approval_engine.models.enums import DecisionAction, VerificationStatus
from approval_engine.models.history_entry import HistoryEntry
from approval_engine.models.verification_record import (
    APPROVED_STATUS,
    VerificationRecord,
)
from approval_engine.schemas.verification import Decision
from approval_engine.services.audit_emitter import AuditEmitter, audit_values
from approval_engine.services.errors import InvalidTransitionError
from approval_engine.services.events import (
    GRANTS,
    DecisionCommitted,
    EventPublisher,
    get_publisher,
)
from approval_engine.services.record_store import VerificationRecordStore

logger = logging.getLogger(__name__)


class DecisionEngine:

    def __init__(
        self,
        db: Session,
        audit: AuditEmitter | None = None,
        events: EventPublisher | None = None,
    ):
        self.db = db
        self.store = VerificationRecordStore(db)
        self.audit = audit or AuditEmitter(db)
        self.events = events or get_publisher()

    def stage_transition(
        self,
        record: VerificationRecord,
        new_status: VerificationStatus,
        actor: str,
        note: str | None = None,
    ) -> HistoryEntry:
        """
        Stage one status change without committing it.

        Status and history entry are changed together so the
        record always equals the fold of its history.
        """
        if not record.can_transition_to(new_status):
            raise InvalidTransitionError(
                f"Cannot transition {record.kind.value} verification from "
                f"{record.status.value} to {new_status.value}"
            )

        with self.store.guard("load history"):
            sequence = len(record.history) + 1

        entry = HistoryEntry(
            record=record,
            sequence=sequence,
            from_status=record.status,
            to_status=new_status,
            actor=actor,
            note=note,
        )
        self.db.add(entry)

        record.status = new_status
        if new_status == VerificationStatus.PENDING:
            record.pending_since = datetime.utcnow()
        return entry

    def _commit(
        self,
        record: VerificationRecord,
        new_status: VerificationStatus,
        actor: str,
        note: str | None,
        operation: str,
    ) -> dict:
        """
        Stage and commit one status change; return its audit values.

        The values are read between flush and commit. After the
        commit the record is expired, and nothing here may go back
        to the store for it.
        """
        entry = self.stage_transition(record, new_status, actor, note)
        self.store.flush(operation)
        with self.store.guard(operation):
            values = audit_values(record, entry)
        self.store.commit(operation)

        logger.info(
            "Record %s (%s, principal %s): %s -> %s by %s",
            values["record_id"], values["kind"].value, values["principal_id"],
            values["from_status"].value, values["to_status"].value, actor,
        )
        return values

    def commit_transition(
        self,
        record: VerificationRecord,
        new_status: VerificationStatus,
        actor: str,
        note: str | None = None,
        operation: str = "transition",
    ) -> None:
        """
        Stage, commit and audit one status change.

        Anything else already staged in the session (a new
        principal, submitted evidence) commits in the same
        transaction.
        """
        values = self._commit(record, new_status, actor, note, operation)
        self.audit.emit(values, record=record)

    def apply(self, decision: Decision) -> VerificationRecord:
        """
        Apply an APPROVE or REJECT to a PENDING record, exactly once.

        Raises NotFoundError, InvalidTransitionError, StaleStateError,
        StoreTimeoutError or StoreUnavailableError with nothing
        written, or AuditEmissionError after the decision committed.
        """
        record = self.store.get_record(decision.principal_id, decision.kind)

        if record.status != VerificationStatus.PENDING:
            raise InvalidTransitionError(
                f"{decision.kind.value} verification for principal "
                f"{decision.principal_id} is {record.status.value}, not PENDING"
            )

        approved = decision.action == DecisionAction.APPROVE
        new_status = (
            APPROVED_STATUS[decision.kind] if approved
            else VerificationStatus.REJECTED
        )
        event = DecisionCommitted(
            principal_id=decision.principal_id,
            kind=decision.kind,
            action=decision.action,
            status=new_status,
            actor=decision.actor,
            reason=decision.reason,
            grants=GRANTS[decision.kind] if approved else (),
        )

        values = self._commit(
            record,
            new_status,
            decision.actor,
            decision.reason,
            operation=f"{decision.action.value.lower()} {decision.kind.value}",
        )
        # The decision already took effect: collaborators hear about
        # it even if the audit append has to be escalated.
        try:
            self.audit.emit(values, record=record)
        finally:
            self.events.publish(event)
        return record
