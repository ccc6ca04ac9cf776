"""
Audit emitter — the append-only trail of committed decisions.

Every committed history entry gets exactly one audit row. The
append runs after the transition has committed, so a failing
audit store can never undo a decision; instead the append is
retried until durable and, if it still fails, reported loudly.
"""

import csv
import io
import json
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from approval_engine.config import get_settings
from approval_engine.models.audit_log import AuditLog
from approval_engine.models.enums import VerificationKind, VerificationStatus
from approval_engine.services.errors import AuditEmissionError
from approval_engine.services.record_store import VerificationRecordStore

logger = logging.getLogger(__name__)

# Event names by destination status
EVENT_SUFFIX = {
    VerificationStatus.PENDING: "SUBMITTED",
    VerificationStatus.ACTIVE: "APPROVED",
    VerificationStatus.VERIFIED: "APPROVED",
    VerificationStatus.REJECTED: "REJECTED",
}

CSV_FIELDS = [
    "id", "history_sequence", "event_type", "actor",
    "from_status", "to_status", "details", "created_at",
]


def event_type_for(kind: VerificationKind, to_status: VerificationStatus) -> str:
    return f"{kind.value}_{EVENT_SUFFIX.get(to_status, to_status.value)}"


def audit_values(record, entry) -> dict:
    """
    Column values of the audit row for one history entry.

    Must be called while the record and entry are still loaded,
    i.e. after the flush and before the commit expires them.
    """
    return {
        "record_id": record.id,
        "history_sequence": entry.sequence,
        "principal_id": record.principal_id,
        "kind": record.kind,
        "event_type": event_type_for(record.kind, entry.to_status),
        "actor": entry.actor,
        "from_status": entry.from_status,
        "to_status": entry.to_status,
        "details": json.dumps({"note": entry.note, "version": record.version}),
    }


class AuditEmitter:

    def __init__(
        self,
        db: Session,
        attempts: int | None = None,
        wait_seconds: float | None = None,
    ):
        settings = get_settings()
        self.db = db
        self.store = VerificationRecordStore(db)
        self.attempts = (
            settings.AUDIT_RETRY_ATTEMPTS if attempts is None else attempts
        )
        self.wait_seconds = (
            settings.AUDIT_RETRY_WAIT_SECONDS
            if wait_seconds is None else wait_seconds
        )

    def emit(self, values: dict, record=None) -> AuditLog:
        """
        Append the audit row built by audit_values().

        Retries transient store failures with exponential backoff.
        Appending the same entry twice returns the existing row.
        Any store error that outlasts the retries is logged at
        CRITICAL and raised as AuditEmissionError carrying the
        committed record; the transition itself stays committed.
        """
        retrying = Retrying(
            stop=stop_after_attempt(self.attempts),
            wait=wait_exponential(
                multiplier=self.wait_seconds, max=self.wait_seconds * 10
            ),
            retry=retry_if_exception_type(OperationalError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        try:
            for attempt in retrying:
                with attempt:
                    audit = self._append(values)
        except SQLAlchemyError as e:
            logger.critical(
                "Audit entry lost for record %s #%s (%s) after %s attempts: %s",
                values["record_id"], values["history_sequence"],
                values["event_type"], self.attempts, e,
            )
            raise AuditEmissionError(
                f"Decision committed but audit entry "
                f"{values['event_type']} could not be recorded",
                record=record,
            ) from e

        logger.info(
            "Audit %s recorded for record %s #%s by %s",
            values["event_type"], values["record_id"],
            values["history_sequence"], values["actor"],
        )
        return audit

    def _find(self, record_id: int, sequence: int) -> AuditLog | None:
        return self.db.execute(
            select(AuditLog).where(
                AuditLog.record_id == record_id,
                AuditLog.history_sequence == sequence,
            )
        ).scalar_one_or_none()

    def _append(self, values: dict) -> AuditLog:
        """Write one audit row in its own transaction."""
        try:
            existing = self._find(values["record_id"], values["history_sequence"])
            if existing:
                return existing

            audit = AuditLog(**values)
            self.db.add(audit)
            self.db.commit()
            return audit
        except IntegrityError:
            # A concurrent append of the same entry won
            self.db.rollback()
            existing = self._find(values["record_id"], values["history_sequence"])
            if existing is None:
                raise
            return existing
        except SQLAlchemyError:
            self.db.rollback()
            raise

    def history(
        self, principal_id: int, kind: VerificationKind
    ) -> list[AuditLog]:
        """
        Return the audit trail for (principal, kind).

        Ordered by the sequence of the committed transitions,
        which is also the order they were committed in.
        """
        self.store.get_principal(principal_id)

        with self.store.guard("load audit trail"):
            entries = self.db.execute(
                select(AuditLog)
                .where(
                    AuditLog.principal_id == principal_id,
                    AuditLog.kind == kind,
                )
                .order_by(AuditLog.history_sequence)
            ).scalars().all()
        return list(entries)

    def export_csv(self, principal_id: int, kind: VerificationKind) -> str:
        """Render the audit trail for (principal, kind) as CSV."""
        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=CSV_FIELDS)
        writer.writeheader()
        for entry in self.history(principal_id, kind):
            writer.writerow({
                "id": entry.id,
                "history_sequence": entry.history_sequence,
                "event_type": entry.event_type,
                "actor": entry.actor,
                "from_status": entry.from_status.value,
                "to_status": entry.to_status.value,
                "details": entry.details,
                "created_at": entry.created_at.isoformat(),
            })
        return buffer.getvalue()
