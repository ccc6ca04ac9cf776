"""
Verification record store — the only mutable shared resource.

This service owns the unit of work for every write the engine
makes. It enforces:
1. At most one record per (principal, kind)
2. Status and history land together or not at all
3. A write based on an outdated read is refused (compare-and-set)
4. Store failures never leave a partially written record

Other services decide WHAT to write; they hand the staged
changes to commit() to make them durable.
"""

import logging
from contextlib import contextmanager

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from approval_engine.models.enums import VerificationKind
from approval_engine.models.principal import Principal
from approval_engine.models.verification_record import (
    INITIAL_STATUS,
    VerificationRecord,
)
from approval_engine.services.errors import (
    InvalidTransitionError,
    NotFoundError,
    StaleStateError,
    StoreTimeoutError,
    StoreUnavailableError,
)

logger = logging.getLogger(__name__)

# Driver messages that mean "gave up waiting" rather than "broken"
TIMEOUT_MARKERS = (
    "database is locked",
    "statement timeout",
    "lock timeout",
    "timed out",
    "timeout expired",
)


def is_timeout(error: OperationalError) -> bool:
    message = str(error.orig if error.orig is not None else error).lower()
    return any(marker in message for marker in TIMEOUT_MARKERS)


class VerificationRecordStore:
    """
    Load, create and commit verification records.

    The store takes a database session as a constructor
    argument and owns its commit: once commit() returns, the
    staged transition is durable; if it raises, the session
    has been rolled back and nothing was written.
    """

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def guard(self, operation: str):
        """
        Translate store failures into the engine's error taxonomy.

        Any exception escaping the block rolls the session back,
        including interrupts that arrive before the commit.
        """
        try:
            yield
        except StaleDataError as e:
            self.db.rollback()
            logger.warning("Lost concurrent write during %s: %s", operation, e)
            raise StaleStateError(
                f"Record changed concurrently during {operation}; "
                f"re-read the current status and retry if still valid"
            ) from e
        except IntegrityError as e:
            self.db.rollback()
            logger.warning("Constraint conflict during %s: %s", operation, e.orig)
            raise StaleStateError(
                f"Conflicting concurrent write during {operation}"
            ) from e
        except OperationalError as e:
            self.db.rollback()
            if is_timeout(e):
                logger.warning("Store timeout during %s: %s", operation, e.orig)
                raise StoreTimeoutError(
                    f"Store timed out during {operation}; nothing was written"
                ) from e
            logger.error("Store unavailable during %s: %s", operation, e.orig)
            raise StoreUnavailableError(
                f"Store unavailable during {operation}; nothing was written"
            ) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Store failure during %s: %s", operation, e)
            raise StoreUnavailableError(
                f"Store failure during {operation}; nothing was written"
            ) from e
        except BaseException:
            self.db.rollback()
            raise

    def get_principal(self, principal_id: int) -> Principal:
        """Get a principal by ID."""
        with self.guard("load principal"):
            principal = self.db.get(Principal, principal_id)
        if not principal:
            raise NotFoundError(f"Principal {principal_id} not found")
        return principal

    def find_record(
        self, principal_id: int, kind: VerificationKind
    ) -> VerificationRecord | None:
        """Return the record for (principal, kind), or None."""
        with self.guard("load record"):
            return self.db.execute(
                select(VerificationRecord).where(
                    VerificationRecord.principal_id == principal_id,
                    VerificationRecord.kind == kind,
                )
            ).scalar_one_or_none()

    def get_record(
        self, principal_id: int, kind: VerificationKind
    ) -> VerificationRecord:
        """Return the record for (principal, kind) or raise NotFoundError."""
        record = self.find_record(principal_id, kind)
        if not record:
            raise NotFoundError(
                f"No {kind.value} verification record for principal {principal_id}"
            )
        return record

    def create_record(
        self, principal: Principal, kind: VerificationKind
    ) -> VerificationRecord:
        """
        Stage a new record in UNVERIFIED.

        Creation is not idempotent by duplication: if a record
        already exists it is refused, and a concurrent creator
        loses on the unique constraint at commit time.
        """
        existing = self.find_record(principal.id, kind)
        if existing:
            raise InvalidTransitionError(
                f"{kind.value} verification already exists for principal "
                f"{principal.id} (status: {existing.status.value})"
            )

        record = VerificationRecord(
            principal=principal,
            kind=kind,
            status=INITIAL_STATUS,
            evidence_batch=1,
            submitted_batch=0,
        )
        self.db.add(record)
        return record

    def flush(self, operation: str) -> None:
        """
        Send staged writes without committing them.

        Runs the version check early and assigns primary keys,
        so callers can read what is about to commit while the
        transaction is still open.
        """
        with self.guard(operation):
            self.db.flush()

    def commit(self, operation: str) -> None:
        """
        Make everything staged in the session durable, atomically.

        The record UPDATE carries "AND version = :read_version";
        if another writer got there first the flush raises and
        the whole unit of work is rolled back.
        """
        with self.guard(operation):
            self.db.flush()
            self.db.commit()
