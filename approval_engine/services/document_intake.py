"""
Document intake — assembles KYB evidence and hands it in.

Evidence is a list of opaque document references from the
file storage service. It can only be edited while nobody is
reviewing it: before the first submission, or after a
rejection (which starts a fresh evidence set).
"""

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from approval_engine.models.enums import (
    PrincipalKind,
    VerificationKind,
    VerificationStatus,
)
from approval_engine.models.evidence_document import EvidenceDocument
from approval_engine.models.principal import Principal
from approval_engine.models.verification_record import (
    EDITABLE_STATUSES,
    VerificationRecord,
)
from approval_engine.services.decision_engine import DecisionEngine
from approval_engine.services.errors import (
    EmptyEvidenceError,
    InvalidTransitionError,
)
from approval_engine.services.record_store import VerificationRecordStore

logger = logging.getLogger(__name__)


class DocumentIntake:

    def __init__(self, db: Session, engine: DecisionEngine | None = None):
        self.db = db
        self.engine = engine or DecisionEngine(db)
        self.store = self.engine.store

    def _get_company(self, principal_id: int) -> Principal:
        principal = self.store.get_principal(principal_id)
        if principal.kind != PrincipalKind.COMPANY:
            raise InvalidTransitionError(
                f"Principal {principal_id} is a {principal.kind.value}; "
                f"KYB verification applies to companies only"
            )
        return principal

    def attach(self, principal_id: int, document_ref: str) -> VerificationRecord:
        """
        Add a document reference to the company's current evidence set.

        Creates the KYB record on the first call. Refused while
        the record is PENDING or VERIFIED; the evidence is left
        unchanged. Attaching a reference already in the current
        set is a no-op.
        """
        document_ref = document_ref.strip()
        if not document_ref:
            raise ValueError("document_ref must not be blank")

        principal = self._get_company(principal_id)
        record = self.store.find_record(principal_id, VerificationKind.KYB)

        if record is None:
            record = self.store.create_record(principal, VerificationKind.KYB)
        elif record.status not in EDITABLE_STATUSES:
            raise InvalidTransitionError(
                f"Cannot attach evidence while KYB verification is "
                f"{record.status.value}"
            )

        # The previous set was already reviewed, start a fresh one
        if not record.has_open_batch:
            record.evidence_batch = record.submitted_batch + 1
        else:
            with self.store.guard("load evidence"):
                if document_ref in record.evidence:
                    return record

        document = EvidenceDocument(
            record=record,
            batch=record.evidence_batch,
            document_ref=document_ref,
        )
        self.db.add(document)
        # Touch the record so the write is version-checked
        record.updated_at = datetime.utcnow()
        self.store.flush("attach evidence")
        record_id, batch = record.id, record.evidence_batch
        self.store.commit("attach evidence")

        logger.info(
            "Attached %s to KYB record %s (principal %s, batch %s)",
            document_ref, record_id, principal_id, batch,
        )
        return record

    def finalize_submission(
        self, principal_id: int, actor: str | None = None
    ) -> VerificationRecord:
        """
        Hand the current evidence set in for review.

        Moves UNVERIFIED or REJECTED to PENDING. Refused with
        EmptyEvidenceError, leaving the record unchanged, when
        no document has been attached since the last submission.
        """
        self._get_company(principal_id)
        record = self.store.find_record(principal_id, VerificationKind.KYB)

        if record is None:
            raise EmptyEvidenceError(
                f"Principal {principal_id} has not attached any documents"
            )
        if record.status not in EDITABLE_STATUSES:
            raise InvalidTransitionError(
                f"Cannot submit while KYB verification is {record.status.value}"
            )
        with self.store.guard("load evidence"):
            count = len(record.evidence) if record.has_open_batch else 0
        if not count:
            raise EmptyEvidenceError(
                f"Principal {principal_id} has no new documents to submit"
            )

        record.submitted_batch = record.evidence_batch
        self.engine.commit_transition(
            record,
            VerificationStatus.PENDING,
            actor or f"principal:{principal_id}",
            note=f"{count} document(s) submitted",
            operation="finalize submission",
        )
        return record
