"""
Tests for DocumentIntake: attaching KYB evidence and submitting it.
"""

import pytest

from approval_engine.models.enums import (
    DecisionAction,
    PrincipalKind,
    VerificationKind,
    VerificationStatus,
)
from approval_engine.schemas.verification import Decision, PrincipalCreate
from approval_engine.services.decision_engine import DecisionEngine
from approval_engine.services.document_intake import DocumentIntake
from approval_engine.services.errors import (
    EmptyEvidenceError,
    InvalidTransitionError,
    NotFoundError,
    StaleStateError,
)
from approval_engine.services.record_store import VerificationRecordStore
from approval_engine.services.registration_service import RegistrationService


def register(db_session, kind=PrincipalKind.COMPANY, email="c1@example.com"):
    return RegistrationService(db_session).register(PrincipalCreate(
        kind=kind, display_name="Acme", email=email,
    ))


def reject_kyb(db_session, principal_id):
    return DecisionEngine(db_session).apply(Decision(
        principal_id=principal_id,
        kind=VerificationKind.KYB,
        action=DecisionAction.REJECT,
        actor="A1",
        reason="invalid doc",
    ))


class TestAttach:

    def test_first_attach_creates_record(self, db_session):
        company = register(db_session)
        record = DocumentIntake(db_session).attach(company.id, "d1")

        assert record.kind == VerificationKind.KYB
        assert record.status == VerificationStatus.UNVERIFIED
        assert record.evidence == ["d1"]
        assert record.history == []

    def test_attach_keeps_order(self, db_session):
        company = register(db_session)
        intake = DocumentIntake(db_session)
        intake.attach(company.id, "d1")
        record = intake.attach(company.id, "d2")

        assert record.evidence == ["d1", "d2"]

    def test_duplicate_ref_is_noop(self, db_session):
        company = register(db_session)
        intake = DocumentIntake(db_session)
        intake.attach(company.id, "d1")
        version = intake.attach(company.id, "d1").version

        record = intake.attach(company.id, "d1")
        assert record.evidence == ["d1"]
        assert record.version == version

    def test_ref_is_trimmed(self, db_session):
        company = register(db_session)
        record = DocumentIntake(db_session).attach(company.id, "  d1 ")
        assert record.evidence == ["d1"]

    def test_blank_ref_rejected(self, db_session):
        company = register(db_session)
        with pytest.raises(ValueError):
            DocumentIntake(db_session).attach(company.id, "   ")

    def test_attach_while_pending_refused(self, db_session):
        company = register(db_session)
        intake = DocumentIntake(db_session)
        intake.attach(company.id, "d1")
        intake.finalize_submission(company.id)

        with pytest.raises(InvalidTransitionError, match="PENDING"):
            intake.attach(company.id, "d2")

        record = VerificationRecordStore(db_session).get_record(
            company.id, VerificationKind.KYB
        )
        assert record.evidence == ["d1"]

    def test_rejection_starts_fresh_evidence(self, db_session):
        company = register(db_session)
        intake = DocumentIntake(db_session)
        intake.attach(company.id, "d1")
        intake.attach(company.id, "d2")
        intake.finalize_submission(company.id)
        reject_kyb(db_session, company.id)

        record = intake.attach(company.id, "d1")
        assert record.evidence == ["d1"]
        assert record.status == VerificationStatus.REJECTED
        # Earlier batches stay on the record for reviewers
        assert [d.document_ref for d in record.documents] == ["d1", "d2", "d1"]

    def test_user_has_no_kyb(self, db_session):
        user = register(db_session, PrincipalKind.USER, "u1@example.com")
        with pytest.raises(InvalidTransitionError, match="companies only"):
            DocumentIntake(db_session).attach(user.id, "d1")

    def test_unknown_principal(self, db_session):
        with pytest.raises(NotFoundError):
            DocumentIntake(db_session).attach(999, "d1")


class TestFinalizeSubmission:

    def test_submission_moves_to_pending(self, db_session):
        company = register(db_session)
        intake = DocumentIntake(db_session)
        intake.attach(company.id, "d1")
        intake.attach(company.id, "d2")

        record = intake.finalize_submission(company.id)

        assert record.status == VerificationStatus.PENDING
        assert record.pending_since is not None
        assert len(record.history) == 1
        entry = record.history[0]
        assert entry.from_status == VerificationStatus.UNVERIFIED
        assert entry.actor == f"principal:{company.id}"
        assert entry.note == "2 document(s) submitted"

    def test_explicit_actor(self, db_session):
        company = register(db_session)
        intake = DocumentIntake(db_session)
        intake.attach(company.id, "d1")

        record = intake.finalize_submission(company.id, actor="owner@acme.io")
        assert record.history[0].actor == "owner@acme.io"

    def test_nothing_attached(self, db_session):
        company = register(db_session)
        with pytest.raises(EmptyEvidenceError):
            DocumentIntake(db_session).finalize_submission(company.id)

        assert VerificationRecordStore(db_session).find_record(
            company.id, VerificationKind.KYB
        ) is None

    def test_resubmission_needs_new_evidence(self, db_session):
        company = register(db_session)
        intake = DocumentIntake(db_session)
        intake.attach(company.id, "d1")
        intake.finalize_submission(company.id)
        reject_kyb(db_session, company.id)

        with pytest.raises(EmptyEvidenceError):
            intake.finalize_submission(company.id)

        record = VerificationRecordStore(db_session).get_record(
            company.id, VerificationKind.KYB
        )
        assert record.status == VerificationStatus.REJECTED
        assert len(record.history) == 2

    def test_resubmission_after_rejection(self, db_session):
        company = register(db_session)
        intake = DocumentIntake(db_session)
        intake.attach(company.id, "d1")
        intake.finalize_submission(company.id)
        reject_kyb(db_session, company.id)

        intake.attach(company.id, "d3")
        record = intake.finalize_submission(company.id)

        assert record.status == VerificationStatus.PENDING
        assert record.evidence == ["d3"]
        assert record.history[-1].from_status == VerificationStatus.REJECTED

    def test_double_submission_refused(self, db_session):
        company = register(db_session)
        intake = DocumentIntake(db_session)
        intake.attach(company.id, "d1")
        intake.finalize_submission(company.id)

        with pytest.raises(InvalidTransitionError):
            intake.finalize_submission(company.id)


class TestConcurrentIntake:

    def assert_submitted_unchanged(self, session_factory, company_id):
        record = VerificationRecordStore(session_factory()).get_record(
            company_id, VerificationKind.KYB
        )
        assert record.status == VerificationStatus.PENDING
        assert record.evidence == ["d1"]
        assert [e.to_status for e in record.history] == [VerificationStatus.PENDING]

    def test_attach_from_stale_read_loses_to_submission(
        self, db_session, session_factory,
    ):
        company_id = register(db_session).id
        DocumentIntake(db_session).attach(company_id, "d1")

        # Second session read the record while it was still editable
        other = session_factory()
        stale = VerificationRecordStore(other).get_record(
            company_id, VerificationKind.KYB
        )
        assert stale.status == VerificationStatus.UNVERIFIED

        DocumentIntake(db_session).finalize_submission(company_id)

        with pytest.raises(StaleStateError):
            DocumentIntake(other).attach(company_id, "d2")

        self.assert_submitted_unchanged(session_factory, company_id)

    def test_attach_after_submission_refused(self, db_session, session_factory):
        company_id = register(db_session).id
        DocumentIntake(db_session).attach(company_id, "d1")
        DocumentIntake(db_session).finalize_submission(company_id)

        with pytest.raises(InvalidTransitionError, match="PENDING"):
            DocumentIntake(session_factory()).attach(company_id, "d2")

        self.assert_submitted_unchanged(session_factory, company_id)
