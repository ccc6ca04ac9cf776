"""
Tests for the AuditEmitter.
"""

import csv
import io
import json

import pytest
from sqlalchemy.exc import OperationalError

from approval_engine.models.enums import (
    DecisionAction,
    PrincipalKind,
    VerificationKind,
    VerificationStatus,
)
from approval_engine.schemas.verification import Decision, PrincipalCreate
from approval_engine.services.audit_emitter import (
    AuditEmitter,
    audit_values,
    event_type_for,
)
from approval_engine.services.decision_engine import DecisionEngine
from approval_engine.services.document_intake import DocumentIntake
from approval_engine.services.errors import (
    AuditEmissionError,
    NotFoundError,
    StoreTimeoutError,
    StoreUnavailableError,
)
from approval_engine.services.record_store import VerificationRecordStore
from approval_engine.services.registration_service import RegistrationService


def register(db_session, kind=PrincipalKind.COMPANY, email="c1@example.com"):
    return RegistrationService(db_session).register(PrincipalCreate(
        kind=kind, display_name="Acme", email=email,
    ))


def submit_kyb(db_session, principal_id, refs=("d1",)):
    intake = DocumentIntake(db_session)
    for ref in refs:
        intake.attach(principal_id, ref)
    return intake.finalize_submission(principal_id)


def decide(db_session, principal_id, kind, action, reason=None):
    return DecisionEngine(db_session).apply(Decision(
        principal_id=principal_id, kind=kind, action=action,
        actor="A1", reason=reason,
    ))


def transient_failure():
    return OperationalError("INSERT INTO audit_log", {}, Exception("database is locked"))


class TestEventTypes:

    def test_names(self):
        assert event_type_for(
            VerificationKind.ACCOUNT, VerificationStatus.ACTIVE
        ) == "ACCOUNT_APPROVED"
        assert event_type_for(
            VerificationKind.KYB, VerificationStatus.VERIFIED
        ) == "KYB_APPROVED"
        assert event_type_for(
            VerificationKind.KYB, VerificationStatus.PENDING
        ) == "KYB_SUBMITTED"


class TestHistory:

    def test_one_entry_per_transition_in_order(self, db_session):
        company = register(db_session)
        submit_kyb(db_session, company.id)
        decide(db_session, company.id, VerificationKind.KYB, DecisionAction.REJECT)
        submit_kyb(db_session, company.id, ("d3",))
        decide(db_session, company.id, VerificationKind.KYB, DecisionAction.APPROVE)

        trail = AuditEmitter(db_session).history(company.id, VerificationKind.KYB)

        assert [a.event_type for a in trail] == [
            "KYB_SUBMITTED", "KYB_REJECTED", "KYB_SUBMITTED", "KYB_APPROVED",
        ]
        assert [a.history_sequence for a in trail] == [1, 2, 3, 4]

    def test_trail_matches_record_history(self, db_session):
        company = register(db_session)
        submit_kyb(db_session, company.id)
        decide(db_session, company.id, VerificationKind.KYB, DecisionAction.APPROVE)

        record = VerificationRecordStore(db_session).get_record(
            company.id, VerificationKind.KYB
        )
        trail = AuditEmitter(db_session).history(company.id, VerificationKind.KYB)

        assert [(a.from_status, a.to_status, a.actor) for a in trail] == [
            (e.from_status, e.to_status, e.actor) for e in record.history
        ]

    def test_kinds_kept_apart(self, db_session):
        company = register(db_session)
        submit_kyb(db_session, company.id)

        account = AuditEmitter(db_session).history(
            company.id, VerificationKind.ACCOUNT
        )
        assert [a.event_type for a in account] == ["ACCOUNT_SUBMITTED"]

    def test_details_carry_reason(self, db_session):
        user = register(db_session, PrincipalKind.USER, "u1@example.com")
        decide(
            db_session, user.id, VerificationKind.ACCOUNT, DecisionAction.REJECT,
            reason="Spam signup",
        )

        trail = AuditEmitter(db_session).history(user.id, VerificationKind.ACCOUNT)
        details = json.loads(trail[-1].details)
        assert details == {"note": "Spam signup", "version": 2}

    def test_unknown_principal(self, db_session):
        with pytest.raises(NotFoundError):
            AuditEmitter(db_session).history(999, VerificationKind.KYB)

    def test_store_outage_is_typed(self, db_session, read_outage):
        company_id = register(db_session).id
        emitter = AuditEmitter(db_session)

        read_outage["on"] = True
        with pytest.raises(StoreUnavailableError):
            emitter.history(company_id, VerificationKind.ACCOUNT)

    def test_trail_read_failure_is_typed(self, db_session, read_outage):
        company = register(db_session)
        emitter = AuditEmitter(db_session)
        # Principal is already in the session; only the trail query hits the store
        emitter.store.get_principal(company.id)

        read_outage["message"] = "database is locked"
        read_outage["on"] = True
        with pytest.raises(StoreTimeoutError):
            emitter.history(company.id, VerificationKind.ACCOUNT)


class TestEmit:

    def test_emit_is_idempotent(self, db_session):
        user = register(db_session, PrincipalKind.USER, "u1@example.com")
        record = VerificationRecordStore(db_session).get_record(
            user.id, VerificationKind.ACCOUNT
        )
        emitter = AuditEmitter(db_session)

        first = emitter.history(user.id, VerificationKind.ACCOUNT)[0]
        again = emitter.emit(
            audit_values(record, record.history[0]), record=record
        )

        assert again.id == first.id
        assert len(emitter.history(user.id, VerificationKind.ACCOUNT)) == 1

    def test_transient_failure_retried(self, db_session, monkeypatch):
        user = register(db_session, PrincipalKind.USER, "u1@example.com")
        emitter = AuditEmitter(db_session, attempts=3, wait_seconds=0)
        real_append = emitter._append
        calls = []

        def flaky_append(values):
            calls.append(values["history_sequence"])
            if len(calls) == 1:
                raise transient_failure()
            return real_append(values)

        monkeypatch.setattr(emitter, "_append", flaky_append)
        DecisionEngine(db_session, audit=emitter).apply(Decision(
            principal_id=user.id,
            kind=VerificationKind.ACCOUNT,
            action=DecisionAction.APPROVE,
            actor="A1",
        ))

        assert calls == [2, 2]
        trail = emitter.history(user.id, VerificationKind.ACCOUNT)
        assert [a.event_type for a in trail] == [
            "ACCOUNT_SUBMITTED", "ACCOUNT_APPROVED",
        ]

    def test_exhausted_retries_raise(self, db_session, monkeypatch):
        user = register(db_session, PrincipalKind.USER, "u1@example.com")
        record = VerificationRecordStore(db_session).get_record(
            user.id, VerificationKind.ACCOUNT
        )
        emitter = AuditEmitter(db_session, attempts=3, wait_seconds=0)
        calls = []

        def failing_append(values):
            calls.append(values)
            raise transient_failure()

        monkeypatch.setattr(emitter, "_append", failing_append)
        values = audit_values(record, record.history[0])

        with pytest.raises(AuditEmissionError) as exc_info:
            emitter.emit(values, record=record)

        assert len(calls) == 3
        assert exc_info.value.record is record

    def test_zero_attempts_not_replaced_by_default(self, db_session, monkeypatch):
        user = register(db_session, PrincipalKind.USER, "u1@example.com")
        record = VerificationRecordStore(db_session).get_record(
            user.id, VerificationKind.ACCOUNT
        )
        emitter = AuditEmitter(db_session, attempts=0, wait_seconds=0)
        calls = []

        def failing_append(values):
            calls.append(values)
            raise transient_failure()

        monkeypatch.setattr(emitter, "_append", failing_append)
        values = audit_values(record, record.history[0])

        assert emitter.attempts == 0
        with pytest.raises(AuditEmissionError):
            emitter.emit(values, record=record)
        # tenacity always makes the first attempt
        assert len(calls) == 1


class TestExportCsv:

    def test_export(self, db_session):
        user = register(db_session, PrincipalKind.USER, "u1@example.com")
        decide(db_session, user.id, VerificationKind.ACCOUNT, DecisionAction.APPROVE)

        text = AuditEmitter(db_session).export_csv(user.id, VerificationKind.ACCOUNT)
        rows = list(csv.DictReader(io.StringIO(text)))

        assert [row["event_type"] for row in rows] == [
            "ACCOUNT_SUBMITTED", "ACCOUNT_APPROVED",
        ]
        assert rows[1]["actor"] == "A1"
        assert rows[1]["from_status"] == "PENDING"
        assert rows[1]["to_status"] == "ACTIVE"

    def test_empty_trail_has_header(self, db_session):
        company = register(db_session)
        text = AuditEmitter(db_session).export_csv(company.id, VerificationKind.KYB)
        assert text.strip().split(",")[0] == "id"
        assert len(text.strip().splitlines()) == 1
