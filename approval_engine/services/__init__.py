"""Business logic services."""

from approval_engine.services.record_store import VerificationRecordStore
from approval_engine.services.audit_emitter import AuditEmitter
from approval_engine.services.decision_engine import DecisionEngine
from approval_engine.services.document_intake import DocumentIntake
from approval_engine.services.queue_projector import QueueProjector
from approval_engine.services.access_gate import AccessGate
from approval_engine.services.registration_service import RegistrationService

__all__ = [
    "VerificationRecordStore",
    "AuditEmitter",
    "DecisionEngine",
    "DocumentIntake",
    "QueueProjector",
    "AccessGate",
    "RegistrationService",
]
