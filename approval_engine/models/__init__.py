"""
Database models package.

All models must be imported here so that Alembic can discover
them through Base.metadata when generating migrations.
"""

from approval_engine.models.base import Base
from approval_engine.models.enums import (
    PrincipalKind,
    VerificationKind,
    VerificationStatus,
    DecisionAction,
    Capability,
)
from approval_engine.models.audit_log import AuditLog
from approval_engine.models.principal import Principal
from approval_engine.models.verification_record import VerificationRecord
from approval_engine.models.history_entry import HistoryEntry
from approval_engine.models.evidence_document import EvidenceDocument

__all__ = [
    "Base",
    "PrincipalKind",
    "VerificationKind",
    "VerificationStatus",
    "DecisionAction",
    "Capability",
    "AuditLog",
    "Principal",
    "VerificationRecord",
    "HistoryEntry",
    "EvidenceDocument",
]
