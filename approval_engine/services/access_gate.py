"""
Access gate — the read-only side the session service queries.

Login and privileged company actions are permitted only by
committed approvals. The gate reads current status and never
writes.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from approval_engine.models.enums import (
    Capability,
    PrincipalKind,
    VerificationKind,
    VerificationStatus,
)
from approval_engine.models.verification_record import (
    INITIAL_STATUS,
    VerificationRecord,
)
from approval_engine.services.record_store import VerificationRecordStore


class AccessGate:

    def __init__(self, db: Session):
        self.db = db
        self.store = VerificationRecordStore(db)

    def current_status(
        self, principal_id: int, kind: VerificationKind
    ) -> VerificationStatus:
        """
        Return the committed status of (principal, kind).

        A principal with no record of that kind yet is UNVERIFIED.
        Raises NotFoundError for an unknown principal.
        """
        self.store.get_principal(principal_id)
        with self.store.guard("read status"):
            status = self.db.execute(
                select(VerificationRecord.status).where(
                    VerificationRecord.principal_id == principal_id,
                    VerificationRecord.kind == kind,
                )
            ).scalar_one_or_none()
        return status or INITIAL_STATUS

    def can_log_in(self, principal_id: int) -> bool:
        return (
            self.current_status(principal_id, VerificationKind.ACCOUNT)
            == VerificationStatus.ACTIVE
        )

    def _is_verified_company(self, principal_id: int) -> bool:
        principal = self.store.get_principal(principal_id)
        return (
            principal.kind == PrincipalKind.COMPANY
            and self.can_log_in(principal_id)
            and self.current_status(principal_id, VerificationKind.KYB)
            == VerificationStatus.VERIFIED
        )

    def can_create_private_program(self, principal_id: int) -> bool:
        return self._is_verified_company(principal_id)

    def can_invite_members(self, principal_id: int) -> bool:
        return self._is_verified_company(principal_id)

    def capabilities(self, principal_id: int) -> list[Capability]:
        """Every capability the principal currently holds."""
        granted = []
        if self.can_log_in(principal_id):
            granted.append(Capability.LOGIN)
        if self.can_create_private_program(principal_id):
            granted.append(Capability.CREATE_PRIVATE_PROGRAM)
        if self.can_invite_members(principal_id):
            granted.append(Capability.INVITE_MEMBERS)
        return granted
