"""
Registration service — admits new principals.

Registering a user or company creates the principal and its
account verification record, and moves the record straight
to PENDING: there is no separate submission step for accounts.
All three land in one transaction.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from approval_engine.models.enums import VerificationKind, VerificationStatus
from approval_engine.models.principal import Principal
from approval_engine.schemas.verification import PrincipalCreate
from approval_engine.services.decision_engine import DecisionEngine

REGISTRATION_ACTOR = "system:registration"


class RegistrationService:

    def __init__(self, db: Session, engine: DecisionEngine | None = None):
        self.db = db
        self.engine = engine or DecisionEngine(db)
        self.store = self.engine.store

    def register(self, request: PrincipalCreate) -> Principal:
        """Create a principal awaiting account approval."""
        email = request.email.strip().lower()
        with self.store.guard("check email"):
            existing = self.db.execute(
                select(Principal).where(Principal.email == email)
            ).scalar_one_or_none()

        if existing:
            raise ValueError(f"Principal with email '{email}' already exists")

        principal = Principal(
            kind=request.kind,
            display_name=request.display_name,
            email=email,
        )
        self.db.add(principal)

        record = self.store.create_record(principal, VerificationKind.ACCOUNT)
        self.engine.commit_transition(
            record,
            VerificationStatus.PENDING,
            REGISTRATION_ACTOR,
            note="Registration completed",
            operation="register principal",
        )
        return principal

    def get_principal(self, principal_id: int) -> Principal:
        return self.store.get_principal(principal_id)
