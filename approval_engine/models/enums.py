"""
Shared enumerations for database models.

Using Python enums mapped to database enums ensures that
only valid values can be stored. An unknown status or
verification kind is caught at the database level, not just
in Python validation.
"""

import enum


class PrincipalKind(str, enum.Enum):
    """Who is being verified."""
    USER = "USER"
    COMPANY = "COMPANY"


class VerificationKind(str, enum.Enum):
    """Which gate a verification record controls."""
    ACCOUNT = "ACCOUNT"
    KYB = "KYB"


class VerificationStatus(str, enum.Enum):
    """
    Union of the account and KYB states.

    ACTIVE is only reachable by account records and
    VERIFIED only by KYB records.
    """
    UNVERIFIED = "UNVERIFIED"
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"


class DecisionAction(str, enum.Enum):
    """What an administrator can decide about a pending record."""
    APPROVE = "APPROVE"
    REJECT = "REJECT"


class Capability(str, enum.Enum):
    """Privileges unlocked by an approval."""
    LOGIN = "LOGIN"
    CREATE_PRIVATE_PROGRAM = "CREATE_PRIVATE_PROGRAM"
    INVITE_MEMBERS = "INVITE_MEMBERS"
