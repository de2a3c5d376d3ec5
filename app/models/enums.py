"""Enumerations for the broker domain model."""

from enum import Enum


class SessionKind(str, Enum):
    """What the bank session was opened for."""

    PAYMENT = "payment"
    ACCESS = "access"


class SessionStatus(str, Enum):
    """
    Locally tracked lifecycle states.

    A session's status field may also hold any status string reported by the
    upstream API: once polled, the upstream value overwrites the local one.
    """

    PENDING = "pending"
    AUTHORIZED = "authorized"
    FAILED = "failed"


class TokenPrefix(str, Enum):
    """Correlation token prefixes, legible on callback."""

    PAYMENT = "payment_"
    ACCESS = "ais_"
