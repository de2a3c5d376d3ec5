from app.models.enums import SessionKind, SessionStatus, TokenPrefix
from app.models.session import CamelModel, Session

__all__ = [
    "CamelModel",
    "Session",
    "SessionKind",
    "SessionStatus",
    "TokenPrefix",
]
