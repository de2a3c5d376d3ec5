"""
Audit trail for session state changes.

Every creation, status overwrite and callback transition gets one audit
line with the session id, the action and its context, plus a timestamped
note on the session record itself so the history travels with the session
in API responses.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

logger = logging.getLogger("payflow.audit")


def log_event(
    action: str,
    session_id: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
) -> None:
    """
    Emit an audit log line.

    Args:
        action: What happened (e.g. "payment_created", "status_overwritten").
        session_id: The session this event relates to.
        details: Arbitrary context (serialized to JSON).
    """
    logger.info(
        "AUDIT | session=%s action=%s | %s",
        session_id or "-",
        action,
        json.dumps(details, default=str)[:200] if details else "",
    )


def append_note(existing_notes: Optional[str], message: str) -> str:
    """Append a timestamped note to a session's notes field."""
    prefix = f"[{datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M UTC')}] "
    new_note = prefix + message
    if not existing_notes:
        return new_note
    return f"{existing_notes}\n{new_note}"
