"""
Inbox finalization.

Validates the name the user gives the freshly linked inbox and builds the
record handed back to the embedding application. No gateway call is made:
the session is already connected by the time naming starts.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .session import InboxRecord


class InboxNameError(ValueError):
    """Raised for a missing, non-text or whitespace-only inbox name"""


def validate_inbox_name(name: Optional[str]) -> str:
    """Return the trimmed name, or raise InboxNameError if nothing is left."""
    if not isinstance(name, str):
        raise InboxNameError("Inbox name is required")
    cleaned = name.strip()
    if not cleaned:
        raise InboxNameError("Inbox name is required")
    return cleaned


def build_inbox_record(
    session_id: str,
    name: str,
    metadata: Optional[Dict[str, Any]] = None,
) -> InboxRecord:
    return InboxRecord(
        id=str(uuid.uuid4()),
        name=validate_inbox_name(name),
        session_id=session_id,
        created_at=datetime.now(timezone.utc).isoformat(),
        metadata=metadata or {},
    )
