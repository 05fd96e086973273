"""Shared constants and assertions for the dispatch tests."""

from typing import Any, List, Optional, Tuple

from jayple.auth import create_access_token

CITY = "blr"


def status_path(booking: Any) -> List[Tuple[Optional[str], str]]:
    """(from, to) pairs of the booking's STATUS events in write order."""
    return [
        (event.from_status, event.to_status)
        for event in booking.status_events
        if event.event_type == "STATUS"
    ]


def auth_headers(user_id: str, role: str) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user_id, role)}"}
