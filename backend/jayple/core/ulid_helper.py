"""ULID generation helper utilities."""

import ulid


def generate_ulid() -> str:
    """Generate a new ULID string (random identifiers only, never idempotency keys)."""
    return str(ulid.ULID())
