# backend/jayple/auth.py
"""
Caller identity from bearer JWTs.

Tokens are issued by the identity service; this module only verifies them
and maps ``sub``/``role`` onto a Caller.
"""

from datetime import datetime, timedelta, timezone
import logging
from typing import Any, Dict, Optional, cast

import jwt
from jwt.exceptions import PyJWTError

from .core.caller import Caller
from .core.config import settings
from .core.enums import RoleName
from .core.exceptions import UnauthenticatedException

logger = logging.getLogger(__name__)

VALID_ROLES = frozenset(role.value for role in RoleName)


def decode_access_token(token: str) -> Dict[str, Any]:
    payload_raw = jwt.decode(
        token,
        settings.secret_key.get_secret_value(),
        algorithms=[settings.algorithm],
        options={"verify_aud": False},
    )
    return cast(Dict[str, Any], payload_raw)


def create_access_token(
    user_id: str, role: str, expires_delta: Optional[timedelta] = None
) -> str:
    """Mint a token (used by tooling and tests; production tokens come from the identity service)."""
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(hours=1))
    return jwt.encode(
        {"sub": user_id, "role": role, "exp": expire},
        settings.secret_key.get_secret_value(),
        algorithm=settings.algorithm,
    )


def caller_from_token(token: Optional[str]) -> Caller:
    if not token:
        raise UnauthenticatedException("Missing bearer token")
    try:
        payload = decode_access_token(token)
    except PyJWTError as exc:
        logger.info("Rejected access token", extra={"error": str(exc)})
        raise UnauthenticatedException("Invalid or expired token") from exc

    user_id = payload.get("sub")
    role = payload.get("role")
    if not isinstance(user_id, str) or not user_id or role not in VALID_ROLES:
        raise UnauthenticatedException("Token is missing subject or role")
    return Caller(user_id=user_id, role=role)
