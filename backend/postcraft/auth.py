"""Bearer-token authentication for the postcraft API.

Identity is owned by an external provider; this module only verifies the
HS256-signed JWT it issues (via python-jose) and extracts the ``sub`` claim
as the acting user id.  ``create_access_token`` mints compatible tokens for
local development and tests.
"""

import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Any

from dotenv import load_dotenv
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from postcraft.errors import AuthorizationError

load_dotenv()

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# JWT configuration
# ---------------------------------------------------------------------------
JWT_SECRET = os.getenv("JWT_SECRET", "postcraft-dev-secret-change-in-production")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRY_HOURS = int(os.getenv("JWT_EXPIRY_HOURS", "24"))

# ---------------------------------------------------------------------------
# HTTPBearer scheme
# ---------------------------------------------------------------------------
security = HTTPBearer(auto_error=False)


def create_access_token(user_id: str, email: str | None = None) -> str:
    """Create a signed JWT whose subject is *user_id*."""
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": user_id,
        "exp": now + timedelta(hours=JWT_EXPIRY_HOURS),
        "iat": now,
    }
    if email:
        payload["email"] = email
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_user_id(token: str) -> str:
    """Return the ``sub`` claim of a valid token.

    Raises:
        AuthorizationError: If the token is invalid, expired, or has no subject.
    """
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError as exc:
        logger.warning("JWT validation failed: %s", exc)
        raise AuthorizationError(
            "Invalid or expired token", details={"unauthenticated": True}
        ) from exc

    user_id = payload.get("sub") or ""
    if not user_id:
        raise AuthorizationError(
            "Invalid token payload", details={"unauthenticated": True}
        )
    return str(user_id)


async def get_current_user_id(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> str:
    """FastAPI dependency -- extract and validate the Bearer JWT.

    Falls back to reading the ``Authorization`` header directly when the
    HTTPBearer scheme did not inject credentials.
    """
    token: str | None = None

    if credentials is not None:
        token = credentials.credentials
    else:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:]

    if not token:
        raise AuthorizationError("Not authenticated", details={"unauthenticated": True})

    return decode_user_id(token)
