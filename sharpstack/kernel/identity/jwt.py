"""
Access token verification.

Tokens are issued by the identity service; the training core only checks
the signature, expiry and type and reads the user id from `sub`.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from pydantic import BaseModel

from sharpstack.config import get_settings


class AccessTokenPayload(BaseModel):
    """Decoded access token claims."""

    sub: str  # User ID
    exp: datetime
    iat: Optional[datetime] = None
    email: Optional[str] = None


def create_access_token(
    user_id: uuid.UUID,
    email: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Mint an access token in the identity service's format.

    Used by internal tooling and tests; production tokens come from the
    identity service with the same secret.
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    claims = {
        "sub": str(user_id),
        "exp": expire,
        "iat": now,
        "type": "access",
    }
    if email:
        claims["email"] = email
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def verify_access_token(token: str) -> Optional[AccessTokenPayload]:
    """
    Verify and decode an access token.

    Returns:
        AccessTokenPayload if valid, None otherwise
    """
    settings = get_settings()
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None

    if claims.get("type") != "access" or "sub" not in claims:
        return None

    iat = claims.get("iat")
    return AccessTokenPayload(
        sub=claims["sub"],
        exp=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
        iat=datetime.fromtimestamp(iat, tz=timezone.utc) if iat else None,
        email=claims.get("email"),
    )
