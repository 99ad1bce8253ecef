"""
Credential helpers and the bearer-token dependency.

Passwords are hashed with bcrypt; access tokens are HS256 JWTs carrying the
dish ``id`` and ``name`` and expiring after ACCESS_TOKEN_EXPIRE_MINUTES.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import bcrypt
import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from cuisine_api.config import get_settings
from cuisine_api.utils.errors import AuthFailure
from cuisine_api.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)

BCRYPT_ROUNDS = 10
MAX_PASSWORD_BYTES = 72  # bcrypt only looks at the first 72 bytes

# auto_error=False so a missing header is answered with our own 403 body
bearer_scheme = HTTPBearer(auto_error=False)


def get_password_hash(password: str) -> str:
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS))
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # Malformed stored hash or over-long password
        logger.warning("Password verification could not be performed")
        return False


def create_access_token(data: dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Sign ``data`` into a JWT with ``iat`` and ``exp`` claims."""
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {**data, "iat": now, "exp": expire}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any]:
    """Verify signature and expiry; raise AuthFailure(401) otherwise."""
    try:
        claims = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            options={"require": ["exp"]},
        )
    except jwt.InvalidTokenError as e:
        logger.warning(f"Rejected token: {e}")
        raise AuthFailure("Invalid token.", status_code=401)

    if not claims.get("id") or not claims.get("name"):
        logger.warning("Rejected token: missing identity claims")
        raise AuthFailure("Invalid token.", status_code=401)
    return claims


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> dict[str, Any]:
    """Require ``Authorization: Bearer <token>`` and expose its claims.

    The decoded claims are also attached to ``request.state.user``.
    """
    # Scheme is case-sensitive: "bearer <token>" counts as no token
    raw = request.headers.get("Authorization", "")
    if credentials is None or not raw.startswith("Bearer "):
        logger.warning(f"No bearer token on {request.method} {request.url.path}")
        raise AuthFailure("Access denied. No token provided.", status_code=403)

    claims = decode_access_token(credentials.credentials)
    request.state.user = claims
    return claims
