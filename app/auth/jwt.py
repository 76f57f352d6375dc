from __future__ import annotations
from typing import Any, Dict, Optional

import jwt  # PyJWT
from starlette.requests import HTTPConnection

from ..config import get_settings

S = get_settings()

ALGO = "HS256"


def session_token(conn: HTTPConnection) -> Optional[str]:
    """Session token from the session cookie, else from an `Authorization: Bearer` header."""
    token = conn.cookies.get(S.SESSION_COOKIE_NAME)
    if token:
        return token
    scheme, _, value = conn.headers.get("authorization", "").partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    return None


def verify_jwt(token: str) -> Dict[str, Any]:
    """Decode a session token minted by the identity provider; raises jwt.PyJWTError when it is not ours or has expired."""
    return jwt.decode(
        token,
        S.JWT_SECRET,
        algorithms=[ALGO],
        audience=S.APP_NAME,
        issuer=S.APP_NAME,
    )
