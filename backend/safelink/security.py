"""Authentication utilities (JWT issued by the external identity provider)."""

import os
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import NamedTuple, Optional

from dotenv import load_dotenv
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt

# ── Load env ──
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

JWT_SECRET = os.getenv("JWT_SECRET", "changeme-safelink-dev-secret")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRE_MINUTES = int(os.getenv("JWT_EXPIRE_MINUTES", "480"))
SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "safelink_session_token")

# ── Bearer scheme (cookie is the fallback, so no auto 403) ──
bearer_scheme = HTTPBearer(auto_error=False)


class CurrentUser(NamedTuple):
    id: str
    email: Optional[str] = None
    name: Optional[str] = None


def create_access_token(data: dict, expires_minutes: Optional[int] = None) -> str:
    """Sign a token the way the identity provider does (used by tooling and tests)."""
    to_encode = data.copy()
    exp_min = expires_minutes if expires_minutes is not None else JWT_EXPIRE_MINUTES
    expire = datetime.now(timezone.utc) + timedelta(minutes=exp_min)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode a JWT and return the payload. Raises on invalid/expired."""
    return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> CurrentUser:
    """FastAPI dependency – validates the bearer header or session cookie."""
    auth_exc = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired token",
        headers={"WWW-Authenticate": "Bearer"},
    )
    token = credentials.credentials if credentials else request.cookies.get(SESSION_COOKIE_NAME)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        payload = decode_token(token)
    except JWTError:
        raise auth_exc

    user_id = payload.get("sub")
    if not user_id:
        raise auth_exc
    return CurrentUser(id=str(user_id), email=payload.get("email"), name=payload.get("name"))
