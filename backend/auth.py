import hashlib
import secrets
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from database import get_session_user_db

PBKDF2_ITERATIONS = 260_000

bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str, salt: Optional[str] = None) -> tuple[str, str]:
    """PBKDF2-HMAC-SHA256 hash with a per-user salt. Returns (hash, salt)."""
    if salt is None:
        salt = secrets.token_hex(16)
    key = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), PBKDF2_ITERATIONS)
    return key.hex(), salt


def verify_password(password: str, stored_hash: str, salt: str) -> bool:
    return secrets.compare_digest(hash_password(password, salt)[0], stored_hash)


def generate_token() -> str:
    return secrets.token_urlsafe(32)


def get_current_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> dict:
    """Resolve the bearer token to {"user_id", "email", "token"} or reject with 401."""
    if not credentials:
        raise HTTPException(status_code=401, detail="Not authenticated")
    session = get_session_user_db(credentials.credentials)
    if not session:
        raise HTTPException(status_code=401, detail="Invalid or expired session")
    return {**session, "token": credentials.credentials}


def get_current_user(session: dict = Depends(get_current_session)) -> str:
    """The current user's id."""
    return session["user_id"]
