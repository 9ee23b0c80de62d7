"""Password hashing and bearer tokens for staff and guest logins"""
import hashlib
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt
from passlib.context import CryptContext

from hotel_scheduler.config import Settings, get_settings

BCRYPT_MAX_BYTES = 72

_hasher = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__ident="2b")


def _bcrypt_input(password: str) -> str:
    # bcrypt ignores everything past 72 bytes
    raw = password.encode("utf-8")
    if len(raw) <= BCRYPT_MAX_BYTES:
        return password
    return hashlib.sha256(raw).hexdigest()


def hash_password(password: str) -> str:
    return _hasher.hash(_bcrypt_input(password))


def verify_password(password: str, hashed: str) -> bool:
    return _hasher.verify(_bcrypt_input(password), hashed)


def issue_access_token(
    subject: str,
    lifetime: Optional[timedelta] = None,
    settings: Optional[Settings] = None
) -> str:
    """Signed token naming ``subject``; expires after ``lifetime``"""
    settings = settings or get_settings()
    if lifetime is None:
        lifetime = timedelta(minutes=settings.access_token_expire_minutes)
    claims = {"sub": subject, "exp": datetime.now(timezone.utc) + lifetime}
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def token_subject(token: str, settings: Optional[Settings] = None) -> Optional[str]:
    """Subject of a valid token. Bad signatures and expired tokens raise jose.JWTError."""
    settings = settings or get_settings()
    claims = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    return claims.get("sub")
