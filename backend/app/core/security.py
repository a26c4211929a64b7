"""
Password hashing, reset codes and bearer tokens.

Tokens carry the user id (``sub``) and the role at issue time; the role
claim is informational only, access is always re-resolved from the
database row on each request.
"""
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import jwt, JWTError
from passlib.context import CryptContext
from .config import settings

TOKEN_TYPE = "access"

# New hashes use pbkdf2_sha256; bcrypt hashes from older accounts still verify.
pwd_context = CryptContext(schemes=["pbkdf2_sha256", "bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def generate_otp(digits: int = 6) -> str:
    """Generate a numeric one-time code without a leading zero."""
    low = 10 ** (digits - 1)
    return str(low + secrets.randbelow(9 * low))


def otp_matches(expected: Optional[str], given: Optional[str]) -> bool:
    if not expected or not given:
        return False
    return secrets.compare_digest(expected, given)


def create_access_token(
    user_id: str,
    role: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Issue a signed bearer token for ``user_id``."""
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))

    claims = {
        "sub": str(user_id),
        "iat": now,
        "exp": expire,
        "type": TOKEN_TYPE,
    }
    if role:
        claims["role"] = role

    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def read_token_subject(token: str) -> Optional[str]:
    """Return the user id of a valid, unexpired access token, else None."""
    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    if claims.get("type") != TOKEN_TYPE:
        return None
    return claims.get("sub")
