from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel

from .config import settings
from ..models.user import User, UserRole

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


class TokenError(Exception):
    """Base class for token verification failures"""


class TokenInvalid(TokenError):
    pass


class TokenExpired(TokenError):
    pass


class TokenClaims(BaseModel):
    user_id: int
    email: str
    role: UserRole
    issued_at: datetime
    expires_at: datetime


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash"""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password using Argon2id"""
    return pwd_context.hash(password)


def dummy_verify() -> None:
    """Burn the same time as a real verify when there is no user to check"""
    pwd_context.dummy_verify()


def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed session token for a user"""
    issued_at = datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(days=settings.access_token_expire_days)

    to_encode = {
        "sub": str(user.id),
        "email": user.email,
        "role": UserRole(user.role).value,
        "iat": issued_at,
        "exp": issued_at + expires_delta,
    }
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.jwt_alg)


def _decode(token: str) -> dict:
    # jose checks the signature before it looks at exp, so an expired error
    # only ever comes from a token signed with one of our keys
    for key in settings.verification_keys:
        try:
            return jwt.decode(token, key, algorithms=[settings.jwt_alg])
        except ExpiredSignatureError:
            raise TokenExpired("Token expired")
        except JWTError:
            continue
    raise TokenInvalid("Invalid token")


def decode_access_token(token: str) -> TokenClaims:
    """Verify and decode a session token"""
    payload = _decode(token)
    try:
        return TokenClaims(
            user_id=int(payload["sub"]),
            email=payload["email"],
            role=UserRole(payload["role"]),
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
    except (KeyError, TypeError, ValueError):
        raise TokenInvalid("Invalid token")
