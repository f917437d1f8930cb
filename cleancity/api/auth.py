from enum import Enum
from typing import Optional

from fastapi import APIRouter, Depends, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from ..db import get_db
from ..models.user import UserRole
from ..schemas.auth import UserRegister, UserLogin, UserResponse, AuthResponse, MeResponse
from ..core.credentials import authenticate, get_user, register_user
from ..core.errors import Forbidden, Unauthorized
from ..core.logger import RequestLog
from ..core.security import TokenClaims, TokenExpired, TokenInvalid, create_access_token, decode_access_token
from ..core.tracing import get_request_log, mask_sensitive

router = APIRouter()
# auto_error=False so a missing header is reported as 401 with our own message
security = HTTPBearer(auto_error=False)


class Capability(str, Enum):
    PUBLIC = "public"
    AUTHENTICATED = "authenticated"
    ADMIN = "admin"


def require_auth(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> TokenClaims:
    """Decode the bearer token or reject the request"""
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise Unauthorized("No token provided")
    try:
        return decode_access_token(credentials.credentials)
    except TokenExpired:
        raise Unauthorized("Token expired")
    except TokenInvalid:
        raise Unauthorized("Invalid token")


def require_admin(claims: TokenClaims = Depends(require_auth)) -> TokenClaims:
    """Require ADMIN role"""
    if claims.role != UserRole.ADMIN:
        raise Forbidden("Access denied. Admin privileges required.")
    return claims


def _public() -> None:
    return None


def require_capability(capability: Capability):
    """Dependency for the minimum capability a route needs"""
    if capability is Capability.ADMIN:
        return require_admin
    if capability is Capability.AUTHENTICATED:
        return require_auth
    return _public


def _auth_response(message: str, user) -> AuthResponse:
    return AuthResponse(
        message=message,
        token=create_access_token(user),
        user=UserResponse.model_validate(user),
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    user_data: UserRegister,
    db: Session = Depends(get_db),
    log: RequestLog = Depends(get_request_log),
):
    """Register a new citizen account and log it in"""
    log.info("Register endpoint hit")
    log.debug("payload: %s", mask_sensitive(user_data.model_dump()))
    user = register_user(db, user_data.name, user_data.email, user_data.password, log)
    return _auth_response("User registered successfully", user)


@router.post("/login", response_model=AuthResponse)
def login(
    user_data: UserLogin,
    db: Session = Depends(get_db),
    log: RequestLog = Depends(get_request_log),
):
    """Exchange email and password for a session token"""
    log.info("Login endpoint hit")
    user = authenticate(db, user_data.email, user_data.password, log)
    return _auth_response("Login successful", user)


@router.get("/me", response_model=MeResponse)
def get_current_user_info(
    claims: TokenClaims = Depends(require_capability(Capability.AUTHENTICATED)),
    db: Session = Depends(get_db),
):
    """Get current user information"""
    user = get_user(db, claims.user_id)
    return MeResponse(user=UserResponse.model_validate(user))
