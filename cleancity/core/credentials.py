from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import Conflict, InternalError, InvalidCredentials, NotFound
from .logger import RequestLog, db as db_logger
from .security import dummy_verify, get_password_hash, verify_password
from ..models.user import User, UserRole


def normalize_email(email: str) -> str:
    return email.strip().lower()


def find_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(func.lower(User.email) == normalize_email(email)).first()


def _create_user(db: Session, name: str, email: str, password: str, role: UserRole, log: RequestLog) -> User:
    normalized_email = normalize_email(email)
    if find_by_email(db, normalized_email):
        log.warning("User already exists with this email")
        raise Conflict("User already exists with this email")

    user = User(
        name=name.strip(),
        email=normalized_email,
        role=role,
        password_hash=get_password_hash(password),
    )
    try:
        db.add(user)
        db.commit()
    except IntegrityError:
        # Lost a race against a concurrent registration
        db.rollback()
        raise Conflict("User already exists with this email")
    except SQLAlchemyError:
        db.rollback()
        log.bind(db_logger).exception("Failed to save user")
        raise InternalError("Server error during registration")
    db.refresh(user)
    return user


def register_user(db: Session, name: str, email: str, password: str, log: Optional[RequestLog] = None) -> User:
    """Create a regular user account"""
    log = log or RequestLog.detached()
    user = _create_user(db, name, email, password, UserRole.USER, log)
    log.info("User registration successful (id=%s)", user.id)
    return user


def create_admin(db: Session, name: str, email: str, password: str, log: Optional[RequestLog] = None) -> User:
    """Create an administrator account (bootstrap only, never exposed over HTTP)"""
    log = log or RequestLog.detached()
    user = _create_user(db, name, email, password, UserRole.ADMIN, log)
    log.info("Admin account created (id=%s)", user.id)
    return user


def authenticate(db: Session, email: str, password: str, log: Optional[RequestLog] = None) -> User:
    """Return the user for these credentials; same error whichever part is wrong"""
    log = log or RequestLog.detached()
    user = find_by_email(db, email)

    if user is None:
        dummy_verify()
        log.warning("Invalid email or password during login")
        raise InvalidCredentials("Invalid email or password")

    if not verify_password(password, user.password_hash):
        log.warning("Invalid email or password during login")
        raise InvalidCredentials("Invalid email or password")

    log.info("User login successful (id=%s)", user.id)
    return user


def get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise NotFound("User not found")
    return user
