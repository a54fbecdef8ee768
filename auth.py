# auth.py
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import crud
from config import Settings, get_settings
from database import get_db
from logging_config import get_logger

logger = get_logger(__name__)

# Use bcrypt via passlib
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
# auto_error is off so a missing header gets the same 401 as a bad token
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)

DEV_USER_ID = "1"
DEV_USER_EMAIL = "test@example.com"


@dataclass(frozen=True)
class AuthUser:
    user_id: str
    email: str


# -----------------------------
# Password helpers
# -----------------------------
def get_password_hash(password: str) -> str:
    truncated_password = password[:72]
    return pwd_context.hash(truncated_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    truncated_password = plain_password[:72]
    return pwd_context.verify(truncated_password, hashed_password)


# -----------------------------
# JWT helpers
# -----------------------------
def create_access_token(
    data: dict,
    settings: Settings,
    expires_delta: Optional[timedelta] = None,
) -> str:
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def token_for_user(user, settings: Settings) -> str:
    return create_access_token({"sub": user.id, "email": user.email}, settings)


# -----------------------------
# Development bypass identity
# -----------------------------
def _find_dev_user(db: Session):
    return crud.get_user(db, DEV_USER_ID) or crud.get_user_by_email(db, DEV_USER_EMAIL)


def _get_or_create_dev_user(db: Session):
    user = _find_dev_user(db)
    if user is not None:
        return user
    try:
        return crud.create_user(
            db,
            email=DEV_USER_EMAIL,
            password_hash=get_password_hash(secrets.token_hex(16)),
            name="Development User",
            user_id=DEV_USER_ID,
        )
    except IntegrityError:
        # created concurrently by another request
        db.rollback()
        user = _find_dev_user(db)
        if user is None:
            raise
        return user


# -----------------------------
# Dependency to get current user
# -----------------------------
def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> AuthUser:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Authentication required",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if not token:
        raise credentials_exception

    if settings.dev_auth_bypass and token == settings.dev_token:
        user = _get_or_create_dev_user(db)
        return AuthUser(user_id=user.id, email=user.email)

    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        logger.info("Rejected bearer token", reason=str(e))
        raise credentials_exception

    user_id = payload.get("sub")
    if user_id is None:
        raise credentials_exception

    user = crud.get_user(db, user_id)
    if user is None:
        logger.info("Token references unknown user", user_id=user_id)
        raise credentials_exception
    return AuthUser(user_id=user.id, email=user.email)
