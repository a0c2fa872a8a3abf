"""
User account and token-rotation service.

A user holds exactly one valid refresh token (User.refresh_token). Every
login, registration and refresh overwrites it; logout clears it.
"""
import logging
from typing import Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from echoprep.core.security import (
    REFRESH,
    InvalidTokenError,
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    user_id_from_claims,
    verify_password,
)
from echoprep.db.models.interview import Interview
from echoprep.db.models.resume import Resume
from echoprep.db.models.user import User

logger = logging.getLogger(__name__)


def issue_token_pair(db: Session, user: User) -> Tuple[str, str]:
    """Mint an access/refresh pair and store the refresh token on the user."""
    try:
        access_token = create_access_token(
            user.id, {"email": user.email, "username": user.username}
        )
        refresh_token = create_refresh_token(user.id)
        user.refresh_token = refresh_token
        db.commit()
        db.refresh(user)
    except Exception as e:
        db.rollback()
        logger.error(f"Token issue failed for user_id={user.id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Something went wrong while generating refresh and access token"
        )
    return access_token, refresh_token


def register_user(db: Session, username: Optional[str], email: Optional[str], password: Optional[str]) -> User:
    if any(field is None or not field.strip() for field in (username, email, password)):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="All fields are required")

    username = username.strip().lower()
    email = email.strip().lower()

    existing = db.query(User).filter(or_(User.username == username, User.email == email)).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User with email or username already exists"
        )

    user = User(username=username, email=email, password_hash=hash_password(password))
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # lost a race with a concurrent registration
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User with email or username already exists"
        )
    db.refresh(user)

    logger.info(f"User registered: user_id={user.id}")
    return user


def authenticate_user(db: Session, email: Optional[str], password: Optional[str]) -> User:
    if not email and not password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email and password are required")

    user = db.query(User).filter(User.email == (email or "").strip().lower()).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User does not exist")

    if not verify_password(password or "", user.password_hash):
        logger.info(f"Failed login: user_id={user.id}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid user credentials")

    return user


def rotate_refresh_token(db: Session, incoming_token: Optional[str]) -> Tuple[User, str, str]:
    """
    Exchange a refresh token for a new pair.

    The token must verify against the refresh secret and equal the value
    stored on the user; anything else is a 401.
    """
    if not incoming_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized request")

    try:
        payload = decode_token(incoming_token, kind=REFRESH)
        user_id = user_id_from_claims(payload)
    except InvalidTokenError as e:
        logger.info(f"Refresh token rejected: {e}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")

    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")

    if incoming_token != user.refresh_token:
        logger.warning(f"Stale or reused refresh token presented: user_id={user.id}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Refresh token is expired or used")

    access_token, refresh_token = issue_token_pair(db, user)
    return user, access_token, refresh_token


def logout_user(db: Session, user: User) -> None:
    user.refresh_token = None
    db.commit()
    logger.info(f"User logged out: user_id={user.id}")


def delete_account(db: Session, user: User) -> None:
    """Delete the user's interviews and resumes, then the user."""
    user_id = user.id
    try:
        interviews = db.query(Interview).filter(Interview.user_id == user_id).delete(synchronize_session=False)
        resumes = db.query(Resume).filter(Resume.user_id == user_id).delete(synchronize_session=False)
        db.delete(user)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception(f"Account deletion failed: user_id={user_id}")
        raise

    logger.info(f"Account deleted: user_id={user_id}, interviews={interviews}, resumes={resumes}")
