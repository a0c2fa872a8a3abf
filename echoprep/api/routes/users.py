"""
User endpoints: registration, login, token refresh, logout, profile, deletion.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from echoprep.core.auth_dependency import get_current_user
from echoprep.core.rate_limit import rate_limit
from echoprep.core.responses import REFRESH_COOKIE, api_response, clear_auth_cookies, set_auth_cookies
from echoprep.db.models.user import User
from echoprep.db.session import get_db
from echoprep.schemas.auth import LoginRequest, RefreshTokenRequest, RegisterRequest, UserResponse
from echoprep.services import auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


def _profile(user: User) -> dict:
    return UserResponse.model_validate(user).model_dump(by_alias=True)


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterRequest,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit("register")),
):
    """Create an account and log it in straight away."""
    user = auth_service.register_user(db, payload.username, payload.email, payload.password)
    access_token, refresh_token = auth_service.issue_token_pair(db, user)

    response = api_response(
        {"user": _profile(user), "accessToken": access_token, "refreshToken": refresh_token},
        "User registered and logged in successfully",
        status_code=status.HTTP_201_CREATED,
    )
    set_auth_cookies(response, access_token, refresh_token)
    return response


@router.post("/login")
def login(
    payload: LoginRequest,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit("login")),
):
    """Verify credentials and issue a new pair; older refresh tokens stop working."""
    user = auth_service.authenticate_user(db, payload.email, payload.password)
    access_token, refresh_token = auth_service.issue_token_pair(db, user)
    logger.info(f"User logged in: user_id={user.id}")

    response = api_response(
        {"user": _profile(user), "accessToken": access_token, "refreshToken": refresh_token},
        "User logged In Successfully",
    )
    set_auth_cookies(response, access_token, refresh_token)
    return response


@router.post("/refresh-token")
def refresh_token(
    request: Request,
    payload: Optional[RefreshTokenRequest] = None,
    db: Session = Depends(get_db),
):
    """Rotate the token pair. Cookie wins over the body."""
    incoming = request.cookies.get(REFRESH_COOKIE) or (payload.refresh_token if payload else None)
    _, access_token, new_refresh_token = auth_service.rotate_refresh_token(db, incoming)

    response = api_response(
        {"accessToken": access_token, "refreshToken": new_refresh_token},
        "Access token refreshed",
    )
    set_auth_cookies(response, access_token, new_refresh_token)
    return response


@router.post("/logout")
def logout(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    auth_service.logout_user(db, current_user)
    response = api_response({}, "User logged Out")
    clear_auth_cookies(response)
    return response


@router.get("/me")
def me(current_user: User = Depends(get_current_user)):
    return api_response(_profile(current_user), "User fetched successfully")


@router.delete("/delete-account")
def delete_account(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    auth_service.delete_account(db, current_user)
    response = api_response({}, "Account deleted successfully")
    clear_auth_cookies(response)
    return response
