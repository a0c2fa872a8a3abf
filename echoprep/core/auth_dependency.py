import logging

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from echoprep.core.responses import ACCESS_COOKIE
from echoprep.core.security import ACCESS, InvalidTokenError, decode_token, user_id_from_claims
from echoprep.db.session import get_db
from echoprep.db.models.user import User

logger = logging.getLogger(__name__)


def extract_access_token(request: Request):
    """accessToken cookie first, then an Authorization: Bearer header."""
    token = request.cookies.get(ACCESS_COOKIE)
    if token:
        return token

    authorization = request.headers.get("Authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return None


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """Resolve the caller from the access token or fail with 401."""
    token = extract_access_token(request)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized request")

    try:
        payload = decode_token(token, kind=ACCESS)
        user_id = user_id_from_claims(payload)
    except InvalidTokenError as e:
        logger.debug(f"Access token rejected: {e}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid access token")

    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid Access Token")

    return user
