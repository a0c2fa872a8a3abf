import logging
import secrets
import bcrypt
from passlib.context import CryptContext
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import jwt, JWTError
from echoprep.core import config

logger = logging.getLogger(__name__)

BCRYPT_MAX_BYTES = 72

ACCESS = "access"
REFRESH = "refresh"

# passlib is kept only to verify hashes bcrypt.checkpw refuses to read
try:
    pwd_context = CryptContext(
        schemes=["bcrypt"],
        deprecated="auto",
    )
    logger.debug("Password context initialized")
except Exception as e:
    logger.warning(f"Failed to initialize passlib context: {e}, using bcrypt directly")
    pwd_context = None


class InvalidTokenError(Exception):
    """Raised when a JWT fails signature, expiry or type checks."""


def _truncate_password(password: str) -> bytes:
    """Encode and cut a password to bcrypt's 72-byte limit on a UTF-8 boundary."""
    password_bytes = password.encode("utf-8")
    if len(password_bytes) <= BCRYPT_MAX_BYTES:
        return password_bytes

    logger.warning("Password exceeds 72 bytes, truncating before hashing (validation should have caught this)")
    truncated = password_bytes[:BCRYPT_MAX_BYTES]
    # drop a split multi-byte character at the boundary
    return truncated.decode("utf-8", errors="ignore").encode("utf-8")


def hash_password(password: str) -> str:
    """
    Hash a password with bcrypt.

    Passwords longer than 72 bytes are truncated first; schema validation
    rejects them earlier, so this is only reached by internal callers.

    Raises:
        ValueError: If the password cannot be hashed
    """
    try:
        return bcrypt.hashpw(_truncate_password(password), bcrypt.gensalt()).decode("utf-8")
    except Exception as e:
        logger.error(f"Password hashing failed: {type(e).__name__}: {e}", exc_info=True)
        raise ValueError("Invalid password") from e


def verify_password(password: str, hashed: str) -> bool:
    """Check a password against a bcrypt (or passlib-wrapped bcrypt) hash."""
    if not password or not hashed:
        return False
    try:
        try:
            return bcrypt.checkpw(_truncate_password(password), hashed.encode("utf-8"))
        except (ValueError, TypeError):
            if pwd_context:
                return pwd_context.verify(password, hashed)
            return False
    except Exception as e:
        logger.error(f"Password verification failed: {e}", exc_info=True)
        return False


def _secret_for(kind: str) -> str:
    secret = config.ACCESS_TOKEN_SECRET if kind == ACCESS else config.REFRESH_TOKEN_SECRET
    if not secret:
        raise RuntimeError(f"{kind.upper()}_TOKEN_SECRET is not configured")
    return secret


def create_access_token(user_id: int, claims: Optional[dict] = None, expires_delta: timedelta = None) -> str:
    """Sign a short-lived access token carrying the user id and a few profile claims."""
    to_encode = dict(claims or {})
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"sub": str(user_id), "type": ACCESS, "exp": expire})
    return jwt.encode(to_encode, _secret_for(ACCESS), algorithm=config.ALGORITHM)


def create_refresh_token(user_id: int, expires_delta: timedelta = None) -> str:
    """Sign a long-lived refresh token. The caller must store it on the user."""
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(days=config.REFRESH_TOKEN_EXPIRE_DAYS))
    to_encode = {
        "sub": str(user_id),
        "type": REFRESH,
        "jti": secrets.token_hex(8),
        "exp": expire,
    }
    return jwt.encode(to_encode, _secret_for(REFRESH), algorithm=config.ALGORITHM)


def decode_token(token: str, kind: str = ACCESS) -> dict:
    """
    Verify a token with the secret for its kind and return the claims.

    Raises:
        InvalidTokenError: bad signature, expired, wrong token type, or no subject
    """
    try:
        payload = jwt.decode(token, _secret_for(kind), algorithms=[config.ALGORITHM])
    except JWTError as e:
        raise InvalidTokenError(str(e)) from e

    if payload.get("type") != kind:
        raise InvalidTokenError(f"Expected {kind} token")
    if payload.get("sub") is None:
        raise InvalidTokenError("Token has no subject")
    return payload


def user_id_from_claims(payload: dict) -> int:
    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidTokenError("Token subject is not a user id") from e
