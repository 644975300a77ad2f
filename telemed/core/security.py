from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional
import secrets
from jose import ExpiredSignatureError, JWTError, jwt
from jose.exceptions import JWSSignatureError
from passlib.context import CryptContext
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from enum import Enum

from .config import settings
from .exceptions import MissingSecretError

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

class UserRole(str, Enum):
    PATIENT = "PATIENT"
    DOCTOR = "DOCTOR"
    PROVIDER = "PROVIDER"

class TokenClaim(BaseModel):
    """Identity carried by a bearer token."""
    model_config = ConfigDict(populate_by_name=True)

    user_id: int = Field(alias="userId")
    role: UserRole
    issued_at: Optional[int] = Field(default=None, alias="iat")
    expires_at: Optional[int] = Field(default=None, alias="exp")

# Token failures. Callers answer all of them with the same 401.
class TokenError(Exception):
    reason = "invalid token"

    def __init__(self, reason: Optional[str] = None):
        self.reason = reason or self.reason
        super().__init__(self.reason)

class MalformedTokenError(TokenError):
    reason = "malformed token"

class InvalidSignatureError(TokenError):
    reason = "signature mismatch"

class TokenExpiredError(TokenError):
    reason = "token expired"

# Password utilities
def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify a plain password against its hash. Unusable hashes never match."""
    if not plain_password or not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        return False

def get_password_hash(password: str) -> str:
    """Generate password hash."""
    return pwd_context.hash(password)

@lru_cache(maxsize=1)
def dummy_password_hash() -> str:
    """Hash checked for unknown emails at login so both failure paths run bcrypt."""
    return get_password_hash(secrets.token_urlsafe(16))

# JWT utilities
def get_signing_secret() -> str:
    """Return the JWT secret, refusing to work with an empty key."""
    secret = settings.JWT_SECRET
    if not secret:
        raise MissingSecretError("JWT_SECRET is not set")
    return secret

def create_access_token(
    user_id: int,
    role: UserRole,
    expires_delta: Optional[timedelta] = None
) -> str:
    """Create a signed JWT for the given user."""
    secret = get_signing_secret()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta if expires_delta is not None else timedelta(days=settings.JWT_EXPIRE_DAYS))

    to_encode = {
        "userId": user_id,
        "role": UserRole(role).value,
        "iat": int(now.timestamp()),
        "exp": int(expire.timestamp()),
    }
    return jwt.encode(to_encode, secret, algorithm=settings.JWT_ALGORITHM)

def _raised_from(exc: BaseException, error_type) -> bool:
    """True if exc or an exception it was raised while handling is an error_type."""
    while exc is not None:
        if isinstance(exc, error_type):
            return True
        exc = exc.__cause__ or exc.__context__
    return False

def verify_token(token: str) -> TokenClaim:
    """Verify and decode a JWT.

    Raises MalformedTokenError, InvalidSignatureError or TokenExpiredError.
    """
    secret = get_signing_secret()

    if not token:
        raise MalformedTokenError("empty token")
    try:
        jwt.get_unverified_header(token)
    except JWTError:
        raise MalformedTokenError()

    try:
        payload = jwt.decode(token, secret, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise TokenExpiredError()
    except JWTError as exc:
        if _raised_from(exc, JWSSignatureError):
            raise InvalidSignatureError()
        raise MalformedTokenError(f"undecodable token: {exc}")

    try:
        return TokenClaim.model_validate(payload)
    except PydanticValidationError:
        raise MalformedTokenError("missing or invalid claims")

def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token from an ``Authorization: Bearer <token>`` header, if any."""
    if not authorization or not authorization.startswith("Bearer "):
        return None
    token = authorization[len("Bearer "):].strip()
    return token or None
