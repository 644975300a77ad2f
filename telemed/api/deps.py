from fastapi import Depends, Request
from sqlalchemy.orm import Session
import logging

from ..core.config import settings
from ..core.database import get_db, get_redis
from ..core.exceptions import ForbiddenError, RateLimitedError, UnauthorizedError
from ..core.security import (
    TokenClaim, TokenError, UserRole, extract_bearer_token, verify_token
)
from ..models.user import User

logger = logging.getLogger(__name__)

async def get_current_claim(request: Request) -> TokenClaim:
    """Return the verified token claim for this request.

    Protected paths are verified by AccessMiddleware, which leaves the claim on
    request.state. Anywhere else the Authorization header is checked here.
    """
    claim = getattr(request.state, "claim", None)
    if claim is not None:
        return claim

    token = extract_bearer_token(request.headers.get("Authorization"))
    if token is None:
        logger.info(f"Missing bearer token on {request.url.path}")
        raise UnauthorizedError()

    try:
        claim = verify_token(token)
    except TokenError as exc:
        logger.info(f"Rejected token on {request.url.path}: {exc.reason}")
        raise UnauthorizedError()

    request.state.claim = claim
    return claim

async def get_current_user(
    claim: TokenClaim = Depends(get_current_claim),
    db: Session = Depends(get_db)
) -> User:
    """Get current authenticated user from database."""
    user = db.query(User).filter(User.id == claim.user_id).first()
    if not user:
        logger.info(f"Token for unknown user {claim.user_id}")
        raise UnauthorizedError()
    return user

# Role-based access control dependencies
def require_role(*allowed_roles: UserRole):
    """Create a dependency that requires one of the given roles."""
    async def role_checker(
        claim: TokenClaim = Depends(get_current_claim)
    ) -> TokenClaim:
        if claim.role not in allowed_roles:
            logger.info(f"User {claim.user_id} with role {claim.role.value} denied")
            raise ForbiddenError()
        return claim

    return role_checker

get_doctor_claim = require_role(UserRole.DOCTOR)

# Rate limiting dependency
async def rate_limit_check(
    request: Request,
    redis_client = Depends(get_redis)
) -> None:
    """Per-IP request counter for the authentication endpoints."""
    if not settings.RATE_LIMIT_ENABLED:
        return None

    client_ip = request.client.host if request.client else "unknown"
    key = f"rate_limit:auth:{client_ip}"

    current_requests = redis_client.get(key)
    if current_requests is None:
        redis_client.setex(key, settings.AUTH_RATE_LIMIT_WINDOW_SECONDS, 1)
        return None

    if int(current_requests) >= settings.AUTH_RATE_LIMIT:
        logger.warning(f"Auth rate limit exceeded for {client_ip}")
        raise RateLimitedError()
    redis_client.incr(key)
