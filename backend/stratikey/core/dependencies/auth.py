"""
Authentication Dependencies Module
==================================

FastAPI dependencies that turn an already-issued bearer token into the
caller identity the authorization core consumes.

Credential verification and token issuance happen upstream; this module
only verifies signature, expiry, issuer, audience and token type, then
loads the user.

Usage:
    @router.get("/protected")
    def protected_route(caller: Caller = Depends(get_current_caller)):
        return {"user": caller.email}
"""

import uuid
from typing import Any, Dict, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from stratikey.core.config import settings
from stratikey.core.exceptions import AuthenticationError
from stratikey.core.logging import get_logger, security_logger, user_id_context
from stratikey.core.tenant.context import Caller
from stratikey.db.session import get_db
from stratikey.models.user import User

# Initialize logger
logger = get_logger(__name__)

ACCESS_TOKEN_TYPE = "access"


# =====================================
# Bearer Scheme
# =====================================

bearer_scheme = HTTPBearer(
    auto_error=False,
    description="Bearer access token issued by the identity provider",
)


# =====================================
# Token Decoding
# =====================================

def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Verify an access token and return its claims.

    Raises:
        AuthenticationError: If the token is invalid, expired, or not an
            access token
    """
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            audience=settings.TOKEN_AUDIENCE,
            issuer=settings.TOKEN_ISSUER,
        )
    except JWTError as e:
        security_logger.log_unauthenticated(reason=type(e).__name__)
        raise AuthenticationError(message="Could not validate credentials")

    if payload.get("type") != ACCESS_TOKEN_TYPE:
        security_logger.log_unauthenticated(reason="wrong_token_type")
        raise AuthenticationError(message="Could not validate credentials")

    return payload


# =====================================
# Get Current Caller
# =====================================

def get_current_caller(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Caller:
    """
    Resolve the authenticated caller for this request.

    Raises:
        AuthenticationError: If there is no valid token or the user is
            unknown or inactive
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        security_logger.log_unauthenticated(reason="missing_token", path=request.url.path)
        raise AuthenticationError()

    payload = decode_access_token(credentials.credentials)

    try:
        user_id = uuid.UUID(str(payload.get("sub")))
    except ValueError:
        security_logger.log_unauthenticated(reason="malformed_subject", path=request.url.path)
        raise AuthenticationError(message="Could not validate credentials")

    user = db.get(User, user_id)
    if user is None or not user.is_active:
        security_logger.log_unauthenticated(reason="unknown_or_inactive_user", path=request.url.path)
        raise AuthenticationError(message="Could not validate credentials")

    request.state.user_id = str(user.id)
    user_id_context.set(str(user.id))

    return Caller(user_id=user.id, email=user.email)
