from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from vendor_sales.core.actor import Actor
from vendor_sales.core.config import settings
from vendor_sales.core.exceptions import AuthenticationError
from vendor_sales.models.user import UserRole

bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Issue a token in the identity provider's format (used by tooling and tests)"""
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise AuthenticationError("Invalid or expired token")


def get_current_actor(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> Actor:
    """Build the caller's Actor from the bearer token claims"""
    if credentials is None:
        raise AuthenticationError("Missing bearer token")

    payload = decode_token(credentials.credentials)
    if payload.get("type") != "access":
        raise AuthenticationError("Invalid token type")

    user_id = payload.get("sub")
    role = payload.get("role")
    if not user_id or not role:
        raise AuthenticationError("Token is missing identity claims")

    try:
        user_role = UserRole(role)
    except ValueError:
        raise AuthenticationError(f"Unknown role claim: {role}")

    return Actor(
        user_id=user_id,
        role=user_role,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent")
    )


def require_role(*roles: UserRole):
    def dependency(actor: Actor = Depends(get_current_actor)) -> Actor:
        return actor.require_role(*roles)
    return dependency
