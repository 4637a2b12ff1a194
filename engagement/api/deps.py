"""
API Dependencies Module

This module provides FastAPI dependency functions for authentication, the
caller's Principal, and the collaborators injected into lifecycle services.
It implements a dual authentication strategy supporting both bearer tokens (for API clients)
and HTTP-only cookies (for browser clients).
"""
from typing import List, Optional
from fastapi import Depends, Header, Query, Request
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from pydantic import BaseModel, EmailStr
from pydantic import ValidationError as PydanticValidationError
from sqlmodel import Session, select

from engagement.core.config import settings
from engagement.core.exceptions import AuthenticationError, ForbiddenError
from engagement.core.principal import Principal
from engagement.core.security import decode_access_token
from engagement.db.session import get_db
from engagement.models.user import User, UserRole
from engagement.services.notifications import Notifier
from engagement.services.storage import FileStorage, LocalFileStorage

# Tokens are issued by the identity provider; tokenUrl only documents the flow in OpenAPI
# auto_error=False allows us to check cookies as a fallback
reusable_oauth2 = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_V1_STR}/auth/login",
    auto_error=False  # Don't raise error immediately if Authorization header is missing
)


class TokenData(BaseModel):
    email: EmailStr


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
    token: Optional[str] = Depends(reusable_oauth2)
) -> User:
    """
    Dependency that retrieves and validates the current authenticated user.

    Supports dual authentication methods:
    1. Bearer token in Authorization header (for API clients)
    2. HTTP-only cookie (for browser clients)

    Raises:
        AuthenticationError: No token, an invalid or expired token, or a
            token for a user that no longer exists
    """
    # Try Authorization header first, then fall back to cookie
    if not token:
        token = request.cookies.get("access_token")
        # Cookie format is "Bearer <token>", so we need to extract the token
        if token and token.startswith("Bearer "):
            token = token.replace("Bearer ", "")

    if not token:
        raise AuthenticationError("Not authenticated")

    try:
        payload = decode_access_token(token)
        token_data = TokenData(email=payload.get("sub"))  # Extract email from token
    except (JWTError, PydanticValidationError):
        raise AuthenticationError("Could not validate credentials")

    user = db.exec(select(User).where(User.email == token_data.email)).first()
    if not user:
        raise AuthenticationError("User not found")
    return user


def get_principal(
    current_user: User = Depends(get_current_user),
    x_active_role: Optional[str] = Header(default=None),
    active_role: Optional[str] = Query(default=None),
) -> Principal:
    """
    Build the caller's Principal.

    Users holding both Client and Contributor pick the role they act in per
    request, via the ``X-Active-Role`` header or the ``active_role`` query
    parameter. The chosen role must be one the user actually holds.
    """
    requested = x_active_role or active_role
    if not requested:
        return Principal.from_user(current_user)
    try:
        role = UserRole(requested)
    except ValueError:
        raise ForbiddenError(f"Unknown role: {requested}")
    if not current_user.has_role(role):
        raise ForbiddenError(f"You do not hold the {role.value} role")
    return Principal.from_user(current_user, active_role=role)


class RoleChecker:
    """
    Dependency factory for checking the caller's acting role.

    Usage: Depends(RoleChecker([UserRole.CLIENT, UserRole.ADMIN]))
    """
    def __init__(self, allowed_roles: List[UserRole]):
        self.allowed_roles = allowed_roles

    def __call__(self, principal: Principal = Depends(get_principal)) -> Principal:
        if principal.acting_role not in self.allowed_roles and not (
            UserRole.ADMIN in self.allowed_roles and principal.is_admin
        ):
            allowed = ", ".join(r.value for r in self.allowed_roles)
            raise ForbiddenError(
                f"Forbidden: insufficient role. Please switch to {allowed} mode to perform this action."
            )
        return principal


def get_current_admin(principal: Principal = Depends(get_principal)) -> Principal:
    """
    Dependency that requires the current user to be an administrator.
    """
    if not principal.is_admin:
        raise ForbiddenError("The user doesn't have enough privileges")
    return principal


def get_notifier(db: Session = Depends(get_db)) -> Notifier:
    return Notifier(db)


def get_storage() -> FileStorage:
    return LocalFileStorage()
