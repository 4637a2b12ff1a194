"""
User Endpoints Module

This module provides profile endpoints for marketplace users. Any
authenticated user can read a profile (including its average rating);
listing and creating accounts is reserved for administrators.
"""
from typing import Any, List
from fastapi import APIRouter, Depends
from sqlmodel import Session, select
from engagement.api import deps
from engagement.core.exceptions import ConflictError, NotFoundError, ValidationError
from engagement.core.principal import Principal
from engagement.db.session import get_db
from engagement.models.user import User, UserRole
from engagement.schemas.user import UserCreate, UserRead, UserUpdate

router = APIRouter()

@router.get("", response_model=List[UserRead])
def read_users(
    db: Session = Depends(get_db),
    skip: int = 0,
    limit: int = 100,
    admin: Principal = Depends(deps.get_current_admin),
) -> Any:
    """
    Retrieve a paginated list of all users.

    Only administrators can access this endpoint.
    """
    return db.exec(select(User).offset(skip).limit(limit)).all()

@router.post("", response_model=UserRead)
def create_user(
    *,
    db: Session = Depends(get_db),
    user_in: UserCreate,
    admin: Principal = Depends(deps.get_current_admin),
) -> Any:
    """
    Register a user account known to the identity provider.

    Args:
        user_in: Email, name, roles and optional primary role. Roles default
            to Contributor; the primary role defaults to the first role.

    Raises:
        ConflictError: A user with this email already exists
        ValidationError: The primary role is not one of the user's roles
    """
    # Check for existing user with same email
    if db.exec(select(User).where(User.email == user_in.email)).first():
        raise ConflictError("The user with this email already exists in the system.")

    roles = user_in.roles or [UserRole.CONTRIBUTOR]
    primary_role = user_in.primary_role or roles[0]
    if primary_role not in roles:
        raise ValidationError("primary_role must be one of the user's roles")

    db_user = User(
        email=user_in.email,
        full_name=user_in.full_name,
        roles=roles,
        primary_role=primary_role,
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user

@router.get("/me", response_model=UserRead)
def read_user_me(
    current_user: User = Depends(deps.get_current_user),
) -> Any:
    """
    Get the current authenticated user's profile.
    """
    return current_user

@router.put("/me", response_model=UserRead)
def update_user_me(
    *,
    db: Session = Depends(get_db),
    user_in: UserUpdate,
    current_user: User = Depends(deps.get_current_user),
) -> Any:
    """
    Update the current user's display name or default role.
    """
    if user_in.primary_role is not None:
        if not current_user.has_role(user_in.primary_role):
            raise ValidationError("primary_role must be one of your roles")
        current_user.primary_role = user_in.primary_role
    if user_in.full_name is not None:
        current_user.full_name = user_in.full_name

    db.add(current_user)
    db.commit()
    db.refresh(current_user)
    return current_user

@router.get("/{user_id}", response_model=UserRead)
def read_user_by_id(
    user_id: str,
    current_user: User = Depends(deps.get_current_user),
    db: Session = Depends(get_db),
) -> Any:
    """
    Get a specific user's public profile, e.g. a bidder's rating.
    """
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user
