"""
Caller identity passed explicitly into every lifecycle operation.
"""
from dataclasses import dataclass, field
from typing import Optional, Tuple

from engagement.models.user import User, UserRole


@dataclass(frozen=True)
class Principal:
    """
    The authenticated caller.

    Attributes:
        user_id: Id of the calling user
        role: The user's primary role
        active_role: Role the caller chose for this request, if any
        roles: Every role the user holds
        name: Display name for notification payloads
    """
    user_id: str
    role: UserRole
    active_role: Optional[UserRole] = None
    roles: Tuple[UserRole, ...] = field(default_factory=tuple)
    name: Optional[str] = None

    @property
    def acting_role(self) -> UserRole:
        return self.active_role or self.role

    @property
    def is_admin(self) -> bool:
        return UserRole.ADMIN in self.roles or self.role == UserRole.ADMIN

    def acts_as(self, role: UserRole) -> bool:
        return self.acting_role == role

    @classmethod
    def from_user(cls, user: User, active_role: Optional[UserRole] = None) -> "Principal":
        return cls(
            user_id=user.id,
            role=UserRole(user.primary_role),
            active_role=active_role,
            roles=tuple(UserRole(r) for r in (user.roles or [])),
            name=user.display_name,
        )
