from pydantic import BaseModel, EmailStr
from typing import List, Optional
from engagement.models.user import UserRole

# Shared properties
class UserBase(BaseModel):
    email: Optional[EmailStr] = None
    full_name: Optional[str] = None
    roles: Optional[List[UserRole]] = None

# Properties to receive via API on creation
class UserCreate(UserBase):
    email: EmailStr
    primary_role: Optional[UserRole] = None

# Properties to receive via API on update
class UserUpdate(BaseModel):
    full_name: Optional[str] = None
    primary_role: Optional[UserRole] = None

# Properties to return to client
class UserRead(UserBase):
    id: str
    email: EmailStr
    primary_role: UserRole
    rating_avg: Optional[float] = None
    created_at: Optional[str] = None

    class Config:
        from_attributes = True
