from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional
from datetime import datetime
from models.user import UserRole


class UserSchema(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    full_name: str = Field(..., min_length=2, max_length=255)
    role: Optional[UserRole] = Field(default=UserRole.ADMIN)

    model_config = ConfigDict(use_enum_values=True)


class UserResponseSchema(BaseModel):
    id: int
    email: str
    full_name: str
    role: UserRole
    is_active: bool
    last_login: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)


class UserToken(BaseModel):
    ok: bool = True
    token: str
    user: UserResponseSchema


class ChangePassword(BaseModel):
    old_password: str = Field(..., alias="oldPassword")
    new_password: str = Field(..., min_length=6, alias="newPassword")

    model_config = ConfigDict(populate_by_name=True)
