# app/schemas/user.py
# 账户相关的请求 / 响应模式
#
# 登记角色的取值范围见 app/models/user.py 的 ASSIGNABLE_ROLES

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.approval.types import RoleKey
from app.models.user import ASSIGNABLE_ROLES


def _assignable_role(value: str) -> str:
    if value not in ASSIGNABLE_ROLES:
        raise ValueError(f"未知角色: {value}，可选: {', '.join(ASSIGNABLE_ROLES)}")
    return value


# ==================== 注册 / 登录 ====================

class UserCreate(BaseModel):
    """
    注册请求

    注册账户一律为社团负责人，审核官员由管理员分配角色
    """

    email: EmailStr = Field(..., description="Email address", examples=["lead@cmrithyderabad.edu.in"])
    password: str = Field(..., min_length=6, max_length=128, description="Password, at least 6 characters")
    name: str = Field(..., min_length=2, max_length=50, description="User name")


class UserLogin(BaseModel):
    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., description="Password")


class Token(BaseModel):
    """Authorization: Bearer <access_token>"""

    access_token: str = Field(..., description="Access token")
    refresh_token: str = Field(..., description="Refresh token")
    token_type: str = Field(default="bearer", description="Token type")


class TokenRefresh(BaseModel):
    refresh_token: str = Field(..., description="Refresh token")


# ==================== 用户信息 ====================

class UserResponse(BaseModel):
    """账户信息（不含密码哈希），审核官员附带其审核席位"""

    id: str = Field(..., description="User ID")
    email: str = Field(..., description="Email")
    name: str = Field(..., description="Name")
    role: str = Field(..., description="Registered role")
    reviewer_role: Optional[RoleKey] = Field(None, description="Review seat derived from role, null for non-officials")
    is_active: bool = Field(..., description="Is active")
    created_at: datetime = Field(..., description="Created at")

    class Config:
        from_attributes = True


class UserRoleUpdate(BaseModel):
    """
    管理员修改用户角色

    role 取值：club_leader、admin 或任一审核席位（tpo、dean、cse_hod ...）
    """

    role: str = Field(..., description="New role")
    is_active: bool = Field(default=True, description="Is active")

    @field_validator("role")
    @classmethod
    def role_must_be_assignable(cls, v: str) -> str:
        return _assignable_role(v)


class MessageResponse(BaseModel):
    """通用消息响应"""

    message: str = Field(..., description="Message")


# ==================== 管理后台 ====================

class OfficialCreate(UserCreate):
    """管理员直接创建账户，可指定任意登记角色"""

    role: str = Field(..., description="club_leader / admin / reviewer role")

    @field_validator("role")
    @classmethod
    def role_must_be_assignable(cls, v: str) -> str:
        return _assignable_role(v)


class UserPage(BaseModel):
    total: int
    page: int
    page_size: int
    users: List[UserResponse]


class SeatHolders(BaseModel):
    """某个审核席位当前由哪些启用中的账户担任"""

    role: RoleKey
    department: Optional[str] = None
    holders: List[UserResponse] = Field(default_factory=list)
