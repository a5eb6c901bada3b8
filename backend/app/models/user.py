# app/models/user.py
# 用户数据模型
#
# 登记角色决定用户能以哪个审核席位表态：
# DecisionRecorder 用它与请求中声称的席位交叉校验。
#
# 角色取值：
#   club_leader  社团负责人（注册默认）
#   admin        管理员
#   hs_hod / cse_hod / csm_hod / csd_hod / ece_hod / tpo / dean / director
#                审核官员，与审核席位一一对应

from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import String, Boolean, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column

from app.approval.registry import normalize_role
from app.approval.types import RoleKey
from app.core.database import Base


ROLE_CLUB_LEADER = "club_leader"
ROLE_ADMIN = "admin"

# 可以登记的全部角色
ASSIGNABLE_ROLES = [ROLE_CLUB_LEADER, ROLE_ADMIN] + [role.value for role in RoleKey]


class User(Base):
    """用户表（社团负责人、管理员、审核官员共用）"""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, comment="登录邮箱")
    password_hash: Mapped[str] = mapped_column(String(255), comment="bcrypt 哈希")
    name: Mapped[str] = mapped_column(String(100), comment="显示名称")

    # 审核席位直接取自登记角色，见 reviewer_role
    role: Mapped[str] = mapped_column(
        String(20), default=ROLE_CLUB_LEADER, index=True, comment="club_leader / admin / 审核席位"
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, comment="禁用后无法登录，也不再占用审核席位")

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, onupdate=func.now())

    def __repr__(self) -> str:
        return f"<User {self.email} role={self.role}>"

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def reviewer_role(self) -> Optional[RoleKey]:
        """审核官员返回对应席位，社团负责人和管理员返回 None"""
        return normalize_role(self.role)
