# app/models/profile.py
# 社团负责人档案模型
#
# 功能说明：
# 学生注册后提交档案（个人信息 + 社团信息），
# 由 8 个固定审核席位分别表态，全部通过后才能管理集合和信函。
#
# 审批相关字段：
#   approval_state  各席位的表态记录（JSON，格式见 app/approval/state.py）
#   overall_status  汇总状态快照，只用于列表查询和排序，读取时以 approval_state 重新计算为准
#   version         乐观锁版本号，每次写入审批状态 +1
#
# 使用方法：
#   from app.models.profile import Profile

from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import String, Integer, JSON, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class Profile(Base):
    """
    社团负责人档案表

    每个用户最多一份档案。档案一经提交，审核席位固定为配置中的 8 个。
    """

    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        comment="提交人用户 ID",
    )

    # ==================== 个人信息 ====================
    full_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="姓名",
    )
    roll_number: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="学号",
    )
    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="学校邮箱",
    )
    phone: Mapped[Optional[str]] = mapped_column(
        String(30),
        nullable=True,
        comment="手机号",
    )
    department: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        comment="所在系: HS/CSE/CSM/CSD/ECE",
    )
    year_of_study: Mapped[Optional[str]] = mapped_column(
        String(10),
        nullable=True,
        comment="年级",
    )
    expected_graduation: Mapped[Optional[str]] = mapped_column(
        String(10),
        nullable=True,
        comment="预计毕业年份",
    )
    college: Mapped[Optional[str]] = mapped_column(
        String(200),
        nullable=True,
        comment="学院名称",
    )

    # ==================== 社团信息 ====================
    club_name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        comment="社团名称",
    )
    faculty_in_charge: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="指导老师",
    )
    proof_letter_url: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
        comment="任职证明文件地址",
    )

    # ==================== 审批 ====================
    approval_state: Mapped[dict] = mapped_column(
        JSON,
        default=dict,
        comment="各审核席位的表态记录",
    )
    overall_status: Mapped[str] = mapped_column(
        String(20),
        default="pending",
        nullable=False,
        comment="汇总状态快照: pending/approved/rejected",
    )
    version: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="乐观锁版本号",
    )

    # ==================== 时间戳 ====================
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    __table_args__ = (
        Index("ix_profiles_department", "department"),
        Index("ix_profiles_overall_status", "overall_status"),
    )

    def __repr__(self) -> str:
        return f"<Profile {self.club_name} ({self.full_name})>"
