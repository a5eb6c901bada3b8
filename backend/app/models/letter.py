# app/models/letter.py
# 信函模型
#
# 功能说明：
# 社团负责人在集合中起草信函，选择收件人（审核席位的子集），
# 由收件人分别表态。每个集合只有一封信函。
#
# 字段说明：
#   recipients            收件席位列表，创建后不可修改
#   club_members_by_dept  信函涉及的成员 {系别: [成员 ID]}，系主任只认可本系成员
#   approval_state        各收件席位的表态记录（JSON）
#   overall_status        汇总状态快照
#   version               乐观锁版本号

from datetime import datetime
from uuid import uuid4

from sqlalchemy import String, Text, Integer, JSON, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class Letter(Base):
    """信函表"""

    __tablename__ = "letters"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    # ==================== 关联 ====================
    collection_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("collections.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        comment="所属集合（一个集合一封信函）",
    )
    club_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        comment="起草社团（档案 ID）",
    )

    # ==================== 内容 ====================
    subject: Mapped[str] = mapped_column(
        String(300),
        nullable=False,
        comment="主题",
    )
    body: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="正文（含落款）",
    )

    # ==================== 审批 ====================
    recipients: Mapped[list] = mapped_column(
        JSON,
        default=list,
        comment="收件审核席位",
    )
    club_members_by_dept: Mapped[dict] = mapped_column(
        JSON,
        default=dict,
        comment="涉及成员 {系别: [成员 ID]}",
    )
    approval_state: Mapped[dict] = mapped_column(
        JSON,
        default=dict,
        comment="各收件席位的表态记录",
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
        Index("ix_letters_club_id", "club_id"),
        Index("ix_letters_overall_status", "overall_status"),
    )

    def __repr__(self) -> str:
        return f"<Letter {self.subject}>"
