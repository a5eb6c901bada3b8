# app/models/collection.py
# 信函集合模型
#
# 档案全部通过后，社团负责人可以建立集合来归档信函。
# 同一社团下集合名称唯一；删除集合时数据库级联删除其中的信函。

from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import String, Text, DateTime, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class Collection(Base):
    """信函集合表"""

    __tablename__ = "collections"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    club_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        comment="所属社团（档案 ID）",
    )
    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        comment="集合名称",
    )
    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="说明",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
    )

    __table_args__ = (
        UniqueConstraint("club_id", "name", name="uq_collection_club_name"),
        Index("ix_collections_club_id", "club_id"),
    )

    def __repr__(self) -> str:
        return f"<Collection {self.name}>"
