# app/schemas/letter.py
# 信函的请求 / 响应模式

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from app.approval.types import ApprovableEntity
from app.schemas.approval import ApprovalStateResponse


class LetterCreate(BaseModel):
    """
    起草信函

    recipients 创建后不可修改，合法性由审核人注册表校验（InvalidRecipients）
    """

    collection_id: str = Field(..., description="Collection id")
    subject: str = Field(..., min_length=1, max_length=300, description="Subject")
    body: str = Field(..., min_length=1, description="Body")
    closing: Optional[str] = Field(None, description="Closing, appended to the body")
    recipients: List[str] = Field(..., description="Reviewer roles, e.g. [\"tpo\", \"dean\"]")
    club_members_by_dept: Dict[str, List[str]] = Field(
        default_factory=dict,
        description="Members listed in the letter, grouped by department",
    )

    @field_validator("club_members_by_dept")
    @classmethod
    def normalize_departments(cls, v: Dict[str, List[str]]) -> Dict[str, List[str]]:
        result: Dict[str, List[str]] = {}
        for dept, members in v.items():
            key = dept.strip().upper()
            result.setdefault(key, [])
            for member in members:
                if member not in result[key]:
                    result[key].append(member)
        return result


class LetterResponse(BaseModel):
    id: str
    collection_id: str
    club_id: Optional[str] = None
    subject: str
    body: str
    recipients: List[str]
    club_members_by_dept: Dict[str, List[str]]
    approval: ApprovalStateResponse
    created_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, entity: ApprovableEntity) -> "LetterResponse":
        attrs = entity.attributes
        return cls(
            id=entity.id,
            collection_id=attrs["collection_id"],
            club_id=entity.owner_id,
            subject=attrs["subject"],
            body=attrs["body"],
            recipients=[role.value for role in entity.required_reviewers],
            club_members_by_dept=entity.members_by_dept,
            approval=ApprovalStateResponse.from_state(entity.id, entity.kind, entity.approval_state),
            created_at=entity.created_at,
        )


class LetterListResponse(BaseModel):
    items: List[LetterResponse]
    total: int
