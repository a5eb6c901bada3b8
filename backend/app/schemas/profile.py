# app/schemas/profile.py
# 社团负责人档案的请求 / 响应模式

from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, Field, field_validator

from app.approval.registry import DEPARTMENT_ROLES
from app.approval.types import ApprovableEntity
from app.schemas.approval import ApprovalStateResponse


DEPARTMENTS = sorted(DEPARTMENT_ROLES.values())


class ProfileCreate(BaseModel):
    """
    档案提交请求

    邮箱取自登录账户，不在这里填写
    """

    full_name: str = Field(..., min_length=2, max_length=100, description="Full name")
    roll_number: str = Field(..., min_length=1, max_length=50, description="Roll number")
    phone: Optional[str] = Field(None, max_length=30, description="Phone")
    department: str = Field(..., description="HS / CSE / CSM / CSD / ECE")
    year_of_study: Optional[str] = Field(None, max_length=10)
    expected_graduation: Optional[str] = Field(None, max_length=10)
    college: Optional[str] = Field(None, max_length=200)
    club_name: str = Field(..., min_length=2, max_length=200, description="Club name")
    faculty_in_charge: Optional[str] = Field(None, max_length=100)
    proof_letter_url: Optional[str] = Field(None, max_length=500, description="Uploaded proof letter URL")

    @field_validator("department")
    @classmethod
    def department_must_be_known(cls, v: str) -> str:
        v = v.strip().upper()
        if v not in DEPARTMENTS:
            raise ValueError(f"未知系别: {v}，可选: {', '.join(DEPARTMENTS)}")
        return v


class ProfileResponse(BaseModel):
    """档案详情，附带审批状态和当前可执行的受控操作"""

    id: str
    user_id: Optional[str] = None
    full_name: str
    roll_number: str
    email: str
    phone: Optional[str] = None
    department: str
    year_of_study: Optional[str] = None
    expected_graduation: Optional[str] = None
    college: Optional[str] = None
    club_name: str
    faculty_in_charge: Optional[str] = None
    proof_letter_url: Optional[str] = None
    approval: ApprovalStateResponse
    permissions: Dict[str, bool] = Field(default_factory=dict)
    created_at: Optional[datetime] = None

    @classmethod
    def from_entity(
        cls,
        entity: ApprovableEntity,
        permissions: Optional[Dict[str, bool]] = None,
    ) -> "ProfileResponse":
        return cls(
            id=entity.id,
            user_id=entity.owner_id,
            approval=ApprovalStateResponse.from_state(entity.id, entity.kind, entity.approval_state),
            permissions=permissions or {},
            created_at=entity.created_at,
            **entity.attributes,
        )
