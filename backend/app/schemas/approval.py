# app/schemas/approval.py
# 审批相关的请求 / 响应模式
#
# 审批引擎内部使用 dataclass（app/approval/types.py），
# 这里负责 API 输入校验和输出格式。

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from app.approval.state import ApprovalState
from app.approval.types import ApprovableEntity, DecisionAction, EntityKind, RoleKey


# ==================== 提交表态 ====================

class DecisionRequest(BaseModel):
    """
    审核人提交表态

    role 是操作人声称代表的席位，必须和账户登记的角色一致
    """

    role: str = Field(..., description="Reviewer role claimed, e.g. tpo / cse_hod")
    action: DecisionAction = Field(..., description="approve | reject")
    comment: Optional[str] = Field(None, max_length=2000, description="Comment, required when rejecting")
    approved_member_ids: List[str] = Field(
        default_factory=list,
        description="Letters only: member ids this reviewer approves",
    )


# ==================== 审批状态 ====================

class DecisionRecordResponse(BaseModel):
    role: str = Field(..., description="Reviewer role")
    status: str = Field(..., description="pending / approved / rejected")
    comment: Optional[str] = None
    decided_at: Optional[datetime] = None
    decider_actor_id: Optional[str] = None
    approved_member_ids: List[str] = Field(default_factory=list)


class ApprovalStateResponse(BaseModel):
    """审批状态完整视图"""

    entity_id: str
    kind: EntityKind
    overall_status: str = Field(..., description="Aggregate status")
    records: List[DecisionRecordResponse] = Field(..., description="One record per required reviewer")
    rejection_reasons: List[str] = Field(default_factory=list, description='e.g. "TPO: budget unclear"')

    @classmethod
    def from_state(cls, entity_id: str, kind: EntityKind, state: ApprovalState) -> "ApprovalStateResponse":
        records = []
        for role in state.required:
            record = state.record_for(role)
            records.append(DecisionRecordResponse(
                role=role.value,
                status=record.status.value,
                comment=record.comment,
                decided_at=record.decided_at,
                decider_actor_id=record.decider_actor_id,
                approved_member_ids=sorted(record.approved_member_ids),
            ))
        return cls(
            entity_id=entity_id,
            kind=kind,
            overall_status=state.overall_status.value,
            records=records,
            rejection_reasons=state.rejection_reasons(),
        )


class AggregateStatusResponse(BaseModel):
    """汇总状态 + 各席位状态"""

    entity_id: str
    kind: EntityKind
    overall_status: str
    per_role_statuses: Dict[str, str]
    rejection_reasons: List[str] = Field(default_factory=list)


# ==================== 审核工作台 ====================

class ReviewItem(BaseModel):
    """审核列表中的一项"""

    id: str
    kind: EntityKind
    title: str = Field(..., description="Club name for profiles, subject for letters")
    owner_id: Optional[str] = None
    departments: List[str] = Field(default_factory=list)
    overall_status: str
    my_status: str = Field(..., description="This reviewer's own status")
    my_comment: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, entity: ApprovableEntity, role: RoleKey) -> "ReviewItem":
        attrs = entity.attributes
        title = attrs.get("club_name") if entity.kind == EntityKind.PROFILE else attrs.get("subject")
        record = entity.approval_state.record_for(role)
        return cls(
            id=entity.id,
            kind=entity.kind,
            title=title or "",
            owner_id=entity.owner_id,
            departments=sorted(entity.departments),
            overall_status=entity.approval_state.overall_status.value,
            my_status=record.status.value,
            my_comment=record.comment,
            created_at=entity.created_at,
        )


class CategorizedResponse(BaseModel):
    """按本席位状态分类的审核列表"""

    role: str
    department: Optional[str] = None
    pending: List[ReviewItem] = Field(default_factory=list)
    approved: List[ReviewItem] = Field(default_factory=list)
    rejected: List[ReviewItem] = Field(default_factory=list)


class MemberApprovalsResponse(BaseModel):
    """信函成员认可情况：成员 ID → 认可的席位"""

    entity_id: str
    members: Dict[str, List[str]]
