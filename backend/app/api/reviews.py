# app/api/reviews.py
# 审核 API（审核官员使用）
#
# API 列表：
# ┌──────────────────────────────────────────────────────────────────────┐
# │ POST  /api/reviews/{kind}/{id}/decision   │ 提交表态（approve/reject）│
# │ GET   /api/reviews/{kind}/{id}/status     │ 汇总状态 + 各席位状态     │
# │ GET   /api/reviews/letter/{id}/members    │ 信函成员认可情况          │
# │ GET   /api/reviews/{kind}                 │ 我的审核工作台（分类列表）│
# └──────────────────────────────────────────────────────────────────────┘
#
# kind: profile | letter
# 审批引擎异常由 app/main.py 的全局异常处理转换为 HTTP 状态码。

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.approval.registry import normalize_role
from app.approval.types import ActorIdentity, EntityKind
from app.core.logging import get_logger
from app.core.security import get_current_actor, get_current_user
from app.models.user import User
from app.schemas.approval import (
    AggregateStatusResponse,
    ApprovalStateResponse,
    CategorizedResponse,
    DecisionRequest,
    MemberApprovalsResponse,
    ReviewItem,
)
from app.services.approval_service import ApprovalService, get_approval_service, is_reviewer_role

logger = get_logger(__name__)

router = APIRouter(prefix="/api/reviews", tags=["Reviews"])


async def _visible_entity(service: ApprovalService, kind: EntityKind, entity_id: str, user: User):
    # 状态里带有审核意见，和详情接口用同一条可见性规则
    entity = await service.get_entity(kind, entity_id)
    if not await service.can_view(entity, user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="无权查看该对象")
    return entity


@router.post(
    "/{kind}/{entity_id}/decision",
    response_model=ApprovalStateResponse,
    summary="Submit decision",
    description="Approve or reject as one reviewer role; rejection requires a comment",
)
async def submit_decision(
    kind: EntityKind,
    entity_id: str,
    data: DecisionRequest,
    actor: ActorIdentity = Depends(get_current_actor),
    service: ApprovalService = Depends(get_approval_service),
):
    logger.info(f"[Reviews] {actor.id} ({actor.role}) 表态 {kind.value} {entity_id}: {data.role} {data.action.value}")
    state = await service.submit_decision(
        kind,
        entity_id,
        actor,
        data.role,
        data.action,
        comment=data.comment,
        approved_member_ids=data.approved_member_ids,
    )
    return ApprovalStateResponse.from_state(entity_id, kind, state)


@router.get(
    "/{kind}/{entity_id}/status",
    response_model=AggregateStatusResponse,
    summary="Aggregate status",
)
async def get_aggregate_status(
    kind: EntityKind,
    entity_id: str,
    current_user: User = Depends(get_current_user),
    service: ApprovalService = Depends(get_approval_service),
):
    entity = await _visible_entity(service, kind, entity_id, current_user)
    return AggregateStatusResponse(**service.status_summary(entity))


@router.get(
    "/letter/{letter_id}/members",
    response_model=MemberApprovalsResponse,
    summary="Per-member approvals",
)
async def get_member_approvals(
    letter_id: str,
    current_user: User = Depends(get_current_user),
    service: ApprovalService = Depends(get_approval_service),
):
    letter = await _visible_entity(service, EntityKind.LETTER, letter_id, current_user)
    return MemberApprovalsResponse(entity_id=letter.id, members=service.member_approvals(letter))


@router.get(
    "/{kind}",
    response_model=CategorizedResponse,
    summary="Reviewer workspace",
    description="Entities awaiting this reviewer, split by the reviewer's own status",
)
async def list_categorized(
    kind: EntityKind,
    department: Optional[str] = Query(None, description="Department filter (HOD profile workspaces always use their own)"),
    actor: ActorIdentity = Depends(get_current_actor),
    service: ApprovalService = Depends(get_approval_service),
):
    if not is_reviewer_role(actor.role):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="无权审核")

    role = normalize_role(actor.role)
    if kind == EntityKind.PROFILE:
        department = service.registry.department_of(role) or department
    categories = await service.list_categorized(kind, role.value, department)
    return CategorizedResponse(
        role=role.value,
        department=department.upper() if department else None,
        **{
            status_name: [ReviewItem.from_entity(entity, role) for entity in entities]
            for status_name, entities in categories.items()
        },
    )
