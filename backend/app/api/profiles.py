# app/api/profiles.py
# 社团负责人档案 API
#
# API 列表：
# ┌─────────────────────────────────────────────────────────────┐
# │ POST   /api/profiles              │ 提交档案（初始全部待审）  │
# │ GET    /api/profiles/me           │ 我的档案 + 审批进度 + 权限│
# │ GET    /api/profiles/{id}         │ 档案详情（审核官员/管理员）│
# └─────────────────────────────────────────────────────────────┘

from fastapi import APIRouter, Depends, HTTPException, status

from app.approval.types import ApprovableEntity, EntityKind
from app.core.logging import get_logger
from app.core.security import get_current_user
from app.models.user import User
from app.schemas.profile import ProfileCreate, ProfileResponse
from app.services.approval_service import ApprovalService, get_approval_service

logger = get_logger(__name__)

router = APIRouter(prefix="/api/profiles", tags=["Profiles"])


async def get_current_profile(
    current_user: User = Depends(get_current_user),
    service: ApprovalService = Depends(get_approval_service),
) -> ApprovableEntity:
    """当前用户的档案（集合、信函接口的依赖）"""
    profile = await service.get_profile_for_owner(current_user.id)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="尚未提交档案")
    return profile


@router.post(
    "",
    response_model=ProfileResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit profile",
    description="Club leader onboarding, reviewed by the eight configured officials",
)
async def onboard_profile(
    data: ProfileCreate,
    current_user: User = Depends(get_current_user),
    service: ApprovalService = Depends(get_approval_service),
):
    logger.info(f"[Profiles] {current_user.email} 提交档案: {data.club_name}")
    entity = await service.onboard_profile(current_user.id, current_user.email, data.model_dump())
    return ProfileResponse.from_entity(entity, service.permissions(entity))


@router.get("/me", response_model=ProfileResponse, summary="My profile")
async def get_my_profile(
    profile: ApprovableEntity = Depends(get_current_profile),
    service: ApprovalService = Depends(get_approval_service),
):
    return ProfileResponse.from_entity(profile, service.permissions(profile))


@router.get("/{profile_id}", response_model=ProfileResponse, summary="Profile detail")
async def get_profile(
    profile_id: str,
    current_user: User = Depends(get_current_user),
    service: ApprovalService = Depends(get_approval_service),
):
    entity = await service.get_entity(EntityKind.PROFILE, profile_id)
    if not await service.can_view(entity, current_user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="无权查看该档案")
    return ProfileResponse.from_entity(entity, service.permissions(entity))
