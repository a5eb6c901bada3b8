# app/api/letters.py
# 信函 API
#
# API 列表：
# ┌─────────────────────────────────────────────────────────────┐
# │ POST   /api/letters               │ 起草信函（选择收件席位）  │
# │ GET    /api/letters               │ 我的信函列表              │
# │ GET    /api/letters/{id}          │ 信函详情                  │
# │ DELETE /api/letters/{id}          │ 删除信函                  │
# └─────────────────────────────────────────────────────────────┘
#
# 起草只要求 tpo / dean / director 通过（DRAFT_LETTER），
# 删除要求档案全部通过（DELETE_LETTER）。

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.profiles import get_current_profile
from app.approval.types import ApprovableEntity, EntityKind
from app.core.database import get_db
from app.core.logging import get_logger
from app.core.security import get_current_user
from app.models.collection import Collection
from app.models.user import User
from app.schemas.letter import LetterCreate, LetterListResponse, LetterResponse
from app.schemas.user import MessageResponse
from app.services.approval_service import ApprovalService, get_approval_service

logger = get_logger(__name__)

router = APIRouter(prefix="/api/letters", tags=["Letters"])


@router.post(
    "",
    response_model=LetterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Draft letter",
)
async def create_letter(
    data: LetterCreate,
    profile: ApprovableEntity = Depends(get_current_profile),
    service: ApprovalService = Depends(get_approval_service),
    db: AsyncSession = Depends(get_db),
):
    collection = await db.get(Collection, data.collection_id)
    if collection is None or collection.club_id != profile.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="集合不存在")

    entity = await service.create_letter(
        profile,
        collection_id=collection.id,
        subject=data.subject,
        body=data.body,
        recipients=data.recipients,
        club_members_by_dept=data.club_members_by_dept,
        closing=data.closing,
    )
    return LetterResponse.from_entity(entity)


@router.get("", response_model=LetterListResponse, summary="List my letters")
async def list_letters(
    profile: ApprovableEntity = Depends(get_current_profile),
    service: ApprovalService = Depends(get_approval_service),
):
    letters = await service.list_letters(profile)
    return LetterListResponse(
        items=[LetterResponse.from_entity(letter) for letter in letters],
        total=len(letters),
    )


@router.get("/{letter_id}", response_model=LetterResponse, summary="Letter detail")
async def get_letter(
    letter_id: str,
    current_user: User = Depends(get_current_user),
    service: ApprovalService = Depends(get_approval_service),
):
    """起草社团、收件席位的审核官员、管理员可以查看"""
    entity = await service.get_entity(EntityKind.LETTER, letter_id)
    if not await service.can_view(entity, current_user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="无权查看该信函")
    return LetterResponse.from_entity(entity)


@router.delete("/{letter_id}", response_model=MessageResponse, summary="Delete letter")
async def delete_letter(
    letter_id: str,
    profile: ApprovableEntity = Depends(get_current_profile),
    service: ApprovalService = Depends(get_approval_service),
):
    await service.delete_letter(profile, letter_id)
    return MessageResponse(message="信函已删除")
