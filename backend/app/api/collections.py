# app/api/collections.py
# 信函集合 API
#
# 档案全部通过后才能建立和管理集合（CREATE_COLLECTION / MANAGE_COLLECTION）。
#
# API 列表：
# ┌─────────────────────────────────────────────────────────────┐
# │ POST   /api/collections           │ 新建集合（名称社团内唯一）│
# │ GET    /api/collections           │ 我的集合列表              │
# │ DELETE /api/collections/{id}      │ 删除集合（级联删除信函）  │
# └─────────────────────────────────────────────────────────────┘

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.profiles import get_current_profile
from app.approval.gate import GatedAction
from app.approval.types import ApprovableEntity
from app.core.database import get_db
from app.core.logging import get_logger
from app.models.collection import Collection
from app.schemas.collection import CollectionCreate, CollectionListResponse, CollectionResponse
from app.schemas.user import MessageResponse
from app.services.approval_service import ApprovalService, get_approval_service

logger = get_logger(__name__)

router = APIRouter(prefix="/api/collections", tags=["Collections"])


@router.post(
    "",
    response_model=CollectionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create collection",
)
async def create_collection(
    data: CollectionCreate,
    profile: ApprovableEntity = Depends(get_current_profile),
    service: ApprovalService = Depends(get_approval_service),
    db: AsyncSession = Depends(get_db),
):
    service.require_access(profile, GatedAction.CREATE_COLLECTION)

    name = data.name.strip()
    existing = await db.execute(
        select(Collection).where(Collection.club_id == profile.id, Collection.name == name)
    )
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="集合名称已存在")

    collection = Collection(club_id=profile.id, name=name, description=data.description)
    db.add(collection)
    try:
        await db.commit()
    except IntegrityError:
        # 并发创建同名集合时由 uq_collection_club_name 兜底
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="集合名称已存在")
    await db.refresh(collection)

    logger.info(f"[Collections] 新建集合: {collection.name} ({profile.id})")
    return collection


@router.get("", response_model=CollectionListResponse, summary="List collections")
async def list_collections(
    profile: ApprovableEntity = Depends(get_current_profile),
    service: ApprovalService = Depends(get_approval_service),
    db: AsyncSession = Depends(get_db),
):
    service.require_access(profile, GatedAction.MANAGE_COLLECTION)

    result = await db.execute(
        select(Collection)
        .where(Collection.club_id == profile.id)
        .order_by(Collection.created_at.desc())
    )
    items = result.scalars().all()
    return CollectionListResponse(
        items=[CollectionResponse.model_validate(c) for c in items],
        total=len(items),
    )


@router.delete("/{collection_id}", response_model=MessageResponse, summary="Delete collection")
async def delete_collection(
    collection_id: str,
    profile: ApprovableEntity = Depends(get_current_profile),
    service: ApprovalService = Depends(get_approval_service),
    db: AsyncSession = Depends(get_db),
):
    service.require_access(profile, GatedAction.MANAGE_COLLECTION)

    collection = await db.get(Collection, collection_id)
    if collection is None or collection.club_id != profile.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="集合不存在")

    # letters.collection_id 外键 ON DELETE CASCADE
    await db.delete(collection)
    await db.commit()

    logger.info(f"[Collections] 删除集合: {collection_id}")
    return MessageResponse(message="集合已删除")
