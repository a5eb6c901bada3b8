# app/api/admin.py
# 管理后台：账户与审核席位
#
#   GET  /admin/users               账户列表，可按登记角色筛选
#   POST /admin/users               直接创建账户（常用于审核官员）
#   PUT  /admin/users/{id}/role     改登记角色 / 启用禁用
#   GET  /admin/seats               八个审核席位各由谁担任
#
# 整个路由挂了 get_current_admin_user，非管理员一律 403。
# 登记角色一改，下一次请求的 ActorIdentity 就随之变化。

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.approval.registry import ReviewerRegistry
from app.approval.types import RoleKey
from app.core.database import get_db
from app.core.logging import get_logger
from app.core.security import get_current_admin_user, hash_password
from app.models.user import User
from app.schemas.user import OfficialCreate, SeatHolders, UserPage, UserResponse, UserRoleUpdate

logger = get_logger(__name__)

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    dependencies=[Depends(get_current_admin_user)],
)


@router.get("/users", response_model=UserPage)
async def list_users(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    role: Optional[str] = Query(None, description="Filter by registered role"),
    db: AsyncSession = Depends(get_db),
):
    stmt = select(User)
    if role:
        stmt = stmt.where(User.role == role)

    total = await db.scalar(select(func.count()).select_from(stmt.subquery()))
    rows = await db.execute(
        stmt.order_by(desc(User.created_at)).offset((page - 1) * page_size).limit(page_size)
    )
    return UserPage(
        total=total or 0,
        page=page,
        page_size=page_size,
        users=[UserResponse.model_validate(u) for u in rows.scalars().all()],
    )


@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: OfficialCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    taken = await db.execute(select(User.id).where(User.email == payload.email))
    if taken.scalar_one_or_none():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="邮箱已被注册")

    account = User(
        email=payload.email,
        password_hash=hash_password(payload.password),
        name=payload.name,
        role=payload.role,
    )
    db.add(account)
    await db.commit()
    await db.refresh(account)

    logger.info(f"[Admin] {admin.email} 创建 {account.email} as {account.role}")
    return account


@router.put("/users/{user_id}/role", response_model=UserResponse)
async def assign_role(
    user_id: str,
    payload: UserRoleUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    account = await db.get(User, user_id)
    if account is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="用户不存在")

    # 管理员不能把自己降级或禁用，避免后台无人可管
    if account.id == admin.id and (payload.role != account.role or not payload.is_active):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="不能修改自己的角色或禁用自己")

    previous = account.role
    account.role = payload.role
    account.is_active = payload.is_active
    await db.commit()
    await db.refresh(account)

    logger.info(
        f"[Admin] {admin.email} 调整 {account.email}: {previous} → {account.role}",
        extra={"extra_data": {"user_id": account.id, "active": account.is_active}},
    )
    return account


@router.get("/seats", response_model=List[SeatHolders])
async def list_seats(db: AsyncSession = Depends(get_db)):
    """按席位分组列出启用中的审核官员，空席位也会出现在结果里"""
    rows = await db.execute(
        select(User)
        .where(User.role.in_([role.value for role in RoleKey]), User.is_active.is_(True))
        .order_by(User.created_at)
    )
    by_role = {}
    for account in rows.scalars().all():
        by_role.setdefault(account.role, []).append(UserResponse.model_validate(account))

    return [
        SeatHolders(
            role=role,
            department=ReviewerRegistry.department_of(role),
            holders=by_role.get(role.value, []),
        )
        for role in RoleKey
    ]
