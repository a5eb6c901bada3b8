# app/api/auth.py
# 账户认证路由
#
#   POST /api/auth/register   社团负责人自助注册
#   POST /api/auth/login      邮箱 + 密码换 Token 对
#   POST /api/auth/refresh    refresh_token 换新 Token 对
#   GET  /api/auth/me         当前账户（含审核席位）
#
# 审核官员账户不开放注册：由管理员在 /api/admin/users 改登记角色，
# 或用 scripts/create_official.py 直接创建。

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.logging import get_logger
from app.core.security import (
    create_token_pair,
    decode_token,
    get_current_user,
    hash_password,
    verify_password,
)
from app.models.user import ROLE_CLUB_LEADER, User
from app.schemas.user import Token, TokenRefresh, UserCreate, UserLogin, UserResponse

logger = get_logger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


def _bearer_error(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _user_by(db: AsyncSession, *criteria) -> Optional[User]:
    result = await db.execute(select(User).where(*criteria))
    return result.scalar_one_or_none()


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(payload: UserCreate, db: AsyncSession = Depends(get_db)):
    """
    注册社团负责人账户

    学校邮箱域名留到提交档案时再校验，注册阶段只保证邮箱唯一。
    """
    if await _user_by(db, User.email == payload.email):
        logger.warning(f"[Auth] 重复注册: {payload.email}")
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="邮箱已被注册")

    account = User(
        email=payload.email,
        password_hash=hash_password(payload.password),
        name=payload.name,
        role=ROLE_CLUB_LEADER,
    )
    db.add(account)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="邮箱已被注册")
    await db.refresh(account)

    logger.info(f"[Auth] 新社团负责人 {account.id} ({account.email})")
    return account


@router.post("/login", response_model=Token)
async def login(payload: UserLogin, db: AsyncSession = Depends(get_db)):
    # 账户不存在与密码错误返回同一条消息
    account = await _user_by(db, User.email == payload.email)
    if account is None or not verify_password(payload.password, account.password_hash):
        logger.warning(f"[Auth] 登录失败: {payload.email}")
        raise _bearer_error("邮箱或密码错误")

    if not account.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="账号已被禁用")

    logger.info(f"[Auth] 登录 {account.email} as {account.role}")
    return create_token_pair(account.id)


@router.post("/refresh", response_model=Token)
async def refresh(payload: TokenRefresh, db: AsyncSession = Depends(get_db)):
    claims = decode_token(payload.refresh_token)
    if not claims or claims.get("type") != "refresh":
        raise _bearer_error("无效的刷新令牌")

    account = await _user_by(db, User.id == claims.get("sub"))
    if account is None or not account.is_active:
        raise _bearer_error("用户不存在或已被禁用")

    return create_token_pair(account.id)


@router.get("/me", response_model=UserResponse)
async def me(current_user: User = Depends(get_current_user)):
    return current_user
