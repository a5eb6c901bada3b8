# app/core/security.py
# 密码哈希、JWT 签发/校验，以及路由用的认证依赖
#
#   login → create_token_pair() → Authorization: Bearer <access_token>
#   get_current_user()  每次请求按 sub 回库取账户
#   get_current_actor() 把账户转成审批引擎的 ActorIdentity
#
# 审核席位以数据库中登记的 role 为准，不信任 Token 里携带的角色，
# 管理员修改角色后立即生效。

from datetime import datetime, timedelta
from typing import Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.approval.types import ActorIdentity
from app.core.config import settings
from app.core.database import get_db
from app.core.logging import get_logger

logger = get_logger(__name__)


# ==================== 密码 ====================

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# tokenUrl 只用于 Swagger 文档
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=True)


def hash_password(password: str) -> str:
    """bcrypt 哈希（自带盐值，相同密码每次结果不同）"""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


# ==================== JWT ====================

def _encode_token(data: dict, token_type: str, expires_delta: timedelta) -> str:
    expire = datetime.utcnow() + expires_delta
    to_encode = data.copy()
    to_encode.update({"exp": expire, "type": token_type})
    logger.debug(f"签发 {token_type} Token，过期时间: {expire}")
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    创建 Access Token

    Args:
        data: payload，至少包含 {"sub": user_id}
        expires_delta: 有效期，默认 ACCESS_TOKEN_EXPIRE_MINUTES
    """
    return _encode_token(
        data,
        "access",
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )


def create_refresh_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """创建 Refresh Token（默认 REFRESH_TOKEN_EXPIRE_DAYS 天）"""
    return _encode_token(
        data,
        "refresh",
        expires_delta or timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    )


def create_token_pair(user_id: str) -> Dict[str, str]:
    """同时签发 access 和 refresh Token"""
    payload = {"sub": user_id}
    return {
        "access_token": create_access_token(payload),
        "refresh_token": create_refresh_token(payload),
        "token_type": "bearer",
    }


def decode_token(token: str) -> Optional[dict]:
    """
    解码并校验 Token（签名 + 过期时间）

    Returns:
        dict: payload，校验失败返回 None
    """
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        logger.warning(f"Token 验证失败: {e}")
        return None


# ==================== FastAPI 依赖 ====================

async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db)
):
    """401：Token 无效、类型不对或账户不存在；403：账户已禁用"""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="无法验证凭证",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = decode_token(token)
    if payload is None or payload.get("type") != "access":
        raise credentials_exception

    user_id = payload.get("sub")
    if user_id is None:
        raise credentials_exception

    # 避免循环导入
    from app.models.user import User

    user = await db.get(User, user_id)
    if user is None:
        logger.warning(f"用户不存在: {user_id}")
        raise credentials_exception

    if not user.is_active:
        logger.warning(f"用户已被禁用: {user_id}")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="用户已被禁用")

    return user


async def get_current_admin_user(current_user=Depends(get_current_user)):
    """要求管理员权限"""
    if not current_user.is_admin:
        logger.warning(f"非管理员尝试访问管理接口: {current_user.email}")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="需要管理员权限")
    return current_user


async def get_current_actor(current_user=Depends(get_current_user)) -> ActorIdentity:
    """
    当前用户 → 审批操作人

    role 取数据库中登记的角色，DecisionRecorder 用它与声称的席位交叉校验
    """
    return ActorIdentity(id=current_user.id, role=current_user.role, name=current_user.name)
