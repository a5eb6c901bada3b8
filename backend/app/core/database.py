# app/core/database.py
# 异步引擎 + 会话工厂 + ORM 基类
#
# 路由里用 Depends(get_db)；仓储和脚本里用 async with async_session_maker()。
# 表结构由 Alembic 管理，init_db 只给 scripts/create_official.py --init-db 在本地建表用。

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from app.core.config import settings


# ==================== 引擎 ====================

# echo=DEBUG 时打印所有 SQL
# pool_pre_ping 在取出连接前检测连接是否可用
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,
)

# 会话工厂
# expire_on_commit=False：提交后对象属性仍可访问（异步环境下避免隐式 IO）
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """所有 ORM 模型的基类"""
    pass


# ==================== 依赖注入 ====================

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    获取数据库会话（FastAPI 依赖注入）

    请求结束后自动关闭会话
    """
    async with async_session_maker() as session:
        yield session


# ==================== 生命周期 ====================

async def init_db() -> None:
    """
    根据模型直接建表（仅开发环境使用，生产环境请用 Alembic 迁移）
    """
    # 导入模型，确保所有表都注册到 Base.metadata
    import app.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """关闭数据库连接池"""
    await engine.dispose()
