# tests/conftest.py
# Pytest 配置文件
#
# 功能：
# 1. 把 backend 目录加入 Python 路径
# 2. 提供内存存储版的审批引擎和服务
# 3. 提供创建档案 / 信函 / 操作人的辅助 fixtures
#
# 引擎测试不需要数据库：InMemoryApprovalRepository 实现了同样的乐观锁语义。

import os
import sys
from datetime import datetime

import pytest

# 将项目根目录添加到 Python 路径
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.approval import (  # noqa: E402
    AccessGate,
    ActorIdentity,
    ApprovableEntity,
    ApprovalState,
    DecisionRecorder,
    EntityKind,
    InMemoryApprovalRepository,
    PartialApprovalResolver,
    ReviewerRegistry,
)


# ==================== 引擎 Fixtures ====================

@pytest.fixture
def registry():
    """默认 8 席位注册表"""
    return ReviewerRegistry()


@pytest.fixture
def profile_repo():
    return InMemoryApprovalRepository(EntityKind.PROFILE)


@pytest.fixture
def letter_repo():
    return InMemoryApprovalRepository(EntityKind.LETTER)


@pytest.fixture
def profile_recorder(profile_repo, registry):
    return DecisionRecorder(profile_repo, registry, PartialApprovalResolver(registry))


@pytest.fixture
def letter_recorder(letter_repo, registry):
    return DecisionRecorder(letter_repo, registry, PartialApprovalResolver(registry))


@pytest.fixture
def approval_service(profile_repo, letter_repo, registry):
    """内存存储版审批服务"""
    from app.services.approval_service import ApprovalService

    return ApprovalService(
        profiles=profile_repo,
        letters=letter_repo,
        registry=registry,
        gate=AccessGate(),
        max_retries=3,
        allowed_email_domain="cmrithyderabad.edu.in",
    )


# ==================== 数据 Fixtures ====================

@pytest.fixture
def actor():
    """按席位创建操作人：actor("tpo")"""
    def _make(role, actor_id=None):
        role = getattr(role, "value", role)
        return ActorIdentity(id=actor_id or f"user-{role}", role=role)
    return _make


@pytest.fixture
def make_profile(profile_repo, registry):
    """创建一份全部待审的档案"""
    async def _make(department="CSE", owner_id="student-1", club_name="Coding Club"):
        required = registry.profile_reviewers
        entity = ApprovableEntity(
            id="",
            kind=EntityKind.PROFILE,
            required_reviewers=required,
            approval_state=ApprovalState.initial(required),
            owner_id=owner_id,
            departments=frozenset([department]),
            attributes={"club_name": club_name, "department": department},
        )
        return await profile_repo.create_entity(entity)
    return _make


@pytest.fixture
def make_letter(letter_repo, registry):
    """创建一封信函：await make_letter(["tpo", "dean"], {"CSE": ["m1", "m2"]})"""
    async def _make(recipients, members_by_dept=None, owner_id="profile-1", subject="Hackathon venue"):
        required = registry.validate_recipients(recipients)
        members_by_dept = members_by_dept or {}
        entity = ApprovableEntity(
            id="",
            kind=EntityKind.LETTER,
            required_reviewers=required,
            approval_state=ApprovalState.initial(required),
            owner_id=owner_id,
            departments=frozenset(d for d, m in members_by_dept.items() if m),
            members_by_dept=members_by_dept,
            attributes={"collection_id": "collection-1", "subject": subject, "body": "..."},
        )
        return await letter_repo.create_entity(entity)
    return _make

# ==================== API Fixtures ====================

def fake_user(role, user_id=None, email=None):
    """get_current_user 的替身（只包含路由会读取的字段）"""
    from types import SimpleNamespace

    from app.approval import normalize_role

    role = getattr(role, "value", role)
    return SimpleNamespace(
        id=user_id or f"user-{role}",
        email=email or f"{role}@cmrithyderabad.edu.in",
        name=role.upper(),
        role=role,
        is_active=True,
        is_admin=role == "admin",
        reviewer_role=normalize_role(role),
        created_at=datetime(2025, 3, 1),
    )


@pytest.fixture
def client(approval_service):
    """TestClient，审批服务替换为内存存储版（不触发 lifespan）"""
    from fastapi.testclient import TestClient

    from app.main import app
    from app.services.approval_service import get_approval_service

    app.dependency_overrides[get_approval_service] = lambda: approval_service
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def login(client):
    """切换当前登录用户：login("tpo")"""
    from app.core.security import get_current_user

    def _login(role, user_id=None, email=None):
        user = fake_user(role, user_id, email)
        client.app.dependency_overrides[get_current_user] = lambda: user
        return user
    return _login


@pytest.fixture
def mock_db(client):
    """替换 get_db 的模拟会话（集合表、账户表）"""
    from unittest.mock import AsyncMock, MagicMock

    from sqlalchemy.ext.asyncio import AsyncSession

    from app.core.database import get_db

    session = AsyncMock(spec=AsyncSession)
    session.add = MagicMock()
    client.app.dependency_overrides[get_db] = lambda: session
    return session
