# app/approval/repository.py
# 审批对象存储接口
#
# 定义存储层的标准接口，引擎只通过这个接口读写审批状态。
#
# 并发约定（最重要）：
# update_approval_state 必须是“读 → 合并 → 写回”的原子操作，
# 写回时以 version 为条件（乐观锁）：
#   1. 读取对象当前的完整状态和 version
#   2. 调用 mutator(entity) 得到新的 ApprovalState
#   3. 仅当存储中的 version 仍等于读取时的 version 才写入，并 version + 1
#   4. 否则抛出 ConcurrentWriteConflict，由调用方重新读取再合并
# 只尝试一次，重试由 DecisionRecorder 负责。

import asyncio
import copy
from datetime import datetime
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional

from app.approval.errors import ConcurrentWriteConflict, EntityNotFound
from app.approval.state import ApprovalState
from app.approval.types import ApprovableEntity, EntityKind, RoleKey


# mutator 接收最新读取的对象，返回合并后的新状态；抛出异常则本次不写入
StateMutator = Callable[[ApprovableEntity], ApprovalState]


class ApprovalRepository(ABC):
    """
    审批对象存储基类

    每个实例只负责一种对象（档案或信函）。

    示例：
        class SqlAlchemyApprovalRepository(ApprovalRepository):
            async def get_entity(self, entity_id: str) -> ApprovableEntity:
                ...
    """

    kind: EntityKind

    @abstractmethod
    async def get_entity(self, entity_id: str) -> ApprovableEntity:
        """
        读取对象

        Raises:
            EntityNotFound: 对象不存在
        """
        pass

    @abstractmethod
    async def create_entity(self, entity: ApprovableEntity) -> ApprovableEntity:
        """保存新对象，返回带存储生成字段（id、created_at）的对象"""
        pass

    @abstractmethod
    async def update_approval_state(
        self,
        entity_id: str,
        mutator: StateMutator,
    ) -> ApprovalState:
        """
        以乐观锁方式更新审批状态（单次尝试）

        Raises:
            EntityNotFound: 对象不存在
            ConcurrentWriteConflict: 读取后已被其他请求修改
        """
        pass

    @abstractmethod
    async def list_entities_for_reviewer(
        self,
        role: RoleKey,
        department: Optional[str] = None,
    ) -> List[ApprovableEntity]:
        """
        列出某个席位需要审核的对象

        Args:
            role: 审核席位，只返回 required_reviewers 包含该席位的对象
            department: 系别筛选（档案按申请人系别，信函按成员名单涉及的系别）
        """
        pass

    @abstractmethod
    async def list_entities_for_owner(self, owner_id: str) -> List[ApprovableEntity]:
        """列出某个创建人的对象（档案按用户 ID，信函按社团档案 ID），按创建时间倒序"""
        pass

    @abstractmethod
    async def delete_entity(self, entity_id: str) -> None:
        """删除对象（信函随集合删除时使用）"""
        pass


class InMemoryApprovalRepository(ApprovalRepository):
    """
    内存存储（测试和本地调试使用）

    update_approval_state 在读取和写回之间主动让出事件循环，
    模拟真实存储的 IO 间隙，使并发请求真正交错执行。
    """

    def __init__(self, kind: EntityKind):
        self.kind = kind
        self._entities: Dict[str, ApprovableEntity] = {}
        self._counter = 0

    async def get_entity(self, entity_id: str) -> ApprovableEntity:
        entity = self._entities.get(entity_id)
        if entity is None:
            raise EntityNotFound(self.kind.value, entity_id)
        return copy.deepcopy(entity)

    async def create_entity(self, entity: ApprovableEntity) -> ApprovableEntity:
        if not entity.id:
            self._counter += 1
            entity.id = f"{self.kind.value}-{self._counter}"
        if entity.created_at is None:
            entity.created_at = datetime.utcnow()
        self._entities[entity.id] = copy.deepcopy(entity)
        return copy.deepcopy(entity)

    async def update_approval_state(
        self,
        entity_id: str,
        mutator: StateMutator,
    ) -> ApprovalState:
        snapshot = await self.get_entity(entity_id)
        expected_version = snapshot.version

        new_state = mutator(snapshot)

        # 模拟 IO：其他协程可以在这里写入同一对象
        await asyncio.sleep(0)

        stored = self._entities.get(entity_id)
        if stored is None:
            raise EntityNotFound(self.kind.value, entity_id)
        if stored.version != expected_version:
            raise ConcurrentWriteConflict(entity_id, expected_version)

        stored.approval_state = new_state
        stored.version = expected_version + 1
        return new_state

    async def list_entities_for_reviewer(
        self,
        role: RoleKey,
        department: Optional[str] = None,
    ) -> List[ApprovableEntity]:
        result = []
        for entity in self._entities.values():
            if role not in entity.required_reviewers:
                continue
            if department and department.upper() not in entity.departments:
                continue
            result.append(copy.deepcopy(entity))
        result.sort(key=lambda e: e.created_at, reverse=True)
        return result

    async def list_entities_for_owner(self, owner_id: str) -> List[ApprovableEntity]:
        result = [
            copy.deepcopy(entity)
            for entity in self._entities.values()
            if entity.owner_id == owner_id
        ]
        result.sort(key=lambda e: e.created_at, reverse=True)
        return result

    async def delete_entity(self, entity_id: str) -> None:
        if self._entities.pop(entity_id, None) is None:
            raise EntityNotFound(self.kind.value, entity_id)
