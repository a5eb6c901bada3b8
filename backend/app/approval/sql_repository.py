# app/approval/sql_repository.py
# 基于 SQLAlchemy 的审批对象存储
#
# 功能说明：
# 1. 把 profiles / letters 表的行转换为 ApprovableEntity
# 2. 乐观锁更新审批状态：
#      UPDATE letters SET approval_state = :new, version = :v + 1
#      WHERE id = :id AND version = :v
#    影响行数不是 1 说明读取后已被其他请求写入，抛出 ConcurrentWriteConflict
# 3. 汇总状态快照（overall_status）和 approval_state 在同一条 UPDATE 中写入
#
# 使用方法：
#   from app.approval.sql_repository import SqlAlchemyApprovalRepository
#   from app.models.letter import Letter
#
#   repo = SqlAlchemyApprovalRepository(Letter, EntityKind.LETTER, registry)
#   entity = await repo.get_entity(letter_id)

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.approval.errors import ConcurrentWriteConflict, DuplicateEntity, EntityNotFound
from app.approval.registry import ReviewerRegistry, normalize_role
from app.approval.repository import ApprovalRepository, StateMutator
from app.approval.state import ApprovalState
from app.approval.types import ApprovableEntity, EntityKind, RoleKey
from app.core.database import async_session_maker
from app.core.logging import get_logger

logger = get_logger(__name__)


# 各类对象映射到 ApprovableEntity.attributes 的业务字段
PROFILE_FIELDS = (
    "full_name",
    "roll_number",
    "email",
    "phone",
    "department",
    "year_of_study",
    "expected_graduation",
    "college",
    "club_name",
    "faculty_in_charge",
    "proof_letter_url",
)
LETTER_FIELDS = ("collection_id", "subject", "body")


class SqlAlchemyApprovalRepository(ApprovalRepository):
    """
    SQLAlchemy 存储实现

    每个方法使用独立的会话和事务，不依赖请求级会话，
    保证乐观锁的“读 → 写”在同一个事务内完成。
    """

    def __init__(
        self,
        model: Any,
        kind: EntityKind,
        registry: ReviewerRegistry,
        session_maker: async_sessionmaker = async_session_maker,
    ):
        """
        Args:
            model: ORM 模型类（Profile 或 Letter），需要 approval_state / overall_status / version 字段
            kind: 对象类型
            registry: 审核人注册表（档案的审核席位来自配置）
            session_maker: 会话工厂，测试时可替换
        """
        self.model = model
        self.kind = kind
        self.registry = registry
        self.session_maker = session_maker

    # ==================== 行 ↔ 对象 ====================

    def to_entity(self, row: Any) -> ApprovableEntity:
        """把 ORM 行转换为 ApprovableEntity"""
        if self.kind == EntityKind.PROFILE:
            required = self.registry.profile_reviewers
            department = (row.department or "").upper()
            departments = frozenset([department]) if department else frozenset()
            members_by_dept: Dict[str, List[str]] = {}
            owner_id = row.user_id
            fields = PROFILE_FIELDS
        else:
            roles = []
            for value in row.recipients or []:
                role = normalize_role(value)
                if role is not None and role not in roles:
                    roles.append(role)
            required = tuple(roles)
            members_by_dept = {
                str(dept).upper(): [str(m) for m in (members or [])]
                for dept, members in (row.club_members_by_dept or {}).items()
            }
            departments = frozenset(d for d, members in members_by_dept.items() if members)
            owner_id = row.club_id
            fields = LETTER_FIELDS

        return ApprovableEntity(
            id=row.id,
            kind=self.kind,
            required_reviewers=required,
            approval_state=ApprovalState.from_dict(row.approval_state, required),
            version=row.version or 0,
            owner_id=owner_id,
            departments=departments,
            members_by_dept=members_by_dept,
            attributes={name: getattr(row, name) for name in fields},
            created_at=row.created_at,
        )

    def _to_row(self, entity: ApprovableEntity) -> Any:
        values = dict(entity.attributes)
        if self.kind == EntityKind.PROFILE:
            values["user_id"] = entity.owner_id
        else:
            values["club_id"] = entity.owner_id
            values["recipients"] = [role.value for role in entity.required_reviewers]
            values["club_members_by_dept"] = entity.members_by_dept
        if entity.id:
            values["id"] = entity.id
        state = entity.approval_state
        return self.model(
            approval_state=state.to_dict(),
            overall_status=state.overall_status.value,
            version=0,
            **values,
        )

    # ==================== 读写 ====================

    async def get_entity(self, entity_id: str) -> ApprovableEntity:
        async with self.session_maker() as session:
            row = await session.get(self.model, entity_id)
            if row is None:
                raise EntityNotFound(self.kind.value, entity_id)
            return self.to_entity(row)

    async def create_entity(self, entity: ApprovableEntity) -> ApprovableEntity:
        async with self.session_maker() as session:
            row = self._to_row(entity)
            session.add(row)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                logger.warning(f"[ApprovalRepository] 新建 {self.kind.value} 违反唯一约束: {e.orig}")
                raise DuplicateEntity(self.kind.value) from e
            logger.info(f"[ApprovalRepository] 新建 {self.kind.value}: {row.id}")
            return self.to_entity(row)

    async def update_approval_state(
        self,
        entity_id: str,
        mutator: StateMutator,
    ) -> ApprovalState:
        async with self.session_maker() as session:
            row = await session.get(self.model, entity_id)
            if row is None:
                raise EntityNotFound(self.kind.value, entity_id)

            entity = self.to_entity(row)
            expected_version = entity.version
            new_state = mutator(entity)

            result = await session.execute(
                update(self.model)
                .where(
                    self.model.id == entity_id,
                    self.model.version == expected_version,
                )
                .values(
                    approval_state=new_state.to_dict(),
                    overall_status=new_state.overall_status.value,
                    version=expected_version + 1,
                    updated_at=datetime.utcnow(),
                )
                .execution_options(synchronize_session=False)
            )

            if result.rowcount != 1:
                await session.rollback()
                raise ConcurrentWriteConflict(entity_id, expected_version)

            await session.commit()
            return new_state

    async def list_entities_for_reviewer(
        self,
        role: RoleKey,
        department: Optional[str] = None,
    ) -> List[ApprovableEntity]:
        query = select(self.model).order_by(self.model.created_at.desc())
        if self.kind == EntityKind.PROFILE:
            if role not in self.registry.profile_reviewers:
                return []
            if department:
                query = query.where(func.upper(self.model.department) == department.upper())

        async with self.session_maker() as session:
            result = await session.execute(query)
            rows = result.scalars().all()

        entities = []
        for row in rows:
            entity = self.to_entity(row)
            if role not in entity.required_reviewers:
                continue
            if department and department.upper() not in entity.departments:
                continue
            entities.append(entity)
        return entities

    async def list_entities_for_owner(self, owner_id: str) -> List[ApprovableEntity]:
        owner_column = self.model.user_id if self.kind == EntityKind.PROFILE else self.model.club_id
        query = (
            select(self.model)
            .where(owner_column == owner_id)
            .order_by(self.model.created_at.desc())
        )
        async with self.session_maker() as session:
            result = await session.execute(query)
            return [self.to_entity(row) for row in result.scalars().all()]

    async def delete_entity(self, entity_id: str) -> None:
        async with self.session_maker() as session:
            row = await session.get(self.model, entity_id)
            if row is None:
                raise EntityNotFound(self.kind.value, entity_id)
            await session.delete(row)
            await session.commit()
            logger.info(f"[ApprovalRepository] 删除 {self.kind.value}: {entity_id}")
