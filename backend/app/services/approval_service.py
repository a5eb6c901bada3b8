# app/services/approval_service.py
# 审批服务层
#
# 功能说明：
# 1. 组装审批引擎：注册表 + 部分认可解析器 + 访问控制 + 每种对象一个 DecisionRecorder
# 2. 对外提供三个核心操作：
#    - submit_decision       提交表态
#    - get_aggregate_status  汇总状态 + 各席位状态
#    - list_categorized      审核工作台（按本席位状态分为 pending / approved / rejected）
# 3. 档案提交和信函起草（创建时确定审核席位，初始全部 pending）
#
# 使用方法：
#   from app.services.approval_service import approval_service
#
#   state = await approval_service.submit_decision(
#       EntityKind.LETTER, letter_id, actor, "tpo", "approve"
#   )
#
# 在路由中通过依赖注入获取（测试时可替换为内存存储）：
#   service: ApprovalService = Depends(get_approval_service)

from typing import Any, Dict, Iterable, List, Mapping, Optional

from app.approval.errors import AccessDenied, DuplicateEntity, NotARecipient
from app.approval.gate import AccessGate, GatedAction
from app.approval.partial import PartialApprovalResolver
from app.approval.recorder import DecisionRecorder
from app.approval.registry import ReviewerRegistry, normalize_role
from app.approval.repository import ApprovalRepository
from app.approval.sql_repository import SqlAlchemyApprovalRepository
from app.approval.state import ApprovalState
from app.approval.types import (
    ActorIdentity,
    ApprovableEntity,
    DecisionStatus,
    EntityKind,
)
from app.core.config import settings
from app.core.logging import get_logger
from app.models.letter import Letter
from app.models.profile import Profile

logger = get_logger(__name__)


class EmailDomainNotAllowed(ValueError):
    """提交档案的邮箱不是学校域名"""


class AlreadyExists(ValueError):
    """重复创建（每个用户一份档案，每个集合一封信函）"""


class ApprovalService:
    """
    审批服务

    存储通过构造参数传入，生产环境使用 SQLAlchemy 实现，
    测试使用 InMemoryApprovalRepository。
    """

    def __init__(
        self,
        profiles: ApprovalRepository,
        letters: ApprovalRepository,
        registry: Optional[ReviewerRegistry] = None,
        gate: Optional[AccessGate] = None,
        max_retries: Optional[int] = None,
        allowed_email_domain: Optional[str] = None,
    ):
        self.registry = registry or ReviewerRegistry.from_settings(settings)
        self.gate = gate or AccessGate.from_settings(settings)
        self.resolver = PartialApprovalResolver(self.registry)
        self.allowed_email_domain = (
            settings.ALLOWED_EMAIL_DOMAIN if allowed_email_domain is None else allowed_email_domain
        )
        retries = settings.DECISION_MAX_RETRIES if max_retries is None else max_retries

        self.repositories: Dict[EntityKind, ApprovalRepository] = {
            EntityKind.PROFILE: profiles,
            EntityKind.LETTER: letters,
        }
        self.recorders: Dict[EntityKind, DecisionRecorder] = {
            kind: DecisionRecorder(repo, self.registry, self.resolver, max_retries=retries)
            for kind, repo in self.repositories.items()
        }

    @property
    def profiles(self) -> ApprovalRepository:
        return self.repositories[EntityKind.PROFILE]

    @property
    def letters(self) -> ApprovalRepository:
        return self.repositories[EntityKind.LETTER]

    async def get_entity(self, kind: EntityKind, entity_id: str) -> ApprovableEntity:
        return await self.repositories[kind].get_entity(entity_id)

    # ==================== 核心操作 ====================

    async def submit_decision(
        self,
        kind: EntityKind,
        entity_id: str,
        actor: ActorIdentity,
        role: str,
        action: str,
        comment: Optional[str] = None,
        approved_member_ids: Optional[Iterable[str]] = None,
    ) -> ApprovalState:
        """
        提交表态

        Raises:
            DecisionError: 校验失败，对象状态不变
            ConcurrentWriteConflict: 重试次数用尽
        """
        return await self.recorders[kind].record_decision(
            entity_id,
            actor,
            role,
            action,
            comment=comment,
            approved_member_ids=approved_member_ids,
        )

    async def get_aggregate_status(self, kind: EntityKind, entity_id: str) -> Dict[str, Any]:
        """
        Returns:
            dict: {entity_id, kind, overall_status, per_role_statuses, rejection_reasons}
        """
        return self.status_summary(await self.get_entity(kind, entity_id))

    @staticmethod
    def status_summary(entity: ApprovableEntity) -> Dict[str, Any]:
        state = entity.approval_state
        return {
            "entity_id": entity.id,
            "kind": entity.kind,
            "overall_status": state.overall_status.value,
            "per_role_statuses": {
                role.value: status.value for role, status in state.per_role_statuses().items()
            },
            "rejection_reasons": state.rejection_reasons(),
        }

    async def list_categorized(
        self,
        kind: EntityKind,
        role: str,
        department: Optional[str] = None,
    ) -> Dict[str, List[ApprovableEntity]]:
        """
        审核工作台

        系主任的档案工作台固定为本系申请人；信函只要把本席位列为收件人就出现，
        department 仅在调用方传入时按成员名单筛选。

        Returns:
            dict: {"pending": [...], "approved": [...], "rejected": [...]}，按本席位的状态分类
        """
        role_key = normalize_role(role)
        if role_key is None:
            raise NotARecipient(str(role), kind.value)

        own_department = self.registry.department_of(role_key)
        if own_department is not None and kind == EntityKind.PROFILE:
            department = own_department

        entities = await self.repositories[kind].list_entities_for_reviewer(role_key, department)

        categories: Dict[str, List[ApprovableEntity]] = {status.value: [] for status in DecisionStatus}
        for entity in entities:
            status = entity.approval_state.record_for(role_key).status
            categories[status.value].append(entity)

        counts = {k: len(v) for k, v in categories.items()}
        logger.debug(f"[ApprovalService] {role_key.value} {kind.value} 工作台: {counts}")
        return categories

    def member_approvals(self, letter: ApprovableEntity) -> Dict[str, List[str]]:
        """信函成员 → 认可该成员的席位"""
        return self.resolver.member_approvals(letter)

    async def can_view(self, entity: ApprovableEntity, user: Any) -> bool:
        """
        查看权限（详情、汇总状态、成员认可情况共用）

        管理员都能看；档案对本人和任一审核官员可见；
        信函对收件席位和起草社团的负责人可见。
        """
        if user.is_admin:
            return True
        if entity.kind == EntityKind.PROFILE:
            return entity.owner_id == user.id or user.reviewer_role is not None
        if user.reviewer_role in entity.required_reviewers:
            return True
        author = await self.get_profile_for_owner(user.id)
        return author is not None and author.id == entity.owner_id

    # ==================== 档案 ====================

    async def get_profile_for_owner(self, owner_id: str) -> Optional[ApprovableEntity]:
        profiles = await self.profiles.list_entities_for_owner(owner_id)
        return profiles[0] if profiles else None

    async def onboard_profile(
        self,
        owner_id: str,
        email: str,
        data: Mapping[str, Any],
    ) -> ApprovableEntity:
        """
        提交社团负责人档案

        Args:
            owner_id: 用户 ID
            email: 账户邮箱，必须属于学校域名
            data: 档案字段（ProfileCreate）

        Raises:
            EmailDomainNotAllowed: 邮箱域名不符
            AlreadyExists: 该用户已提交过档案
        """
        domain = (self.allowed_email_domain or "").lower()
        if domain and not email.lower().endswith("@" + domain):
            raise EmailDomainNotAllowed(f"请使用 @{domain} 邮箱提交档案")

        if await self.get_profile_for_owner(owner_id) is not None:
            raise AlreadyExists("档案已提交，不能重复提交")

        required = self.registry.profile_reviewers
        department = str(data["department"]).upper()
        attributes = dict(data)
        attributes.update({"email": email, "department": department})

        entity = ApprovableEntity(
            id="",
            kind=EntityKind.PROFILE,
            required_reviewers=required,
            approval_state=ApprovalState.initial(required),
            owner_id=owner_id,
            departments=frozenset([department]),
            attributes=attributes,
        )
        try:
            created = await self.profiles.create_entity(entity)
        except DuplicateEntity as e:
            raise AlreadyExists("档案已提交，不能重复提交") from e
        logger.info(f"[ApprovalService] 档案已提交: {created.id} ({attributes.get('club_name')})")
        return created

    # ==================== 访问控制 ====================

    def require_access(self, profile: ApprovableEntity, action: GatedAction) -> None:
        """
        Raises:
            AccessDenied: 档案审批状态不满足
        """
        self.gate.require(profile, action)

    def permissions(self, profile: ApprovableEntity) -> Dict[str, bool]:
        return self.gate.permissions(profile)

    # ==================== 信函 ====================

    async def create_letter(
        self,
        author: ApprovableEntity,
        collection_id: str,
        subject: str,
        body: str,
        recipients: Iterable[str],
        club_members_by_dept: Optional[Mapping[str, List[str]]] = None,
        closing: Optional[str] = None,
    ) -> ApprovableEntity:
        """
        起草信函

        Args:
            author: 起草社团的档案（需满足 DRAFT_LETTER）
            collection_id: 所属集合（调用方已校验归属）
            recipients: 收件席位，创建后不可修改

        Raises:
            AccessDenied: 档案审批状态不满足
            InvalidRecipients: 收件人为空或包含未知席位
            AlreadyExists: 该集合已有信函
        """
        self.gate.require(author, GatedAction.DRAFT_LETTER)
        required = self.registry.validate_recipients(recipients)

        for letter in await self.letters.list_entities_for_owner(author.id):
            if letter.attributes.get("collection_id") == collection_id:
                raise AlreadyExists("该集合已有信函")

        if closing and closing.strip():
            body = f"{body.rstrip()}\n\n{closing.strip()}"

        members_by_dept = {
            str(dept).upper(): [str(m) for m in members]
            for dept, members in (club_members_by_dept or {}).items()
        }
        entity = ApprovableEntity(
            id="",
            kind=EntityKind.LETTER,
            required_reviewers=required,
            approval_state=ApprovalState.initial(required),
            owner_id=author.id,
            departments=frozenset(d for d, members in members_by_dept.items() if members),
            members_by_dept=members_by_dept,
            attributes={"collection_id": collection_id, "subject": subject, "body": body},
        )
        try:
            created = await self.letters.create_entity(entity)
        except DuplicateEntity as e:
            raise AlreadyExists("该集合已有信函") from e
        logger.info(
            f"[ApprovalService] 信函已创建: {created.id} "
            f"收件人 {[role.value for role in required]}"
        )
        return created

    async def list_letters(self, author: ApprovableEntity) -> List[ApprovableEntity]:
        return await self.letters.list_entities_for_owner(author.id)

    async def delete_letter(self, author: ApprovableEntity, letter_id: str) -> None:
        """
        删除信函（仅起草社团，且档案满足 DELETE_LETTER）

        Raises:
            EntityNotFound: 信函不存在
            AccessDenied: 不是起草社团或审批状态不满足
        """
        letter = await self.letters.get_entity(letter_id)
        if letter.owner_id != author.id:
            raise AccessDenied(GatedAction.DELETE_LETTER.value)
        self.gate.require(author, GatedAction.DELETE_LETTER)
        await self.letters.delete_entity(letter_id)
        logger.info(f"[ApprovalService] 信函已删除: {letter_id}")


def is_reviewer_role(role: str) -> bool:
    """登记角色是否是审核席位"""
    return normalize_role(role) is not None


# 全局单例
_registry = ReviewerRegistry.from_settings(settings)
approval_service = ApprovalService(
    profiles=SqlAlchemyApprovalRepository(Profile, EntityKind.PROFILE, _registry),
    letters=SqlAlchemyApprovalRepository(Letter, EntityKind.LETTER, _registry),
    registry=_registry,
)


def get_approval_service() -> ApprovalService:
    """FastAPI 依赖"""
    return approval_service
