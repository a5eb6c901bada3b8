# app/approval/recorder.py
# 审批表态记录器
#
# 功能说明：
# 1. 校验一次表态（按顺序，任何一步失败立即终止，不写入）：
#    a. 对象存在                       → EntityNotFound
#    b. 声称的席位在对象的审核人列表中 → NotARecipient
#    c. 操作人登记的角色等于声称的席位 → RoleMismatch
#    d. 拒绝必须填写意见               → CommentRequired
#    e. 认可的成员在允许范围内（信函） → InvalidApprovedMembers
# 2. 生成本次表态记录（decided_at 只生成一次）
# 3. 通过存储的乐观锁更新合并记录；发生 ConcurrentWriteConflict 时
#    重新读取、重新合并、重新写入，最多 max_retries 次
#
# 同一席位重复表态会覆盖原记录，六种状态转换全部允许：
#   pending → approved / rejected
#   approved → approved / rejected
#   rejected → approved / rejected
#
# 使用方法：
#   recorder = DecisionRecorder(repository, registry, PartialApprovalResolver(registry))
#   state = await recorder.record_decision(
#       entity_id, actor, RoleKey.TPO, DecisionAction.APPROVE
#   )

from datetime import datetime
from typing import Callable, Iterable, Optional, Union

from app.approval.errors import (
    CommentRequired,
    ConcurrentWriteConflict,
    NotARecipient,
    RoleMismatch,
)
from app.approval.partial import PartialApprovalResolver
from app.approval.registry import ReviewerRegistry, normalize_role
from app.approval.repository import ApprovalRepository
from app.approval.state import ApprovalState
from app.approval.types import (
    ActorIdentity,
    ApprovableEntity,
    DecisionAction,
    DecisionRecord,
    RoleKey,
)
from app.core.logging import get_logger

logger = get_logger(__name__)


class DecisionRecorder:
    """
    表态记录器

    每种对象（档案 / 信函）各一个实例，绑定各自的存储。
    """

    def __init__(
        self,
        repository: ApprovalRepository,
        registry: ReviewerRegistry,
        resolver: Optional[PartialApprovalResolver] = None,
        max_retries: int = 3,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        """
        Args:
            repository: 对象存储
            registry: 审核人注册表
            resolver: 部分成员认可解析器，默认基于同一注册表创建
            max_retries: 乐观锁冲突时最多尝试写入的次数（至少 1 次）
            clock: 时间来源，测试时可替换
        """
        self.repository = repository
        self.registry = registry
        self.resolver = resolver or PartialApprovalResolver(registry)
        self.max_retries = max(1, max_retries)
        self.clock = clock

    def validate(
        self,
        entity: ApprovableEntity,
        actor: ActorIdentity,
        claimed_role: Union[RoleKey, str],
        action: DecisionAction,
        comment: Optional[str],
    ) -> RoleKey:
        """
        校验表态（b ~ d 步），返回规范化后的席位

        未知的席位字符串同样视为 NotARecipient，不暴露哪些席位合法。
        """
        role = normalize_role(claimed_role)
        if role is None or role not in self.registry.required_reviewers_for(entity):
            raise NotARecipient(str(getattr(claimed_role, "value", claimed_role)), entity.id)

        if normalize_role(actor.role) != role:
            raise RoleMismatch(actor.role, role.value)

        if action == DecisionAction.REJECT and not (comment and comment.strip()):
            raise CommentRequired()

        return role

    async def record_decision(
        self,
        entity_id: str,
        actor: ActorIdentity,
        claimed_role: Union[RoleKey, str],
        action: Union[DecisionAction, str],
        comment: Optional[str] = None,
        approved_member_ids: Optional[Iterable[str]] = None,
    ) -> ApprovalState:
        """
        记录一次表态

        Args:
            entity_id: 对象 ID
            actor: 当前操作人
            claimed_role: 操作人声称代表的席位
            action: approve / reject
            comment: 审核意见（拒绝时必填）
            approved_member_ids: 认可的成员（仅信函的 approve 有效）

        Returns:
            ApprovalState: 写入后的审批状态

        Raises:
            DecisionError: 校验失败（不写入）
            ConcurrentWriteConflict: 重试次数用尽
        """
        action = DecisionAction(action)

        entity = await self.repository.get_entity(entity_id)
        role = self.validate(entity, actor, claimed_role, action, comment)
        members = self.resolver.resolve_members(entity, role, action, approved_member_ids)

        record = DecisionRecord(
            status=action.resulting_status,
            comment=comment.strip() if comment and comment.strip() else None,
            decided_at=self.clock(),
            decider_actor_id=actor.id,
            approved_member_ids=members,
        )

        def merge(current: ApprovableEntity) -> ApprovalState:
            return current.approval_state.with_decision(role, record)

        for attempt in range(1, self.max_retries + 1):
            try:
                state = await self.repository.update_approval_state(entity_id, merge)
            except ConcurrentWriteConflict:
                if attempt >= self.max_retries:
                    logger.warning(
                        f"[DecisionRecorder] {entity.kind.value} {entity_id} "
                        f"写入冲突，已重试 {attempt} 次，放弃"
                    )
                    raise
                logger.info(
                    f"[DecisionRecorder] {entity.kind.value} {entity_id} "
                    f"写入冲突，重新读取合并 (第 {attempt} 次)"
                )
                continue

            logger.info(
                f"[DecisionRecorder] {entity.kind.value} {entity_id}: "
                f"{role.value} {action.value} → 汇总 {state.overall_status.value}"
            )
            return state

        # max_retries >= 1，循环内一定返回或抛出
        raise ConcurrentWriteConflict(entity_id, entity.version)
