# app/approval/gate.py
# 审批状态访问控制
#
# 功能说明：
# 根据档案的审批状态决定社团负责人能否执行受控操作。
# 每个受控操作对应一条策略：
#   - None: 要求汇总状态为 approved（全部审核人通过）
#   - 席位集合: 只要求集合内的席位全部通过
#
# 默认策略：
#   DRAFT_LETTER       tpo + dean + director 通过即可起草信函
#   CREATE_COLLECTION  全部通过
#   MANAGE_COLLECTION  全部通过
#   DELETE_LETTER      全部通过
#
# 使用方法：
#   gate = AccessGate.from_settings(settings)
#   gate.require(profile_entity, GatedAction.DRAFT_LETTER)

from enum import Enum
from typing import TYPE_CHECKING, Dict, FrozenSet, Iterable, List, Mapping, Optional

from app.approval.errors import AccessDenied, InvalidRecipients
from app.approval.registry import normalize_role
from app.approval.types import ApprovableEntity, DecisionStatus, RoleKey
from app.core.logging import get_logger

if TYPE_CHECKING:
    from app.core.config import Settings

logger = get_logger(__name__)


class GatedAction(str, Enum):
    """受审批状态控制的操作"""
    CREATE_COLLECTION = "create_collection"
    MANAGE_COLLECTION = "manage_collection"
    DRAFT_LETTER = "draft_letter"
    DELETE_LETTER = "delete_letter"


Policy = Optional[FrozenSet[RoleKey]]

DEFAULT_POLICIES: Dict[GatedAction, Policy] = {
    GatedAction.CREATE_COLLECTION: None,
    GatedAction.MANAGE_COLLECTION: None,
    GatedAction.DRAFT_LETTER: frozenset({RoleKey.TPO, RoleKey.DEAN, RoleKey.DIRECTOR}),
    GatedAction.DELETE_LETTER: None,
}


def _policy_from_roles(values: Iterable[str]) -> Policy:
    """配置中的席位列表 → 策略，空列表表示要求全部通过"""
    roles = set()
    invalid = []
    for value in values or ():
        role = normalize_role(value)
        if role is None:
            invalid.append(str(value))
        else:
            roles.add(role)
    if invalid:
        raise InvalidRecipients(invalid)
    return frozenset(roles) or None


class AccessGate:
    """审批状态访问控制（只读）"""

    def __init__(self, policies: Optional[Mapping[GatedAction, Policy]] = None):
        self.policies: Dict[GatedAction, Policy] = dict(DEFAULT_POLICIES)
        if policies:
            self.policies.update(policies)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "AccessGate":
        collection_policy = _policy_from_roles(settings.COLLECTION_REQUIRED_ROLES)
        return cls({
            GatedAction.DRAFT_LETTER: _policy_from_roles(settings.LETTER_DRAFT_REQUIRED_ROLES),
            GatedAction.CREATE_COLLECTION: collection_policy,
            GatedAction.MANAGE_COLLECTION: collection_policy,
        })

    @staticmethod
    def is_fully_approved(entity: ApprovableEntity) -> bool:
        return entity.approval_state.overall_status == DecisionStatus.APPROVED

    def missing_roles(self, entity: ApprovableEntity, action: GatedAction) -> List[RoleKey]:
        """
        执行操作还缺哪些席位的通过

        全部通过策略下，汇总已 approved 时返回空列表
        """
        state = entity.approval_state
        policy = self.policies.get(action)
        if policy is None:
            if self.is_fully_approved(entity):
                return []
            roles = state.required
        else:
            roles = [role for role in RoleKey if role in policy]
        return [
            role for role in roles
            if state.record_for(role).status != DecisionStatus.APPROVED
        ]

    def is_permitted(self, entity: ApprovableEntity, action: GatedAction) -> bool:
        if self.policies.get(action) is None:
            return self.is_fully_approved(entity)
        return not self.missing_roles(entity, action)

    def require(self, entity: ApprovableEntity, action: GatedAction) -> None:
        """
        检查操作权限

        Raises:
            AccessDenied: 审批状态不满足
        """
        if self.is_permitted(entity, action):
            return
        missing = self.missing_roles(entity, action)
        logger.warning(
            f"[AccessGate] 拒绝 {action.value}: {entity.kind.value} {entity.id} "
            f"缺少 {[role.value for role in missing]}"
        )
        if self.policies.get(action) is None:
            raise AccessDenied(action.value)
        raise AccessDenied(action.value, [role.value for role in missing])

    def permissions(self, entity: ApprovableEntity) -> Dict[str, bool]:
        """全部受控操作的权限表（前端据此显示按钮）"""
        return {action.value: self.is_permitted(entity, action) for action in GatedAction}
