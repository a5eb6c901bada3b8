# app/approval/partial.py
# 信函的部分成员认可
#
# 功能说明：
# 系主任审批信函时，只认可信函成员名单中本系的部分成员（approved_member_ids）。
# 这不改变席位级的 approve/reject 语义：approved 依然计入“全员通过”，
# 认可了哪些成员只作为记录附带保存，供展示时按成员汇总。
#
# 规则：
# - 拒绝：认可名单清空
# - 档案：没有成员名单，认可名单清空
# - 系主任：只能认可 members_by_dept[本系] 中的成员
# - 其他席位（TPO / 院长 / 校长）：可以认可名单中任一系的成员

from typing import Dict, FrozenSet, Iterable, List, Optional

from app.approval.errors import InvalidApprovedMembers
from app.approval.registry import ReviewerRegistry
from app.approval.types import (
    ApprovableEntity,
    DecisionAction,
    DecisionStatus,
    EntityKind,
    RoleKey,
)


class PartialApprovalResolver:
    """部分成员认可的校验与汇总"""

    def __init__(self, registry: ReviewerRegistry):
        self.registry = registry

    def resolve_members(
        self,
        entity: ApprovableEntity,
        role: RoleKey,
        action: DecisionAction,
        approved_member_ids: Optional[Iterable[str]],
    ) -> FrozenSet[str]:
        """
        校验并规范化本次表态认可的成员

        Returns:
            FrozenSet[str]: 写入记录的成员 ID 集合

        Raises:
            InvalidApprovedMembers: 包含名单之外的成员
        """
        if action != DecisionAction.APPROVE or entity.kind != EntityKind.LETTER:
            return frozenset()

        requested = frozenset(str(m) for m in (approved_member_ids or ()))
        if not requested:
            return requested

        department = self.registry.department_of(role)
        allowed = self.allowed_members(entity, department)
        unknown = requested - allowed
        if unknown:
            raise InvalidApprovedMembers(unknown, department)
        return requested

    @staticmethod
    def allowed_members(entity: ApprovableEntity, department: Optional[str]) -> FrozenSet[str]:
        """某个系（None 表示全部系）在信函中列出的成员"""
        if department is not None:
            return frozenset(str(m) for m in entity.members_by_dept.get(department, ()))
        return frozenset(
            str(m) for members in entity.members_by_dept.values() for m in members
        )

    @staticmethod
    def member_approvals(entity: ApprovableEntity) -> Dict[str, List[str]]:
        """
        按成员汇总认可情况（只读投影，不参与汇总状态）

        Returns:
            Dict[str, List[str]]: 成员 ID → 认可该成员的席位列表；
            名单中未被任何席位认可的成员对应空列表
        """
        state = entity.approval_state
        result: Dict[str, List[str]] = {
            str(m): [] for members in entity.members_by_dept.values() for m in members
        }
        for role in state.required:
            record = state.record_for(role)
            if record.status != DecisionStatus.APPROVED:
                continue
            for member_id in sorted(record.approved_member_ids):
                result.setdefault(member_id, []).append(role.value)
        return result
