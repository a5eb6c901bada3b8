# app/approval/state.py
# 审批状态与汇总规则
#
# 功能说明：
# 1. ApprovalState：每个审核席位一条 DecisionRecord，汇总状态由记录推导
# 2. recompute()：汇总规则（纯函数）
#    - 任一必需席位 rejected → rejected
#    - 否则全部必需席位 approved → approved
#    - 否则 → pending
#    不在必需列表中的记录一律忽略
# 3. 序列化：存储为 JSON，读回时一律重新计算汇总状态，
#    不信任数据库里单独保存的 overall_status
#
# 存储格式：
#   {
#     "overall_status": "pending",
#     "records": {
#       "tpo": {"status": "approved", "comment": null, "decided_at": "...",
#               "decider_actor_id": "...", "approved_member_ids": []},
#       ...
#     }
#   }

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from app.approval.registry import normalize_role
from app.approval.types import DecisionRecord, DecisionStatus, RoleKey


PENDING_RECORD = DecisionRecord()


def recompute(
    records: Mapping[RoleKey, DecisionRecord],
    required: Iterable[RoleKey],
) -> DecisionStatus:
    """
    根据各席位记录计算汇总状态

    Args:
        records: 席位 → 记录（可以包含必需列表之外的席位，会被忽略）
        required: 必需席位

    Returns:
        DecisionStatus: 汇总状态
    """
    statuses = [records.get(role, PENDING_RECORD).status for role in required]
    if any(status == DecisionStatus.REJECTED for status in statuses):
        return DecisionStatus.REJECTED
    if statuses and all(status == DecisionStatus.APPROVED for status in statuses):
        return DecisionStatus.APPROVED
    return DecisionStatus.PENDING


@dataclass(frozen=True)
class ApprovalState:
    """
    审批状态（不可变）

    每次变更都返回新对象，旧对象保持不变，
    便于在乐观锁重试时丢弃本次合并结果。
    """
    required: Tuple[RoleKey, ...]
    records: Mapping[RoleKey, DecisionRecord] = field(default_factory=dict)

    @classmethod
    def initial(cls, required: Iterable[RoleKey]) -> "ApprovalState":
        """创建初始状态：所有必需席位均为 pending"""
        required = tuple(required)
        return cls(required=required, records={role: DecisionRecord() for role in required})

    @property
    def overall_status(self) -> DecisionStatus:
        return recompute(self.records, self.required)

    def record_for(self, role: RoleKey) -> DecisionRecord:
        """获取某个席位的记录，未表态时返回 pending"""
        return self.records.get(role, PENDING_RECORD)

    def with_decision(self, role: RoleKey, record: DecisionRecord) -> "ApprovalState":
        """
        合并一个席位的新记录

        同一席位重复提交时覆盖原记录（不追加历史）；
        如果已有记录的 decided_at 比新记录更晚，保留已有记录（以表态时间为准，后写者胜）。
        """
        current = self.records.get(role)
        if (
            current is not None
            and current.decided_at is not None
            and record.decided_at is not None
            and current.decided_at > record.decided_at
        ):
            return self
        records = dict(self.records)
        records[role] = record
        return replace(self, records=records)

    def per_role_statuses(self) -> Dict[RoleKey, DecisionStatus]:
        """必需席位的状态（按必需顺序）"""
        return {role: self.record_for(role).status for role in self.required}

    def roles_with_status(self, status: DecisionStatus) -> List[RoleKey]:
        return [role for role in self.required if self.record_for(role).status == status]

    def rejection_reasons(self) -> List[str]:
        """拒绝原因列表，格式：TPO: 预算说明不清"""
        return [
            f"{role.value.upper()}: {self.record_for(role).comment or '未填写原因'}"
            for role in self.roles_with_status(DecisionStatus.REJECTED)
        ]

    # ==================== 序列化 ====================

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall_status": self.overall_status.value,
            "records": {
                role.value: _record_to_dict(record)
                for role, record in self.records.items()
            },
        }

    @classmethod
    def from_dict(
        cls,
        data: Optional[Mapping[str, Any]],
        required: Iterable[RoleKey],
    ) -> "ApprovalState":
        """
        从存储的 JSON 还原

        兼容两种历史格式：
        - {"records": {"tpo": {...}}, "overall_status": ...}
        - {"tpo": {...}, "hsHod": {...}, "overall_status": ...}（扁平格式）
        缺失的必需席位补为 pending；无法识别的键忽略；overall_status 不读取。
        """
        required = tuple(required)
        data = data if isinstance(data, Mapping) else {}
        raw_records = data.get("records")
        if not isinstance(raw_records, Mapping):
            raw_records = {k: v for k, v in data.items() if k != "overall_status"}

        records: Dict[RoleKey, DecisionRecord] = {}
        for key, value in raw_records.items():
            role = normalize_role(key)
            if role is None or not isinstance(value, Mapping):
                continue
            records[role] = _record_from_dict(value)

        for role in required:
            records.setdefault(role, DecisionRecord())

        return cls(required=required, records=records)


def _record_to_dict(record: DecisionRecord) -> Dict[str, Any]:
    return {
        "status": record.status.value,
        "comment": record.comment,
        "decided_at": record.decided_at.isoformat() if record.decided_at else None,
        "decider_actor_id": record.decider_actor_id,
        "approved_member_ids": sorted(record.approved_member_ids),
    }


def _record_from_dict(data: Mapping[str, Any]) -> DecisionRecord:
    try:
        status = DecisionStatus(data.get("status") or DecisionStatus.PENDING.value)
    except ValueError:
        status = DecisionStatus.PENDING

    decided_at = data.get("decided_at") or data.get("updated_at")
    if isinstance(decided_at, str):
        try:
            decided_at = datetime.fromisoformat(decided_at.replace("Z", "+00:00"))
        except ValueError:
            decided_at = None
        else:
            # 统一为 naive UTC，和 datetime.utcnow() 可比较
            if decided_at.tzinfo is not None:
                decided_at = decided_at.astimezone(timezone.utc).replace(tzinfo=None)
    elif not isinstance(decided_at, datetime):
        decided_at = None

    members = data.get("approved_member_ids")
    if members is None:
        members = data.get("approved_members") or []

    return DecisionRecord(
        status=status,
        comment=data.get("comment", data.get("comments")),
        decided_at=decided_at,
        decider_actor_id=data.get("decider_actor_id", data.get("official_id")),
        approved_member_ids=frozenset(str(m) for m in members)
        if status == DecisionStatus.APPROVED else frozenset(),
    )
