# app/approval/types.py
# 审批引擎共享数据类型
#
# 这个文件只定义数据结构，不包含任何 IO 或业务流程，
# 引擎内的其他模块（registry / state / recorder / gate）都依赖这里的类型。
#
# 核心概念：
# ┌──────────────────────────────────────────────────────────────┐
# │ ApprovableEntity  被审批对象（社团负责人档案 / 信函）           │
# │   └─ required_reviewers  需要表态的审核席位（RoleKey，有序）    │
# │   └─ approval_state      每个席位一条 DecisionRecord + 汇总状态 │
# │ ActorIdentity     当前操作人（id + 已登记角色）                 │
# └──────────────────────────────────────────────────────────────┘

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, FrozenSet, List, Optional, Tuple

if TYPE_CHECKING:
    from app.approval.state import ApprovalState


class RoleKey(str, Enum):
    """审核席位（全局固定枚举）"""
    HS_HOD = "hs_hod"       # H&S 系主任
    CSE_HOD = "cse_hod"     # CSE 系主任
    CSM_HOD = "csm_hod"     # CSM 系主任
    CSD_HOD = "csd_hod"     # CSD 系主任
    ECE_HOD = "ece_hod"     # ECE 系主任
    TPO = "tpo"             # 就业指导办公室
    DEAN = "dean"           # 院长
    DIRECTOR = "director"   # 校长


class DecisionStatus(str, Enum):
    """单个席位的表态状态，也用作汇总状态"""
    PENDING = "pending"     # 待审批
    APPROVED = "approved"   # 已通过
    REJECTED = "rejected"   # 已拒绝


class DecisionAction(str, Enum):
    """审核人提交的动作"""
    APPROVE = "approve"
    REJECT = "reject"

    @property
    def resulting_status(self) -> DecisionStatus:
        """动作对应的席位状态"""
        if self is DecisionAction.APPROVE:
            return DecisionStatus.APPROVED
        return DecisionStatus.REJECTED


class EntityKind(str, Enum):
    """被审批对象类型"""
    PROFILE = "profile"     # 社团负责人档案
    LETTER = "letter"       # 信函


@dataclass(frozen=True)
class DecisionRecord:
    """
    单个审核席位的当前表态

    Attributes:
        status: pending / approved / rejected
        comment: 审核意见，拒绝时必填
        decided_at: 表态时间（UTC）
        decider_actor_id: 表态人 ID
        approved_member_ids: 仅信函使用，该审核人认可的成员 ID（只在 approved 时有意义）
    """
    status: DecisionStatus = DecisionStatus.PENDING
    comment: Optional[str] = None
    decided_at: Optional[datetime] = None
    decider_actor_id: Optional[str] = None
    approved_member_ids: FrozenSet[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class ActorIdentity:
    """
    当前操作人

    由身份认证层解析（见 app/core/security.py 的 get_current_actor），
    引擎只关心 id 和已登记的角色。
    """
    id: str
    role: str
    name: Optional[str] = None


@dataclass
class ApprovableEntity:
    """
    被审批对象

    Attributes:
        id: 对象 ID
        kind: profile / letter
        required_reviewers: 需要表态的席位，创建后不可修改
        approval_state: 当前审批状态
        version: 乐观锁版本号，每次写入 +1
        owner_id: 创建人（档案为学生用户 ID，信函为社团负责人档案 ID）
        departments: 所属系别（档案为申请人所在系，信函为成员名单涉及的系）
        members_by_dept: 信函列出的成员 {系别: [成员 ID]}，档案为空
        attributes: 对象自身的业务字段（姓名、标题、正文等）
    """
    id: str
    kind: EntityKind
    required_reviewers: Tuple[RoleKey, ...]
    approval_state: "ApprovalState"
    version: int = 0
    owner_id: Optional[str] = None
    departments: FrozenSet[str] = field(default_factory=frozenset)
    members_by_dept: Dict[str, List[str]] = field(default_factory=dict)
    attributes: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None
