# app/approval/__init__.py
# 多方审批引擎
#
# 模块结构：
#   types.py           共享数据类型
#   errors.py          异常定义
#   registry.py        审核人注册表
#   state.py           审批状态与汇总规则
#   partial.py         信函的部分成员认可
#   recorder.py        表态校验与乐观锁写入
#   gate.py            审批状态访问控制
#   repository.py      存储接口 + 内存实现
#   sql_repository.py  SQLAlchemy 实现（依赖数据库模块，需单独导入）
#
# 使用方式：from app.approval import DecisionRecorder, ReviewerRegistry

from app.approval.types import (
    ActorIdentity,
    ApprovableEntity,
    DecisionAction,
    DecisionRecord,
    DecisionStatus,
    EntityKind,
    RoleKey,
)
from app.approval.errors import (
    AccessDenied,
    ApprovalError,
    CommentRequired,
    ConcurrentWriteConflict,
    DecisionError,
    DuplicateEntity,
    EntityNotFound,
    InvalidApprovedMembers,
    InvalidRecipients,
    NotARecipient,
    RoleMismatch,
)
from app.approval.registry import ReviewerRegistry, normalize_role
from app.approval.state import ApprovalState, recompute
from app.approval.partial import PartialApprovalResolver
from app.approval.recorder import DecisionRecorder
from app.approval.gate import AccessGate, GatedAction
from app.approval.repository import ApprovalRepository, InMemoryApprovalRepository

__all__ = [
    "ActorIdentity",
    "ApprovableEntity",
    "DecisionAction",
    "DecisionRecord",
    "DecisionStatus",
    "EntityKind",
    "RoleKey",
    "AccessDenied",
    "ApprovalError",
    "CommentRequired",
    "ConcurrentWriteConflict",
    "DecisionError",
    "DuplicateEntity",
    "EntityNotFound",
    "InvalidApprovedMembers",
    "InvalidRecipients",
    "NotARecipient",
    "RoleMismatch",
    "ReviewerRegistry",
    "normalize_role",
    "ApprovalState",
    "recompute",
    "PartialApprovalResolver",
    "DecisionRecorder",
    "AccessGate",
    "GatedAction",
    "ApprovalRepository",
    "InMemoryApprovalRepository",
]
