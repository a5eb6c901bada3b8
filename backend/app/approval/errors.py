# app/approval/errors.py
# 审批引擎异常定义
#
# 异常层级：
#   ApprovalError
#   ├── DecisionError                 提交审批时的校验失败（终止本次请求，不写入）
#   │   ├── EntityNotFound            对象不存在
#   │   ├── NotARecipient             席位不在该对象的审核人列表中
#   │   ├── RoleMismatch              操作人登记的角色与声称的席位不一致
#   │   ├── CommentRequired           拒绝时未填写意见
#   │   └── InvalidApprovedMembers    认可的成员不在本系名单中
#   ├── InvalidRecipients             创建信函时审核人列表为空或包含未知席位
#   ├── ConcurrentWriteConflict       乐观锁冲突（可重试）
#   ├── AccessDenied                  审批状态不满足受控操作的条件
#   └── DuplicateEntity               新建对象撞上唯一约束
#
# 每个异常带一个稳定的 code，API 层据此映射 HTTP 状态码。

from typing import Iterable, Optional


class ApprovalError(Exception):
    """审批引擎异常基类"""

    code = "approval_error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)
        self.message = message or self.code


class DecisionError(ApprovalError):
    """审批提交校验失败"""

    code = "decision_error"


class EntityNotFound(DecisionError):
    code = "entity_not_found"

    def __init__(self, kind: str, entity_id: str):
        super().__init__(f"{kind} 不存在: {entity_id}")
        self.kind = kind
        self.entity_id = entity_id


class NotARecipient(DecisionError):
    code = "not_a_recipient"

    def __init__(self, role: str, entity_id: str):
        super().__init__(f"席位 {role} 不是 {entity_id} 的审核人")
        self.role = role
        self.entity_id = entity_id


class RoleMismatch(DecisionError):
    code = "role_mismatch"

    def __init__(self, actor_role: str, claimed_role: str):
        super().__init__(f"操作人角色 {actor_role} 与声称的席位 {claimed_role} 不一致")
        self.actor_role = actor_role
        self.claimed_role = claimed_role


class CommentRequired(DecisionError):
    code = "comment_required"

    def __init__(self):
        super().__init__("拒绝时必须填写审核意见")


class InvalidApprovedMembers(DecisionError):
    code = "invalid_approved_members"

    def __init__(self, member_ids: Iterable[str], department: Optional[str] = None):
        self.member_ids = sorted(member_ids)
        self.department = department
        scope = f"{department} 系名单" if department else "信函成员名单"
        super().__init__(f"以下成员不在{scope}中: {', '.join(self.member_ids)}")


class InvalidRecipients(ApprovalError):
    code = "invalid_recipients"

    def __init__(self, invalid: Iterable[str] = ()):
        self.invalid = list(invalid)
        if self.invalid:
            message = f"未知的审核人: {', '.join(self.invalid)}"
        else:
            message = "审核人列表不能为空"
        super().__init__(message)


class ConcurrentWriteConflict(ApprovalError):
    code = "concurrent_write_conflict"

    def __init__(self, entity_id: str, expected_version: int):
        super().__init__(f"并发写冲突: {entity_id} (期望版本 {expected_version})")
        self.entity_id = entity_id
        self.expected_version = expected_version


class AccessDenied(ApprovalError):
    code = "access_denied"

    def __init__(self, action: str, missing_roles: Iterable[str] = ()):
        self.action = action
        self.missing_roles = list(missing_roles)
        if self.missing_roles:
            message = f"操作 {action} 需要以下审核人通过: {', '.join(self.missing_roles)}"
        else:
            message = f"操作 {action} 需要全部审核人通过"
        super().__init__(message)


class DuplicateEntity(ApprovalError):
    """写入时撞上唯一约束（并发重复创建）"""

    code = "already_exists"

    def __init__(self, kind: str, detail: str = ""):
        super().__init__(f"{kind} 已存在" + (f": {detail}" if detail else ""))
        self.kind = kind
