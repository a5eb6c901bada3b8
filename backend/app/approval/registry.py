# app/approval/registry.py
# 审核人注册表
#
# 功能说明：
# 1. 集中定义每类对象需要哪些审核席位
#    - 档案：固定 8 个席位（来自配置 PROFILE_REVIEWERS）
#    - 信函：作者创建时选择的收件人，必须是全局枚举的非空子集
# 2. 系主任席位与系别的对应关系（部分成员认可时使用）
# 3. 兼容历史数据里的驼峰写法（hsHod → hs_hod）
#
# 使用方法：
#   from app.approval.registry import ReviewerRegistry
#   registry = ReviewerRegistry.from_settings(settings)
#   roles = registry.required_reviewers_for(entity)

from typing import TYPE_CHECKING, Dict, Iterable, Optional, Sequence, Tuple

from app.approval.errors import InvalidRecipients
from app.approval.types import ApprovableEntity, EntityKind, RoleKey

if TYPE_CHECKING:
    from app.core.config import Settings


# 系主任席位 → 系别代码
DEPARTMENT_ROLES: Dict[RoleKey, str] = {
    RoleKey.HS_HOD: "HS",
    RoleKey.CSE_HOD: "CSE",
    RoleKey.CSM_HOD: "CSM",
    RoleKey.CSD_HOD: "CSD",
    RoleKey.ECE_HOD: "ECE",
}

# 历史数据中出现过的驼峰键
LEGACY_ROLE_ALIASES: Dict[str, RoleKey] = {
    "hsHod": RoleKey.HS_HOD,
    "cseHod": RoleKey.CSE_HOD,
    "csmHod": RoleKey.CSM_HOD,
    "csdHod": RoleKey.CSD_HOD,
    "eceHod": RoleKey.ECE_HOD,
}


def normalize_role(value: str) -> Optional[RoleKey]:
    """
    把字符串转换为 RoleKey

    支持标准写法（cse_hod）和历史驼峰写法（cseHod），
    无法识别时返回 None（调用方决定是报错还是忽略）
    """
    if isinstance(value, RoleKey):
        return value
    if value in LEGACY_ROLE_ALIASES:
        return LEGACY_ROLE_ALIASES[value]
    try:
        return RoleKey(value)
    except ValueError:
        return None


class ReviewerRegistry:
    """
    审核人注册表

    应用启动时由配置构建一次，之后只读。
    """

    def __init__(self, profile_reviewers: Sequence[str] = tuple(RoleKey)):
        roles = []
        for value in profile_reviewers:
            role = normalize_role(value)
            if role is None:
                raise InvalidRecipients([str(value)])
            if role not in roles:
                roles.append(role)
        if not roles:
            raise InvalidRecipients()
        self._profile_reviewers: Tuple[RoleKey, ...] = tuple(roles)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "ReviewerRegistry":
        return cls(profile_reviewers=settings.PROFILE_REVIEWERS)

    @property
    def profile_reviewers(self) -> Tuple[RoleKey, ...]:
        """档案需要的全部审核席位（有序）"""
        return self._profile_reviewers

    @property
    def all_roles(self) -> Tuple[RoleKey, ...]:
        """全局席位枚举"""
        return tuple(RoleKey)

    def required_reviewers_for(self, entity: ApprovableEntity) -> Tuple[RoleKey, ...]:
        """
        获取对象需要的审核席位

        档案使用固定配置；信函使用创建时保存的收件人列表
        """
        if entity.kind == EntityKind.PROFILE:
            return self._profile_reviewers
        return tuple(entity.required_reviewers)

    def validate_recipients(self, recipients: Iterable[str]) -> Tuple[RoleKey, ...]:
        """
        校验信函收件人

        Returns:
            Tuple[RoleKey, ...]: 去重后的有序席位

        Raises:
            InvalidRecipients: 列表为空或包含未知席位
        """
        roles = []
        invalid = []
        for value in recipients or ():
            role = normalize_role(value)
            if role is None:
                invalid.append(str(value))
            elif role not in roles:
                roles.append(role)
        if invalid or not roles:
            raise InvalidRecipients(invalid)
        return tuple(roles)

    @staticmethod
    def is_department_scoped(role: RoleKey) -> bool:
        """是否是系主任席位"""
        return role in DEPARTMENT_ROLES

    @staticmethod
    def department_of(role: RoleKey) -> Optional[str]:
        """系主任席位对应的系别，其他席位返回 None"""
        return DEPARTMENT_ROLES.get(role)
