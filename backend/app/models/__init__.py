# app/models/__init__.py
# 数据模型包
#
# 导入本包即把全部表注册到 Base.metadata（Alembic 和 init_db 依赖这一点）


from app.models.user import User
from app.models.profile import Profile
from app.models.collection import Collection
from app.models.letter import Letter

# 导出所有模型（方便 Alembic 自动发现）
__all__ = [
    "User",
    "Profile",
    "Collection",
    "Letter",
]
