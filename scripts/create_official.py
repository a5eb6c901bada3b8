#!/usr/bin/env python3
# scripts/create_official.py
# 创建审核官员 / 管理员账户脚本
#
# 功能说明：
# 1. 创建一个指定角色的账户（admin 或任一审核席位）
# 2. 邮箱已存在时改为更新该账户的角色
# 3. --all-officials 一次性为 8 个审核席位各创建一个账户
#
# 使用方法：
#   # 创建管理员
#   python scripts/create_official.py --role admin --email admin@cmrithyderabad.edu.in
#
#   # 创建 TPO 账户
#   python scripts/create_official.py --role tpo --email tpo@cmrithyderabad.edu.in -n "TPO Office"
#
#   # 开发环境：建表并创建全部审核官员（邮箱为 <role>@<ALLOWED_EMAIL_DOMAIN>）
#   python scripts/create_official.py --init-db --all-officials --password dev123456

import asyncio
import argparse
import sys
import os

# 将 backend 目录添加到 Python 路径
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))

from sqlalchemy import select

from app.approval.types import RoleKey
from app.core.config import settings
from app.core.database import async_session_maker, init_db
from app.core.security import hash_password
from app.models.user import User, ROLE_ADMIN


async def upsert_official(email: str, password: str, name: str, role: str) -> bool:
    """
    创建或更新账户

    Returns:
        bool: 新建返回 True，已存在并更新角色返回 False
    """
    async with async_session_maker() as session:
        result = await session.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()

        if user:
            old_role = user.role
            user.role = role
            user.is_active = True
            await session.commit()
            print(f"⚠️  账户已存在，角色 {old_role} → {role}: {email}")
            return False

        session.add(User(
            email=email,
            password_hash=hash_password(password),
            name=name,
            role=role,
            is_active=True,
        ))
        await session.commit()
        print(f"✅ 已创建 {role}: {email}")
        return True


async def run(args) -> None:
    if args.init_db:
        await init_db()
        print("✅ 数据表已创建")

    if args.all_officials:
        for role in RoleKey:
            await upsert_official(
                email=f"{role.value}@{settings.ALLOWED_EMAIL_DOMAIN}",
                password=args.password,
                name=role.value.upper(),
                role=role.value,
            )
        return

    await upsert_official(
        email=args.email,
        password=args.password,
        name=args.name or args.role.upper(),
        role=args.role,
    )


def main():
    roles = [ROLE_ADMIN] + [role.value for role in RoleKey]

    parser = argparse.ArgumentParser(
        description="创建 Club Portal 审核官员 / 管理员账户",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-e", "--email", help="账户邮箱")
    parser.add_argument("-p", "--password", default="admin123456", help="密码（默认: admin123456）")
    parser.add_argument("-n", "--name", help="显示名称（默认为角色名）")
    parser.add_argument("-r", "--role", choices=roles, default=ROLE_ADMIN, help="角色（默认: admin）")
    parser.add_argument("--all-officials", action="store_true", help="为全部审核席位各创建一个账户")
    parser.add_argument("--init-db", action="store_true", help="先按模型建表（仅开发环境）")

    args = parser.parse_args()

    if len(args.password) < 6:
        print("❌ 密码长度至少 6 位")
        sys.exit(1)
    if not args.all_officials and not args.email:
        print("❌ 请指定 --email，或使用 --all-officials")
        sys.exit(1)

    asyncio.run(run(args))


if __name__ == "__main__":
    main()
