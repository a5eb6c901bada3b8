"""create club portal tables

Revision ID: a1c9e2f4b7d0
Revises:
Create Date: 2026-10-19

创建社团门户基础表：
- users: 账户与登记角色
- profiles: 社团负责人档案（8 席位审批）
- collections: 信函集合
- letters: 信函（收件席位审批）
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'a1c9e2f4b7d0'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table('users',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('email', sa.String(255), nullable=False, comment='登录邮箱'),
        sa.Column('password_hash', sa.String(255), nullable=False, comment='bcrypt 哈希'),
        sa.Column('name', sa.String(100), nullable=False, comment='显示名称'),
        sa.Column('role', sa.String(20), nullable=False, server_default='club_leader',
                  comment='club_leader / admin / 审核席位'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true(), comment='禁用后无法登录，也不再占用审核席位'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'])

    op.create_table('profiles',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('user_id', sa.String(36), nullable=False, comment='提交人用户 ID'),

        # 个人信息
        sa.Column('full_name', sa.String(100), nullable=False, comment='姓名'),
        sa.Column('roll_number', sa.String(50), nullable=False, comment='学号'),
        sa.Column('email', sa.String(255), nullable=False, comment='学校邮箱'),
        sa.Column('phone', sa.String(30), nullable=True, comment='手机号'),
        sa.Column('department', sa.String(10), nullable=False, comment='所在系: HS/CSE/CSM/CSD/ECE'),
        sa.Column('year_of_study', sa.String(10), nullable=True, comment='年级'),
        sa.Column('expected_graduation', sa.String(10), nullable=True, comment='预计毕业年份'),
        sa.Column('college', sa.String(200), nullable=True, comment='学院名称'),

        # 社团信息
        sa.Column('club_name', sa.String(200), nullable=False, comment='社团名称'),
        sa.Column('faculty_in_charge', sa.String(100), nullable=True, comment='指导老师'),
        sa.Column('proof_letter_url', sa.String(500), nullable=True, comment='任职证明文件地址'),

        # 审批
        sa.Column('approval_state', sa.JSON(), nullable=True, comment='各审核席位的表态记录'),
        sa.Column('overall_status', sa.String(20), nullable=False, server_default='pending',
                  comment='汇总状态快照: pending/approved/rejected'),
        sa.Column('version', sa.Integer(), nullable=False, server_default='0', comment='乐观锁版本号'),

        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id')
    )
    op.create_index('ix_profiles_department', 'profiles', ['department'])
    op.create_index('ix_profiles_overall_status', 'profiles', ['overall_status'])

    op.create_table('collections',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('club_id', sa.String(36), nullable=False, comment='所属社团（档案 ID）'),
        sa.Column('name', sa.String(200), nullable=False, comment='集合名称'),
        sa.Column('description', sa.Text(), nullable=True, comment='说明'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['club_id'], ['profiles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('club_id', 'name', name='uq_collection_club_name')
    )
    op.create_index('ix_collections_club_id', 'collections', ['club_id'])

    op.create_table('letters',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('collection_id', sa.String(36), nullable=False, comment='所属集合（一个集合一封信函）'),
        sa.Column('club_id', sa.String(36), nullable=False, comment='起草社团（档案 ID）'),

        # 内容
        sa.Column('subject', sa.String(300), nullable=False, comment='主题'),
        sa.Column('body', sa.Text(), nullable=False, comment='正文（含落款）'),

        # 审批
        sa.Column('recipients', sa.JSON(), nullable=True, comment='收件审核席位'),
        sa.Column('club_members_by_dept', sa.JSON(), nullable=True, comment='涉及成员 {系别: [成员 ID]}'),
        sa.Column('approval_state', sa.JSON(), nullable=True, comment='各收件席位的表态记录'),
        sa.Column('overall_status', sa.String(20), nullable=False, server_default='pending',
                  comment='汇总状态快照: pending/approved/rejected'),
        sa.Column('version', sa.Integer(), nullable=False, server_default='0', comment='乐观锁版本号'),

        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['collection_id'], ['collections.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['club_id'], ['profiles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('collection_id')
    )
    op.create_index('ix_letters_club_id', 'letters', ['club_id'])
    op.create_index('ix_letters_overall_status', 'letters', ['overall_status'])


def downgrade() -> None:
    op.drop_index('ix_letters_overall_status', table_name='letters')
    op.drop_index('ix_letters_club_id', table_name='letters')
    op.drop_table('letters')
    op.drop_index('ix_collections_club_id', table_name='collections')
    op.drop_table('collections')
    op.drop_index('ix_profiles_overall_status', table_name='profiles')
    op.drop_index('ix_profiles_department', table_name='profiles')
    op.drop_table('profiles')
    op.drop_index('ix_users_role', table_name='users')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
