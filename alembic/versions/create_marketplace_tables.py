"""create marketplace tables

Revision ID: 3b9d1c7e5a20
Revises:
Create Date: 2026-10-19 09:12:40

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3b9d1c7e5a20'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


# enum 타입은 먼저 한 번만 만들고, 컬럼에서는 create_type=False 로 참조
ENUMS = {
    'file_kind': ('LOCAL', 'REMOTE'),
    'content_type': ('MCQS', 'PREVIOUS_YEAR', 'PDF_NOTES', 'VIDEO_LECTURES', 'PRACTICE_TESTS'),
    'difficulty': ('BEGINNER', 'INTERMEDIATE', 'ADVANCED'),
    'order_status': ('PENDING', 'SUCCESSFUL', 'FAILED'),
}


def _enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def _item_columns() -> list:
    return [
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('file_kind', _enum('file_kind'), nullable=True),
        sa.Column('file_url', sa.String(length=1000), nullable=False),
        sa.Column('file_id', sa.String(length=255), nullable=True),
        sa.Column('view_url', sa.String(length=1000), nullable=True),
        sa.Column('file_name', sa.String(length=255), nullable=True),
        sa.Column('thumbnail_url', sa.String(length=500), nullable=True),
        sa.Column('price', sa.Integer(), nullable=False),
        sa.Column('is_free', sa.Boolean(), nullable=False),
        sa.Column('downloads', sa.Integer(), nullable=False),
        sa.Column('tags', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    op.create_table(
        'users',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('is_admin', sa.Boolean(), nullable=False),
        sa.Column('google_id', sa.String(length=64), nullable=True),
        sa.Column('profile_image', sa.String(length=500), nullable=False),
        sa.Column('last_login', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'classes',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('order', sa.Integer(), nullable=False),
        sa.Column('image', sa.String(length=500), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('has_semesters', sa.Boolean(), nullable=False),
        sa.Column('semester_count', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )

    op.create_table(
        'semesters',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('class_id', sa.UUID(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('order', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['class_id'], ['classes.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_semesters_class_id', 'semesters', ['class_id'])

    op.create_table(
        'subjects',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('class_id', sa.UUID(), nullable=False),
        sa.Column('semester_id', sa.UUID(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('order', sa.Integer(), nullable=False),
        sa.Column('icon', sa.String(length=500), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['class_id'], ['classes.id']),
        sa.ForeignKeyConstraint(['semester_id'], ['semesters.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_subjects_class_id', 'subjects', ['class_id'])
    op.create_index('ix_subjects_semester_id', 'subjects', ['semester_id'])

    op.create_table(
        'contents',
        *_item_columns(),
        sa.Column('type', _enum('content_type'), nullable=False),
        sa.Column('class_id', sa.UUID(), nullable=False),
        sa.Column('semester_id', sa.UUID(), nullable=False),
        sa.Column('subject_id', sa.UUID(), nullable=False),
        sa.Column('views', sa.Integer(), nullable=False),
        sa.Column('duration', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['class_id'], ['classes.id']),
        sa.ForeignKeyConstraint(['semester_id'], ['semesters.id']),
        sa.ForeignKeyConstraint(['subject_id'], ['subjects.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_contents_class_id', 'contents', ['class_id'])
    op.create_index('ix_contents_semester_id', 'contents', ['semester_id'])
    op.create_index('ix_contents_subject_id', 'contents', ['subject_id'])

    op.create_table(
        'projects',
        *_item_columns(),
        sa.Column('difficulty', _enum('difficulty'), nullable=False),
        sa.Column('technologies', sa.JSON(), nullable=False),
        sa.Column('class_id', sa.UUID(), nullable=False),
        sa.Column('subject_id', sa.UUID(), nullable=False),
        sa.ForeignKeyConstraint(['class_id'], ['classes.id']),
        sa.ForeignKeyConstraint(['subject_id'], ['subjects.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_projects_class_id', 'projects', ['class_id'])
    op.create_index('ix_projects_subject_id', 'projects', ['subject_id'])

    op.create_table(
        'user_content_entitlements',
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('content_id', sa.UUID(), nullable=False),
        sa.Column('granted_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['content_id'], ['contents.id']),
        sa.PrimaryKeyConstraint('user_id', 'content_id'),
    )

    op.create_table(
        'user_project_entitlements',
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('project_id', sa.UUID(), nullable=False),
        sa.Column('granted_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id']),
        sa.PrimaryKeyConstraint('user_id', 'project_id'),
    )

    op.create_table(
        'orders',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('content_id', sa.UUID(), nullable=True),
        sa.Column('project_id', sa.UUID(), nullable=True),
        sa.Column('gateway_order_id', sa.String(length=100), nullable=False),
        sa.Column('gateway_payment_id', sa.String(length=100), nullable=True),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('currency', sa.String(length=10), nullable=False),
        sa.Column('status', _enum('order_status'), nullable=False),
        sa.Column('is_paid', sa.Boolean(), nullable=False),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('failure_reason', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['content_id'], ['contents.id']),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id']),
        sa.CheckConstraint(
            'NOT (content_id IS NOT NULL AND project_id IS NOT NULL)',
            name='ck_orders_single_item',
        ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_orders_user_id', 'orders', ['user_id'])
    op.create_index('ix_orders_gateway_order_id', 'orders', ['gateway_order_id'])

    op.create_table(
        'pending_file_deletions',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('kind', _enum('file_kind'), nullable=False),
        sa.Column('locator', sa.String(length=1000), nullable=False),
        sa.Column('attempts', sa.Integer(), nullable=False),
        sa.Column('last_error', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )


def downgrade() -> None:
    op.drop_table('pending_file_deletions')
    op.drop_index('ix_orders_gateway_order_id', table_name='orders')
    op.drop_index('ix_orders_user_id', table_name='orders')
    op.drop_table('orders')
    op.drop_table('user_project_entitlements')
    op.drop_table('user_content_entitlements')
    op.drop_index('ix_projects_subject_id', table_name='projects')
    op.drop_index('ix_projects_class_id', table_name='projects')
    op.drop_table('projects')
    op.drop_index('ix_contents_subject_id', table_name='contents')
    op.drop_index('ix_contents_semester_id', table_name='contents')
    op.drop_index('ix_contents_class_id', table_name='contents')
    op.drop_table('contents')
    op.drop_index('ix_subjects_semester_id', table_name='subjects')
    op.drop_index('ix_subjects_class_id', table_name='subjects')
    op.drop_table('subjects')
    op.drop_index('ix_semesters_class_id', table_name='semesters')
    op.drop_table('semesters')
    op.drop_table('classes')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')

    bind = op.get_bind()
    for name in reversed(list(ENUMS)):
        postgresql.ENUM(name=name).drop(bind, checkfirst=True)
