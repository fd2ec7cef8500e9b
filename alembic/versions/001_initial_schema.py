"""Initial schema: users, roles, documents, download requests, audit log

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19

The one-active-request rule lives in the unique ``active_key`` column of
download_requests; tokens are unique when present.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None

document_status = sa.Enum('PROCESSING', 'PROCESSED', 'FAILED', 'ARCHIVED', name='documentstatus')
download_status = sa.Enum('PENDING', 'APPROVED', 'REJECTED', 'EXPIRED', name='downloadstatus')


def upgrade():
    op.create_table(
        'roles',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(20), nullable=False),
        sa.Column('display_name', sa.String(50), nullable=False),
        sa.Column('description', sa.String(200), nullable=True),
        sa.Column('permissions', sa.JSON, nullable=False),
        sa.Column('is_active', sa.Boolean, server_default=sa.true(), nullable=False),
        sa.Column('is_system', sa.Boolean, server_default=sa.false(), nullable=False),
        sa.Column('created_at_utc', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at_utc', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_roles_name', 'roles', ['name'], unique=True)
    op.create_index('ix_roles_is_active', 'roles', ['is_active'])

    op.create_table(
        'users',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('username', sa.String(30), nullable=False, unique=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('role', sa.String(20), nullable=False),
        sa.Column('is_approved', sa.Boolean, server_default=sa.false(), nullable=False),
        sa.Column('is_rejected', sa.Boolean, server_default=sa.false(), nullable=False),
        sa.Column('created_at_utc', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at_utc', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'])

    op.create_table(
        'documents',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('original_name', sa.String(255), nullable=False),
        sa.Column('filename', sa.String(255), nullable=False, unique=True),
        sa.Column('file_path', sa.String(500), nullable=False),
        sa.Column('file_type', sa.String(10), nullable=False),
        sa.Column('mime_type', sa.String(255), nullable=False),
        sa.Column('file_size', sa.BigInteger, nullable=False),
        sa.Column('content', sa.Text, nullable=False),
        sa.Column('uploaded_by', sa.String(36), nullable=False),
        sa.Column('status', document_status, nullable=False),
        sa.Column('is_public', sa.Boolean, server_default=sa.false(), nullable=False),
        sa.Column('download_count', sa.Integer, server_default=sa.text('0'), nullable=False),
        sa.Column('last_accessed_utc', sa.DateTime(timezone=True), nullable=True),
        sa.Column('tags', sa.JSON, nullable=False),
        sa.Column('allow_download', sa.Boolean, server_default=sa.false(), nullable=False),
        sa.Column('allow_copy', sa.Boolean, server_default=sa.false(), nullable=False),
        sa.Column('allow_print', sa.Boolean, server_default=sa.false(), nullable=False),
        sa.Column('watermark', sa.String(255), server_default='', nullable=False),
        sa.Column('created_at_utc', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at_utc', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['uploaded_by'], ['users.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_documents_uploaded_by', 'documents', ['uploaded_by'])

    op.create_table(
        'download_requests',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('document_id', sa.String(36), nullable=False),
        sa.Column('requester_id', sa.String(36), nullable=False),
        sa.Column('status', download_status, nullable=False),
        sa.Column('request_reason', sa.Text, nullable=False),
        sa.Column('active_key', sa.String(80), nullable=True, unique=True),
        sa.Column('approver_id', sa.String(36), nullable=True),
        sa.Column('approved_at_utc', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rejected_at_utc', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rejection_reason', sa.Text, nullable=False),
        sa.Column('download_token', sa.String(64), nullable=True, unique=True),
        sa.Column('request_expires_at_utc', sa.DateTime(timezone=True), nullable=True),
        sa.Column('token_expires_at_utc', sa.DateTime(timezone=True), nullable=True),
        sa.Column('downloaded_at_utc', sa.DateTime(timezone=True), nullable=True),
        sa.Column('download_count', sa.Integer, server_default=sa.text('0'), nullable=False),
        sa.Column('max_downloads', sa.Integer, server_default=sa.text('1'), nullable=False),
        sa.Column('ip_address', sa.String(45), server_default='', nullable=False),
        sa.Column('user_agent', sa.Text, nullable=False),
        sa.Column('created_at_utc', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at_utc', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['document_id'], ['documents.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['requester_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['approver_id'], ['users.id'], ondelete='SET NULL'),
    )
    op.create_index('ix_download_requests_document_requester', 'download_requests', ['document_id', 'requester_id'])
    op.create_index('ix_download_requests_status_created', 'download_requests', ['status', 'created_at_utc'])

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('at_utc', sa.DateTime(timezone=True), nullable=False),
        sa.Column('action', sa.String(64), nullable=False),
        sa.Column('actor_user_id', sa.String(36), nullable=True),
        sa.Column('document_id', sa.String(36), nullable=True),
        sa.Column('request_id', sa.String(36), nullable=True),
        sa.Column('details', sa.Text, nullable=True),
    )
    op.create_index('ix_audit_logs_at_utc', 'audit_logs', ['at_utc'])
    op.create_index('ix_audit_logs_actor_user_id', 'audit_logs', ['actor_user_id'])


def downgrade():
    op.drop_index('ix_audit_logs_actor_user_id', 'audit_logs')
    op.drop_index('ix_audit_logs_at_utc', 'audit_logs')
    op.drop_table('audit_logs')
    op.drop_index('ix_download_requests_status_created', 'download_requests')
    op.drop_index('ix_download_requests_document_requester', 'download_requests')
    op.drop_table('download_requests')
    op.drop_index('ix_documents_uploaded_by', 'documents')
    op.drop_table('documents')
    op.drop_index('ix_users_role', 'users')
    op.drop_index('ix_users_email', 'users')
    op.drop_table('users')
    op.drop_index('ix_roles_is_active', 'roles')
    op.drop_index('ix_roles_name', 'roles')
    op.drop_table('roles')
    download_status.drop(op.get_bind(), checkfirst=True)
    document_status.drop(op.get_bind(), checkfirst=True)
