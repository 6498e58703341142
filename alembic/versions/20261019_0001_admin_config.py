"""admin config store

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def _json_type() -> sa.TypeEngine:
    dialect_name = op.get_context().dialect.name
    if dialect_name == "postgresql":
        return postgresql.JSONB()
    return sa.Text()


def _has_table(table_name: str) -> bool:
    bind = op.get_bind()
    insp = sa.inspect(bind)
    return table_name in set(insp.get_table_names())


def _existing_indexes(table_name: str) -> set[str]:
    bind = op.get_bind()
    insp = sa.inspect(bind)
    try:
        return {str(i.get("name", "")) for i in insp.get_indexes(table_name)}
    except Exception:
        return set()


def _create_index_if_missing(name: str, table_name: str, cols: list[str]) -> None:
    if name in _existing_indexes(table_name):
        return
    op.create_index(name, table_name, cols, unique=False)


def upgrade() -> None:
    json_type = _json_type()

    if not _has_table("admin_config"):
        op.create_table(
            "admin_config",
            sa.Column("id", sa.Text(), primary_key=True),
            sa.Column("config_json", json_type, nullable=False),
            sa.Column("created_at", sa.Text(), nullable=False),
            sa.Column("updated_at", sa.Text(), nullable=False),
        )

    if not _has_table("app_users"):
        op.create_table(
            "app_users",
            sa.Column("username", sa.Text(), primary_key=True),
            sa.Column("created_at", sa.Text(), nullable=False),
        )
    _create_index_if_missing("idx_app_users_created_at", "app_users", ["created_at", "username"])


def downgrade() -> None:
    bind = op.get_bind()
    insp = sa.inspect(bind)
    tables = set(insp.get_table_names())

    if "app_users" in tables:
        if "idx_app_users_created_at" in _existing_indexes("app_users"):
            op.drop_index("idx_app_users_created_at", table_name="app_users")
        op.drop_table("app_users")

    if "admin_config" in tables:
        op.drop_table("admin_config")
