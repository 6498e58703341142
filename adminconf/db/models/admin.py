from __future__ import annotations

from typing import Any

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from adminconf.db.base import Base
from adminconf.db.types import JSONDocument


class AdminConfigRecord(Base):
    __tablename__ = "admin_config"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    config_json: Mapped[dict[str, Any]] = mapped_column(JSONDocument(), nullable=False)
    created_at: Mapped[str] = mapped_column(String, nullable=False)
    updated_at: Mapped[str] = mapped_column(String, nullable=False)


class AppUser(Base):
    __tablename__ = "app_users"

    username: Mapped[str] = mapped_column(String, primary_key=True)
    created_at: Mapped[str] = mapped_column(String, nullable=False)

    __table_args__ = (
        Index("idx_app_users_created_at", "created_at", "username"),
    )
