from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from adminconf.db.models.admin import AdminConfigRecord, AppUser


MAIN_CONFIG_ID = "main"


class AdminRepo:
    def __init__(self, session_factory: sessionmaker[Session]):
        self._Session = session_factory

    def get_config_json(self, config_id: str = MAIN_CONFIG_ID) -> Any | None:
        with self._Session() as s:
            return s.execute(
                select(AdminConfigRecord.config_json).where(AdminConfigRecord.id == config_id).limit(1)
            ).scalar_one_or_none()

    def save_config_json(self, config_json: dict[str, Any], *, now: str, config_id: str = MAIN_CONFIG_ID) -> None:
        with self._Session() as s:
            try:
                row = s.get(AdminConfigRecord, config_id)
                if row is None:
                    row = AdminConfigRecord(id=config_id, created_at=now, updated_at=now, config_json=config_json)
                    s.add(row)
                row.config_json = config_json
                row.updated_at = now
                s.commit()
            except Exception:
                s.rollback()
                raise

    def list_usernames(self) -> list[str]:
        with self._Session() as s:
            rows = s.execute(select(AppUser.username).order_by(AppUser.created_at.asc(), AppUser.username.asc()))
            return [str(x) for x in rows.scalars().all()]

    def add_user(self, username: str, *, now: str) -> bool:
        with self._Session() as s:
            try:
                if s.get(AppUser, username) is not None:
                    return False
                s.add(AppUser(username=username, created_at=now))
                s.commit()
                return True
            except Exception:
                s.rollback()
                raise
