from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import inspect
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from adminconf.core.errors import (
    AdminConfigErrorCode,
    ADMINCFG_002_STORE_READ_FAILED,
    ADMINCFG_003_STORE_WRITE_FAILED,
    ADMINCFG_004_RECORD_CORRUPT,
    AdminStoreError,
)
from adminconf.core.models import AdminConfig
from adminconf.db.config import get_db_settings, redact_database_url
from adminconf.db.engine import make_engine
from adminconf.db.repo import AdminRepo


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


REQUIRED_TABLES = (
    "admin_config",
    "app_users",
)


def _sqlite_path_from_url(url: str, fallback_root: Path) -> Path:
    try:
        parsed = make_url(url)
        if parsed.drivername.startswith("sqlite"):
            db_name = parsed.database or ""
            if not db_name:
                return fallback_root / "data" / "admin.db"
            p = Path(db_name)
            if p.is_absolute():
                return p
            return (fallback_root / p).resolve()
    except Exception:
        pass
    return fallback_root / "data" / "admin.db"


class SQLAlchemyAdminStore:
    """
    Persisted admin configuration backed by SQLAlchemy.

    Holds a single AdminConfig document plus the list of registered usernames.
    Every failure is raised as AdminStoreError; callers decide whether to degrade.
    With auto_init=False nothing touches the database until the first call.
    """

    def __init__(self, project_root: Path, database_url: str | None = None, auto_init: bool = True) -> None:
        self.project_root = project_root
        self.database_url = database_url or get_db_settings().database_url
        self.db_path = _sqlite_path_from_url(self.database_url, project_root)
        self.engine: Engine = make_engine(self.database_url)
        self._Session = sessionmaker(bind=self.engine, autoflush=False, autocommit=False, expire_on_commit=False)
        self.repo = AdminRepo(self._Session)
        self._logger = logging.getLogger("adminconf.admin_store")
        self._schema_ready = False
        if auto_init:
            self._ensure_ready()

    def _ensure_ready(self) -> None:
        if self._schema_ready:
            return
        if self.database_url.lower().startswith("sqlite"):
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.ensure_schema()
        self._schema_ready = True

    def _ready_or_raise(self, err: AdminConfigErrorCode) -> None:
        try:
            self._ensure_ready()
        except (OSError, RuntimeError, SQLAlchemyError) as e:
            raise AdminStoreError(err, str(e)) from e

    def _run_alembic_upgrade(self) -> None:
        alembic_ini = self.project_root / "alembic.ini"
        script_location = self.project_root / "alembic"
        if not alembic_ini.exists() or not script_location.exists():
            fallback_root = Path(__file__).resolve().parents[2]
            alembic_ini = fallback_root / "alembic.ini"
            script_location = fallback_root / "alembic"
        if not alembic_ini.exists() or not script_location.exists():
            raise RuntimeError("Alembic configuration not found")
        cfg = Config(str(alembic_ini))
        cfg.set_main_option("script_location", str(script_location))
        cfg.set_main_option("sqlalchemy.url", self.database_url)
        prev = os.environ.get("DATABASE_URL")
        try:
            os.environ["DATABASE_URL"] = self.database_url
            command.upgrade(cfg, "head")
        finally:
            if prev is None:
                os.environ.pop("DATABASE_URL", None)
            else:
                os.environ["DATABASE_URL"] = prev

    def ensure_schema(self) -> None:
        with self.engine.connect() as conn:
            conn.exec_driver_sql("SELECT 1")
        insp = inspect(self.engine)
        missing = [name for name in REQUIRED_TABLES if not insp.has_table(name)]
        if not missing:
            return
        try:
            self._run_alembic_upgrade()
            insp = inspect(self.engine)
            still_missing = [name for name in REQUIRED_TABLES if not insp.has_table(name)]
            if still_missing:
                raise RuntimeError(f"missing tables after migration: {still_missing}")
        except Exception as e:
            raise RuntimeError(
                "Database schema is not ready; run `alembic upgrade head` "
                f"(url={redact_database_url(self.database_url)}): {e}"
            ) from e

    def get_admin_config(self) -> AdminConfig | None:
        self._ready_or_raise(ADMINCFG_002_STORE_READ_FAILED)
        try:
            raw = self.repo.get_config_json()
        except SQLAlchemyError as e:
            raise AdminStoreError(ADMINCFG_002_STORE_READ_FAILED, str(e)) from e
        if raw is None:
            return None
        config = AdminConfig.from_dict(raw)
        if config is None:
            self._logger.warning("%s type=%s", ADMINCFG_004_RECORD_CORRUPT.code, type(raw).__name__)
        return config

    def save_admin_config(self, config: AdminConfig) -> None:
        self._ready_or_raise(ADMINCFG_003_STORE_WRITE_FAILED)
        try:
            self.repo.save_config_json(config.to_dict(), now=_utc_now())
        except SQLAlchemyError as e:
            raise AdminStoreError(ADMINCFG_003_STORE_WRITE_FAILED, str(e)) from e

    def get_all_usernames(self) -> list[str]:
        self._ready_or_raise(ADMINCFG_002_STORE_READ_FAILED)
        try:
            return self.repo.list_usernames()
        except SQLAlchemyError as e:
            raise AdminStoreError(ADMINCFG_002_STORE_READ_FAILED, str(e)) from e

    def register_user(self, username: str) -> bool:
        name = str(username or "").strip()
        if not name:
            raise ValueError("username required")
        self._ready_or_raise(ADMINCFG_003_STORE_WRITE_FAILED)
        try:
            return self.repo.add_user(name, now=_utc_now())
        except SQLAlchemyError as e:
            raise AdminStoreError(ADMINCFG_003_STORE_WRITE_FAILED, str(e)) from e
