from adminconf.db.base import Base
from adminconf.db.config import DBSettings, get_db_settings
from adminconf.db.engine import make_engine

__all__ = [
    "Base",
    "DBSettings",
    "get_db_settings",
    "make_engine",
]
