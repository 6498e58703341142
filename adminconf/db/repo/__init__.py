from adminconf.db.repo.admin_repo import MAIN_CONFIG_ID, AdminRepo

__all__ = [
    "AdminRepo",
    "MAIN_CONFIG_ID",
]
