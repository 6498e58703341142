from adminconf.db.models.admin import AdminConfigRecord, AppUser

__all__ = [
    "AdminConfigRecord",
    "AppUser",
]
