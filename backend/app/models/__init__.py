from app.core.database import Base
from app.models.account import Account
from app.models.activity import Activity
from app.models.contact import Contact
from app.models.permission import Permission
from app.models.user import User, UserPreference

__all__ = [
    "Base",
    "Account",
    "Activity",
    "Contact",
    "Permission",
    "User",
    "UserPreference",
]
