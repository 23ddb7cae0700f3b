# Session Auth Models
from sessionauth.models.base import BaseModel
from sessionauth.models.token import TokenRecord
from sessionauth.models.user import Role, User, user_roles

__all__ = [
    "BaseModel",
    "Role",
    "TokenRecord",
    "User",
    "user_roles",
]
