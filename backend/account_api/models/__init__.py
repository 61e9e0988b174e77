"""Database models"""

from account_api.models.user import User, ROLES, DEFAULT_ROLE

__all__ = ["User", "ROLES", "DEFAULT_ROLE"]
