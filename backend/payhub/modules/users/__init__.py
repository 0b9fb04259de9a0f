"""
Users Module - accounts and authentication.
"""

from payhub.modules.users.service import UserService

__all__ = [
    "UserService",
]
