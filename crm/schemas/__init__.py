"""
Schemas for API responses and requests
"""

from crm.schemas.token import TokenResponse
from crm.schemas.user import (
    RegisterRequest,
    LoginRequest,
    UserCreate,
    UserUpdate,
    ProfileUpdate,
    PasswordChange,
    UserResponse,
)

__all__ = [
    "TokenResponse",
    "RegisterRequest",
    "LoginRequest",
    "UserCreate",
    "UserUpdate",
    "ProfileUpdate",
    "PasswordChange",
    "UserResponse",
]
