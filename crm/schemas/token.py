"""
Pydantic schemas for authentication tokens
"""

from pydantic import BaseModel
from typing import Any, Dict, Optional


class TokenResponse(BaseModel):
    """Token response returned by login and registration"""
    success: bool = True
    access_token: str
    token_type: str = "bearer"
    user: Dict[str, Any]
    tenant: Optional[Dict[str, Any]] = None
