"""Generic API response schemas"""

from pydantic import BaseModel
from typing import Optional


class MessageResponse(BaseModel):
    """Generic API success response"""
    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    """Error body returned for every failure"""
    status: int
    message: str
    stack: Optional[str] = None
