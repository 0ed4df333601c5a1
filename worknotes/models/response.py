"""
Response models for service results
"""

from typing import Optional
from pydantic import BaseModel


class ImportResult(BaseModel):
    """Result of a markdown import"""
    message: str
    success: bool = True
    task_count: int = 0


class SyncResult(BaseModel):
    """Result of loading or saving the task collection"""
    local_saved: bool = True
    remote_synced: Optional[bool] = None  # None when no remote sync was attempted
    carried_forward: bool = False
    merged: bool = False


class ErrorResponse(BaseModel):
    """Error response model"""
    message: str
    error_code: Optional[str] = None
    details: Optional[dict] = None
