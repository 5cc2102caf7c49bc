"""
Action log Pydantic schemas.
"""

from pydantic import BaseModel
from datetime import datetime
from typing import Optional, List


class ActionLogResponse(BaseModel):
    """Schema for action log entry."""
    id: int
    actor_username: Optional[str]
    action: str
    entity_type: Optional[str]
    entity_id: Optional[int]
    meta_data: Optional[dict]
    ip_address: Optional[str]
    timestamp: datetime

    class Config:
        from_attributes = True


class ActionLogListResponse(BaseModel):
    """Schema for paginated action log list."""
    logs: List[ActionLogResponse]
    total: int
    page: int
    page_size: int
