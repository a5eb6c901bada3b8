# app/schemas/collection.py
# 信函集合的请求 / 响应模式

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class CollectionCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200, description="Collection name, unique per club")
    description: Optional[str] = Field(None, description="Description")


class CollectionResponse(BaseModel):
    id: str
    club_id: str
    name: str
    description: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class CollectionListResponse(BaseModel):
    items: List[CollectionResponse]
    total: int
