from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class NotificationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    principal_id: UUID
    area_id: UUID
    document_id: UUID | None = None
    title: str
    body: str
    event_type: str
    is_read: bool
    read_at: datetime | None = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class MarkReadRequest(BaseModel):
    notification_ids: list[UUID]


class UnreadCountResponse(BaseModel):
    count: int
