from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field

from app.models.records import (
    DocumentAction,
    DocumentOrigin,
    DocumentPriority,
    DocumentStatus,
)
from app.services.permissions import permission_names


# ---------------------------------------------------------------------------
# Area
# ---------------------------------------------------------------------------


class AreaBase(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    code: str = Field(min_length=1, max_length=40)
    area_type: str | None = Field(default=None, max_length=80)
    is_reception: bool = False
    is_active: bool = True


class AreaCreate(AreaBase):
    pass


class AreaUpdate(BaseModel):
    name: str | None = Field(default=None, max_length=255)
    code: str | None = Field(default=None, max_length=40)
    area_type: str | None = Field(default=None, max_length=80)
    is_reception: bool | None = None
    is_active: bool | None = None


class AreaRead(AreaBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    created_at: datetime
    updated_at: datetime


class PendingCountResponse(BaseModel):
    area_id: UUID
    count: int


# ---------------------------------------------------------------------------
# Principal
# ---------------------------------------------------------------------------


class PrincipalBase(BaseModel):
    first_name: str = Field(min_length=1, max_length=120)
    last_name: str = Field(min_length=1, max_length=120)
    email: str = Field(min_length=3, max_length=255)
    area_id: UUID
    permission_mask: int = Field(default=0, ge=0, le=255)
    is_active: bool = True


class PrincipalCreate(PrincipalBase):
    role: str | None = None
    api_key: str | None = Field(default=None, min_length=16, max_length=255)


class PrincipalUpdate(BaseModel):
    first_name: str | None = Field(default=None, max_length=120)
    last_name: str | None = Field(default=None, max_length=120)
    email: str | None = Field(default=None, max_length=255)
    area_id: UUID | None = None
    permission_mask: int | None = Field(default=None, ge=0, le=255)
    is_active: bool | None = None
    api_key: str | None = Field(default=None, min_length=16, max_length=255)


class PrincipalRead(PrincipalBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    is_blocked: bool
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def permissions(self) -> list[str]:
        return permission_names(self.permission_mask)


# ---------------------------------------------------------------------------
# Document
# ---------------------------------------------------------------------------


class DocumentReceive(BaseModel):
    code: str = Field(min_length=1, max_length=80)
    document_type: str = Field(min_length=1, max_length=120)
    subject: str = Field(min_length=1)
    sender: str | None = Field(default=None, max_length=255)
    folios: int = Field(default=1, ge=1)
    priority: DocumentPriority = DocumentPriority.normal
    origin: DocumentOrigin = DocumentOrigin.external
    observations: str | None = None
    note: str | None = None
    metadata_: dict[str, Any] | None = Field(default=None, alias="metadata_")


class DocumentUpdate(BaseModel):
    document_type: str | None = Field(default=None, max_length=120)
    subject: str | None = None
    sender: str | None = Field(default=None, max_length=255)
    folios: int | None = Field(default=None, ge=1)
    priority: DocumentPriority | None = None
    observations: str | None = None
    metadata_: dict[str, Any] | None = Field(default=None, alias="metadata_")


class DocumentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    code: str
    document_type: str
    subject: str
    sender: str | None = None
    folios: int
    priority: DocumentPriority
    origin: DocumentOrigin
    observations: str | None = None
    status: DocumentStatus
    current_area_id: UUID
    last_sequence: int
    received_by: UUID
    metadata_: dict[str, Any] | None = Field(default=None, alias="metadata_")
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Derivation ledger (append-only, read only)
# ---------------------------------------------------------------------------


class LedgerEntryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    document_id: UUID
    sequence: int
    action: DocumentAction
    from_status: DocumentStatus | None = None
    resulting_status: DocumentStatus
    source_area_id: UUID | None = None
    destination_area_id: UUID
    principal_id: UUID
    note: str | None = None
    created_at: datetime


class LedgerVerifyResponse(BaseModel):
    document_id: UUID
    status: DocumentStatus
    current_area_id: UUID
    sequence: int
    consistent: bool = True


class DeriveRequest(BaseModel):
    destination_area_id: UUID
    note: str | None = None


class TransitionRequest(BaseModel):
    action: DocumentAction
    note: str | None = None


# ---------------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------------


class AuditEventRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    event_type: str
    document_id: UUID | None = None
    principal_id: UUID | None = None
    details: dict[str, Any] | None = None
    occurred_at: datetime
    created_at: datetime


# ---------------------------------------------------------------------------
# Permissions
# ---------------------------------------------------------------------------


class EffectivePermissionsRead(BaseModel):
    principal_id: UUID
    area_id: UUID
    permission_mask: int
    is_blocked: bool
    assigned: list[str]
    effective: list[str]


class PermissionCheckRequest(BaseModel):
    capabilities: list[str] = Field(min_length=1)
    document_id: UUID | None = None


class PermissionCheckResponse(BaseModel):
    allowed: bool


class PermissionBatchRequest(BaseModel):
    capabilities: list[str] = Field(min_length=1)
    document_ids: list[UUID] = Field(min_length=1, max_length=200)


class PermissionBatchResponse(BaseModel):
    results: dict[UUID, bool]


class RolePresetRead(BaseModel):
    role: str
    permission_mask: int
    permissions: list[str]
