from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from contenthub.domain.entities import (
    AccessMode,
    ShareEventType,
    ShareLinkStatus,
    VersionStatus,
)


# --- Errors ---
class ErrorBody(BaseModel):
    code: str
    message: str


class ErrorResponse(BaseModel):
    error: ErrorBody


# --- Public views ---
class PublicAsset(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    source_type: str
    current_published_version_id: UUID | None = None


class PublicVersion(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    asset_id: UUID
    version_number: int
    status: VersionStatus
    change_log: str | None = None
    published_at: datetime | None = None
    expire_at: datetime | None = None


class PublicShareLink(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    token: str
    asset_id: UUID
    version_id: UUID | None = None
    status: ShareLinkStatus
    expires_at: datetime | None = None
    expire_with_asset: bool
    access_mode: AccessMode
    allow_download: bool


class ShareLandingResponse(BaseModel):
    share_link: PublicShareLink
    asset: PublicAsset
    version: PublicVersion
    newer_version_available: bool


class TrackEventRequest(BaseModel):
    event_type: ShareEventType
    email: str | None = Field(
        default=None, description="Verified recipient email (emailVerify links)"
    )


class TrackEventResponse(BaseModel):
    event_id: UUID
    download_url: str | None = None


class VerifyRequest(BaseModel):
    email: str = Field(..., min_length=3, pattern=r"^[^@\s]+@[^@\s]+$")
    verification_token: str = Field(..., min_length=1)


class VerifyResponse(BaseModel):
    verified: bool


# --- Admin views ---
class AssetCreateRequest(BaseModel):
    title: str = Field(..., min_length=1)
    source_type: str = "upload"


class AssetResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    owner_id: str
    source_type: str
    current_published_version_id: UUID | None = None
    deleted_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class VersionCreateRequest(BaseModel):
    storage_key: str = Field(..., min_length=1)
    change_log: str | None = None
    expire_at: datetime | None = None


class VersionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    asset_id: UUID
    version_number: int
    status: VersionStatus
    storage_key: str
    change_log: str | None = None
    publish_at: datetime | None = None
    expire_at: datetime | None = None
    published_at: datetime | None = None
    published_by: str | None = None
    created_by: str | None = None
    created_at: datetime
    updated_at: datetime


class DownloadUrlResponse(BaseModel):
    version_id: UUID
    download_url: str
    expires_in: int


class PublishRequest(BaseModel):
    change_log: str


class ScheduleRequest(BaseModel):
    publish_at: datetime


class ExpireAtRequest(BaseModel):
    expire_at: datetime | None = None


class ShareLinkCreateRequest(BaseModel):
    asset_id: UUID
    version_id: UUID | None = Field(default=None, description="Omit for a canonical link")
    expires_at: datetime | None = None
    expire_with_asset: bool | None = None
    access_mode: AccessMode = AccessMode.PUBLIC
    allow_download: bool | None = None
    recipients: list[str] = Field(default_factory=list)


class ShareRecipientResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    verification_token: str
    verified: bool
    verified_at: datetime | None = None


class ShareLinkResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    token: str
    asset_id: UUID
    version_id: UUID | None = None
    status: ShareLinkStatus
    expires_at: datetime | None = None
    expire_with_asset: bool
    access_mode: AccessMode
    allow_download: bool
    last_access_at: datetime | None = None
    created_by: str | None = None
    created_at: datetime
    updated_at: datetime


class ShareLinkCreatedResponse(BaseModel):
    share_link: ShareLinkResponse
    recipients: list[ShareRecipientResponse] = []


class ShareEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    share_link_id: UUID
    event_type: ShareEventType
    resolved_version_id: UUID | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    email: str | None = None
    created_at: datetime


class ProcessDueFailure(BaseModel):
    version_id: UUID
    code: str
    message: str


class ProcessDueResponse(BaseModel):
    published: list[UUID]
    expired: list[UUID]
    failures: list[ProcessDueFailure]
