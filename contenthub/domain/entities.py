from datetime import UTC, datetime
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


SORT_KEY_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def utc_now() -> datetime:
    return datetime.now(UTC)


# --- Enums ---


class VersionStatus(str, Enum):
    """Lifecycle status of an AssetVersion."""

    DRAFT = "draft"
    SCHEDULED = "scheduled"
    PUBLISHED = "published"
    DEPRECATED = "deprecated"
    EXPIRED = "expired"
    ARCHIVED = "archived"


class ShareLinkStatus(str, Enum):
    ACTIVE = "active"
    REVOKED = "revoked"
    EXPIRED = "expired"


class AccessMode(str, Enum):
    PUBLIC = "public"
    EMAIL_VERIFY = "emailVerify"


class ShareEventType(str, Enum):
    VIEW = "view"
    DOWNLOAD = "download"
    VERIFY = "verify"


# --- Assets ---


class Asset(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    title: str
    owner_id: str
    source_type: str = "upload"
    current_published_version_id: UUID | None = None
    deleted_at: datetime | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class AssetVersion(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    asset_id: UUID
    version_number: int
    status: VersionStatus = VersionStatus.DRAFT
    storage_key: str
    change_log: str | None = None
    publish_at: datetime | None = None
    expire_at: datetime | None = None
    published_at: datetime | None = None
    published_by: str | None = None
    created_by: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


# --- Sharing ---


class ShareLink(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    token: str
    asset_id: UUID
    version_id: UUID | None = None  # None means canonical
    status: ShareLinkStatus = ShareLinkStatus.ACTIVE
    expires_at: datetime | None = None
    expire_with_asset: bool = False
    access_mode: AccessMode = AccessMode.PUBLIC
    allow_download: bool = True
    last_access_at: datetime | None = None
    created_by: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def is_pinned(self) -> bool:
        return self.version_id is not None


class ShareRecipient(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    share_link_id: UUID
    email: str
    verification_token: str
    verified: bool = False
    verified_at: datetime | None = None
    created_at: datetime = Field(default_factory=utc_now)


class ShareEvent(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    share_link_id: UUID
    event_type: ShareEventType
    resolved_version_id: UUID | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    email: str | None = None
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def sort_key(self) -> str:
        """Composite range key: share_link_id#created_at."""
        return make_event_sort_key(self.share_link_id, self.created_at)


def make_event_sort_key(share_link_id: UUID, created_at: datetime) -> str:
    return f"{share_link_id}#{created_at.astimezone(UTC).strftime(SORT_KEY_TIME_FORMAT)}"


def normalize_email(email: str) -> str:
    return email.strip().lower()
