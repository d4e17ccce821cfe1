"""
Share link administration models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from contenthub.domain.entities import AccessMode, ShareLink, ShareRecipient


@dataclass(frozen=True)
class SharingConfig:
    """Sharing configuration from rules."""

    token_bytes: int = 24
    verification_token_bytes: int = 16
    default_allow_download: bool = True
    default_expire_with_asset: bool = False
    download_ttl_seconds: int = 3600
    token_attempts: int = 3


@dataclass(frozen=True)
class CreateShareLinkInput:
    """Input for creating a share link. version_id=None makes it canonical."""

    asset_id: UUID
    version_id: UUID | None = None
    expires_at: datetime | None = None
    expire_with_asset: bool | None = None
    access_mode: AccessMode = AccessMode.PUBLIC
    allow_download: bool | None = None
    recipients: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class CreatedShareLink:
    """A new link and the recipient rows (with their verification tokens)."""

    share_link: ShareLink
    recipients: tuple[ShareRecipient, ...] = ()
