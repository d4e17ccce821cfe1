"""
Record store ports.

Protocol-based interfaces over the two persistence leaves:
- VersionStore: Asset and AssetVersion records
- ShareLinkStore: ShareLink, ShareRecipient and ShareEvent records

Implementations: SQLite (adapters/sqlite), in-memory (adapters/memory).

Invariants:
- Conditional writes raise Conflict when the expected previous value no longer holds
- get_share_link_by_token is strongly consistent (no stale replica reads)
- ShareEvent records are append-only, ordered by share_link_id#created_at
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from contenthub.domain.entities import (
    Asset,
    AssetVersion,
    ShareEvent,
    ShareLink,
    ShareLinkStatus,
    ShareRecipient,
    VersionStatus,
)


class VersionStore(Protocol):
    """Persistence for assets and their versions."""

    def get_asset(self, asset_id: UUID) -> Asset | None:
        """Get asset by ID (soft-deleted assets included)."""
        ...

    def save_asset(self, asset: Asset) -> Asset:
        """Insert or update asset metadata. Never touches the current-version pointer."""
        ...

    def get_version(self, version_id: UUID) -> AssetVersion | None:
        """Get version by ID."""
        ...

    def list_versions(self, asset_id: UUID) -> list[AssetVersion]:
        """List versions of an asset ordered by version_number ascending."""
        ...

    def max_version_number(self, asset_id: UUID) -> int:
        """Highest version_number ever assigned for the asset (0 if none)."""
        ...

    def insert_version(self, version: AssetVersion) -> AssetVersion:
        """
        Insert a new version.

        Raises:
            Conflict: if (asset_id, version_number) is already taken
        """
        ...

    def update_version(
        self,
        version: AssetVersion,
        expected_status: VersionStatus,
    ) -> AssetVersion:
        """
        Write the version's mutable fields only if the stored status equals expected_status.

        Raises:
            Conflict: if the stored status differs
        """
        ...

    def publish_version(
        self,
        version: AssetVersion,
        expected_status: VersionStatus,
        expected_current_id: UUID | None,
        now: datetime,
    ) -> tuple[AssetVersion, Asset]:
        """
        Atomically publish a version and make it the asset's current version.

        In order: write the version (conditional on expected_status); move the
        previous current version to deprecated if it is still published; swap
        the asset pointer (conditional on expected_current_id). The pointer
        swap is the commit point; if any condition fails nothing is applied.

        Raises:
            Conflict: if the version status or the asset pointer changed concurrently
        """
        ...

    def retire_version(
        self,
        version: AssetVersion,
        expected_status: VersionStatus,
        now: datetime,
    ) -> AssetVersion:
        """
        Atomically write the version (conditional on expected_status) and clear
        the asset pointer if it references this version.

        Raises:
            Conflict: if the stored status differs
        """
        ...

    def list_due_scheduled(self, now: datetime, limit: int = 50) -> list[AssetVersion]:
        """Scheduled versions whose publish_at is at or before now."""
        ...

    def list_due_expiring(self, now: datetime, limit: int = 50) -> list[AssetVersion]:
        """Published versions whose expire_at is at or before now."""
        ...


class ShareLinkStore(Protocol):
    """Persistence for share links, recipients and access events."""

    def create_share_link(
        self,
        link: ShareLink,
        recipients: list[ShareRecipient],
    ) -> ShareLink:
        """Insert a link together with its recipients."""
        ...

    def get_share_link(self, link_id: UUID) -> ShareLink | None:
        """Get link by ID."""
        ...

    def get_share_link_by_token(self, token: str) -> ShareLink | None:
        """Strongly consistent lookup by token."""
        ...

    def list_share_links(self, asset_id: UUID) -> list[ShareLink]:
        """List links for an asset, newest first."""
        ...

    def update_share_link_status(
        self,
        link_id: UUID,
        expected_status: ShareLinkStatus,
        new_status: ShareLinkStatus,
        now: datetime,
    ) -> ShareLink | None:
        """
        Conditionally move a link to new_status.

        Returns the updated link, or None if the stored status was not expected_status.
        """
        ...

    def touch_last_access(self, link_id: UUID, now: datetime) -> None:
        """Set last_access_at."""
        ...

    def get_recipient(self, link_id: UUID, email: str) -> ShareRecipient | None:
        """Get the recipient row for (link, email)."""
        ...

    def list_recipients(self, link_id: UUID) -> list[ShareRecipient]:
        """List recipients of a link."""
        ...

    def mark_recipient_verified(self, recipient_id: UUID, now: datetime) -> ShareRecipient:
        """Set verified. The first verified_at is kept on repeat calls."""
        ...

    def append_event(self, event: ShareEvent) -> ShareEvent:
        """Append an access event."""
        ...

    def list_events(
        self,
        link_id: UUID,
        since: datetime | None = None,
        limit: int = 100,
    ) -> list[ShareEvent]:
        """Range query on share_link_id#created_at, oldest first."""
        ...
