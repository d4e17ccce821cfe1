"""
In-memory record stores.

Same conditional-write semantics as the SQLite stores, guarded by a lock so
concurrent publishers observe compare-and-swap behaviour.
"""

from __future__ import annotations

import threading
from datetime import datetime
from uuid import UUID

from contenthub.domain.entities import (
    Asset,
    AssetVersion,
    ShareEvent,
    ShareLink,
    ShareLinkStatus,
    ShareRecipient,
    VersionStatus,
    make_event_sort_key,
)
from contenthub.domain.errors import Conflict, NotFound


class InMemoryVersionStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._assets: dict[UUID, Asset] = {}
        self._versions: dict[UUID, AssetVersion] = {}

    def get_asset(self, asset_id: UUID) -> Asset | None:
        with self._lock:
            asset = self._assets.get(asset_id)
            return asset.model_copy() if asset else None

    def save_asset(self, asset: Asset) -> Asset:
        with self._lock:
            existing = self._assets.get(asset.id)
            pointer = existing.current_published_version_id if existing else None
            stored = asset.model_copy(update={"current_published_version_id": pointer})
            self._assets[asset.id] = stored
            return stored.model_copy()

    def get_version(self, version_id: UUID) -> AssetVersion | None:
        with self._lock:
            version = self._versions.get(version_id)
            return version.model_copy() if version else None

    def list_versions(self, asset_id: UUID) -> list[AssetVersion]:
        with self._lock:
            versions = [v.model_copy() for v in self._versions.values() if v.asset_id == asset_id]
        return sorted(versions, key=lambda v: v.version_number)

    def max_version_number(self, asset_id: UUID) -> int:
        with self._lock:
            numbers = [v.version_number for v in self._versions.values() if v.asset_id == asset_id]
        return max(numbers, default=0)

    def insert_version(self, version: AssetVersion) -> AssetVersion:
        with self._lock:
            for v in self._versions.values():
                if v.asset_id == version.asset_id and v.version_number == version.version_number:
                    raise Conflict(
                        f"Version number {version.version_number} already taken "
                        f"for asset {version.asset_id}"
                    )
            if version.id in self._versions:
                raise Conflict(f"Version {version.id} already exists")
            self._versions[version.id] = version.model_copy()
            return version.model_copy()

    def update_version(
        self,
        version: AssetVersion,
        expected_status: VersionStatus,
    ) -> AssetVersion:
        with self._lock:
            updated = self._check_version(version, expected_status)
            self._versions[version.id] = updated
            return updated.model_copy()

    def publish_version(
        self,
        version: AssetVersion,
        expected_status: VersionStatus,
        expected_current_id: UUID | None,
        now: datetime,
    ) -> tuple[AssetVersion, Asset]:
        with self._lock:
            updated = self._check_version(version, expected_status)
            asset = self._assets.get(updated.asset_id)
            if asset is None:
                raise NotFound(f"Asset {updated.asset_id} not found")
            if asset.current_published_version_id != expected_current_id:
                raise Conflict(f"Current version of asset {asset.id} changed concurrently")

            # All conditions hold: apply version, previous, pointer
            self._versions[updated.id] = updated
            previous = self._versions.get(expected_current_id) if expected_current_id else None
            if (
                previous is not None
                and previous.id != updated.id
                and previous.status == VersionStatus.PUBLISHED
            ):
                self._versions[previous.id] = previous.model_copy(
                    update={"status": VersionStatus.DEPRECATED, "updated_at": now}
                )
            repointed = asset.model_copy(
                update={"current_published_version_id": updated.id, "updated_at": now}
            )
            self._assets[asset.id] = repointed
            return updated.model_copy(), repointed.model_copy()

    def retire_version(
        self,
        version: AssetVersion,
        expected_status: VersionStatus,
        now: datetime,
    ) -> AssetVersion:
        with self._lock:
            updated = self._check_version(version, expected_status)
            self._versions[updated.id] = updated
            asset = self._assets.get(updated.asset_id)
            if asset is not None and asset.current_published_version_id == updated.id:
                self._assets[asset.id] = asset.model_copy(
                    update={"current_published_version_id": None, "updated_at": now}
                )
            return updated.model_copy()

    def _check_version(
        self,
        version: AssetVersion,
        expected_status: VersionStatus,
    ) -> AssetVersion:
        # Caller holds the lock
        stored = self._versions.get(version.id)
        if stored is None:
            raise NotFound(f"Version {version.id} not found")
        if stored.status != expected_status:
            raise Conflict(
                f"Version {version.id} is {stored.status.value}, "
                f"expected {expected_status.value}"
            )
        # version_number, asset_id and storage_key are immutable
        return version.model_copy(
            update={
                "asset_id": stored.asset_id,
                "version_number": stored.version_number,
                "storage_key": stored.storage_key,
                "created_at": stored.created_at,
            }
        )

    def list_due_scheduled(self, now: datetime, limit: int = 50) -> list[AssetVersion]:
        with self._lock:
            due = [
                v.model_copy()
                for v in self._versions.values()
                if v.status == VersionStatus.SCHEDULED and v.publish_at and v.publish_at <= now
            ]
        return sorted(due, key=lambda v: v.publish_at or now)[:limit]

    def list_due_expiring(self, now: datetime, limit: int = 50) -> list[AssetVersion]:
        with self._lock:
            due = [
                v.model_copy()
                for v in self._versions.values()
                if v.status == VersionStatus.PUBLISHED and v.expire_at and v.expire_at <= now
            ]
        return sorted(due, key=lambda v: v.expire_at or now)[:limit]


class InMemoryShareLinkStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._links: dict[UUID, ShareLink] = {}
        self._recipients: dict[UUID, ShareRecipient] = {}
        self._events: dict[str, ShareEvent] = {}

    def create_share_link(
        self,
        link: ShareLink,
        recipients: list[ShareRecipient],
    ) -> ShareLink:
        with self._lock:
            if any(existing.token == link.token for existing in self._links.values()):
                raise Conflict("Share link token already in use")
            emails = [r.email for r in recipients]
            if len(emails) != len(set(emails)):
                raise Conflict("Duplicate recipient email")
            self._links[link.id] = link.model_copy()
            for recipient in recipients:
                self._recipients[recipient.id] = recipient.model_copy()
            return link.model_copy()

    def get_share_link(self, link_id: UUID) -> ShareLink | None:
        with self._lock:
            link = self._links.get(link_id)
            return link.model_copy() if link else None

    def get_share_link_by_token(self, token: str) -> ShareLink | None:
        with self._lock:
            for link in self._links.values():
                if link.token == token:
                    return link.model_copy()
        return None

    def list_share_links(self, asset_id: UUID) -> list[ShareLink]:
        with self._lock:
            links = [
                link.model_copy() for link in self._links.values() if link.asset_id == asset_id
            ]
        return sorted(links, key=lambda link: link.created_at, reverse=True)

    def update_share_link_status(
        self,
        link_id: UUID,
        expected_status: ShareLinkStatus,
        new_status: ShareLinkStatus,
        now: datetime,
    ) -> ShareLink | None:
        with self._lock:
            link = self._links.get(link_id)
            if link is None or link.status != expected_status:
                return None
            updated = link.model_copy(update={"status": new_status, "updated_at": now})
            self._links[link_id] = updated
            return updated.model_copy()

    def touch_last_access(self, link_id: UUID, now: datetime) -> None:
        with self._lock:
            link = self._links.get(link_id)
            if link is not None:
                self._links[link_id] = link.model_copy(update={"last_access_at": now})

    def get_recipient(self, link_id: UUID, email: str) -> ShareRecipient | None:
        with self._lock:
            for recipient in self._recipients.values():
                if recipient.share_link_id == link_id and recipient.email == email:
                    return recipient.model_copy()
        return None

    def list_recipients(self, link_id: UUID) -> list[ShareRecipient]:
        with self._lock:
            return [r.model_copy() for r in self._recipients.values() if r.share_link_id == link_id]

    def mark_recipient_verified(self, recipient_id: UUID, now: datetime) -> ShareRecipient:
        with self._lock:
            recipient = self._recipients.get(recipient_id)
            if recipient is None:
                raise NotFound("Recipient not found")
            if not recipient.verified:
                recipient = recipient.model_copy(update={"verified": True, "verified_at": now})
                self._recipients[recipient_id] = recipient
            return recipient.model_copy()

    def append_event(self, event: ShareEvent) -> ShareEvent:
        with self._lock:
            # Same-instant events for one link keep distinct keys
            self._events[f"{event.sort_key}#{event.id}"] = event.model_copy()
            return event.model_copy()

    def list_events(
        self,
        link_id: UUID,
        since: datetime | None = None,
        limit: int = 100,
    ) -> list[ShareEvent]:
        prefix = f"{link_id}#"
        lower = make_event_sort_key(link_id, since) if since else prefix
        with self._lock:
            keys = sorted(k for k in self._events if k.startswith(prefix) and k >= lower)
            return [self._events[k].model_copy() for k in keys[:limit]]
