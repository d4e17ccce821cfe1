"""
LifecycleManager - AssetVersion state machine and current-version pointer.

Handles draft creation, scheduling, publishing, expiry and archival of asset
versions, plus the periodic trigger that applies time-based transitions.

Key behaviors:
- version_number is max(existing) + 1 per asset, starting at 1, never reused
- Publishing deprecates the previous current version and repoints the asset
  in one conditional store write; the pointer swap is the commit point
- A lost conditional write surfaces as Conflict; the caller re-reads and retries
- Transition to the current status is an idempotent no-op
- Expiring the current version keeps the pointer, so links bound to the asset
  can observe that the asset's live version has expired
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from contenthub.core.ports.stores import VersionStore
from contenthub.core.ports.time import TimePort
from contenthub.domain.entities import Asset, AssetVersion, VersionStatus
from contenthub.domain.errors import (
    BadRequest,
    Conflict,
    ContentHubError,
    Forbidden,
    InvalidTransition,
    NotFound,
)
from contenthub.domain.state import can_transition, transition

from .models import DueFailure, LifecycleConfig, ProcessDueResult

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = LifecycleConfig()


def _as_utc(dt: datetime) -> datetime:
    return dt.replace(tzinfo=UTC) if dt.tzinfo is None else dt.astimezone(UTC)


class LifecycleManager:
    """Owns version status transitions and the asset's current-version pointer."""

    def __init__(
        self,
        store: VersionStore,
        time_port: TimePort | None = None,
        config: LifecycleConfig | None = None,
    ):
        self.store = store
        self.time_port = time_port
        self.config = config or DEFAULT_CONFIG

    def _now_utc(self) -> datetime:
        if self.time_port:
            return self.time_port.now_utc()
        return datetime.now(UTC)

    # --- Assets ---

    def create_asset(self, title: str, owner_id: str, source_type: str = "upload") -> Asset:
        if not title or not title.strip():
            raise BadRequest("title is required")
        if not owner_id:
            raise BadRequest("owner_id is required")
        now = self._now_utc()
        asset = Asset(
            title=title.strip(),
            owner_id=owner_id,
            source_type=source_type,
            created_at=now,
            updated_at=now,
        )
        return self.store.save_asset(asset)

    def get_asset(self, asset_id: UUID) -> Asset:
        asset = self.store.get_asset(asset_id)
        if asset is None:
            raise NotFound(f"Asset {asset_id} not found")
        return asset

    def delete_asset(self, asset_id: UUID) -> Asset:
        """Soft delete. Versions and share links are kept for audit."""
        asset = self.get_asset(asset_id)
        if asset.is_deleted:
            return asset
        now = self._now_utc()
        deleted = asset.model_copy(update={"deleted_at": now, "updated_at": now})
        return self.store.save_asset(deleted)

    # --- Versions ---

    def create_draft(
        self,
        asset_id: UUID,
        storage_key: str,
        actor_id: str | None = None,
        change_log: str | None = None,
        expire_at: datetime | None = None,
    ) -> AssetVersion:
        """
        Create a new draft version with the next version number.

        Retries numbering when a concurrent creator took the same number.
        """
        asset = self.get_asset(asset_id)
        if asset.is_deleted:
            raise BadRequest(f"Asset {asset_id} has been deleted")
        if not storage_key:
            raise BadRequest("storage_key is required")

        now = self._now_utc()
        if expire_at is not None:
            expire_at = _as_utc(expire_at)
            if expire_at <= now:
                raise BadRequest("expire_at must be in the future")

        for attempt in range(1, self.config.version_number_attempts + 1):
            version = AssetVersion(
                asset_id=asset_id,
                version_number=self.store.max_version_number(asset_id) + 1,
                status=VersionStatus.DRAFT,
                storage_key=storage_key,
                change_log=change_log,
                expire_at=expire_at,
                created_by=actor_id,
                created_at=now,
                updated_at=now,
            )
            try:
                created = self.store.insert_version(version)
            except Conflict:
                logger.warning(
                    "Version number %d for asset %s taken concurrently (attempt %d)",
                    version.version_number,
                    asset_id,
                    attempt,
                )
                continue
            logger.info("Created draft v%d of asset %s", created.version_number, asset_id)
            return created

        raise Conflict(f"Could not allocate a version number for asset {asset_id}")

    def get_version(self, version_id: UUID) -> AssetVersion:
        version = self.store.get_version(version_id)
        if version is None:
            raise NotFound(f"Version {version_id} not found")
        return version

    def list_versions(self, asset_id: UUID) -> list[AssetVersion]:
        self.get_asset(asset_id)
        return self.store.list_versions(asset_id)

    # --- Transitions ---

    def transition(
        self,
        version_id: UUID,
        target_status: VersionStatus,
        *,
        actor_id: str | None = None,
        change_log: str | None = None,
    ) -> AssetVersion:
        """
        Move a version along an allowed lifecycle edge.

        Raises:
            NotFound: version (or its asset, when publishing) does not exist
            InvalidTransition: edge not allowed
            BadRequest: scheduling without a future publish_at
            Conflict: a concurrent writer changed the version or the asset pointer
        """
        version = self.get_version(version_id)
        if version.status == target_status:
            return version

        if not can_transition(version.status, target_status):
            raise InvalidTransition(version.status.value, target_status.value)

        now = self._now_utc()

        if target_status == VersionStatus.PUBLISHED:
            return self._publish(version, now, actor_id, change_log)

        if target_status == VersionStatus.SCHEDULED:
            if version.publish_at is None or _as_utc(version.publish_at) <= now:
                raise BadRequest("publish_at must be in the future")

        updated = transition(version, target_status, now)

        if target_status == VersionStatus.ARCHIVED:
            archived = self.store.retire_version(updated, version.status, now)
            logger.info("Archived version %s of asset %s", version.id, version.asset_id)
            return archived

        result = self.store.update_version(updated, version.status)
        logger.info(
            "Version %s of asset %s: %s -> %s",
            version.id,
            version.asset_id,
            version.status.value,
            target_status.value,
        )
        return result

    def _publish(
        self,
        version: AssetVersion,
        now: datetime,
        actor_id: str | None,
        change_log: str | None,
    ) -> AssetVersion:
        asset = self.get_asset(version.asset_id)
        previous_id = asset.current_published_version_id

        updates: dict[str, Any] = {"published_by": actor_id}
        if change_log:
            updates["change_log"] = change_log
        updated = transition(version, VersionStatus.PUBLISHED, now).model_copy(update=updates)

        try:
            published, _ = self.store.publish_version(updated, version.status, previous_id, now)
        except Conflict:
            logger.warning(
                "Publish of version %s lost a concurrent write on asset %s",
                version.id,
                version.asset_id,
            )
            raise

        if previous_id and previous_id != published.id:
            logger.info(
                "Published v%d of asset %s (previous current %s deprecated)",
                published.version_number,
                asset.id,
                previous_id,
            )
        else:
            logger.info("Published v%d of asset %s", published.version_number, asset.id)
        return published

    def publish_now(
        self,
        version_id: UUID,
        change_log: str,
        actor_id: str | None = None,
    ) -> AssetVersion:
        """Publish immediately, ignoring any publish_at. change_log is required."""
        if not change_log or not change_log.strip():
            raise BadRequest("change_log is required to publish")
        return self.transition(
            version_id,
            VersionStatus.PUBLISHED,
            actor_id=actor_id,
            change_log=change_log.strip(),
        )

    def schedule(
        self,
        version_id: UUID,
        publish_at: datetime,
        actor_id: str | None = None,
    ) -> AssetVersion:
        """Schedule (or reschedule) a draft for a future publish_at."""
        publish_at = _as_utc(publish_at)
        now = self._now_utc()
        if publish_at <= now:
            raise BadRequest("publish_at must be in the future")

        version = self.get_version(version_id)
        if version.status not in (VersionStatus.DRAFT, VersionStatus.SCHEDULED):
            raise InvalidTransition(version.status.value, VersionStatus.SCHEDULED.value)

        if self.config.single_scheduled_version_per_asset:
            for other in self.store.list_versions(version.asset_id):
                if other.id != version.id and other.status == VersionStatus.SCHEDULED:
                    raise BadRequest(
                        f"Asset {version.asset_id} already has a scheduled version "
                        f"(v{other.version_number})"
                    )

        with_time = version.model_copy(update={"publish_at": publish_at, "updated_at": now})
        updated = transition(with_time, VersionStatus.SCHEDULED, now)
        result = self.store.update_version(updated, version.status)
        logger.info(
            "Scheduled v%d of asset %s for %s (by %s)",
            result.version_number,
            result.asset_id,
            publish_at.isoformat(),
            actor_id or "unknown",
        )
        return result

    def unschedule(self, version_id: UUID) -> AssetVersion:
        return self.transition(version_id, VersionStatus.DRAFT)

    def expire(self, version_id: UUID) -> AssetVersion:
        # Intentionally leaves the asset pointer on the expired version instead
        # of repointing; expire_with_asset links detect expiry through it.
        return self.transition(version_id, VersionStatus.EXPIRED)

    def archive(self, version_id: UUID) -> AssetVersion:
        return self.transition(version_id, VersionStatus.ARCHIVED)

    def set_expire_at(self, version_id: UUID, expire_at: datetime | None) -> AssetVersion:
        """Set or clear the absolute expiry deadline of a live version."""
        version = self.get_version(version_id)
        if version.status in (
            VersionStatus.DEPRECATED,
            VersionStatus.EXPIRED,
            VersionStatus.ARCHIVED,
        ):
            raise BadRequest(f"Cannot set expiry on a {version.status.value} version")

        now = self._now_utc()
        if expire_at is not None:
            expire_at = _as_utc(expire_at)
            if expire_at <= now:
                raise BadRequest("expire_at must be in the future")

        updated = version.model_copy(update={"expire_at": expire_at, "updated_at": now})
        return self.store.update_version(updated, version.status)

    # --- Direct retrieval ---

    def downloadable_version(self, version_id: UUID, actor_id: str) -> AssetVersion:
        """
        Return the version if actor_id may fetch it by direct reference.

        published and deprecated versions are open to any actor. draft and
        scheduled versions are limited to the asset owner. expired and
        archived versions are withdrawn for everyone.

        Raises:
            NotFound: version or asset missing, or asset deleted
            Forbidden: status does not allow retrieval by this actor
        """
        version = self.get_version(version_id)
        asset = self.get_asset(version.asset_id)
        if asset.is_deleted:
            raise NotFound("Asset not found")

        if version.status in (VersionStatus.EXPIRED, VersionStatus.ARCHIVED):
            raise Forbidden(f"{version.status.value.capitalize()} versions cannot be downloaded")
        if (
            version.status in (VersionStatus.DRAFT, VersionStatus.SCHEDULED)
            and asset.owner_id != actor_id
        ):
            raise Forbidden("Only the asset owner can download unpublished versions")
        return version

    # --- Periodic trigger ---

    def process_due(self) -> ProcessDueResult:
        """
        Apply time-based transitions that are due.

        Publishes scheduled versions whose publish_at has passed and expires
        published versions whose expire_at has passed. Per-version failures are
        logged and reported; they never abort the run.
        """
        now = self._now_utc()
        limit = self.config.process_due_batch_size
        published: list[UUID] = []
        expired: list[UUID] = []
        failures: list[DueFailure] = []

        for version in self.store.list_due_scheduled(now, limit):
            try:
                self.transition(
                    version.id,
                    VersionStatus.PUBLISHED,
                    actor_id=self.config.scheduler_actor_id,
                    change_log=self.config.auto_publish_change_log,
                )
                published.append(version.id)
            except ContentHubError as e:
                logger.warning("Scheduled publish of %s failed: %s", version.id, e.message)
                failures.append(DueFailure(version.id, e.code, e.message))

        for version in self.store.list_due_expiring(now, limit):
            try:
                self.transition(version.id, VersionStatus.EXPIRED)
                expired.append(version.id)
            except ContentHubError as e:
                logger.warning("Expiry of %s failed: %s", version.id, e.message)
                failures.append(DueFailure(version.id, e.code, e.message))

        logger.info(
            "process_due: %d published, %d expired, %d failed",
            len(published),
            len(expired),
            len(failures),
        )
        return ProcessDueResult(
            published=tuple(published),
            expired=tuple(expired),
            failures=tuple(failures),
        )
