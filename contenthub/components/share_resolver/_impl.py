"""
ShareLinkResolver - token to effective AssetVersion.

Resolution order (each step short-circuits):
1. Unknown token -> NotFound
2. Revoked -> Revoked
3. Stored expired -> Expired
4. expires_at passed -> materialize expired, then Expired
5. Pinned: that exact version; canonical: the asset's current version -> NotFound if missing
6. expire_with_asset and the asset's current version is expired -> materialize, ExpiredWithAsset
7. Resolved version not published -> NotAvailable
8. Success, with newer_version_available computed on the side

Invariants:
- Pinned links never self-heal once their version leaves published
- Canonical links always track the asset's current version
- The lazy expiry write is durable before Expired is surfaced
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from contenthub.core.ports.stores import ShareLinkStore, VersionStore
from contenthub.core.ports.time import TimePort
from contenthub.domain.entities import (
    Asset,
    AssetVersion,
    ShareLink,
    ShareLinkStatus,
    VersionStatus,
)
from contenthub.domain.errors import (
    ContentHubError,
    Expired,
    ExpiredWithAsset,
    NotAvailable,
    NotFound,
    Revoked,
)

from .models import EffectiveStatus, ResolvedShare

logger = logging.getLogger(__name__)


# --- Pure Functions (Functional Core) ---


def is_link_expired(share_link: ShareLink, now: datetime | None = None) -> bool:
    """
    Check whether a link's expires_at has been reached.

    Args:
        share_link: Link to check
        now: Current time (for testing)

    Returns:
        True if expires_at is set and now is at or past it
    """
    if share_link.expires_at is None:
        return False
    if now is None:
        now = datetime.now(UTC)
    return now >= share_link.expires_at


def evaluate(share_link: ShareLink, now: datetime) -> EffectiveStatus:
    """Decide a link's status at `now` without touching any store."""
    if share_link.status == ShareLinkStatus.REVOKED:
        return EffectiveStatus.REVOKED
    if share_link.status == ShareLinkStatus.EXPIRED:
        return EffectiveStatus.EXPIRED
    if is_link_expired(share_link, now):
        return EffectiveStatus.LAPSED
    return EffectiveStatus.ACTIVE


def newer_version_available(
    share_link: ShareLink,
    resolved: AssetVersion,
    current: AssetVersion | None,
) -> bool:
    """
    Whether the asset has moved past the version a link resolved to.

    Canonical links resolve to the current version by definition, so the
    answer is always False. Pinned links compare against the asset's current
    published version.
    """
    if not share_link.is_pinned:
        return False
    if current is None or current.status != VersionStatus.PUBLISHED:
        return False
    return current.version_number > resolved.version_number


# --- Service ---


class ShareLinkResolver:
    def __init__(
        self,
        links: ShareLinkStore,
        versions: VersionStore,
        time_port: TimePort | None = None,
    ):
        self.links = links
        self.versions = versions
        self.time_port = time_port

    def _now_utc(self) -> datetime:
        if self.time_port:
            return self.time_port.now_utc()
        return datetime.now(UTC)

    def materialize_expired(self, share_link: ShareLink, now: datetime) -> ShareLink:
        """
        Persist status=expired for an active link. Idempotent.

        Store failures propagate; the caller must not report the link as live.
        """
        updated = self.links.update_share_link_status(
            share_link.id, ShareLinkStatus.ACTIVE, ShareLinkStatus.EXPIRED, now
        )
        if updated is not None:
            logger.info("Share link %s marked expired", share_link.id)
            return updated
        # Already moved by someone else; report what is stored now
        current = self.links.get_share_link(share_link.id)
        return current or share_link

    def check_link(self, token: str) -> ShareLink:
        """Steps 1-4: look up the link and apply revocation and expiry checks."""
        share_link = self.links.get_share_link_by_token(token)
        if share_link is None:
            raise NotFound("Share link not found")

        now = self._now_utc()
        status = evaluate(share_link, now)
        if status == EffectiveStatus.REVOKED:
            raise Revoked()
        if status == EffectiveStatus.EXPIRED:
            raise Expired()
        if status == EffectiveStatus.LAPSED:
            self.materialize_expired(share_link, now)
            raise Expired()
        return share_link

    def check_asset_expiry(
        self,
        share_link: ShareLink,
        asset: Asset,
        resolved: AssetVersion | None = None,
    ) -> AssetVersion | None:
        """
        Step 6: end expire_with_asset links once the asset's live version expired.

        Returns the asset's current version (None when there is none) so the
        caller can reuse it for the newer-version signal.
        """
        current = self._current_version(asset, resolved, strict=share_link.expire_with_asset)
        if (
            share_link.expire_with_asset
            and current is not None
            and current.status == VersionStatus.EXPIRED
        ):
            self.materialize_expired(share_link, self._now_utc())
            raise ExpiredWithAsset()
        return current

    def validate_link(self, token: str) -> ShareLink:
        """
        Link-level checks without picking a version.

        Runs steps 1-4 and the expire-with-asset check. Recipient verification
        goes through here since it does not serve any version.
        """
        share_link = self.check_link(token)
        if share_link.expire_with_asset:
            asset = self.versions.get_asset(share_link.asset_id)
            if asset is not None:
                self.check_asset_expiry(share_link, asset)
        return share_link

    def resolve(self, token: str) -> ResolvedShare:
        share_link = self.check_link(token)

        asset = self.versions.get_asset(share_link.asset_id)
        if asset is None or asset.is_deleted:
            raise NotFound("Asset not found")

        version = self._resolve_version(share_link, asset)
        current = self.check_asset_expiry(share_link, asset, version)

        if version.status != VersionStatus.PUBLISHED:
            raise NotAvailable()

        return ResolvedShare(
            share_link=share_link,
            version=version,
            asset=asset,
            newer_version_available=newer_version_available(share_link, version, current),
        )

    def _resolve_version(self, share_link: ShareLink, asset: Asset) -> AssetVersion:
        if share_link.version_id is not None:
            version = self.versions.get_version(share_link.version_id)
            if version is None or version.asset_id != asset.id:
                raise NotFound("Version not found")
            return version

        if asset.current_published_version_id is None:
            raise NotFound("No published version available")
        version = self.versions.get_version(asset.current_published_version_id)
        if version is None:
            raise NotFound("No published version available")
        return version

    def _current_version(
        self,
        asset: Asset,
        resolved: AssetVersion | None,
        strict: bool,
    ) -> AssetVersion | None:
        if asset.current_published_version_id is None:
            return None
        if resolved is not None and asset.current_published_version_id == resolved.id:
            return resolved
        if strict:
            return self.versions.get_version(asset.current_published_version_id)
        try:
            return self.versions.get_version(asset.current_published_version_id)
        except ContentHubError as e:
            # Only feeds side signals for pinned links; resolution proceeds
            logger.warning("Could not load current version of asset %s: %s", asset.id, e)
            return None
