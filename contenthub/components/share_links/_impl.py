"""
ShareLinkService - owner-side share link administration.

Creates canonical or pinned links (with invited recipients for emailVerify
links), lists them per asset and revokes them. Links are never deleted.
"""

from __future__ import annotations

import logging
import secrets
from datetime import UTC, datetime
from uuid import UUID

from contenthub.core.ports.stores import ShareLinkStore, VersionStore
from contenthub.core.ports.time import TimePort
from contenthub.domain.entities import (
    AccessMode,
    ShareLink,
    ShareLinkStatus,
    ShareRecipient,
    normalize_email,
)
from contenthub.domain.errors import BadRequest, Conflict, NotFound

from .models import CreatedShareLink, CreateShareLinkInput, SharingConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = SharingConfig()


def _normalize_recipients(emails: tuple[str, ...]) -> list[str]:
    seen: list[str] = []
    for raw in emails:
        email = normalize_email(raw)
        if "@" not in email or email.startswith("@") or email.endswith("@"):
            raise BadRequest(f"Invalid recipient email: {raw}")
        if email not in seen:
            seen.append(email)
    return seen


class ShareLinkService:
    def __init__(
        self,
        links: ShareLinkStore,
        versions: VersionStore,
        time_port: TimePort | None = None,
        config: SharingConfig | None = None,
    ):
        self.links = links
        self.versions = versions
        self.time_port = time_port
        self.config = config or DEFAULT_CONFIG

    def _now_utc(self) -> datetime:
        if self.time_port:
            return self.time_port.now_utc()
        return datetime.now(UTC)

    def create(self, data: CreateShareLinkInput, actor_id: str) -> CreatedShareLink:
        asset = self.versions.get_asset(data.asset_id)
        if asset is None or asset.is_deleted:
            raise NotFound(f"Asset {data.asset_id} not found")

        if data.version_id is not None:
            version = self.versions.get_version(data.version_id)
            if version is None:
                raise NotFound(f"Version {data.version_id} not found")
            if version.asset_id != asset.id:
                raise BadRequest("Version does not belong to asset")

        now = self._now_utc()
        expires_at = data.expires_at
        if expires_at is not None:
            expires_at = (
                expires_at.replace(tzinfo=UTC)
                if expires_at.tzinfo is None
                else expires_at.astimezone(UTC)
            )
            if expires_at <= now:
                raise BadRequest("expires_at must be in the future")

        emails = _normalize_recipients(data.recipients)
        if data.access_mode == AccessMode.EMAIL_VERIFY and not emails:
            raise BadRequest("emailVerify links require at least one recipient")
        if data.access_mode == AccessMode.PUBLIC and emails:
            raise BadRequest("Recipients are only allowed for emailVerify links")

        for _ in range(self.config.token_attempts):
            link = ShareLink(
                token=secrets.token_urlsafe(self.config.token_bytes),
                asset_id=asset.id,
                version_id=data.version_id,
                expires_at=expires_at,
                expire_with_asset=(
                    self.config.default_expire_with_asset
                    if data.expire_with_asset is None
                    else data.expire_with_asset
                ),
                access_mode=data.access_mode,
                allow_download=(
                    self.config.default_allow_download
                    if data.allow_download is None
                    else data.allow_download
                ),
                created_by=actor_id,
                created_at=now,
                updated_at=now,
            )
            recipients = [
                ShareRecipient(
                    share_link_id=link.id,
                    email=email,
                    verification_token=secrets.token_urlsafe(
                        self.config.verification_token_bytes
                    ),
                    created_at=now,
                )
                for email in emails
            ]
            try:
                created = self.links.create_share_link(link, recipients)
            except Conflict:
                logger.warning("Share token collision for asset %s, regenerating", asset.id)
                continue

            logger.info(
                "Created %s share link %s for asset %s (%s)",
                "pinned" if created.is_pinned else "canonical",
                created.id,
                asset.id,
                created.access_mode.value,
            )
            return CreatedShareLink(share_link=created, recipients=tuple(recipients))

        raise Conflict("Could not allocate a unique share token")

    def get(self, link_id: UUID) -> ShareLink:
        link = self.links.get_share_link(link_id)
        if link is None:
            raise NotFound(f"Share link {link_id} not found")
        return link

    def list_for_asset(self, asset_id: UUID) -> list[ShareLink]:
        if self.versions.get_asset(asset_id) is None:
            raise NotFound(f"Asset {asset_id} not found")
        return self.links.list_share_links(asset_id)

    def list_recipients(self, link_id: UUID) -> list[ShareRecipient]:
        self.get(link_id)
        return self.links.list_recipients(link_id)

    def revoke(self, link_id: UUID) -> ShareLink:
        """Revoke a link. Revoking an already revoked link is a no-op."""
        link = self.get(link_id)
        if link.status == ShareLinkStatus.REVOKED:
            return link

        revoked = self.links.update_share_link_status(
            link.id, link.status, ShareLinkStatus.REVOKED, self._now_utc()
        )
        if revoked is None:
            raise Conflict(f"Share link {link_id} changed concurrently")
        logger.info("Revoked share link %s", link_id)
        return revoked
