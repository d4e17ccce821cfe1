"""
EventRecorder - best-effort access log for share links.

Contract: record() is fire-and-forget. It never raises; each of its two
writes (append ShareEvent, set last_access_at) is attempted independently
and a failure is logged and swallowed. Callers must check allow_download
themselves before recording a download.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from uuid import UUID

from contenthub.core.ports.stores import ShareLinkStore
from contenthub.core.ports.time import TimePort
from contenthub.domain.entities import ShareEvent, ShareEventType, ShareLink

from .models import Actor, RecordOutcome

logger = logging.getLogger(__name__)


class EventRecorder:
    def __init__(self, links: ShareLinkStore, time_port: TimePort | None = None):
        self.links = links
        self.time_port = time_port

    def _now_utc(self) -> datetime:
        if self.time_port:
            return self.time_port.now_utc()
        return datetime.now(UTC)

    def record(
        self,
        share_link: ShareLink,
        event_type: ShareEventType,
        resolved_version_id: UUID | None,
        actor: Actor | None = None,
    ) -> RecordOutcome:
        actor = actor or Actor()
        now = self._now_utc()
        event = ShareEvent(
            share_link_id=share_link.id,
            event_type=event_type,
            resolved_version_id=resolved_version_id,
            ip_address=actor.ip_address,
            user_agent=actor.user_agent,
            email=actor.email,
            created_at=now,
        )

        persisted = True
        try:
            self.links.append_event(event)
        except Exception:
            persisted = False
            logger.exception(
                "Failed to record %s event for share link %s", event_type.value, share_link.id
            )

        touched = True
        try:
            self.links.touch_last_access(share_link.id, now)
        except Exception:
            touched = False
            logger.exception("Failed to update last access for share link %s", share_link.id)

        return RecordOutcome(event=event, persisted=persisted, touched=touched)

    def list_events(
        self,
        share_link_id: UUID,
        since: datetime | None = None,
        limit: int = 100,
    ) -> list[ShareEvent]:
        """Events for a link in share_link_id#created_at order. Not best-effort."""
        if since is not None and since.tzinfo is None:
            since = since.replace(tzinfo=UTC)
        return self.links.list_events(share_link_id, since=since, limit=limit)
