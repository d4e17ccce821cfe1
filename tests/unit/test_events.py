"""
Tests for EventRecorder (fire-and-forget access log).
"""

from __future__ import annotations

import logging
from datetime import timedelta

from contenthub.adapters.memory import InMemoryShareLinkStore
from contenthub.components.events import Actor, EventRecorder
from contenthub.domain.entities import ShareEventType, ShareLink
from contenthub.domain.errors import StoreError


class BrokenEventStore(InMemoryShareLinkStore):
    """Every write fails."""

    def append_event(self, event):
        raise StoreError("event table unavailable")

    def touch_last_access(self, link_id, now):
        raise StoreError("link table unavailable")


class BrokenAppendStore(InMemoryShareLinkStore):
    """Only the event append fails."""

    def append_event(self, event):
        raise StoreError("event table unavailable")


def stored_link(store: InMemoryShareLinkStore, asset_id) -> ShareLink:
    return store.create_share_link(ShareLink(token="tok-1", asset_id=asset_id), [])


class TestRecord:
    """record() semantics."""

    def test_records_event_and_touches_link(
        self, recorder: EventRecorder, link_store, published_asset, clock
    ) -> None:
        """Both writes land on the happy path."""
        asset, versions = published_asset
        link = stored_link(link_store, asset.id)
        actor = Actor(ip_address="203.0.113.7", user_agent="pytest")

        outcome = recorder.record(link, ShareEventType.VIEW, versions[1].id, actor)

        assert outcome.persisted and outcome.touched
        events = link_store.list_events(link.id)
        assert [e.id for e in events] == [outcome.event.id]
        assert events[0].resolved_version_id == versions[1].id
        assert events[0].ip_address == "203.0.113.7"
        assert link_store.get_share_link(link.id).last_access_at == clock.now_utc()

    def test_failures_are_swallowed(self, clock, published_asset, caplog) -> None:
        """Store failures never reach the caller."""
        store = BrokenEventStore()
        asset, _ = published_asset
        link = stored_link(store, asset.id)
        recorder = EventRecorder(store, time_port=clock)

        with caplog.at_level(logging.ERROR):
            outcome = recorder.record(link, ShareEventType.DOWNLOAD, None)

        assert outcome.persisted is False
        assert outcome.touched is False
        assert outcome.event.share_link_id == link.id
        assert "Failed to record download event" in caplog.text

    def test_writes_are_independent(self, clock, published_asset) -> None:
        """A failed append does not stop the last-access update."""
        store = BrokenAppendStore()
        asset, _ = published_asset
        link = stored_link(store, asset.id)
        recorder = EventRecorder(store, time_port=clock)

        outcome = recorder.record(link, ShareEventType.VIEW, None)

        assert outcome.persisted is False
        assert outcome.touched is True
        assert store.get_share_link(link.id).last_access_at == clock.now_utc()


class TestListEvents:
    """Ordered event reads."""

    def test_ordered_by_time(
        self, recorder: EventRecorder, link_store, published_asset, clock
    ) -> None:
        """Events come back in created_at order, since is inclusive."""
        asset, _ = published_asset
        link = stored_link(link_store, asset.id)
        first = recorder.record(link, ShareEventType.VIEW, None).event
        clock.advance(minutes=1)
        second = recorder.record(link, ShareEventType.DOWNLOAD, None).event
        clock.advance(minutes=1)
        third = recorder.record(link, ShareEventType.VIEW, None).event

        all_events = recorder.list_events(link.id)
        recent = recorder.list_events(link.id, since=second.created_at)
        limited = recorder.list_events(link.id, limit=2)

        assert [e.id for e in all_events] == [first.id, second.id, third.id]
        assert [e.id for e in recent] == [second.id, third.id]
        assert [e.id for e in limited] == [first.id, second.id]

    def test_naive_since_is_utc(
        self, recorder: EventRecorder, link_store, published_asset, clock
    ) -> None:
        """A naive since is read as UTC."""
        asset, _ = published_asset
        link = stored_link(link_store, asset.id)
        recorder.record(link, ShareEventType.VIEW, None)
        clock.advance(hours=1)
        later = recorder.record(link, ShareEventType.VIEW, None).event

        since = (later.created_at - timedelta(minutes=1)).replace(tzinfo=None)

        assert [e.id for e in recorder.list_events(link.id, since=since)] == [later.id]

    def test_links_do_not_mix(self, recorder: EventRecorder, link_store, published_asset) -> None:
        """Range reads stay within one link."""
        asset, _ = published_asset
        a = stored_link(link_store, asset.id)
        b = link_store.create_share_link(ShareLink(token="tok-2", asset_id=asset.id), [])
        recorder.record(a, ShareEventType.VIEW, None)

        assert recorder.list_events(b.id) == []
