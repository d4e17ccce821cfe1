"""
Integration tests for the SQLite record stores.

Runs the lifecycle and sharing components against a migrated temporary
database to check conditional writes, atomic publication and event ranges.
"""

from __future__ import annotations

import sqlite3
from datetime import timedelta
from uuid import uuid4

import pytest

from contenthub.adapters.sqlite.repos import SQLiteShareLinkStore, SQLiteVersionStore
from contenthub.components.events import Actor, EventRecorder
from contenthub.components.lifecycle import LifecycleManager
from contenthub.components.share_links import CreateShareLinkInput, ShareLinkService
from contenthub.components.share_resolver import ShareLinkResolver
from contenthub.domain.entities import (
    AccessMode,
    AssetVersion,
    ShareEventType,
    ShareLink,
    ShareLinkStatus,
    VersionStatus,
)
from contenthub.domain.errors import Conflict, ExpiredWithAsset, NotFound, StoreError


@pytest.fixture
def versions(db_path: str) -> SQLiteVersionStore:
    return SQLiteVersionStore(db_path)


@pytest.fixture
def links(db_path: str) -> SQLiteShareLinkStore:
    return SQLiteShareLinkStore(db_path)


@pytest.fixture
def sql_manager(versions, clock) -> LifecycleManager:
    return LifecycleManager(versions, time_port=clock)


class TestSQLiteVersionStore:
    def test_asset_roundtrip(self, sql_manager: LifecycleManager, clock) -> None:
        """Assets survive a round trip with UTC timestamps."""
        asset = sql_manager.create_asset("Handbook", owner_id="owner-1")

        loaded = sql_manager.get_asset(asset.id)

        assert loaded.title == "Handbook"
        assert loaded.created_at == clock.now_utc()
        assert loaded.created_at.tzinfo is not None

    def test_save_asset_never_moves_pointer(
        self, sql_manager: LifecycleManager, versions: SQLiteVersionStore
    ) -> None:
        """save_asset ignores current_published_version_id."""
        asset = sql_manager.create_asset("Handbook", owner_id="owner-1")
        v1 = sql_manager.create_draft(asset.id, "k1")
        sql_manager.publish_now(v1.id, "first")

        stale = asset.model_copy(update={"title": "Renamed", "current_published_version_id": None})
        saved = versions.save_asset(stale)

        assert saved.title == "Renamed"
        assert saved.current_published_version_id == v1.id

    def test_duplicate_version_number(
        self, sql_manager: LifecycleManager, versions: SQLiteVersionStore
    ) -> None:
        """The (asset_id, version_number) constraint surfaces as Conflict."""
        asset = sql_manager.create_asset("Handbook", owner_id="owner-1")
        sql_manager.create_draft(asset.id, "k1")

        with pytest.raises(Conflict):
            versions.insert_version(
                AssetVersion(asset_id=asset.id, version_number=1, storage_key="dup")
            )

    def test_version_for_missing_asset(self, versions: SQLiteVersionStore) -> None:
        """Versions need an existing asset."""
        with pytest.raises(NotFound):
            versions.insert_version(
                AssetVersion(asset_id=uuid4(), version_number=1, storage_key="k1")
            )

    def test_update_version_cas(
        self, sql_manager: LifecycleManager, versions: SQLiteVersionStore
    ) -> None:
        """A write with a stale expected status is a Conflict."""
        asset = sql_manager.create_asset("Handbook", owner_id="owner-1")
        v1 = sql_manager.create_draft(asset.id, "k1")

        with pytest.raises(Conflict):
            versions.update_version(
                v1.model_copy(update={"change_log": "edited"}), VersionStatus.SCHEDULED
            )

        assert versions.get_version(v1.id).change_log is None

    def test_publish_deprecates_and_repoints(self, sql_manager: LifecycleManager) -> None:
        """Publishing V2 deprecates V1 in the same transaction."""
        asset = sql_manager.create_asset("Handbook", owner_id="owner-1")
        v1 = sql_manager.create_draft(asset.id, "k1")
        sql_manager.publish_now(v1.id, "first")
        v2 = sql_manager.create_draft(asset.id, "k2")

        sql_manager.publish_now(v2.id, "second")

        statuses = {v.version_number: v.status for v in sql_manager.list_versions(asset.id)}
        assert statuses == {1: VersionStatus.DEPRECATED, 2: VersionStatus.PUBLISHED}
        assert sql_manager.get_asset(asset.id).current_published_version_id == v2.id

    def test_stale_pointer_rolls_back(
        self, sql_manager: LifecycleManager, versions: SQLiteVersionStore, clock
    ) -> None:
        """A failed pointer swap undoes the version write and the deprecation."""
        asset = sql_manager.create_asset("Handbook", owner_id="owner-1")
        v1 = sql_manager.create_draft(asset.id, "k1")
        sql_manager.publish_now(v1.id, "first")
        v2 = sql_manager.create_draft(asset.id, "k2")
        v3 = sql_manager.create_draft(asset.id, "k3")
        sql_manager.publish_now(v2.id, "second")

        # v3's publisher still believes v1 is current
        stale = v3.model_copy(
            update={"status": VersionStatus.PUBLISHED, "published_at": clock.now_utc()}
        )
        with pytest.raises(Conflict):
            versions.publish_version(stale, VersionStatus.DRAFT, v1.id, clock.now_utc())

        assert versions.get_version(v3.id).status == VersionStatus.DRAFT
        assert versions.get_version(v2.id).status == VersionStatus.PUBLISHED
        assert versions.get_asset(asset.id).current_published_version_id == v2.id

    def test_archive_clears_pointer(self, sql_manager: LifecycleManager) -> None:
        """Archiving the current version clears the pointer."""
        asset = sql_manager.create_asset("Handbook", owner_id="owner-1")
        v1 = sql_manager.create_draft(asset.id, "k1")
        sql_manager.publish_now(v1.id, "first")

        sql_manager.archive(v1.id)

        assert sql_manager.get_asset(asset.id).current_published_version_id is None

    def test_due_queries(self, sql_manager: LifecycleManager, clock) -> None:
        """process_due finds due rows through the SQL range queries."""
        asset = sql_manager.create_asset("Handbook", owner_id="owner-1")
        v1 = sql_manager.create_draft(asset.id, "k1", expire_at=clock.now_utc() + timedelta(days=1))
        sql_manager.publish_now(v1.id, "first")
        v2 = sql_manager.create_draft(asset.id, "k2")
        sql_manager.schedule(v2.id, clock.now_utc() + timedelta(hours=1))
        clock.advance(hours=2)

        result = sql_manager.process_due()

        assert result.published == (v2.id,)
        assert result.expired == ()
        assert sql_manager.get_version(v1.id).status == VersionStatus.DEPRECATED

    def test_unreachable_database(self, tmp_path) -> None:
        """I/O failures surface as StoreError."""
        store = SQLiteVersionStore(str(tmp_path / "missing-dir" / "db.sqlite"))

        with pytest.raises(StoreError):
            store.get_asset(uuid4())


class TestSQLiteShareLinkStore:
    @pytest.fixture
    def asset_id(self, sql_manager: LifecycleManager):
        asset = sql_manager.create_asset("Handbook", owner_id="owner-1")
        v1 = sql_manager.create_draft(asset.id, "k1")
        sql_manager.publish_now(v1.id, "first")
        return asset.id

    def test_duplicate_token(self, links: SQLiteShareLinkStore, asset_id) -> None:
        """Token uniqueness is enforced by the store."""
        links.create_share_link(ShareLink(token="same", asset_id=asset_id), [])

        with pytest.raises(Conflict):
            links.create_share_link(ShareLink(token="same", asset_id=asset_id), [])

    def test_status_cas(self, links: SQLiteShareLinkStore, asset_id, clock) -> None:
        """Status changes only apply from the expected status."""
        link = links.create_share_link(ShareLink(token="t1", asset_id=asset_id), [])

        revoked = links.update_share_link_status(
            link.id, ShareLinkStatus.ACTIVE, ShareLinkStatus.REVOKED, clock.now_utc()
        )
        again = links.update_share_link_status(
            link.id, ShareLinkStatus.ACTIVE, ShareLinkStatus.EXPIRED, clock.now_utc()
        )

        assert revoked.status == ShareLinkStatus.REVOKED
        assert again is None
        assert links.get_share_link(link.id).status == ShareLinkStatus.REVOKED

    def test_recipient_verified_at_is_kept(
        self, links: SQLiteShareLinkStore, versions, asset_id, clock
    ) -> None:
        """Re-marking a verified recipient keeps the first verified_at."""
        service = ShareLinkService(links, versions, time_port=clock)
        created = service.create(
            CreateShareLinkInput(
                asset_id=asset_id,
                access_mode=AccessMode.EMAIL_VERIFY,
                recipients=("alice@example.com",),
            ),
            "owner-1",
        )
        recipient = created.recipients[0]

        first = links.mark_recipient_verified(recipient.id, clock.now_utc())
        later = links.mark_recipient_verified(recipient.id, clock.now_utc() + timedelta(hours=1))

        assert first.verified and later.verified
        assert later.verified_at == first.verified_at == clock.now_utc()
        assert links.get_recipient(created.share_link.id, "alice@example.com").verified

    def test_event_range(self, links: SQLiteShareLinkStore, asset_id, clock) -> None:
        """Events are read back per link in time order."""
        a = links.create_share_link(ShareLink(token="a", asset_id=asset_id), [])
        b = links.create_share_link(ShareLink(token="b", asset_id=asset_id), [])
        recorder = EventRecorder(links, time_port=clock)

        first = recorder.record(a, ShareEventType.VIEW, None, Actor(ip_address="198.51.100.1"))
        recorder.record(b, ShareEventType.VIEW, None)
        clock.advance(seconds=30)
        second = recorder.record(a, ShareEventType.DOWNLOAD, None)

        events = links.list_events(a.id)
        since = links.list_events(a.id, since=second.event.created_at)

        assert [e.id for e in events] == [first.event.id, second.event.id]
        assert events[0].ip_address == "198.51.100.1"
        assert [e.id for e in since] == [second.event.id]
        assert links.get_share_link(a.id).last_access_at == clock.now_utc()

    def test_resolver_end_to_end(
        self, links: SQLiteShareLinkStore, versions, sql_manager, asset_id, clock
    ) -> None:
        """An expire_with_asset link is durably expired when its asset's version expires."""
        service = ShareLinkService(links, versions, time_port=clock)
        resolver = ShareLinkResolver(links, versions, time_port=clock)
        link = service.create(
            CreateShareLinkInput(asset_id=asset_id, expire_with_asset=True), "owner-1"
        ).share_link
        current = sql_manager.get_asset(asset_id).current_published_version_id

        assert resolver.resolve(link.token).version.id == current

        sql_manager.expire(current)
        with pytest.raises(ExpiredWithAsset):
            resolver.resolve(link.token)

        assert links.get_share_link(link.id).status == ShareLinkStatus.EXPIRED


class TestSchemaConstraints:
    def test_status_check(self, db_path: str) -> None:
        """Unknown version statuses are rejected by the schema."""
        conn = sqlite3.connect(db_path)
        try:
            with pytest.raises(sqlite3.IntegrityError):
                conn.execute(
                    "INSERT INTO assets (id, title, owner_id, source_type, created_at, updated_at) "
                    "VALUES ('a', 't', 'o', 'upload', 'x', 'x')"
                )
                conn.execute(
                    "INSERT INTO asset_versions (id, asset_id, version_number, status, "
                    "storage_key, created_at, updated_at) "
                    "VALUES ('v', 'a', 1, 'bogus', 'k', 'x', 'x')"
                )
        finally:
            conn.close()
