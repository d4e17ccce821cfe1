from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import pytest

from contenthub.adapters.clock import FixedClock
from contenthub.adapters.memory import InMemoryShareLinkStore, InMemoryVersionStore
from contenthub.adapters.sqlite.migrator import SQLiteMigrator
from contenthub.components.access_gate import AccessGate
from contenthub.components.events import EventRecorder
from contenthub.components.lifecycle import LifecycleManager
from contenthub.components.share_links import ShareLinkService
from contenthub.components.share_resolver import ShareLinkResolver
from contenthub.domain.entities import Asset, AssetVersion
from contenthub.rules.models import ProjectRules, Rules

T0 = datetime(2025, 6, 15, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(T0)


@pytest.fixture
def rules() -> Rules:
    return Rules(project=ProjectRules(slug="content-hub-test", rules_version="1"))


# --- In-memory wiring ---


@pytest.fixture
def version_store() -> InMemoryVersionStore:
    return InMemoryVersionStore()


@pytest.fixture
def link_store() -> InMemoryShareLinkStore:
    return InMemoryShareLinkStore()


@pytest.fixture
def manager(version_store, clock) -> LifecycleManager:
    return LifecycleManager(version_store, time_port=clock)


@pytest.fixture
def share_service(link_store, version_store, clock) -> ShareLinkService:
    return ShareLinkService(link_store, version_store, time_port=clock)


@pytest.fixture
def resolver(link_store, version_store, clock) -> ShareLinkResolver:
    return ShareLinkResolver(link_store, version_store, time_port=clock)


@pytest.fixture
def gate(link_store, clock) -> AccessGate:
    return AccessGate(link_store, time_port=clock)


@pytest.fixture
def recorder(link_store, clock) -> EventRecorder:
    return EventRecorder(link_store, time_port=clock)


@pytest.fixture
def published_asset(manager) -> tuple[Asset, list[AssetVersion]]:
    """An asset with V1 deprecated and V2 published (current)."""
    asset = manager.create_asset("Quarterly report", owner_id="owner-1")
    v1 = manager.create_draft(asset.id, "reports/q1-v1.pdf", actor_id="owner-1")
    manager.publish_now(v1.id, "Initial release", actor_id="owner-1")
    v2 = manager.create_draft(asset.id, "reports/q1-v2.pdf", actor_id="owner-1")
    manager.publish_now(v2.id, "Corrected totals", actor_id="owner-1")
    return manager.get_asset(asset.id), manager.list_versions(asset.id)


# --- SQLite ---


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    path = str(tmp_path / "contenthub.db")
    SQLiteMigrator(path).run_migrations()
    return path
