from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from contenthub.api.deps import (
    Settings,
    get_clock,
    get_rules,
    get_settings,
    get_share_link_store,
    get_version_store,
)
from contenthub.api.main import app

ADMIN_HEADERS = {"X-Actor-Id": "owner-1"}


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    settings = Settings()
    settings.data_dir = tmp_path
    settings.db_path = str(tmp_path / "contenthub.db")
    settings.storage_dir = tmp_path / "objects"
    settings.secret_key = "test-secret"
    settings.public_base_url = "http://testserver"
    return settings


@pytest.fixture
def client(settings, rules, clock, version_store, link_store):
    """TestClient wired to in-memory stores and a fixed clock."""
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_rules] = lambda: rules
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_version_store] = lambda: version_store
    app.dependency_overrides[get_share_link_store] = lambda: link_store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return dict(ADMIN_HEADERS)
