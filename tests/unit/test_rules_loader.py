"""
Tests for rules loading and validation.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from contenthub.api.deps import lifecycle_config, sharing_config
from contenthub.rules.loader import load_rules

PROJECT_ROOT = Path(__file__).parent.parent.parent


class TestLoadRules:
    def test_project_rules_file(self) -> None:
        """The shipped rules.yaml validates."""
        rules = load_rules(PROJECT_ROOT / "rules.yaml")

        assert rules.project.slug == "content-hub"
        assert rules.lifecycle.scheduler_actor_id == "system"
        assert rules.sharing.download_ttl_seconds == 3600

    def test_sections_default(self, tmp_path: Path) -> None:
        """Only the project section is required."""
        path = tmp_path / "rules.yaml"
        path.write_text("project:\n  slug: demo\n  rules_version: '1'\n")

        rules = load_rules(path)

        assert rules.lifecycle.process_due_batch_size == 50
        assert rules.sharing.token_bytes == 24
        assert rules.store.timeout_seconds == 5.0

    def test_fenced_yaml(self, tmp_path: Path) -> None:
        """Rules embedded in a markdown ```yaml block are extracted."""
        path = tmp_path / "rules.md"
        path.write_text(
            "# Rules\n\n```yaml\nproject:\n  slug: demo\n  rules_version: '2'\n"
            "sharing:\n  download_ttl_seconds: 120\n```\n"
        )

        rules = load_rules(path)

        assert rules.project.rules_version == "2"
        assert rules.sharing.download_ttl_seconds == 120

    def test_missing_file(self, tmp_path: Path) -> None:
        """Missing files raise FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_rules(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        """YAML syntax errors raise ValueError."""
        path = tmp_path / "rules.yaml"
        path.write_text("project: [unclosed\n")

        with pytest.raises(ValueError, match="Invalid YAML"):
            load_rules(path)

    def test_schema_violation(self, tmp_path: Path) -> None:
        """Out-of-range values raise ValueError."""
        path = tmp_path / "rules.yaml"
        path.write_text(
            "project:\n  slug: demo\n  rules_version: '1'\nsharing:\n  token_bytes: 4\n"
        )

        with pytest.raises(ValueError, match="validation failed"):
            load_rules(path)


class TestConfigMapping:
    def test_component_configs(self, rules) -> None:
        """Rules map onto the component config dataclasses."""
        lifecycle = lifecycle_config(rules)
        sharing = sharing_config(rules)

        assert lifecycle.auto_publish_change_log == rules.lifecycle.auto_publish_change_log
        assert lifecycle.single_scheduled_version_per_asset is True
        assert sharing.download_ttl_seconds == rules.sharing.download_ttl_seconds
