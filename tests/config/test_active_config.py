"""
Tests for platform configuration loading.

Covers:
- Schema defaults and __post_init__ validation -- pure, no YAML
- Loader (parse_config) -- unknown sections and keys are rejected
- End-to-end (get_active_config) -- bundled YAML, custom YAML, environment
- Checksum determinism and the config_loaded log entry
"""

from __future__ import annotations

import dataclasses

import pytest
import yaml

from startupcall_config import PlatformConfig, ReviewConfig, get_active_config
from startupcall_config.loader import compute_checksum, merge_overrides, parse_config
from startupcall_config.schema import ApiConfig, DatabaseConfig, NotificationConfig


# =========================================================================
# 1. Schema types
# =========================================================================


class TestSchemaDefaults:
    """Defaults match the documented platform behaviour."""

    def test_defaults(self):
        config = PlatformConfig.with_defaults()
        assert config.review.default_due_days == 7
        assert config.review.reviews_per_application == 3
        assert (config.review.min_score, config.review.max_score) == (0, 100)
        assert config.sponsorship.open_status_aliases == ("active",)
        assert config.budget.admin_expenses_auto_approved is True
        assert config.api.default_page_size == 10
        assert config.database.url == "sqlite:///:memory:"

    def test_frozen(self):
        config = PlatformConfig.with_defaults()
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.name = "other"  # type: ignore[misc]

    @pytest.mark.parametrize("build", [
        lambda: ReviewConfig(min_score=50, max_score=50),
        lambda: ReviewConfig(reviews_per_application=0),
        lambda: DatabaseConfig(url=""),
        lambda: NotificationConfig(sender="nobody"),
        lambda: ApiConfig(default_page_size=500, max_page_size=100),
    ])
    def test_invalid_values_rejected(self, build):
        with pytest.raises(ValueError):
            build()


# =========================================================================
# 2. Loader
# =========================================================================


class TestParseConfig:

    def test_unknown_section(self):
        with pytest.raises(ValueError, match="reviewz"):
            parse_config({"reviewz": {}})

    def test_unknown_key(self):
        with pytest.raises(ValueError, match="due_days"):
            parse_config({"review": {"due_days": 3}})

    def test_lists_become_tuples(self):
        config = parse_config({"sponsorship": {"open_status_aliases": ["active", "live"]}})
        assert config.sponsorship.open_status_aliases == ("active", "live")

    def test_merge_overrides_does_not_mutate(self):
        data = {"database": {"url": "sqlite:///a.db", "echo": True}}
        merged = merge_overrides(data, {"database": {"url": "sqlite:///b.db"}})
        assert merged["database"] == {"url": "sqlite:///b.db", "echo": True}
        assert data["database"]["url"] == "sqlite:///a.db"

    def test_checksum_is_order_independent(self):
        a = {"review": {"min_score": 0, "max_score": 10}, "name": "x"}
        b = {"name": "x", "review": {"max_score": 10, "min_score": 0}}
        assert compute_checksum(a) == compute_checksum(b)
        assert compute_checksum(a) != compute_checksum({"name": "y"})


# =========================================================================
# 3. get_active_config
# =========================================================================


class TestGetActiveConfig:

    def test_bundled_document(self):
        config = get_active_config(environ={})
        assert config.name == "startupcall"
        assert config.database.url.startswith("sqlite:///")
        assert config.api.expose_error_details is False
        assert len(config.checksum) == 64

    def test_database_url_from_environment(self):
        config = get_active_config(environ={"DATABASE_URL": "postgresql://db/startupcall"})
        assert config.database.url == "postgresql://db/startupcall"

    @pytest.mark.parametrize("raw,expected", [("1", True), ("yes", True), ("off", False)])
    def test_expose_error_details_flag(self, raw, expected):
        config = get_active_config(environ={"STARTUPCALL_EXPOSE_ERROR_DETAILS": raw})
        assert config.api.expose_error_details is expected

    def test_bad_flag_rejected(self):
        with pytest.raises(ValueError, match="STARTUPCALL_EXPOSE_ERROR_DETAILS"):
            get_active_config(environ={"STARTUPCALL_EXPOSE_ERROR_DETAILS": "maybe"})

    def test_custom_document(self, tmp_path):
        path = tmp_path / "staging.yaml"
        path.write_text(yaml.safe_dump({
            "name": "staging",
            "environment": "staging",
            "review": {"reviews_per_application": 2},
        }))
        config = get_active_config(config_path=path, environ={})
        assert config.environment == "staging"
        assert config.review.reviews_per_application == 2
        assert config.review.default_due_days == 7

    def test_document_from_environment(self, tmp_path):
        path = tmp_path / "env.yaml"
        path.write_text("name: from-env\n")
        config = get_active_config(environ={"STARTUPCALL_CONFIG": str(path)})
        assert config.name == "from-env"

    def test_missing_document(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(config_path=tmp_path / "absent.yaml", environ={})

    def test_checksum_stable_across_loads(self):
        assert get_active_config(environ={}).checksum == get_active_config(environ={}).checksum

    def test_load_is_logged(self, captured_logs):
        config = get_active_config(environ={})
        (record,) = [r for r in captured_logs() if r["message"] == "config_loaded"]
        assert record["checksum"] == config.checksum
        assert record["dialect"] == "sqlite"
