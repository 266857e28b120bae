"""
Tests for the YAML settings loader and the get_active_config entrypoint.
"""

from decimal import Decimal

import pytest
import yaml

from order_config import CONFIG_ENV_VAR, get_active_config
from order_config.loader import (
    compute_checksum,
    load_settings,
    load_yaml_file,
    merge_settings,
    parse_settings,
)
from order_config.schema import EngineSettings
from order_kernel.domain.values import AdjustmentKind


@pytest.fixture
def write_yaml(tmp_path):
    def _write(data, name="override.yaml"):
        path = tmp_path / name
        path.write_text(yaml.safe_dump(data, allow_unicode=True), encoding="utf-8")
        return path

    return _write


class TestPackagedDefaults:

    def test_defaults_match_schema_defaults(self):
        settings = load_settings()
        schema = EngineSettings()

        assert settings.currency == "VND"
        assert settings.bounds == schema.bounds
        assert settings.store == schema.store
        assert settings.drafts == schema.drafts
        assert settings.adjustments.default_discount_kind is AdjustmentKind.AMOUNT

    def test_checksum_is_stable(self):
        assert load_settings().checksum == load_settings().checksum
        assert len(load_settings().checksum) == 64


class TestOverrides:

    def test_partial_override_keeps_other_defaults(self, write_yaml):
        path = write_yaml({"adjustments": {"deposit_percent_max": 50}, "drafts": {"code_prefix": "SV"}})
        settings = load_settings(path)

        assert settings.adjustments.deposit_percent_max == Decimal("50")
        assert settings.adjustments.discount_percent_max == Decimal("99.9")
        assert settings.drafts.code_prefix == "SV"
        assert settings.drafts.awaiting_images_issue == "Chờ lấy ảnh"

    def test_override_changes_checksum(self, write_yaml):
        path = write_yaml({"currency": "USD"})
        assert load_settings(path).checksum != load_settings().checksum

    def test_orders_path_slashes_stripped(self, write_yaml):
        path = write_yaml({"store": {"orders_path": "/shop/orders/"}})
        assert load_settings(path).store.orders_path == "shop/orders"

    def test_bound_out_of_range(self, write_yaml):
        path = write_yaml({"adjustments": {"discount_percent_max": 120}})
        with pytest.raises(ValueError, match="discount_percent_max"):
            load_settings(path)

    def test_unknown_kind(self, write_yaml):
        path = write_yaml({"adjustments": {"default_deposit_kind": "fixed"}})
        with pytest.raises(ValueError):
            load_settings(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "absent.yaml")

    def test_non_mapping_file(self, write_yaml):
        path = write_yaml(["not", "a", "mapping"])
        with pytest.raises(ValueError, match="mapping"):
            load_yaml_file(path)


class TestHelpers:

    def test_merge_is_deep_and_non_destructive(self):
        base = {"a": {"x": 1, "y": 2}, "b": 1}
        merged = merge_settings(base, {"a": {"y": 3}})

        assert merged == {"a": {"x": 1, "y": 3}, "b": 1}
        assert base["a"]["y"] == 2

    def test_checksum_ignores_key_order(self):
        assert compute_checksum({"a": 1, "b": 2}) == compute_checksum({"b": 2, "a": 1})

    def test_parse_empty_uses_defaults(self):
        settings = parse_settings({})
        assert settings.version == 1
        assert settings.bounds == EngineSettings().bounds


class TestGetActiveConfig:

    def test_env_var_names_override(self, write_yaml, monkeypatch):
        path = write_yaml({"currency": "USD"})
        monkeypatch.setenv(CONFIG_ENV_VAR, str(path))
        assert get_active_config().currency == "USD"

    def test_explicit_path_wins(self, write_yaml, monkeypatch):
        monkeypatch.setenv(CONFIG_ENV_VAR, str(write_yaml({"currency": "USD"}, "env.yaml")))
        explicit = write_yaml({"currency": "EUR"}, "explicit.yaml")
        assert get_active_config(explicit).currency == "EUR"

    def test_without_override(self, monkeypatch):
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        assert get_active_config().checksum == load_settings().checksum

    def test_trace_emitted(self, monkeypatch, captured_logs):
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        settings = get_active_config()

        traces = [r for r in captured_logs() if r["message"] == "ORDER_CONFIG_TRACE"]
        assert traces[0]["checksum"] == settings.checksum
        assert traces[0]["override_path"] is None
        assert traces[0]["logger"] == "order_kernel.config"
