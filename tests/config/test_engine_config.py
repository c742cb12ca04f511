"""
Tests for the engine configuration loader.

Covers:
- Packaged defaults
- Partial override files
- Validation failures
"""

import pytest
import yaml

from wip_config import DEFAULT_CONFIG_PATH, EngineConfig, get_engine_config, load_engine_config
from wip_config.loader import parse_engine_config
from wip_kernel.exceptions import ConfigurationError


def _write(tmp_path, data) -> str:
    path = tmp_path / "engine.yaml"
    path.write_text(yaml.safe_dump(data))
    return str(path)


class TestDefaults:
    """Tests for the packaged defaults file."""

    def test_packaged_defaults(self):
        config = load_engine_config()

        assert config.transaction_limit == 50_000
        assert config.excluded_cost_categories == ("CARL",)
        assert config.cache.ttl_seconds == 600
        assert config.cache.key_prefix == "wip"

    def test_defaults_file_matches_dataclass_defaults(self):
        assert load_engine_config(DEFAULT_CONFIG_PATH) == EngineConfig()

    def test_get_engine_config_is_cached(self):
        assert get_engine_config() is get_engine_config()


class TestOverrides:
    """Tests for override files."""

    def test_partial_override_keeps_other_defaults(self, tmp_path):
        config = load_engine_config(_write(tmp_path, {"transaction_limit": 10}))

        assert config.transaction_limit == 10
        assert config.excluded_cost_categories == ("CARL",)
        assert config.cache.ttl_seconds == 600

    def test_cache_override(self, tmp_path):
        config = load_engine_config(
            _write(tmp_path, {"cache": {"ttl_seconds": 30, "key_prefix": "uat"}})
        )

        assert config.cache.ttl_seconds == 30
        assert config.cache.key_prefix == "uat"

    def test_empty_category_list(self, tmp_path):
        config = load_engine_config(_write(tmp_path, {"excluded_cost_categories": []}))
        assert config.excluded_cost_categories == ()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_engine_config(tmp_path / "missing.yaml")


class TestValidation:
    """Invalid values raise ConfigurationError naming the field."""

    @pytest.mark.parametrize("value", [0, -5, "many", True, 1.5])
    def test_transaction_limit(self, value):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_engine_config({"transaction_limit": value})
        assert exc_info.value.field == "transaction_limit"

    def test_ttl(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_engine_config({"cache": {"ttl_seconds": 0}})
        assert exc_info.value.field == "cache.ttl_seconds"

    def test_key_prefix(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_engine_config({"cache": {"key_prefix": "  "}})
        assert exc_info.value.field == "cache.key_prefix"

    def test_categories_must_be_strings(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_engine_config({"excluded_cost_categories": ["CARL", 7]})
        assert exc_info.value.code == "CONFIGURATION_ERROR"

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ConfigurationError):
            load_engine_config(path)
