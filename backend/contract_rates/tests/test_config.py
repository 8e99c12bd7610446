"""
Tests for the contract rate reference data loader.
"""

import json

import pytest

from ..services.config import (
    clear_config_cache,
    default_currency,
    get_contract_rate_config,
    load_contract_rate_config,
    mode_aliases,
    truck_type_charge_ids,
)
from ..services.errors import ConfigurationError, ContractRateError


@pytest.fixture(autouse=True)
def fresh_config():
    clear_config_cache()
    yield
    clear_config_cache()


class TestLoadConfig:
    def test_bundled_config(self):
        config = load_contract_rate_config()
        assert config["default_currency"] == "PHP"
        assert config["truck_type_charge_ids"]["40ft"] == "20ft_40ft"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_contract_rate_config(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(ConfigurationError, match="Invalid JSON"):
            load_contract_rate_config(path)

    def test_missing_keys(self, tmp_path):
        path = tmp_path / "partial.json"
        path.write_text(json.dumps({"truck_type_charge_ids": {}}))
        with pytest.raises(ConfigurationError, match="mode_aliases"):
            load_contract_rate_config(path)

    def test_configuration_error_is_a_contract_rate_error(self):
        assert issubclass(ConfigurationError, ContractRateError)


class TestCachedConfig:
    def test_loaded_once(self):
        assert get_contract_rate_config() is get_contract_rate_config()

    def test_settings_override(self, settings, tmp_path):
        path = tmp_path / "custom.json"
        path.write_text(
            json.dumps(
                {
                    "truck_type_charge_ids": {"Trailer": "trailer"},
                    "mode_aliases": {"sea": "fcl"},
                    "default_currency": "USD",
                }
            )
        )
        settings.CONTRACT_RATES_CONFIG = str(path)
        clear_config_cache()

        assert truck_type_charge_ids() == {"Trailer": "trailer"}
        assert mode_aliases() == {"SEA": "FCL"}
        assert default_currency() == "USD"

    def test_default_currency_setting_wins(self, settings):
        settings.CONTRACT_RATES_DEFAULT_CURRENCY = "USD"
        assert default_currency() == "USD"
