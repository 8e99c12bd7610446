"""
Reference data for the contract rate engine.

Truck type → charge id mapping, booking mode aliases and the fallback contract
currency live in ``contract_rates/config/contract_rates.json``. The path can be
overridden with ``settings.CONTRACT_RATES_CONFIG``.
"""

import json
import logging
from pathlib import Path
from typing import Dict, List

from django.conf import settings

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ("truck_type_charge_ids", "mode_aliases")


def _default_config_path() -> Path:
    configured = getattr(settings, "CONTRACT_RATES_CONFIG", None) if settings.configured else None
    if configured:
        return Path(configured)
    return Path(__file__).parent.parent / "config" / "contract_rates.json"


def load_contract_rate_config(config_path=None) -> dict:
    """
    Load contract rate reference data from JSON

    Raises:
        ConfigurationError: If the file is missing, unparsable or incomplete
    """
    path = Path(config_path) if config_path is not None else _default_config_path()
    if not path.exists():
        raise ConfigurationError(f"Contract rate configuration file not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            config = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in contract rate configuration: {e}")
    except OSError as e:
        raise ConfigurationError(f"Error loading contract rate configuration: {e}")

    missing = [key for key in REQUIRED_KEYS if key not in config]
    if missing:
        raise ConfigurationError(f"Contract rate configuration missing keys: {', '.join(missing)}")

    logger.debug(f"Loaded contract rate configuration from {path}")
    return config


def get_contract_rate_config() -> dict:
    """Cached configuration (loaded once per process)"""
    if not hasattr(get_contract_rate_config, "_cached"):
        get_contract_rate_config._cached = load_contract_rate_config()
    return get_contract_rate_config._cached


def clear_config_cache():
    """Clear the cached configuration (tests, config reloads)"""
    if hasattr(get_contract_rate_config, "_cached"):
        delattr(get_contract_rate_config, "_cached")
    logger.info("Contract rate configuration cache cleared")


def truck_type_charge_ids() -> Dict[str, str]:
    return dict(get_contract_rate_config().get("truck_type_charge_ids", {}))


def mode_aliases() -> Dict[str, str]:
    return {k.upper(): v.upper() for k, v in get_contract_rate_config().get("mode_aliases", {}).items()}


def air_freight_categories() -> List[str]:
    return [c.upper() for c in get_contract_rate_config().get("air_freight_categories", ["AIR FREIGHT"])]


def default_currency() -> str:
    override = getattr(settings, "CONTRACT_RATES_DEFAULT_CURRENCY", None) if settings.configured else None
    return override or get_contract_rate_config().get("default_currency", "PHP")
