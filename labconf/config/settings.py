"""
Configuration Settings

Defaults for every labconf setting, merged with the user's JSON config file
and a couple of environment overrides.
"""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

from labconf.services.config_service import ConfigService, assign, lookup

logger = logging.getLogger("LabConf.Settings")

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "labconf" / "config.json"

DEFAULT_CONFIG: Dict[str, Any] = {
    "script": {
        "confirm_all": False,
        "log_level": "INFO",
    },
    "proxy": {
        "host": "squid.cs.wisc.edu",
        "port": 3128,
        "services": ["env", "apt", "git", "ssh", "dconf"],
    },
    "ssh_server": {
        "port": 22,
    },
    "conda": {
        "path": "/usr/local/miniconda3",
        "env_path": "/home/Shared/conda_envs",
        "type": "miniconda",
    },
    "samba": {
        "net_shared_dir": "NetShared",
    },
}

_TRUE_VALUES = {"1", "true", "yes", "y", "on"}
_FALSE_VALUES = {"0", "false", "no", "n", "off", ""}

# Global config service instance
_config_service: Optional[ConfigService] = None


def resolve_config_path(path: Optional[Union[str, Path]] = None) -> Path:
    """
    Priority:
    1. explicit path (--config)
    2. LABCONF_CONFIG environment variable
    3. ~/.config/labconf/config.json
    """
    raw = path or os.environ.get("LABCONF_CONFIG")
    if raw:
        return Path(raw).expanduser()
    return DEFAULT_CONFIG_PATH


def _get_config_service(path: Optional[Union[str, Path]] = None) -> ConfigService:
    """Get or create the config service for the resolved path."""
    global _config_service
    config_path = resolve_config_path(path)
    if _config_service is None or _config_service.config_path != config_path:
        _config_service = ConfigService(config_path=config_path)
    return _config_service


def parse_bool(value: Any, key: str = "value") -> bool:
    """
    Strict boolean: real bools, 0/1, or yes/no style strings.

    Anything else raises ValueError so that a typo never turns into "true".
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_VALUES:
            return True
        if text in _FALSE_VALUES:
            return False
    raise ValueError(f"{key} must be true or false, got {value!r}")


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _normalize(config: Dict[str, Any]) -> Dict[str, Any]:
    """Reject sections replaced by non-objects and coerce confirm_all."""
    for section, default in DEFAULT_CONFIG.items():
        if isinstance(default, dict) and not isinstance(config.get(section), dict):
            raise ValueError(
                f"Config section '{section}' must be a JSON object, got {config.get(section)!r}"
            )

    script = config["script"]
    script["confirm_all"] = parse_bool(script.get("confirm_all", False), "script.confirm_all")
    return config


def _apply_env_overrides(config: Dict[str, Any]) -> None:
    confirm_all = os.environ.get("CONFIRM_ALL")
    if confirm_all is not None:
        config["script"]["confirm_all"] = confirm_all.strip().lower() in _TRUE_VALUES

    log_level = os.environ.get("LOG_LEVEL")
    if log_level:
        config["script"]["log_level"] = log_level.strip()


def load_config(path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load the effective configuration.

    A missing config file just means "defaults"; malformed JSON, a section
    that is not an object, or a non-boolean confirm_all raises ValueError.
    CONFIRM_ALL and LOG_LEVEL from the environment win over the file.
    """
    service = _get_config_service(path)
    config = copy.deepcopy(DEFAULT_CONFIG)
    if service.exists():
        config = _deep_merge(config, service.load())
    else:
        logger.debug(f"No config file at {service.config_path}, using defaults")

    _normalize(config)
    _apply_env_overrides(config)
    return config


def save_config(data: Dict[str, Any], path: Optional[Union[str, Path]] = None) -> bool:
    """Write configuration back to the config file."""
    service = _get_config_service(path)
    return service.save(data)


def get_config_value(key: str, path: Optional[Union[str, Path]] = None) -> Any:
    """Dot-notation lookup ("proxy.host") in the effective configuration."""
    missing = object()
    value = lookup(load_config(path), key, missing)
    if value is missing:
        raise KeyError(key)
    return value


def set_config_value(key: str, value: Any, path: Optional[Union[str, Path]] = None) -> bool:
    """
    Store ``value`` under a dot-notation key in the config file.

    Only the file's own content is rewritten (defaults are not copied into
    it). The result is validated before anything is saved, so a value that
    would break ``load_config`` raises ValueError and leaves the file alone.
    """
    service = _get_config_service(path)
    data = service.load_or_empty()
    assign(data, key, value)
    _normalize(_deep_merge(DEFAULT_CONFIG, data))
    return service.save(data)
