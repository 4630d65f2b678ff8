"""
Configuration Service

Reads and writes labconf's JSON config file. Keys inside it are addressed
with dots: "proxy.host" is ``data["proxy"]["host"]``.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict

logger = logging.getLogger("LabConf.ConfigService")


def lookup(data: Dict[str, Any], key: str, default: Any = None) -> Any:
    """Follow a dotted key through nested dicts, ``default`` when any part is missing."""
    value: Any = data
    for part in key.split("."):
        if not isinstance(value, dict) or part not in value:
            return default
        value = value[part]
    return value


def assign(data: Dict[str, Any], key: str, value: Any) -> None:
    """
    Set a dotted key, creating missing intermediate objects.

    Raises:
        ValueError: empty key part, or an intermediate value that is not an object
    """
    parts = key.split(".")
    if not all(parts):
        raise ValueError(f"Invalid config key: {key!r}")

    node = data
    for depth, part in enumerate(parts[:-1]):
        child = node.setdefault(part, {})
        if not isinstance(child, dict):
            prefix = ".".join(parts[:depth + 1])
            raise ValueError(f"Cannot set {key}: {prefix} is {child!r}, not an object")
        node = child
    node[parts[-1]] = value


class ConfigService:
    """
    JSON config file on disk.

    ``load`` refuses anything but a JSON object at the root; ``save``
    creates the parent directory and reports failure instead of raising.
    """

    def __init__(self, config_path: Path):
        self.config_path = Path(config_path)

    def exists(self) -> bool:
        return self.config_path.is_file()

    def load(self) -> Dict[str, Any]:
        """
        Raises:
            FileNotFoundError: config file doesn't exist
            ValueError: invalid JSON or not an object
        """
        if not self.config_path.exists():
            logger.debug(f"Config file not found at: {self.config_path}")
            raise FileNotFoundError(f"Config file not found at: {self.config_path}")

        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Error parsing {self.config_path}: {e}")
            raise ValueError(
                f"Error parsing {self.config_path}: {e}\n"
                "Please ensure the config file is valid JSON."
            ) from e

        if not isinstance(data, dict):
            logger.error(f"Config root in {self.config_path} is not a JSON object")
            raise ValueError(f"Config root in {self.config_path} must be a JSON object")

        logger.debug(f"Configuration loaded from {self.config_path}")
        return data

    def load_or_empty(self) -> Dict[str, Any]:
        return self.load() if self.exists() else {}

    def save(self, data: Dict[str, Any]) -> bool:
        """Write ``data`` as indented JSON. Returns False when the write fails."""
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with self.config_path.open("w", encoding="utf-8") as f:
                json.dump(data, f, indent=4)
            logger.info(f"Configuration saved to {self.config_path}")
            return True
        except OSError as e:
            logger.error(f"Failed to save config: {e}")
            return False
