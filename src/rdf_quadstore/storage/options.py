"""
Store configuration.

Provides:
- Per-command timeouts (select / insert / delete)
- Insert batch sizing for graph merges
- Dictionary round-tripping and JSON/YAML file loading
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Union

import yaml

from rdf_quadstore.errors import StoreInitializationError

logger = logging.getLogger(__name__)

# Default per-command timeout, in seconds
DEFAULT_TIMEOUT_SECONDS = 120

# Default number of quadruples per insert batch
DEFAULT_BATCH_SIZE = 100

# Top-level key under which options may be nested in a config file
CONFIG_SECTION = "quadstore"


@dataclass
class StoreOptions:
    """
    Options shared by every backend.

    Timeouts are applied through whatever per-command mechanism the engine
    offers (busy timeout, statement timeout, query timeout).
    """
    select_timeout: int = DEFAULT_TIMEOUT_SECONDS
    insert_timeout: int = DEFAULT_TIMEOUT_SECONDS
    delete_timeout: int = DEFAULT_TIMEOUT_SECONDS
    batch_size: int = DEFAULT_BATCH_SIZE

    def validate(self) -> "StoreOptions":
        """
        Check that every option is a positive integer.

        Raises:
            StoreInitializationError: If an option is invalid
        """
        for name in ("select_timeout", "insert_timeout", "delete_timeout", "batch_size"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise StoreInitializationError(
                    f"Invalid store option {name}={value!r}: must be a positive integer"
                )
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "select_timeout": self.select_timeout,
            "insert_timeout": self.insert_timeout,
            "delete_timeout": self.delete_timeout,
            "batch_size": self.batch_size,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StoreOptions":
        unknown = set(data) - {"select_timeout", "insert_timeout", "delete_timeout", "batch_size"}
        if unknown:
            logger.warning(f"Ignoring unknown store options: {sorted(unknown)}")
        return cls(
            select_timeout=data.get("select_timeout", DEFAULT_TIMEOUT_SECONDS),
            insert_timeout=data.get("insert_timeout", DEFAULT_TIMEOUT_SECONDS),
            delete_timeout=data.get("delete_timeout", DEFAULT_TIMEOUT_SECONDS),
            batch_size=data.get("batch_size", DEFAULT_BATCH_SIZE),
        ).validate()

    def save(self, path: Union[str, Path]) -> None:
        """Save options as JSON, or YAML when the suffix is .yaml/.yml."""
        path = Path(path)
        with open(path, "w", encoding="utf-8") as f:
            if path.suffix.lower() in (".yaml", ".yml"):
                yaml.safe_dump({CONFIG_SECTION: self.to_dict()}, f, sort_keys=False)
            else:
                json.dump({CONFIG_SECTION: self.to_dict()}, f, indent=2)


def load_options(path: Union[str, Path]) -> StoreOptions:
    """
    Load options from a JSON or YAML file.

    The options may sit at the top level or under a ``quadstore`` key.

    Raises:
        StoreInitializationError: If the file cannot be read or parsed
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            if path.suffix.lower() in (".yaml", ".yml"):
                data = yaml.safe_load(f) or {}
            else:
                data = json.load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise StoreInitializationError(f"Cannot load store options from {path}: {e}") from e

    if not isinstance(data, dict):
        raise StoreInitializationError(f"Store options in {path} must be a mapping")
    if isinstance(data.get(CONFIG_SECTION), dict):
        data = data[CONFIG_SECTION]
    return StoreOptions.from_dict(data)
