"""
Initialization parameters for a PolicyLedger instance.

Loaded from YAML (or a plain dict) once at startup and never changed:

    arbiter: owner
    tax_percent: 10
    processing_fee: 5
    sub_unit_factor: 1000000000000000000
    journal:
      path: .policyledger/journal.jsonl
      key_path: .policyledger/keys/journal.pem
      writer_id: policyledger
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from policyledger.core.exceptions import ConfigurationError
from policyledger.core.models import DEFAULT_SUB_UNIT_FACTOR


def _percent(data: Dict[str, Any], key: str) -> int:
    value = data.get(key, 0)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{key} must be an integer", {key: value})
    if not 0 <= value <= 100:
        raise ConfigurationError(f"{key} must be within [0, 100]", {key: value})
    return value


@dataclass(frozen=True)
class JournalConfig:
    path:      Path
    key_path:  Optional[Path] = None
    writer_id: str = "policyledger"


@dataclass(frozen=True)
class LedgerConfig:
    """Validated startup parameters. The arbiter is the only settlement authority."""
    arbiter:         str
    tax_percent:     int = 0
    processing_fee:  int = 0
    sub_unit_factor: int = DEFAULT_SUB_UNIT_FACTOR
    journal:         Optional[JournalConfig] = None

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "LedgerConfig":
        """Build a config from a dict, raising ConfigurationError on bad values."""
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"config must be a mapping, got {type(data).__name__}"
            )

        arbiter = data.get("arbiter")
        if not isinstance(arbiter, str) or not arbiter:
            raise ConfigurationError("arbiter must be a non-empty string")

        factor = data.get("sub_unit_factor", DEFAULT_SUB_UNIT_FACTOR)
        if isinstance(factor, bool) or not isinstance(factor, int) or factor <= 0:
            raise ConfigurationError(
                "sub_unit_factor must be a positive integer",
                {"sub_unit_factor": factor},
            )

        journal = None
        journal_data = data.get("journal")
        if journal_data:
            if not isinstance(journal_data, dict) or not journal_data.get("path"):
                raise ConfigurationError("journal.path is required when journal is set")
            key_path = journal_data.get("key_path")
            journal = JournalConfig(
                path=      Path(journal_data["path"]),
                key_path=  Path(key_path) if key_path else None,
                writer_id= journal_data.get("writer_id", "policyledger"),
            )

        return LedgerConfig(
            arbiter=         arbiter,
            tax_percent=     _percent(data, "tax_percent"),
            processing_fee=  _percent(data, "processing_fee"),
            sub_unit_factor= factor,
            journal=         journal,
        )

    @classmethod
    def from_yaml(cls, config_file: Path) -> "LedgerConfig":
        """Load config from a YAML file."""
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigurationError(
                f"Failed to read config {config_file}: {exc}"
            ) from exc
        return cls.from_dict(data or {})
