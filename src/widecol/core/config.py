"""Configuration for widecol readers.

Defines tunable read parameters and where they can be loaded from.
"""

from __future__ import annotations

import logging
import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from .types import TableLocator

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 1000
DEFAULT_EMULATOR_PORT = 8086
EMULATOR_HOST_ENV = "BIGTABLE_EMULATOR_HOST"

# Value types accepted for each key of the [widecol] table
_TOML_TYPES = {
    "project_id": str,
    "instance_id": str,
    "app_profile_id": str,
    "batch_size": int,
    "emulator_host": str,
    "emulator_port": int,
}


@dataclass
class ReaderConfig:
    """Configuration parameters for table readers.

    Attributes:
        project_id: Project owning the instance
        instance_id: Instance holding the tables
        app_profile_id: App profile sent with every read (empty = default)
        batch_size: Row ceiling per fetch issued by scan cursors
        emulator_host: Emulator hostname, None when talking to production
        emulator_port: Emulator port
    """

    project_id: str = ""
    instance_id: str = ""
    app_profile_id: str = ""
    batch_size: int = DEFAULT_BATCH_SIZE
    emulator_host: str | None = None
    emulator_port: int = DEFAULT_EMULATOR_PORT

    def __post_init__(self) -> None:
        if self.batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")  # noqa: TRY003

    @property
    def uses_emulator(self) -> bool:
        return self.emulator_host is not None

    def locator(self, table_id: str) -> TableLocator:
        return TableLocator(
            project_id=self.project_id,
            instance_id=self.instance_id,
            table_id=table_id,
            app_profile_id=self.app_profile_id,
        )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ReaderConfig:
        """Build a config from WIDECOL_* variables and BIGTABLE_EMULATOR_HOST."""
        env = os.environ if environ is None else environ
        config = cls(
            project_id=env.get("WIDECOL_PROJECT_ID", ""),
            instance_id=env.get("WIDECOL_INSTANCE_ID", ""),
            app_profile_id=env.get("WIDECOL_APP_PROFILE_ID", ""),
            batch_size=int(env.get("WIDECOL_BATCH_SIZE", DEFAULT_BATCH_SIZE)),
        )
        emulator = env.get(EMULATOR_HOST_ENV)
        if emulator:
            host, _, port = emulator.partition(":")
            config.emulator_host = host
            config.emulator_port = int(port) if port else DEFAULT_EMULATOR_PORT
            logger.info(f"Using emulator at {config.emulator_host}:{config.emulator_port}")
        return config

    @classmethod
    def from_toml(cls, path: str | Path) -> ReaderConfig:
        """Load the [widecol] table of a TOML file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        data = tomllib.loads(path.read_text(encoding="utf-8"))
        section = data.get("widecol", {})
        known = {k: v for k, v in section.items() if k in _TOML_TYPES}
        unknown = sorted(set(section) - set(known))
        if unknown:
            logger.warning(f"Ignoring unknown config keys in {path}: {unknown}")
        for key, value in known.items():
            expected = _TOML_TYPES[key]
            # bool is an int subclass
            if isinstance(value, bool) or not isinstance(value, expected):
                raise ValueError(  # noqa: TRY003
                    f"{path}: {key} must be {expected.__name__}, got {type(value).__name__} {value!r}"
                )
        return cls(**known)
