"""Project configuration for the trellis CLI.

Settings come from, in increasing priority: built-in defaults, the nearest
``.trellis.yaml`` at or above the working directory, and ``TRELLIS_*``
environment variables.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import yaml

from trellis.engine import DEFAULT_SCRIPT_NAME
from trellis.errors import ConstructionError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".trellis.yaml"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class TrellisConfig:
    script_name: str = DEFAULT_SCRIPT_NAME
    log_level: str = "WARNING"
    flat_listing: bool = False
    source: Path | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], source: Path | None = None) -> TrellisConfig:
        """Parse and validate a config mapping."""
        where = str(source) if source else "config"
        unknown = sorted(set(data) - {"script", "log_level", "flat"})
        if unknown:
            raise ConstructionError(f"{where}: unknown key(s): {', '.join(unknown)}")

        script = data.get("script", DEFAULT_SCRIPT_NAME)
        if not isinstance(script, str) or not script.strip():
            raise ConstructionError(f"{where}: `script` must be a non-empty string")

        flat = data.get("flat", False)
        if not isinstance(flat, bool):
            raise ConstructionError(f"{where}: `flat` must be true or false")

        return cls(
            script_name=script.strip(),
            log_level=_normalize_level(data.get("log_level", "WARNING"), where),
            flat_listing=flat,
            source=source,
        )


def find_config_file(start_dir: Path) -> Path | None:
    current = start_dir.resolve()
    for directory in (current, *current.parents):
        candidate = directory / CONFIG_FILE_NAME
        if candidate.is_file():
            return candidate
    return None


def load_config(start_dir: Path | None = None, env: Mapping[str, str] | None = None) -> TrellisConfig:
    """Load configuration for a run started in ``start_dir``."""
    env = os.environ if env is None else env
    config = TrellisConfig()

    path = find_config_file(start_dir or Path.cwd())
    if path is not None:
        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            raise ConstructionError(f"{path}: parse error: {exc}") from exc
        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise ConstructionError(f"{path}: expected mapping at top level")
        config = TrellisConfig.from_dict(raw, source=path)
        logger.debug("loaded config from %s", path)

    return _apply_env(config, env)


def _apply_env(config: TrellisConfig, env: Mapping[str, str]) -> TrellisConfig:
    changes: dict[str, Any] = {}
    if env.get("TRELLIS_FILE"):
        changes["script_name"] = env["TRELLIS_FILE"]
    if env.get("TRELLIS_LOG_LEVEL"):
        changes["log_level"] = _normalize_level(env["TRELLIS_LOG_LEVEL"], "TRELLIS_LOG_LEVEL")
    if "TRELLIS_FLAT" in env:
        changes["flat_listing"] = env["TRELLIS_FLAT"] == "1"
    return replace(config, **changes) if changes else config


def _normalize_level(value: object, where: str) -> str:
    level = str(value).strip().upper()
    if level not in LOG_LEVELS:
        raise ConstructionError(f"{where}: log level must be one of {', '.join(LOG_LEVELS)}, got `{value}`")
    return level
