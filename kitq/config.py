"""Three-layer config loading and merging."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Config dataclasses
# ---------------------------------------------------------------------------

@dataclass
class SchedulerConfig:
    max_retries: int = 3
    retry_backoff_sec: int = 0


@dataclass
class StalenessConfig:
    use_git: bool = True


@dataclass
class LoggingConfig:
    level: str = "WARNING"


@dataclass
class Config:
    kit_dir: str = ".kit"
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    staleness: StalenessConfig = field(default_factory=StalenessConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    project_root: str = ""

    @property
    def kit_path(self) -> Path:
        return Path(self.project_root) / self.kit_dir

    @property
    def specs_path(self) -> Path:
        return self.kit_path / "specs"

    @property
    def tasks_path(self) -> Path:
        return self.kit_path / "tasks"

    @property
    def logs_path(self) -> Path:
        return self.kit_path / "logs"

    @property
    def journal_path(self) -> Path:
        return self.kit_path / "journal.db"


# ---------------------------------------------------------------------------
# Deep merge
# ---------------------------------------------------------------------------

def deep_merge(base: dict, override: dict) -> dict:
    """Field-level deep merge. Lists are replaced, None values ignored."""
    result = dict(base)
    for key, value in override.items():
        if value is None:
            continue
        if (
            key in result
            and isinstance(result[key], dict)
            and isinstance(value, dict)
        ):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


# ---------------------------------------------------------------------------
# Dict → Config mapping
# ---------------------------------------------------------------------------

def _non_negative_int(value, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"Invalid config: {name} must be a non-negative integer, got {value!r}")
    return value


def _dict_to_config(data: dict, project_root: str) -> Config:
    cfg = Config(project_root=project_root)

    if "kit_dir" in data:
        cfg.kit_dir = str(data["kit_dir"])

    if "scheduler" in data and isinstance(data["scheduler"], dict):
        s = data["scheduler"]
        cfg.scheduler = SchedulerConfig(
            max_retries=_non_negative_int(
                s.get("max_retries", cfg.scheduler.max_retries), "scheduler.max_retries"),
            retry_backoff_sec=_non_negative_int(
                s.get("retry_backoff_sec", cfg.scheduler.retry_backoff_sec),
                "scheduler.retry_backoff_sec"),
        )

    if "staleness" in data and isinstance(data["staleness"], dict):
        cfg.staleness = StalenessConfig(
            use_git=bool(data["staleness"].get("use_git", cfg.staleness.use_git)),
        )

    if "logging" in data and isinstance(data["logging"], dict):
        cfg.logging = LoggingConfig(
            level=str(data["logging"].get("level", cfg.logging.level)).upper(),
        )

    return cfg


def _read_yaml(path: Path, strict: bool) -> dict:
    if not path.exists():
        return {}
    try:
        parsed = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        if strict:
            raise ValueError(f"Invalid {path.name}: {e}") from e
        logger.warning(f"Ignoring unreadable {path.name}: {e}")
        return {}
    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        if strict:
            raise ValueError(f"Invalid {path.name}: expected mapping, got {type(parsed).__name__}")
        return {}
    return parsed


# ---------------------------------------------------------------------------
# Load config (3-layer)
# ---------------------------------------------------------------------------

def load_config(project_root: str | Path) -> Config:
    """Load and merge config from up to 3 layers.

    Priority (highest first):
      1. Environment variables (KITQ_MAX_RETRIES, KITQ_LOG_LEVEL)
      2. .kit/local.config.yaml
      3. .kit/config.yaml
    """
    project_root = Path(project_root)
    kit_dir = project_root / ".kit"

    base_data = _read_yaml(kit_dir / "config.yaml", strict=True)
    local_data = _read_yaml(kit_dir / "local.config.yaml", strict=False)

    merged = deep_merge(base_data, local_data)
    cfg = _dict_to_config(merged, str(project_root))

    env_retries = os.environ.get("KITQ_MAX_RETRIES")
    if env_retries:
        try:
            cfg.scheduler.max_retries = _non_negative_int(int(env_retries), "KITQ_MAX_RETRIES")
        except ValueError as e:
            raise ValueError(f"Invalid KITQ_MAX_RETRIES: {env_retries!r}") from e

    env_level = os.environ.get("KITQ_LOG_LEVEL")
    if env_level:
        cfg.logging.level = env_level.upper()

    return cfg
