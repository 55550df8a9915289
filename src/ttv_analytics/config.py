"""Configuration management for the analytics engine."""

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .phases import LEGACY_STAGE_ALIASES, STANDARD_PHASES, PhaseDefinition

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("~/.ttv_analytics/config.yaml")


def _default_phases() -> List[Dict[str, str]]:
    return [{"key": key, "name": name} for key, name in STANDARD_PHASES]


@dataclass
class ConfigModel:
    """Engine configuration: phase table, anchor phrases and insight thresholds."""

    # Phase table, in canonical order
    phases: List[Dict[str, str]] = field(default_factory=_default_phases)
    phase_aliases: Dict[str, str] = field(default_factory=lambda: dict(LEGACY_STAGE_ALIASES))

    # Anchor task title phrases (case-insensitive substring match)
    contract_signed_phrase: str = "contract signed"
    go_live_phrase: str = "first live patient samples"

    # Insight thresholds
    stalled_min_age_days: int = 90
    stalled_max_progress_percent: int = 50
    phase_slowdown_factor: float = 1.5
    long_open_task_days: int = 30
    overdue_task_threshold: int = 10
    blocked_task_threshold: int = 5
    min_completed_for_benchmarks: int = 2

    # Trend classification band, in percent
    trend_threshold_percent: int = 5

    def phase_definition(self) -> PhaseDefinition:
        """Build the immutable phase table described by this config."""
        pairs = [(entry.get("key"), entry.get("name")) for entry in self.phases]
        return PhaseDefinition(pairs, self.phase_aliases)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def to_yaml(self) -> str:
        """Serialize config to YAML."""
        return yaml.safe_dump(self.to_dict(), default_flow_style=False, sort_keys=False)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ConfigModel":
        data = data or {}
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")

        if "phases" in data:
            data = dict(data)
            data["phases"] = _normalize_phases(data["phases"])
        config = cls(**data)
        # Fail early on a malformed phase table
        config.phase_definition()
        return config

    @classmethod
    def from_yaml(cls, yaml_str: str) -> "ConfigModel":
        """Deserialize config from YAML."""
        return cls.from_dict(yaml.safe_load(yaml_str))


def _normalize_phases(raw: Any) -> List[Dict[str, str]]:
    """Accept either a list of ``{key, name}`` entries or a key -> name mapping."""
    if isinstance(raw, dict):
        return [{"key": str(key), "name": str(name)} for key, name in raw.items()]
    phases = []
    for entry in raw or []:
        if isinstance(entry, str):
            phases.append({"key": entry, "name": entry})
        elif not isinstance(entry, dict) or not entry.get("key"):
            raise ValueError(f"Phase entry needs a key: {entry!r}")
        else:
            phases.append({"key": str(entry["key"]), "name": str(entry.get("name") or entry["key"])})
    return phases


class Config:
    """Configuration manager holding the process-wide config instance."""

    _instance: Optional[ConfigModel] = None

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> ConfigModel:
        """Load configuration from file, or fall back to defaults."""
        if config_path is None:
            config_path = DEFAULT_CONFIG_PATH.expanduser()

        config = ConfigModel()
        if config_path.exists():
            try:
                config = ConfigModel.from_yaml(config_path.read_text())
                logger.info("Loaded configuration from %s", config_path)
            except (yaml.YAMLError, ValueError, TypeError) as e:
                logger.warning("Failed to load config from %s: %s", config_path, e)
                logger.warning("Using default configuration.")
        else:
            logger.debug("No config file at %s, using defaults", config_path)

        cls._instance = config
        return config

    @classmethod
    def save(cls, config: ConfigModel, config_path: Optional[Path] = None) -> None:
        """Save configuration to file."""
        if config_path is None:
            config_path = DEFAULT_CONFIG_PATH.expanduser()

        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(config.to_yaml())
        logger.info("Configuration saved to %s", config_path)

    @classmethod
    def get(cls) -> ConfigModel:
        """Get the current configuration instance."""
        if cls._instance is None:
            cls._instance = cls.load()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        cls._instance = None


def get_config() -> ConfigModel:
    """Get the current configuration."""
    return Config.get()


def load_config(config_path: Optional[Path] = None) -> ConfigModel:
    """Load configuration from file."""
    return Config.load(config_path)


def save_config(config: ConfigModel, config_path: Optional[Path] = None) -> None:
    """Save configuration to file."""
    Config.save(config, config_path)
