"""
System configuration for Strategy Report.

One configuration for the whole analyzer, loaded from YAML and merged over
built-in defaults:

- AnalysisConfig: parsing bounds and metric constants
- SimulationConfig: Monte Carlo parameters
- OutputConfig: where report files go
- LoggingConfig: logging setup (converted to log_system.LoggingConfig)

Lookup order for the YAML file:
    1. Explicit path passed to SystemConfig.load()
    2. $STRATEGY_REPORT_CONFIG
    3. config/system.yaml (relative to the working directory)

String values may reference environment variables as ${VAR}.
"""

import os
import re
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Literal, cast

import yaml

from strategy_report.system import log_system

DEFAULT_CONFIG_PATH = Path("config/system.yaml")
CONFIG_ENV_VAR = "STRATEGY_REPORT_CONFIG"

_ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")


@dataclass
class AnalysisConfig:
    """Parsing bounds and metric constants."""

    default_initial_balance: float = 10000.0
    annualization_factor: int = 252
    drawdown_noise_threshold_pct: float = 0.5
    max_file_size_mb: float = 25.0
    max_rows: int = 200_000


@dataclass
class SimulationConfig:
    """Monte Carlo simulation parameters."""

    num_simulations: int = 100
    horizon: int = 250
    win_return: float = 0.05
    loss_return: float = 0.03
    position_fraction: float = 0.10
    workers: int = 1
    seed: int | None = None


@dataclass
class OutputConfig:
    """Report output locations."""

    default_report_dir: str = "output/reports"
    timestamp_format: str = "%Y%m%d_%H%M%S"


@dataclass
class LoggingConfig:
    """Logging section as it appears in system.yaml."""

    level: str = "INFO"
    format: str = "console"
    timestamp_format: str = "compact"
    enable_file: bool = True
    file_path: str = "logs/strategy_report.log"
    file_level: str = "WARNING"
    file_rotation: bool = True
    max_file_size_mb: int = 10
    backup_count: int = 3
    console_width: int = 0

    def to_logger_config(self) -> log_system.LoggingConfig:
        """Convert to the pydantic LoggingConfig used by LoggerFactory."""
        return log_system.LoggingConfig(
            level=cast(log_system.LogLevel, self.level.upper()),
            format=cast(Literal["console", "json"], self.format),
            timestamp_format=cast(Literal["iso", "compact", "time", "short"], self.timestamp_format),
            enable_file=self.enable_file,
            file_path=Path(self.file_path),
            file_level=cast(log_system.LogLevel, self.file_level.upper()),
            file_rotation=self.file_rotation,
            max_file_size_mb=self.max_file_size_mb,
            backup_count=self.backup_count,
            console_width=self.console_width,
        )


@dataclass
class SystemConfig:
    """Complete system configuration."""

    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def load(cls, path: Path | str | None = None) -> "SystemConfig":
        """
        Load configuration from YAML, falling back to built-in defaults.

        Args:
            path: Explicit config file. If None, uses $STRATEGY_REPORT_CONFIG
                or config/system.yaml.

        Returns:
            SystemConfig with file values merged over defaults
        """
        if path is None:
            env_path = os.environ.get(CONFIG_ENV_VAR)
            path = Path(env_path) if env_path else DEFAULT_CONFIG_PATH

        config_path = Path(path)
        if not config_path.exists():
            return cls()

        with open(config_path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}

        merged = _deep_merge(_defaults_as_dict(), loaded)
        return cls._from_dict(_substitute_env_vars(merged))

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> "SystemConfig":
        """Build config from a (possibly partial) dictionary."""
        return cls(
            analysis=_build_section(AnalysisConfig, data.get("analysis")),
            simulation=_build_section(SimulationConfig, data.get("simulation")),
            output=_build_section(OutputConfig, data.get("output")),
            logging=_build_section(LoggingConfig, data.get("logging")),
        )


def _build_section(section_cls: Any, values: dict[str, Any] | None) -> Any:
    """Instantiate a section dataclass, ignoring unknown keys."""
    if not values:
        return section_cls()
    known = {f.name for f in fields(section_cls)}
    return section_cls(**{key: value for key, value in values.items() if key in known})


def _defaults_as_dict() -> dict[str, Any]:
    return asdict(SystemConfig())


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Recursively merge override into base without mutating either.

    Nested dicts merge key by key; any other value in override replaces
    the base value.
    """
    result = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _substitute_env_vars(value: Any) -> Any:
    """Replace ${VAR} with environment values; undefined variables keep the placeholder."""
    if isinstance(value, dict):
        return {key: _substitute_env_vars(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_substitute_env_vars(item) for item in value]
    if isinstance(value, str):
        return _ENV_VAR_PATTERN.sub(lambda match: os.environ.get(match.group(1), match.group(0)), value)
    return value


_system_config: SystemConfig | None = None


def get_system_config(path: Path | str | None = None) -> SystemConfig:
    """
    Get the cached system configuration, loading it on first use.

    Passing an explicit path always reloads from that file.
    """
    global _system_config
    if path is not None or _system_config is None:
        _system_config = SystemConfig.load(path)
    return _system_config


def reload_system_config(path: Path | str | None = None) -> SystemConfig:
    """Force a reload of the cached system configuration."""
    global _system_config
    _system_config = SystemConfig.load(path)
    return _system_config
