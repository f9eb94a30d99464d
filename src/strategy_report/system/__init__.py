"""
System configuration package.

Provides consolidated system-level configuration and logging.

Exports:
    - SystemConfig: Complete system configuration dataclass
    - get_system_config: Get cached system config
    - reload_system_config: Force reload system config
    - LoggerFactory: Factory for creating configured loggers
    - LoggingConfig: Logging configuration model
"""

from strategy_report.system.config import SystemConfig, get_system_config, reload_system_config
from strategy_report.system.log_system import LoggerFactory, LoggingConfig

__all__ = [
    "SystemConfig",
    "get_system_config",
    "reload_system_config",
    "LoggerFactory",
    "LoggingConfig",
]
