"""Structured logging for Strategy Report.

structlog events are routed through the stdlib logging tree so a single
configure() call drives both the console (stderr) and the optional JSON-lines
log file.

Event names are dotted, component first: "parser.completed",
"monte_carlo.completed", "report.html_written".
"""

import inspect
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Literal

import structlog
from pydantic import BaseModel

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

ROOT_LOGGER = "strategy_report"
DEFAULT_LOG_FILE = Path("logs/strategy_report.log")

# strftime layouts; "{cs}" is replaced by hundredths of a second
_TIMESTAMP_LAYOUTS = {
    "compact": "%y%m%d-%H%M%S.{cs}",
    "time": "%H:%M:%S.{cs}",
    "short": "%m%dT%H%M%S",
}

_LEVEL_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35m",
}
_GRAY = "\033[90m"
_RESET = "\033[0m"


class LoggingConfig(BaseModel):
    """Logging settings.

    What each level shows:
    - DEBUG: header detection, column mapping, config loading
    - INFO: parse, analysis and simulation summaries, files written
    - WARNING: skipped rows, simulations skipped for lack of trades

    Timestamps ("timestamp_format"):
    - "iso": 2025-10-22T20:50:07.288824+00:00
    - "compact": 251022-205007.28
    - "time": 20:50:07.28
    - "short": 1022T205007
    """

    level: LogLevel = "INFO"
    format: Literal["console", "json"] = "console"
    timestamp_format: Literal["iso", "compact", "time", "short"] = "compact"
    enable_file: bool = True
    file_path: Path | None = None  # DEFAULT_LOG_FILE when None
    file_level: LogLevel = "WARNING"
    file_rotation: bool = True
    max_file_size_mb: int = 10
    backup_count: int = 3
    console_width: int = 0  # Truncate context beyond this many characters; 0 disables


def _timestamper(fmt: str):
    layout = _TIMESTAMP_LAYOUTS.get(fmt)

    def add_timestamp(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        now = datetime.now(timezone.utc)
        if layout is None:
            stamp = now.isoformat()
        else:
            stamp = now.strftime(layout.replace("{cs}", f"{now.microsecond // 10000:02d}"))
        # Separate key so event fields like a trade's "time" are never overwritten
        event_dict["log_timestamp"] = stamp
        return event_dict

    return add_timestamp


def _shared_processors(timestamp_format: str) -> list[Any]:
    """Processors applied to structlog and foreign stdlib records alike."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        _timestamper(timestamp_format),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.CallsiteParameterAdder(
            [structlog.processors.CallsiteParameter.FILENAME, structlog.processors.CallsiteParameter.LINENO]
        ),
    ]


class ConsoleRenderer:
    """One line per event: time, level, event name, sorted context, origin."""

    def __init__(self, width: int = 0) -> None:
        self.width = width

    def __call__(self, logger: Any, method_name: str, event_dict: dict[str, Any]) -> str:
        stamp = event_dict.pop("log_timestamp", "")
        level = str(event_dict.pop("level", "info")).upper()
        event = event_dict.pop("event", "")
        filename = event_dict.pop("filename", "")
        lineno = event_dict.pop("lineno", "")
        origin = event_dict.pop("logger", "") or Path(filename).stem

        context = " ".join(f"{key}={value}" for key, value in sorted(event_dict.items()) if not key.startswith("_"))
        if self.width and len(context) > self.width:
            context = context[: self.width - 1] + "…"

        parts = [stamp, f"[{_LEVEL_COLORS.get(level, '')}{level.lower()}{_RESET}]", str(event)]
        if context:
            parts.append(f"{_GRAY}|{_RESET} {context}")
        if origin and lineno:
            parts.append(f"{_GRAY}({origin}:{lineno}){_RESET}")
        return " ".join(part for part in parts if part)


def _file_handler(path: Path, config: LoggingConfig, pre_chain: list[Any]) -> logging.Handler:
    """JSON-lines file handler, rotating by size when enabled."""
    path.parent.mkdir(parents=True, exist_ok=True)

    handler: logging.Handler
    if config.file_rotation:
        handler = RotatingFileHandler(
            path,
            maxBytes=config.max_file_size_mb * 1024 * 1024,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
    else:
        handler = logging.FileHandler(path, encoding="utf-8")

    handler.setLevel(config.file_level)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(),
            foreign_pre_chain=pre_chain,
        )
    )
    return handler


class LoggerFactory:
    """
    Process-wide logging setup.

    Configure once at startup (the CLI does this from system.yaml); modules
    grab a logger at import time. Loggers obtained before configure() pick
    up the configuration because structlog resolves it on first use.

    Example:
        >>> LoggerFactory.configure(LoggingConfig(level="DEBUG", enable_file=False))
        >>> logger = LoggerFactory.get_logger()
        >>> logger.info("parser.completed", dialect="mt5", events=120)
    """

    _config: LoggingConfig | None = None
    _configured: bool = False

    @classmethod
    def configure(cls, config: LoggingConfig | None = None) -> None:
        """Install handlers on the root logger and configure structlog."""
        config = config or LoggingConfig()
        if config.enable_file and config.file_path is None:
            config = config.model_copy(update={"file_path": DEFAULT_LOG_FILE})
        cls._config = config

        pre_chain = _shared_processors(config.timestamp_format)

        renderer: Any = ConsoleRenderer(config.console_width)
        if config.format == "json":
            renderer = structlog.processors.JSONRenderer()
        console = logging.StreamHandler(sys.stderr)
        console.setLevel(config.level)
        console.setFormatter(structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=pre_chain))

        handlers: list[logging.Handler] = [console]
        root_level = getattr(logging, config.level)
        if config.enable_file and config.file_path is not None:
            handlers.append(_file_handler(config.file_path, config, pre_chain))
            root_level = min(root_level, getattr(logging, config.file_level))

        logging.basicConfig(level=root_level, handlers=handlers, force=True)

        structlog.configure(
            processors=[
                *pre_chain,
                structlog.processors.format_exc_info,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            wrapper_class=structlog.stdlib.BoundLogger,
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        cls._configured = True

    @classmethod
    def get_logger(cls, name: str | None = None):
        """
        Logger for the given name, or for the calling module when omitted.

        Configures logging with defaults if nothing has configured it yet.
        """
        if not cls._configured:
            cls.configure()

        if name is None:
            caller = inspect.currentframe()
            caller = caller.f_back if caller is not None else None
            name = caller.f_globals.get("__name__", ROOT_LOGGER) if caller is not None else ROOT_LOGGER

        return structlog.get_logger(name)

    @classmethod
    def get_config(cls) -> LoggingConfig:
        return cls._config or LoggingConfig()

    @classmethod
    def is_configured(cls) -> bool:
        return cls._configured

    @classmethod
    def reset(cls) -> None:
        """Drop all handlers and structlog configuration (used by tests)."""
        root = logging.getLogger()
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()
        root.setLevel(logging.NOTSET)
        structlog.reset_defaults()
        cls._config = None
        cls._configured = False
