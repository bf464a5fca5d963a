"""
Structured logging module using structlog

Features
--------
• Structured logging with automatic context
• Pretty (coloured) or JSON console output
• Optional file logging with rotation
• Automatic method entry/exit tracing
"""
from __future__ import annotations
import json
import logging
import os
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, TextIO
from functools import wraps

import structlog

_RENDERERS = ("json", "pretty")


def _supports_colour() -> bool:
    """True if stdout seems to handle ANSI colour codes."""
    if os.getenv("NO_COLOR"):
        return False
    if sys.platform == "win32" and os.getenv("TERM") != "xterm":
        return False
    return sys.stdout.isatty()


def _read_cfg(path: str | Path | None) -> Dict[str, Any]:
    if not path:
        return {}
    p = Path(path)
    if not p.is_file():
        raise FileNotFoundError(f"Logging config file not found: {p}")
    try:
        return json.loads(p.read_text()).get("logging", {})
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in logging config: {e}") from e


def _console_renderer(console_cfg: Dict[str, Any]):
    renderer = (os.getenv("LOG_CONSOLE_RENDERER") or console_cfg.get("renderer") or "pretty").lower()
    if renderer not in _RENDERERS:
        raise ValueError(
            f"Invalid console logging renderer option: '{renderer}'. Allowed: {', '.join(_RENDERERS)}"
        )
    if renderer == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=_supports_colour())


def init_logger(config_path: str | Path | None = None, *, stream: TextIO | None = None) -> None:
    """Configure structlog with console and optional file output.

    Console output goes to ``stream`` (stdout by default). Servers speaking a
    protocol over stdout pass stderr instead.
    """
    cfg = _read_cfg(config_path)
    console_cfg = cfg.get("console", {})
    file_cfg = cfg.get("file", {})

    # Validate before touching global logging state
    renderer = _console_renderer(console_cfg) if console_cfg.get("enabled", True) else None

    shared_processors = [
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="ISO"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[structlog.stdlib.filter_by_level, *shared_processors,
                    structlog.stdlib.ProcessorFormatter.wrap_for_formatter],  # type: ignore[list-item]
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(getattr(logging, cfg.get("level", "INFO").upper(), logging.INFO))

    if renderer is not None:
        console = logging.StreamHandler(stream or sys.stdout)
        console.setFormatter(structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,  # type: ignore[arg-type]
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        ))
        root.addHandler(console)

    # Setup file logging if enabled
    if file_cfg.get("enabled", False):
        path = Path(file_cfg.get("path", "logs/orchestrator.log"))
        path.parent.mkdir(parents=True, exist_ok=True)

        if file_cfg.get("rotation", {}).get("enabled", True):
            handler = RotatingFileHandler(
                path,
                maxBytes=file_cfg.get("rotation", {}).get("max_bytes", 10_000_000),
                backupCount=file_cfg.get("rotation", {}).get("backup_count", 5),
            )
        else:
            handler = logging.FileHandler(path)  # type: ignore[assignment]

        handler.setLevel(getattr(logging, file_cfg.get("level", "DEBUG").upper(), logging.DEBUG))
        handler.setFormatter(structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,  # type: ignore[arg-type]
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                        structlog.processors.JSONRenderer()],
        ))
        root.addHandler(handler)

    # Silence chatty transport libraries unless explicitly configured
    for name, level in cfg.get("libraries", {"httpx": "WARNING", "httpcore": "WARNING", "mcp": "WARNING"}).items():
        logging.getLogger(name).setLevel(getattr(logging, str(level).upper(), logging.WARNING))


def get_logger(name: str):
    """Get a structlog logger instance."""
    return structlog.get_logger(name)


def trace_method(func):
    """Decorator to automatically trace method entry/exit at debug level."""
    @wraps(func)
    def wrapper(self, *args, **kwargs):
        logger = get_logger(func.__module__)
        method_name = f"{self.__class__.__name__}.{func.__name__}"

        logger.debug("method_entry", method=method_name)
        try:
            result = func(self, *args, **kwargs)
            logger.debug("method_exit", method=method_name, success=True)
            return result
        except Exception as e:
            logger.debug("method_exit", method=method_name, success=False, error=str(e))
            raise
    return wrapper
