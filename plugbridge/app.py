"""Bootstrap: wires configuration, logging and the plugin manager together."""

from __future__ import annotations

import logging
import logging.handlers
from collections.abc import Mapping
from pathlib import Path

import structlog

from plugbridge.core.config import BridgeConfig
from plugbridge.manager import PluginManager
from plugbridge.runtime.environment import OutputWriter

logger = structlog.get_logger()


def _configure_logging(config: BridgeConfig, *, log_dir: Path | None = None) -> None:
    """Set up structlog with console output and optional rotating JSON file handler."""
    shared_processors: list[structlog.types.Processor] = [
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ]

    root_logger = logging.getLogger()
    root_logger.setLevel(config.log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.dev.ConsoleRenderer(),
        )
    )
    root_logger.addHandler(console_handler)

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_dir / "plugbridge.log",
            maxBytes=config.log_max_bytes,
            backupCount=config.log_backup_count,
        )
        file_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=structlog.processors.JSONRenderer(),
            )
        )
        root_logger.addHandler(file_handler)

    structlog.configure(
        processors=shared_processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def build_manager(
    config: BridgeConfig | None = None,
    *,
    modules: Mapping[str, str] | None = None,
    output: OutputWriter | None = None,
) -> PluginManager:
    if config is None:
        config = BridgeConfig()

    _configure_logging(config, log_dir=config.log_dir)

    logger.info(
        "manager_building",
        os_type=config.os_type,
        arch_type=config.arch_type,
        plugin_dirs=[str(d) for d in config.plugin_dirs],
        log_level=config.log_level,
    )

    manager = PluginManager(
        config.os_type, config.arch_type, modules=modules, output=output
    )
    result = manager.load_dirs(config.plugin_dirs)
    for error in result.errors:
        logger.warning("plugin_skipped", reason=error)
    return manager
