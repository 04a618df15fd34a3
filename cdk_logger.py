import logging
import os
from typing import Dict, Optional

DEFAULT_LOGGER_NAME = "WfdmFileIndexInitializer"


def _resolve_level(level: str) -> int:
    resolved = logging.getLevelName(level.upper())
    return resolved if isinstance(resolved, int) else logging.INFO


class CDKLogger:
    """Logging for the CDK app, configured once from config.json or WFDM_LOG_LEVEL."""

    _loggers: Dict[str, logging.Logger] = {}
    _global_level = _resolve_level(os.environ.get("WFDM_LOG_LEVEL", "INFO"))

    @classmethod
    def get_logger(cls, name: Optional[str] = None) -> logging.Logger:
        """Get or create a logger with the given name."""
        logger_name = name or DEFAULT_LOGGER_NAME

        if logger_name in cls._loggers:
            return cls._loggers[logger_name]

        logger = logging.getLogger(logger_name)

        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '{"timestamp":"%(asctime)s", "level":"%(levelname)s", "service":"%(name)s", "message":"%(message)s"}'
            )
            handler.setFormatter(formatter)
            logger.addHandler(handler)
            logger.setLevel(cls._global_level)

        cls._loggers[logger_name] = logger
        return logger

    @classmethod
    def set_level(cls, level: str) -> None:
        """Set log level for all loggers."""
        log_level = _resolve_level(level)
        cls._global_level = log_level

        for logger in cls._loggers.values():
            logger.setLevel(log_level)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger with the specified name."""
    return CDKLogger.get_logger(name)
