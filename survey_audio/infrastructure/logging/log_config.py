"""
Unified logging configuration for the survey audio pipeline.
Provides singleton pattern to ensure single configuration.
"""
import logging
import sys
import json
from typing import Dict, Any, Optional
from datetime import datetime, timezone

from survey_audio.config.settings import get_settings


LOGGER_NAMESPACE = "survey-audio"


def _record_fields(record: logging.LogRecord) -> Dict[str, Any]:
    fields = getattr(record, 'extra_fields', None)
    return fields if isinstance(fields, dict) else {}


class JSONFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        settings = get_settings()
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "service": settings.service_name,
            "environment": settings.environment
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        log_entry.update(_record_fields(record))

        return json.dumps(log_entry, ensure_ascii=False, default=str)


class DevelopmentFormatter(logging.Formatter):
    """Human-readable formatter for development."""

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
        'RESET': '\033[0m'
    }

    def format(self, record: logging.LogRecord) -> str:
        level_color = self.COLORS.get(record.levelname, '')
        reset_color = self.COLORS['RESET']
        colored_level = f"{level_color}{record.levelname}{reset_color}"

        base_format = f"%(asctime)s - %(name)s - {colored_level} - %(message)s"

        fields = _record_fields(record)
        if fields:
            # Escape % so values never act as format directives
            extra_str = " | ".join(f"{k}={v}" for k, v in fields.items()).replace('%', '%%')
            base_format += f" | {extra_str}"

        formatter = logging.Formatter(base_format)
        return formatter.format(record)


class LoggingManager:
    """Singleton manager for logging configuration."""

    _instance: Optional['LoggingManager'] = None
    _configured: bool = False

    THIRD_PARTY_LOGGERS = ("boto3", "botocore", "urllib3", "requests", "openai", "httpx", "s3transfer")

    def __new__(cls) -> 'LoggingManager':
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def _configure_logging(self) -> None:
        """Unified logging configuration."""
        if self._configured:
            return

        settings = get_settings()
        log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

        if settings.is_production:
            formatter = JSONFormatter()
        else:
            formatter = DevelopmentFormatter()

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(log_level)
        console_handler.setFormatter(formatter)

        app_logger = logging.getLogger(LOGGER_NAMESPACE)
        app_logger.setLevel(log_level)
        app_logger.addHandler(console_handler)
        app_logger.propagate = False

        self._configure_third_party_loggers()

        self._configured = True

        app_logger.info("Logging configuration initialized", extra={
            'extra_fields': {
                "environment": settings.environment,
                "log_level": logging.getLevelName(log_level),
                "formatter": "json" if settings.is_production else "development"
            }
        })

    def _configure_third_party_loggers(self) -> None:
        """Configure third-party library loggers to reduce noise."""
        for logger_name in self.THIRD_PARTY_LOGGERS:
            logger = logging.getLogger(logger_name)
            if logger.level < logging.WARNING:
                logger.setLevel(logging.WARNING)

    def get_logger(self, name: str) -> logging.Logger:
        """Get a configured logger instance under the survey-audio namespace."""
        self._configure_logging()

        if not name.startswith(LOGGER_NAMESPACE):
            name = f"{LOGGER_NAMESPACE}.{name}"

        return logging.getLogger(name)


logging_manager = LoggingManager()


def get_logger(name: str) -> logging.Logger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (typically the component name)

    Returns:
        Configured logger instance under the survey-audio namespace

    Example:
        logger = get_logger("GenerateAudioUseCase")
        # Results in logger named: "survey-audio.GenerateAudioUseCase"
    """
    return logging_manager.get_logger(name)
