# config/monitoring.py

import os

from .base import _coerce_bool, _coerce_int


class MonitoringConfig:
    """Log output settings read by ``sis_sync.utils.logging_config.setup_logging``."""

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "json").lower()  # 'json' or 'text'

    # Rotating file output; LOG_FILE overrides LOG_DIR/sis_sync.log
    ENABLE_FILE_LOGGING = _coerce_bool(os.environ.get("ENABLE_FILE_LOGGING"), default=False)
    LOG_DIR = os.environ.get("LOG_DIR", "logs")
    LOG_FILE = os.environ.get("LOG_FILE")
    LOG_FILE_MAX_BYTES = _coerce_int(os.environ.get("LOG_FILE_MAX_BYTES"), 10 * 1024 * 1024, minimum=1024)
    LOG_FILE_BACKUP_COUNT = _coerce_int(os.environ.get("LOG_FILE_BACKUP_COUNT"), 10, minimum=0)

    ENABLE_CONSOLE_LOGGING = _coerce_bool(os.environ.get("ENABLE_CONSOLE_LOGGING"), default=True)


class DevelopmentMonitoringConfig(MonitoringConfig):
    LOG_LEVEL = "DEBUG"
    LOG_FORMAT = "text"


class ProductionMonitoringConfig(MonitoringConfig):
    # Sync runs are usually scheduled jobs, so keep a JSON file trail.
    LOG_LEVEL = "INFO"
    LOG_FORMAT = "json"
    ENABLE_FILE_LOGGING = True


class TestingMonitoringConfig(MonitoringConfig):
    LOG_LEVEL = "WARNING"
    LOG_FORMAT = "text"
    ENABLE_FILE_LOGGING = False
    ENABLE_CONSOLE_LOGGING = False
