# app.py

import logging
import os

from dotenv import load_dotenv
from flask import Flask

# Load environment variables from .env file first
load_dotenv()

# Module imports after load_dotenv() - E402 is intentional
from config import DevelopmentConfig, ProductionConfig, TestingConfig  # noqa: E402
from config.monitoring import (  # noqa: E402
    DevelopmentMonitoringConfig,
    ProductionMonitoringConfig,
    TestingMonitoringConfig,
)
from config.validation import validate_and_exit  # noqa: E402
from sis_sync import init_sync  # noqa: E402
from sis_sync.utils.logging_config import setup_logging  # noqa: E402

logger = logging.getLogger(__name__)

_CONFIGS = {
    "production": (ProductionConfig, ProductionMonitoringConfig),
    "testing": (TestingConfig, TestingMonitoringConfig),
    "development": (DevelopmentConfig, DevelopmentMonitoringConfig),
}


def create_app(config_object=None):
    """
    Build the host app: config, logging, and the ``flask sync`` commands.

    ``config_object`` overrides the class picked from FLASK_ENV (tests pass
    TestingConfig). Monitoring settings still follow FLASK_ENV.
    """
    app = Flask(__name__)

    flask_env = os.environ.get("FLASK_ENV", "development")
    # Validate environment variables (only in production)
    if flask_env == "production" and config_object is None:
        validate_and_exit(flask_env)

    base_config, monitoring_config = _CONFIGS.get(flask_env, _CONFIGS["development"])
    app.config.from_object(config_object or base_config)
    app.config.from_object(monitoring_config)

    setup_logging(app)
    init_sync(app)
    return app


if __name__ == "__main__":
    create_app().cli.main()
