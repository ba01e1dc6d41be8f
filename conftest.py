# conftest.py

import os

import pytest

# Set testing environment BEFORE importing app so config classes pick it up
os.environ["FLASK_ENV"] = "testing"

from app import create_app  # noqa: E402
from config import TestingConfig  # noqa: E402


@pytest.fixture(scope="function")
def app():
    """Create and configure a test Flask application"""
    flask_app = create_app(TestingConfig)
    flask_app.config.update(
        {
            "TESTING": True,
            "LOG_LEVEL": "DEBUG",
            "ENABLE_FILE_LOGGING": False,
            "ENABLE_CONSOLE_LOGGING": False,
            "SIS_INITIAL_RETRY_DELAY": 0.0,
        }
    )
    with flask_app.app_context():
        yield flask_app


@pytest.fixture
def runner(app):
    """Create a test CLI runner for the Flask application"""
    return app.test_cli_runner()
