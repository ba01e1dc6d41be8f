# config.py
import os


def _coerce_bool(value, default=False):
    """Convert environment-style truthy/falsey values to bool."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    value_str = str(value).strip().lower()
    if value_str in {"1", "true", "yes", "on"}:
        return True
    if value_str in {"0", "false", "no", "off"}:
        return False
    return default


def _coerce_int(value, default, *, minimum=None, maximum=None):
    """
    Parse an integer setting, falling back to ``default`` when it is missing or invalid.

    Values outside the optional bounds are clamped.
    """
    try:
        number = int(str(value).strip()) if value is not None else default
    except ValueError:
        number = default
    if minimum is not None and number < minimum:
        number = minimum
    if maximum is not None and number > maximum:
        number = maximum
    return number


def _coerce_float(value, default, *, minimum=None):
    try:
        number = float(str(value).strip()) if value is not None else default
    except ValueError:
        number = default
    if minimum is not None and number < minimum:
        number = minimum
    return number


class Config:
    _flask_env = os.environ.get("FLASK_ENV", "development")

    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-in-production")

    # SIS connection
    SIS_BASE_URL = os.environ.get("SIS_BASE_URL", "")
    SIS_ACCESS_TOKEN = os.environ.get("SIS_ACCESS_TOKEN")
    SIS_PAGE_SIZE = _coerce_int(os.environ.get("SIS_PAGE_SIZE"), 100, minimum=1, maximum=10000)
    SIS_MAX_RETRIES = _coerce_int(os.environ.get("SIS_MAX_RETRIES"), 3, minimum=0)
    SIS_INITIAL_RETRY_DELAY = _coerce_float(os.environ.get("SIS_INITIAL_RETRY_DELAY"), 5.0, minimum=0.0)
    SIS_REQUEST_TIMEOUT = _coerce_float(os.environ.get("SIS_REQUEST_TIMEOUT"), 30.0, minimum=1.0)
    # 1 keeps page fetches serialized; higher values share one rate-limit gate.
    SIS_FETCH_WORKERS = _coerce_int(os.environ.get("SIS_FETCH_WORKERS"), 1, minimum=1, maximum=16)

    # Reconciliation
    SIS_SYNC_ENABLED = _coerce_bool(os.environ.get("SIS_SYNC_ENABLED"), default=True)
    SIS_STUDENT_MATCH_FIELD = os.environ.get("SIS_STUDENT_MATCH_FIELD", "student_number").strip().lower()
    if SIS_STUDENT_MATCH_FIELD not in ("student_number", "fteid"):
        raise ValueError(
            f"SIS_STUDENT_MATCH_FIELD must be 'student_number' or 'fteid', got '{SIS_STUDENT_MATCH_FIELD}'."
        )
    SIS_STUDENT_NUMBER_NUMERIC = _coerce_bool(os.environ.get("SIS_STUDENT_NUMBER_NUMERIC"), default=True)
    SIS_MAPPING_PATH = os.environ.get(
        "SIS_MAPPING_PATH",
        os.path.join(os.path.dirname(__file__), "mappings", "powerschool_v1.yaml"),
    )


class DevelopmentConfig(Config):
    DEBUG = True


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = os.environ.get("SECRET_KEY", "test-secret-key-for-testing-only")
    SIS_BASE_URL = "https://sis.example.org/ws/schema"
    SIS_ACCESS_TOKEN = "test-token"
    SIS_PAGE_SIZE = 100
    SIS_MAX_RETRIES = 3
    SIS_INITIAL_RETRY_DELAY = 0.0
    SIS_FETCH_WORKERS = 1
    SIS_SYNC_ENABLED = True
    SIS_STUDENT_MATCH_FIELD = "student_number"
    SIS_STUDENT_NUMBER_NUMERIC = True


class ProductionConfig(Config):
    DEBUG = False
