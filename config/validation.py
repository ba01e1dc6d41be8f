"""
Startup validation of the SIS settings.

Only production is checked; development and tests run against whatever the
environment provides and rely on ``flask sync readiness`` instead.
"""

import os
import sys
from typing import List, Tuple
from urllib.parse import urlparse

STUDENT_MATCH_FIELDS = ("student_number", "fteid")


def _check_base_url(value: str) -> List[str]:
    if not value:
        return ["SIS_BASE_URL is required in production. Set it to the SIS query API base URL."]
    parsed = urlparse(value)
    if parsed.scheme != "https":
        return ["SIS_BASE_URL must use https:// in production."]
    if not parsed.netloc:
        return [f"SIS_BASE_URL has no host: {value}"]
    return []


def validate_environment(flask_env: str = None) -> Tuple[bool, List[str]]:
    """
    Check the SIS settings for ``flask_env`` (defaults to FLASK_ENV).

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    flask_env = flask_env or os.environ.get("FLASK_ENV", "development")
    if flask_env != "production":
        return True, []
    if os.environ.get("SIS_SYNC_ENABLED", "true").strip().lower() in ("0", "false", "no", "off"):
        return True, []

    errors = _check_base_url(os.environ.get("SIS_BASE_URL", "").strip())

    if not os.environ.get("SIS_ACCESS_TOKEN"):
        errors.append("SIS_ACCESS_TOKEN is required in production.")

    mapping_path = os.environ.get("SIS_MAPPING_PATH")
    if mapping_path and not os.path.isfile(mapping_path):
        errors.append(f"SIS_MAPPING_PATH points to a missing file: {mapping_path}")

    match_field = os.environ.get("SIS_STUDENT_MATCH_FIELD", "student_number").strip().lower()
    if match_field not in STUDENT_MATCH_FIELDS:
        errors.append(f"SIS_STUDENT_MATCH_FIELD must be one of {', '.join(STUDENT_MATCH_FIELDS)}.")

    return not errors, errors


def validate_and_exit(flask_env: str = None) -> None:
    """Exit with status 1 and a list of problems when validation fails."""
    is_valid, errors = validate_environment(flask_env)
    if is_valid:
        return

    lines = ["SIS sync configuration is invalid:"]
    lines.extend(f"  {number}. {error}" for number, error in enumerate(errors, 1))
    lines.append("Set these in the environment or the .env file, then restart.")
    print("\n".join(lines), file=sys.stderr)
    sys.exit(1)
