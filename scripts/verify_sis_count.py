#!/usr/bin/env python3
"""
Verify that paginated SIS fetches return as many records as the count endpoint reports.

This script:
1. Loads the configured SIS mapping
2. Asks the count endpoint how many records each named query holds
3. Fetches every page of each query
4. Compares the fetched totals with the counts

Usage:
    Set environment variables: SIS_BASE_URL, SIS_ACCESS_TOKEN
    python scripts/verify_sis_count.py [entity ...]
"""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Load environment variables from .env file
from dotenv import load_dotenv

load_dotenv()

from config import Config  # noqa: E402
from sis_sync.adapters.powerschool import (  # noqa: E402
    SisAdapterConfigError,
    check_sis_adapter_readiness,
    create_query_pager,
)
from sis_sync.errors import SisSyncError  # noqa: E402
from sis_sync.mapping import load_mapping  # noqa: E402


def _config_from_class(config_cls):
    return {key: getattr(config_cls, key) for key in dir(config_cls) if key.isupper()}


def main(argv=None):
    """Main verification function."""

    print("=" * 80)
    print("SIS Record Count Verification")
    print("=" * 80)
    print()

    config = _config_from_class(Config)
    readiness = check_sis_adapter_readiness(config)
    if readiness.status != "ready":
        print(f"ERROR: SIS adapter not ready ({readiness.status}):")
        for message in readiness.messages():
            print(f"   - {message}")
        return 1

    mapping = load_mapping(config["SIS_MAPPING_PATH"])
    entities = list(argv or mapping.entities)
    unknown = [entity for entity in entities if entity not in mapping.entities]
    if unknown:
        print(f"ERROR: Unknown entities: {', '.join(unknown)}")
        return 1

    try:
        pager = create_query_pager(config)
    except SisAdapterConfigError as exc:
        print(f"ERROR: {exc}")
        return 1

    mismatches = 0
    try:
        for entity in entities:
            query = mapping.spec_for(entity).query
            print(f"{entity} ({query})")
            expected = pager.count(query)
            records = pager.fetch_all(query)
            marker = "OK" if len(records) == expected else "MISMATCH"
            if marker != "OK":
                mismatches += 1
            print(f"   counted={expected:,} fetched={len(records):,} [{marker}]")
    except SisSyncError as exc:
        print(f"ERROR: {exc}")
        return 1
    finally:
        pager.client.session.close()

    print()
    print("=" * 80)
    if mismatches:
        print(f"{mismatches} queries returned a different number of records than counted.")
        print("The SIS data may have changed between the count and the page requests.")
        return 1
    print("SUCCESS: every fetched total matches its count.")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
