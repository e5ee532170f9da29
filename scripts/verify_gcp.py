"""
GCP Configuration Verification Script.

============================================================
VERIFY SERVICE ACCOUNT CONFIGURATION
============================================================

This script:
1. Checks GOOGLE_APPLICATION_CREDENTIALS_JSON is set
2. Checks it parses as JSON
3. Checks every required service account field is present
4. Prints the resolved configuration

No network calls are made.

EXIT CODES:
- 0: Configuration complete
- 1: Missing, malformed or incomplete credentials

============================================================
"""

import json
import os
import sys
from typing import Mapping, Optional

from dotenv import load_dotenv

from core.config import CREDENTIALS_ENV, missing_service_account_fields
from core.constants import DEFAULT_BUCKET, DEFAULT_DATASET, DEFAULT_LOCATION


def verify(env: Optional[Mapping[str, str]] = None) -> int:
    """Run all checks, print the report, return the exit code."""
    if env is None:
        load_dotenv()
        env = os.environ

    print("\n" + "=" * 70)
    print("VERIFYING GCP CONFIGURATION")
    print("=" * 70)

    # Step 1: Variable present
    print(f"\n[1/3] Checking {CREDENTIALS_ENV}...")
    raw = env.get(CREDENTIALS_ENV)
    if not raw:
        print(f"  ✗ {CREDENTIALS_ENV} environment variable is missing")
        print("\n  Solution:")
        print("    1. Create a service account in Google Cloud Console")
        print("    2. Download the JSON key file")
        print("    3. Copy the entire JSON content as a single line string")
        print(f"    4. Add it to your .env file as {CREDENTIALS_ENV}")
        return 1
    print("  ✓ Variable is set")

    # Step 2: Valid JSON
    print("\n[2/3] Parsing service account JSON...")
    try:
        info = json.loads(raw)
    except json.JSONDecodeError as e:
        print(f"  ✗ Invalid JSON format in {CREDENTIALS_ENV}: {e.msg}")
        print("\n  Solution:")
        print("    1. Ensure the JSON is properly escaped")
        print("    2. Remove any line breaks or extra spaces")
        return 1
    if not isinstance(info, dict):
        print("  ✗ Service account JSON must be an object")
        return 1
    print("  ✓ Service account JSON format is valid")

    # Step 3: Required fields
    print("\n[3/3] Checking required fields...")
    missing = missing_service_account_fields(info)
    if missing:
        print("  ✗ Missing required fields in service account JSON:")
        for name in missing:
            print(f"      - {name}")
        print("\n  Solution: download a fresh, complete key from Google Cloud Console")
        return 1
    print("  ✓ All required fields present")

    print("\n" + "-" * 70)
    print("CONFIGURATION SUMMARY")
    print("-" * 70)
    print(f"  Project ID             : {info['project_id']}")
    print(f"  Service Account Email  : {info['client_email']}")
    print(f"  Service Account Type   : {info['type']}")
    print(f"  Cloud Storage Bucket   : {env.get('GCS_ANALYTICS_BUCKET') or DEFAULT_BUCKET}")
    print(f"  BigQuery Dataset       : {env.get('BIGQUERY_DATASET_ID') or DEFAULT_DATASET}")
    print(f"  Location               : {env.get('GCP_LOCATION') or DEFAULT_LOCATION}")

    print("\n  Required IAM roles for the service account:")
    print("    - Cloud Datastore User (Firestore)")
    print("    - Storage Admin (Cloud Storage)")
    print("    - BigQuery Data Editor (BigQuery)")

    print("\n" + "=" * 70)
    print("✓ GCP CONFIGURATION VERIFICATION PASSED")
    print("  Next: python -m scripts.setup_gcp")
    print("=" * 70)
    return 0


def main() -> int:
    return verify()


if __name__ == "__main__":
    sys.exit(main())
