"""
Scripts Package.

Operational scripts for the analytics export.

Scripts:
- verify_gcp: Check the service account configuration
- setup_gcp: Create the archive bucket, dataset and tables
"""

# Scripts are meant to be run directly, not imported
