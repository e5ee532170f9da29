"""
Data Products Package.

Turns raw health records into anonymized analytics data.

Modules:
- schemas/: Warehouse table schemas
- models: Export results and manifest
- anonymization: De-identification of records
- archive: Daily JSON archive
- warehouse: Warehouse table setup and loading
- export_service: The export routine
- analytics: Aggregate trend queries
"""
