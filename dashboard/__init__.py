"""
Dashboard Package.

Operator-facing HTTP API for the export pipeline.

Modules:
- main: FastAPI application (create_app)
- routers/: exports and analytics endpoints
- schemas: response models
"""
