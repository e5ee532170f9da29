"""
Dashboard API dependencies.
"""
from fastapi import HTTPException, Request

from orchestrator.runtime import ExportRuntime


def get_runtime(request: Request) -> ExportRuntime:
    """The process runtime, attached to the app at startup."""
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        raise HTTPException(status_code=503, detail="Export runtime not configured.")
    return runtime
