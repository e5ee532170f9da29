"""
Storage - Vendor Error Translation.

Google client libraries raise google.api_core exceptions. The pipeline
only reasons about its own hierarchy, so every backend translates at
the call site.
"""

from google.api_core import exceptions as gexc

from core.exceptions import (
    ExportException,
    SchemaConflictError,
    StoreError,
    TransientIOError,
)


TRANSIENT_ERRORS = (
    gexc.TooManyRequests,
    gexc.InternalServerError,
    gexc.BadGateway,
    gexc.ServiceUnavailable,
    gexc.GatewayTimeout,
    gexc.DeadlineExceeded,
    gexc.RetryError,
    ConnectionError,
    TimeoutError,
)


def translate_error(
    error: BaseException,
    service: str,
    operation: str,
    resource: str = "",
) -> ExportException:
    """Map a client-library exception onto the export exception hierarchy."""
    if isinstance(error, ExportException):
        return error

    if isinstance(error, gexc.Conflict):
        return SchemaConflictError(resource or operation, cause=error)

    if isinstance(error, TRANSIENT_ERRORS):
        return TransientIOError(
            f"{service} {operation} failed: {error}",
            service=service,
            operation=operation,
            cause=error,
        )

    return StoreError(
        f"{service} {operation} failed: {error}",
        service=service,
        operation=operation,
        cause=error,
    )
