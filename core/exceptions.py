"""
Core Module - Exceptions.

============================================================
EXCEPTION HIERARCHY
============================================================
ExportException (base)
├── ConfigurationError         startup only, never mid-run
│   ├── MissingConfigError
│   └── InvalidConfigError
├── ServiceError               Firestore / Cloud Storage / BigQuery
│   ├── TransientIOError       retried by core.retry
│   └── StoreError             fails the step immediately
├── SchemaConflictError        dataset or table already exists
├── MalformedRecordError       record dropped, run continues
├── CategoryLoadError          one warehouse table failed
├── InvalidWindowError
└── ExportInProgressError      overlapping run rejected

Every exception serializes with to_dict() for log lines.

============================================================
"""

from enum import Enum
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class Severity(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorClassification(Enum):
    RECOVERABLE = "recoverable"          # handled inside the run
    TRANSIENT = "transient"              # retry may succeed
    NON_RECOVERABLE = "non_recoverable"  # operator action needed


# ============================================================
# BASE
# ============================================================

class ExportException(Exception):
    """Base of every error raised by the export pipeline."""

    default_severity: Severity = Severity.MEDIUM
    default_classification: ErrorClassification = ErrorClassification.RECOVERABLE

    def __init__(
        self,
        message: str,
        severity: Optional[Severity] = None,
        context: Optional[Dict[str, Any]] = None,
        classification: Optional[ErrorClassification] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.severity = severity or self.default_severity
        self.classification = classification or self.default_classification
        self.context = context or {}
        self.cause = cause
        self.raised_at = datetime.now(timezone.utc)

        if cause is not None:
            self.context.setdefault("cause", f"{type(cause).__name__}: {cause}")

    @property
    def is_transient(self) -> bool:
        return self.classification is ErrorClassification.TRANSIENT

    @property
    def is_fatal(self) -> bool:
        """The process should not keep running."""
        return (
            self.severity is Severity.CRITICAL
            and self.classification is ErrorClassification.NON_RECOVERABLE
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": type(self).__name__,
            "message": self.message,
            "severity": self.severity.value,
            "classification": self.classification.value,
            "context": self.context,
            "raised_at": self.raised_at.isoformat(),
        }


# ============================================================
# CONFIGURATION
# ============================================================

class ConfigurationError(ExportException):
    default_severity = Severity.CRITICAL
    default_classification = ErrorClassification.NON_RECOVERABLE

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", {})
        if config_key:
            context["config_key"] = config_key
        super().__init__(message, context=context, **kwargs)


class MissingConfigError(ConfigurationError):
    def __init__(self, key: str, source: str = "environment"):
        super().__init__(
            f"Missing required configuration: {key}",
            config_key=key,
            context={"source": source},
        )


class InvalidConfigError(ConfigurationError):
    def __init__(self, key: str, reason: str, **kwargs):
        super().__init__(
            f"Invalid configuration for {key}: {reason}",
            config_key=key,
            context={"reason": reason},
            **kwargs,
        )


# ============================================================
# CLOUD SERVICES
# ============================================================

class ServiceError(ExportException):
    """A call to a cloud service failed."""

    default_severity = Severity.HIGH

    def __init__(
        self,
        message: str,
        service: Optional[str] = None,
        operation: Optional[str] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})
        if service:
            context["service"] = service
        if operation:
            context["operation"] = operation
        super().__init__(message, context=context, **kwargs)


class TransientIOError(ServiceError):
    """Timeout, throttling or 5xx; worth retrying."""

    default_classification = ErrorClassification.TRANSIENT


class StoreError(ServiceError):
    """Permission, not-found or bad-request; retrying will not help."""

    default_classification = ErrorClassification.NON_RECOVERABLE


class SchemaConflictError(ExportException):
    default_severity = Severity.LOW

    def __init__(self, resource: str, **kwargs):
        super().__init__(
            f"Resource already exists: {resource}",
            context={"resource": resource},
            **kwargs,
        )
        self.resource = resource


# ============================================================
# PIPELINE
# ============================================================

class MalformedRecordError(ExportException):
    """Record cannot be anonymized (no subject identifier)."""

    default_severity = Severity.LOW

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", {})
        if field:
            context["field"] = field
        super().__init__(message, context=context, **kwargs)


class CategoryLoadError(ExportException):
    default_severity = Severity.HIGH

    def __init__(self, table_name: str, reason: str, **kwargs):
        super().__init__(
            f"Failed to load {table_name}: {reason}",
            context={"table_name": table_name},
            **kwargs,
        )
        self.table_name = table_name
        self.reason = reason


class InvalidWindowError(ExportException):
    default_classification = ErrorClassification.NON_RECOVERABLE


class ExportInProgressError(ExportException):
    def __init__(self, requested: str, running: str):
        super().__init__(
            f"Export for {requested} overlaps running export {running}",
            context={"requested": requested, "running": running},
        )


__all__ = [
    "Severity",
    "ErrorClassification",
    "ExportException",
    "ConfigurationError",
    "MissingConfigError",
    "InvalidConfigError",
    "ServiceError",
    "TransientIOError",
    "StoreError",
    "SchemaConflictError",
    "MalformedRecordError",
    "CategoryLoadError",
    "InvalidWindowError",
    "ExportInProgressError",
]
