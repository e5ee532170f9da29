"""
Core Module Package.

This package contains the infrastructure components
that all other modules depend on.

Components:
- clock: Unified time abstraction
- config: Environment configuration
- exceptions: Custom exception hierarchy
- retry: Bounded retry for I/O boundaries
- log_setup: Logging configuration
- constants: Pipeline-wide constants
"""

from .clock import ClockProtocol, SystemClock, MockClock, ClockFactory
from .config import ExportConfig
from .exceptions import ExportException
