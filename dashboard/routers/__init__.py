"""
Operations API Routers.
"""
from . import analytics, exports

__all__ = ["analytics", "exports"]
