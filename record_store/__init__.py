"""
Record Store Package.

Read access to the primary store of logged health records.

Modules:
- models: categories, export window, record batch
- base: RecordStore interface
- firestore: Firestore implementation
- memory: in-memory implementation
"""

from .models import ExportWindow, HealthCategory, RecordBatch
from .base import RecordStore
from .memory import InMemoryRecordStore
