"""
Snapshot persistence for the timeline store.
"""

from .core import DataCore, TimelineContext
from .validate import check_schema_version, snapshot_schema

__all__ = [
    'DataCore',
    'TimelineContext',
    'check_schema_version',
    'snapshot_schema',
]
