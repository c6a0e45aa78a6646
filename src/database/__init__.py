"""
Database package for the segmentation engine
"""
from .connection import configure, get_db_session, get_scoped_session, init_db
from .models import ActivityLog, AuditLog, Base, ConstituentRecord, Segment, SegmentRule, Task
from .stores import SqlActivityLog, SqlAuditLog, SqlRecordStore, SqlTaskStore

__all__ = [
    'Base',
    'ConstituentRecord',
    'Segment',
    'SegmentRule',
    'Task',
    'ActivityLog',
    'AuditLog',
    'SqlRecordStore',
    'SqlTaskStore',
    'SqlActivityLog',
    'SqlAuditLog',
    'configure',
    'init_db',
    'get_db_session',
    'get_scoped_session',
]
