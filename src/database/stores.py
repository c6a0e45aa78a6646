"""
SQLAlchemy-backed collaborators for the bulk-action engine
"""
from datetime import datetime
import logging
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy.orm import Session

from src.errors import PerRecordFailure

from .models import ActivityLog, AuditLog, ConstituentRecord, Task

logger = logging.getLogger(__name__)


class SqlRecordStore:
    """Record source over one collection of the records table"""

    def __init__(self, db: Session, collection: str = 'member'):
        self.db = db
        self.collection = collection

    def list(self, filter: Optional[Mapping[str, Any]] = None) -> List[Dict[str, Any]]:
        """List records of the collection, in insertion order"""
        rows = (
            self.db.query(ConstituentRecord)
            .filter(ConstituentRecord.collection == self.collection)
            .order_by(ConstituentRecord.pk)
            .all()
        )
        records = [row.to_dict() for row in rows]
        if filter:
            records = [r for r in records if all(r.get(k) == v for k, v in filter.items())]
        return records

    def get(self, record_id: str) -> Optional[Dict[str, Any]]:
        row = self._get_row(record_id)
        return row.to_dict() if row else None

    def create(self, fields: Mapping[str, Any]) -> Dict[str, Any]:
        """Create a record; an 'id' in fields is kept as the record ID"""
        data = dict(fields)
        record_id = data.pop('id', None)
        row = ConstituentRecord(collection=self.collection, data=data)
        if record_id:
            row.id = str(record_id)
        self.db.add(row)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return row.to_dict()

    def update(self, record_id: str, fields: Mapping[str, Any]) -> Dict[str, Any]:
        """Merge fields into a record and commit"""
        row = self._get_row(record_id)
        if row is None:
            raise PerRecordFailure(f"Record not found: {record_id}")

        # Reassign so the JSON column is flagged as modified
        row.data = {**(row.data or {}), **{k: v for k, v in fields.items() if k != 'id'}}
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.debug(f"Updated record {record_id}: {sorted(fields)}")
        return row.to_dict()

    def _get_row(self, record_id: str) -> Optional[ConstituentRecord]:
        return (
            self.db.query(ConstituentRecord)
            .filter(ConstituentRecord.id == record_id, ConstituentRecord.collection == self.collection)
            .first()
        )


class SqlTaskStore:
    """Task store over the tasks table"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, payload: Mapping[str, Any]) -> str:
        task = Task(
            title=payload['title'],
            description=payload.get('description'),
            status=payload.get('status', 'To Do'),
            priority=payload.get('priority', 'Medium'),
            due_date=payload.get('due_date'),
            assignee_id=payload.get('assignee_id'),
            related_record_id=payload.get('related_record_id'),
        )
        self.db.add(task)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return task.id


class SqlActivityLog:
    """Activity log over the activity_log table"""

    def __init__(self, db: Session, performed_by: str = 'System'):
        self.db = db
        self.performed_by = performed_by

    def record(self, record_id: str, action: str, details: str, record_name: str = None) -> None:
        self.db.add(ActivityLog(
            record_id=record_id,
            action=action,
            record_name=record_name,
            performed_by=self.performed_by,
            details=details,
            timestamp=datetime.utcnow(),
        ))
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise


class SqlAuditLog:
    """Audit log over the audit_log table"""

    def __init__(self, db: Session, performed_by: str = 'System'):
        self.db = db
        self.performed_by = performed_by

    def record(self, action: str, details: str, entity_type: str = None) -> None:
        self.db.add(AuditLog(
            action=action,
            entity_type=entity_type,
            details=details,
            performed_by=self.performed_by,
            timestamp=datetime.utcnow(),
        ))
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
