"""
Database models for the constituent segmentation engine
"""
from datetime import datetime
import uuid

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def new_id() -> str:
    return str(uuid.uuid4())


class ConstituentRecord(Base):
    """A record in a named collection (members, employees), stored as a field mapping"""
    __tablename__ = 'records'

    pk = Column(Integer, primary_key=True)  # Insertion order
    id = Column(String(36), unique=True, nullable=False, default=new_id)
    collection = Column(String(50), nullable=False, index=True)  # member, employee
    data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self) -> dict:
        return {**(self.data or {}), 'id': self.id}


class Segment(Base):
    """Saved segment: a named, reusable filter definition"""
    __tablename__ = 'segments'

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)  # Not unique, duplicates disambiguated by id
    description = Column(Text)
    match = Column(String(10), nullable=False)  # 'all' or 'any'
    created_at = Column(DateTime, default=datetime.utcnow)

    rules = relationship(
        'SegmentRule',
        back_populates='segment',
        cascade='all, delete-orphan',
        order_by='SegmentRule.position',
    )


class SegmentRule(Base):
    """One field/operator/value predicate of a saved segment"""
    __tablename__ = 'segment_rules'

    id = Column(Integer, primary_key=True)
    segment_id = Column(Integer, ForeignKey('segments.id'), nullable=False)
    position = Column(Integer, nullable=False)
    field = Column(String(50), nullable=False)
    operator = Column(String(50), nullable=False)
    value = Column(String(255), nullable=False, default='')

    segment = relationship('Segment', back_populates='rules')


class Task(Base):
    """Follow-up task created against a record"""
    __tablename__ = 'tasks'

    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    status = Column(String(50), nullable=False, default='To Do')
    priority = Column(String(20), nullable=False, default='Medium')
    due_date = Column(String(32))  # ISO date as entered
    assignee_id = Column(String(36))
    related_record_id = Column(String(36), index=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class ActivityLog(Base):
    """Per-record activity, e.g. contact made by a bulk email"""
    __tablename__ = 'activity_log'

    id = Column(Integer, primary_key=True)
    record_id = Column(String(36), nullable=False, index=True)
    action = Column(String(50), nullable=False)
    record_name = Column(String(255))
    performed_by = Column(String(255))
    details = Column(Text)
    timestamp = Column(DateTime, default=datetime.utcnow)


class AuditLog(Base):
    """Audit trail of bulk operations"""
    __tablename__ = 'audit_log'

    id = Column(Integer, primary_key=True)
    action = Column(String(50), nullable=False)
    entity_type = Column(String(50))
    details = Column(Text)
    performed_by = Column(String(255))
    timestamp = Column(DateTime, default=datetime.utcnow)
