"""
Segment rules, field catalog, evaluation and persistence
"""
from .catalog import DEFAULT_CATALOG, FieldCatalog
from .engine import SegmentEngine
from .schema import Domain, FieldDescriptor, Operator, Rule, SavedSegment, SegmentCriteria, parse_criteria
from .store import SegmentStore

__all__ = [
    'DEFAULT_CATALOG',
    'Domain',
    'FieldCatalog',
    'FieldDescriptor',
    'Operator',
    'Rule',
    'SavedSegment',
    'SegmentCriteria',
    'SegmentEngine',
    'SegmentStore',
    'parse_criteria',
]
