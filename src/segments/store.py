"""
Persistence of named segments
"""
import logging
from typing import List

from sqlalchemy.orm import Session

from src.database.models import Segment, SegmentRule
from src.errors import SegmentNotFoundError, ValidationError
from src.segments.schema import Rule, SavedSegment, SegmentCriteria

logger = logging.getLogger(__name__)


class SegmentStore:
    """Store for saved segments. Entries are only written by an explicit save."""

    def __init__(self, db: Session):
        self.db = db

    def save(self, name: str, criteria: SegmentCriteria, description: str = None) -> SavedSegment:
        """Save criteria under a name. Duplicate names create separate entries."""
        if not name or not name.strip():
            raise ValidationError("Segment name must not be empty")

        segment = Segment(name=name.strip(), description=description, match=criteria.match)
        for position, rule in enumerate(criteria.rules):
            segment.rules.append(SegmentRule(
                position=position,
                field=rule.field,
                operator=rule.operator.value,
                value=rule.value,
            ))

        self.db.add(segment)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Saved segment {segment.id} '{segment.name}' with {len(criteria.rules)} rules")
        return self._to_saved_segment(segment)

    def list(self) -> List[SavedSegment]:
        segments = self.db.query(Segment).order_by(Segment.id).all()
        return [self._to_saved_segment(segment) for segment in segments]

    def get(self, segment_id: int) -> SavedSegment:
        return self._to_saved_segment(self._get_segment(segment_id))

    def load(self, segment_id: int) -> SegmentCriteria:
        """Load the criteria of a saved segment"""
        return self._to_criteria(self._get_segment(segment_id))

    def delete(self, segment_id: int) -> None:
        segment = self._get_segment(segment_id)
        self.db.delete(segment)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(f"Deleted segment {segment_id}")

    def _get_segment(self, segment_id: int) -> Segment:
        segment = self.db.query(Segment).filter(Segment.id == segment_id).first()
        if segment is None:
            raise SegmentNotFoundError(f"No saved segment with id {segment_id}")
        return segment

    def _to_criteria(self, segment: Segment) -> SegmentCriteria:
        return SegmentCriteria(
            match=segment.match,
            rules=[Rule(field=r.field, operator=r.operator, value=r.value) for r in segment.rules],
        )

    def _to_saved_segment(self, segment: Segment) -> SavedSegment:
        return SavedSegment(
            id=segment.id,
            name=segment.name,
            description=segment.description,
            criteria=self._to_criteria(segment),
        )
