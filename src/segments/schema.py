"""
Schemas for segment rules and criteria
"""
from enum import Enum
from typing import Any, List, Literal, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from src.errors import ValidationError


class Domain(str, Enum):
    """Value domain of a filterable field"""
    TEXT = 'text'
    NUMBER = 'number'
    DATE = 'date'
    ENUM = 'enum'


class Operator(str, Enum):
    """Comparison operators usable in a rule"""
    # text / enum
    CONTAINS = 'contains'
    EQUALS = 'equals'
    NOT_EQUALS = 'not_equals'
    STARTS_WITH = 'starts_with'
    # number
    GT = 'gt'
    LT = 'lt'
    GTE = 'gte'
    LTE = 'lte'
    # date
    BEFORE = 'before'
    AFTER = 'after'
    ON = 'on'
    DAYS_AGO_GT = 'days_ago_gt'
    DAYS_AGO_LT = 'days_ago_lt'
    IN_NEXT_DAYS = 'in_next_days'


TEXT_OPERATORS = (Operator.CONTAINS, Operator.EQUALS, Operator.NOT_EQUALS, Operator.STARTS_WITH)
NUMBER_OPERATORS = (Operator.EQUALS, Operator.GT, Operator.LT, Operator.GTE, Operator.LTE)
DATE_OPERATORS = (
    Operator.BEFORE,
    Operator.AFTER,
    Operator.ON,
    Operator.DAYS_AGO_GT,
    Operator.DAYS_AGO_LT,
    Operator.IN_NEXT_DAYS,
)
ENUM_OPERATORS = (Operator.EQUALS, Operator.NOT_EQUALS)

DOMAIN_OPERATORS = {
    Domain.TEXT: TEXT_OPERATORS,
    Domain.NUMBER: NUMBER_OPERATORS,
    Domain.DATE: DATE_OPERATORS,
    Domain.ENUM: ENUM_OPERATORS,
}


class FieldDescriptor(BaseModel):
    """Schema for a filterable field"""
    model_config = ConfigDict(frozen=True)

    key: str
    domain: Domain
    label: Optional[str] = None
    allowed_operators: Tuple[Operator, ...] = ()
    enum_values: Optional[Tuple[str, ...]] = None

    def allows(self, operator: Operator) -> bool:
        return operator in self.allowed_operators


class Rule(BaseModel):
    """Schema for a single field/operator/value predicate"""
    field: str
    operator: Operator
    value: str = ''  # Always text, coerced per domain at evaluation time


class SegmentCriteria(BaseModel):
    """Schema for a list of rules combined with all/any semantics"""
    match: Literal['all', 'any'] = 'all'
    rules: List[Rule] = Field(default_factory=list)


class SavedSegment(BaseModel):
    """Schema for a persisted, named segment"""
    id: int
    name: str
    description: Optional[str] = None
    criteria: SegmentCriteria


def parse_criteria(payload: Mapping[str, Any]) -> SegmentCriteria:
    """Validate a {"match", "rules"} mapping into SegmentCriteria"""
    try:
        return SegmentCriteria.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid segment criteria: {e}") from e
