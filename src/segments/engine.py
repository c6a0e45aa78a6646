"""
Segment engine for matching constituent records against rule criteria
"""
from datetime import date, datetime, timezone
import logging
import re
from typing import Any, Iterable, List, Mapping, Optional, Union

from dateutil.parser import isoparse

from src.errors import CoercionFailure, UnknownFieldError
from src.segments.catalog import DEFAULT_CATALOG, FieldCatalog
from src.segments.schema import Domain, Operator, Rule, SegmentCriteria

logger = logging.getLogger(__name__)

Record = Mapping[str, Any]
Today = Union[date, datetime]

_NON_NUMERIC = re.compile(r'[^0-9.\-]')


def parse_number(value: Any) -> float:
    """Parse a number after stripping everything except digits, '.' and '-'"""
    if value is None or isinstance(value, bool):
        raise CoercionFailure(f"Not a number: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    cleaned = _NON_NUMERIC.sub('', str(value))
    try:
        return float(cleaned)
    except ValueError:
        raise CoercionFailure(f"Not a number: {value!r}") from None


def parse_day_count(value: Any) -> int:
    """Parse the whole number of days used by relative date operators"""
    try:
        return int(parse_number(value))
    except (OverflowError, ValueError):
        raise CoercionFailure(f"Not a day count: {value!r}") from None


def parse_date(value: Any) -> datetime:
    """Parse an ISO-8601 value into a naive UTC datetime"""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        try:
            parsed = isoparse(value.strip())
        except (ValueError, OverflowError, TypeError):
            raise CoercionFailure(f"Not an ISO date: {value!r}") from None
    else:
        raise CoercionFailure(f"Not an ISO date: {value!r}")

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _as_date(today: Today) -> date:
    return today.date() if isinstance(today, datetime) else today


class SegmentEngine:
    """Engine for evaluating segment criteria against records"""

    def __init__(self, catalog: FieldCatalog = DEFAULT_CATALOG):
        self.catalog = catalog

    def validate_criteria(self, criteria: SegmentCriteria) -> None:
        """Raise UnknownFieldError if any rule references an unregistered field"""
        for rule in criteria.rules:
            self.catalog.describe(rule.field)

    def filter_records(self, records: Iterable[Record], criteria: SegmentCriteria, today: Today) -> List[Record]:
        """Return the records matching the criteria, keeping their original order"""
        self.validate_criteria(criteria)
        matched = [record for record in records if self.matches(record, criteria, today)]
        logger.debug(f"Segment matched {len(matched)} records ({criteria.match} of {len(criteria.rules)} rules)")
        return matched

    def matches(self, record: Record, criteria: SegmentCriteria, today: Today) -> bool:
        """Fold the rule results of a record with all/any semantics"""
        if not criteria.rules:
            return True

        results = (self.evaluate(record, rule, today) for rule in criteria.rules)
        if criteria.match == 'all':
            return all(results)
        return any(results)

    def evaluate(self, record: Record, rule: Rule, today: Today) -> bool:
        """Evaluate a single rule against a record. Never raises."""
        try:
            descriptor = self.catalog.describe(rule.field)
        except UnknownFieldError:
            logger.debug(f"Rule references unknown field {rule.field!r}")
            return False

        if not descriptor.allows(rule.operator):
            logger.debug(f"Operator {rule.operator.value} not valid for {descriptor.domain.value} field {rule.field}")
            return False

        value = record.get(rule.field)
        try:
            if descriptor.domain == Domain.TEXT or descriptor.domain == Domain.ENUM:
                result = self._evaluate_text_condition(rule, value)
            elif descriptor.domain == Domain.NUMBER:
                result = self._evaluate_number_condition(rule, value)
            elif descriptor.domain == Domain.DATE:
                result = self._evaluate_date_condition(rule, value, _as_date(today))
            else:
                result = False
        except CoercionFailure as e:
            logger.debug(f"Condition {rule.field} {rule.operator.value} '{rule.value}' not matched: {e}")
            return False

        logger.debug(f"Condition: {rule.field} {rule.operator.value} '{rule.value}' -> {result}")
        return result

    def _evaluate_text_condition(self, rule: Rule, value: Optional[Any]) -> bool:
        """Evaluate a case-insensitive string condition"""
        actual = '' if value is None else str(value).lower()
        expected = (rule.value or '').lower()

        if rule.operator == Operator.CONTAINS:
            return expected in actual
        elif rule.operator == Operator.EQUALS:
            return actual == expected
        elif rule.operator == Operator.NOT_EQUALS:
            return actual != expected
        elif rule.operator == Operator.STARTS_WITH:
            return actual.startswith(expected)
        return False

    def _evaluate_number_condition(self, rule: Rule, value: Optional[Any]) -> bool:
        """Evaluate a numeric condition"""
        actual = parse_number(value)
        expected = parse_number(rule.value)

        if rule.operator == Operator.EQUALS:
            return actual == expected
        elif rule.operator == Operator.GT:
            return actual > expected
        elif rule.operator == Operator.LT:
            return actual < expected
        elif rule.operator == Operator.GTE:
            return actual >= expected
        elif rule.operator == Operator.LTE:
            return actual <= expected
        return False

    def _evaluate_date_condition(self, rule: Rule, value: Optional[Any], today: date) -> bool:
        """Evaluate an absolute or relative date condition"""
        actual = parse_date(value)

        if rule.operator == Operator.BEFORE:
            return actual < parse_date(rule.value)
        elif rule.operator == Operator.AFTER:
            return actual > parse_date(rule.value)
        elif rule.operator == Operator.ON:
            return actual.date() == parse_date(rule.value).date()
        elif rule.operator == Operator.DAYS_AGO_GT:
            return (today - actual.date()).days > parse_day_count(rule.value)
        elif rule.operator == Operator.DAYS_AGO_LT:
            return (today - actual.date()).days < parse_day_count(rule.value)
        elif rule.operator == Operator.IN_NEXT_DAYS:
            days_until = (actual.date() - today).days
            return 0 <= days_until <= parse_day_count(rule.value)
        return False
