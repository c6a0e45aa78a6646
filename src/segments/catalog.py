"""
Registry of filterable constituent fields
"""
from typing import Dict, Iterable, List

from src.errors import UnknownFieldError
from src.segments.schema import DOMAIN_OPERATORS, Domain, FieldDescriptor


def field(key: str, domain: Domain, label: str = None, enum_values: Iterable[str] = None) -> FieldDescriptor:
    """Build a descriptor carrying the operator set of its domain"""
    return FieldDescriptor(
        key=key,
        domain=domain,
        label=label or key.replace('_', ' ').title(),
        allowed_operators=DOMAIN_OPERATORS[domain],
        enum_values=tuple(enum_values) if enum_values is not None else None,
    )


FOLLOW_UP_STATUSES = ('pending', 'completed', 'cancelled')
EMPLOYMENT_TYPES = ('Administrator', 'Paid Employee', 'Volunteer')
RECORD_STATUSES = ('active', 'inactive')

CONSTITUENT_FIELDS = [
    field('first_name', Domain.TEXT),
    field('last_name', Domain.TEXT),
    field('email_primary', Domain.TEXT, 'Email'),
    field('city', Domain.TEXT),
    field('state', Domain.TEXT),
    field('donation', Domain.NUMBER),
    field('last_donation_date', Domain.DATE),
    field('last_contact_date', Domain.DATE),
    field('follow_up_date', Domain.DATE, 'Follow-up Date'),
    field('follow_up_status', Domain.ENUM, 'Follow-up Status', FOLLOW_UP_STATUSES),
    field('employment_type', Domain.ENUM, enum_values=EMPLOYMENT_TYPES),
    field('status', Domain.ENUM, enum_values=RECORD_STATUSES),
]


class FieldCatalog:
    """Immutable mapping from field key to its descriptor"""

    def __init__(self, descriptors: Iterable[FieldDescriptor]):
        fields: Dict[str, FieldDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.key in fields:
                raise ValueError(f"Duplicate field key: {descriptor.key}")
            fields[descriptor.key] = descriptor
        self._fields = fields

    def describe(self, field_key: str) -> FieldDescriptor:
        """Return the descriptor for a field, or raise UnknownFieldError"""
        try:
            return self._fields[field_key]
        except KeyError:
            raise UnknownFieldError(field_key) from None

    def keys(self) -> List[str]:
        return list(self._fields)

    def __contains__(self, field_key: str) -> bool:
        return field_key in self._fields

    def __iter__(self):
        return iter(self._fields.values())

    def __len__(self) -> int:
        return len(self._fields)


DEFAULT_CATALOG = FieldCatalog(CONSTITUENT_FIELDS)
