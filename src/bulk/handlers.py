"""
Action handlers applying one bulk action to one record
"""
import re
from typing import Any, Dict, Iterable, Mapping, Optional

import structlog

from src.bulk.interfaces import ActivityLog, DeliveryService, RecordSource, TaskStore
from src.bulk.schema import (
    ActionConfig,
    ActionType,
    ChangeRoleConfig,
    CreateTaskConfig,
    NotifyConfig,
    UpdateFieldConfig,
)
from src.errors import CoercionFailure, PerRecordFailure, UnknownFieldError, ValidationError
from src.segments.catalog import DEFAULT_CATALOG, FieldCatalog
from src.segments.engine import parse_date, parse_number
from src.segments.schema import Domain, FieldDescriptor

logger = structlog.get_logger()

Record = Mapping[str, Any]

# Only well-formed {{field_name}} placeholders are substituted; anything else stays literal
PLACEHOLDER = re.compile(r'\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}')

PLACEHOLDER_DEFAULTS = {'first_name': 'Member'}


def record_name(record: Record) -> str:
    name = f"{record.get('first_name') or ''} {record.get('last_name') or ''}".strip()
    return name or str(record.get('id', ''))


def render_template(template: str, record: Record) -> str:
    """Replace {{field}} placeholders with values from the record"""
    def substitute(match: re.Match) -> str:
        key = match.group(1)
        value = record.get(key)
        if value is None or value == '':
            return PLACEHOLDER_DEFAULTS.get(key, '')
        return str(value)

    return PLACEHOLDER.sub(substitute, template)


class ActionHandler:
    """Base class: validate a shared config once, then apply it per record"""

    action_type: ActionType = None

    def validate(self, config: ActionConfig) -> None:
        """Reject a config for the whole batch before any record is touched"""

    def apply(self, record: Record, config: ActionConfig) -> Any:
        raise NotImplementedError


class NotifyHandler(ActionHandler):
    """Send a personalized email to each record"""

    action_type = ActionType.NOTIFY

    def __init__(self, delivery: DeliveryService, activity_log: Optional[ActivityLog] = None):
        self.delivery = delivery
        self.activity_log = activity_log

    def apply(self, record: Record, config: NotifyConfig) -> Any:
        recipient = record.get('email_primary')
        if not recipient:
            raise PerRecordFailure(f"No email address for {record_name(record)}")

        subject = render_template(config.subject, record)
        body = render_template(config.body, record)
        result = self.delivery.send(recipient, subject, body)
        if result is False:
            raise PerRecordFailure(f"Delivery to {recipient} failed")

        if self.activity_log is not None:
            try:
                self.activity_log.record(
                    record['id'],
                    'contact_log',
                    f"Bulk Email Sent: {config.subject}",
                    record_name=record_name(record),
                )
            except Exception as e:
                logger.warning("Failed to log contact", record_id=record['id'], error=str(e))
        return result


class CreateTaskHandler(ActionHandler):
    """Create a follow-up task linked to each record"""

    action_type = ActionType.CREATE_TASK

    def __init__(self, task_store: TaskStore, record_source: Optional[RecordSource] = None, link_base: str = '/admin/members'):
        self.task_store = task_store
        self.record_source = record_source
        self.link_base = link_base

    def validate(self, config: CreateTaskConfig) -> None:
        if config.update_followup and self.record_source is None:
            raise ValidationError("Follow-up update requested but no record source is configured")

    def build_payload(self, record: Record, config: CreateTaskConfig) -> Dict[str, Any]:
        description = config.description or ''
        link = f"Record Link: {self.link_base}?id={record['id']}"
        return {
            'title': f"{config.title} - {record_name(record)}",
            'description': f"{description}\n\n{link}" if description else link,
            'status': 'To Do',
            'priority': config.priority,
            'due_date': config.due_date,
            'assignee_id': config.assignee_id,
            'related_record_id': record['id'],
        }

    def apply(self, record: Record, config: CreateTaskConfig) -> str:
        task_id = self.task_store.create(self.build_payload(record, config))

        if config.update_followup:
            # Best effort: the task exists, so the item still counts as a success
            try:
                self.record_source.update(record['id'], {
                    'follow_up_status': 'pending',
                    'follow_up_date': config.due_date,
                    'follow_up_notes': f"Bulk Task: {config.title}",
                })
            except Exception as e:
                logger.warning("Follow-up update failed", record_id=record['id'], task_id=task_id, error=str(e))
        return task_id


class ChangeRoleHandler(ActionHandler):
    """Overwrite the employment type of each record"""

    action_type = ActionType.CHANGE_ROLE
    field_key = 'employment_type'

    def __init__(self, record_source: RecordSource, catalog: FieldCatalog = DEFAULT_CATALOG):
        self.record_source = record_source
        self.catalog = catalog

    def validate(self, config: ChangeRoleConfig) -> None:
        try:
            allowed = self.catalog.describe(self.field_key).enum_values
        except UnknownFieldError:
            raise ValidationError(f"Field {self.field_key} is not in the catalog") from None
        if allowed is not None and config.employment_type not in allowed:
            raise ValidationError(
                f"Invalid employment type {config.employment_type!r}; expected one of {', '.join(allowed)}"
            )

    def apply(self, record: Record, config: ChangeRoleConfig) -> Any:
        return self.record_source.update(record['id'], {self.field_key: config.employment_type})


class SetActiveHandler(ActionHandler):
    """Flip the status of each record between active and inactive"""

    field_key = 'status'

    def __init__(self, record_source: RecordSource, active: bool):
        self.record_source = record_source
        self.active = active
        self.action_type = ActionType.REACTIVATE if active else ActionType.DEACTIVATE

    def apply(self, record: Record, config: Any = None) -> Any:
        return self.record_source.update(record['id'], {self.field_key: 'active' if self.active else 'inactive'})


class UpdateFieldHandler(ActionHandler):
    """Write the same field values to each record.

    Only catalog fields may be written, optionally narrowed by allowed_fields.
    Values are checked against the field's domain once, before the batch.
    """

    action_type = ActionType.UPDATE_FIELD

    def __init__(self, record_source: RecordSource, catalog: FieldCatalog = DEFAULT_CATALOG,
                 allowed_fields: Optional[Iterable[str]] = None):
        self.record_source = record_source
        self.catalog = catalog
        self.allowed_fields = set(allowed_fields) if allowed_fields is not None else None

    def validate(self, config: UpdateFieldConfig) -> None:
        for key, value in config.updates.items():
            if self.allowed_fields is not None and key not in self.allowed_fields:
                raise ValidationError(f"Field {key} cannot be updated in bulk")
            try:
                descriptor = self.catalog.describe(key)
            except UnknownFieldError as e:
                raise ValidationError(str(e)) from None
            if value is not None:
                self._check_value(descriptor, value)

    def _check_value(self, descriptor: FieldDescriptor, value: Any) -> None:
        try:
            if descriptor.domain == Domain.NUMBER:
                parse_number(value)
            elif descriptor.domain == Domain.DATE:
                parse_date(value)
        except CoercionFailure as e:
            raise ValidationError(f"Invalid value for {descriptor.key}: {e}") from None

        if descriptor.enum_values is not None and value not in descriptor.enum_values:
            raise ValidationError(
                f"Invalid value {value!r} for {descriptor.key}; expected one of {', '.join(descriptor.enum_values)}"
            )

    def apply(self, record: Record, config: UpdateFieldConfig) -> Any:
        return self.record_source.update(record['id'], dict(config.updates))


def default_handlers(
    record_source: RecordSource,
    delivery: Optional[DeliveryService] = None,
    task_store: Optional[TaskStore] = None,
    activity_log: Optional[ActivityLog] = None,
    catalog: FieldCatalog = DEFAULT_CATALOG,
) -> Dict[str, ActionHandler]:
    """Build the handler registry; actions whose collaborator is missing are left out"""
    handlers = [
        ChangeRoleHandler(record_source, catalog),
        SetActiveHandler(record_source, active=False),
        SetActiveHandler(record_source, active=True),
        UpdateFieldHandler(record_source, catalog),
    ]
    if delivery is not None:
        handlers.append(NotifyHandler(delivery, activity_log))
    if task_store is not None:
        handlers.append(CreateTaskHandler(task_store, record_source))
    return {handler.action_type.value: handler for handler in handlers}
