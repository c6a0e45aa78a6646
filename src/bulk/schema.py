"""
Schemas for bulk action requests and results
"""
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError

from src.errors import ValidationError


class ActionType(str, Enum):
    NOTIFY = 'notify'
    CREATE_TASK = 'create_task'
    CHANGE_ROLE = 'change_role'
    DEACTIVATE = 'deactivate'
    REACTIVATE = 'reactivate'
    UPDATE_FIELD = 'update_field'


class _Config(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra='forbid')


def _required_text(value: str) -> str:
    if not value or not value.strip():
        raise ValueError('must not be empty')
    return value


class NotifyConfig(_Config):
    """Email subject and body, with {{field}} placeholders"""
    subject: str
    body: str

    @field_validator('subject', 'body')
    @classmethod
    def not_empty(cls, value: str) -> str:
        return _required_text(value)


class CreateTaskConfig(_Config):
    """Follow-up task created once per record"""
    title: str
    description: str = ''
    due_date: Optional[str] = Field(None, alias='dueDate')
    priority: Literal['High', 'Medium', 'Low'] = 'Medium'
    assignee_id: Optional[str] = Field(None, alias='assigneeId')
    update_followup: bool = Field(False, alias='updateFollowup')

    @field_validator('title')
    @classmethod
    def not_empty(cls, value: str) -> str:
        return _required_text(value)


class ChangeRoleConfig(_Config):
    employment_type: str = Field(alias='employmentType')

    @field_validator('employment_type')
    @classmethod
    def not_empty(cls, value: str) -> str:
        return _required_text(value)


class SetActiveConfig(_Config):
    """Activation actions carry no configuration"""


FieldValue = Optional[Union[str, int, float]]


class UpdateFieldConfig(_Config):
    """Field values written to every record; None clears a field"""
    updates: Dict[str, FieldValue]

    @field_validator('updates')
    @classmethod
    def not_empty(cls, value: Dict[str, FieldValue]) -> Dict[str, FieldValue]:
        if not value:
            raise ValueError('must name at least one field')
        if 'id' in value:
            raise ValueError('the record id cannot be updated')
        return value


ActionConfig = Union[NotifyConfig, CreateTaskConfig, ChangeRoleConfig, SetActiveConfig, UpdateFieldConfig]


class _Request(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    record_ids: List[str] = Field(alias='recordIds')


class NotifyRequest(_Request):
    action_type: Literal['notify'] = Field('notify', alias='actionType')
    config: NotifyConfig


class CreateTaskRequest(_Request):
    action_type: Literal['create_task'] = Field('create_task', alias='actionType')
    config: CreateTaskConfig


class ChangeRoleRequest(_Request):
    action_type: Literal['change_role'] = Field('change_role', alias='actionType')
    config: ChangeRoleConfig


class DeactivateRequest(_Request):
    action_type: Literal['deactivate'] = Field('deactivate', alias='actionType')
    config: SetActiveConfig = Field(default_factory=SetActiveConfig)


class ReactivateRequest(_Request):
    action_type: Literal['reactivate'] = Field('reactivate', alias='actionType')
    config: SetActiveConfig = Field(default_factory=SetActiveConfig)


class UpdateFieldRequest(_Request):
    action_type: Literal['update_field'] = Field('update_field', alias='actionType')
    config: UpdateFieldConfig


BulkActionRequest = Annotated[
    Union[
        NotifyRequest,
        CreateTaskRequest,
        ChangeRoleRequest,
        DeactivateRequest,
        ReactivateRequest,
        UpdateFieldRequest,
    ],
    Field(discriminator='action_type'),
]

_REQUEST_ADAPTER = TypeAdapter(BulkActionRequest)

_REQUEST_TYPES = {
    ActionType.NOTIFY: NotifyRequest,
    ActionType.CREATE_TASK: CreateTaskRequest,
    ActionType.CHANGE_ROLE: ChangeRoleRequest,
    ActionType.DEACTIVATE: DeactivateRequest,
    ActionType.REACTIVATE: ReactivateRequest,
    ActionType.UPDATE_FIELD: UpdateFieldRequest,
}


def parse_bulk_request(payload: Mapping[str, Any]) -> BulkActionRequest:
    """Validate a request dict ({recordIds, actionType, config}) into its typed variant"""
    try:
        return _REQUEST_ADAPTER.validate_python(payload)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid bulk action request: {e}") from e


def build_bulk_request(record_ids: List[str], action_type: Union[ActionType, str], config: Any = None) -> BulkActionRequest:
    """Build a typed request from its parts; config may be a model or a dict"""
    try:
        request_type = _REQUEST_TYPES[ActionType(action_type)]
    except ValueError:
        raise ValidationError(f"Unknown action type: {action_type}") from None

    fields = {'record_ids': list(record_ids)}
    if isinstance(config, BaseModel):
        config = config.model_dump()
    if config is not None:
        fields['config'] = config
    try:
        return request_type.model_validate(fields)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid {request_type.__name__} config: {e}") from e


class BulkActionResult(BaseModel):
    """Outcome of one bulk action invocation"""
    success_count: int = 0
    failure_count: int = 0
    per_item_errors: Dict[str, str] = Field(default_factory=dict)

    def record_success(self) -> None:
        self.success_count += 1

    def record_failure(self, record_id: str, reason: str) -> None:
        self.failure_count += 1
        self.per_item_errors[record_id] = reason

    def to_response(self) -> Dict[str, Any]:
        """Response shape: {success, failed, errors}"""
        return {
            'success': self.success_count,
            'failed': self.failure_count,
            'errors': dict(self.per_item_errors),
        }
