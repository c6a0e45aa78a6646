"""
Bulk actions over a selection of records
"""
from .executor import BulkOperationExecutor, ExecutorState
from .handlers import (
    ActionHandler,
    ChangeRoleHandler,
    CreateTaskHandler,
    NotifyHandler,
    SetActiveHandler,
    UpdateFieldHandler,
    default_handlers,
)
from .schema import ActionType, BulkActionRequest, BulkActionResult, build_bulk_request, parse_bulk_request
from .selection import SelectionSet

__all__ = [
    'ActionHandler',
    'ActionType',
    'BulkActionRequest',
    'BulkActionResult',
    'BulkOperationExecutor',
    'ChangeRoleHandler',
    'CreateTaskHandler',
    'ExecutorState',
    'NotifyHandler',
    'SelectionSet',
    'SetActiveHandler',
    'UpdateFieldHandler',
    'build_bulk_request',
    'default_handlers',
    'parse_bulk_request',
]
