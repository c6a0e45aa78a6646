"""
Bulk operation executor applying one action to many records, one at a time
"""
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from enum import Enum
import threading
from typing import Any, Callable, Dict, Optional

import structlog

from src.bulk.handlers import ActionHandler
from src.bulk.interfaces import AuditLog, RecordSource
from src.bulk.schema import ActionType, BulkActionRequest, BulkActionResult, build_bulk_request
from src.bulk.selection import SelectionSet
from src.errors import BatchInProgressError, PerRecordFailure, ValidationError

logger = structlog.get_logger()


class ExecutorState(str, Enum):
    IDLE = 'idle'
    RUNNING = 'running'
    COMPLETED = 'completed'


class BulkOperationExecutor:
    """Executes bulk actions sequentially with per-record failure isolation.

    A batch that has started always runs to completion; there is no rollback
    of records already processed. Only one batch may run at a time.

    With call_timeout set, each handler call runs on its own worker thread and
    an overrunning call is abandoned rather than joined. Collaborators must then
    keep per-thread state (e.g. a scoped_session); call_teardown runs on the
    worker thread once its call returns, to release that state.
    """

    def __init__(
        self,
        record_source: RecordSource,
        handlers: Dict[str, ActionHandler],
        call_timeout: Optional[float] = None,
        audit_log: Optional[AuditLog] = None,
        call_teardown: Optional[Callable[[], None]] = None,
    ):
        self.record_source = record_source
        self.handlers = {ActionType(key).value: handler for key, handler in handlers.items()}
        self.call_timeout = call_timeout
        self.audit_log = audit_log
        self.call_teardown = call_teardown
        self.state = ExecutorState.IDLE
        self.last_result: Optional[BulkActionResult] = None
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self.state == ExecutorState.RUNNING

    def execute(self, request: BulkActionRequest) -> BulkActionResult:
        """Apply the request's action to each of its records in order"""
        handler = self._start(request)
        return self._complete(handler, request)

    def execute_selection(self, selection: SelectionSet, action_type: ActionType, config: Any = None) -> BulkActionResult:
        """Run a batch over the selected IDs.

        The selection is cleared once the batch has started, whatever its
        outcome. A request rejected before starting leaves it untouched.
        """
        request = build_bulk_request(selection.ids(), action_type, config)
        handler = self._start(request)
        try:
            return self._complete(handler, request)
        finally:
            selection.clear()

    def _start(self, request: BulkActionRequest) -> ActionHandler:
        """Validate the request and move to RUNNING, or raise without side effects"""
        handler = self.handlers.get(request.action_type)
        if handler is None:
            raise ValidationError(f"No handler registered for action {request.action_type}")

        # Request-level errors surface before any record is touched
        handler.validate(request.config)

        with self._lock:
            if self.state == ExecutorState.RUNNING:
                raise BatchInProgressError("A bulk action is already running")
            self.state = ExecutorState.RUNNING
        return handler

    def _complete(self, handler: ActionHandler, request: BulkActionRequest) -> BulkActionResult:
        try:
            result = self._run(handler, request)
        finally:
            self.state = ExecutorState.COMPLETED

        self.last_result = result
        self._write_audit_entry(request, result)
        return result

    def _run(self, handler: ActionHandler, request: BulkActionRequest) -> BulkActionResult:
        result = BulkActionResult()
        logger.info("Bulk action started", action=request.action_type, records=len(request.record_ids))

        records = {str(record['id']): record for record in self.record_source.list()}

        for record_id in request.record_ids:
            record = records.get(record_id)
            if record is None:
                result.record_failure(record_id, "Record not found")
                logger.warning("Bulk action skipped missing record", record_id=record_id)
                continue

            try:
                self._call(handler.apply, record, request.config)
            except Exception as e:
                reason = str(e) or e.__class__.__name__
                result.record_failure(record_id, reason)
                logger.warning("Bulk action failed for record", record_id=record_id, error=reason)
            else:
                result.record_success()

        logger.info(
            "Bulk action completed",
            action=request.action_type,
            success=result.success_count,
            failed=result.failure_count,
        )
        return result

    def _call(self, fn: Callable, *args: Any) -> Any:
        """Call fn, bounded by call_timeout when one is set"""
        if not self.call_timeout:
            return fn(*args)

        def timed_call():
            try:
                return fn(*args)
            finally:
                if self.call_teardown is not None:
                    self.call_teardown()

        pool = ThreadPoolExecutor(max_workers=1)
        future = pool.submit(timed_call)
        try:
            return future.result(timeout=self.call_timeout)
        except FutureTimeoutError:
            raise PerRecordFailure(f"Timed out after {self.call_timeout}s") from None
        finally:
            # A hung call keeps its worker thread; the batch moves on without it
            pool.shutdown(wait=False)

    def _write_audit_entry(self, request: BulkActionRequest, result: BulkActionResult) -> None:
        if self.audit_log is None:
            return
        try:
            self.audit_log.record(
                'bulk_update',
                f"Bulk action \"{request.action_type}\" applied: "
                f"{result.success_count} succeeded, {result.failure_count} failed",
            )
        except Exception as e:
            logger.warning("Failed to write audit entry", action=request.action_type, error=str(e))
