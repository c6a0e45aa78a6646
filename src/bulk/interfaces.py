"""
Collaborator interfaces consumed by the bulk-action handlers.

The engine only relies on these narrow request/response calls. Any transport
or storage can sit behind them; SQL-backed versions live in src.database.stores
and a Gmail-backed delivery service in src.delivery.
"""
from typing import Any, Dict, List, Mapping, Optional, Protocol

Record = Dict[str, Any]


class RecordSource(Protocol):
    """Storage of the records being segmented and acted upon"""

    def list(self, filter: Optional[Mapping[str, Any]] = None) -> List[Record]:
        """Return records, optionally restricted to exact field matches"""
        raise NotImplementedError

    def update(self, record_id: str, fields: Mapping[str, Any]) -> Record:
        """Atomically merge fields into one record and return it"""
        raise NotImplementedError


class DeliveryService(Protocol):
    """Outbound message delivery"""

    def send(self, recipient: str, subject: str, body: str) -> Any:
        """Send one message; raise or return False on failure. Any other return value, None included, counts as sent."""
        raise NotImplementedError


class TaskStore(Protocol):
    """Storage of dependent task records"""

    def create(self, payload: Mapping[str, Any]) -> str:
        """Create a task and return its ID"""
        raise NotImplementedError


class ActivityLog(Protocol):
    """Per-record activity trail"""

    def record(self, record_id: str, action: str, details: str, record_name: str = None) -> None:
        raise NotImplementedError


class AuditLog(Protocol):
    """Trail of whole-batch operations"""

    def record(self, action: str, details: str, entity_type: str = None) -> None:
        raise NotImplementedError
