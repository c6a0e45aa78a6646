"""
Error types for the segmentation and bulk-action engine
"""


class SegmentsError(Exception):
    """Base class for all engine errors"""


class UnknownFieldError(SegmentsError, KeyError):
    """A rule references a field that is not in the field catalog"""

    def __init__(self, field: str):
        super().__init__(field)
        self.field = field

    def __str__(self) -> str:
        return f"Unknown field: {self.field}"


class ValidationError(SegmentsError, ValueError):
    """A request, segment or configuration is invalid as a whole"""


class CoercionFailure(SegmentsError, ValueError):
    """A rule value or record value could not be coerced to its domain"""


class PerRecordFailure(SegmentsError):
    """An action failed for exactly one record"""


class DeliveryError(PerRecordFailure):
    """The delivery collaborator rejected a message"""


class SegmentNotFoundError(SegmentsError, LookupError):
    """No saved segment exists with the requested ID"""


class BatchInProgressError(SegmentsError, RuntimeError):
    """A batch is already running on this executor"""
