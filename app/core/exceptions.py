"""Service-layer error hierarchy.

Every error carries a machine-readable ``code`` and the HTTP status it maps to;
``app.main`` renders them in the ``ErrorResponse`` envelope.
"""

from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    code = "INTERNAL_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, *, code: str = None, status_code: int = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code


class InvalidInputError(ServiceError):
    code = "VALIDATION_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidPartitionInput(InvalidInputError):
    """Business attributes that cannot form a code partition (bad shift, blank department)."""

    code = "INVALID_PARTITION_INPUT"


class NotFoundError(ServiceError):
    code = "RESOURCE_NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(ServiceError):
    code = "CONFLICT"
    status_code = status.HTTP_409_CONFLICT


class CodeLookupError(ServiceError):
    """The store failed while reading the last issued code of a partition."""

    code = "CODE_LOOKUP_FAILED"


class SequenceExhaustedError(ConflictError):
    """The 4-digit sequence of a partition has no values left."""

    code = "SEQUENCE_EXHAUSTED"


class AllocationConflictError(ServiceError):
    """Every allocation attempt collided with a concurrently issued code."""

    code = "ALLOCATION_CONFLICT"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
