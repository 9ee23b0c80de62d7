"""Domain Errors

Every failure the scheduler reports is one of three kinds. Callers branch on
``error.kind`` (or the class) and keep ``error.message`` for logs and users.
"""
from typing import Any

from hotel_scheduler.domain.enums import ErrorKind


class SchedulerError(Exception):
    """Base class for scheduler failures"""
    kind: ErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(SchedulerError, LookupError):
    """A referenced room, reservation or user does not exist"""
    kind = ErrorKind.NOT_FOUND

    def __init__(self, entity: str, identifier: Any):
        super().__init__(f"{entity} not found with ID: {identifier}")
        self.entity = entity
        self.identifier = identifier


class BusinessRuleError(SchedulerError, ValueError):
    """A domain rule would be violated; never retried"""
    kind = ErrorKind.BUSINESS_RULE


class ConflictError(SchedulerError):
    """The store could not isolate a write (lock timeout); safe to retry"""
    kind = ErrorKind.CONFLICT
