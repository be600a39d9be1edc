"""
Appeal domain errors
"""
from typing import Optional


class AppealError(Exception):
    """Base class for appeal errors"""


class AppealValidationError(AppealError):
    """Request payload is missing a required value"""


class AppealNotFoundError(AppealError):
    """
    Appeal does not exist or is not in a state that allows the operation.

    Callers are not told which of the two happened.
    """

    def __init__(self, appeal_id: Optional[int] = None, operation: Optional[str] = None):
        self.appeal_id = appeal_id
        self.operation = operation
        if appeal_id is None:
            message = f"Appeals changed during '{operation}', retry the operation"
        elif operation:
            message = f"Appeal {appeal_id} not found or its status does not allow '{operation}'"
        else:
            message = f"Appeal {appeal_id} not found"
        super().__init__(message)


class StorageError(AppealError):
    """Database failure; the transaction has been rolled back"""
