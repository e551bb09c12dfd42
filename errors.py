"""
Error types raised by the service layer.

Routes never catch these; the handlers registered in main.py turn them into
JSON responses.
"""
from typing import List


class AdminError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AdminError):
    """A submitted entity breaks a rule. Raised before anything is written."""

    status_code = 400


class InvalidTransitionError(ValidationError):
    def __init__(self, current: str, target: str):
        super().__init__(f"Cannot change order status from '{current}' to '{target}'")
        self.current = current
        self.target = target


class NotFoundError(AdminError):
    status_code = 404


class StoreError(AdminError):
    """The document store call itself failed. Never retried here."""

    status_code = 502


class PartialBatchFailure(AdminError):
    status_code = 500

    def __init__(self, message: str, succeeded: List[str], failed: List[str]):
        super().__init__(message)
        self.succeeded = succeeded
        self.failed = failed
