"""
Error types raised by the console services.
"""

from typing import Dict, Optional


class ConsoleError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class FormValidationError(ConsoleError):
    """Field-scoped validation failure detected before any network call."""

    def __init__(self, errors: Dict[str, str]):
        super().__init__("; ".join(f"{field}: {reason}" for field, reason in errors.items()))
        self.errors = errors


class ConsoleStateError(ConsoleError):
    """The requested action is not allowed in the current console state."""


class ParkingApiError(ConsoleError):
    """Non-2xx answer from the parking API; message is the server text when it sent one."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NetworkError(ParkingApiError):
    """Timeout or transport failure talking to the parking API."""
