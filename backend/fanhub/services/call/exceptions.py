"""
Call Service Exceptions

Custom exceptions for call-related errors.
"""


class CallServiceError(Exception):
    """Base exception for call service errors"""
    pass


class DuplicateCallIdError(CallServiceError):
    """Raised when a session with the same call id is already stored"""

    def __init__(self, call_id: str):
        super().__init__(f"Call {call_id} already exists")
        self.call_id = call_id
