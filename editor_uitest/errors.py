"""
errors.py - Exception hierarchy for the editor UI test harness
"""


class UITestException(Exception):
    """Base exception for UI testing errors."""
    pass


class LaunchFailure(UITestException):
    """Raised when the host editor or its first window cannot be obtained."""
    pass


class PollExhausted(UITestException):
    """
    Raised when a polled UI condition never became true within its budget.

    Attributes:
        message: The caller-supplied description of the awaited condition
        attempts: Number of predicate checks that were made
    """

    def __init__(self, message: str, attempts: int = 0):
        super().__init__(message)
        self.message = message
        self.attempts = attempts
