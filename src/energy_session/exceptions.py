"""Exceptions raised by the session state machine."""


class SessionError(Exception):
    """Base class for check-in session errors."""


class InvalidTransitionError(SessionError):
    """An intent was dispatched from a phase that does not accept it."""

    def __init__(self, operation: str, phase: str, reason: str = ""):
        self.operation = operation
        self.phase = phase
        self.reason = reason
        message = f"Cannot {operation} while in phase '{phase}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
