"""Exceptions raised by the safeguards package."""


class SafeguardError(Exception):
    """Base exception for safeguard errors."""

    pass


class CircuitOpenError(SafeguardError):
    """A call was rejected because the circuit is open."""

    def __init__(self, name: str):
        super().__init__(f"Circuit breaker {name} is OPEN - service unavailable")
        self.name = name


class UnknownActionError(SafeguardError, ValueError):
    """An operator action name was not recognised."""

    def __init__(self, action: str):
        super().__init__(f"Unknown action: {action}")
        self.action = action
