from typing import Any, Optional


class HybridStateError(Exception):
    """
    Base exception for all hybrid state errors.

    :param message: Explanation of the error.
    :type message: str
    """
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)

    def __str__(self):
        return f"HybridState: {self.message}"


class SchemaError(HybridStateError):
    """
    Raised while a state schema is declared or built.

    The declaration is rejected as a whole, no partial schema is returned.
    """
    def __str__(self):
        return f"Schema: {self.message}"


class InvalidTransitionError(HybridStateError):
    """
    Raised when a primary or micro transition is not allowed.

    :param message: Explanation of the error.
    :type message: str
    :param state: The requested target state.
    :type state: str
    :param kind: Either ``"primary"`` or ``"micro"``.
    :type kind: str
    :param rejected_by_hook: True if a before-hook rejected the transition.
    :type rejected_by_hook: bool
    """
    def __init__(
            self,
            message: str,
            state: Optional[str] = None,
            kind: Optional[str] = None,
            rejected_by_hook: bool = False):
        self.state = state
        self.kind = kind
        self.rejected_by_hook = rejected_by_hook
        super().__init__(message)

    def __str__(self):
        return f"Transition: {self.message}"


class InvalidStateError(HybridStateError):
    """
    Raised by stores that refuse to write a record with invalid states.

    :param message: Explanation of the error.
    :type message: str
    :param validation: The failed validation result.
    :type validation: hybrid_state.state.validation.StateValidation
    """
    def __init__(self, message: str, validation: Any = None):
        self.validation = validation
        super().__init__(message)

    def __str__(self):
        return f"State: {self.message}"


class MetricsParseError(HybridStateError):
    """Raised by the strict metrics parser on a malformed metrics blob."""

    def __str__(self):
        return f"Metrics: {self.message}"


class PersistenceError(HybridStateError):
    """Raised when an entity reports that it could not be persisted."""

    def __str__(self):
        return f"Persistence: {self.message}"
