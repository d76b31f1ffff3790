"""Exception hierarchy for the learning engine."""


class LearningError(Exception):
    """Base exception for learning engine errors."""

    pass


class LearningValidationError(LearningError, ValueError):
    """Raised when input to a scoring or classification function is malformed."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"Invalid {field}: {message}")


class InvalidTransitionError(LearningError):
    """Raised when a maturity record cannot move to the requested state."""

    def __init__(self, pattern_id: str, from_state: str, to_state: str, hint: str = ""):
        self.pattern_id = pattern_id
        self.from_state = from_state
        self.to_state = to_state
        msg = f"Pattern {pattern_id} cannot move from {from_state} to {to_state}"
        if hint:
            msg = f"{msg}: {hint}"
        super().__init__(msg)


class UnknownBackendError(LearningError, ValueError):
    """Raised when the storage factory is asked for a backend it does not know."""

    pass
