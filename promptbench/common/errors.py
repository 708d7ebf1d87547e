"""Exception classes shared across promptbench."""


class PromptBenchError(Exception):
    """Base exception for promptbench errors."""

    pass


class InvalidInputError(PromptBenchError, ValueError):
    """Raised when a caller passes values that violate a documented precondition.

    Scoring and significance analysis validate once at their boundary and
    raise this error; past validation the computations cannot fail.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class ExperimentNotFoundError(PromptBenchError):
    """Raised when no experiment exists with the requested ID."""

    def __init__(self, experiment_id: str) -> None:
        self.experiment_id = experiment_id
        super().__init__(f"Experiment '{experiment_id}' not found")


class ExperimentStateError(PromptBenchError):
    """Raised when an operation is not allowed in the experiment's current status."""

    pass
