class StructuringError(Exception):
    """Raised when receipt text cannot be structured by the language model."""


class StructuringValidationError(StructuringError):
    """Raised when the model's JSON breaks receipt invariants."""


class StructuringNetworkError(StructuringError):
    """Raised when the model provider call fails due to network/infrastructure issues."""
