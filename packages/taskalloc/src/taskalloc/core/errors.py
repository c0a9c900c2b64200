"""Engine error types used across modules."""


class EngineError(RuntimeError):
    """Base error for allocation engine failures."""


class ContractError(EngineError):
    """Raised when schema packs or contract lookups fail."""


class InputResolutionError(EngineError):
    """Raised when required inputs cannot be resolved."""


class SchemaValidationError(InputResolutionError):
    """Raised when JSON Schema validation fails."""

    def __init__(self, message: str, errors: list[dict]) -> None:
        super().__init__(message)
        self.errors = errors
