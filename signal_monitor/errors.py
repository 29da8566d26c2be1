"""Shared error classes for the signal monitor."""


class SignalMonitorError(RuntimeError):
    """Base exception for the signal monitor."""

    def __init__(self, message: str, code: str = "SIGNAL_MONITOR_ERROR") -> None:
        super().__init__(message)
        self.code = code


class ICPConfigError(SignalMonitorError):
    """Raised when the ICP criteria file is missing or invalid."""

    def __init__(self, message: str, code: str = "ICP_CONFIG_INVALID") -> None:
        super().__init__(message, code)


class ClassificationError(SignalMonitorError):
    """Raised when a model response cannot be turned into a classification."""

    def __init__(self, message: str, code: str = "CLASSIFICATION_PARSE_FAILED") -> None:
        super().__init__(message, code)


class PersistenceError(SignalMonitorError):
    """Describes a failed load or save of a memory store."""

    def __init__(self, message: str, path: str, operation: str) -> None:
        super().__init__(message, code=f"PERSISTENCE_{operation.upper()}_FAILED")
        self.path = path
        self.operation = operation
