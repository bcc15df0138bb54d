"""Application-specific exceptions for runpanel.

None of these escape the public ``Session`` API: each one is raised at a
seam and handled one level up, where it is turned into a degraded mode or
a ``failure`` status.

Exception Hierarchy:
    RunpanelError (base)
    ├── HostError
    │   └── HostNotReadyError
    ├── SpawnError
    ├── InvalidTransitionError
    └── ConfigurationError
"""


class RunpanelError(Exception):
    """Base exception for all runpanel errors.

    All application-specific exceptions inherit from this class,
    allowing callers to catch all runpanel errors with a single handler.
    """


class HostError(RunpanelError):
    """Raised when the display host rejects a surface operation.

    Attributes:
        message: Human-readable error description.
        cause: The underlying exception, if any.
    """

    def __init__(self, message: str | None = None, cause: Exception | None = None) -> None:
        self.cause = cause
        self.message = message or "Display host operation failed"
        if cause:
            self.message = f"{self.message}: {cause}"
        super().__init__(self.message)


class HostNotReadyError(HostError):
    """Raised when a surface cannot be created yet (e.g. no viewport during startup)."""

    def __init__(self, message: str | None = None, cause: Exception | None = None) -> None:
        super().__init__(message or "Display host is not ready", cause)


class SpawnError(RunpanelError):
    """Raised when a command could not be started.

    Attributes:
        command: The command that failed to start.
        message: Human-readable error description.
        cause: The underlying exception, if any.
    """

    def __init__(
        self,
        command: str,
        message: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.command = command
        self.cause = cause
        self.message = message or f"Failed to start command: {command}"
        if cause:
            self.message = f"{self.message}: {cause}"
        super().__init__(self.message)


class InvalidTransitionError(RunpanelError):
    """Raised when a run status change would skip or reverse a state.

    Attributes:
        current: The status the run is in.
        requested: The status that was requested.
        message: Human-readable error description.
    """

    def __init__(self, current: str, requested: str, message: str | None = None) -> None:
        self.current = current
        self.requested = requested
        self.message = message or f"Invalid run status transition {current} -> {requested}"
        super().__init__(self.message)


class ConfigurationError(RunpanelError):
    """Raised when a configuration source cannot be used.

    Attributes:
        parameter: The configuration parameter or source that is invalid.
        message: Human-readable error description.
    """

    def __init__(self, parameter: str, message: str | None = None) -> None:
        self.parameter = parameter
        self.message = message or f"Invalid configuration for '{parameter}'"
        super().__init__(self.message)
