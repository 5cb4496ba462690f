"""Custom exception hierarchy for cloudsnap.

All cloudsnap-specific exceptions inherit from CloudsnapError, enabling
callers to catch every build failure with a single except clause.
"""

from __future__ import annotations


class CloudsnapError(Exception):
    """Base exception for all cloudsnap errors."""


class ConfigurationError(CloudsnapError):
    """Raised for invalid configuration or missing required settings."""

    def __init__(self, errors: list[str] | tuple[str, ...]) -> None:
        self.errors = tuple(errors)
        lines = "\n".join(f"  * {e}" for e in self.errors)
        super().__init__(f"{len(self.errors)} configuration error(s):\n{lines}")


class ValidationError(CloudsnapError):
    """Raised before any remote mutation when local input is unusable."""


class KeyMaterialError(ValidationError):
    """Raised when a private key cannot be parsed."""


class MissingTrackingHandleError(ValidationError):
    """Raised when a mutating call was accepted without a request location."""

    def __init__(self, operation: str, resource: object = None) -> None:
        self.operation = operation
        self.resource = resource
        super().__init__(f"{operation}: response carried no request location header")


class RemoteRejectionError(CloudsnapError):
    """Raised when the provider API rejects a call."""

    def __init__(self, operation: str, cause: Exception) -> None:
        self.operation = operation
        self.cause = cause
        self.status: int = getattr(cause, "status", 0)
        super().__init__(f"error {operation}: {cause}")


class RemoteOperationFailedError(CloudsnapError):
    """Raised when an asynchronous provider operation ends in a failed state."""

    def __init__(self, description: str, reason: str) -> None:
        self.description = description
        self.reason = reason
        super().__init__(f"{description} failed: {reason}")


class OperationTimeoutError(CloudsnapError, TimeoutError):
    """Raised when an operation does not finish before its deadline."""

    def __init__(self, description: str, timeout: float) -> None:
        self.description = description
        self.timeout = timeout
        super().__init__(f"Timeout waiting for {description} after {timeout:.1f}s")


class BuildCancelledError(CloudsnapError):
    """Raised when the build was cancelled while a step was running."""

    def __init__(self, step: str) -> None:
        self.step = step
        super().__init__(f"Build was cancelled during step '{step}'")


class ProvisioningError(CloudsnapError):
    """Raised when provisioned resources are not in the expected shape."""


class NoCommunicatorError(CloudsnapError):
    """Raised when a remote session is required but none was established."""

    def __init__(self) -> None:
        super().__init__("no communicator found")


class RemoteCommandError(CloudsnapError):
    """Raised when a command run on the guest exits non-zero."""

    def __init__(self, command: str, exit_status: int, stderr: str = "") -> None:
        self.command = command
        self.exit_status = exit_status
        self.stderr = stderr
        detail = f": {stderr.strip()}" if stderr.strip() else ""
        super().__init__(f"{command} command exited with code {exit_status}{detail}")


class MissingStateError(CloudsnapError, LookupError):
    """Raised when a step reads build state that no earlier step produced."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"build state '{name}' was never set by an earlier step")


class StepHaltedError(CloudsnapError):
    """Recorded when a step halts without reporting a cause."""

    def __init__(self, step: str) -> None:
        self.step = step
        super().__init__(f"step '{step}' halted the build")
