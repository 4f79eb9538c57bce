# deployer/errors.py
"""Fatal error taxonomy for deployment commands.

Every error raised by a command derives from DeployError. Docker SDK
exceptions are wrapped at the engine boundary with ``raise ... from exc`` so
the originating cause stays attached to the traceback.
"""


class DeployError(Exception):
    """Base class for conditions that abort the current command."""

    exit_code = 1
    kind = "fatal"


class RuntimeUnavailableError(DeployError):
    kind = "environment"


class ImageBuildError(DeployError):
    kind = "build"


class CleanupError(DeployError):
    kind = "cleanup"


class ContainerRunError(DeployError):
    kind = "run"


class HealthTimeoutError(DeployError):
    kind = "timeout"

    def __init__(self, message: str, attempts: int = 0, last_status=None):
        super().__init__(message)
        self.attempts = attempts
        self.last_status = last_status


class ContainerNotFoundError(DeployError):
    kind = "not_found"


class HealthCheckCancelledError(DeployError):
    kind = "cancelled"

    def __init__(self, message: str, attempts: int = 0):
        super().__init__(message)
        self.attempts = attempts
