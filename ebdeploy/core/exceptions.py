"""Custom exceptions for ebdeploy."""

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ebdeploy.models.deployment import DeploymentStep


class EbDeployError(Exception):
    """Base exception for ebdeploy."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ConfigurationError(EbDeployError):
    """Configuration is invalid or incomplete. Raised before any provisioning."""

    pass


class BuildError(EbDeployError):
    """The production build failed."""

    def __init__(self, message: str, returncode: int | None = None):
        details = {}
        if returncode is not None:
            details["returncode"] = returncode
        super().__init__(message, details)
        self.returncode = returncode


class ProviderError(EbDeployError):
    """A cloud service call failed.

    ``message`` is whatever the provider reported and may be ``None``.
    """

    def __init__(self, message: str | None, code: str | None = None):
        details = {}
        if code:
            details["code"] = code
        super().__init__(message or "", details)
        self.message = message
        self.code = code


class StateError(EbDeployError):
    """Accumulated deployment state was written twice or read too early."""

    pass


class DeploymentError(EbDeployError):
    """A pipeline step failed. The run stops at this step."""

    def __init__(self, step: "DeploymentStep", message: str):
        super().__init__(message, {"step": step.value})
        self.step = step
