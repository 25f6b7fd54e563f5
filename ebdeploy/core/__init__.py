"""Core functionality for ebdeploy."""

from ebdeploy.core.exceptions import (
    BuildError,
    ConfigurationError,
    DeploymentError,
    EbDeployError,
    ProviderError,
    StateError,
)

__all__ = [
    "BuildError",
    "ConfigurationError",
    "DeploymentError",
    "EbDeployError",
    "ProviderError",
    "StateError",
]
