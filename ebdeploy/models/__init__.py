"""Data models for ebdeploy."""

from ebdeploy.models.deployment import (
    ApplicationRequest,
    BuildTool,
    DatabaseEngine,
    DatabaseUrlResult,
    DeploymentAnswers,
    DeploymentConfig,
    DeploymentRun,
    DeploymentStep,
    OperationResult,
    RunStatus,
    StepInfo,
    StepStatus,
    UploadResult,
    url_engine_name,
)
from ebdeploy.models.project import PersistedAwsConfig, ProjectSettings

__all__ = [
    "ApplicationRequest",
    "BuildTool",
    "DatabaseEngine",
    "DatabaseUrlResult",
    "DeploymentAnswers",
    "DeploymentConfig",
    "DeploymentRun",
    "DeploymentStep",
    "OperationResult",
    "RunStatus",
    "StepInfo",
    "StepStatus",
    "UploadResult",
    "url_engine_name",
    "PersistedAwsConfig",
    "ProjectSettings",
]
