"""Deployment data models."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from ebdeploy.core.exceptions import ConfigurationError, StateError

CUSTOM = "custom"


class DatabaseEngine(str, Enum):
    """RDS engine names used when creating the instance."""

    MARIADB = "mariadb"
    MYSQL = "mysql"
    POSTGRES = "postgres"


class BuildTool(str, Enum):
    """Build tools a project can declare."""

    MAVEN = "maven"
    GRADLE = "gradle"


class DeploymentStep(str, Enum):
    """Pipeline steps, in execution order."""

    BUILD = "build"
    CREATE_BUCKET = "create_bucket"
    UPLOAD_ARTIFACT = "upload_artifact"
    CREATE_DATABASE = "create_database"
    RESOLVE_DATABASE_URL = "resolve_database_url"
    VERIFY_ROLES = "verify_roles"
    CREATE_OR_UPDATE_APPLICATION = "create_or_update_application"


def url_engine_name(engine: DatabaseEngine) -> str:
    """Engine literal used inside a JDBC URL.

    Only PostgreSQL differs from its RDS engine name.
    """
    if engine is DatabaseEngine.POSTGRES:
        return "postgresql"
    return engine.value


class DeploymentAnswers(BaseModel):
    """Values collected from the user for one run.

    ``None`` means "not answered"; the resolved value is kept.
    """

    application_name: str | None = None
    environment_name: str | None = None
    bucket_name: str | None = None
    instance_type: str | None = None
    custom_instance_type: str | None = None
    aws_region: str | None = None
    db_name: str | None = None
    db_instance_class: str | None = None
    custom_db_instance_class: str | None = None
    db_username: str | None = None
    db_password: SecretStr | None = None


class DeploymentConfig(BaseModel):
    """Input configuration plus state accumulated by the pipeline."""

    model_config = ConfigDict(validate_assignment=True)

    # Project facts
    base_name: str | None = None
    build_tool: BuildTool = BuildTool.MAVEN

    # Identity
    application_name: str | None = None
    environment_name: str | None = None
    bucket_name: str | None = None

    # Sizing
    instance_type: str | None = None
    custom_instance_type: str = ""
    db_instance_class: str | None = None
    custom_db_instance_class: str = ""

    aws_region: str | None = None

    # Database
    db_name: str | None = None
    db_engine: DatabaseEngine | None = None
    db_username: str | None = None
    db_password: SecretStr | None = None

    # Accumulated, write-once
    war_key: str | None = None
    db_url_engine: str | None = None
    db_url: str | None = None

    existing_project: bool = False

    def apply_custom_overrides(self) -> None:
        """Replace a ``custom`` sizing choice with its free-text companion."""
        if self.instance_type == CUSTOM:
            if not self.custom_instance_type.strip():
                raise ConfigurationError("A custom EC2 instance type is required")
            self.instance_type = self.custom_instance_type.strip()
        if self.db_instance_class == CUSTOM:
            if not self.custom_db_instance_class.strip():
                raise ConfigurationError("A custom database instance class is required")
            self.db_instance_class = self.custom_db_instance_class.strip()

    def missing_fields(self) -> list[str]:
        """Names of required fields that are still unset or empty."""
        required = [
            "application_name",
            "environment_name",
            "bucket_name",
            "instance_type",
            "aws_region",
            "db_name",
            "db_instance_class",
            "db_engine",
            "db_username",
            "db_password",
        ]
        missing = []
        for name in required:
            value = getattr(self, name)
            if isinstance(value, SecretStr):
                value = value.get_secret_value()
            if value is None or value == "":
                missing.append(name)
        return missing

    def ensure_complete(self) -> None:
        """Raise ConfigurationError if any required field is missing."""
        missing = self.missing_fields()
        if missing:
            raise ConfigurationError(
                f"Missing deployment configuration: {', '.join(missing)}",
                {"missing": missing},
            )

    def _record(self, field: str, value: str) -> None:
        if getattr(self, field) is not None:
            raise StateError(f"{field} is already set for this run")
        setattr(self, field, value)

    def record_war_key(self, war_key: str) -> None:
        self._record("war_key", war_key)

    def record_db_url_engine(self, engine: str) -> None:
        self._record("db_url_engine", engine)

    def record_db_url(self, db_url: str) -> None:
        self._record("db_url", db_url)

    def require_war_key(self) -> str:
        if self.war_key is None:
            raise StateError("war_key read before the artifact was uploaded")
        return self.war_key

    def require_db_url(self) -> str:
        if self.db_url is None:
            raise StateError("db_url read before the database URL was resolved")
        return self.db_url

    @property
    def db_password_value(self) -> str:
        return self.db_password.get_secret_value() if self.db_password else ""


class ApplicationRequest(BaseModel):
    """Everything the hosting service needs to create or update an environment."""

    application_name: str
    environment_name: str
    bucket_name: str
    war_key: str
    db_url: str
    db_username: str
    db_password: SecretStr
    instance_type: str
    update: bool = False


class OperationResult(BaseModel):
    """Result of a provisioning call that only reports a message."""

    message: str = ""


class UploadResult(OperationResult):
    """Result of uploading the artifact."""

    war_key: str


class DatabaseUrlResult(OperationResult):
    """Result of resolving the database connection string."""

    db_url: str


class StepStatus(str, Enum):
    """Individual step status."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class RunStatus(str, Enum):
    """Pipeline run status."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class StepInfo(BaseModel):
    """Information about one pipeline step."""

    status: StepStatus = StepStatus.PENDING
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int | None = None
    message: str | None = None
    error: str | None = None


class DeploymentRun(BaseModel):
    """Bookkeeping for one pipeline execution."""

    status: RunStatus = RunStatus.PENDING
    started_at: datetime | None = None
    completed_at: datetime | None = None

    current_step: DeploymentStep | None = None
    steps: dict[DeploymentStep, StepInfo] = Field(default_factory=dict)

    failed_step: DeploymentStep | None = None
    error: str | None = None

    def update_step(
        self,
        step: DeploymentStep,
        status: StepStatus,
        message: str | None = None,
        error: str | None = None,
    ) -> None:
        """Update a step's status."""
        now = datetime.utcnow()

        if step not in self.steps:
            self.steps[step] = StepInfo()

        info = self.steps[step]
        info.status = status

        if status == StepStatus.IN_PROGRESS:
            info.started_at = now
            self.current_step = step
        elif status in (StepStatus.COMPLETED, StepStatus.FAILED):
            info.completed_at = now
            if info.started_at:
                info.duration_ms = int((now - info.started_at).total_seconds() * 1000)
            if status == StepStatus.FAILED:
                info.error = error
                self.error = error
                self.failed_step = step

        if message is not None:
            info.message = message

    def completed_steps(self) -> list[DeploymentStep]:
        return [s for s, info in self.steps.items() if info.status == StepStatus.COMPLETED]

    def summary(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "failed_step": self.failed_step.value if self.failed_step else None,
            "error": self.error,
            "steps": {s.value: info.status.value for s, info in self.steps.items()},
        }
