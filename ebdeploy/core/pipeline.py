"""Deployment pipeline.

Runs the provisioning steps in a fixed order against one DeploymentConfig:

1. build - production WAR build
2. create_bucket - S3 bucket for the artifact
3. upload_artifact - records ``war_key``
4. create_database - RDS instance
5. resolve_database_url - waits for RDS, records ``db_url``
6. verify_roles - Elastic Beanstalk IAM roles
7. create_or_update_application - Elastic Beanstalk environment

The first failing step stops the run with a DeploymentError. Nothing is
retried and nothing provisioned by earlier steps is rolled back.
"""

from collections.abc import Awaitable, Callable
from datetime import datetime

from ebdeploy.core.events import EventBus
from ebdeploy.core.exceptions import DeploymentError, EbDeployError, ProviderError
from ebdeploy.models.deployment import (
    ApplicationRequest,
    DeploymentConfig,
    DeploymentRun,
    DeploymentStep,
    RunStatus,
    StepStatus,
    url_engine_name,
)
from ebdeploy.services.build import BuildRunner
from ebdeploy.services.cloud import CloudServiceFacade
from ebdeploy.utils.logging import get_logger

BUCKET_IN_USE_MESSAGE = (
    "The S3 bucket could not be created. Are you sure its name is not already used?"
)

STEP_TITLES = {
    DeploymentStep.BUILD: "Building application",
    DeploymentStep.CREATE_BUCKET: "Create S3 bucket",
    DeploymentStep.UPLOAD_ARTIFACT: "Upload WAR to S3",
    DeploymentStep.CREATE_DATABASE: "Create database",
    DeploymentStep.RESOLVE_DATABASE_URL: "Waiting for database (This may take several minutes)",
    DeploymentStep.VERIFY_ROLES: "Verifying ElasticBeanstalk Roles",
    DeploymentStep.CREATE_OR_UPDATE_APPLICATION: "Create/Update application",
}

StepHandler = Callable[[DeploymentConfig], Awaitable[str]]


def failure_message(step: DeploymentStep, error: EbDeployError) -> str:
    """The diagnostic reported to the user when ``step`` fails with ``error``."""
    if isinstance(error, ProviderError):
        if step is DeploymentStep.CREATE_BUCKET and not error.message:
            return BUCKET_IN_USE_MESSAGE
        return error.message or error.code or "Unknown provider error"
    return error.message


class DeploymentPipeline:
    """Executes the provisioning steps for one deployment."""

    def __init__(
        self,
        cloud: CloudServiceFacade,
        builder: BuildRunner,
        events: EventBus | None = None,
    ):
        self.cloud = cloud
        self.builder = builder
        self.events = events or EventBus()
        self.logger = get_logger("pipeline")
        self.last_run: DeploymentRun | None = None

        self.steps: list[tuple[DeploymentStep, StepHandler]] = [
            (DeploymentStep.BUILD, self._build),
            (DeploymentStep.CREATE_BUCKET, self._create_bucket),
            (DeploymentStep.UPLOAD_ARTIFACT, self._upload_artifact),
            (DeploymentStep.CREATE_DATABASE, self._create_database),
            (DeploymentStep.RESOLVE_DATABASE_URL, self._resolve_database_url),
            (DeploymentStep.VERIFY_ROLES, self._verify_roles),
            (DeploymentStep.CREATE_OR_UPDATE_APPLICATION, self._create_or_update_application),
        ]

    async def run(self, config: DeploymentConfig) -> DeploymentConfig:
        """Run every step in order.

        Args:
            config: A complete configuration. It is updated in place as
                steps record ``war_key`` and ``db_url``.

        Returns:
            The same config, with all accumulated fields set.

        Raises:
            ConfigurationError: The config is incomplete. No step runs.
            DeploymentError: A step failed. Later steps did not run.
        """
        config.ensure_complete()

        run = DeploymentRun(status=RunStatus.RUNNING, started_at=datetime.utcnow())
        self.last_run = run

        self.logger.info(
            "pipeline.started",
            application=config.application_name,
            environment=config.environment_name,
            existing=config.existing_project,
        )

        for step, handler in self.steps:
            run.update_step(step, StepStatus.IN_PROGRESS)
            self.logger.info("pipeline.step.started", step=step.value)
            await self.events.publish_step_started(step.value, STEP_TITLES[step])

            try:
                message = await handler(config)
            except EbDeployError as e:
                error = failure_message(step, e)
                await self._fail(run, step, error)
                raise DeploymentError(step, error) from e
            except Exception as e:
                self.logger.exception("pipeline.step.crashed", step=step.value)
                await self._fail(run, step, str(e))
                raise DeploymentError(step, str(e)) from e

            run.update_step(step, StepStatus.COMPLETED, message=message)
            self.logger.info("pipeline.step.completed", step=step.value, message=message)
            await self.events.publish_step_completed(
                step.value, message, run.steps[step].duration_ms or 0
            )

        run.status = RunStatus.SUCCEEDED
        run.completed_at = datetime.utcnow()
        self.logger.info("pipeline.completed", application=config.application_name)
        await self.events.publish_pipeline_completed(
            config.application_name or "", config.environment_name or ""
        )
        return config

    async def _fail(self, run: DeploymentRun, step: DeploymentStep, error: str) -> None:
        run.update_step(step, StepStatus.FAILED, error=error)
        run.status = RunStatus.FAILED
        run.completed_at = datetime.utcnow()
        self.logger.error(
            "pipeline.step.failed", step=step.value, error=error, run=run.summary()
        )
        await self.events.publish_step_failed(step.value, error)
        await self.events.publish_pipeline_failed(step.value, error)

    # Steps. Each returns the message to report on success.

    async def _build(self, config: DeploymentConfig) -> str:
        await self.builder.build(config.build_tool, profile="prod", war=True)
        return "Build completed"

    async def _create_bucket(self, config: DeploymentConfig) -> str:
        result = await self.cloud.storage.create_bucket(config.bucket_name)
        return result.message

    async def _upload_artifact(self, config: DeploymentConfig) -> str:
        result = await self.cloud.storage.upload_artifact(config.bucket_name, config.build_tool)
        config.record_war_key(result.war_key)
        return result.message

    async def _create_database(self, config: DeploymentConfig) -> str:
        result = await self.cloud.database.create_database(
            config.db_instance_class,
            config.db_name,
            config.db_engine.value,
            config.db_username,
            config.db_password_value,
        )
        return result.message

    async def _resolve_database_url(self, config: DeploymentConfig) -> str:
        config.record_db_url_engine(url_engine_name(config.db_engine))
        result = await self.cloud.database.resolve_url(config.db_name, config.db_url_engine)
        config.record_db_url(result.db_url)
        return result.message

    async def _verify_roles(self, config: DeploymentConfig) -> str:
        await self.cloud.identity.verify_roles()
        return "Roles verified"

    async def _create_or_update_application(self, config: DeploymentConfig) -> str:
        request = ApplicationRequest(
            application_name=config.application_name,
            environment_name=config.environment_name,
            bucket_name=config.bucket_name,
            war_key=config.require_war_key(),
            db_url=config.require_db_url(),
            db_username=config.db_username,
            db_password=config.db_password,
            instance_type=config.instance_type,
            update=config.existing_project,
        )
        result = await self.cloud.hosting.create_or_update_application(request)
        return result.message
