"""Existing deployment resolution.

Decides whether this run re-deploys a previously configured target, and
normalizes the project's database technology into an RDS engine name.
"""

from ebdeploy.config import settings
from ebdeploy.core.exceptions import ConfigurationError
from ebdeploy.models.deployment import (
    BuildTool,
    DatabaseEngine,
    DeploymentAnswers,
    DeploymentConfig,
)
from ebdeploy.models.project import ProjectSettings
from ebdeploy.utils.logging import get_logger

logger = get_logger(__name__)

UNSUPPORTED_DATABASE_MESSAGE = "Sorry deployment for this database is not possible"

_ENGINES = {
    "mariadb": DatabaseEngine.MARIADB,
    "mysql": DatabaseEngine.MYSQL,
    "postgresql": DatabaseEngine.POSTGRES,
}


def resolve_db_engine(prod_database_type: str | None) -> DatabaseEngine:
    """Map a declared database technology to the RDS engine to create."""
    engine = _ENGINES.get((prod_database_type or "").strip().lower())
    if engine is None:
        raise ConfigurationError(
            UNSUPPORTED_DATABASE_MESSAGE,
            {"prod_database_type": prod_database_type},
        )
    return engine


def resolve_build_tool(build_tool: str | None) -> BuildTool:
    try:
        return BuildTool((build_tool or "").strip().lower())
    except ValueError:
        raise ConfigurationError(
            f"Unsupported build tool: {build_tool}",
            {"build_tool": build_tool},
        )


class ExistingDeploymentResolver:
    """Builds the initial DeploymentConfig for a run."""

    def resolve(self, project: ProjectSettings) -> tuple[DeploymentConfig, bool]:
        """Produce the initial config and whether it came from a prior run.

        Raises:
            ConfigurationError: the database technology cannot be deployed.
                This check runs for new and existing deployments alike.
        """
        db_engine = resolve_db_engine(project.prod_database_type)

        config = DeploymentConfig(
            base_name=project.base_name,
            build_tool=resolve_build_tool(project.build_tool),
            db_engine=db_engine,
        )

        aws = project.aws
        if aws is not None:
            config.existing_project = True
            config.application_name = aws.application_name
            config.environment_name = aws.environment_name
            config.bucket_name = aws.bucket_name
            config.instance_type = aws.instance_type
            config.custom_instance_type = ""
            config.aws_region = aws.aws_region
            config.db_name = aws.db_name
            config.db_instance_class = aws.db_instance_class
            config.custom_db_instance_class = ""

            logger.info(
                "resolver.existing_deployment",
                application=config.application_name,
                environment=config.environment_name,
            )
        else:
            logger.info("resolver.new_deployment", base_name=project.base_name)

        return config, config.existing_project


def apply_answers(config: DeploymentConfig, answers: DeploymentAnswers) -> DeploymentConfig:
    """Merge collected answers into the config and apply custom overrides.

    Unanswered fields keep their resolved values. The region falls back to
    the configured default.
    """
    for name, value in answers.model_dump(exclude_none=True).items():
        setattr(config, name, value)

    if not config.aws_region:
        config.aws_region = settings.default_region

    config.apply_custom_overrides()
    config.ensure_complete()
    return config
