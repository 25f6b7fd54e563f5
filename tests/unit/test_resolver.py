"""Unit tests for existing deployment resolution."""

import pytest
from pydantic import SecretStr

from ebdeploy.config import settings
from ebdeploy.core.exceptions import ConfigurationError
from ebdeploy.core.resolver import (
    UNSUPPORTED_DATABASE_MESSAGE,
    ExistingDeploymentResolver,
    apply_answers,
    resolve_build_tool,
    resolve_db_engine,
)
from ebdeploy.models.deployment import (
    BuildTool,
    DatabaseEngine,
    DeploymentAnswers,
    DeploymentConfig,
)
from ebdeploy.models.project import PersistedAwsConfig, ProjectSettings


@pytest.mark.parametrize(
    "technology, engine",
    [
        ("mariadb", DatabaseEngine.MARIADB),
        ("MariaDB", DatabaseEngine.MARIADB),
        ("mysql", DatabaseEngine.MYSQL),
        ("MySQL", DatabaseEngine.MYSQL),
        ("postgresql", DatabaseEngine.POSTGRES),
        ("PostgreSQL", DatabaseEngine.POSTGRES),
    ],
)
def test_resolve_db_engine(technology: str, engine: DatabaseEngine):
    assert resolve_db_engine(technology) is engine


@pytest.mark.parametrize("technology", ["oracle", "mssql", "mongodb", "postgres", "", None])
def test_resolve_db_engine_rejects(technology):
    with pytest.raises(ConfigurationError) as exc_info:
        resolve_db_engine(technology)

    assert exc_info.value.message == UNSUPPORTED_DATABASE_MESSAGE


def test_resolve_build_tool():
    assert resolve_build_tool("Gradle") is BuildTool.GRADLE
    with pytest.raises(ConfigurationError):
        resolve_build_tool("ant")


class TestExistingDeploymentResolver:
    """Tests for ExistingDeploymentResolver."""

    @pytest.fixture
    def resolver(self) -> ExistingDeploymentResolver:
        return ExistingDeploymentResolver()

    @pytest.fixture
    def persisted(self) -> PersistedAwsConfig:
        return PersistedAwsConfig(
            application_name="shop",
            environment_name="shop-prod",
            bucket_name="shop-artifacts",
            instance_type="t3.small",
            aws_region="eu-central-1",
            db_name="shopdb",
            db_instance_class="db.t3.small",
        )

    def test_new_deployment(self, resolver: ExistingDeploymentResolver):
        project = ProjectSettings(base_name="shop", build_tool="gradle", prod_database_type="mysql")

        config, existing = resolver.resolve(project)

        assert existing is False
        assert config.existing_project is False
        assert config.application_name is None
        assert config.bucket_name is None
        assert config.db_engine is DatabaseEngine.MYSQL
        assert config.build_tool is BuildTool.GRADLE
        assert config.base_name == "shop"

    def test_existing_deployment(
        self, resolver: ExistingDeploymentResolver, persisted: PersistedAwsConfig
    ):
        project = ProjectSettings(
            base_name="shop", prod_database_type="PostgreSQL", aws=persisted
        )

        config, existing = resolver.resolve(project)

        assert existing is True
        assert config.existing_project is True
        assert config.application_name == "shop"
        assert config.environment_name == "shop-prod"
        assert config.bucket_name == "shop-artifacts"
        assert config.instance_type == "t3.small"
        assert config.aws_region == "eu-central-1"
        assert config.db_name == "shopdb"
        assert config.db_instance_class == "db.t3.small"
        assert config.custom_instance_type == ""
        assert config.custom_db_instance_class == ""
        assert config.db_engine is DatabaseEngine.POSTGRES

    def test_unsupported_database_with_existing_config(
        self, resolver: ExistingDeploymentResolver, persisted: PersistedAwsConfig
    ):
        """The database check applies to existing deployments too."""
        project = ProjectSettings(prod_database_type="oracle", aws=persisted)

        with pytest.raises(ConfigurationError):
            resolver.resolve(project)


class TestApplyAnswers:
    """Tests for apply_answers."""

    @pytest.fixture
    def answers(self) -> DeploymentAnswers:
        return DeploymentAnswers(
            application_name="shop",
            environment_name="shop-env",
            bucket_name="shop-bucket",
            instance_type="t3.micro",
            db_name="shop",
            db_instance_class="db.t3.micro",
            db_username="admin",
            db_password=SecretStr("s3cret"),
        )

    def test_fills_new_config(self, answers: DeploymentAnswers):
        config = DeploymentConfig(db_engine=DatabaseEngine.MYSQL)

        apply_answers(config, answers)

        assert config.application_name == "shop"
        assert config.db_password_value == "s3cret"
        assert config.aws_region == settings.default_region

    def test_unanswered_fields_keep_resolved_values(self):
        config = DeploymentConfig(
            db_engine=DatabaseEngine.MYSQL,
            application_name="shop",
            environment_name="shop-env",
            bucket_name="shop-bucket",
            instance_type="t3.micro",
            aws_region="ap-southeast-2",
            db_name="shop",
            db_instance_class="db.t3.micro",
        )
        answers = DeploymentAnswers(
            db_username="admin", db_password=SecretStr("pw"), instance_type="t3.large"
        )

        apply_answers(config, answers)

        assert config.aws_region == "ap-southeast-2"
        assert config.instance_type == "t3.large"
        assert config.bucket_name == "shop-bucket"

    def test_custom_instance_type(self, answers: DeploymentAnswers):
        answers.instance_type = "custom"
        answers.custom_instance_type = "c6g.medium"
        config = DeploymentConfig(db_engine=DatabaseEngine.MARIADB)

        apply_answers(config, answers)

        assert config.instance_type == "c6g.medium"

    def test_incomplete_answers(self):
        config = DeploymentConfig(db_engine=DatabaseEngine.MARIADB)

        with pytest.raises(ConfigurationError):
            apply_answers(config, DeploymentAnswers(application_name="shop"))
