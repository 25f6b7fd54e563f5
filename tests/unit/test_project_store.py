"""Unit tests for the project file store."""

import json
from pathlib import Path

import pytest

from ebdeploy.core.exceptions import ConfigurationError
from ebdeploy.core.project_store import ProjectStore
from ebdeploy.models.deployment import DeploymentConfig


class TestProjectStore:
    """Tests for ProjectStore."""

    @pytest.fixture
    def store(self, project_dir: Path) -> ProjectStore:
        return ProjectStore.in_directory(project_dir)

    def test_load(self, store: ProjectStore):
        project = store.load()

        assert project.base_name == "shop"
        assert project.build_tool == "maven"
        assert project.prod_database_type == "postgresql"
        assert project.aws is None

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigurationError) as exc_info:
            ProjectStore.in_directory(tmp_path).load()

        assert "not found" in exc_info.value.message

    def test_invalid_json(self, tmp_path: Path):
        (tmp_path / ".yo-rc.json").write_text("{not json")

        with pytest.raises(ConfigurationError):
            ProjectStore.in_directory(tmp_path).load()

    def test_missing_namespace(self, tmp_path: Path):
        (tmp_path / ".yo-rc.json").write_text(json.dumps({"other": {}}))

        with pytest.raises(ConfigurationError):
            ProjectStore.in_directory(tmp_path).load()

    def test_save_aws_config(self, store: ProjectStore, config: DeploymentConfig):
        config.record_war_key("shop.war")

        store.save_aws_config(config)

        document = json.loads(store.path.read_text())
        section = document["generator-jhipster"]
        assert section["aws"] == {
            "applicationName": "shop",
            "environmentName": "shop-env",
            "bucketName": "shop-bucket",
            "instanceType": "t3.micro",
            "awsRegion": "eu-west-1",
            "dbName": "shop",
            "dbInstanceClass": "db.t3.micro",
        }
        # Other keys survive
        assert section["packageName"] == "com.example.shop"

    def test_credentials_never_saved(self, store: ProjectStore, config: DeploymentConfig):
        store.save_aws_config(config)

        text = store.path.read_text()
        assert "s3cret" not in text
        assert "admin" not in text

    def test_saved_config_loads_back(self, store: ProjectStore, config: DeploymentConfig):
        store.save_aws_config(config)

        project = store.load()

        assert project.aws is not None
        assert project.aws.bucket_name == "shop-bucket"
        assert project.aws.aws_region == "eu-west-1"
