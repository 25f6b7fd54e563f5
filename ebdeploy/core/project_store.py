"""Project file storage.

The project file is a JSON document with one namespace object holding the
project settings, e.g. ``{"generator-jhipster": {"baseName": ..., "aws": {...}}}``.
"""

import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ebdeploy.config import settings
from ebdeploy.core.exceptions import ConfigurationError
from ebdeploy.models.deployment import DeploymentConfig
from ebdeploy.models.project import PersistedAwsConfig, ProjectSettings
from ebdeploy.utils.logging import get_logger

logger = get_logger(__name__)


class ProjectStore:
    """Loads project settings and saves the ``aws`` record back."""

    def __init__(self, path: Path, namespace: str | None = None):
        self.path = path
        self.namespace = namespace or settings.project_namespace

    @classmethod
    def in_directory(cls, project_dir: Path) -> "ProjectStore":
        return cls(project_dir / settings.project_file)

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            raise ConfigurationError(
                f"Project file not found: {self.path}",
                {"path": str(self.path)},
            )
        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid project file {self.path}: {e}")

        if not isinstance(document, dict) or not isinstance(
            document.get(self.namespace), dict
        ):
            raise ConfigurationError(
                f"No '{self.namespace}' section in {self.path}",
                {"path": str(self.path), "namespace": self.namespace},
            )
        return document

    def load(self) -> ProjectSettings:
        """Read the project settings."""
        document = self._read()
        try:
            return ProjectSettings.model_validate(document[self.namespace])
        except ValidationError as e:
            raise ConfigurationError(f"Invalid project settings in {self.path}: {e}")

    def save_aws_config(self, config: DeploymentConfig) -> PersistedAwsConfig:
        """Persist the reusable part of the deployment configuration.

        Other keys of the file are left untouched.
        """
        record = PersistedAwsConfig(
            application_name=config.application_name,
            environment_name=config.environment_name,
            bucket_name=config.bucket_name,
            instance_type=config.instance_type,
            aws_region=config.aws_region,
            db_name=config.db_name,
            db_instance_class=config.db_instance_class,
        )

        document = self._read()
        document[self.namespace]["aws"] = record.model_dump(by_alias=True)
        self.path.write_text(json.dumps(document, indent=4) + "\n", encoding="utf-8")

        logger.info("project_store.aws_config_saved", path=str(self.path))
        return record
