"""Project settings data models.

These mirror the keys of the project file. Field aliases are the
camelCase names used on disk.
"""

from pydantic import BaseModel, ConfigDict, Field


class PersistedAwsConfig(BaseModel):
    """The ``aws`` record saved after configuration. Never holds credentials."""

    model_config = ConfigDict(populate_by_name=True)

    application_name: str | None = Field(default=None, alias="applicationName")
    environment_name: str | None = Field(default=None, alias="environmentName")
    bucket_name: str | None = Field(default=None, alias="bucketName")
    instance_type: str | None = Field(default=None, alias="instanceType")
    aws_region: str | None = Field(default=None, alias="awsRegion")
    db_name: str | None = Field(default=None, alias="dbName")
    db_instance_class: str | None = Field(default=None, alias="dbInstanceClass")


class ProjectSettings(BaseModel):
    """Project facts the deployment depends on."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    base_name: str | None = Field(default=None, alias="baseName")
    build_tool: str = Field(default="maven", alias="buildTool")
    prod_database_type: str | None = Field(default=None, alias="prodDatabaseType")
    aws: PersistedAwsConfig | None = None
