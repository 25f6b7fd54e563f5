"""Pytest configuration and fixtures."""

import json
from pathlib import Path
from typing import Any

import pytest
from pydantic import SecretStr

from ebdeploy.core.events import EventBus
from ebdeploy.core.pipeline import DeploymentPipeline
from ebdeploy.models.deployment import (
    ApplicationRequest,
    BuildTool,
    DatabaseEngine,
    DatabaseUrlResult,
    DeploymentConfig,
    OperationResult,
    UploadResult,
)
from ebdeploy.services.build import BuildRunner
from ebdeploy.services.cloud import (
    CloudServiceFacade,
    DatabaseService,
    HostingService,
    IdentityService,
    StorageService,
)


class CallRecorder:
    """Shared call log for the fake collaborators.

    Setting ``failures[call]`` makes the call named ``call`` raise. The call
    name is positional-only so fakes can record a ``name`` argument.
    """

    def __init__(self):
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.failures: dict[str, Exception] = {}

    def record(self, call: str, /, **kwargs: Any) -> None:
        self.calls.append((call, kwargs))
        if call in self.failures:
            raise self.failures[call]

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def kwargs(self, name: str) -> dict[str, Any]:
        for call_name, kwargs in self.calls:
            if call_name == name:
                return kwargs
        raise KeyError(name)


class FakeStorage(StorageService):
    def __init__(self, recorder: CallRecorder):
        self.recorder = recorder

    async def create_bucket(self, name: str) -> OperationResult:
        self.recorder.record("create_bucket", name=name)
        return OperationResult(message=f"Bucket {name} created")

    async def upload_artifact(self, bucket: str, build_tool: BuildTool) -> UploadResult:
        self.recorder.record("upload_artifact", bucket=bucket, build_tool=build_tool)
        return UploadResult(war_key="shop-20240101.war", message="Uploaded")


class FakeDatabase(DatabaseService):
    def __init__(self, recorder: CallRecorder):
        self.recorder = recorder

    async def create_database(
        self,
        instance_class: str,
        name: str,
        engine: str,
        username: str,
        password: str,
    ) -> OperationResult:
        self.recorder.record(
            "create_database",
            instance_class=instance_class,
            name=name,
            engine=engine,
            username=username,
            password=password,
        )
        return OperationResult(message="Database created")

    async def resolve_url(self, name: str, engine: str) -> DatabaseUrlResult:
        self.recorder.record("resolve_url", name=name, engine=engine)
        return DatabaseUrlResult(
            db_url=f"jdbc:{engine}://db.example.com:5432/{name}",
            message="Database ready",
        )


class FakeIdentity(IdentityService):
    def __init__(self, recorder: CallRecorder):
        self.recorder = recorder

    async def verify_roles(self) -> None:
        self.recorder.record("verify_roles")


class FakeHosting(HostingService):
    def __init__(self, recorder: CallRecorder):
        self.recorder = recorder

    async def create_or_update_application(
        self, request: ApplicationRequest
    ) -> OperationResult:
        self.recorder.record("create_or_update_application", request=request)
        return OperationResult(message="Environment deployed")


class FakeBuilder(BuildRunner):
    def __init__(self, recorder: CallRecorder):
        self.recorder = recorder

    async def build(self, build_tool: BuildTool, profile: str = "prod", war: bool = True) -> None:
        self.recorder.record("build", build_tool=build_tool, profile=profile, war=war)


@pytest.fixture
def recorder() -> CallRecorder:
    return CallRecorder()


@pytest.fixture
def cloud(recorder: CallRecorder) -> CloudServiceFacade:
    return CloudServiceFacade(
        storage=FakeStorage(recorder),
        database=FakeDatabase(recorder),
        identity=FakeIdentity(recorder),
        hosting=FakeHosting(recorder),
    )


@pytest.fixture
def builder(recorder: CallRecorder) -> FakeBuilder:
    return FakeBuilder(recorder)


@pytest.fixture
def events() -> EventBus:
    return EventBus()


@pytest.fixture
def pipeline(
    cloud: CloudServiceFacade, builder: FakeBuilder, events: EventBus
) -> DeploymentPipeline:
    return DeploymentPipeline(cloud, builder, events)


@pytest.fixture
def config() -> DeploymentConfig:
    """A complete configuration for a new deployment."""
    return DeploymentConfig(
        base_name="shop",
        build_tool=BuildTool.MAVEN,
        application_name="shop",
        environment_name="shop-env",
        bucket_name="shop-bucket",
        instance_type="t3.micro",
        aws_region="eu-west-1",
        db_name="shop",
        db_engine=DatabaseEngine.POSTGRES,
        db_instance_class="db.t3.micro",
        db_username="admin",
        db_password=SecretStr("s3cret"),
    )


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """A project directory with a minimal project file."""
    document = {
        "generator-jhipster": {
            "baseName": "shop",
            "buildTool": "maven",
            "prodDatabaseType": "postgresql",
            "packageName": "com.example.shop",
        }
    }
    (tmp_path / ".yo-rc.json").write_text(json.dumps(document))
    return tmp_path


@pytest.fixture
def update_project_file(project_dir: Path):
    """Rewrite the project file with some settings replaced."""

    def update(**overrides: Any) -> Path:
        path = project_dir / ".yo-rc.json"
        document = json.loads(path.read_text())
        document["generator-jhipster"].update(overrides)
        path.write_text(json.dumps(document))
        return path

    return update
