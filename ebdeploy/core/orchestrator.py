"""Deployment orchestrator.

Coordinates one invocation end to end:

1. initializing - load the project file, resolve new vs. existing deployment
2. prompting - collect the remaining answers
3. configuring - merge answers, create the cloud clients, persist the config
4. deploying - run the provisioning pipeline

The configuration is saved before any cloud call so a failed deployment
still leaves reusable settings behind.
"""

from collections.abc import Callable
from pathlib import Path

from ebdeploy.core.events import EventBus
from ebdeploy.core.pipeline import DeploymentPipeline
from ebdeploy.core.project_store import ProjectStore
from ebdeploy.core.resolver import ExistingDeploymentResolver, apply_answers
from ebdeploy.models.deployment import DeploymentAnswers, DeploymentConfig
from ebdeploy.services.build import BuildRunner, WrapperBuildRunner
from ebdeploy.services.cloud import CloudServiceFacade
from ebdeploy.utils.logging import get_logger

AnswerProvider = Callable[[DeploymentConfig], DeploymentAnswers]
FacadeFactory = Callable[[str], CloudServiceFacade]


def _no_answers(config: DeploymentConfig) -> DeploymentAnswers:
    return DeploymentAnswers()


class DeploymentOrchestrator:
    """Runs the configure-then-provision flow for a project directory."""

    def __init__(
        self,
        store: ProjectStore,
        facade_factory: FacadeFactory,
        builder: BuildRunner,
        events: EventBus | None = None,
        resolver: ExistingDeploymentResolver | None = None,
    ):
        self.store = store
        self.facade_factory = facade_factory
        self.builder = builder
        self.events = events or EventBus()
        self.resolver = resolver or ExistingDeploymentResolver()
        self.logger = get_logger("orchestrator")
        self.pipeline: DeploymentPipeline | None = None

    def prepare(self, answer_provider: AnswerProvider | None = None) -> DeploymentConfig:
        """Resolve, collect and persist the configuration for this run."""
        project = self.store.load()
        config, existing = self.resolver.resolve(project)

        if existing:
            self.logger.info(
                "orchestrator.existing_deployment",
                message="using the configuration from the project file",
            )

        answers = (answer_provider or _no_answers)(config)
        config = apply_answers(config, answers)

        self.store.save_aws_config(config)
        return config

    async def deploy(self, answer_provider: AnswerProvider | None = None) -> DeploymentConfig:
        """Prepare the configuration and run the pipeline.

        Raises:
            ConfigurationError: Before anything is provisioned.
            DeploymentError: A pipeline step failed.
        """
        config = self.prepare(answer_provider)
        return await self.provision(config)

    async def provision(self, config: DeploymentConfig) -> DeploymentConfig:
        """Run the pipeline for an already prepared configuration."""
        cloud = self.facade_factory(config.aws_region)
        self.pipeline = DeploymentPipeline(cloud, self.builder, self.events)
        return await self.pipeline.run(config)


def create_orchestrator(
    project_dir: Path,
    events: EventBus | None = None,
) -> DeploymentOrchestrator:
    """Get an orchestrator wired to AWS and the project's build wrapper."""
    from ebdeploy.services.aws import create_aws_facade

    return DeploymentOrchestrator(
        store=ProjectStore.in_directory(project_dir),
        facade_factory=lambda region: create_aws_facade(region, project_dir),
        builder=WrapperBuildRunner(project_dir),
        events=events,
    )
