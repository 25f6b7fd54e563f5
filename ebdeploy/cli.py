"""Command line entry point."""

import asyncio
from pathlib import Path
from typing import Any

import typer
from pydantic import SecretStr

from ebdeploy import __version__
from ebdeploy.config import settings
from ebdeploy.core.events import Event
from ebdeploy.core.exceptions import EbDeployError
from ebdeploy.core.orchestrator import (
    AnswerProvider,
    DeploymentOrchestrator,
    create_orchestrator,
)
from ebdeploy.models.deployment import CUSTOM, DeploymentAnswers, DeploymentConfig
from ebdeploy.utils.logging import configure_logging

app = typer.Typer(
    help="Build a web application and deploy it to AWS Elastic Beanstalk.",
    no_args_is_help=True,
)

# field -> (prompt text, default derived from the config)
PROMPTS: dict[str, tuple[str, Any]] = {
    "application_name": ("Application name", lambda c: c.base_name),
    "environment_name": ("Environment name", lambda c: f"{c.base_name}-env" if c.base_name else None),
    "bucket_name": ("S3 bucket name", lambda c: f"{c.base_name}-bucket" if c.base_name else None),
    "instance_type": ("EC2 instance type (or 'custom')", lambda c: "t3.micro"),
    "aws_region": ("AWS region", lambda c: settings.default_region),
    "db_name": ("Database name", lambda c: c.base_name),
    "db_instance_class": ("Database instance class (or 'custom')", lambda c: "db.t3.micro"),
}


def build_answer_provider(options: dict[str, Any], interactive: bool) -> AnswerProvider:
    """Answers from command line options, prompting for whatever is still missing."""

    def provider(config: DeploymentConfig) -> DeploymentAnswers:
        values = {k: v for k, v in options.items() if v is not None}
        if not interactive:
            return DeploymentAnswers(**values)

        for field, (text, default) in PROMPTS.items():
            if field not in values and not getattr(config, field):
                values[field] = typer.prompt(text, default=default(config))

        if values.get("instance_type", config.instance_type) == CUSTOM and not values.get(
            "custom_instance_type"
        ):
            values["custom_instance_type"] = typer.prompt("Custom EC2 instance type")
        if values.get("db_instance_class", config.db_instance_class) == CUSTOM and not values.get(
            "custom_db_instance_class"
        ):
            values["custom_db_instance_class"] = typer.prompt("Custom database instance class")

        # Credentials are never persisted, so they are asked every run
        if "db_username" not in values:
            values["db_username"] = typer.prompt("Database username")
        if "db_password" not in values:
            values["db_password"] = SecretStr(
                typer.prompt("Database password", hide_input=True)
            )

        return DeploymentAnswers(**values)

    return provider


def echo_event(event: Event) -> None:
    if event.event_type == "step_started":
        typer.echo()
        typer.secho(event.data["title"], bold=True)
    elif event.event_type == "step_completed" and event.data.get("message"):
        typer.echo(event.data["message"])
    elif event.event_type == "pipeline_completed":
        typer.echo()
        typer.secho(
            f"Deployment of {event.data['application']} / {event.data['environment']} finished",
            fg=typer.colors.GREEN,
            bold=True,
        )


async def _print_events(queue: asyncio.Queue[Event]) -> None:
    while True:
        event = await queue.get()
        echo_event(event)
        if event.is_terminal:
            return


async def run_deploy(
    orchestrator: DeploymentOrchestrator, config: DeploymentConfig
) -> DeploymentConfig:
    """Run the deployment while narrating its progress."""
    queue = orchestrator.events.subscribe()
    printer = asyncio.create_task(_print_events(queue))
    try:
        return await orchestrator.provision(config)
    finally:
        printer.cancel()
        while not queue.empty():
            echo_event(queue.get_nowait())
        orchestrator.events.unsubscribe(queue)


@app.command()
def deploy(
    project_dir: Path = typer.Option(  # noqa: B008
        Path("."), "--project-dir", "-d", help="Project root containing the project file"
    ),
    application_name: str | None = typer.Option(None, help="Elastic Beanstalk application"),
    environment_name: str | None = typer.Option(None, help="Elastic Beanstalk environment"),
    bucket_name: str | None = typer.Option(None, help="S3 bucket for the WAR"),
    instance_type: str | None = typer.Option(None, help="EC2 instance type, or 'custom'"),
    custom_instance_type: str | None = typer.Option(None, help="Used when instance type is 'custom'"),
    region: str | None = typer.Option(None, help="AWS region"),
    db_name: str | None = typer.Option(None, help="RDS database name"),
    db_instance_class: str | None = typer.Option(None, help="RDS instance class, or 'custom'"),
    custom_db_instance_class: str | None = typer.Option(
        None, help="Used when database instance class is 'custom'"
    ),
    db_username: str | None = typer.Option(None, help="Database master username"),
    db_password: str | None = typer.Option(
        None, envvar="EBDEPLOY_DB_PASSWORD", help="Database master password"
    ),
    interactive: bool = typer.Option(True, "--interactive/--no-input", help="Prompt for missing values"),
    log_level: str | None = typer.Option(None, help="DEBUG, INFO, WARNING or ERROR"),
) -> None:
    """Build the application and deploy it to Elastic Beanstalk."""
    configure_logging(log_level.upper() if log_level else None)

    options = {
        "application_name": application_name,
        "environment_name": environment_name,
        "bucket_name": bucket_name,
        "instance_type": instance_type,
        "custom_instance_type": custom_instance_type,
        "aws_region": region,
        "db_name": db_name,
        "db_instance_class": db_instance_class,
        "custom_db_instance_class": custom_db_instance_class,
        "db_username": db_username,
        "db_password": SecretStr(db_password) if db_password is not None else None,
    }

    orchestrator = create_orchestrator(project_dir.resolve())
    provider = build_answer_provider(options, interactive)

    # Prompting blocks on stdin, so it happens before the event loop starts
    try:
        config = orchestrator.prepare(provider)
        asyncio.run(run_deploy(orchestrator, config))
    except EbDeployError as e:
        typer.secho(e.message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


@app.command()
def version() -> None:
    """Print the ebdeploy version."""
    typer.echo(__version__)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
