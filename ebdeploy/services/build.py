"""Production build of the application.

The build itself is done by the project's Maven or Gradle wrapper; we only
invoke it and pass its output through.
"""

import asyncio
import os
import sys
from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path

from ebdeploy.config import settings
from ebdeploy.core.exceptions import BuildError
from ebdeploy.models.deployment import BuildTool
from ebdeploy.utils.logging import get_logger

logger = get_logger(__name__)


def _write_stdout(line: str) -> None:
    sys.stdout.write(line)
    sys.stdout.flush()


class BuildRunner(ABC):
    """Produces the deployable artifact."""

    @abstractmethod
    async def build(self, build_tool: BuildTool, profile: str = "prod", war: bool = True) -> None:
        """Run the build. Raises BuildError when it fails."""
        pass


class WrapperBuildRunner(BuildRunner):
    """Runs ``mvnw`` or ``gradlew`` in the project directory."""

    def __init__(
        self,
        project_dir: Path,
        output: Callable[[str], None] | None = None,
        timeout: int | None = None,
    ):
        self.project_dir = project_dir
        self.output = output or _write_stdout
        self.timeout = timeout or settings.build_timeout_seconds

    def command(self, build_tool: BuildTool, profile: str, war: bool) -> list[str]:
        """Build the wrapper command line."""
        suffix = ".cmd" if os.name == "nt" else ""
        if build_tool is BuildTool.GRADLE:
            cmd = [str(self.project_dir / f"gradlew{suffix}"), f"-P{profile}"]
            if war:
                cmd.append("-Pwar")
            cmd += ["clean", "bootWar" if war else "bootJar", "-x", "test"]
            return cmd

        profiles = f"{profile},war" if war else profile
        return [
            str(self.project_dir / f"mvnw{suffix}"),
            "-ntp",
            f"-P{profiles}",
            "clean",
            "verify",
            "-DskipTests",
        ]

    async def build(self, build_tool: BuildTool, profile: str = "prod", war: bool = True) -> None:
        cmd = self.command(build_tool, profile, war)
        if not Path(cmd[0]).exists():
            raise BuildError(f"Build wrapper not found: {cmd[0]}")

        logger.info("build.started", cmd=" ".join(cmd), cwd=str(self.project_dir))

        process = await asyncio.create_subprocess_exec(
            *cmd,
            cwd=str(self.project_dir),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )

        try:
            await asyncio.wait_for(self._stream(process), timeout=self.timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise BuildError(f"Build timed out after {self.timeout} seconds")

        if process.returncode != 0:
            logger.error("build.failed", returncode=process.returncode)
            raise BuildError(
                f"Build failed with exit code {process.returncode}",
                returncode=process.returncode,
            )

        logger.info("build.completed")

    async def _stream(self, process: asyncio.subprocess.Process) -> None:
        assert process.stdout is not None
        async for raw in process.stdout:
            self.output(raw.decode(errors="replace"))
        await process.wait()
