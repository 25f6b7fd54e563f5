"""Cloud capability interface.

The pipeline only talks to the cloud through these four service groups.
Every operation is async and either returns a result model or raises
:class:`~ebdeploy.core.exceptions.ProviderError`.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from ebdeploy.models.deployment import (
    ApplicationRequest,
    BuildTool,
    DatabaseUrlResult,
    OperationResult,
    UploadResult,
)


class StorageService(ABC):
    """Object storage for the built artifact."""

    @abstractmethod
    async def create_bucket(self, name: str) -> OperationResult:
        """Ensure the bucket exists. Must succeed if it already exists and is ours."""
        pass

    @abstractmethod
    async def upload_artifact(self, bucket: str, build_tool: BuildTool) -> UploadResult:
        """Upload the freshly built artifact and return its key."""
        pass


class DatabaseService(ABC):
    """Managed relational database."""

    @abstractmethod
    async def create_database(
        self,
        instance_class: str,
        name: str,
        engine: str,
        username: str,
        password: str,
    ) -> OperationResult:
        pass

    @abstractmethod
    async def resolve_url(self, name: str, engine: str) -> DatabaseUrlResult:
        """Wait for the database to be reachable and build its connection string.

        Implementations bound their own waiting and raise ProviderError when
        the database does not become available in time.
        """
        pass


class IdentityService(ABC):
    """Access roles required by the hosting platform."""

    @abstractmethod
    async def verify_roles(self) -> None:
        """Confirm the required roles exist, creating them when allowed."""
        pass


class HostingService(ABC):
    """Platform-managed application environments."""

    @abstractmethod
    async def create_or_update_application(
        self, request: ApplicationRequest
    ) -> OperationResult:
        pass


@dataclass
class CloudServiceFacade:
    """The four capability groups one deployment needs."""

    storage: StorageService
    database: DatabaseService
    identity: IdentityService
    hosting: HostingService
