"""Collaborators the deployment pipeline depends on."""

from ebdeploy.services.build import BuildRunner, WrapperBuildRunner
from ebdeploy.services.cloud import (
    CloudServiceFacade,
    DatabaseService,
    HostingService,
    IdentityService,
    StorageService,
)

__all__ = [
    "BuildRunner",
    "WrapperBuildRunner",
    "CloudServiceFacade",
    "DatabaseService",
    "HostingService",
    "IdentityService",
    "StorageService",
]
