"""AWS implementation of the cloud services.

S3 stores the WAR, RDS hosts the database, IAM holds the Elastic Beanstalk
roles and Elastic Beanstalk runs the application. boto3 is blocking, so
every call runs in a worker thread.
"""

import asyncio
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import boto3
from botocore.exceptions import ClientError, WaiterError

from ebdeploy.config import settings
from ebdeploy.core.exceptions import ProviderError
from ebdeploy.models.deployment import (
    ApplicationRequest,
    BuildTool,
    DatabaseUrlResult,
    OperationResult,
    UploadResult,
)
from ebdeploy.services.cloud import (
    CloudServiceFacade,
    DatabaseService,
    HostingService,
    IdentityService,
    StorageService,
)
from ebdeploy.utils.logging import get_logger

logger = get_logger(__name__)

EC2_ROLE_NAME = "aws-elasticbeanstalk-ec2-role"
SERVICE_ROLE_NAME = "aws-elasticbeanstalk-service-role"

EC2_ROLE_POLICIES = [
    "arn:aws:iam::aws:policy/AWSElasticBeanstalkWebTier",
]
SERVICE_ROLE_POLICIES = [
    "arn:aws:iam::aws:policy/service-role/AWSElasticBeanstalkEnhancedHealth",
    "arn:aws:iam::aws:policy/AWSElasticBeanstalkManagedUpdatesCustomerRolePolicy",
]

_INACTIVE_ENVIRONMENT_STATUSES = {"Terminating", "Terminated"}


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


def _provider_error(error: ClientError) -> ProviderError:
    details = error.response.get("Error", {})
    return ProviderError(details.get("Message") or None, details.get("Code") or None)


def _assume_role_policy(service: str) -> str:
    return json.dumps(
        {
            "Version": "2012-10-17",
            "Statement": [
                {
                    "Effect": "Allow",
                    "Principal": {"Service": service},
                    "Action": "sts:AssumeRole",
                }
            ],
        }
    )


def find_artifact(project_dir: Path, build_tool: BuildTool) -> Path:
    """Locate the WAR produced by the last build."""
    directory = project_dir / ("build/libs" if build_tool is BuildTool.GRADLE else "target")
    wars = [p for p in directory.glob("*.war") if p.is_file()]
    if not wars:
        raise ProviderError(f"No WAR file found in {directory}")
    # Newest wins if stale artifacts are lying around
    return max(wars, key=lambda p: p.stat().st_mtime)


class S3StorageService(StorageService):
    """Stores the artifact in an S3 bucket."""

    def __init__(self, client: Any, region: str, project_dir: Path):
        self.client = client
        self.region = region
        self.project_dir = project_dir

    async def create_bucket(self, name: str) -> OperationResult:
        return await asyncio.to_thread(self._create_bucket, name)

    async def upload_artifact(self, bucket: str, build_tool: BuildTool) -> UploadResult:
        return await asyncio.to_thread(self._upload_artifact, bucket, build_tool)

    def _create_bucket(self, name: str) -> OperationResult:
        try:
            self.client.head_bucket(Bucket=name)
            return OperationResult(message=f"Bucket {name} already exists")
        except ClientError as e:
            code = _error_code(e)
            if code in ("403", "Forbidden", "AccessDenied"):
                # Someone else owns it
                raise ProviderError(None, code)
            if code not in ("404", "NoSuchBucket", "NotFound"):
                raise _provider_error(e)

        params: dict[str, Any] = {"Bucket": name}
        if self.region != "us-east-1":
            params["CreateBucketConfiguration"] = {"LocationConstraint": self.region}

        try:
            self.client.create_bucket(**params)
        except ClientError as e:
            code = _error_code(e)
            if code == "BucketAlreadyOwnedByYou":
                return OperationResult(message=f"Bucket {name} already exists")
            if code == "BucketAlreadyExists":
                raise ProviderError(None, code)
            raise _provider_error(e)

        logger.info("aws.s3.bucket_created", bucket=name, region=self.region)
        return OperationResult(message=f"Bucket {name} created successfully")

    def _upload_artifact(self, bucket: str, build_tool: BuildTool) -> UploadResult:
        war = find_artifact(self.project_dir, build_tool)
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
        war_key = f"{war.stem}-{timestamp}.war"

        try:
            self.client.upload_file(str(war), bucket, war_key)
        except ClientError as e:
            raise _provider_error(e)

        logger.info("aws.s3.artifact_uploaded", bucket=bucket, key=war_key)
        return UploadResult(
            war_key=war_key,
            message=f"WAR file uploaded to s3://{bucket}/{war_key}",
        )


class RdsDatabaseService(DatabaseService):
    """Creates the RDS instance and waits for it to come up."""

    def __init__(
        self,
        client: Any,
        allocated_storage: int | None = None,
        wait_delay: int | None = None,
        wait_max_attempts: int | None = None,
    ):
        self.client = client
        self.allocated_storage = allocated_storage or settings.db_allocated_storage
        self.wait_delay = wait_delay or settings.db_wait_delay_seconds
        self.wait_max_attempts = wait_max_attempts or settings.db_wait_max_attempts

    async def create_database(
        self,
        instance_class: str,
        name: str,
        engine: str,
        username: str,
        password: str,
    ) -> OperationResult:
        return await asyncio.to_thread(
            self._create_database, instance_class, name, engine, username, password
        )

    async def resolve_url(self, name: str, engine: str) -> DatabaseUrlResult:
        return await asyncio.to_thread(self._resolve_url, name, engine)

    def _create_database(
        self,
        instance_class: str,
        name: str,
        engine: str,
        username: str,
        password: str,
    ) -> OperationResult:
        try:
            self.client.create_db_instance(
                DBInstanceIdentifier=name,
                DBName=name,
                DBInstanceClass=instance_class,
                Engine=engine,
                MasterUsername=username,
                MasterUserPassword=password,
                AllocatedStorage=self.allocated_storage,
                PubliclyAccessible=True,
            )
        except ClientError as e:
            if _error_code(e) == "DBInstanceAlreadyExists":
                return OperationResult(message=f"Database instance {name} already exists")
            raise _provider_error(e)

        logger.info("aws.rds.instance_created", name=name, engine=engine)
        return OperationResult(message=f"Database instance {name} created successfully")

    def _resolve_url(self, name: str, engine: str) -> DatabaseUrlResult:
        waiter = self.client.get_waiter("db_instance_available")
        try:
            waiter.wait(
                DBInstanceIdentifier=name,
                WaiterConfig={"Delay": self.wait_delay, "MaxAttempts": self.wait_max_attempts},
            )
        except WaiterError as e:
            raise ProviderError(f"Timed out waiting for database {name}: {e}")

        try:
            instances = self.client.describe_db_instances(DBInstanceIdentifier=name)
        except ClientError as e:
            raise _provider_error(e)

        endpoint = instances["DBInstances"][0].get("Endpoint")
        if not endpoint:
            raise ProviderError(f"Database {name} has no endpoint")

        db_url = f"jdbc:{engine}://{endpoint['Address']}:{endpoint['Port']}/{name}"
        return DatabaseUrlResult(db_url=db_url, message=f"Database available at {db_url}")


class IamIdentityService(IdentityService):
    """Makes sure the Elastic Beanstalk roles and instance profile exist."""

    def __init__(self, client: Any):
        self.client = client

    async def verify_roles(self) -> None:
        await asyncio.to_thread(self._verify_roles)

    def _verify_roles(self) -> None:
        try:
            self._ensure_role(EC2_ROLE_NAME, "ec2.amazonaws.com", EC2_ROLE_POLICIES)
            self._ensure_instance_profile(EC2_ROLE_NAME)
            self._ensure_role(
                SERVICE_ROLE_NAME, "elasticbeanstalk.amazonaws.com", SERVICE_ROLE_POLICIES
            )
        except ClientError as e:
            raise _provider_error(e)

    def _exists(self, call: Any, **kwargs: Any) -> dict[str, Any] | None:
        try:
            return call(**kwargs)
        except ClientError as e:
            if _error_code(e) == "NoSuchEntity":
                return None
            raise

    def _ensure_role(self, role_name: str, service: str, policies: list[str]) -> None:
        if self._exists(self.client.get_role, RoleName=role_name) is not None:
            return

        self.client.create_role(
            RoleName=role_name,
            AssumeRolePolicyDocument=_assume_role_policy(service),
        )
        for policy_arn in policies:
            self.client.attach_role_policy(RoleName=role_name, PolicyArn=policy_arn)
        logger.info("aws.iam.role_created", role=role_name)

    def _ensure_instance_profile(self, name: str) -> None:
        response = self._exists(self.client.get_instance_profile, InstanceProfileName=name)
        if response is None:
            self.client.create_instance_profile(InstanceProfileName=name)
            roles: list[dict[str, Any]] = []
            logger.info("aws.iam.instance_profile_created", profile=name)
        else:
            roles = response["InstanceProfile"].get("Roles", [])

        if not any(role.get("RoleName") == name for role in roles):
            self.client.add_role_to_instance_profile(InstanceProfileName=name, RoleName=name)


class ElasticBeanstalkHostingService(HostingService):
    """Creates or updates the Elastic Beanstalk environment."""

    def __init__(self, client: Any, solution_stack_name: str | None = None):
        self.client = client
        self.solution_stack_name = solution_stack_name or settings.solution_stack_name

    async def create_or_update_application(
        self, request: ApplicationRequest
    ) -> OperationResult:
        return await asyncio.to_thread(self._create_or_update_application, request)

    def option_settings(self, request: ApplicationRequest) -> list[dict[str, str]]:
        env_namespace = "aws:elasticbeanstalk:application:environment"
        return [
            {
                "Namespace": "aws:autoscaling:launchconfiguration",
                "OptionName": "InstanceType",
                "Value": request.instance_type,
            },
            {
                "Namespace": "aws:autoscaling:launchconfiguration",
                "OptionName": "IamInstanceProfile",
                "Value": EC2_ROLE_NAME,
            },
            {
                "Namespace": "aws:elasticbeanstalk:environment",
                "OptionName": "ServiceRole",
                "Value": SERVICE_ROLE_NAME,
            },
            {
                "Namespace": env_namespace,
                "OptionName": "SPRING_PROFILES_ACTIVE",
                "Value": "prod,aws",
            },
            {
                "Namespace": env_namespace,
                "OptionName": "SPRING_DATASOURCE_URL",
                "Value": request.db_url,
            },
            {
                "Namespace": env_namespace,
                "OptionName": "SPRING_DATASOURCE_USERNAME",
                "Value": request.db_username,
            },
            {
                "Namespace": env_namespace,
                "OptionName": "SPRING_DATASOURCE_PASSWORD",
                "Value": request.db_password.get_secret_value(),
            },
        ]

    def _create_or_update_application(self, request: ApplicationRequest) -> OperationResult:
        app_name = request.application_name
        env_name = request.environment_name
        version_label = request.war_key.removesuffix(".war")

        try:
            apps = self.client.describe_applications(ApplicationNames=[app_name])
            if not apps.get("Applications"):
                self.client.create_application(ApplicationName=app_name)
                logger.info("aws.eb.application_created", application=app_name)

            self.client.create_application_version(
                ApplicationName=app_name,
                VersionLabel=version_label,
                SourceBundle={"S3Bucket": request.bucket_name, "S3Key": request.war_key},
            )

            environments = self.client.describe_environments(
                ApplicationName=app_name,
                EnvironmentNames=[env_name],
            ).get("Environments", [])
            live = [
                env
                for env in environments
                if env.get("Status") not in _INACTIVE_ENVIRONMENT_STATUSES
            ]

            if live:
                if not request.update:
                    logger.warning("aws.eb.environment_exists", environment=env_name)
                self.client.update_environment(
                    ApplicationName=app_name,
                    EnvironmentName=env_name,
                    VersionLabel=version_label,
                    OptionSettings=self.option_settings(request),
                )
                message = f"Environment {env_name} updated to version {version_label}"
            else:
                if request.update:
                    logger.warning("aws.eb.environment_missing", environment=env_name)
                self.client.create_environment(
                    ApplicationName=app_name,
                    EnvironmentName=env_name,
                    SolutionStackName=self.solution_stack_name,
                    VersionLabel=version_label,
                    OptionSettings=self.option_settings(request),
                )
                message = f"Environment {env_name} created with version {version_label}"
        except ClientError as e:
            raise _provider_error(e)

        logger.info("aws.eb.environment_deployed", application=app_name, environment=env_name)
        return OperationResult(message=message)


def client_kwargs() -> dict[str, Any]:
    """Extra kwargs for boto3 clients, e.g. a LocalStack endpoint."""
    if settings.aws_endpoint_url:
        return {"endpoint_url": settings.aws_endpoint_url}
    return {}


def create_aws_facade(
    region: str,
    project_dir: Path,
    session: Any | None = None,
) -> CloudServiceFacade:
    """Build the AWS-backed facade for one region."""
    session = session or boto3.session.Session(region_name=region)
    kwargs = client_kwargs()

    return CloudServiceFacade(
        storage=S3StorageService(session.client("s3", **kwargs), region, project_dir),
        database=RdsDatabaseService(session.client("rds", **kwargs)),
        identity=IamIdentityService(session.client("iam", **kwargs)),
        hosting=ElasticBeanstalkHostingService(session.client("elasticbeanstalk", **kwargs)),
    )
