"""
Shared boto3 plumbing for the ACM, SSM and CloudFormation adapters.

Clients are created lazily from an AwsConfig, and botocore exceptions are
mapped onto the certsync error taxonomy.
"""

import math
from typing import Any, Callable, Optional, TypeVar

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    NoCredentialsError,
    NoRegionError,
    PartialCredentialsError,
    ProfileNotFound,
    ReadTimeoutError,
)

from .config_loader import AwsConfig
from .errors import ApiError, ConfigurationError, TransportError
from .logger import get_logger
from .retry import Backoff, Deadline, with_retry

T = TypeVar("T")

DEFAULT_TIMEOUT = 30.0

_TRANSPORT_ERRORS = (
    EndpointConnectionError,
    ConnectTimeoutError,
    ReadTimeoutError,
    ConnectionClosedError,
)

_CONFIGURATION_ERRORS = (
    NoCredentialsError,
    PartialCredentialsError,
    NoRegionError,
    ProfileNotFound,
)


def create_client(
    service: str,
    aws_config: AwsConfig,
    timeout: float = DEFAULT_TIMEOUT,
):
    """
    Create a boto3 client for a service.

    botocore's own retries are disabled; adapters retry idempotent calls
    through with_retry instead.

    Args:
        service: boto3 service name (e.g. "acm", "ssm")
        aws_config: Region and optional named profile
        timeout: Connect and read timeout in seconds

    Returns:
        boto3 client
    """
    session = boto3.session.Session(
        profile_name=aws_config.profile,
        region_name=aws_config.region,
    )
    return session.client(
        service,
        config=BotoConfig(
            connect_timeout=timeout,
            read_timeout=timeout,
            retries={"mode": "standard", "max_attempts": 1},
        ),
    )


def map_aws_error(error: Exception, provider: str, operation: str) -> Exception:
    """
    Translate a botocore exception into a certsync error.

    Args:
        error: Exception raised by a boto3 call
        provider: Provider name for the resulting error (e.g. "AWS ACM")
        operation: Operation name for the message

    Returns:
        The mapped exception (the original one when no mapping applies)
    """
    if isinstance(error, ClientError):
        details = error.response.get("Error", {})
        code = details.get("Code", "Unknown")
        message = details.get("Message", str(error))
        status = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
        return ApiError(
            f"{operation} failed: {code}: {message}",
            provider=provider,
            status_code=status,
            errors=[{"code": code, "message": message}],
            cause=error,
        )
    if isinstance(error, _CONFIGURATION_ERRORS):
        return ConfigurationError(f"AWS is not configured for {operation}: {error}", cause=error)
    if isinstance(error, _TRANSPORT_ERRORS):
        return TransportError(f"{operation} failed: {error}", provider=provider, cause=error)
    if isinstance(error, BotoCoreError):
        return TransportError(f"{operation} failed: {error}", provider=provider, cause=error)
    return error


class AwsAdapter:
    """
    Base class for adapters backed by one boto3 client.

    An already-built client may be injected (tests pass a MagicMock);
    otherwise one is created on first use.
    """

    service = ""
    provider = "AWS"

    def __init__(
        self,
        aws_config: Optional[AwsConfig] = None,
        client: Any = None,
        dry_run: bool = False,
        timeout: float = DEFAULT_TIMEOUT,
        max_attempts: int = 3,
        backoff: Optional[Backoff] = None,
        deadline: Optional[Deadline] = None,
    ):
        self.aws_config = aws_config or AwsConfig()
        self._client = client
        self._owns_client = client is None
        self._client_timeout: Optional[float] = None
        self.dry_run = dry_run
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.backoff = backoff
        self.deadline = deadline or Deadline.unbounded()
        self.logger = get_logger()

    @property
    def region(self) -> str:
        return self.aws_config.region

    def _request_timeout(self) -> float:
        """Per-request timeout clamped to the deadline, in whole seconds."""
        return float(max(1, math.ceil(self.deadline.timeout(self.timeout))))

    @property
    def client(self):
        """
        Get the boto3 client, creating it if necessary.

        botocore timeouts are fixed when a client is built, so an owned
        client is rebuilt whenever the remaining deadline falls below the
        timeout it was created with.
        """
        if not self._owns_client:
            return self._client

        timeout = self._request_timeout()
        if self._client is None or timeout < self._client_timeout:
            self._client = create_client(self.service, self.aws_config, timeout)
            self._client_timeout = timeout
            self.logger.debug(
                f"Created {self.service} client in {self.region} (timeout {timeout:.0f}s)"
            )
        return self._client

    def _call(self, operation: str, func: Callable[[], T]) -> T:
        """Run one SDK call under the deadline with error mapping."""
        self.deadline.check(operation, provider=self.provider)
        try:
            return func()
        except (ClientError, BotoCoreError) as e:
            raise map_aws_error(e, self.provider, operation) from e

    def _call_with_retry(self, operation: str, func: Callable[[], T]) -> T:
        """Run an idempotent SDK call with bounded retry."""
        return with_retry(
            lambda: self._call(operation, func),
            max_attempts=self.max_attempts,
            backoff=self.backoff,
            deadline=self.deadline,
            description=operation,
        )
