"""
AWS SSM Parameter Store operations.

Records the ACM certificate ARN under a well-known parameter name so that
infrastructure-as-code stacks can look it up.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .aws import AwsAdapter
from .config_loader import DEFAULT_PARAMETER_NAME
from .errors import ApiError, ParameterAlreadyExistsError
from .logger import get_logger

DEFAULT_DESCRIPTION = "ACM certificate ARN for the Cloudflare origin certificate"

ACTION_CREATED = "created"
ACTION_UPDATED = "updated"
ACTION_NO_CHANGE = "no-change"
ACTION_DIFFERS = "differs"
ACTION_DRY_RUN = "dry-run"


@dataclass
class Parameter:
    """A stored parameter value and its version."""
    name: str
    value: str
    version: int
    last_modified: Optional[datetime] = None
    description: Optional[str] = None


@dataclass
class PutResult:
    version: int
    action: str


@dataclass
class SaveOutcome:
    """
    Result of saving a value at the well-known parameter name.

    success is False only for "differs": the stored value was kept because
    the update was not forced.
    """
    success: bool
    action: str
    parameter_name: str
    new_value: str
    stored_value: Optional[str] = None
    version: Optional[int] = None


class ParameterStore(ABC):
    """
    Durable key/value store for the certificate ARN.

    Implementations set parameter_name, description and dry_run.
    """

    parameter_name: str = DEFAULT_PARAMETER_NAME
    description: str = DEFAULT_DESCRIPTION
    dry_run: bool = False

    @abstractmethod
    def get(self, name: str) -> Optional[Parameter]:
        pass

    @abstractmethod
    def put(
        self,
        name: str,
        value: str,
        overwrite: bool = True,
        description: Optional[str] = None,
    ) -> PutResult:
        pass

    def get_certificate_arn(self) -> Optional[str]:
        """Read the certificate ARN from the well-known parameter."""
        parameter = self.get(self.parameter_name)
        return parameter.value if parameter else None

    def save(self, new_value: str, force_update: bool = False) -> SaveOutcome:
        """
        Save a value at the well-known parameter name.

        - missing parameter: created
        - same value: no-change, nothing written
        - different value without force_update: differs, nothing written
        - different value with force_update: overwritten
        A dry run reads but never writes.

        Args:
            new_value: Value to store
            force_update: Overwrite a differing stored value

        Returns:
            SaveOutcome
        """
        logger = get_logger()
        name = self.parameter_name
        current = self.get(name)
        stored_value = current.value if current else None

        if self.dry_run:
            logger.dry_run(f"Would save {new_value} to {name}")
            return SaveOutcome(
                success=True,
                action=ACTION_DRY_RUN,
                parameter_name=name,
                new_value=new_value,
                stored_value=stored_value,
                version=current.version if current else None,
            )

        if current is None:
            result = self.put(name, new_value, overwrite=False, description=self.description)
            return SaveOutcome(True, result.action, name, new_value, None, result.version)

        if current.value == new_value:
            logger.info(f"Parameter {name} already holds the current value")
            return SaveOutcome(True, ACTION_NO_CHANGE, name, new_value, stored_value, current.version)

        if not force_update:
            logger.warning(
                f"Parameter {name} holds a different value ({stored_value}); "
                f"not overwriting without force_update"
            )
            return SaveOutcome(False, ACTION_DIFFERS, name, new_value, stored_value, current.version)

        result = self.put(name, new_value, overwrite=True, description=self.description)
        return SaveOutcome(True, result.action, name, new_value, stored_value, result.version)


class SsmParameterStore(AwsAdapter, ParameterStore):
    """SSM Parameter Store backend (String, Standard tier)."""

    service = "ssm"
    provider = "AWS SSM"

    def __init__(
        self,
        parameter_name: str = DEFAULT_PARAMETER_NAME,
        description: str = DEFAULT_DESCRIPTION,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.parameter_name = parameter_name
        self.description = description

    def get(self, name: str) -> Optional[Parameter]:
        """
        Read a parameter.

        Args:
            name: Parameter name

        Returns:
            Parameter, or None if it does not exist
        """
        try:
            response = self._call_with_retry(
                "GetParameter",
                lambda: self.client.get_parameter(Name=name, WithDecryption=True),
            )
        except ApiError as e:
            if "ParameterNotFound" in e.error_codes:
                self.logger.debug(f"Parameter {name} does not exist")
                return None
            raise

        data = response["Parameter"]
        return Parameter(
            name=data["Name"],
            value=data["Value"],
            version=data["Version"],
            last_modified=data.get("LastModifiedDate"),
        )

    def put(
        self,
        name: str,
        value: str,
        overwrite: bool = True,
        description: Optional[str] = None,
    ) -> PutResult:
        """
        Write a parameter.

        Args:
            name: Parameter name
            value: Parameter value
            overwrite: Replace an existing value
            description: Optional description

        Returns:
            PutResult with the new version; action is "created" for version 1

        Raises:
            ParameterAlreadyExistsError: If overwrite is False and name exists
        """
        params = {
            "Name": name,
            "Value": value,
            "Type": "String",
            "Tier": "Standard",
            "Overwrite": overwrite,
        }
        if description:
            params["Description"] = description

        try:
            response = self._call("PutParameter", lambda: self.client.put_parameter(**params))
        except ApiError as e:
            if "ParameterAlreadyExists" in e.error_codes:
                raise ParameterAlreadyExistsError(
                    f"Parameter {name} already exists",
                    provider=self.provider,
                    status_code=e.status_code,
                    errors=e.errors,
                    cause=e.cause,
                ) from e
            raise

        version = response["Version"]
        action = ACTION_UPDATED if version > 1 else ACTION_CREATED
        self.logger.success(f"Parameter {name} {action} (version {version})")
        return PutResult(version=version, action=action)
