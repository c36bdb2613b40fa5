"""
Configuration loading, validation, and parsing.

Loads configuration from YAML files and provides typed access to
configuration values. The core modules never read the environment or
files themselves; they receive the Config objects built here.
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .errors import ConfigurationError
from .logger import get_logger, register_secret


DEFAULT_AWS_REGION = "ap-northeast-1"
DEFAULT_PARAMETER_NAME = "/certsync/certificate-arn"
CLOUDFLARE_API_BASE_URL = "https://api.cloudflare.com/client/v4"

# Validity periods accepted by the Cloudflare Origin CA API
VALID_ORIGIN_CA_VALIDITY_DAYS = (7, 30, 90, 365, 730, 1095, 5475)

# TTL=1 means "automatic" on Cloudflare
AUTOMATIC_TTL = 1

_PLACEHOLDER_PATTERN = re.compile(r"^\$\{[^}]+\}$")


@dataclass
class CloudflareConfig:
    """
    Cloudflare zone and credentials.

    The Origin CA client authenticates with exactly one credential mode:
    origin_ca_key when set, otherwise api_token. DNS operations always
    need api_token.
    """
    zone_id: str
    origin_ca_key: Optional[str] = None
    api_token: Optional[str] = None
    base_url: str = CLOUDFLARE_API_BASE_URL

    def __repr__(self) -> str:
        return (
            f"CloudflareConfig(zone_id={self.zone_id!r}, "
            f"origin_ca_key={'***' if self.origin_ca_key else None}, "
            f"api_token={'***' if self.api_token else None})"
        )


@dataclass
class AwsConfig:
    """AWS region and named profile for ACM, SSM and CloudFormation."""
    region: str = DEFAULT_AWS_REGION
    profile: Optional[str] = None


@dataclass
class CertificateSettings:
    """Wildcard certificate settings."""
    hostnames: List[str] = field(default_factory=list)
    renewal_threshold_days: int = 90
    validity_days: int = 365
    parameter_name: str = DEFAULT_PARAMETER_NAME

    @property
    def wildcard_hostname(self) -> str:
        """The canonical wildcard hostname (e.g. "*.example.com")."""
        for hostname in self.hostnames:
            if hostname.startswith("*."):
                return hostname
        raise ConfigurationError("No wildcard hostname configured")


@dataclass
class CustomDomainConfig:
    """
    Custom-domain DNS settings.

    domain_name/target may be given directly; otherwise they are read from
    the outputs of stack_name.
    """
    stack_name: Optional[str] = None
    domain_name: Optional[str] = None
    target: Optional[str] = None
    proxied: bool = True
    ttl: int = AUTOMATIC_TTL


@dataclass
class Settings:
    """Run settings."""
    dry_run: bool = False
    force_update: bool = False
    timeout_seconds: Optional[float] = None
    request_timeout_seconds: float = 30.0
    max_attempts: int = 3


@dataclass
class Config:
    """Root configuration object."""
    cloudflare: CloudflareConfig
    aws: AwsConfig = field(default_factory=AwsConfig)
    certificate: CertificateSettings = field(default_factory=CertificateSettings)
    custom_domain: CustomDomainConfig = field(default_factory=CustomDomainConfig)
    settings: Settings = field(default_factory=Settings)


def _expand_env_vars(value: Any) -> Any:
    """
    Expand environment variables in string values.

    Supports ${VAR_NAME} syntax. Unset variables are left as-is.

    Args:
        value: Value to expand (string, dict, or list)

    Returns:
        Value with environment variables expanded
    """
    if isinstance(value, str):
        pattern = r"\$\{([^}]+)\}"

        def replace(match):
            var_name = match.group(1)
            return os.environ.get(var_name, match.group(0))

        return re.sub(pattern, replace, value)

    elif isinstance(value, dict):
        return {k: _expand_env_vars(v) for k, v in value.items()}

    elif isinstance(value, list):
        return [_expand_env_vars(item) for item in value]

    return value


def _optional_str(value: Any) -> Optional[str]:
    """Normalize blank strings and unexpanded ${VAR} placeholders to None."""
    if value is None:
        return None
    value = str(value).strip()
    if not value or _PLACEHOLDER_PATTERN.match(value):
        return None
    return value


def _parse_cloudflare(data: Dict[str, Any]) -> CloudflareConfig:
    zone_id = _optional_str(data.get("zone_id"))
    if not zone_id:
        raise ConfigurationError("cloudflare.zone_id is required")

    config = CloudflareConfig(
        zone_id=zone_id,
        origin_ca_key=_optional_str(data.get("origin_ca_key")),
        api_token=_optional_str(data.get("api_token")),
        base_url=data.get("base_url", CLOUDFLARE_API_BASE_URL).rstrip("/"),
    )

    if not config.origin_ca_key and not config.api_token:
        raise ConfigurationError(
            "Missing Cloudflare credentials. "
            "Set cloudflare.origin_ca_key or cloudflare.api_token."
        )

    register_secret(config.origin_ca_key)
    register_secret(config.api_token)
    return config


def _parse_aws(data: Dict[str, Any]) -> AwsConfig:
    return AwsConfig(
        region=_optional_str(data.get("region")) or DEFAULT_AWS_REGION,
        profile=_optional_str(data.get("profile")),
    )


def _parse_certificate(data: Dict[str, Any]) -> CertificateSettings:
    """
    Parse certificate settings.

    Args:
        data: Raw certificate data from YAML

    Returns:
        CertificateSettings instance
    """
    hostnames = data.get("hostnames", [])
    if isinstance(hostnames, str):
        hostnames = [h.strip() for h in hostnames.split(",") if h.strip()]

    settings = CertificateSettings(
        hostnames=hostnames,
        renewal_threshold_days=data.get("renewal_threshold_days", 90),
        validity_days=data.get("validity_days", 365),
        parameter_name=data.get("parameter_name", DEFAULT_PARAMETER_NAME),
    )
    validate_certificate_settings(settings)
    return settings


def validate_certificate_settings(settings: CertificateSettings) -> None:
    """
    Validate certificate settings.

    Raises:
        ConfigurationError: If a value is missing or out of range
    """
    if not settings.hostnames:
        raise ConfigurationError("certificate.hostnames must list at least one hostname")
    # Raises when no wildcard entry exists
    settings.wildcard_hostname

    if settings.renewal_threshold_days < 0:
        raise ConfigurationError("certificate.renewal_threshold_days must not be negative")

    if settings.validity_days not in VALID_ORIGIN_CA_VALIDITY_DAYS:
        raise ConfigurationError(
            f"Invalid certificate.validity_days '{settings.validity_days}'. "
            f"Must be one of: {', '.join(map(str, VALID_ORIGIN_CA_VALIDITY_DAYS))}"
        )

    if not settings.parameter_name.startswith("/"):
        raise ConfigurationError("certificate.parameter_name must be an absolute path")


def _parse_custom_domain(data: Dict[str, Any]) -> CustomDomainConfig:
    config = CustomDomainConfig(
        stack_name=_optional_str(data.get("stack_name")),
        domain_name=_optional_str(data.get("domain_name")),
        target=_optional_str(data.get("target")),
        proxied=data.get("proxied", True),
        ttl=data.get("ttl", AUTOMATIC_TTL),
    )

    # Cloudflare accepts 1 (automatic) or 60..86400
    if config.ttl != AUTOMATIC_TTL and not 60 <= config.ttl <= 86400:
        raise ConfigurationError(
            f"Invalid custom_domain.ttl '{config.ttl}'. Use 1 (automatic) or 60-86400"
        )

    return config


def _parse_settings(data: Dict[str, Any]) -> Settings:
    settings = Settings(
        dry_run=data.get("dry_run", False),
        force_update=data.get("force_update", False),
        timeout_seconds=data.get("timeout_seconds"),
        request_timeout_seconds=data.get("request_timeout_seconds", 30.0),
        max_attempts=data.get("max_attempts", 3),
    )

    if settings.max_attempts < 1:
        raise ConfigurationError("settings.max_attempts must be at least 1")
    if settings.timeout_seconds is not None and settings.timeout_seconds <= 0:
        raise ConfigurationError("settings.timeout_seconds must be positive")

    return settings


def parse_config(raw_data: Dict[str, Any]) -> Config:
    """
    Build a validated Config from already-loaded YAML data.

    Args:
        raw_data: Mapping with cloudflare/aws/certificate/custom_domain/settings

    Returns:
        Validated Config instance

    Raises:
        ConfigurationError: If configuration is invalid
    """
    data = _expand_env_vars(raw_data)

    if "cloudflare" not in data:
        raise ConfigurationError("Missing 'cloudflare' section in configuration")

    return Config(
        cloudflare=_parse_cloudflare(data.get("cloudflare") or {}),
        aws=_parse_aws(data.get("aws") or {}),
        certificate=_parse_certificate(data.get("certificate") or {}),
        custom_domain=_parse_custom_domain(data.get("custom_domain") or {}),
        settings=_parse_settings(data.get("settings") or {}),
    )


def load_config(config_path: str) -> Config:
    """
    Load and validate configuration from a YAML file.

    Args:
        config_path: Path to the configuration file

    Returns:
        Validated Config instance

    Raises:
        ConfigurationError: If configuration is invalid
    """
    logger = get_logger()
    path = Path(config_path)

    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    if path.suffix not in (".yaml", ".yml"):
        raise ConfigurationError(
            f"Configuration file must be YAML (.yaml or .yml): {config_path}"
        )

    try:
        with open(path, "r") as f:
            raw_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in configuration file: {e}")
    except IOError as e:
        raise ConfigurationError(f"Failed to read configuration file: {e}")

    if not raw_data:
        raise ConfigurationError("Configuration file is empty")

    config = parse_config(raw_data)

    auth_mode = "origin CA key" if config.cloudflare.origin_ca_key else "API token"
    logger.info(f"Loaded configuration from {config_path}")
    logger.info(f"  Zone: {config.cloudflare.zone_id} (auth: {auth_mode})")
    logger.info(f"  Hostnames: {', '.join(config.certificate.hostnames)}")
    logger.info(f"  AWS region: {config.aws.region}")

    return config
