"""
Cloudflare Origin CA certificate and custom-domain DNS reconciliation.

This package contains:
- renewal: Renewal policy
- origin_ca: Cloudflare Origin CA certificate operations
- acm: AWS Certificate Manager operations
- ssm: SSM Parameter Store operations
- dns: Cloudflare DNS record reconciliation
- custom_domain: CloudFormation-driven custom-domain DNS setup
- orchestrator: One certificate reconciliation run
- config_loader: Configuration loading and validation
- logger: Centralized logging setup
- retry: Bounded retry and run deadlines
- errors: Error taxonomy
"""

from .logger import setup_logger, get_logger
from .errors import (
    CertSyncError,
    ConfigurationError,
    ApiError,
    ParameterAlreadyExistsError,
    TransportError,
    DeadlineExceededError,
    ResourceNotFoundError,
)
from .config_loader import (
    load_config,
    parse_config,
    Config,
    CloudflareConfig,
    AwsConfig,
    CertificateSettings,
    CustomDomainConfig,
    Settings,
)
from .retry import Deadline, LinearBackoff, ExponentialBackoff, with_retry
from .renewal import RenewalDecision, RenewalReason, decide, days_until_expiration
from .origin_ca import CertificateAuthority, CertificateRecord, OriginCAClient, generate_csr
from .acm import CertificateStore, StoredCertificate, AcmCertificateStore
from .ssm import ParameterStore, Parameter, PutResult, SaveOutcome, SsmParameterStore
from .dns import DnsProvider, DnsRecord, UpsertResult, CloudflareDNSClient, DnsReconciler
from .custom_domain import StackOutputs, DnsSetupResult, setup_custom_domain_dns
from .orchestrator import CertificateOrchestrator, CertificateResult

__all__ = [
    # Logger
    "setup_logger",
    "get_logger",
    # Errors
    "CertSyncError",
    "ConfigurationError",
    "ApiError",
    "ParameterAlreadyExistsError",
    "TransportError",
    "DeadlineExceededError",
    "ResourceNotFoundError",
    # Config
    "load_config",
    "parse_config",
    "Config",
    "CloudflareConfig",
    "AwsConfig",
    "CertificateSettings",
    "CustomDomainConfig",
    "Settings",
    # Retry
    "Deadline",
    "LinearBackoff",
    "ExponentialBackoff",
    "with_retry",
    # Renewal policy
    "RenewalDecision",
    "RenewalReason",
    "decide",
    "days_until_expiration",
    # Origin CA
    "CertificateAuthority",
    "CertificateRecord",
    "OriginCAClient",
    "generate_csr",
    # ACM
    "CertificateStore",
    "StoredCertificate",
    "AcmCertificateStore",
    # SSM
    "ParameterStore",
    "Parameter",
    "PutResult",
    "SaveOutcome",
    "SsmParameterStore",
    # DNS
    "DnsProvider",
    "DnsRecord",
    "UpsertResult",
    "CloudflareDNSClient",
    "DnsReconciler",
    # Custom domain
    "StackOutputs",
    "DnsSetupResult",
    "setup_custom_domain_dns",
    # Orchestrator
    "CertificateOrchestrator",
    "CertificateResult",
]
