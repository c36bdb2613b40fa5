#!/usr/bin/env python3
"""
Cloudflare Origin Certificate Sync - Main Entry Point.

Keeps the Cloudflare Origin CA wildcard certificate imported in AWS ACM,
records its ARN in SSM Parameter Store, and points custom-domain CNAME
records at the endpoints published by CloudFormation stacks.

Usage:
    # Check the certificate, renewing and importing it when needed
    python main.py --task certificate

    # Force renewal and re-import
    python main.py --task certificate --force-update

    # Point the custom domain published by a stack at its target
    python main.py --task dns --stack-name my-api-stack

    # Dry run (no actual changes)
    python main.py --task certificate --dry-run
"""

import argparse
import sys
from typing import Optional, Union

from certsync.logger import setup_logger, get_logger
from certsync.config_loader import load_config, Config
from certsync.errors import CertSyncError, ConfigurationError
from certsync.retry import Deadline
from certsync.origin_ca import OriginCAClient
from certsync.acm import AcmCertificateStore
from certsync.ssm import SsmParameterStore
from certsync.dns import CloudflareDNSClient, DnsReconciler
from certsync.custom_domain import StackOutputs, DnsSetupResult, setup_custom_domain_dns
from certsync.orchestrator import CertificateOrchestrator, CertificateResult


def parse_arguments() -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        description="Cloudflare Origin Certificate Sync",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --task certificate                  # Renew and import when needed
  %(prog)s --task certificate --dry-run        # Test mode, no changes
  %(prog)s --task certificate --force-update   # Always issue a new certificate
  %(prog)s --task dns --stack-name api-stack   # Reconcile the custom domain CNAME
        """,
    )

    parser.add_argument(
        "--task",
        type=str,
        choices=["certificate", "dns"],
        default="certificate",
        help="Task type: 'certificate' for the origin certificate, 'dns' for the custom domain",
    )

    # DNS task options (override config.yaml)
    parser.add_argument(
        "--stack-name",
        type=str,
        help="DNS task: CloudFormation stack publishing CustomDomainName/CustomDomainNameTarget",
    )
    parser.add_argument(
        "--domain-name",
        type=str,
        help="DNS task: custom domain name (skips the stack lookup with --target)",
    )
    parser.add_argument(
        "--target",
        type=str,
        help="DNS task: CNAME target (skips the stack lookup with --domain-name)",
    )

    # Common options
    parser.add_argument(
        "--config",
        type=str,
        default="config.yaml",
        help="Path to configuration file (default: config.yaml)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Test mode: don't make actual changes",
    )
    parser.add_argument(
        "--force-update",
        action="store_true",
        help="Renew the certificate regardless of its remaining validity",
    )
    parser.add_argument(
        "--threshold",
        type=int,
        help="Override renewal threshold (days)",
    )
    parser.add_argument(
        "--aws-region",
        type=str,
        default=None,
        help="Override AWS region (default: ap-northeast-1)",
    )
    parser.add_argument(
        "--profile",
        type=str,
        default=None,
        help="AWS named profile",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Total time budget for the run in seconds",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose/debug logging",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored output",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Also write log output to this file",
    )
    parser.add_argument(
        "--json-summary",
        action="store_true",
        help="Output machine-readable JSON summary at the end of execution",
    )

    args = parser.parse_args()

    if args.task != "dns" and (args.stack_name or args.domain_name or args.target):
        parser.error("--stack-name, --domain-name and --target require --task dns")
    if args.threshold is not None and args.threshold < 0:
        parser.error("--threshold must not be negative")

    return args


def apply_overrides(config: Config, args: argparse.Namespace) -> None:
    """
    Apply command-line overrides to the loaded configuration.

    Args:
        config: Loaded configuration (modified in place)
        args: Parsed arguments
    """
    logger = get_logger()

    if args.dry_run:
        config.settings.dry_run = True
    if args.force_update:
        config.settings.force_update = True
    if args.threshold is not None:
        config.certificate.renewal_threshold_days = args.threshold
        logger.info(f"Renewal threshold overridden to {args.threshold} days")
    if args.aws_region:
        config.aws.region = args.aws_region
        logger.info(f"AWS region set to: {args.aws_region}")
    if args.profile:
        config.aws.profile = args.profile
    if args.timeout:
        config.settings.timeout_seconds = args.timeout
    if args.stack_name:
        config.custom_domain.stack_name = args.stack_name
    if args.domain_name:
        config.custom_domain.domain_name = args.domain_name
    if args.target:
        config.custom_domain.target = args.target


def _adapter_options(config: Config, deadline: Deadline) -> dict:
    return {
        "timeout": config.settings.request_timeout_seconds,
        "max_attempts": config.settings.max_attempts,
        "deadline": deadline,
    }


def build_orchestrator(config: Config, deadline: Deadline) -> CertificateOrchestrator:
    """
    Wire the Cloudflare, ACM and SSM adapters into an orchestrator.

    Args:
        config: Validated configuration
        deadline: Run deadline shared by every adapter

    Returns:
        CertificateOrchestrator ready to run
    """
    options = _adapter_options(config, deadline)
    dry_run = config.settings.dry_run

    return CertificateOrchestrator(
        certificate_authority=OriginCAClient.from_config(config.cloudflare, **options),
        certificate_store=AcmCertificateStore(aws_config=config.aws, dry_run=dry_run, **options),
        parameter_store=SsmParameterStore(
            parameter_name=config.certificate.parameter_name,
            aws_config=config.aws,
            dry_run=dry_run,
            **options,
        ),
        hostnames=config.certificate.hostnames,
        renewal_threshold_days=config.certificate.renewal_threshold_days,
        validity_days=config.certificate.validity_days,
        dry_run=dry_run,
        force_update=config.settings.force_update,
    )


def run_certificate_task(config: Config, deadline: Deadline) -> CertificateResult:
    return build_orchestrator(config, deadline).run()


def run_dns_task(config: Config, deadline: Deadline) -> DnsSetupResult:
    """
    Reconcile the custom-domain CNAME record.

    Args:
        config: Validated configuration
        deadline: Run deadline shared by every adapter

    Returns:
        DnsSetupResult
    """
    options = _adapter_options(config, deadline)
    domain = config.custom_domain

    reconciler = DnsReconciler(
        CloudflareDNSClient.from_config(config.cloudflare, **options),
        dry_run=config.settings.dry_run,
    )
    stack_outputs = StackOutputs(aws_config=config.aws, **options)

    return setup_custom_domain_dns(
        reconciler,
        stack_outputs=stack_outputs,
        stack_name=domain.stack_name,
        domain_name=domain.domain_name,
        target=domain.target,
        proxied=domain.proxied,
        ttl=domain.ttl,
    )


def print_execution_summary(
    task: str,
    result: Optional[Union[CertificateResult, DnsSetupResult]],
    dry_run: bool,
    exit_code: int,
    output_json: bool = False,
) -> None:
    """
    Print the execution summary.

    Args:
        task: Task that ran
        result: Task result (None when the task raised)
        dry_run: Whether changes were simulated
        exit_code: Process exit code
        output_json: If True, also output machine-readable JSON
    """
    logger = get_logger()
    separator = "=" * 70

    status_str = "SUCCESS" if exit_code == 0 else "FAILED"
    if dry_run:
        status_str += " (DRY RUN)"

    logger.info("")
    logger.info(separator)
    logger.info("EXECUTION SUMMARY")
    logger.info(separator)
    logger.info(f"Status: {status_str}")
    logger.info(f"Task: {task}")

    if isinstance(result, CertificateResult):
        logger.info(f"Certificate ID: {result.certificate_id or '-'}")
        logger.info(f"Certificate ARN: {result.certificate_arn or '-'}")
        logger.info(f"Renewed: {'yes' if result.renewed else 'no'}")
        if result.days_until_expiration is not None:
            logger.info(f"Days until expiration: {result.days_until_expiration}")
        if result.message:
            logger.info(f"Message: {result.message}")
    elif isinstance(result, DnsSetupResult):
        logger.info(f"Record: {result.hostname} -> {result.target}")
        logger.info(f"Action: {result.action}")

    logger.info(f"Exit Code: {exit_code}")
    logger.info(separator)

    if output_json and result is not None:
        logger.info("--- BEGIN JSON SUMMARY ---")
        print(result.to_json())
        logger.info("--- END JSON SUMMARY ---")


def main() -> int:
    """
    Main entry point.

    Exit Codes:
        0 - Task succeeded
        1 - Task failed (including a certificate missing from ACM)
        2 - Configuration error

    Returns:
        Exit code
    """
    args = parse_arguments()

    logger = setup_logger(
        verbose=args.verbose,
        use_colors=not args.no_color,
        log_file=args.log_file,
    )

    logger.info("Cloudflare Origin Certificate Sync")
    logger.info("=" * 50)

    if args.dry_run:
        logger.warning("DRY RUN MODE - No changes will be made")

    result = None
    exit_code = 1
    dry_run = args.dry_run

    try:
        config = load_config(args.config)
        apply_overrides(config, args)
        dry_run = config.settings.dry_run

        deadline = Deadline(config.settings.timeout_seconds)

        if args.task == "dns":
            result = run_dns_task(config, deadline)
        else:
            result = run_certificate_task(config, deadline)

        exit_code = 0 if result.success else 1

    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        exit_code = 2

    except CertSyncError as e:
        logger.error(f"Fatal error: {e}")
        if args.verbose:
            logger.exception("Traceback")

    print_execution_summary(args.task, result, dry_run, exit_code, output_json=args.json_summary)
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
