"""
Certificate reconciliation run.

Keeps the Cloudflare Origin CA wildcard certificate, its ACM copy and the
SSM parameter holding the ACM ARN in sync:

1. find the current wildcard certificate
2. decide whether it must be renewed
3. issue a replacement (and revoke the old one, best effort)
4. import it into ACM, updating the existing entry in place
5. save the ARN to Parameter Store
"""

import json
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from .acm import DRY_RUN_CERTIFICATE_ARN, CertificateStore, StoredCertificate
from .errors import CertSyncError
from .logger import get_logger
from .origin_ca import DEFAULT_VALIDITY_DAYS, CertificateAuthority, CertificateRecord
from .renewal import (
    DEFAULT_RENEWAL_THRESHOLD_DAYS,
    RenewalReason,
    days_until_expiration,
    decide,
    format_expiration_status,
)
from .ssm import ParameterStore

DRY_RUN_CERTIFICATE_ID = "dry-run-cert-id"
CERTIFICATE_NOT_IN_ACM = "certificate-not-in-acm"

_CAMEL_CASE_KEYS = {
    "success": "success",
    "renewed": "renewed",
    "certificate_id": "certificateId",
    "certificate_arn": "certificateArn",
    "days_until_expiration": "daysUntilExpiration",
    "error": "error",
    "message": "message",
    "dry_run": "dryRun",
    "duration_seconds": "durationSeconds",
}


@dataclass
class CertificateResult:
    """
    Summary of one reconciliation run.

    A certificate that exists at Cloudflare but not in ACM is reported
    here (error="certificate-not-in-acm", success=False) rather than
    raised, since it cannot be imported without its private key.
    """
    success: bool
    renewed: bool = False
    certificate_id: Optional[str] = None
    certificate_arn: Optional[str] = None
    days_until_expiration: Optional[int] = None
    error: Optional[str] = None
    message: Optional[str] = None
    dry_run: bool = False
    duration_seconds: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with camelCase keys, leaving out unset optional fields."""
        data: Dict[str, Any] = {}
        for attr, key in _CAMEL_CASE_KEYS.items():
            value = getattr(self, attr)
            if value is None:
                continue
            if attr == "duration_seconds":
                value = round(value, 3)
            data[key] = value
        return data

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict(), indent=indent)


class CertificateOrchestrator:
    """
    Runs one certificate reconciliation.

    In dry-run mode no mutating call reaches any provider: issuance,
    revocation, import and parameter writes are simulated with
    placeholder values while lookups still run.
    """

    def __init__(
        self,
        certificate_authority: CertificateAuthority,
        certificate_store: CertificateStore,
        parameter_store: ParameterStore,
        hostnames: List[str],
        renewal_threshold_days: int = DEFAULT_RENEWAL_THRESHOLD_DAYS,
        validity_days: int = DEFAULT_VALIDITY_DAYS,
        dry_run: bool = False,
        force_update: bool = False,
        chain_pem: Optional[str] = None,
        now: Optional[datetime] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            certificate_authority: Origin CA client
            certificate_store: ACM adapter
            parameter_store: Parameter Store adapter
            hostnames: Certificate hostnames; the wildcard entry identifies it
            renewal_threshold_days: Renew once this many days or fewer remain
            validity_days: Validity requested for new certificates
            dry_run: Simulate every mutating call
            force_update: Renew regardless of the remaining validity
            chain_pem: Optional chain imported alongside the certificate
            now: Reference time for the renewal decision (tests)
        """
        self.ca = certificate_authority
        self.store = certificate_store
        self.parameters = parameter_store
        self.hostnames = list(hostnames)
        self.wildcard_hostname = next(
            (h for h in self.hostnames if h.startswith("*.")), self.hostnames[0]
        )
        self.renewal_threshold_days = renewal_threshold_days
        self.validity_days = validity_days
        self.dry_run = dry_run
        self.force_update = force_update
        self.chain_pem = chain_pem
        self.now = now
        self.logger = get_logger()

    def run(self) -> CertificateResult:
        """
        Reconcile the certificate across Cloudflare, ACM and SSM.

        Returns:
            CertificateResult

        Raises:
            CertSyncError: Any configuration, API or transport failure
        """
        start = time.monotonic()
        try:
            result = self._run()
        except CertSyncError as e:
            self.logger.failure(
                f"Certificate reconciliation failed after "
                f"{time.monotonic() - start:.1f}s: {e}"
            )
            raise

        result.dry_run = self.dry_run
        result.duration_seconds = time.monotonic() - start
        return result

    def _run(self) -> CertificateResult:
        self.logger.info(f"Target hostnames: {', '.join(self.hostnames)}")

        self.logger.section("Origin Certificate Check")
        existing = self.ca.find_wildcard_certificate(self.wildcard_hostname)
        store_entry: Optional[StoredCertificate] = None
        store_checked = False
        days: Optional[int] = None

        if existing:
            decision = decide(
                existing.expires_on,
                force_renew=self.force_update,
                renewal_threshold_days=self.renewal_threshold_days,
                now=self.now,
            )
            days = decision.days_until_expiration
            self.logger.info(
                f"Certificate {existing.id}: "
                f"{format_expiration_status(days, self.renewal_threshold_days)}"
            )

            if not decision.should_renew:
                self.logger.success(f"Certificate is valid for {days} more days")
                return CertificateResult(
                    success=True,
                    renewed=False,
                    certificate_id=existing.id,
                    days_until_expiration=days,
                    message="Certificate is still valid",
                )

            self.logger.warning(f"Certificate renewal required: {decision.reason.value}")

            if decision.reason != RenewalReason.FORCE_RENEWAL:
                # Unforced renewal replaces the ACM entry in place
                self.logger.section("AWS Certificate Manager Check")
                store_entry = self.store.find_existing(self.wildcard_hostname)
                store_checked = True
                if store_entry is None:
                    return self._not_in_store(existing, days)
        else:
            self.logger.info("No existing wildcard certificate found")

        issued = self._issue()
        if existing:
            self._revoke(existing)
        if not self.dry_run:
            days = days_until_expiration(issued.expires_on, self.now)

        self.logger.section("AWS Certificate Manager")
        if not store_checked:
            store_entry = self.store.find_existing(self.wildcard_hostname)
        certificate_arn = self._import(issued, store_entry)

        self.logger.section("SSM Parameter Store")
        self._persist(certificate_arn)

        self.logger.section("Certificate Reconciliation Complete")
        if self.dry_run:
            message = "Dry run: no changes were made"
        elif existing:
            message = "Certificate renewed"
        else:
            message = "Certificate created"

        return CertificateResult(
            success=True,
            renewed=not self.dry_run,
            certificate_id=issued.id,
            certificate_arn=certificate_arn,
            days_until_expiration=days,
            message=message,
        )

    def _not_in_store(self, existing: CertificateRecord, days: int) -> CertificateResult:
        self.logger.warning("Certificate exists in Cloudflare but not in ACM")
        self.logger.info("Cannot import a certificate without its private key")
        self.logger.info("Run with --force-update to renew and import the certificate")
        return CertificateResult(
            success=False,
            renewed=False,
            certificate_id=existing.id,
            days_until_expiration=days,
            error=CERTIFICATE_NOT_IN_ACM,
            message="Certificate needs to be imported to ACM. Use --force-update to renew.",
        )

    def _issue(self) -> CertificateRecord:
        if self.dry_run:
            self.logger.dry_run(
                f"Would create a new certificate for {', '.join(self.hostnames)}"
            )
            return CertificateRecord(
                id=DRY_RUN_CERTIFICATE_ID,
                hostnames=self.hostnames,
                certificate_pem="",
                expires_on=datetime.max,
            )
        return self.ca.create_certificate(self.hostnames, self.validity_days)

    def _revoke(self, old: CertificateRecord) -> None:
        if self.dry_run:
            self.logger.dry_run(f"Would revoke old certificate {old.id}")
            return
        try:
            self.ca.revoke_certificate(old.id)
        except CertSyncError as e:
            self.logger.warning(f"Failed to revoke old certificate {old.id}: {e}")

    def _import(
        self,
        issued: CertificateRecord,
        store_entry: Optional[StoredCertificate],
    ) -> str:
        if self.dry_run:
            arn = store_entry.arn if store_entry else DRY_RUN_CERTIFICATE_ARN
            self.logger.dry_run(
                f"Would {'update' if store_entry else 'import'} ACM certificate: {arn}"
            )
            return arn
        return self.store.import_or_update(
            issued.certificate_pem,
            issued.private_key_pem,
            self.wildcard_hostname,
            existing=store_entry,
            chain_pem=self.chain_pem,
        )

    def _persist(self, certificate_arn: str) -> None:
        parameter_name = self.parameters.parameter_name
        if self.dry_run:
            self.logger.dry_run(f"Would save {certificate_arn} to {parameter_name}")
            return
        outcome = self.parameters.save(certificate_arn, force_update=True)
        self.logger.success(f"Certificate ARN saved to {parameter_name} ({outcome.action})")
