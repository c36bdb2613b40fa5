"""
AWS Certificate Manager operations.

Finds the imported certificate serving a hostname and imports new
certificate material, re-using the existing ARN so that listeners and
distributions referencing it pick up the renewal in place.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, FrozenSet, List, Optional

from .aws import AwsAdapter

# Statuses an imported certificate can be in
LISTED_STATUSES = ["ISSUED", "INACTIVE", "EXPIRED"]

DRY_RUN_CERTIFICATE_ARN = "arn:aws:acm:region:account:certificate/dry-run-cert-id"


@dataclass(frozen=True)
class StoredCertificate:
    """An imported certificate in the certificate store."""
    arn: str
    domain_name: str
    subject_alternative_names: FrozenSet[str] = field(default_factory=frozenset)
    status: Optional[str] = None
    not_after: Optional[datetime] = None

    def covers(self, hostname: str) -> bool:
        return self.domain_name == hostname or hostname in self.subject_alternative_names


class CertificateStore(ABC):
    """Stores certificates for use by cloud load balancers and CDNs."""

    @abstractmethod
    def find_existing(self, hostname: str) -> Optional[StoredCertificate]:
        pass

    @abstractmethod
    def import_or_update(
        self,
        certificate_pem: str,
        private_key_pem: str,
        hostname: str,
        existing: Optional[StoredCertificate] = None,
        chain_pem: Optional[str] = None,
    ) -> str:
        pass


class AcmCertificateStore(AwsAdapter, CertificateStore):
    """
    ACM-backed certificate store.

    Lookup is a linear scan: one paginated list plus one describe per
    candidate.
    """

    service = "acm"
    provider = "AWS ACM"

    def _list_summaries(self) -> List[Dict[str, Any]]:
        paginator = self.client.get_paginator("list_certificates")
        summaries: List[Dict[str, Any]] = []
        for page in paginator.paginate(CertificateStatuses=LISTED_STATUSES):
            summaries.extend(page.get("CertificateSummaryList", []))
        return summaries

    def describe(self, arn: str) -> StoredCertificate:
        """
        Describe one certificate.

        Args:
            arn: Certificate ARN

        Returns:
            StoredCertificate
        """
        response = self._call_with_retry(
            "DescribeCertificate",
            lambda: self.client.describe_certificate(CertificateArn=arn),
        )
        details = response["Certificate"]
        return StoredCertificate(
            arn=details["CertificateArn"],
            domain_name=details.get("DomainName", ""),
            subject_alternative_names=frozenset(details.get("SubjectAlternativeNames", [])),
            status=details.get("Status"),
            not_after=details.get("NotAfter"),
        )

    def find_existing(self, hostname: str) -> Optional[StoredCertificate]:
        """
        Find the certificate covering a hostname.

        Args:
            hostname: Wildcard hostname (e.g. "*.example.com")

        Returns:
            The first matching StoredCertificate, or None
        """
        self.logger.info(f"Searching ACM ({self.region}) for certificate covering {hostname}")

        summaries = self._call_with_retry("ListCertificates", self._list_summaries)
        self.logger.debug(f"ACM lists {len(summaries)} certificate(s)")

        for summary in summaries:
            certificate = self.describe(summary["CertificateArn"])
            if certificate.covers(hostname):
                self.logger.info(f"Found ACM certificate: {certificate.arn}")
                return certificate

        self.logger.info(f"No ACM certificate covers {hostname}")
        return None

    def import_or_update(
        self,
        certificate_pem: str,
        private_key_pem: str,
        hostname: str,
        existing: Optional[StoredCertificate] = None,
        chain_pem: Optional[str] = None,
    ) -> str:
        """
        Import certificate material, updating the existing entry in place.

        Args:
            certificate_pem: PEM certificate
            private_key_pem: PEM private key (sent to ACM, never logged)
            hostname: Hostname the certificate serves
            existing: Entry to update; a new ARN is created without one
            chain_pem: Optional PEM chain

        Returns:
            Certificate ARN
        """
        action = "Updating" if existing else "Importing"

        if self.dry_run:
            arn = existing.arn if existing else DRY_RUN_CERTIFICATE_ARN
            self.logger.dry_run(f"{action} ACM certificate for {hostname}: {arn}")
            return arn

        params: Dict[str, Any] = {
            "Certificate": certificate_pem.encode(),
            "PrivateKey": private_key_pem.encode(),
        }
        if chain_pem:
            params["CertificateChain"] = chain_pem.encode()
        if existing:
            params["CertificateArn"] = existing.arn

        self.logger.info(f"{action} ACM certificate for {hostname}")
        response = self._call(
            "ImportCertificate",
            lambda: self.client.import_certificate(**params),
        )

        arn = response["CertificateArn"]
        self.logger.success(f"ACM certificate {'updated' if existing else 'imported'}: {arn}")
        return arn
