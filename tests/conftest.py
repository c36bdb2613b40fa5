"""Pytest fixtures and in-memory providers for certsync tests."""

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest

from certsync.acm import CertificateStore, StoredCertificate
from certsync.dns import DnsProvider, DnsRecord
from certsync.errors import ApiError, ParameterAlreadyExistsError
from certsync.origin_ca import CertificateAuthority, CertificateRecord
from certsync.ssm import ParameterStore, Parameter, PutResult

NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)
HOSTNAMES = ["*.example.com", "example.com"]
WILDCARD = "*.example.com"


class FakeCertificateAuthority(CertificateAuthority):
    """Origin CA held in memory; records every mutating call."""

    def __init__(
        self,
        certificates: Optional[List[CertificateRecord]] = None,
        revoke_error: Optional[Exception] = None,
    ):
        self.certificates = list(certificates or [])
        self.revoke_error = revoke_error
        self.created: List[CertificateRecord] = []
        self.revoked: List[str] = []
        self.revoke_attempts: List[str] = []

    @property
    def mutating_calls(self) -> int:
        return len(self.created) + len(self.revoke_attempts)

    def list_certificates(self, zone_id=None):
        return list(self.certificates)

    def create_certificate(self, hostnames, validity_days=365):
        record = CertificateRecord(
            id=f"new-cert-{len(self.created) + 1}",
            hostnames=list(hostnames),
            certificate_pem="-----BEGIN CERTIFICATE-----\nnew\n-----END CERTIFICATE-----\n",
            expires_on=NOW + timedelta(days=validity_days),
            private_key_pem="new-private-key",
        )
        self.created.append(record)
        self.certificates.append(record)
        return record

    def revoke_certificate(self, certificate_id):
        self.revoke_attempts.append(certificate_id)
        if self.revoke_error:
            raise self.revoke_error
        self.revoked.append(certificate_id)
        self.certificates = [c for c in self.certificates if c.id != certificate_id]


class FakeCertificateStore(CertificateStore):
    """ACM held in memory."""

    def __init__(self, entries: Optional[List[StoredCertificate]] = None):
        self.entries = list(entries or [])
        self.imports: List[Dict] = []
        self.lookups = 0

    @property
    def mutating_calls(self) -> int:
        return len(self.imports)

    def find_existing(self, hostname):
        self.lookups += 1
        for entry in self.entries:
            if entry.covers(hostname):
                return entry
        return None

    def import_or_update(self, certificate_pem, private_key_pem, hostname, existing=None, chain_pem=None):
        arn = existing.arn if existing else (
            f"arn:aws:acm:ap-northeast-1:123456789012:certificate/imported-{len(self.imports) + 1}"
        )
        self.imports.append({
            "certificate_pem": certificate_pem,
            "private_key_pem": private_key_pem,
            "hostname": hostname,
            "arn": arn,
            "updated": existing is not None,
        })
        if existing is None:
            self.entries.append(StoredCertificate(arn=arn, domain_name=hostname))
        return arn


class FakeParameterStore(ParameterStore):
    """Parameter Store held in memory with SSM's versioning rules."""

    def __init__(self, parameter_name: str = "/certsync/certificate-arn", dry_run: bool = False):
        self.parameter_name = parameter_name
        self.dry_run = dry_run
        self.parameters: Dict[str, Parameter] = {}
        self.puts: List[Dict] = []

    @property
    def mutating_calls(self) -> int:
        return len(self.puts)

    def get(self, name):
        return self.parameters.get(name)

    def put(self, name, value, overwrite=True, description=None):
        current = self.parameters.get(name)
        if current and not overwrite:
            raise ParameterAlreadyExistsError(f"Parameter {name} already exists", provider="Fake SSM")
        version = current.version + 1 if current else 1
        self.parameters[name] = Parameter(
            name=name,
            value=value,
            version=version,
            last_modified=NOW,
            description=description,
        )
        self.puts.append({"name": name, "value": value, "overwrite": overwrite})
        return PutResult(version=version, action="updated" if version > 1 else "created")


class FakeDnsProvider(DnsProvider):
    """Cloudflare DNS zone held in memory."""

    def __init__(self, records: Optional[List[DnsRecord]] = None):
        self.records = list(records or [])
        self.creates: List[DnsRecord] = []
        self.updates: List[DnsRecord] = []

    @property
    def mutating_calls(self) -> int:
        return len(self.creates) + len(self.updates)

    def list_records(self, name, record_type):
        return [r for r in self.records if r.name.lower() == name.lower() and r.type == record_type]

    def create_record(self, name, record_type, content, proxied, ttl):
        record = DnsRecord(
            id=f"rec-{len(self.records) + 1}",
            name=name,
            type=record_type,
            content=content,
            proxied=proxied,
            ttl=ttl,
        )
        self.records.append(record)
        self.creates.append(record)
        return record

    def update_record(self, record_id, name, record_type, content, proxied, ttl):
        record = DnsRecord(record_id, name, record_type, content, proxied, ttl)
        self.records = [record if r.id == record_id else r for r in self.records]
        self.updates.append(record)
        return record


def make_certificate(
    days_left: int,
    certificate_id: str = "existing-cert",
    hostnames: Optional[List[str]] = None,
) -> CertificateRecord:
    return CertificateRecord(
        id=certificate_id,
        hostnames=list(hostnames or HOSTNAMES),
        certificate_pem="-----BEGIN CERTIFICATE-----\nold\n-----END CERTIFICATE-----\n",
        expires_on=NOW + timedelta(days=days_left),
    )


@pytest.fixture
def now() -> datetime:
    """Fixed reference time for renewal decisions."""
    return NOW


@pytest.fixture
def fake_ca() -> FakeCertificateAuthority:
    return FakeCertificateAuthority()


@pytest.fixture
def fake_store() -> FakeCertificateStore:
    return FakeCertificateStore()


@pytest.fixture
def fake_parameters() -> FakeParameterStore:
    return FakeParameterStore()


@pytest.fixture
def fake_dns() -> FakeDnsProvider:
    return FakeDnsProvider()


@pytest.fixture
def revoke_failure() -> ApiError:
    return ApiError("1100: Failed to revoke certificate", provider="Fake Origin CA", status_code=400)
