"""
Cloudflare DNS record reconciliation.

Ensures a (name, type) record in the zone points at the desired target.
Records are created or updated, never deleted.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .cloudflare import CloudflareClient
from .config_loader import AUTOMATIC_TTL, CloudflareConfig
from .errors import ConfigurationError
from .logger import get_logger

ACTION_CREATED = "created"
ACTION_UPDATED = "updated"
ACTION_NO_CHANGE = "no-change"
DRY_RUN_PREFIX = "dry-run-"


@dataclass
class DnsRecord:
    id: str
    name: str
    type: str
    content: str
    proxied: bool = True
    ttl: int = AUTOMATIC_TTL

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "DnsRecord":
        return cls(
            id=data["id"],
            name=data["name"],
            type=data["type"],
            content=data["content"],
            proxied=data.get("proxied", False),
            ttl=data.get("ttl", AUTOMATIC_TTL),
        )


@dataclass
class UpsertResult:
    action: str
    record: Optional[DnsRecord] = None

    @property
    def changed(self) -> bool:
        return self.action in (ACTION_CREATED, ACTION_UPDATED)


class DnsProvider(ABC):
    """Zone-scoped DNS record operations."""

    @abstractmethod
    def list_records(self, name: str, record_type: str) -> List[DnsRecord]:
        pass

    @abstractmethod
    def create_record(
        self,
        name: str,
        record_type: str,
        content: str,
        proxied: bool,
        ttl: int,
    ) -> DnsRecord:
        pass

    @abstractmethod
    def update_record(
        self,
        record_id: str,
        name: str,
        record_type: str,
        content: str,
        proxied: bool,
        ttl: int,
    ) -> DnsRecord:
        pass


class CloudflareDNSClient(CloudflareClient, DnsProvider):
    """Cloudflare DNS API client (API token authentication)."""

    provider = "Cloudflare DNS"

    def __init__(self, zone_id: str, api_token: Optional[str] = None, **kwargs):
        """
        Initialize the DNS client.

        Args:
            zone_id: Zone holding the records
            api_token: API token with DNS edit permission
            **kwargs: Transport options for CloudflareClient

        Raises:
            ConfigurationError: If api_token is missing
        """
        if not api_token:
            raise ConfigurationError("A Cloudflare API token is required for DNS operations")
        self._api_token = api_token
        super().__init__(zone_id, **kwargs)

    @classmethod
    def from_config(cls, config: CloudflareConfig, **kwargs) -> "CloudflareDNSClient":
        return cls(
            zone_id=config.zone_id,
            api_token=config.api_token,
            base_url=config.base_url,
            **kwargs,
        )

    def _auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self._api_token}"}

    @property
    def _records_endpoint(self) -> str:
        return f"/zones/{self.zone_id}/dns_records"

    def list_records(self, name: str, record_type: str) -> List[DnsRecord]:
        results = self._get_all(self._records_endpoint, {"name": name, "type": record_type})
        return [DnsRecord.from_api(item) for item in results]

    def create_record(
        self,
        name: str,
        record_type: str,
        content: str,
        proxied: bool,
        ttl: int,
    ) -> DnsRecord:
        body = self._make_request(
            "POST",
            self._records_endpoint,
            data={
                "type": record_type,
                "name": name,
                "content": content,
                "proxied": proxied,
                "ttl": ttl,
            },
        )
        return DnsRecord.from_api(body["result"])

    def update_record(
        self,
        record_id: str,
        name: str,
        record_type: str,
        content: str,
        proxied: bool,
        ttl: int,
    ) -> DnsRecord:
        body = self._make_request(
            "PUT",
            f"{self._records_endpoint}/{record_id}",
            data={
                "type": record_type,
                "name": name,
                "content": content,
                "proxied": proxied,
                "ttl": ttl,
            },
        )
        return DnsRecord.from_api(body["result"])


class DnsReconciler:
    """
    Idempotent record upsert.

    A second upsert with the same arguments makes no mutating call.
    """

    def __init__(self, provider: DnsProvider, dry_run: bool = False):
        self.provider = provider
        self.dry_run = dry_run
        self.logger = get_logger()

    def upsert(
        self,
        name: str,
        record_type: str,
        target: str,
        proxied: bool = True,
        ttl: int = AUTOMATIC_TTL,
    ) -> UpsertResult:
        """
        Make the (name, record_type) record point at target.

        In dry-run mode the same branch is selected but nothing is written,
        and the action carries a "dry-run-" prefix.

        Args:
            name: Record name (e.g. "api.example.com"), matched case-insensitively
            record_type: Record type (e.g. "CNAME")
            target: Record content
            proxied: Route traffic through the Cloudflare proxy
            ttl: TTL in seconds (1 = automatic)

        Returns:
            UpsertResult with the action taken and the resulting record
        """
        existing = None
        for record in self.provider.list_records(name, record_type):
            if record.name.lower() == name.lower() and record.type == record_type:
                existing = record
                break

        if existing and existing.content == target and existing.proxied == proxied:
            action, record = ACTION_NO_CHANGE, existing
        elif existing:
            action, record = ACTION_UPDATED, existing
        else:
            action, record = ACTION_CREATED, None

        if self.dry_run:
            if action == ACTION_UPDATED:
                self.logger.dry_run(
                    f"Would update {record_type} {name}: {existing.content} -> {target}"
                )
            elif action == ACTION_CREATED:
                self.logger.dry_run(f"Would create {record_type} {name} -> {target}")
            else:
                self.logger.dry_run(f"{record_type} {name} -> {target} is already up to date")
            return UpsertResult(f"{DRY_RUN_PREFIX}{action}", record)

        if action == ACTION_NO_CHANGE:
            self.logger.info(f"DNS {record_type} {name} -> {target} is up to date")
            return UpsertResult(action, record)

        if action == ACTION_UPDATED:
            record = self.provider.update_record(
                existing.id, existing.name, record_type, target, proxied, ttl
            )
            self.logger.success(f"Updated DNS {record_type} {name} -> {target}")
            return UpsertResult(action, record)

        record = self.provider.create_record(name, record_type, target, proxied, ttl)
        self.logger.success(f"Created DNS {record_type} {name} -> {target}")
        return UpsertResult(action, record)
