"""
Cloudflare Origin CA certificate operations.

Lists, issues and revokes Origin CA certificates. The CSR and its 2048-bit
RSA key are generated locally; the private key only ever lives on the
returned CertificateRecord and is never logged or written anywhere.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from .cloudflare import CloudflareClient
from .config_loader import CloudflareConfig
from .errors import ApiError, ConfigurationError

CERTIFICATES_ENDPOINT = "/certificates"
REQUEST_TYPE = "origin-rsa"
RSA_KEY_SIZE = 2048
DEFAULT_VALIDITY_DAYS = 365

_EXPIRY_FORMATS = (
    "%Y-%m-%d %H:%M:%S %z UTC",
    "%Y-%m-%d %H:%M:%S %z",
    "%Y-%m-%dT%H:%M:%S%z",
)


@dataclass
class CertificateRecord:
    """
    An Origin CA certificate.

    private_key_pem is only set on the record returned by
    create_certificate and is excluded from repr.
    """
    id: str
    hostnames: List[str]
    certificate_pem: str
    expires_on: datetime
    revoked_at: Optional[datetime] = None
    private_key_pem: Optional[str] = field(default=None, repr=False)

    @property
    def revoked(self) -> bool:
        return self.revoked_at is not None


def get_certificate_expiry(certificate_pem: str) -> datetime:
    """
    Extract the expiry date from a PEM certificate.

    Args:
        certificate_pem: PEM-encoded certificate

    Returns:
        Certificate expiry datetime (timezone-aware UTC)
    """
    cert = x509.load_pem_x509_certificate(certificate_pem.encode())
    return cert.not_valid_after_utc


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None

    value = value.strip()
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        parsed = None
        for fmt in _EXPIRY_FORMATS:
            try:
                parsed = datetime.strptime(value, fmt)
                break
            except ValueError:
                continue

    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def certificate_from_api(
    data: Dict[str, Any],
    private_key_pem: Optional[str] = None,
) -> CertificateRecord:
    """
    Build a CertificateRecord from an Origin CA API result.

    The expiry falls back to the certificate's notAfter when the API value
    cannot be parsed.

    Raises:
        ApiError: If no expiry can be determined
    """
    certificate_pem = data.get("certificate") or ""
    expires_on = _parse_timestamp(data.get("expires_on"))
    if expires_on is None and certificate_pem:
        expires_on = get_certificate_expiry(certificate_pem)
    if expires_on is None:
        raise ApiError(
            f"Certificate {data.get('id')} has no usable expires_on",
            provider=CloudflareClient.provider,
        )

    return CertificateRecord(
        id=str(data.get("id", "")),
        hostnames=list(data.get("hostnames") or []),
        certificate_pem=certificate_pem,
        expires_on=expires_on,
        revoked_at=_parse_timestamp(data.get("revoked_at")),
        private_key_pem=private_key_pem,
    )


def generate_csr(hostnames: List[str], key_size: int = RSA_KEY_SIZE) -> Tuple[str, str]:
    """
    Generate a fresh RSA key pair and a CSR for the given hostnames.

    The first hostname becomes the subject CN; all hostnames go into the
    subjectAltName extension.

    Args:
        hostnames: Hostnames to certify
        key_size: RSA modulus size in bits

    Returns:
        Tuple of (csr_pem, private_key_pem)
    """
    if not hostnames:
        raise ValueError("At least one hostname is required")

    private_key = rsa.generate_private_key(public_exponent=65537, key_size=key_size)

    csr = (
        x509.CertificateSigningRequestBuilder()
        .subject_name(x509.Name([
            x509.NameAttribute(NameOID.COMMON_NAME, hostnames[0]),
        ]))
        .add_extension(
            x509.SubjectAlternativeName([x509.DNSName(h) for h in hostnames]),
            critical=False,
        )
        .sign(private_key, hashes.SHA256())
    )

    csr_pem = csr.public_bytes(serialization.Encoding.PEM).decode()
    private_key_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()

    return csr_pem, private_key_pem


class CertificateAuthority(ABC):
    """Issues, lists and revokes origin certificates."""

    @abstractmethod
    def list_certificates(self, zone_id: Optional[str] = None) -> List[CertificateRecord]:
        pass

    @abstractmethod
    def create_certificate(
        self,
        hostnames: List[str],
        validity_days: int = DEFAULT_VALIDITY_DAYS,
    ) -> CertificateRecord:
        pass

    @abstractmethod
    def revoke_certificate(self, certificate_id: str) -> None:
        pass

    def find_wildcard_certificate(self, wildcard_hostname: str) -> Optional[CertificateRecord]:
        """
        Find the current certificate covering the wildcard hostname.

        Revoked certificates are ignored. When several certificates match
        (an old one whose revocation failed is still live), the one expiring
        last is returned. No match is not an error.

        Args:
            wildcard_hostname: Canonical wildcard (e.g. "*.example.com")

        Returns:
            The latest-expiring matching CertificateRecord, or None
        """
        matches = [
            certificate
            for certificate in self.list_certificates()
            if not certificate.revoked and wildcard_hostname in certificate.hostnames
        ]
        if not matches:
            return None
        return max(matches, key=lambda certificate: certificate.expires_on)


class OriginCAClient(CloudflareClient, CertificateAuthority):
    """
    Cloudflare Origin CA client.

    Authenticates with exactly one credential: the origin CA key
    (X-Auth-User-Service-Key) when given, otherwise an API token.
    """

    provider = "Cloudflare Origin CA"

    def __init__(
        self,
        zone_id: str,
        origin_ca_key: Optional[str] = None,
        api_token: Optional[str] = None,
        **kwargs,
    ):
        """
        Initialize the Origin CA client.

        Args:
            zone_id: Zone whose certificates are listed
            origin_ca_key: Origin CA service key
            api_token: Scoped API token (used only without origin_ca_key)
            **kwargs: Transport options for CloudflareClient

        Raises:
            ConfigurationError: If no credential is configured
        """
        if origin_ca_key:
            self.auth_mode = "origin-ca-key"
            self._credential = origin_ca_key
        elif api_token:
            self.auth_mode = "api-token"
            self._credential = api_token
        else:
            raise ConfigurationError(
                "No valid Cloudflare authentication provided for certificate "
                "operations. Set an origin CA key or an API token."
            )
        super().__init__(zone_id, **kwargs)

    @classmethod
    def from_config(cls, config: CloudflareConfig, **kwargs) -> "OriginCAClient":
        return cls(
            zone_id=config.zone_id,
            origin_ca_key=config.origin_ca_key,
            api_token=config.api_token,
            base_url=config.base_url,
            **kwargs,
        )

    def _auth_headers(self) -> Dict[str, str]:
        if self.auth_mode == "origin-ca-key":
            return {"X-Auth-User-Service-Key": self._credential}
        return {"Authorization": f"Bearer {self._credential}"}

    def list_certificates(self, zone_id: Optional[str] = None) -> List[CertificateRecord]:
        """
        List Origin CA certificates for a zone.

        Args:
            zone_id: Zone to list (defaults to the client's zone)

        Returns:
            List of CertificateRecord (without private keys)
        """
        results = self._get_all(
            CERTIFICATES_ENDPOINT, {"zone_id": zone_id or self.zone_id}
        )
        self.logger.debug(f"Found {len(results)} Origin CA certificate(s)")
        return [certificate_from_api(item) for item in results]

    def get_certificate(self, certificate_id: str) -> CertificateRecord:
        body = self._get(f"{CERTIFICATES_ENDPOINT}/{certificate_id}")
        return certificate_from_api(body.get("result") or {})

    def create_certificate(
        self,
        hostnames: List[str],
        validity_days: int = DEFAULT_VALIDITY_DAYS,
    ) -> CertificateRecord:
        """
        Issue a new Origin CA certificate.

        A CSR and private key are generated locally before the request.

        Args:
            hostnames: Hostnames to cover (wildcard and apex)
            validity_days: Requested validity in days

        Returns:
            CertificateRecord carrying the new private key
        """
        csr_pem, private_key_pem = generate_csr(hostnames)

        self.logger.info(
            f"Requesting Origin CA certificate for {', '.join(hostnames)} "
            f"({validity_days} days)"
        )
        body = self._make_request(
            "POST",
            CERTIFICATES_ENDPOINT,
            data={
                "csr": csr_pem,
                "hostnames": hostnames,
                "requested_validity": validity_days,
                "request_type": REQUEST_TYPE,
            },
        )

        record = certificate_from_api(body.get("result") or {}, private_key_pem=private_key_pem)
        self.logger.success(f"Created Origin CA certificate: {record.id}")
        return record

    def revoke_certificate(self, certificate_id: str) -> None:
        """
        Revoke an Origin CA certificate.

        Args:
            certificate_id: Certificate to revoke
        """
        self._make_request("DELETE", f"{CERTIFICATES_ENDPOINT}/{certificate_id}")
        self.logger.success(f"Revoked Origin CA certificate: {certificate_id}")
