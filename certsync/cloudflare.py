"""
Cloudflare API transport.

Shared HTTPS/JSON plumbing for the Origin CA and DNS clients: auth headers,
response envelope decoding, error mapping and retry of idempotent reads.
"""

import json
from typing import Any, Dict, List, Optional

import requests

from .config_loader import CLOUDFLARE_API_BASE_URL
from .errors import ApiError, ConfigurationError, TransportError
from .logger import get_logger
from .retry import Backoff, Deadline, with_retry

USER_AGENT = "certsync/1.0"
DEFAULT_TIMEOUT = 30.0
DEFAULT_PER_PAGE = 50


class CloudflareClient:
    """
    Base client for the Cloudflare v4 API.

    Subclasses provide credentials through _auth_headers(). A failed
    envelope ({"success": false, "errors": [...]}) or non-2xx status becomes
    an ApiError; connection problems and timeouts become TransportError.
    """

    provider = "Cloudflare"

    def __init__(
        self,
        zone_id: str,
        base_url: str = CLOUDFLARE_API_BASE_URL,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_attempts: int = 3,
        backoff: Optional[Backoff] = None,
        deadline: Optional[Deadline] = None,
    ):
        """
        Initialize the client.

        Args:
            zone_id: Cloudflare zone identifier
            base_url: API base URL
            session: Optional requests session (a new one by default)
            timeout: Per-request timeout in seconds
            max_attempts: Attempts for idempotent GET requests
            backoff: Retry delay policy for GET requests
            deadline: Run deadline shared with the other adapters

        Raises:
            ConfigurationError: If zone_id is missing
        """
        if not zone_id:
            raise ConfigurationError("Cloudflare zone ID is required")

        self.zone_id = zone_id
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.backoff = backoff
        self.deadline = deadline or Deadline.unbounded()
        self.logger = get_logger()

    def _auth_headers(self) -> Dict[str, str]:
        raise NotImplementedError

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
        }
        headers.update(self._auth_headers())
        return headers

    def _make_request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Make a single request and return the decoded success envelope.

        Args:
            method: HTTP method
            endpoint: Path below the base URL (leading slash)
            params: Query string parameters
            data: JSON body

        Returns:
            The full response envelope (with "result" and "result_info")

        Raises:
            ApiError: On a failure envelope, non-2xx status or invalid JSON
            TransportError: On connection failures and timeouts
        """
        url = f"{self.base_url}{endpoint}"
        self.deadline.check(f"{method} {endpoint}", provider=self.provider)

        try:
            response = self.session.request(
                method,
                url,
                headers=self._headers(),
                params=params,
                json=data,
                timeout=self.deadline.timeout(self.timeout),
            )
        except requests.exceptions.Timeout as e:
            raise TransportError(
                f"{method} {endpoint} timed out: {e}", provider=self.provider, cause=e
            ) from e
        except requests.exceptions.RequestException as e:
            raise TransportError(
                f"{method} {endpoint} failed: {e}", provider=self.provider, cause=e
            ) from e

        try:
            body = response.json()
        except ValueError as e:
            raise ApiError(
                f"Failed to parse Cloudflare API response: {e}",
                provider=self.provider,
                status_code=response.status_code,
                cause=e,
            ) from e

        if not isinstance(body, dict):
            raise ApiError(
                "Unexpected Cloudflare API response shape",
                provider=self.provider,
                status_code=response.status_code,
            )

        if response.status_code >= 400 or not body.get("success", False):
            errors = body.get("errors") or []
            message = ", ".join(
                f"{e.get('code')}: {e.get('message')}" for e in errors
            ) or f"Status {response.status_code} - Unknown Cloudflare error"
            self.logger.debug(f"Cloudflare {method} {endpoint} failed: {message}")
            if data:
                self.logger.debug(f"Request data: {json.dumps(data)}")
            raise ApiError(
                message,
                provider=self.provider,
                status_code=response.status_code,
                errors=errors,
            )

        return body

    def _get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """GET with bounded retry of transient failures."""
        return with_retry(
            lambda: self._make_request("GET", endpoint, params=params),
            max_attempts=self.max_attempts,
            backoff=self.backoff,
            deadline=self.deadline,
            description=f"GET {endpoint}",
        )

    def _get_all(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """
        GET every page of a list endpoint.

        Args:
            endpoint: List endpoint
            params: Filters applied to every page

        Returns:
            Concatenated "result" entries from all pages
        """
        items: List[Dict[str, Any]] = []
        page = 1
        total_pages = 1

        while page <= total_pages:
            page_params = dict(params or {})
            page_params.update({"page": page, "per_page": DEFAULT_PER_PAGE})
            body = self._get(endpoint, page_params)

            items.extend(body.get("result") or [])

            result_info = body.get("result_info") or {}
            total_pages = result_info.get("total_pages", total_pages) or total_pages
            page += 1

        return items
