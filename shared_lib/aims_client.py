"""
shared_lib.aims_client: async client for the vendor ESL (AIMS) platform.

Design notes:
- Async-only: all public methods are coroutines, driven from the service's
  event loop.
- Uses httpx.AsyncClient for async HTTP. Caller must call close() when done.
- Only the read path needed by drift detection is implemented: token login
  and paginated article listing. Records are returned as loosely typed dicts;
  identity resolution is the detector's job.
- No per-call deadline beyond the transport timeout: a hung request stalls
  the run until httpx gives up.

Exports:
    AimsClient          -- async HTTP client
    AimsGateway         -- RemoteGateway adapter (store id -> articles)
    AimsConnectionError -- server unreachable or timed out
    AimsAuthError       -- token rejected (401/403)
    AimsQueryError      -- any other HTTP error or unreadable body
"""

from __future__ import annotations

import logging
import time
from typing import Any, Optional, Protocol

import httpx

from reconciliation.models import Store

log = logging.getLogger("esl_drift.aims_client")

# Articles per page; the platform caps list pages at this size
PAGE_SIZE = 100
# Safety limit on pages per store to prevent runaway pagination
MAX_PAGES = 50
# Refresh tokens this many seconds before they expire
TOKEN_EXPIRY_BUFFER = 300.0


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class AimsConnectionError(ConnectionError):
    """
    AIMS server is unreachable or the request timed out.

    Subclasses ConnectionError so error classification treats it as
    transient.
    """


class AimsAuthError(Exception):
    """The platform rejected the credentials or bearer token (401/403)."""

    def __init__(self, message: str, response: Optional[httpx.Response] = None):
        super().__init__(message)
        self.response = response


class AimsQueryError(Exception):
    """Non-auth HTTP error, or a response body that could not be read."""

    def __init__(self, message: str, response: Optional[httpx.Response] = None):
        super().__init__(message)
        self.response = response


# ---------------------------------------------------------------------------
# Parse helper
# ---------------------------------------------------------------------------


def _extract_articles(body: Any) -> list[dict[str, Any]]:
    """
    Pull the article list out of a listing response.

    The platform has returned a bare list, or an object keyed by
    ``articleList``, ``content`` or ``data`` depending on version.
    """
    if body is None:
        return []
    if isinstance(body, list):
        return body
    if isinstance(body, dict):
        for key in ("articleList", "content", "data"):
            value = body.get(key)
            if isinstance(value, list):
                return value
        return []
    raise AimsQueryError(f"Unexpected article listing payload: {type(body).__name__}")


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class AimsClient:
    """
    Async HTTP client for the AIMS article API.

    Usage (async context)::

        client = AimsClient("https://aims.example.com", "user", "secret", company="ACME")
        try:
            articles = await client.fetch_articles("S001", page=0)
        finally:
            await client.close()
    """

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        company: str,
        cluster: Optional[str] = None,
        timeout: float = 30.0,
    ) -> None:
        """
        Create the async AIMS client.

        Args:
            base_url:  Platform base URL. Trailing slashes are stripped.
            username:  API user.
            password:  API password.
            company:   Company name the stores belong to.
            cluster:   Optional cluster; "c1" adds the /c1 path prefix.
            timeout:   Total request timeout in seconds (default 30). Connect
                       timeout is fixed at 5 seconds.
        """
        prefix = "/c1" if cluster == "c1" else ""
        self._base = base_url.rstrip("/") + prefix
        self._username = username
        self._password = password
        self.company = company

        self._token: Optional[str] = None
        self._token_expires_at = 0.0

        self._client = httpx.AsyncClient(
            headers={"Content-Type": "application/json"},
            timeout=httpx.Timeout(timeout, connect=5.0),
        )
        log.debug("AimsClient initialised: base=%s company=%s", self._base, company)

    async def close(self) -> None:
        """Close the underlying httpx client and release connections."""
        await self._client.aclose()

    def invalidate_token(self) -> None:
        """Drop the cached token so the next request logs in again."""
        self._token = None
        self._token_expires_at = 0.0

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            resp = await self._client.request(method, self._base + path, **kwargs)
        except httpx.ConnectError as exc:
            raise AimsConnectionError(f"Cannot connect to AIMS: {exc}") from exc
        except httpx.TimeoutException as exc:
            raise AimsConnectionError(f"AIMS request timed out: {exc}") from exc

        if resp.status_code in (401, 403):
            raise AimsAuthError(f"AIMS rejected credentials: HTTP {resp.status_code}", response=resp)
        if resp.is_error:
            raise AimsQueryError(f"AIMS request failed: HTTP {resp.status_code}", response=resp)
        return resp

    async def login(self) -> str:
        """
        Obtain a bearer token.

        Returns:
            The access token.

        Raises:
            AimsAuthError:       Credentials rejected.
            AimsConnectionError: Server unreachable or timed out.
            AimsQueryError:      Other HTTP error or unreadable token payload.
        """
        resp = await self._request(
            "POST",
            "/common/api/v2/token",
            json={"username": self._username, "password": self._password},
        )
        try:
            token_data = resp.json()["responseMessage"]
            token = token_data["access_token"]
            expires_in = float(token_data.get("expires_in", 3600))
        except (ValueError, KeyError, TypeError) as exc:
            raise AimsQueryError(f"Unreadable AIMS token response: {exc}", response=resp) from exc

        self._token = token
        self._token_expires_at = time.time() + expires_in
        log.debug("AIMS login succeeded, token valid for %.0fs", expires_in)
        return token

    async def get_token(self) -> str:
        """Return the cached token, logging in when missing or near expiry."""
        if self._token is None or time.time() >= self._token_expires_at - TOKEN_EXPIRY_BUFFER:
            return await self.login()
        return self._token

    async def fetch_articles(self, store_code: str, page: int = 0, size: int = PAGE_SIZE) -> list[dict[str, Any]]:
        """
        Fetch one page of articles for a store.

        Args:
            store_code: Store code on the platform.
            page:       Zero-based page index.
            size:       Page size.

        Returns:
            List of raw article dicts (empty on 204 or empty body).
        """
        token = await self.get_token()
        resp = await self._request(
            "GET",
            "/common/api/v2/common/config/article/info",
            params={"company": self.company, "store": store_code, "page": page, "size": size},
            headers={"Authorization": f"Bearer {token}"},
        )
        if resp.status_code == 204 or not resp.content:
            return []
        try:
            body = resp.json()
        except ValueError as exc:
            raise AimsQueryError(f"Unreadable AIMS article response: {exc}", response=resp) from exc
        return _extract_articles(body)


# ---------------------------------------------------------------------------
# Gateway
# ---------------------------------------------------------------------------


class StoreLookup(Protocol):
    async def get_store(self, store_id: str) -> Optional[Store]:
        ...


class AimsGateway:
    """
    RemoteGateway adapter: all articles for a local store.

    Resolves the store's platform code through ``store_lookup``, then pages
    through the article listing until a short page or MAX_PAGES. If the
    token is rejected mid-listing it is invalidated and the page retried
    once with a fresh login.
    """

    def __init__(self, client: AimsClient, store_lookup: StoreLookup, page_size: int = PAGE_SIZE) -> None:
        self.client = client
        self.store_lookup = store_lookup
        self.page_size = page_size

    async def fetch_remote_records(self, store_id: str) -> list[dict[str, Any]]:
        store = await self.store_lookup.get_store(store_id)
        if store is None:
            raise LookupError(f"Store {store_id} not found")

        articles: list[dict[str, Any]] = []
        for page in range(MAX_PAGES):
            batch = await self._fetch_page(store.code, page)
            if not batch:
                break
            articles.extend(batch)
            if len(batch) < self.page_size:
                break
        else:
            log.warning("Stopped paging store %s after %d pages", store.code, MAX_PAGES)

        return articles

    async def _fetch_page(self, store_code: str, page: int) -> list[dict[str, Any]]:
        try:
            return await self.client.fetch_articles(store_code, page, self.page_size)
        except AimsAuthError:
            log.info("AIMS token rejected, logging in again")
            self.client.invalidate_token()
            return await self.client.fetch_articles(store_code, page, self.page_size)
