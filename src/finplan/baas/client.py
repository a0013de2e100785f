"""BaaS REST client: auth lookups and PostgREST table queries."""

import asyncio
from typing import Any

import httpx
import structlog

from finplan.config import get_settings

logger = structlog.get_logger(__name__)


class BaaSError(Exception):
    """Base exception for BaaS errors."""

    def __init__(self, message: str, status_code: int | None = None, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class AuthenticationError(BaaSError):
    """The bearer token was rejected."""

    pass


class NotFoundError(BaaSError):
    """A single-row query matched no rows."""

    pass


class Query:
    """Chainable table query, executed with :meth:`execute`.

    Filters map to PostgREST query parameters (``col=eq.value``).
    """

    def __init__(self, client: "BaaSClient", table: str):
        self._client = client
        self._table = table
        self._method = "GET"
        self._params: list[tuple[str, str]] = []
        self._body: Any = None
        self._prefer: list[str] = []
        self._single = False
        self._maybe_single = False

    def select(self, columns: str = "*") -> "Query":
        self._params.append(("select", columns))
        if self._method != "GET":
            self._prefer.append("return=representation")
        return self

    def _filter(self, column: str, op: str, value: Any) -> "Query":
        if isinstance(value, bool):
            text = "true" if value else "false"
        elif value is None:
            text = "null"
        else:
            text = str(value)
        self._params.append((column, f"{op}.{text}"))
        return self

    def eq(self, column: str, value: Any) -> "Query":
        return self._filter(column, "eq", value)

    def neq(self, column: str, value: Any) -> "Query":
        return self._filter(column, "neq", value)

    def gte(self, column: str, value: Any) -> "Query":
        return self._filter(column, "gte", value)

    def lt(self, column: str, value: Any) -> "Query":
        return self._filter(column, "lt", value)

    def lte(self, column: str, value: Any) -> "Query":
        return self._filter(column, "lte", value)

    def is_(self, column: str, value: bool | None) -> "Query":
        return self._filter(column, "is", value)

    def not_(self, column: str, op: str, value: Any) -> "Query":
        """Negated filter, e.g. ``not_("amount", "is", None)``."""
        return self._filter(column, f"not.{op}", value)

    def order(self, column: str, desc: bool = False) -> "Query":
        self._params.append(("order", f"{column}.{'desc' if desc else 'asc'}"))
        return self

    def limit(self, count: int) -> "Query":
        self._params.append(("limit", str(count)))
        return self

    def insert(self, rows: dict[str, Any] | list[dict[str, Any]]) -> "Query":
        self._method = "POST"
        self._body = rows
        return self

    def update(self, values: dict[str, Any]) -> "Query":
        self._method = "PATCH"
        self._body = values
        return self

    def upsert(
        self, rows: dict[str, Any] | list[dict[str, Any]], on_conflict: str | None = None
    ) -> "Query":
        self._method = "POST"
        self._body = rows
        self._prefer.append("resolution=merge-duplicates")
        if on_conflict:
            self._params.append(("on_conflict", on_conflict))
        return self

    def single(self) -> "Query":
        """Expect exactly one row; :meth:`execute` returns it as a dict."""
        self._single = True
        return self

    def maybe_single(self) -> "Query":
        """Expect at most one row; :meth:`execute` returns it or ``None``."""
        self._maybe_single = True
        return self

    @property
    def params(self) -> list[tuple[str, str]]:
        return list(self._params)

    async def execute(self) -> Any:
        headers = {}
        if self._prefer:
            headers["Prefer"] = ",".join(self._prefer)
        data = await self._client.request(
            self._method,
            f"/rest/v1/{self._table}",
            params=self._params,
            json=self._body,
            headers=headers,
        )
        rows = data if isinstance(data, list) else ([data] if data else [])

        if self._single:
            if len(rows) != 1:
                raise NotFoundError(
                    f"Expected one row from {self._table}, got {len(rows)}",
                    status_code=406,
                )
            return rows[0]
        if self._maybe_single:
            if len(rows) > 1:
                raise BaaSError(
                    f"Expected at most one row from {self._table}, got {len(rows)}",
                    status_code=406,
                )
            return rows[0] if rows else None
        return rows


class BaaSClient:
    """Async client for the BaaS auth and REST endpoints."""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        access_token: str | None = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.supabase_url).rstrip("/")
        self._api_key = api_key or settings.supabase_service_role_key.get_secret_value()
        self._access_token = access_token
        self._timeout = settings.baas_timeout
        self._max_retries = settings.baas_max_retries
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def for_service(cls) -> "BaaSClient":
        """Client acting with the service-role key (bypasses row security)."""
        settings = get_settings()
        return cls(api_key=settings.supabase_service_role_key.get_secret_value())

    @classmethod
    def for_user(cls, access_token: str) -> "BaaSClient":
        """Client acting as the user identified by ``access_token``."""
        settings = get_settings()
        return cls(
            api_key=settings.supabase_anon_key.get_secret_value(),
            access_token=access_token,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self._timeout),
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "BaaSClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _get_headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = {
            "apikey": self._api_key,
            "Authorization": f"Bearer {self._access_token or self._api_key}",
            "Content-Type": "application/json",
        }
        if extra:
            headers.update(extra)
        return headers

    async def request(
        self,
        method: str,
        path: str,
        params: list[tuple[str, str]] | dict[str, Any] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
        retry_count: int = 0,
    ) -> Any:
        """Make a request with retry on transport errors."""
        client = await self._get_client()
        try:
            response = await client.request(
                method=method,
                url=path,
                params=params,
                json=json,
                headers=self._get_headers(headers),
            )

            if response.status_code == 401:
                raise AuthenticationError("Authentication failed", status_code=401)

            if response.status_code >= 400:
                try:
                    error_detail = response.json() if response.content else {}
                except ValueError:
                    error_detail = {
                        "raw": response.text[:500] if response.text else "empty response"
                    }
                message = (
                    error_detail.get("message")
                    if isinstance(error_detail, dict) and error_detail.get("message")
                    else f"BaaS error: {response.status_code}"
                )
                logger.error(
                    "baas_request_failed",
                    method=method,
                    path=path,
                    status_code=response.status_code,
                )
                raise BaaSError(message, status_code=response.status_code, details=error_detail)

            return response.json() if response.content else None

        except httpx.RequestError as e:
            if retry_count < self._max_retries:
                await asyncio.sleep(2**retry_count)
                return await self.request(method, path, params, json, headers, retry_count + 1)
            raise BaaSError(f"Request failed: {e}") from e

    def table(self, name: str) -> Query:
        return Query(self, name)

    async def get_user(self) -> dict[str, Any]:
        """Resolve the user behind this client's access token.

        Raises:
            AuthenticationError: Missing, expired or invalid token.
        """
        if not self._access_token:
            raise AuthenticationError("Authorization required", status_code=401)
        user = await self.request("GET", "/auth/v1/user")
        if not isinstance(user, dict) or not user.get("id"):
            raise AuthenticationError("Authentication failed", status_code=401)
        logger.debug("user_resolved", user_id=user["id"])
        return user
