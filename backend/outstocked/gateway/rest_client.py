import logging
from collections.abc import Callable
from typing import Any, Optional

import httpx

from outstocked.gateway.errors import DatabaseError, error_message

logger = logging.getLogger(__name__)

Row = dict[str, Any]


def _filter_value(value: Any) -> str:
    if value is None:
        return "is.null"
    if isinstance(value, bool):
        return f"eq.{str(value).lower()}"
    if isinstance(value, (list, tuple, set)):
        return f"in.({','.join(str(v) for v in value)})"
    return f"eq.{value}"


class RestClient:
    """
    Row-oriented access to the hosted database (``/rest/v1``).

    Filters are equality matches on keyword arguments; ``None`` matches
    NULL and a list matches any of its values. Requests carry the signed-in
    user's token when one is available so row-level security applies.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        token_provider: Optional[Callable[[], Optional[str]]] = None,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = f"{base_url.rstrip('/')}/rest/v1"
        self.api_key = api_key
        self._token_provider = token_provider
        self._http = httpx.AsyncClient(timeout=timeout, transport=transport)

    def _headers(self, extra: Optional[dict[str, str]] = None) -> dict[str, str]:
        token = self._token_provider() if self._token_provider else None
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {token or self.api_key}",
            "Content-Type": "application/json",
        }
        if extra:
            headers.update(extra)
        return headers

    async def _request(
        self,
        method: str,
        table: str,
        *,
        params: Optional[dict[str, str]] = None,
        json: Any = None,
        headers: Optional[dict[str, str]] = None,
    ) -> httpx.Response:
        try:
            response = await self._http.request(
                method,
                f"{self.base_url}/{table}",
                params=params,
                json=json,
                headers=self._headers(headers),
            )
        except httpx.HTTPError as e:
            logger.error("Database request %s %s failed: %s", method, table, e)
            raise DatabaseError(f"Failed to contact database: {e}") from e

        if response.status_code >= 400:
            code = None
            try:
                body = response.json()
                if isinstance(body, dict):
                    code = body.get("code")
            except ValueError:
                pass
            raise DatabaseError(error_message(response), response.status_code, code)
        return response

    async def select(
        self,
        table: str,
        *,
        columns: str = "*",
        order: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        **filters: Any,
    ) -> list[Row]:
        params = {"select": columns}
        params.update({column: _filter_value(value) for column, value in filters.items()})
        if order:
            params["order"] = f"{order}.{'desc' if descending else 'asc'}"
        if limit is not None:
            params["limit"] = str(limit)

        response = await self._request("GET", table, params=params)
        return response.json()

    async def select_one(self, table: str, *, columns: str = "*", **filters: Any) -> Optional[Row]:
        """Return the matching row, or None when there is none. Failures raise DatabaseError."""
        rows = await self.select(table, columns=columns, limit=1, **filters)
        return rows[0] if rows else None

    async def insert(self, table: str, row: Row) -> Row:
        response = await self._request(
            "POST",
            table,
            json=row,
            headers={"Prefer": "return=representation"},
        )
        body = response.json()
        return body[0] if isinstance(body, list) else body

    async def count(self, table: str, **filters: Any) -> int:
        params = {"select": "*"}
        params.update({column: _filter_value(value) for column, value in filters.items()})
        response = await self._request(
            "HEAD", table, params=params, headers={"Prefer": "count=exact"}
        )
        content_range = response.headers.get("content-range", "*/0")
        total = content_range.rsplit("/", 1)[-1]
        return int(total) if total.isdigit() else 0

    async def aclose(self) -> None:
        await self._http.aclose()
