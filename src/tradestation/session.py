"""Authorized HTTP Session.

Thin layer over ``httpx.AsyncClient`` that resolves a bearer token before
every request, raises on non-success status and decodes JSON bodies with
exact decimals.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional
import logging

import httpx

from src.logging_config import log_performance
from src.tradestation.auth import TokenManager
from src.tradestation.parsing import decode_json

logger = logging.getLogger(__name__)


class AuthorizedSession:
    """Sends bearer-authorized requests on behalf of the client components."""

    def __init__(self, http_client: httpx.AsyncClient, tokens: TokenManager):
        self._http = http_client
        self._tokens = tokens

    @property
    def tokens(self) -> TokenManager:
        return self._tokens

    @log_performance()
    async def get_json(self, url: str, params: Optional[dict[str, str]] = None) -> Any:
        headers = await self._tokens.auth_headers()
        resp = await self._http.get(url, params=params, headers=headers)
        resp.raise_for_status()
        return decode_json(resp.content)

    @log_performance()
    async def post_json(self, url: str, payload: dict[str, Any]) -> httpx.Response:
        headers = await self._tokens.auth_headers()
        resp = await self._http.post(url, json=payload, headers=headers)
        resp.raise_for_status()
        return resp

    @asynccontextmanager
    async def stream_lines(
        self, url: str, params: Optional[dict[str, str]] = None
    ) -> AsyncIterator[AsyncIterator[str]]:
        """Open a long-lived response and yield its line iterator.

        The token is re-resolved on every call, so each reconnect may
        trigger a refresh.
        """
        headers = await self._tokens.auth_headers()
        async with self._http.stream("GET", url, params=params, headers=headers) as resp:
            resp.raise_for_status()
            yield resp.aiter_lines()
