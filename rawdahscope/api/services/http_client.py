"""
Shared async HTTP plumbing for the upstream clients.

Every client owns one ``httpx.AsyncClient`` built here, so every call
carries a request-level timeout and the dashboard User-Agent. The
timeout is independent of the source-chain retry budget: a hung request
fails its attempt instead of blocking it.

Retries are NOT done here. They belong to the source chain, which
re-runs the whole strategy list.
"""

from typing import Any

import httpx
from loguru import logger
from pydantic import BaseModel

DEFAULT_TIMEOUT = 10.0
DEFAULT_USER_AGENT = "RawdahScope-Dashboard/1.0"


class ClientConfig(BaseModel):
    """Connection settings common to every upstream client."""

    base_url: str
    timeout: float = DEFAULT_TIMEOUT
    user_agent: str = DEFAULT_USER_AGENT


def create_async_client(
    timeout: float = DEFAULT_TIMEOUT,
    user_agent: str = DEFAULT_USER_AGENT,
    limits: httpx.Limits | None = None,
) -> httpx.AsyncClient:
    """Build an ``httpx.AsyncClient`` with timeout and identification."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout),
        limits=limits or httpx.Limits(),
        headers={"User-Agent": user_agent, "Accept": "application/json"},
        follow_redirects=True,
    )


class AsyncJSONClient:
    """Base class: one pooled connection, JSON GET/POST helpers."""

    def __init__(
        self, config: ClientConfig, limits: httpx.Limits | None = None
    ):
        self.config = config
        self.client = create_async_client(
            config.timeout, config.user_agent, limits
        )

    async def close(self):
        """Close HTTP connection."""
        await self.client.aclose()

    async def _get_json(
        self, url: str, params: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        response = await self.client.get(url, params=params)
        return self._decode(response)

    async def _post_json(
        self, url: str, payload: dict[str, Any]
    ) -> dict[str, Any]:
        response = await self.client.post(url, json=payload)
        return self._decode(response)

    @staticmethod
    def _decode(response: httpx.Response) -> dict[str, Any]:
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict):
            msg = f"Expected a JSON object from {response.url}"
            raise ValueError(msg)
        logger.debug(f"{response.request.method} {response.url} -> 200")
        return data
