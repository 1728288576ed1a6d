"""Connectivity probes: the only writers of SessionContext.connectivity."""

from typing import Protocol

import httpx

from ..logging_config import get_logger
from ..models import Connectivity, SessionContext

logger = get_logger(__name__)


class IConnectivityProbe(Protocol):
    """Liveness check against the assistant service."""

    async def probe(self, context: SessionContext) -> Connectivity:
        """Check liveness and record the result on the context."""
        ...


class HttpConnectivityProbe:
    """GET ``{base_url}/health``; anything but a 2xx leaves the session degraded."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        client: httpx.AsyncClient | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def probe(self, context: SessionContext) -> Connectivity:
        context.connectivity = Connectivity.CONNECTING
        try:
            resp = await self._client.get(f"{self._base_url}/health")
            resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(
                "Health check failed: %s", e, extra={"session_id": context.session_id}
            )
            context.connectivity = Connectivity.DEGRADED
            return context.connectivity

        context.connectivity = Connectivity.ONLINE
        return context.connectivity

    async def close(self) -> None:
        await self._client.aclose()


class StaticConnectivityProbe:
    """Reports a fixed result. Used with the simulated and Anthropic strategies."""

    def __init__(self, result: Connectivity = Connectivity.ONLINE):
        self._result = result

    async def probe(self, context: SessionContext) -> Connectivity:
        context.connectivity = self._result
        return context.connectivity

    async def close(self) -> None:
        return
