"""File transports: how attachment bytes reach the remote side."""

import asyncio
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, Protocol

import httpx

from ..errors import TransferFailed
from ..models import RawFile

ProgressReporter = Callable[[int], Awaitable[None]]

CHUNK_SIZE = 64 * 1024


@dataclass
class TransferResult:
    """Where a transferred file ended up, and what the remote side made of it."""

    remote_ref: str
    analysis_summary: str | None = None


class IFileTransport(Protocol):
    """Moves one file to remote storage, reporting percent complete."""

    async def transfer(
        self, file: RawFile, file_id: str, report: ProgressReporter
    ) -> TransferResult:
        """Transfer ``file`` and return its remote reference."""
        ...


class SimulatedFileTransport:
    """Pretends to upload in fixed 20% steps."""

    def __init__(self, step_delay_s: float = 0.15):
        self._step_delay_s = step_delay_s

    async def transfer(
        self, file: RawFile, file_id: str, report: ProgressReporter
    ) -> TransferResult:
        for percent in range(20, 101, 20):
            await asyncio.sleep(self._step_delay_s)
            await report(percent)

        return TransferResult(
            remote_ref=f"simulated://files/{file_id}/{file.name}",
            analysis_summary=(
                f"Simulated analysis: {file.name} is a {file.media_type} file "
                f"of {file.byte_size} bytes."
            ),
        )


class HttpFileTransport:
    """Streams the file body to ``{base_url}/files`` and reports bytes sent."""

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def _body(self, file: RawFile, report: ProgressReporter) -> AsyncIterator[bytes]:
        total = max(file.byte_size, 1)
        sent = 0
        for start in range(0, file.byte_size, CHUNK_SIZE):
            chunk = file.data[start:start + CHUNK_SIZE]
            yield chunk
            sent += len(chunk)
            await report(sent * 100 // total)

    async def transfer(
        self, file: RawFile, file_id: str, report: ProgressReporter
    ) -> TransferResult:
        headers = {
            "Content-Type": file.media_type,
            "X-File-Id": file_id,
            "X-File-Name": file.name,
            "Content-Length": str(file.byte_size),
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"

        try:
            resp = await self._client.post(
                f"{self._base_url}/files",
                content=self._body(file, report),
                headers=headers,
            )
        except httpx.HTTPError as e:
            raise TransferFailed(file.name, str(e) or type(e).__name__) from e

        if resp.status_code >= 400:
            raise TransferFailed(file.name, f"HTTP {resp.status_code}: {resp.text[:200]}")

        data = resp.json()
        remote_ref = data.get("url") or data.get("remoteRef")
        if not remote_ref:
            raise TransferFailed(file.name, "response carried no file URL")

        analysis = data.get("analysis") or {}
        return TransferResult(
            remote_ref=remote_ref,
            analysis_summary=analysis.get("summary") if isinstance(analysis, dict) else str(analysis),
        )

    async def close(self) -> None:
        await self._client.aclose()
