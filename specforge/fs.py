"""
Specforge File System - Disk primitives used by the generation engine

Writes are synchronous. Binary downloads run on a background worker so the
tree walk never waits on the network; ``close()`` drains them.
"""

from __future__ import annotations

import logging
import shutil
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Protocol

import httpx

logger = logging.getLogger(__name__)


class FileSystem(Protocol):
    def exists(self, path: str | Path) -> bool: ...

    def read(self, path: str | Path) -> str: ...

    def write(self, path: str | Path, content: str) -> None: ...

    def mkdir(self, path: str | Path) -> None: ...

    def rmdir(self, path: str | Path) -> None: ...

    def download(self, url: str, path: str | Path) -> object: ...

    def close(self) -> None: ...


class LocalFileSystem:
    """
    File-system collaborator backed by the local disk.

    Args:
        timeout: Per-download timeout in seconds
        max_downloads: Concurrent download workers
        client: HTTP client for downloads; one is created on first use
            (and closed by ``close()``) when omitted
    """

    def __init__(
        self,
        timeout: float = 60.0,
        max_downloads: int = 4,
        client: httpx.Client | None = None,
    ) -> None:
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None
        self._executor = ThreadPoolExecutor(max_workers=max_downloads, thread_name_prefix="specforge-dl")
        self._pending: list[Future] = []
        self.failed: list[str] = []

    def exists(self, path: str | Path) -> bool:
        return Path(path).exists()

    def read(self, path: str | Path) -> str:
        return Path(path).read_text(encoding="utf-8")

    def write(self, path: str | Path, content: str) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")

    def mkdir(self, path: str | Path) -> None:
        Path(path).mkdir(parents=True, exist_ok=True)

    def rmdir(self, path: str | Path) -> None:
        shutil.rmtree(path, ignore_errors=True)

    # ------------------------------------------------------------------
    # Downloads
    # ------------------------------------------------------------------

    def _http(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=httpx.Timeout(self.timeout, connect=10.0), follow_redirects=True)
        return self._client

    def _fetch(self, client: httpx.Client, url: str, path: Path) -> None:
        try:
            with client.stream("GET", url) as response:
                response.raise_for_status()
                with path.open("wb") as fh:
                    for chunk in response.iter_bytes():
                        fh.write(chunk)
            logger.debug("Downloaded %s -> %s", url, path)
        except (httpx.HTTPError, httpx.InvalidURL, OSError) as exc:
            logger.error("Download of %s failed: %s", url, exc)
            self.failed.append(url)
            # A partial file would block the next attempt
            path.unlink(missing_ok=True)

    def download(self, url: str, path: str | Path) -> Future:
        """Fetch ``url`` into ``path`` in the background."""
        future = self._executor.submit(self._fetch, self._http(), url, Path(path))
        self._pending.append(future)
        return future

    def close(self) -> None:
        """Wait for pending downloads and release the worker pool."""
        self._executor.shutdown(wait=True)
        for future in self._pending:
            exc = future.exception()
            if exc is not None:
                logger.error("Download worker failed: %s", exc)
        self._pending.clear()
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None
