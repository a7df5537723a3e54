from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional
from urllib.parse import urljoin

import httpx

from htmlpackager.config import (
    DEFAULT_RUNTIME_ROOT,
    HTTP_CONNECT_TIMEOUT_SECONDS,
    HTTP_TIMEOUT_SECONDS,
)
from htmlpackager.core.dataurl import BytesBlob, guess_mime
from htmlpackager.core.progress import ProgressStage
from htmlpackager.errors import FetchError

logger = logging.getLogger(__name__)


def _is_remote(root: str) -> bool:
    return root.startswith("http://") or root.startswith("https://")


@contextmanager
def _track(stage: Optional[ProgressStage]) -> Iterator[None]:
    # One request = one unit of work on the stage; counted done only on success.
    if stage is not None:
        stage.total += 1
    yield
    if stage is not None:
        stage.completed += 1


class Fetcher:
    """
    Instrumented fetch wrapper handed to every component that performs I/O.

    Relative sources resolve against `root`, which is either an http(s) base
    URL or a local directory holding the runtime files. Absolute URLs go
    through the shared httpx client. Every request is counted on the stage
    passed in, if any.
    """

    def __init__(self, root: str = DEFAULT_RUNTIME_ROOT, client: Optional[httpx.AsyncClient] = None):
        self.root = root
        self._client = client
        self._owns_client = client is None

    @property
    def is_local(self) -> bool:
        return not _is_remote(self.root)

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(HTTP_TIMEOUT_SECONDS, connect=HTTP_CONNECT_TIMEOUT_SECONDS),
                follow_redirects=True,
            )
        return self._client

    def resolve(self, src: str) -> str:
        if _is_remote(src):
            return src
        if self.is_local:
            return str(Path(self.root) / src)
        base = self.root if self.root.endswith("/") else self.root + "/"
        return urljoin(base, src)

    async def get_response(self, url: str, stage: Optional[ProgressStage] = None) -> httpx.Response:
        """GET an absolute URL. Any HTTP status is returned; transport errors raise FetchError."""
        with _track(stage):
            try:
                resp = await self.client.get(url)
            except httpx.HTTPError as e:
                raise FetchError(url, str(e)) from e
        logger.debug("GET %s -> %s", url, resp.status_code)
        return resp

    async def get_bytes(self, src: str, stage: Optional[ProgressStage] = None) -> bytes:
        target = self.resolve(src)
        if not _is_remote(target):
            with _track(stage):
                try:
                    return await asyncio.to_thread(Path(target).read_bytes)
                except OSError as e:
                    raise FetchError(src, str(e)) from e

        resp = await self.get_response(target, stage)
        if resp.status_code != 200:
            raise FetchError(src, f"HTTP {resp.status_code}")
        return resp.content

    async def get_text(self, src: str, stage: Optional[ProgressStage] = None) -> str:
        data = await self.get_bytes(src, stage)
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise FetchError(src, "not valid UTF-8 text") from e

    async def get_blob(self, src: str, stage: Optional[ProgressStage] = None) -> BytesBlob:
        data = await self.get_bytes(src, stage)
        return BytesBlob(data, mime=guess_mime(src))

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "Fetcher":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
