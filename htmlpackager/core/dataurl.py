from __future__ import annotations

import asyncio
import base64
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Callable, Optional

import httpx

from htmlpackager.config import READ_CHUNK_SIZE
from htmlpackager.errors import ReadError

DEFAULT_MIME = "application/octet-stream"

# Font types are missing from the mimetypes table on several platforms.
_EXTRA_MIME = {
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",
    ".sb2": "application/x.scratch.sb2",
    ".sb3": "application/x.scratch.sb3",
}


def guess_mime(name: str) -> str:
    ext = Path(name).suffix.lower()
    if ext in _EXTRA_MIME:
        return _EXTRA_MIME[ext]
    mime, _ = mimetypes.guess_type(name)
    return mime or DEFAULT_MIME


class Blob:
    """Readable bytes with a MIME type and, when known, a length."""

    mime: str = DEFAULT_MIME

    @property
    def size(self) -> Optional[int]:
        return None

    def chunks(self) -> AsyncIterator[bytes]:
        raise NotImplementedError


class BytesBlob(Blob):
    def __init__(self, data: bytes, mime: str = DEFAULT_MIME, chunk_size: int = READ_CHUNK_SIZE):
        self.data = data
        self.mime = mime
        self.chunk_size = chunk_size

    @property
    def size(self) -> Optional[int]:
        return len(self.data)

    async def chunks(self) -> AsyncIterator[bytes]:
        for i in range(0, len(self.data), self.chunk_size):
            yield self.data[i:i + self.chunk_size]


class FileBlob(Blob):
    """A file on disk, read in chunks off the event loop."""

    def __init__(self, path: str, mime: Optional[str] = None, chunk_size: int = READ_CHUNK_SIZE):
        self.path = Path(path)
        self.mime = mime or guess_mime(self.path.name)
        self.chunk_size = chunk_size

    @property
    def size(self) -> Optional[int]:
        try:
            return self.path.stat().st_size
        except OSError:
            return None

    async def chunks(self) -> AsyncIterator[bytes]:
        try:
            f = await asyncio.to_thread(self.path.open, "rb")
        except OSError as e:
            raise ReadError(f"Cannot read file: {self.path} ({e})") from e
        try:
            while True:
                try:
                    chunk = await asyncio.to_thread(f.read, self.chunk_size)
                except OSError as e:
                    raise ReadError(f"Error reading file: {self.path} ({e})") from e
                if not chunk:
                    break
                yield chunk
        finally:
            f.close()


class StreamBlob(Blob):
    """Wraps an async chunk iterator whose total length may be unknown."""

    def __init__(self, chunks: AsyncIterator[bytes], mime: str = DEFAULT_MIME, size: Optional[int] = None):
        self._chunks = chunks
        self.mime = mime
        self._size = size

    @property
    def size(self) -> Optional[int]:
        return self._size

    async def chunks(self) -> AsyncIterator[bytes]:
        async for chunk in self._chunks:
            yield chunk


@dataclass(frozen=True)
class ReadEvent:
    progress: float  # 0..1
    result: Optional[str] = None  # set only on the final event

    @property
    def done(self) -> bool:
        return self.result is not None


async def stream_data_url(blob: Blob) -> AsyncIterator[ReadEvent]:
    """
    Read a blob and yield progress events, ending with one event at exactly 1
    that carries the data: URI.

    While the blob length is unknown every intermediate event reports 0.
    Read failures surface as ReadError; no result is produced in that case.
    """
    size = blob.size
    parts = []
    loaded = 0
    try:
        async for chunk in blob.chunks():
            parts.append(chunk)
            loaded += len(chunk)
            if size:
                yield ReadEvent(min(loaded / size, 1.0))
            else:
                yield ReadEvent(0.0)
    except (OSError, httpx.TransportError) as e:
        raise ReadError(f"Error reading blob ({e})") from e

    encoded = base64.b64encode(b"".join(parts)).decode("ascii")
    yield ReadEvent(1.0, f"data:{blob.mime};base64,{encoded}")


async def read_as_data_url(
    blob: Blob,
    progress_cb: Optional[Callable[[float], None]] = None,
) -> str:
    result = None
    async for event in stream_data_url(blob):
        if progress_cb:
            progress_cb(event.progress)
        if event.done:
            result = event.result
    if result is None:
        raise ReadError("Blob read ended without a result")
    return result
