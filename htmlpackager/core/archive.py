from __future__ import annotations

import asyncio
import io
import zipfile
from collections import Counter
from typing import Callable, List, Optional

from htmlpackager.core.progress import ProgressStage
from htmlpackager.errors import DuplicatePathError
from htmlpackager.models import ArchiveEntry

# Fixed metadata so identical entries always produce identical bytes.
_FIXED_DATE = (1980, 1, 1, 0, 0, 0)
_FILE_MODE = 0o644 << 16
_UNIX = 3


def find_duplicate_paths(entries: List[ArchiveEntry]) -> List[str]:
    counts = Counter(e.path for e in entries)
    seen = set()
    dups: List[str] = []
    for e in entries:
        if counts[e.path] > 1 and e.path not in seen:
            seen.add(e.path)
            dups.append(e.path)
    return dups


def _entry_info(path: str) -> zipfile.ZipInfo:
    info = zipfile.ZipInfo(path, date_time=_FIXED_DATE)
    info.compress_type = zipfile.ZIP_DEFLATED
    info.create_system = _UNIX
    info.external_attr = _FILE_MODE
    return info


async def build_archive(
    entries: List[ArchiveEntry],
    stage: Optional[ProgressStage] = None,
    progress_cb: Optional[Callable[[float, str], None]] = None,
    compresslevel: int = 6,
) -> bytes:
    """
    DEFLATE-compress entries into a zip, in the order given.

    Duplicate paths are rejected before anything is written. After each entry
    the percent complete (0..100) and the entry path are reported to
    `progress_cb` and forwarded to `stage` (as a 0..1 fraction and caption).
    """
    dups = find_duplicate_paths(entries)
    if dups:
        raise DuplicatePathError(dups[0])

    total = len(entries)
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for idx, entry in enumerate(entries, start=1):
            zf.writestr(_entry_info(entry.path), entry.data, compresslevel=compresslevel)

            percent = idx / total * 100
            if stage is not None:
                stage.percent(percent / 100)
                stage.caption = entry.path
            if progress_cb:
                progress_cb(percent, entry.path)

            # Let other tasks run between entries.
            await asyncio.sleep(0)

    if total == 0 and stage is not None:
        stage.finish()

    return buf.getvalue()
