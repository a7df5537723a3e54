from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional

from htmlpackager.core.dataurl import read_as_data_url
from htmlpackager.core.fetching import Fetcher
from htmlpackager.core.manifests import RuntimeManifest
from htmlpackager.core.progress import ProgressBoard, ProgressStage
from htmlpackager.models import BinaryResource, LoadedResources, TextResource

logger = logging.getLogger(__name__)


def provenance_comment(src: str) -> str:
    return f"/* F: {src} */"


async def fetch_data_url(
    fetcher: Fetcher,
    src: str,
    stage: Optional[ProgressStage] = None,
    cache: Optional[Dict[str, "asyncio.Future[str]"]] = None,
) -> str:
    """
    Fetch `src` and encode it as a data: URI. With a cache, concurrent callers
    asking for the same source share one fetch.
    """
    if cache is None:
        blob = await fetcher.get_blob(src, stage)
        return await read_as_data_url(blob)

    task = cache.get(src)
    if task is None:
        task = cache[src] = asyncio.ensure_future(fetch_data_url(fetcher, src, stage))
    # Shielded so one cancelled caller does not cancel the fetch for the others.
    return await asyncio.shield(task)


async def inline_urls(
    fetcher: Fetcher,
    source: str,
    paths: List[str],
    stage: Optional[ProgressStage] = None,
    cache: Optional[Dict[str, "asyncio.Future[str]"]] = None,
) -> str:
    """
    Replace every literal occurrence of each path in `source` with the data:
    URI of the file it names. All paths are fetched concurrently.
    """
    async def _encode(path: str) -> tuple:
        return path, await fetch_data_url(fetcher, path, stage, cache)

    encoded = await asyncio.gather(*(_encode(p) for p in paths))

    # Longest first so a path that is a suffix of another cannot clobber it.
    for path, url in sorted(encoded, key=lambda kv: -len(kv[0])):
        source = source.replace(path, url)
    return source


class ResourceLoader:
    """
    Loads the text and binary resources of a runtime manifest, once per session.

    Resources are mutated in place when a call to load_missing() succeeds as a
    whole; a failed call leaves every resource it touched unloaded.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        texts: List[TextResource],
        binaries: List[BinaryResource],
        board: Optional[ProgressBoard] = None,
        stage_name: str = "Loading runtime",
    ):
        self.fetcher = fetcher
        self.texts = texts
        self.binaries = binaries
        self.board = board
        self.stage_name = stage_name

    @classmethod
    def from_manifest(
        cls,
        fetcher: Fetcher,
        manifest: RuntimeManifest,
        board: Optional[ProgressBoard] = None,
    ) -> "ResourceLoader":
        return cls(
            fetcher=fetcher,
            texts=manifest.text_resources(),
            binaries=manifest.binary_resources(),
            board=board,
            stage_name=f"Loading {manifest.name}",
        )

    async def _load_text(
        self,
        resource: TextResource,
        stage: Optional[ProgressStage],
        cache: Dict[str, "asyncio.Future[str]"],
    ) -> str:
        text = await self.fetcher.get_text(resource.src, stage)
        if resource.inline:
            text = await inline_urls(self.fetcher, text, resource.inline, stage, cache)
        return provenance_comment(resource.src) + text

    async def _load_binary(
        self,
        resource: BinaryResource,
        stage: Optional[ProgressStage],
        cache: Dict[str, "asyncio.Future[str]"],
    ) -> str:
        return await fetch_data_url(self.fetcher, resource.src, stage, cache)

    async def load_missing(self) -> LoadedResources:
        missing_texts = [r for r in self.texts if not r.loaded]
        missing_binaries = [r for r in self.binaries if not r.loaded]

        if missing_texts or missing_binaries:
            stage = self.board.new_stage(self.stage_name) if self.board else None
            logger.info(
                "Fetching %d text and %d binary resource(s)",
                len(missing_texts),
                len(missing_binaries),
            )
            # One unit for the load as a whole, so the stage cannot reach 1
            # while inlined files are still being discovered.
            if stage is not None:
                stage.total += 1

            # A font that is both inlined and a binary is fetched once per call.
            cache: Dict[str, "asyncio.Future[str]"] = {}
            # Every request is in flight before the first await.
            tasks = [asyncio.ensure_future(self._load_text(r, stage, cache)) for r in missing_texts]
            tasks += [asyncio.ensure_future(self._load_binary(r, stage, cache)) for r in missing_binaries]
            try:
                results = await asyncio.gather(*tasks)
            except BaseException:
                for t in tasks + list(cache.values()):
                    t.cancel()
                raise

            text_results = results[:len(missing_texts)]
            binary_results = results[len(missing_texts):]
            for resource, content in zip(missing_texts, text_results):
                resource.content = content
                resource.loaded = True
            for resource, data in zip(missing_binaries, binary_results):
                resource.data = data
                resource.loaded = True
            if stage is not None:
                stage.completed += 1

        return LoadedResources(
            texts_by_category=self._concatenate(),
            binaries={r.src: r.data for r in self.binaries if r.data is not None},
        )

    def _concatenate(self) -> Dict[str, str]:
        by_category: Dict[str, List[str]] = {}
        for resource in self.texts:
            by_category.setdefault(resource.category, []).append(resource.content or "")
        return {category: "\n".join(parts) for category, parts in by_category.items()}
