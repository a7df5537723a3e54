from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from htmlpackager.config import DEFAULT_RUNTIME_ROOT, OUTPUT_FILENAME, PROJECT_HOST
from htmlpackager.core.assembler import assemble
from htmlpackager.core.fetching import Fetcher
from htmlpackager.core.manifests import RuntimeManifest, default_manifest
from htmlpackager.core.progress import LoggingDisplay, ProgressBoard, ProgressDisplay
from htmlpackager.core.project import ProjectResolver
from htmlpackager.core.resources import ResourceLoader
from htmlpackager.models import OutputDocument, PackagerConfig, PlayerOptions, ProjectPayload

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProjectSource:
    project_id: Optional[str] = None
    path: Optional[str] = None

    @classmethod
    def from_id(cls, project_id: str) -> "ProjectSource":
        return cls(project_id=project_id)

    @classmethod
    def from_file(cls, path: str) -> "ProjectSource":
        return cls(path=path)

    def describe(self) -> str:
        if self.path is not None:
            return f"file {self.path}"
        return f"project {self.project_id}"


class PackagerRun:
    """
    One packaging run: runtime resources and the project are loaded
    concurrently, then assembled into a single document.

    The caller must not start a second run on the same instance while one is
    in flight.
    """

    def __init__(
        self,
        loader: ResourceLoader,
        resolver: ProjectResolver,
        board: Optional[ProgressBoard] = None,
        filename: str = OUTPUT_FILENAME,
    ):
        self.loader = loader
        self.resolver = resolver
        self.board = board
        self.filename = filename

    async def _resolve(self, source: ProjectSource) -> ProjectPayload:
        if source.path is not None:
            return await self.resolver.resolve_local_archive(source.path)
        if source.project_id is not None:
            return await self.resolver.resolve_by_id(source.project_id)
        raise ValueError("A project id or a project file is required.")

    async def run(
        self,
        source: ProjectSource,
        config: PackagerConfig,
        player_options: Optional[PlayerOptions] = None,
        controls_options: Optional[Dict[str, Any]] = None,
    ) -> OutputDocument:
        # PackagerConfig is frozen; holding it is the snapshot.
        snapshot = config
        if self.board is not None:
            self.board.reset()

        logger.info("Packaging %s", source.describe())
        tasks = [
            asyncio.ensure_future(self.loader.load_missing()),
            asyncio.ensure_future(self._resolve(source)),
        ]
        try:
            resources, project = await asyncio.gather(*tasks)
        except BaseException as e:
            for t in tasks:
                t.cancel()
            logger.error("Packaging failed: %s", e)
            raise

        html_text = assemble(resources, project, snapshot, player_options, controls_options)
        logger.info("Packaged %s as %s (%s)", source.describe(), self.filename, project.format.value)
        return OutputDocument(filename=self.filename, html=html_text)


async def package_project(
    source: ProjectSource,
    config: PackagerConfig,
    runtime_root: str = DEFAULT_RUNTIME_ROOT,
    manifest: Optional[RuntimeManifest] = None,
    display: Optional[ProgressDisplay] = None,
    player_options: Optional[PlayerOptions] = None,
    project_host: str = PROJECT_HOST,
    client: Optional[httpx.AsyncClient] = None,
) -> OutputDocument:
    """Wire up the default collaborators and run the packager once."""
    board = ProgressBoard(display or LoggingDisplay())
    async with Fetcher(runtime_root, client=client) as fetcher:
        loader = ResourceLoader.from_manifest(fetcher, manifest or default_manifest(), board)
        resolver = ProjectResolver(fetcher, board=board, project_host=project_host)
        return await PackagerRun(loader, resolver, board).run(source, config, player_options)
