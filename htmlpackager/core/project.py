from __future__ import annotations

import asyncio
import json
import logging
import zipfile
import zlib
from pathlib import Path
from typing import Any, Dict, Optional

from htmlpackager.config import MANIFEST_ENTRY, PROJECT_HOST
from htmlpackager.core.archive import build_archive
from htmlpackager.core.dataurl import BytesBlob, FileBlob, read_as_data_url
from htmlpackager.core.downloader import ProjectDownloader, RemoteProjectDownloader
from htmlpackager.core.fetching import Fetcher
from htmlpackager.core.progress import ProgressBoard, ProgressStage
from htmlpackager.errors import (
    FetchFailedError,
    NotFoundError,
    ParseError,
    ReadError,
    UnknownFormatError,
    UnsupportedResultError,
)
from htmlpackager.models import ProjectFormat, ProjectPayload

logger = logging.getLogger(__name__)


def detect_format(data: Any) -> ProjectFormat:
    """
    Classify a project JSON body. "targets" is checked before "objName", for
    remote and local projects alike.
    """
    if isinstance(data, dict):
        if "targets" in data:
            return ProjectFormat.SB3
        if "objName" in data:
            return ProjectFormat.SB2
    raise UnknownFormatError("Unknown project type (invalid project?)")


def read_project_manifest(path: str) -> Dict[str, Any]:
    """Open a project archive and parse its project.json."""
    try:
        with zipfile.ZipFile(path) as zf:
            try:
                raw = zf.read(MANIFEST_ENTRY)
            except KeyError as e:
                raise ParseError(f"Archive has no {MANIFEST_ENTRY}: {path}") from e
            except (zlib.error, RuntimeError, NotImplementedError) as e:
                # Corrupt deflate data, encrypted entries, unsupported compression.
                raise ReadError(f"Cannot read {MANIFEST_ENTRY} from {path} ({e})") from e
    except (OSError, zipfile.BadZipFile) as e:
        raise ReadError(f"Cannot open project archive: {path} ({e})") from e

    try:
        return json.loads(raw.decode("utf-8"))
    except ValueError as e:
        raise ParseError(f"{MANIFEST_ENTRY} is not valid JSON ({e})") from e


class ProjectResolver:
    """
    Produces the embeddable ProjectPayload from a remote project id or from a
    local project archive. Errors propagate as raised; nothing is retried.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        downloader: Optional[ProjectDownloader] = None,
        board: Optional[ProgressBoard] = None,
        project_host: str = PROJECT_HOST,
    ):
        self.fetcher = fetcher
        self.downloader = downloader or RemoteProjectDownloader(fetcher, project_host=project_host)
        self.board = board
        self.project_host = project_host.rstrip("/")

    def _stage(self, name: str) -> Optional[ProgressStage]:
        return self.board.new_stage(name) if self.board else None

    async def detect_format_by_id(self, project_id: str) -> ProjectFormat:
        stage = self._stage("Determining project type")
        resp = await self.fetcher.get_response(f"{self.project_host}/{project_id}", stage)
        if resp.status_code != 200:
            if resp.status_code == 404:
                raise NotFoundError(f"Project does not exist: {project_id}")
            raise FetchFailedError(resp.status_code)

        try:
            data = resp.json()
        except ValueError as e:
            raise ParseError(f"Project {project_id} metadata is not valid JSON ({e})") from e

        fmt = detect_format(data)
        if stage is not None:
            stage.finish()
        return fmt

    async def resolve_by_id(self, project_id: str) -> ProjectPayload:
        project_id = str(project_id).strip()
        if not project_id:
            raise ValueError("Project id is required.")

        fmt = await self.detect_format_by_id(project_id)
        logger.info("Project %s is %s", project_id, fmt.value)

        result = await self.downloader.download(project_id, fmt, self._stage("Loading project"))
        if result.type != "zip":
            raise UnsupportedResultError(result.type)

        archive = await build_archive(result.files, stage=self._stage("Creating archive"))

        reading = self._stage("Reading archive")
        data_url = await read_as_data_url(
            BytesBlob(archive, mime="application/zip"),
            progress_cb=reading.percent if reading else None,
        )
        return ProjectPayload(format=fmt, data_url=data_url)

    async def resolve_local_archive(self, path: str) -> ProjectPayload:
        p = Path(path)
        if not p.is_file():
            raise ReadError(f"Missing file: {path}")

        stage = self._stage("Determining project type")
        manifest = await asyncio.to_thread(read_project_manifest, str(p))
        fmt = detect_format(manifest)
        if stage is not None:
            stage.finish()
        logger.info("Project file %s is %s", p.name, fmt.value)

        # Ship the original archive bytes, not a rebuilt one.
        reading = self._stage("Reading project")
        data_url = await read_as_data_url(
            FileBlob(str(p)),
            progress_cb=reading.percent if reading else None,
        )
        return ProjectPayload(format=fmt, data_url=data_url)
