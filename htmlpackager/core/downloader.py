from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from htmlpackager.config import ASSET_URL_TEMPLATE, MANIFEST_ENTRY, PROJECT_HOST
from htmlpackager.core.fetching import Fetcher
from htmlpackager.core.progress import ProgressStage
from htmlpackager.errors import ParseError
from htmlpackager.models import ArchiveEntry, DownloadResult, ProjectFormat

logger = logging.getLogger(__name__)


class ProjectDownloader:
    """Turns a remote project id into the flat file tree of its archive."""

    async def download(
        self,
        project_id: str,
        fmt: ProjectFormat,
        stage: Optional[ProgressStage] = None,
    ) -> DownloadResult:
        raise NotImplementedError


def _assign_id(ids: Dict[str, int], md5ext: str) -> int:
    if md5ext not in ids:
        ids[md5ext] = len(ids)
    return ids[md5ext]


def _ext(md5ext: str) -> str:
    return md5ext.rsplit(".", 1)[-1] if "." in md5ext else ""


def _list_of_dicts(obj: Dict[str, Any], key: str, where: str) -> List[Dict[str, Any]]:
    items = obj.get(key, [])
    if not isinstance(items, list) or not all(isinstance(i, dict) for i in items):
        raise ParseError(f"{where}: '{key}' must be a list of objects")
    return items


def _md5(entry: Dict[str, Any], key: str, where: str) -> str:
    value = entry.get(key)
    if not isinstance(value, str) or not value:
        raise ParseError(f"{where}: missing '{key}'")
    return value


def number_sb2_assets(project: Dict[str, Any]) -> Tuple[Dict[str, int], Dict[str, int]]:
    """
    Give every image and sound of an sb2 project a sequential id, in place.

    The stage is walked first, then its sprite children in order. Returns
    (image ids, sound ids) keyed by md5ext; a repeated md5ext keeps its id.
    Raises ParseError when a costume or sound lacks its md5.
    """
    images: Dict[str, int] = {}
    sounds: Dict[str, int] = {}

    children = project.get("children", [])
    if not isinstance(children, list):
        raise ParseError("Stage: 'children' must be a list")
    objects = [project] + [c for c in children if isinstance(c, dict) and "objName" in c]
    for obj in objects:
        where = str(obj.get("objName", "?"))
        if "penLayerMD5" in obj:
            obj["penLayerID"] = _assign_id(images, _md5(obj, "penLayerMD5", where))
        for n, costume in enumerate(_list_of_dicts(obj, "costumes", where)):
            costume_where = f"{where} costume {n}"
            costume["baseLayerID"] = _assign_id(images, _md5(costume, "baseLayerMD5", costume_where))
            if costume.get("textLayerMD5"):
                costume["textLayerID"] = _assign_id(images, _md5(costume, "textLayerMD5", costume_where))
        for n, sound in enumerate(_list_of_dicts(obj, "sounds", where)):
            sound["soundID"] = _assign_id(sounds, _md5(sound, "md5", f"{where} sound {n}"))
    return images, sounds


def sb3_asset_names(project: Dict[str, Any]) -> List[str]:
    """Unique asset file names of an sb3 project; ParseError on a malformed asset entry."""
    names: List[str] = []
    seen = set()
    for t, target in enumerate(_list_of_dicts(project, "targets", "Project")):
        where = f"target {target.get('name', t)}"
        items = _list_of_dicts(target, "costumes", where) + _list_of_dicts(target, "sounds", where)
        for item in items:
            md5ext = item.get("md5ext")
            if not md5ext:
                md5ext = f"{_md5(item, 'assetId', where)}.{_md5(item, 'dataFormat', where)}"
            if not isinstance(md5ext, str):
                raise ParseError(f"{where}: 'md5ext' must be a string")
            if md5ext not in seen:
                seen.add(md5ext)
                names.append(md5ext)
    return names


class RemoteProjectDownloader(ProjectDownloader):
    """Downloads a project's JSON and every asset it references."""

    def __init__(
        self,
        fetcher: Fetcher,
        project_host: str = PROJECT_HOST,
        asset_url_template: str = ASSET_URL_TEMPLATE,
    ):
        self.fetcher = fetcher
        self.project_host = project_host.rstrip("/")
        self.asset_url_template = asset_url_template

    async def _fetch_asset(self, md5ext: str, stage: Optional[ProgressStage]) -> bytes:
        return await self.fetcher.get_bytes(self.asset_url_template.format(md5ext=md5ext), stage)

    async def download(
        self,
        project_id: str,
        fmt: ProjectFormat,
        stage: Optional[ProgressStage] = None,
    ) -> DownloadResult:
        raw = await self.fetcher.get_bytes(f"{self.project_host}/{project_id}", stage)
        try:
            project = json.loads(raw)
        except ValueError as e:
            raise ParseError(f"Project {project_id} is not valid JSON ({e})") from e
        if not isinstance(project, dict):
            raise ParseError(f"Project {project_id} is not a JSON object")

        if fmt is ProjectFormat.SB3:
            names = sb3_asset_names(project)
            assets = await asyncio.gather(*(self._fetch_asset(n, stage) for n in names))
            files = [ArchiveEntry(MANIFEST_ENTRY, raw)]
            files += [ArchiveEntry(n, data) for n, data in zip(names, assets)]
        else:
            images, sounds = number_sb2_assets(project)
            md5exts = list(images) + list(sounds)
            ids = list(images.values()) + list(sounds.values())
            assets = await asyncio.gather(*(self._fetch_asset(m, stage) for m in md5exts))
            files = [ArchiveEntry(MANIFEST_ENTRY, json.dumps(project, separators=(",", ":")).encode("utf-8"))]
            files += [ArchiveEntry(f"{i}.{_ext(m)}", data) for m, i, data in zip(md5exts, ids, assets)]

        logger.info("Downloaded project %s (%s): %d file(s)", project_id, fmt.value, len(files))
        return DownloadResult(type="zip", files=files)
