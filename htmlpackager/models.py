from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ProjectFormat(str, Enum):
    SB2 = "sb2"  # marked by a top-level "objName"
    SB3 = "sb3"  # marked by a top-level "targets"


@dataclass
class TextResource:
    category: str  # "script" | "style"
    src: str       # relative to the runtime root
    inline: List[str] = field(default_factory=list)  # binary paths referenced literally from the text
    loaded: bool = False
    content: Optional[str] = None


@dataclass
class BinaryResource:
    src: str  # relative to the runtime root; also the runtime lookup key
    loaded: bool = False
    data: Optional[str] = None  # data: URI


@dataclass(frozen=True)
class LoadedResources:
    texts_by_category: Dict[str, str]
    binaries: Dict[str, str]  # src -> data: URI, manifest order

    @property
    def scripts(self) -> str:
        return self.texts_by_category.get("script", "")

    @property
    def styles(self) -> str:
        return self.texts_by_category.get("style", "")


@dataclass(frozen=True)
class ArchiveEntry:
    path: str
    data: bytes


@dataclass(frozen=True)
class DownloadResult:
    type: str  # only "zip" is supported
    files: List[ArchiveEntry]


@dataclass(frozen=True)
class ProjectPayload:
    format: ProjectFormat
    data_url: str


@dataclass(frozen=True)
class PackagerConfig:
    loading_text: str = ""
    post_load_script: str = ""
    custom_style: str = ""


@dataclass(frozen=True)
class PlayerOptions:
    fullscreen_padding: int = 0
    fullscreen_mode: str = "window"
    theme: str = "dark"

    def to_json_dict(self) -> Dict[str, Any]:
        return {
            "fullscreenPadding": self.fullscreen_padding,
            "fullscreenMode": self.fullscreen_mode,
            "theme": self.theme,
        }


@dataclass(frozen=True)
class OutputDocument:
    filename: str
    html: str
