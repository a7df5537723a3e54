from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

from htmlpackager.config import DEFAULT_MANIFEST_NAME
from htmlpackager.models import BinaryResource, TextResource

TEXT_CATEGORIES = ("script", "style")


@dataclass(frozen=True)
class TextEntry:
    category: str  # "script" | "style"
    src: str
    inline: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class RuntimeManifest:
    name: str
    texts: List[TextEntry]
    binaries: List[str]

    def text_resources(self) -> List[TextResource]:
        return [TextResource(category=t.category, src=t.src, inline=list(t.inline)) for t in self.texts]

    def binary_resources(self) -> List[BinaryResource]:
        return [BinaryResource(src=b) for b in self.binaries]


def default_manifests() -> Dict[str, RuntimeManifest]:
    return {
        "forkphorus": RuntimeManifest(
            name="forkphorus",
            texts=[
                TextEntry("script", "lib/jszip.min.js"),
                TextEntry("script", "lib/fontfaceobserver.standalone.js"),
                TextEntry("script", "lib/stackblur.min.js"),
                TextEntry("script", "lib/rgbcolor.js"),
                TextEntry("script", "lib/canvg.min.js"),
                TextEntry("script", "phosphorus.dist.js"),
                TextEntry(
                    "style",
                    "phosphorus.css",
                    inline=[
                        "fonts/DonegalOne-Regular.woff",
                        "fonts/GloriaHallelujah.woff",
                        "fonts/MysteryQuest-Regular.woff",
                        "fonts/PermanentMarker-Regular.woff",
                        "fonts/Scratch.ttf",
                    ],
                ),
            ],
            binaries=[
                "fonts/Knewave-Regular.woff",
                "fonts/Handlee-Regular.woff",
                "fonts/Grand9K-Pixel.ttf",
                "fonts/Griffy-Regular.woff",
                "fonts/SourceSerifPro-Regular.woff",
                "fonts/NotoSans-Regular.woff",
                "fonts/Scratch.ttf",
            ],
        ),
    }


def default_manifest() -> RuntimeManifest:
    return default_manifests()[DEFAULT_MANIFEST_NAME]


def manifests_dir(root: str) -> Path:
    return Path(root).resolve() / "manifests"


def manifest_path(root: str, name: str) -> Path:
    safe = "".join(c for c in name if c.isalnum() or c in ("_", "-", " "))
    return manifests_dir(root) / f"{safe}.json"


def to_json_dict(manifest: RuntimeManifest) -> Dict[str, Any]:
    return {
        "name": manifest.name,
        "texts": [
            {"category": t.category, "src": t.src, "inline": list(t.inline)}
            for t in manifest.texts
        ],
        "binaries": list(manifest.binaries),
    }


def from_json_dict(d: Dict[str, Any]) -> RuntimeManifest:
    texts: List[TextEntry] = []
    for raw in d.get("texts") or []:
        category = str(raw.get("category") or "script").strip().lower()
        if category not in TEXT_CATEGORIES:
            raise ValueError(f"Unknown text category: {category}")
        src = str(raw.get("src") or "").strip()
        if not src:
            raise ValueError("Text entry is missing 'src'")
        inline = [str(x).strip() for x in (raw.get("inline") or []) if str(x).strip()]
        texts.append(TextEntry(category=category, src=src, inline=inline))

    binaries = [str(x).strip() for x in (d.get("binaries") or []) if str(x).strip()]

    return RuntimeManifest(
        name=str(d.get("name") or "Custom"),
        texts=texts,
        binaries=binaries,
    )


def read_manifest_file(path: str) -> RuntimeManifest:
    d = json.loads(Path(path).read_text(encoding="utf-8"))
    return from_json_dict(d)


def write_manifest_file(manifest: RuntimeManifest, path: str) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(to_json_dict(manifest), indent=2), encoding="utf-8")
    return p


def ensure_default_manifests_on_disk(root: str) -> None:
    for name, manifest in default_manifests().items():
        path = manifest_path(root, name)
        if not path.exists():
            write_manifest_file(manifest, str(path))


def load_manifest(root: str, name: str) -> RuntimeManifest:
    return read_manifest_file(str(manifest_path(root, name)))


def save_manifest(root: str, manifest: RuntimeManifest) -> Path:
    return write_manifest_file(manifest, str(manifest_path(root, manifest.name)))
