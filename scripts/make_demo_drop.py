from __future__ import annotations

import json
import zipfile
from pathlib import Path

from htmlpackager.core.manifests import RuntimeManifest, TextEntry, write_manifest_file


def main():
    root = Path("demo_drop")
    runtime = root / "runtime"
    (runtime / "lib").mkdir(parents=True, exist_ok=True)
    (runtime / "fonts").mkdir(parents=True, exist_ok=True)

    (runtime / "lib" / "demo.js").write_text("window.Demo = {};\n", encoding="utf-8")
    (runtime / "player.js").write_text("// demo player\nvar P = { player: {} };\n", encoding="utf-8")
    (runtime / "player.css").write_text(
        "@font-face { font-family: Demo; src: url(fonts/Demo.woff); }\n", encoding="utf-8"
    )
    (runtime / "fonts" / "Demo.woff").write_bytes(b"dummy_woff")
    (runtime / "fonts" / "Extra.ttf").write_bytes(b"dummy_ttf")

    manifest = RuntimeManifest(
        name="demo",
        texts=[
            TextEntry("script", "lib/demo.js"),
            TextEntry("script", "player.js"),
            TextEntry("style", "player.css", inline=["fonts/Demo.woff"]),
        ],
        binaries=["fonts/Extra.ttf"],
    )
    manifest_file = write_manifest_file(manifest, str(root / "demo_manifest.json"))

    project = {"targets": [{"isStage": True, "name": "Stage", "costumes": [], "sounds": []}], "meta": {}}
    with zipfile.ZipFile(root / "Demo.sb3", "w") as zf:
        zf.writestr("project.json", json.dumps(project))

    print(f"Created demo drop at: {root.resolve()}")
    print(
        "Package it with: htmlpackager package "
        f"--file {root / 'Demo.sb3'} --runtime {runtime} --manifest {manifest_file}"
    )


if __name__ == "__main__":
    main()
