from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    from htmlpackager.config import DEFAULT_RUNTIME_ROOT, OUTPUT_FILENAME, PROJECT_HOST

    parser = argparse.ArgumentParser(prog="htmlpackager")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output.")
    sub = parser.add_subparsers(dest="cmd", required=True)

    pkg = sub.add_parser("package", help="Package a project into a standalone HTML file.")
    src = pkg.add_mutually_exclusive_group(required=True)
    src.add_argument("--id", dest="project_id", default=None, help="Remote project id.")
    src.add_argument("--file", dest="project_file", default=None, help="Local project archive (.sb2/.sb3).")
    pkg.add_argument("--out", default=OUTPUT_FILENAME, help=f"Output file or folder (default: {OUTPUT_FILENAME})")
    pkg.add_argument("--runtime", default=DEFAULT_RUNTIME_ROOT, help="Runtime root: URL or local folder.")
    pkg.add_argument("--manifest", default=None, help="Runtime manifest JSON (default: built-in).")
    pkg.add_argument("--project-host", default=PROJECT_HOST, help="Remote project host.")
    pkg.add_argument("--loading-text", default="", help="Caption shown while the project loads.")
    script = pkg.add_mutually_exclusive_group()
    script.add_argument("--post-load-script", default="", help="JavaScript run after the project loads.")
    script.add_argument("--post-load-script-file", default=None, help="Read the post-load script from a file.")
    style = pkg.add_mutually_exclusive_group()
    style.add_argument("--custom-style", default="", help="Extra CSS for the page.")
    style.add_argument("--custom-style-file", default=None, help="Read the extra CSS from a file.")

    man = sub.add_parser("manifest", help="Write the built-in runtime manifest as JSON.")
    man.add_argument("--out", default=None, help="Output file (default: stdout)")

    sub.add_parser("gui", help="Launch the GUI.")
    return parser


def _read_optional(text: str, path: str | None) -> str:
    if path:
        return Path(path).read_text(encoding="utf-8")
    return text


def _error_code(e: Exception) -> str:
    code = getattr(e, "code", None)
    if isinstance(code, str):
        return code
    if isinstance(e, ValueError):
        return "INVALID_INPUT"
    if isinstance(e, OSError):
        return "WRITE_FAILED"
    return "INTERNAL_ERROR"


def _cmd_package(args: argparse.Namespace) -> int:
    from htmlpackager.core.manifests import read_manifest_file
    from htmlpackager.core.output import describe_size, write_document
    from htmlpackager.core.pipeline import ProjectSource, package_project
    from htmlpackager.errors import PackagerError
    from htmlpackager.models import PackagerConfig

    if args.project_file:
        source = ProjectSource.from_file(args.project_file)
    else:
        source = ProjectSource.from_id(args.project_id)

    try:
        config = PackagerConfig(
            loading_text=args.loading_text,
            post_load_script=_read_optional(args.post_load_script, args.post_load_script_file),
            custom_style=_read_optional(args.custom_style, args.custom_style_file),
        )
        manifest = read_manifest_file(args.manifest) if args.manifest else None
    except (OSError, ValueError) as e:
        print(f"Error [INVALID_INPUT]: {e}", file=sys.stderr)
        return 1

    try:
        doc = asyncio.run(
            package_project(
                source,
                config,
                runtime_root=args.runtime,
                manifest=manifest,
                project_host=args.project_host,
            )
        )
        written = write_document(doc, args.out)
    except Exception as e:
        if not isinstance(e, (PackagerError, ValueError, OSError)):
            logger.exception("Unexpected failure while packaging")
        print(f"Error [{_error_code(e)}]: {e}", file=sys.stderr)
        return 1

    print(f"Wrote {describe_size(doc)} -> {written}")
    return 0


def _cmd_manifest(args: argparse.Namespace) -> int:
    import json

    from htmlpackager.core.manifests import default_manifest, to_json_dict, write_manifest_file

    manifest = default_manifest()
    if args.out:
        print(write_manifest_file(manifest, args.out))
    else:
        print(json.dumps(to_json_dict(manifest), indent=2))
    return 0


def _cmd_gui() -> int:
    from PySide6.QtWidgets import QApplication

    from htmlpackager.ui.main_window import MainWindow

    app = QApplication.instance() or QApplication(sys.argv)
    window = MainWindow()
    window.show()
    return int(app.exec())


def main(argv: list[str] | None = None) -> int:
    from htmlpackager.logging_config import configure_logging

    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.INFO)

    if args.cmd == "package":
        return _cmd_package(args)
    if args.cmd == "manifest":
        return _cmd_manifest(args)
    if args.cmd == "gui":
        return _cmd_gui()

    parser.error(f"Unknown command: {args.cmd}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
