from __future__ import annotations

from pathlib import Path

from htmlpackager.models import OutputDocument


def document_size_bytes(doc: OutputDocument) -> int:
    return len(doc.html.encode("utf-8"))


def describe_size(doc: OutputDocument) -> str:
    mib = document_size_bytes(doc) / 1024 / 1024
    return f"{doc.filename} ({mib:.2f} MiB)"


def write_document(doc: OutputDocument, out_path: str) -> str:
    """
    Write the document as UTF-8. `out_path` may be a file path or an existing
    directory, in which case the document's own filename is used inside it.
    """
    p = Path(out_path)
    if p.is_dir():
        p = p / doc.filename
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(doc.html, encoding="utf-8")
    return str(p)
