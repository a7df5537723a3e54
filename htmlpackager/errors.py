from __future__ import annotations

from typing import Optional


class PackagerError(Exception):
    """
    Base class for every failure the packaging pipeline reports.

    `code` is a stable short identifier (e.g. PROJECT_NOT_FOUND) that hosts can
    show next to the message or match on.
    """

    code = "PACKAGER_ERROR"


class FetchError(PackagerError):
    code = "FETCH_FAILED"

    def __init__(self, resource: str, reason: Optional[str] = None):
        self.resource = resource
        self.reason = reason
        msg = f"Failed to fetch: {resource}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)


class ReadError(PackagerError):
    code = "READ_FAILED"


class NotFoundError(PackagerError):
    code = "PROJECT_NOT_FOUND"


class FetchFailedError(PackagerError):
    code = "PROJECT_FETCH_FAILED"

    def __init__(self, status: int):
        self.status = status
        super().__init__(f"Cannot get project, got error code: {status}")


class UnknownFormatError(PackagerError):
    code = "UNKNOWN_FORMAT"


class UnsupportedResultError(PackagerError):
    code = "UNSUPPORTED_RESULT"

    def __init__(self, result_type: str):
        self.result_type = result_type
        super().__init__(f"Unknown result type: {result_type}")


class DuplicatePathError(PackagerError):
    code = "DUPLICATE_PATH"

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Multiple archive entries share the same path: {path}")


class ParseError(PackagerError):
    code = "PARSE_FAILED"
