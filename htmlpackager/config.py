from __future__ import annotations

APP_NAME = "HTML Project Packager"
APP_VERSION = "1.0.0-dev"

# Remote project host: GET {PROJECT_HOST}/{id} returns the project's JSON.
PROJECT_HOST = "https://projects.scratch.mit.edu"
# Asset host used by the default downloader; {md5ext} is replaced per asset.
ASSET_URL_TEMPLATE = "https://assets.scratch.mit.edu/internalapi/asset/{md5ext}/get/"

# Where runtime sources are fetched from (URL or local directory).
DEFAULT_RUNTIME_ROOT = "https://forkphorus.github.io/"

MANIFEST_ENTRY = "project.json"
OUTPUT_FILENAME = "project.html"
DEFAULT_MANIFEST_NAME = "forkphorus"

HTTP_TIMEOUT_SECONDS = 60.0
HTTP_CONNECT_TIMEOUT_SECONDS = 15.0
READ_CHUNK_SIZE = 1024 * 1024
