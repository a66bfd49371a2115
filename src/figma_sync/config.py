"""Configuration constants and sync settings for figma-sync."""

import json
import os
import re
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from figma_sync.errors import ConfigurationError
from figma_sync.models.node import PageData

# Environment variable checked before the token files.
ACCESS_TOKEN_ENV = "FIGMA_ACCESS_TOKEN"

# Personal access token location. First file found is used.
API_TOKEN_FILES: list[Path] = [
    Path("~/.config/figma-sync-token.txt").expanduser(),
    Path("~/.config/secret/figma-sync-token.txt").expanduser(),
]

FIGMA_API_BASE = "https://api.figma.com/v1"

# Figma rejects image render requests with too many node IDs (650 is rejected).
MAX_SERVER_RENDER_IMAGE_BATCH_SIZE = 300

DEFAULT_CACHE_DIR = Path("FigmaCache")
DEFAULT_ASSET_DIR = Path("FigmaAssets")

REQUEST_TIMEOUT_SECONDS = 60.0

_FILE_URL_RE = re.compile(r"figma\.com/(?:file|design|proto)/([A-Za-z0-9]+)")
_FILE_ID_RE = re.compile(r"^[A-Za-z0-9]+$")


def parse_file_id(url_or_id: str) -> str:
    """Extract the file key from a Figma file URL, or validate a bare key.

    Raises:
        ConfigurationError: Neither a Figma file URL nor a file key.
    """
    value = url_or_id.strip()
    match = _FILE_URL_RE.search(value)
    if match:
        return match.group(1)
    if _FILE_ID_RE.match(value):
        return value
    msg = f"Figma document url is not valid, please enter a valid url or file key: {url_or_id!r}"
    raise ConfigurationError(msg)


def read_access_token() -> str:
    """Return the Figma personal access token.

    Raises:
        ConfigurationError: No token in the environment or in any token file.
    """
    token = os.environ.get(ACCESS_TOKEN_ENV, "").strip()
    if token:
        return token
    for token_path in API_TOKEN_FILES:
        try:
            token = token_path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            continue
        if token:
            return token
    msg = (
        f"Cannot find Figma personal access token: set {ACCESS_TOKEN_ENV} "
        f"or create one of {[str(p) for p in API_TOKEN_FILES]!r}"
    )
    raise ConfigurationError(msg)


@dataclass(frozen=True)
class SyncSettings:
    """User-facing settings for syncing one Figma file."""

    file_id: str
    only_import_selected_pages: bool = False
    pages: tuple[PageData, ...] = ()
    server_render_image_scale: float = 3.0
    asset_dir: Path = DEFAULT_ASSET_DIR
    cache_dir: Path = DEFAULT_CACHE_DIR
    # Write the snapshot cache as soon as the document is fetched, instead of
    # after a successful import.
    commit_snapshot_before_import: bool = False
    # Settings file keys this version does not know; written back unchanged.
    extra: dict[str, Any] = field(default_factory=dict)

    def selected_page_ids(self) -> list[str]:
        return [p.node_id for p in self.pages if p.selected]

    def validate(self) -> None:
        """Raise ConfigurationError if the settings cannot be used for a sync."""
        if not self.file_id:
            msg = "Figma document url is not valid, please enter a valid url"
            raise ConfigurationError(msg)
        parse_file_id(self.file_id)
        if not 0.01 <= self.server_render_image_scale <= 4:
            msg = (
                "Server render image scale must be within 0.01..4, "
                f"got {self.server_render_image_scale!r}"
            )
            raise ConfigurationError(msg)


def load_settings(path: str | Path) -> SyncSettings:
    """Read settings from a JSON file.

    Raises:
        ConfigurationError: File missing or not valid settings JSON.
    """
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        msg = f"Settings file {str(path)!r} not found"
        raise ConfigurationError(msg) from e
    except json.JSONDecodeError as e:
        msg = f"Settings file {str(path)!r} is not valid JSON: {e}"
        raise ConfigurationError(msg) from e
    if not isinstance(data, dict):
        msg = f"Settings file {str(path)!r} must contain a JSON object"
        raise ConfigurationError(msg)

    known = {
        "file_id",
        "only_import_selected_pages",
        "pages",
        "server_render_image_scale",
        "asset_dir",
        "cache_dir",
        "commit_snapshot_before_import",
    }
    try:
        settings = SyncSettings(
            file_id=parse_file_id(data.get("file_id", "")) if data.get("file_id") else "",
            only_import_selected_pages=bool(data.get("only_import_selected_pages", False)),
            pages=tuple(
                PageData(
                    node_id=p["node_id"],
                    name=p.get("name", ""),
                    selected=p.get("selected", True),
                )
                for p in data.get("pages", ())
            ),
            server_render_image_scale=float(data.get("server_render_image_scale", 3.0)),
            asset_dir=Path(data.get("asset_dir", DEFAULT_ASSET_DIR)),
            cache_dir=Path(data.get("cache_dir", DEFAULT_CACHE_DIR)),
            commit_snapshot_before_import=bool(data.get("commit_snapshot_before_import", False)),
            extra={k: v for k, v in data.items() if k not in known},
        )
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        msg = f"Settings file {str(path)!r} is malformed: {e!r}"
        raise ConfigurationError(msg) from e
    return settings


def save_settings(path: str | Path, settings: SyncSettings) -> None:
    """Write settings to a JSON file, keeping unknown keys read by load_settings()."""
    data = asdict(settings)
    extra = data.pop("extra")
    data["asset_dir"] = str(settings.asset_dir)
    data["cache_dir"] = str(settings.cache_dir)
    data.update(extra)
    Path(path).write_text(json.dumps(data, sort_keys=True, indent=4) + "\n", encoding="utf-8")

