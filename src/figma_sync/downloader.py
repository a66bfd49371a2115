"""Download server-rendered images and image fills into the asset directory."""

import os
import re
import tempfile
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from loguru import logger

from figma_sync.core.cancel import CancelToken
from figma_sync.models.node import ServerRenderWorkItem
from figma_sync.protocols import TransportProtocol

SERVER_RENDER_DIR = "ServerRenderedImages"
IMAGE_FILL_DIR = "ImageFills"


class DownloadKind(StrEnum):
    SERVER_RENDER = "server_render"
    IMAGE_FILL = "image_fill"


@dataclass(frozen=True)
class DownloadItem:
    """A URL to fetch and where to store it, relative to the asset directory."""

    url: str
    path: Path
    kind: DownloadKind


@dataclass(frozen=True)
class DownloadStats:
    """Summary of a download run."""

    downloaded: int
    skipped: int
    files: tuple[Path, ...]


def server_render_path(node_id: str) -> Path:
    """Asset path of a server-rendered node image."""
    # Node IDs look like "12:34" or "I12:34;56:78" for nodes inside instances.
    safe = re.sub(r"[^A-Za-z0-9_-]+", "_", node_id.replace(":", "-"))
    return Path(SERVER_RENDER_DIR) / f"{safe}.png"


def image_fill_path(image_ref: str) -> Path:
    """Asset path of an image fill. Image references are content hashes."""
    safe = re.sub(r"[^A-Za-z0-9_-]+", "_", image_ref)
    return Path(IMAGE_FILL_DIR) / f"{safe}.png"


def generate_download_queue(
    image_fill_urls: Mapping[str, str],
    used_image_refs: Iterable[str],
    render_urls: Mapping[str, str | None],
    render_items: Sequence[ServerRenderWorkItem],
) -> list[DownloadItem]:
    """List every file to download.

    Only image fills in used_image_refs are taken from the catalog, which also
    lists images no longer attached to any node.
    """
    used = set(used_image_refs)
    queue: list[DownloadItem] = []
    for item in render_items:
        url = render_urls.get(item.node_id)
        if not url:
            logger.warning("Server returned no image for node {}", item.node_id)
            continue
        path = server_render_path(item.node_id)
        queue.append(DownloadItem(url, path, DownloadKind.SERVER_RENDER))

    num_unused = len(image_fill_urls.keys() - used)
    for ref in sorted(used):
        url = image_fill_urls.get(ref)
        if not url:
            logger.warning("Image fill {} is used but missing from the image catalog", ref)
            continue
        queue.append(DownloadItem(url, image_fill_path(ref), DownloadKind.IMAGE_FILL))

    logger.debug(
        "Download queue: {} items, {} unused image fills ignored", len(queue), num_unused
    )
    return queue


def _write_atomic(path: Path, data: bytes) -> None:
    """Write data so that path either keeps its old content or holds all of data."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".part")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class Downloader:
    """Fetch queued files into an asset directory."""

    def __init__(self, transport: TransportProtocol, asset_dir: str | Path) -> None:
        self._transport = transport
        self.asset_dir = Path(asset_dir)

    def download_all(
        self,
        queue: Sequence[DownloadItem],
        *,
        cancel: CancelToken | None = None,
        progress: Callable[[int, int], None] | None = None,
    ) -> DownloadStats:
        """Download the queue in order.

        Image fills already on disk are skipped; server renders are always
        fetched again since their content depends on the node.

        Raises:
            TransportError: A download failed. Files written so far are kept.
            SyncCancelled: The token was cancelled between downloads.
        """
        downloaded = 0
        skipped = 0
        files: list[Path] = []
        for index, item in enumerate(queue):
            if cancel is not None:
                cancel.raise_if_cancelled()
            if progress is not None:
                progress(index, len(queue))

            target = self.asset_dir / item.path
            files.append(target)
            if item.kind == DownloadKind.IMAGE_FILL and target.exists():
                skipped += 1
                continue

            logger.debug("Downloading {} -> {}", item.url, target)
            _write_atomic(target, self._transport.download(item.url))
            downloaded += 1

        logger.info("Downloaded {} files, {} already present", downloaded, skipped)
        return DownloadStats(downloaded=downloaded, skipped=skipped, files=tuple(files))
