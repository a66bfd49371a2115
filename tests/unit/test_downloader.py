"""Tests for the download queue and Downloader."""

from pathlib import Path

import pytest

from figma_sync.core.cancel import CancelToken
from figma_sync.downloader import (
    DownloadItem,
    DownloadKind,
    Downloader,
    generate_download_queue,
    image_fill_path,
    server_render_path,
)
from figma_sync.errors import SyncCancelled, TransportError
from figma_sync.models.node import ServerRenderWorkItem
from tests.unit.fakes import FakeTransport


def test_server_render_path_is_filesystem_safe() -> None:
    assert server_render_path("12:34") == Path("ServerRenderedImages/12-34.png")
    assert server_render_path("I1:2;3:4") == Path("ServerRenderedImages/I1-2_3-4.png")


def test_image_fill_path_uses_reference() -> None:
    assert image_fill_path("a1b2c3") == Path("ImageFills/a1b2c3.png")


def test_queue_only_contains_used_image_fills() -> None:
    catalog = {f"img{i}": f"https://img/{i}" for i in range(1, 6)}

    queue = generate_download_queue(catalog, {"img1", "img3", "img4"}, {}, [])

    assert [item.url for item in queue] == ["https://img/1", "https://img/3", "https://img/4"]
    assert all(item.kind == DownloadKind.IMAGE_FILL for item in queue)


def test_queue_skips_unrendered_nodes_and_missing_catalog_entries(
    log_messages: list[str],
) -> None:
    items = [ServerRenderWorkItem("1:1", "p"), ServerRenderWorkItem("1:2", "p")]

    queue = generate_download_queue({}, {"gone"}, {"1:1": "https://r/1", "1:2": None}, items)

    assert queue == [
        DownloadItem("https://r/1", server_render_path("1:1"), DownloadKind.SERVER_RENDER)
    ]
    assert any("no image for node 1:2" in m for m in log_messages)
    assert any("gone is used but missing" in m for m in log_messages)


def test_download_all_writes_files(tmp_path: Path) -> None:
    transport = FakeTransport()
    transport.downloads["https://r/1"] = b"render"
    queue = [DownloadItem("https://r/1", server_render_path("1:1"), DownloadKind.SERVER_RENDER)]

    stats = Downloader(transport, tmp_path).download_all(queue)

    assert (tmp_path / "ServerRenderedImages" / "1-1.png").read_bytes() == b"render"
    assert stats.downloaded == 1
    assert stats.skipped == 0
    assert list((tmp_path / "ServerRenderedImages").iterdir()) == [
        tmp_path / "ServerRenderedImages" / "1-1.png"
    ]


def test_existing_image_fills_are_skipped_but_renders_are_refetched(tmp_path: Path) -> None:
    (tmp_path / "ImageFills").mkdir()
    (tmp_path / "ImageFills" / "ref.png").write_bytes(b"old fill")
    (tmp_path / "ServerRenderedImages").mkdir()
    (tmp_path / "ServerRenderedImages" / "1-1.png").write_bytes(b"old render")
    transport = FakeTransport()
    transport.downloads = {"https://i/ref": b"new fill", "https://r/1": b"new render"}
    queue = [
        DownloadItem("https://r/1", server_render_path("1:1"), DownloadKind.SERVER_RENDER),
        DownloadItem("https://i/ref", image_fill_path("ref"), DownloadKind.IMAGE_FILL),
    ]

    stats = Downloader(transport, tmp_path).download_all(queue)

    assert (tmp_path / "ImageFills" / "ref.png").read_bytes() == b"old fill"
    assert (tmp_path / "ServerRenderedImages" / "1-1.png").read_bytes() == b"new render"
    assert (stats.downloaded, stats.skipped) == (1, 1)
    assert transport.calls_named("download") == ["https://r/1"]


def test_failed_download_keeps_earlier_files(tmp_path: Path) -> None:
    transport = FakeTransport()
    transport.fail_downloads.add("https://r/2")
    queue = [
        DownloadItem("https://r/1", server_render_path("1:1"), DownloadKind.SERVER_RENDER),
        DownloadItem("https://r/2", server_render_path("1:2"), DownloadKind.SERVER_RENDER),
    ]

    with pytest.raises(TransportError):
        Downloader(transport, tmp_path).download_all(queue)

    assert (tmp_path / "ServerRenderedImages" / "1-1.png").exists()
    assert not (tmp_path / "ServerRenderedImages" / "1-2.png").exists()


def test_download_all_stops_when_cancelled(tmp_path: Path) -> None:
    token = CancelToken()
    transport = FakeTransport()
    queue = [
        DownloadItem(f"https://r/{i}", server_render_path(f"1:{i}"), DownloadKind.SERVER_RENDER)
        for i in range(3)
    ]

    def progress(index: int, total: int) -> None:
        if index == 1:
            token.cancel()

    with pytest.raises(SyncCancelled):
        Downloader(transport, tmp_path).download_all(queue, cancel=token, progress=progress)

    assert transport.calls_named("download") == ["https://r/0", "https://r/1"]
