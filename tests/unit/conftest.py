"""Shared test fixtures."""

from collections.abc import Iterator
from pathlib import Path

import pytest
from loguru import logger

from figma_sync.config import SyncSettings
from figma_sync.core.importer.json_reader import parse_figma_file
from figma_sync.models.node import Document
from tests.unit.fakes import SAMPLE_FILE


@pytest.fixture
def sample_document() -> Document:
    return parse_figma_file(SAMPLE_FILE, file_id="abc123")


@pytest.fixture
def settings(tmp_path: Path) -> SyncSettings:
    return SyncSettings(
        file_id="abc123",
        asset_dir=tmp_path / "assets",
        cache_dir=tmp_path / "cache",
    )


@pytest.fixture
def log_messages() -> Iterator[list[str]]:
    """Collect loguru records as "LEVEL: message" strings."""
    messages: list[str] = []
    handler_id = logger.add(
        lambda m: messages.append(f"{m.record['level'].name}: {m.record['message']}"),
        level="DEBUG",
    )
    yield messages
    logger.remove(handler_id)
