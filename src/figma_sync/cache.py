"""Persist document snapshots for incremental syncs."""

import json
import os
import tempfile
from pathlib import Path

from loguru import logger

from figma_sync.core.importer.json_reader import document_from_data, document_to_data
from figma_sync.models.node import Document


class DocumentCache:
    """One JSON file per Figma file ID under a cache directory.

    save() writes the new snapshot to a temporary file and swaps it in, so a
    reader sees either the old snapshot or the new one, never a torn file.
    """

    def __init__(self, cache_dir: str | Path) -> None:
        self.cache_dir = Path(cache_dir)

    def path_for(self, file_id: str) -> Path:
        """Return the cache file path for a Figma file ID."""
        if not file_id or "/" in file_id or "\\" in file_id or file_id.startswith("."):
            msg = f"Invalid file id for cache: {file_id!r}"
            raise ValueError(msg)
        return self.cache_dir / f"{file_id}.json"

    def save(self, file_id: str, document: Document) -> None:
        """Replace the stored snapshot for file_id with document."""
        path = self.path_for(file_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        contents = json.dumps(document_to_data(document), sort_keys=True, indent=4) + "\n"

        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{file_id}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(contents)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.info("Figma document cached to {}", path)

    def load(self, file_id: str) -> Document | None:
        """Return the stored snapshot for file_id.

        Returns:
            The Document, or None if nothing is stored yet or the stored file
            cannot be read. Either way the caller should fall back to a full sync.
        """
        path = self.path_for(file_id)
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Failed to read cached Figma document {}: {}", path, e)
            return None

        try:
            return document_from_data(data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning("Ignoring malformed cached Figma document {}: {!r}", path, e)
            return None
