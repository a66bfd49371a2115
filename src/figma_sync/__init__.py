"""Sync Figma documents into a local asset tree, fully or incrementally."""

from figma_sync.api import FigmaApi
from figma_sync.cache import DocumentCache
from figma_sync.config import SyncSettings
from figma_sync.core.cancel import CancelToken
from figma_sync.protocols import GeneratorProtocol, TransportProtocol
from figma_sync.sync import SyncReport, sync_document, update_document

__all__ = [
    "CancelToken",
    "DocumentCache",
    "FigmaApi",
    "GeneratorProtocol",
    "SyncReport",
    "SyncSettings",
    "TransportProtocol",
    "sync_document",
    "update_document",
]
