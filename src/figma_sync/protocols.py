"""Protocols for dependency injection in the sync pipeline."""

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from figma_sync.sync import ImportProcessData


@runtime_checkable
class TransportProtocol(Protocol):
    """Protocol for Figma API clients."""

    def get_document(self, file_id: str) -> dict[str, Any]:
        """Fetch the file JSON (node tree)."""
        ...

    def get_render_urls(
        self, file_id: str, node_ids: Sequence[str], scale: float
    ) -> dict[str, str | None]:
        """Ask the server to render node_ids, returning node ID -> image URL."""
        ...

    def get_image_fill_urls(self, file_id: str) -> dict[str, str]:
        """Fetch the file's image catalog: image reference -> image URL."""
        ...

    def download(self, url: str) -> bytes:
        """Download a file."""
        ...


@runtime_checkable
class GeneratorProtocol(Protocol):
    """Protocol for the asset generator that consumes a finished import."""

    def generate(self, data: "ImportProcessData") -> None:
        """Build engine assets from the synced document and downloaded images."""
        ...
