"""Sync pipeline: fetch a Figma document, work out what changed, download assets."""

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field

from loguru import logger

from figma_sync.api import FigmaApi
from figma_sync.cache import DocumentCache
from figma_sync.config import MAX_SERVER_RENDER_IMAGE_BATCH_SIZE, SyncSettings, read_access_token
from figma_sync.core.batch import schedule
from figma_sync.core.cancel import CancelToken
from figma_sync.core.diff.detector import filter_changed_work
from figma_sync.core.importer.json_reader import parse_figma_file
from figma_sync.core.tree.lookup import build_node_lookup, get_page_nodes
from figma_sync.core.tree.resolver import find_missing_component_ids, resolve
from figma_sync.downloader import Downloader, DownloadStats, generate_download_queue
from figma_sync.errors import (
    ConfigurationError,
    PageSelectionChanged,
    StructuralError,
    SyncError,
)
from figma_sync.models.node import Document, Node, PageData, ServerRenderWorkItem
from figma_sync.protocols import GeneratorProtocol, TransportProtocol


@dataclass
class SyncContext:
    """Everything one sync run needs. Lives for the duration of that run only."""

    settings: SyncSettings
    transport: TransportProtocol
    cache: DocumentCache
    cancel: CancelToken = field(default_factory=CancelToken)
    generator: GeneratorProtocol | None = None
    # Called with (message, fraction done) at each step.
    progress: Callable[[str, float], None] | None = None
    batch_limit: int = MAX_SERVER_RENDER_IMAGE_BATCH_SIZE


@dataclass(frozen=True)
class ImportProcessData:
    """Result of the sync stage, handed to the asset generator."""

    settings: SyncSettings
    document: Document
    previous_document: Document | None
    node_lookup: Mapping[str, Node]
    missing_component_ids: frozenset[str]
    selected_pages: tuple[Node, ...]
    server_render_items: tuple[ServerRenderWorkItem, ...]
    image_fill_refs: frozenset[str]
    downloads: DownloadStats
    is_incremental: bool


@dataclass(frozen=True)
class SyncReport:
    """Outcome of sync_document(). error is a human-readable cause when ok is False."""

    ok: bool
    error: str | None = None
    data: ImportProcessData | None = None
    # Set when the remote pages no longer match the settings: the refreshed page
    # list the caller should store before syncing again.
    refreshed_pages: tuple[PageData, ...] | None = None


def _report(ctx: SyncContext, message: str, fraction: float) -> None:
    logger.info(message)
    if ctx.progress is not None:
        ctx.progress(message, fraction)


def refresh_page_list(
    document: Document, lookup: Mapping[str, Node], existing: Sequence[PageData]
) -> tuple[PageData, ...]:
    """Page list matching the document, keeping the selection of pages that still exist.

    New pages are selected.
    """
    was_selected = {p.node_id: p.selected for p in existing}
    return tuple(
        PageData(node_id=page.id, name=page.name, selected=was_selected.get(page.id, True))
        for page in get_page_nodes(document, lookup)
    )


def select_pages(
    settings: SyncSettings, document: Document, lookup: Mapping[str, Node]
) -> list[Node]:
    """Return the pages to import.

    Raises:
        PageSelectionChanged: Only selected pages are imported, and the configured
            page list differs from the document's pages.
        ConfigurationError: Only selected pages are imported, but none is selected.
    """
    pages = get_page_nodes(document, lookup)
    if not settings.only_import_selected_pages:
        return pages

    if sorted(p.id for p in pages) != sorted(p.node_id for p in settings.pages):
        raise PageSelectionChanged(refresh_page_list(document, lookup, settings.pages))

    enabled = set(settings.selected_page_ids())
    if not enabled:
        msg = "'Only import selected pages' is set, but no pages are selected for import"
        raise ConfigurationError(msg)
    return [p for p in pages if p.id in enabled]


def fetch_document(ctx: SyncContext) -> Document:
    """Download and parse the current document."""
    _report(ctx, "Downloading file", 0.0)
    raw = ctx.transport.get_document(ctx.settings.file_id)
    return parse_figma_file(raw, file_id=ctx.settings.file_id)


def load_previous_document(ctx: SyncContext) -> tuple[Document, dict[str, Node]] | None:
    """Load the snapshot of the last sync and index it.

    Returns None, with a warning, if there is no usable snapshot.
    """
    previous = ctx.cache.load(ctx.settings.file_id)
    if previous is None:
        logger.warning(
            "No cached Figma document found. Performing full sync instead of incremental update."
        )
        return None
    try:
        return previous, build_node_lookup(previous)
    except StructuralError as e:
        logger.warning(
            "Cached Figma document is inconsistent ({}). "
            "Performing full sync instead of incremental update.",
            e,
        )
        return None


def fetch_render_urls(
    ctx: SyncContext, items: Sequence[ServerRenderWorkItem]
) -> dict[str, str | None]:
    """Request server renders in batches no larger than the API accepts."""
    node_ids = [item.node_id for item in items]

    def fetch(batch: Sequence[str]) -> dict[str, str | None]:
        return ctx.transport.get_render_urls(
            ctx.settings.file_id, batch, ctx.settings.server_render_image_scale
        )

    def progress(index: int, total: int) -> None:
        _report(ctx, f"Downloading server-rendered image data {index + 1}/{total}", index / total)

    render_urls: dict[str, str | None] = {}
    results = schedule(node_ids, ctx.batch_limit, fetch, progress=progress, cancel=ctx.cancel)
    for batch_urls in results:
        render_urls.update(batch_urls)
    return render_urls


def _commit_snapshot(ctx: SyncContext, document: Document) -> None:
    # Losing the snapshot only costs a full sync next time, so this does not fail the run.
    try:
        ctx.cache.save(ctx.settings.file_id, document)
    except OSError as e:
        logger.error("Failed to save Figma document cache: {}", e)


def run_sync(ctx: SyncContext, *, incremental: bool = False) -> ImportProcessData:
    """Run one sync.

    Args:
        ctx: Settings and collaborators for this run.
        incremental: Only re-render nodes changed since the cached snapshot.
            Falls back to a full sync if there is no usable snapshot.

    Returns:
        The data handed to the generator.

    Raises:
        SyncError: Any failure; see figma_sync.errors. The snapshot cache is
            not written unless the whole run succeeds (or, with
            commit_snapshot_before_import, the document was fetched and the
            page selection accepted).
    """
    settings = ctx.settings
    settings.validate()
    ctx.cancel.raise_if_cancelled()

    document = fetch_document(ctx)
    lookup = build_node_lookup(document)

    previous: tuple[Document, dict[str, Node]] | None = None
    if incremental:
        previous = load_previous_document(ctx)
        incremental = previous is not None

    pages = select_pages(settings, document, lookup)
    page_ids = [p.id for p in pages]

    if settings.commit_snapshot_before_import:
        _commit_snapshot(ctx, document)

    missing_component_ids = find_missing_component_ids(document, lookup)
    work = resolve(document, missing_component_ids, page_ids, lookup=lookup)
    render_items: Sequence[ServerRenderWorkItem] = work.render_items
    if previous is not None:
        render_items = filter_changed_work(render_items, lookup, previous[1])

    render_urls = fetch_render_urls(ctx, render_items) if render_items else {}

    ctx.cancel.raise_if_cancelled()
    _report(ctx, "Downloading image fill data", 0.0)
    image_fill_urls = ctx.transport.get_image_fill_urls(settings.file_id)

    queue = generate_download_queue(
        image_fill_urls, work.image_fill_refs, render_urls, render_items
    )
    downloads = Downloader(ctx.transport, settings.asset_dir).download_all(
        queue,
        cancel=ctx.cancel,
        progress=lambda i, n: _report(ctx, f"Downloading files {i + 1}/{n}", i / n),
    )

    data = ImportProcessData(
        settings=settings,
        document=document,
        previous_document=previous[0] if previous is not None else None,
        node_lookup=lookup,
        missing_component_ids=missing_component_ids,
        selected_pages=tuple(pages),
        server_render_items=tuple(render_items),
        image_fill_refs=work.image_fill_refs,
        downloads=downloads,
        is_incremental=incremental,
    )

    if ctx.generator is not None:
        ctx.cancel.raise_if_cancelled()
        ctx.generator.generate(data)

    if not settings.commit_snapshot_before_import:
        ctx.cancel.raise_if_cancelled()
        _commit_snapshot(ctx, document)

    logger.info(
        "Synced {!r}: {} server renders, {} image fills ({})",
        document.name,
        len(render_items),
        len(work.image_fill_refs),
        "incremental" if incremental else "full",
    )
    return data


def sync_document(
    settings: SyncSettings,
    *,
    incremental: bool = False,
    transport: TransportProtocol | None = None,
    cache: DocumentCache | None = None,
    generator: GeneratorProtocol | None = None,
    cancel: CancelToken | None = None,
    progress: Callable[[str, float], None] | None = None,
) -> SyncReport:
    """Sync a Figma document and report the outcome instead of raising.

    Only SyncError is turned into a failed report; anything else is a bug and
    propagates.
    """
    try:
        settings.validate()
        if transport is None:
            transport = FigmaApi(read_access_token())
        ctx = SyncContext(
            settings=settings,
            transport=transport,
            cache=cache if cache is not None else DocumentCache(settings.cache_dir),
            cancel=cancel if cancel is not None else CancelToken(),
            generator=generator,
            progress=progress,
        )
        data = run_sync(ctx, incremental=incremental)
    except PageSelectionChanged as e:
        logger.warning(str(e))
        return SyncReport(ok=False, error=str(e), refreshed_pages=e.pages)
    except SyncError as e:
        logger.error("Sync failed: {}", e)
        return SyncReport(ok=False, error=str(e))
    return SyncReport(ok=True, data=data)


def update_document(
    settings: SyncSettings,
    *,
    transport: TransportProtocol | None = None,
    cache: DocumentCache | None = None,
    generator: GeneratorProtocol | None = None,
    cancel: CancelToken | None = None,
    progress: Callable[[str, float], None] | None = None,
) -> SyncReport:
    """Incremental sync; see sync_document()."""
    return sync_document(
        settings,
        incremental=True,
        transport=transport,
        cache=cache,
        generator=generator,
        cancel=cancel,
        progress=progress,
    )
