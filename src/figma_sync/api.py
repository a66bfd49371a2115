"""Figma REST API client."""

from collections.abc import Sequence
from typing import Any

import requests
from loguru import logger

from figma_sync.config import FIGMA_API_BASE, REQUEST_TIMEOUT_SECONDS, read_access_token
from figma_sync.errors import TransportError


class FigmaApi:
    """Read-only access to the Figma files and images endpoints."""

    def __init__(
        self,
        access_token: str | None = None,
        *,
        base_url: str = FIGMA_API_BASE,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
    ) -> None:
        self.access_token = access_token if access_token is not None else read_access_token()
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.sess = requests.Session()
        self.sess.headers["X-Figma-Token"] = self.access_token
        logger.debug("API ready: base_url {!r}, timeout {!r}", self.base_url, self.timeout)

    def call(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """GET an API path, return json.

        Raises:
            TransportError: HTTP failure, non-JSON body, or an error reported in the body.
        """
        logger.debug("Making request: {!r} {}", path, repr(params)[:64])
        try:
            r = self.sess.get(f"{self.base_url}/{path}", params=params, timeout=self.timeout)
            r.raise_for_status()
            rv = r.json()
        except requests.RequestException as e:
            msg = f"Figma API call failed: {path!r}: {e}"
            raise TransportError(msg) from e

        if not isinstance(rv, dict):
            msg = f"Figma API call failed: {path!r}: expected a JSON object, got {rv!r:.64}"
            raise TransportError(msg)
        # /files uses "err" on failure, /files/:key/images uses "error": true.
        if rv.get("err") or rv.get("error") is True:
            msg = f"Figma API call failed: {path!r} -> ({rv.get('status')!r}, {rv.get('err')!r})"
            raise TransportError(msg)
        return rv

    def get_document(self, file_id: str) -> dict[str, Any]:
        return self.call(f"files/{file_id}")

    def get_render_urls(
        self, file_id: str, node_ids: Sequence[str], scale: float
    ) -> dict[str, str | None]:
        """Render nodes on the server.

        Returns:
            Node ID -> URL of the rendered PNG. The URL is None for nodes the
            server could not render (e.g. zero size).
        """
        rv = self.call(
            f"images/{file_id}",
            {"ids": ",".join(node_ids), "scale": scale, "format": "png"},
        )
        images = rv.get("images")
        if not isinstance(images, dict):
            msg = f"bad render response keys: {rv.keys()!r}"
            raise TransportError(msg)
        return images

    def get_image_fill_urls(self, file_id: str) -> dict[str, str]:
        """Return the full image catalog of the file, including unused images."""
        rv = self.call(f"files/{file_id}/images")
        images = (rv.get("meta") or {}).get("images")
        if not isinstance(images, dict):
            msg = f"bad image fill response keys: {rv.keys()!r}"
            raise TransportError(msg)
        return images

    def download(self, url: str) -> bytes:
        """Fetch an image URL. The Figma token is not sent to image hosts."""
        try:
            r = self.sess.get(url, headers={"X-Figma-Token": None}, timeout=self.timeout)
            r.raise_for_status()
        except requests.RequestException as e:
            msg = f"Download failed: {url!r}: {e}"
            raise TransportError(msg) from e
        return r.content
