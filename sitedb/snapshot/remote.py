"""
Remote snapshot source.

Fetches the shared database image from a repository contents API
(GitHub-compatible):

    GET {api_base}/repos/{owner}/{repo}/contents/{path}[?ref=...]

The response is a JSON envelope whose "content" field holds the image as
newline-wrapped base64.

Invariants:
    - Exactly one request per try_load(); no retries
    - The request is bounded by the configured timeout
    - Read-only: this module never issues a write
    - Every failure resolves to None; RemoteUnavailableError stays internal

How to change safely:
    - Keep the single-attempt contract; retries belong to the caller
    - Never log the access token
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from .. import codec
from ..config import RemoteConfig
from ..errors import CorruptEncodingError, RemoteUnavailableError

logger = logging.getLogger(__name__)


class RemoteSnapshotSource:
    """Loads the database image from a remote contents endpoint.

    Attributes:
        config: Remote repository configuration

    Example:
        >>> source = RemoteSnapshotSource(RemoteConfig(owner="acme", repo="db"))
        >>> image = await source.try_load()
    """

    name = "remote"

    def __init__(
        self,
        config: RemoteConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize the remote source.

        Args:
            config: Remote repository configuration
            transport: Optional httpx transport (tests inject a MockTransport)
        """
        self.config = config
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/vnd.github+json"}
        if self.config.token:
            headers["Authorization"] = f"token {self.config.token}"
        return headers

    async def try_load(self) -> Optional[bytes]:
        try:
            image = await self._fetch()
        except RemoteUnavailableError as e:
            logger.warning(
                f"Remote snapshot unavailable: {e.message}",
                extra={"url": e.url, "status_code": e.status_code},
            )
            return None

        logger.info(f"Loaded shared image from remote ({len(image)} bytes)")
        return image

    async def _fetch(self) -> bytes:
        """Perform the single GET and unpack the envelope.

        Raises:
            RemoteUnavailableError: On any transport, status or payload failure
        """
        url = self.config.contents_url
        params = {"ref": self.config.ref} if self.config.ref else None

        logger.info(f"Fetching shared image from {url}")

        try:
            async with httpx.AsyncClient(
                timeout=self.config.timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.get(url, headers=self._headers(), params=params)
        except httpx.TimeoutException as e:
            raise RemoteUnavailableError(f"Request timed out: {e}", url=url) from e
        except httpx.HTTPError as e:
            raise RemoteUnavailableError(f"Request failed: {e}", url=url) from e

        if not response.is_success:
            raise RemoteUnavailableError(
                f"Unexpected status {response.status_code}",
                url=url,
                status_code=response.status_code,
            )

        try:
            envelope: Any = response.json()
        except ValueError as e:
            raise RemoteUnavailableError(f"Response is not JSON: {e}", url=url) from e

        content = envelope.get("content") if isinstance(envelope, dict) else None
        if not isinstance(content, str) or not content.strip():
            raise RemoteUnavailableError("Envelope has no content field", url=url)

        try:
            return codec.decode(codec.strip_wrapping(content))
        except CorruptEncodingError as e:
            raise RemoteUnavailableError(f"Malformed content: {e.message}", url=url) from e
