"""Image downloading and validation utilities."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import requests
from filetype import guess

from .config import DEFAULT_TIMEOUT, DEFAULT_USER_AGENT

logger = logging.getLogger("image_localizer")

CHUNK_SIZE = 64 * 1024
PARTIAL_SUFFIX = ".part"


class FetchError(RuntimeError):
    """Raised when an image cannot be retrieved or persisted."""

    def __init__(self, url: str, cause: BaseException) -> None:
        super().__init__(f"Failed to download {url}: {cause}")
        self.url = url
        self.cause = cause


def looks_like_image(content_type: Optional[str], head: bytes) -> bool:
    """True when the first chunk or the Content-Type header says image."""
    kind = guess(head) if head else None
    if kind is not None and kind.mime.startswith("image/"):
        return True
    media_type = (content_type or "").split(";", 1)[0].strip().lower()
    return media_type.startswith("image/")


class ImageFetcher:
    """Streams remote images to disk, one blocking request at a time."""

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
        chunk_size: int = CHUNK_SIZE,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.timeout = timeout
        self.chunk_size = chunk_size
        self.session = session or requests.Session()
        self.headers = {"User-Agent": user_agent}

    def fetch(self, url: str, destination: Path) -> Path:
        """Download ``url`` into ``destination``.

        Bytes go to a sibling ``.part`` file that only replaces
        ``destination`` once the whole body has been written, so a failed
        transfer never leaves a truncated image behind.
        """
        partial = destination.with_name(destination.name + PARTIAL_SUFFIX)
        try:
            with self.session.get(
                url, headers=self.headers, timeout=self.timeout, stream=True
            ) as resp:
                resp.raise_for_status()
                content_type = resp.headers.get("Content-Type", "")
                head = b""
                with partial.open("wb") as handle:
                    for chunk in resp.iter_content(chunk_size=self.chunk_size):
                        if not chunk:
                            continue
                        if not head:
                            head = chunk
                        handle.write(chunk)
            partial.replace(destination)
        except (requests.RequestException, OSError) as exc:
            partial.unlink(missing_ok=True)
            raise FetchError(url, exc) from exc

        if not looks_like_image(content_type, head):
            logger.warning(
                "%s does not look like an image (Content-Type=%s)",
                url,
                content_type or "unknown",
            )
        logger.info("Downloaded %s -> %s", url, destination)
        return destination
