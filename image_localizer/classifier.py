"""Heuristics deciding whether a string literal points at a remote image.

The checks are deliberately loose and OR-ed together: a URL qualifies when
any single signal matches. That means some non-image URLs will be picked up
(for example a JSON endpoint under ``/images/``) and some real images will be
missed (for example an extension-less URL on an unknown CDN). Both outcomes
are accepted; extend ``IMAGE_DOMAINS`` or pass ``domains`` to tune it.
"""

from __future__ import annotations

from typing import Iterable
from urllib.parse import urlsplit

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg", ".avif")

IMAGE_DOMAINS = (
    "ext.same-assets.com",
    "cloudinary.com",
    "amazonaws.com",
    "imgix.net",
    "unsplash.com",
    "googleusercontent.com",
    "githubusercontent.com",
    "cloudfront.net",
    "images.pexels.com",
    "img.youtube.com",
    "media.giphy.com",
)

IMAGE_PATH_SEGMENTS = frozenset({"images", "img", "photos"})
IMAGE_QUERY_MARKERS = ("image=", "picture=", "photo=")


def _host_matches(host: str, domains: Iterable[str]) -> bool:
    host = host.lower()
    for domain in domains:
        domain = domain.lower()
        if host == domain or host.endswith("." + domain):
            return True
    return False


def is_image_url(value: object, domains: Iterable[str] = IMAGE_DOMAINS) -> bool:
    """Return True when ``value`` looks like an external http(s) image URL."""
    if not isinstance(value, str) or not value:
        return False
    lowered = value.lower()
    if lowered.startswith("data:"):
        return False
    if not lowered.startswith(("http://", "https://")):
        return False

    try:
        parts = urlsplit(value)
        host = parts.hostname or ""
    except ValueError:
        return False

    if host and _host_matches(host, domains):
        return True
    if parts.path.lower().endswith(IMAGE_EXTENSIONS):
        return True
    if any(segment in IMAGE_PATH_SEGMENTS for segment in parts.path.split("/")):
        return True
    return any(marker in value for marker in IMAGE_QUERY_MARKERS)
