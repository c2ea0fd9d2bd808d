"""Utility helpers for deriving local asset filenames from URLs."""

from __future__ import annotations

import hashlib
import posixpath
import re
from urllib.parse import urlsplit

from .classifier import IMAGE_EXTENSIONS

STEM_PATTERN = re.compile(r"[^A-Za-z0-9]+")
EXTENSION_PATTERN = re.compile(r"^\.[A-Za-z0-9]{1,5}$")
HASH_LENGTH = 8
MAX_STEM_CHARS = 30
DEFAULT_EXTENSION = ".jpg"
DEFAULT_STEM = "image"


def url_hash(url: str) -> str:
    """Short, stable hex digest of the full URL."""
    return hashlib.md5(url.encode("utf-8")).hexdigest()[:HASH_LENGTH]


def _last_segment(url: str) -> str:
    try:
        path = urlsplit(url).path
    except ValueError:
        path = url.split("?", 1)[0].split("#", 1)[0]
    return posixpath.basename(path)


def derive_filename(url: str) -> str:
    """Build ``<hash>-<stem><ext>`` for the image stored from ``url``.

    The hash covers the whole URL so two images sharing a basename on
    different hosts never collide; the stem only keeps the name readable.
    """
    name = _last_segment(url)
    stem, extension = posixpath.splitext(name)
    if not EXTENSION_PATTERN.match(extension):
        stem, extension = name, ""
    extension = extension.lower()
    if not extension:
        lowered = url.lower()
        extension = next(
            (ext for ext in IMAGE_EXTENSIONS if ext in lowered), DEFAULT_EXTENSION
        )
    stem = STEM_PATTERN.sub("", stem)[:MAX_STEM_CHARS] or DEFAULT_STEM
    return f"{url_hash(url)}-{stem}{extension}"
