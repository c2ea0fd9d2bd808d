"""Configuration objects and constants for the localizer."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import FrozenSet, Tuple

from .classifier import IMAGE_DOMAINS

DEFAULT_SOURCE_ROOT = Path("src")
DEFAULT_IMAGE_DIR = Path("public") / "images"
DEFAULT_URL_PREFIX = "/images"
DEFAULT_TIMEOUT = 30.0
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)
SOURCE_EXTENSIONS = frozenset({".js", ".jsx", ".ts", ".tsx"})
EXCLUDED_DIRS = frozenset(
    {"node_modules", ".next", ".git", "dist", "build", "out", "coverage"}
)


@dataclass
class LocalizerConfig:
    """Top-level settings that control scanning, downloading and rewriting."""

    source_root: Path = DEFAULT_SOURCE_ROOT
    image_dir: Path = DEFAULT_IMAGE_DIR
    url_prefix: str = DEFAULT_URL_PREFIX
    extensions: FrozenSet[str] = SOURCE_EXTENSIONS
    exclude_dirs: FrozenSet[str] = EXCLUDED_DIRS
    image_domains: Tuple[str, ...] = IMAGE_DOMAINS
    timeout: float = DEFAULT_TIMEOUT
    user_agent: str = DEFAULT_USER_AGENT
    skip_existing: bool = True

    def local_path_for(self, filename: str) -> str:
        """Web path a rewritten literal points at."""
        return f"{self.url_prefix.rstrip('/')}/{filename}"
