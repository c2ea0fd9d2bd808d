"""High-level orchestration for scanning a source tree and localizing images."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterator, Optional

from .config import LocalizerConfig
from .images import ImageFetcher
from .models import DownloadRecord, RunSummary
from .rewriter import ImageRewriter

logger = logging.getLogger("image_localizer")


def _raise_walk_error(exc: OSError) -> None:
    raise exc


def iter_source_files(config: LocalizerConfig) -> Iterator[Path]:
    """Yield source files under the configured root in a stable order."""
    root = Path(config.source_root)
    if not root.is_dir():
        raise FileNotFoundError(f"Source directory does not exist: {root}")
    extensions = {ext.lower() for ext in config.extensions}
    for current, dirs, files in os.walk(root, onerror=_raise_walk_error):
        dirs[:] = sorted(d for d in dirs if d not in config.exclude_dirs)
        for name in sorted(files):
            if Path(name).suffix.lower() in extensions:
                yield Path(current) / name


def run_localizer(
    config: LocalizerConfig,
    fetcher: Optional[ImageFetcher] = None,
) -> RunSummary:
    """Process every source file sequentially and report what was done."""
    files = list(iter_source_files(config))
    logger.info("Found %d file(s) to analyze under %s", len(files), config.source_root)

    image_dir = Path(config.image_dir)
    if not image_dir.is_dir():
        image_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Created directory %s", image_dir)

    if fetcher is None:
        fetcher = ImageFetcher(timeout=config.timeout, user_agent=config.user_agent)
    record = DownloadRecord()
    rewriter = ImageRewriter(config, record, fetcher)

    summary = RunSummary(image_dir=image_dir)
    for path in files:
        summary.add(rewriter.process_file(path))
    summary.images_downloaded = record.downloaded

    logger.info("Image URLs found: %d", summary.urls_found)
    logger.info("Unique images downloaded: %d", summary.images_downloaded)
    logger.info("Images stored in: %s", summary.image_dir)
    logger.info(
        "Files scanned: %d (rewritten: %d, unparsable: %d, failed: %d)",
        summary.files_scanned,
        summary.files_rewritten,
        summary.parse_failures,
        summary.file_failures,
    )
    if summary.fetch_failures or summary.templates_flagged:
        logger.info(
            "Failed downloads: %d, template literals left unchanged: %d",
            summary.fetch_failures,
            summary.templates_flagged,
        )
    return summary
