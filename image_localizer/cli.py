"""Command-line entry point for the image localizer."""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Sequence

from .classifier import IMAGE_DOMAINS
from .config import (
    DEFAULT_IMAGE_DIR,
    DEFAULT_SOURCE_ROOT,
    DEFAULT_TIMEOUT,
    DEFAULT_URL_PREFIX,
    EXCLUDED_DIRS,
    LocalizerConfig,
)
from .runner import run_localizer

logger = logging.getLogger("image_localizer.cli")


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Download externally hosted images referenced from JavaScript/TypeScript "
            "sources and rewrite the literals to point at local copies."
        ),
    )
    parser.add_argument(
        "root",
        nargs="?",
        default=DEFAULT_SOURCE_ROOT,
        type=Path,
        help="Directory to scan for .js/.jsx/.ts/.tsx files (default: src)",
    )
    parser.add_argument(
        "--public-dir",
        default=DEFAULT_IMAGE_DIR,
        type=Path,
        help="Directory where downloaded images are written (default: public/images)",
    )
    parser.add_argument(
        "--url-prefix",
        default=DEFAULT_URL_PREFIX,
        help="Web path prefix written into rewritten literals",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT,
        help="Per-request download timeout in seconds",
    )
    parser.add_argument(
        "--domain",
        action="append",
        default=[],
        help="Extra host treated as an image CDN (repeatable)",
    )
    parser.add_argument(
        "--exclude",
        action="append",
        default=[],
        help="Extra directory name to skip while scanning (repeatable)",
    )
    parser.add_argument(
        "--force-download",
        action="store_true",
        help="Download images even when the target file already exists",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> LocalizerConfig:
    return LocalizerConfig(
        source_root=args.root,
        image_dir=args.public_dir,
        url_prefix=args.url_prefix,
        exclude_dirs=EXCLUDED_DIRS | frozenset(args.exclude),
        image_domains=IMAGE_DOMAINS + tuple(args.domain),
        timeout=args.timeout,
        skip_existing=not args.force_download,
    )


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )

    config = build_config(args)
    overall_start = time.perf_counter()
    try:
        summary = run_localizer(config)
    except Exception:  # pylint: disable=broad-except
        logger.exception("Image localization aborted")
        sys.exit(1)
    logger.info(
        "Finished in %.2fs (%d file(s) rewritten)",
        time.perf_counter() - overall_start,
        summary.files_rewritten,
    )


if __name__ == "__main__":
    main()
