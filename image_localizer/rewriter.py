"""Per-file orchestration: detect image URLs, download them, rewrite literals."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import List, Optional

from .classifier import is_image_url
from .config import LocalizerConfig
from .images import FetchError, ImageFetcher
from .models import Candidate, DownloadRecord, FileReport, FileStatus
from .syntax import SourceDocument, SourceParseError, iter_candidates, parse_source
from .utils import derive_filename

logger = logging.getLogger("image_localizer")


def write_atomic(path: Path, data: bytes) -> None:
    """Replace ``path`` with ``data`` in one rename."""
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
        try:
            os.chmod(tmp_path, path.stat().st_mode & 0o7777)
        except OSError:
            logger.debug("Could not copy permissions onto %s", path)
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


class ImageRewriter:
    """Rewrites remote image literals in one source file at a time.

    The download record is shared across every file of a run, so a URL is
    fetched at most once no matter how many literals reference it.
    """

    def __init__(
        self,
        config: LocalizerConfig,
        record: DownloadRecord,
        fetcher: ImageFetcher,
    ) -> None:
        self.config = config
        self.record = record
        self.fetcher = fetcher

    def collect_candidates(self, document: SourceDocument) -> List[Candidate]:
        domains = self.config.image_domains
        return [
            candidate
            for candidate in iter_candidates(document)
            if is_image_url(candidate.value, domains)
        ]

    def resolve(self, url: str) -> Optional[str]:
        """Return the local web path for ``url``, downloading it if needed."""
        local_path = self.record.get(url)
        if local_path is not None:
            return local_path
        if self.record.has_failed(url):
            logger.debug("Skipping %s: download already failed in this run", url)
            return None

        filename = derive_filename(url)
        destination = self.config.image_dir / filename
        if (
            self.config.skip_existing
            and destination.is_file()
            and destination.stat().st_size > 0
        ):
            logger.info("Reusing existing image %s for %s", destination, url)
        else:
            try:
                self.fetcher.fetch(url, destination)
            except FetchError as exc:
                logger.error("Could not download %s: %s", url, exc.cause)
                self.record.mark_failed(url)
                return None

        local_path = self.config.local_path_for(filename)
        self.record.add(url, local_path)
        return local_path

    def process_file(self, path: Path) -> FileReport:
        """Run one file through parse, walk, download and rewrite."""
        try:
            return self._process(path)
        except Exception:  # pylint: disable=broad-except
            logger.exception("Unexpected error processing %s", path)
            return FileReport(path=path, status=FileStatus.FAILED)

    def _process(self, path: Path) -> FileReport:
        try:
            data = path.read_bytes()
        except OSError as exc:
            logger.error("Failed to read %s: %s", path, exc)
            return FileReport(path=path, status=FileStatus.FAILED)

        try:
            document = parse_source(path, data)
        except SourceParseError as exc:
            logger.error("Failed to parse %s", exc)
            return FileReport(path=path, status=FileStatus.UNPARSED)

        report = FileReport(path=path, status=FileStatus.UNMODIFIED)
        candidates = self.collect_candidates(document)
        for candidate in candidates:
            if not candidate.rewritable:
                report.flagged += 1
                logger.warning(
                    "Possible image URL in template literal at %s:%d left unchanged: %s",
                    path,
                    candidate.line,
                    candidate.value,
                )
                continue
            report.found += 1
            logger.debug(
                "Found %s image URL at %s:%d: %s",
                candidate.kind.value,
                path,
                candidate.line,
                candidate.value,
            )

        if report.found:
            logger.info("Found %d image URL(s) in %s", report.found, path)

        # Attribute/property matches share their slot with a literal match;
        # outcomes are counted once per slot.
        slots = set()
        for candidate in candidates:
            if not candidate.rewritable:
                continue
            local_path = self.resolve(candidate.value)
            slot = (candidate.start, candidate.end)
            first_visit = slot not in slots
            slots.add(slot)
            if local_path is None:
                if first_visit:
                    report.failed += 1
                continue
            document.replace(candidate, local_path)
            if first_visit:
                report.rewritten += 1

        if not document.modified:
            return report

        try:
            write_atomic(path, document.render())
        except OSError as exc:
            logger.error("Failed to write %s: %s", path, exc)
            report.status = FileStatus.FAILED
            return report
        logger.info("Updated %s", path)
        report.status = FileStatus.REWRITTEN
        return report
