"""Data models used throughout the localizer pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Set


class CandidateKind(str, Enum):
    """Syntactic form a candidate string was found in."""

    LITERAL = "literal"
    JSX_ATTRIBUTE = "jsx-attribute"
    OBJECT_PROPERTY = "object-property"
    TEMPLATE_LITERAL = "template-literal"


@dataclass(frozen=True)
class Candidate:
    """String slot in a parsed source file that may hold an image URL."""

    kind: CandidateKind
    value: str
    start: int
    end: int
    line: int
    rewritable: bool = True
    jsx: bool = False


@dataclass
class DownloadRecord:
    """Run-scoped mapping of remote URL to the local web path it was stored at."""

    paths: Dict[str, str] = field(default_factory=dict)
    failed: Set[str] = field(default_factory=set)

    def __contains__(self, url: str) -> bool:
        return url in self.paths

    @property
    def downloaded(self) -> int:
        """Number of distinct URLs stored locally."""
        return len(self.paths)

    def get(self, url: str) -> Optional[str]:
        return self.paths.get(url)

    def add(self, url: str, local_path: str) -> None:
        self.paths[url] = local_path
        self.failed.discard(url)

    def mark_failed(self, url: str) -> None:
        self.failed.add(url)

    def has_failed(self, url: str) -> bool:
        return url in self.failed


class FileStatus(str, Enum):
    """Terminal state of one file's processing pass."""

    UNPARSED = "unparsed"
    UNMODIFIED = "unmodified"
    REWRITTEN = "rewritten"
    FAILED = "failed"


@dataclass
class FileReport:
    """Outcome of processing a single source file."""

    path: Path
    status: FileStatus
    found: int = 0
    rewritten: int = 0
    failed: int = 0
    flagged: int = 0


@dataclass
class RunSummary:
    """Counters accumulated over one run."""

    image_dir: Path
    urls_found: int = 0
    images_downloaded: int = 0
    files_scanned: int = 0
    files_rewritten: int = 0
    parse_failures: int = 0
    file_failures: int = 0
    fetch_failures: int = 0
    templates_flagged: int = 0

    def add(self, report: FileReport) -> None:
        self.files_scanned += 1
        self.urls_found += report.found
        self.fetch_failures += report.failed
        self.templates_flagged += report.flagged
        if report.status is FileStatus.REWRITTEN:
            self.files_rewritten += 1
        elif report.status is FileStatus.UNPARSED:
            self.parse_failures += 1
        elif report.status is FileStatus.FAILED:
            self.file_failures += 1
