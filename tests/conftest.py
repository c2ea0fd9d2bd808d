from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Set

import pytest
import requests

from image_localizer.config import LocalizerConfig
from image_localizer.images import FetchError

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


class FakeFetcher:
    """Writes canned bytes instead of hitting the network."""

    def __init__(self, failing: Optional[Set[str]] = None) -> None:
        self.failing = failing or set()
        self.calls: List[str] = []
        self.payloads: Dict[str, bytes] = {}

    def fetch(self, url: str, destination: Path) -> Path:
        self.calls.append(url)
        if url in self.failing:
            raise FetchError(url, requests.ConnectionError("connection refused"))
        destination.write_bytes(self.payloads.get(url, PNG_BYTES))
        return destination


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def config(tmp_path: Path) -> LocalizerConfig:
    source_root = tmp_path / "src"
    image_dir = tmp_path / "public" / "images"
    source_root.mkdir()
    image_dir.mkdir(parents=True)
    return LocalizerConfig(source_root=source_root, image_dir=image_dir)
