import logging

from image_localizer.models import DownloadRecord, FileStatus
from image_localizer.rewriter import ImageRewriter
from image_localizer.utils import derive_filename

from .conftest import FakeFetcher

HERO = "https://images.pexels.com/photos/1/pic.jpg"
LOGO = "https://example.com/foo.png"


def _rewriter(config, fetcher, record=None):
    return ImageRewriter(config, record if record is not None else DownloadRecord(), fetcher)


def test_rewrites_plain_literal(config, fetcher):
    path = config.source_root / "hero.ts"
    path.write_text(f'const hero = "{HERO}";\n', encoding="utf-8")

    report = _rewriter(config, fetcher).process_file(path)

    filename = derive_filename(HERO)
    assert report.status is FileStatus.REWRITTEN
    assert path.read_text(encoding="utf-8") == f'const hero = "/images/{filename}";\n'
    assert (config.image_dir / filename).is_file()
    assert filename.endswith("-pic.jpg")
    assert fetcher.calls == [HERO]


def test_rewrites_tracked_jsx_attribute_only(config, fetcher):
    path = config.source_root / "Logo.jsx"
    path.write_text(
        f'export const Logo = () => <img src="{LOGO}" alt="x"/>;\n', encoding="utf-8"
    )

    _rewriter(config, fetcher).process_file(path)

    expected = f'export const Logo = () => <img src="/images/{derive_filename(LOGO)}" alt="x"/>;\n'
    assert path.read_text(encoding="utf-8") == expected
    assert fetcher.calls == [LOGO]


def test_template_literal_is_flagged_not_rewritten(config, fetcher, caplog):
    source = "export const icon = (id) => `https://cdn.example.com/${id}.png`;\n"
    path = config.source_root / "icon.js"
    path.write_text(source, encoding="utf-8")

    with caplog.at_level(logging.WARNING, logger="image_localizer"):
        report = _rewriter(config, fetcher).process_file(path)

    assert report.status is FileStatus.UNMODIFIED
    assert report.flagged == 1
    assert report.found == 0
    assert path.read_text(encoding="utf-8") == source
    assert fetcher.calls == []
    assert "template literal" in caplog.text


def test_file_without_images_is_untouched(config, fetcher):
    source = "const label = 'hello';\r\n// https://example.com/docs\r\n"
    path = config.source_root / "label.js"
    path.write_bytes(source.encode("utf-8"))
    mtime = path.stat().st_mtime_ns

    report = _rewriter(config, fetcher).process_file(path)

    assert report.status is FileStatus.UNMODIFIED
    assert path.read_bytes() == source.encode("utf-8")
    assert path.stat().st_mtime_ns == mtime


def test_same_url_in_two_files_is_fetched_once(config, fetcher):
    first = config.source_root / "a.ts"
    second = config.source_root / "b.tsx"
    first.write_text(f'export const a = "{HERO}";\n', encoding="utf-8")
    second.write_text(f'export const B = () => <img src="{HERO}" />;\n', encoding="utf-8")
    record = DownloadRecord()
    rewriter = _rewriter(config, fetcher, record)

    rewriter.process_file(first)
    rewriter.process_file(second)

    local = f"/images/{derive_filename(HERO)}"
    assert fetcher.calls == [HERO]
    assert record.get(HERO) == local
    assert record.downloaded == 1
    assert local in first.read_text(encoding="utf-8")
    assert local in second.read_text(encoding="utf-8")


def test_failed_fetch_leaves_literal_but_rewrites_others(config):
    broken = "https://example.com/broken.png"
    fetcher = FakeFetcher(failing={broken})
    path = config.source_root / "gallery.js"
    path.write_text(
        f"const a = '{broken}';\nconst b = '{LOGO}';\nconst c = '{broken}';\n",
        encoding="utf-8",
    )
    record = DownloadRecord()

    report = _rewriter(config, fetcher, record).process_file(path)

    assert report.status is FileStatus.REWRITTEN
    assert report.failed == 2
    assert report.rewritten == 1
    assert path.read_text(encoding="utf-8") == (
        f"const a = '{broken}';\n"
        f"const b = '/images/{derive_filename(LOGO)}';\n"
        f"const c = '{broken}';\n"
    )
    assert broken not in record
    assert record.has_failed(broken)
    assert fetcher.calls == [broken, LOGO]


def test_existing_download_is_reused(config, fetcher):
    (config.image_dir / derive_filename(HERO)).write_bytes(b"cached")
    path = config.source_root / "hero.ts"
    path.write_text(f'const hero = "{HERO}";\n', encoding="utf-8")

    report = _rewriter(config, fetcher).process_file(path)

    assert report.status is FileStatus.REWRITTEN
    assert fetcher.calls == []
    assert (config.image_dir / derive_filename(HERO)).read_bytes() == b"cached"


def test_existing_download_is_refetched_when_forced(config, fetcher):
    config.skip_existing = False
    (config.image_dir / derive_filename(HERO)).write_bytes(b"cached")
    path = config.source_root / "hero.ts"
    path.write_text(f'const hero = "{HERO}";\n', encoding="utf-8")

    _rewriter(config, fetcher).process_file(path)

    assert fetcher.calls == [HERO]


def test_parse_failure_is_reported(config, fetcher, caplog):
    path = config.source_root / "broken.js"
    source = f"const = '{HERO}';\n"
    path.write_text(source, encoding="utf-8")

    with caplog.at_level(logging.ERROR, logger="image_localizer"):
        report = _rewriter(config, fetcher).process_file(path)

    assert report.status is FileStatus.UNPARSED
    assert path.read_text(encoding="utf-8") == source
    assert fetcher.calls == []
    assert "Failed to parse" in caplog.text


def test_unexpected_error_is_contained(config, caplog):
    class ExplodingFetcher:
        def fetch(self, url, destination):
            raise RuntimeError("boom")

    path = config.source_root / "hero.ts"
    source = f'const hero = "{HERO}";\n'
    path.write_text(source, encoding="utf-8")

    with caplog.at_level(logging.ERROR, logger="image_localizer"):
        report = _rewriter(config, ExplodingFetcher()).process_file(path)

    assert report.status is FileStatus.FAILED
    assert path.read_text(encoding="utf-8") == source
    assert "Unexpected error processing" in caplog.text


def test_unreadable_file_is_skipped(config, fetcher):
    report = _rewriter(config, fetcher).process_file(config.source_root / "gone.ts")
    assert report.status is FileStatus.FAILED


def test_custom_url_prefix(config, fetcher):
    config.url_prefix = "/static/img/"
    path = config.source_root / "card.ts"
    path.write_text(f"export default {{ image: '{LOGO}' }};\n", encoding="utf-8")

    _rewriter(config, fetcher).process_file(path)

    assert path.read_text(encoding="utf-8") == (
        f"export default {{ image: '/static/img/{derive_filename(LOGO)}' }};\n"
    )


def test_surrogate_pair_escape_does_not_fail_the_file(config, fetcher):
    emoji = "https://example.com/\U0001F600.png"
    path = config.source_root / "emoji.js"
    path.write_text(
        f"const a = '{LOGO}';\nconst b = 'https://example.com/\\uD83D\\uDE00.png';\n",
        encoding="utf-8",
    )

    report = _rewriter(config, fetcher).process_file(path)

    assert report.status is FileStatus.REWRITTEN
    assert report.rewritten == 2
    assert fetcher.calls == [LOGO, emoji]
    assert path.read_text(encoding="utf-8") == (
        f"const a = '/images/{derive_filename(LOGO)}';\n"
        f"const b = '/images/{derive_filename(emoji)}';\n"
    )


def test_outcomes_are_counted_once_per_slot(config):
    broken = "https://example.com/broken.png"
    fetcher = FakeFetcher(failing={broken})
    path = config.source_root / "Pair.jsx"
    source = f'export const P = () => <><img src="{broken}" /><img src="{LOGO}" /></>;\n'
    path.write_text(source, encoding="utf-8")

    report = _rewriter(config, fetcher).process_file(path)

    assert report.found == 4
    assert report.failed == 1
    assert report.rewritten == 1
    assert fetcher.calls == [broken, LOGO]
