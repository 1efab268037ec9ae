"""Shared test fixtures for channel_mirror tests."""

from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from channel_mirror.config import MirrorConfig, ToolPaths
from channel_mirror.ingestion.fetcher import FetchOutcome, FetchResult
from channel_mirror.ingestion.odysee import ListingError, ResolvedMedia
from channel_mirror.models import ChannelItem

CHANNEL = "@TestChannel"

SAMPLE_VIDEO_PAGE = """<!DOCTYPE html>
<html>
<head>
  <script type="application/ld+json">{ this is not json }</script>
  <script type="application/ld+json">
    {"@context": "https://schema.org", "@type": "BreadcrumbList", "itemListElement": []}
  </script>
  <script type="application/ld+json">
    {
      "@context": "https://schema.org",
      "@type": "VideoObject",
      "name": "First Episode",
      "contentUrl": "https://player.odycdn.com/api/v3/streams/free/first-episode/abc123.mp4"
    }
  </script>
</head>
<body></body>
</html>"""

SAMPLE_PAGE_WITHOUT_VIDEO = """<!DOCTYPE html>
<html><head><title>Nothing here</title></head><body></body></html>"""


def ts(year: int, month: int, day: int) -> int:
    """Epoch seconds for midnight UTC of a date."""
    return int(datetime(year, month, day, tzinfo=timezone.utc).timestamp())


def make_item(name: str, published_at=None) -> ChannelItem:
    return ChannelItem(
        title=name,
        published_at=published_at,
        source_url=f"https://odysee.com/{CHANNEL}/{name}",
    )


def make_page(prefix: str, count: int, newest: int, step: int = 3600) -> list[ChannelItem]:
    """``count`` items named prefix-0..n, newest first."""
    return [make_item(f"{prefix}-{i}", newest - i * step) for i in range(count)]


class FakeListing:
    """Stands in for fetch_channel_page: serves pre-built pages and records requests."""

    def __init__(self, pages: list[list[ChannelItem]], fail_on_page=None):
        self.pages = pages
        self.fail_on_page = fail_on_page
        self.calls: list[tuple[str, int, int]] = []

    def __call__(self, channel_name: str, page: int, page_size: int) -> list[ChannelItem]:
        self.calls.append((channel_name, page, page_size))
        if self.fail_on_page == page:
            raise ListingError("listing API error: boom")
        if page > len(self.pages):
            return []
        return list(self.pages[page - 1])


class FakeResolver:
    """Resolves every page URL to a fake CDN URL, except those listed as broken."""

    def __init__(self, unresolvable=()):
        self.unresolvable = set(unresolvable)
        self.calls: list[str] = []

    def __call__(self, page_url: str) -> ResolvedMedia:
        self.calls.append(page_url)
        if page_url in self.unresolvable:
            return ResolvedMedia(content_url=None, raw={})
        return ResolvedMedia(content_url=f"https://cdn.example.com/{page_url.rsplit('/', 1)[-1]}", raw={})


class FakeRunner:
    """Stands in for yt-dlp: writes the output file, or fails for chosen URLs."""

    def __init__(self, failing_urls=()):
        self.failing_urls = set(failing_urls)
        self.commands: list[list[str]] = []

    def __call__(self, cmd) -> FetchResult:
        cmd = list(cmd)
        self.commands.append(cmd)
        output_path = Path(cmd[cmd.index("-o") + 1])
        url = cmd[-1]
        output_path.write_bytes(b"partial" if url in self.failing_urls else b"media bytes")
        if url in self.failing_urls:
            return FetchResult(FetchOutcome.EXIT_FAILURE, returncode=1, error="yt-dlp exited with code 1")
        return FetchResult(FetchOutcome.SUCCESS, returncode=0)

    @property
    def fetched_urls(self) -> list[str]:
        return [cmd[-1] for cmd in self.commands]


@pytest.fixture
def output_dir(tmp_path):
    """Provide an empty output directory."""
    path = tmp_path / "media"
    path.mkdir()
    return path


@pytest.fixture
def make_config(output_dir):
    """Factory for a MirrorConfig pointing at the temporary output directory."""

    def _make(**overrides) -> MirrorConfig:
        settings = {
            "channel_name": CHANNEL,
            "output_dir": output_dir,
            "page_size": 5,
            "audio_only": True,
            "tools": ToolPaths(ytdlp="yt-dlp", ffmpeg="/usr/bin/ffmpeg"),
            "rss": True,
            "podcast_url_prefix": "https://podcasts.example.com/test",
            "log_file": None,
        }
        settings.update(overrides)
        return MirrorConfig(**settings)

    return _make


@pytest.fixture
def resolver():
    return FakeResolver()


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def sample_video_page():
    """Item page HTML carrying a VideoObject JSON-LD block."""
    return SAMPLE_VIDEO_PAGE


@pytest.fixture
def sample_page_without_video():
    return SAMPLE_PAGE_WITHOUT_VIDEO


@pytest.fixture
def claim_search_response():
    """Factory for a mocked requests response carrying a claim_search result."""

    def _make(items=None, error=None, status_code=200):
        response = MagicMock()
        response.status_code = status_code
        body = {"jsonrpc": "2.0", "id": 0}
        if error is not None:
            body["error"] = error
        else:
            body["result"] = {"items": items or [], "page": 1}
        response.json.return_value = body
        response.raise_for_status.return_value = None
        return response

    return _make
