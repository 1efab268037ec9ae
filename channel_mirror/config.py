"""
Configuration for a channel mirror run.

Every setting can come from a command-line flag or an environment variable
(an optional ``.env`` file is loaded first). Flags win over the environment.

``load_config`` never raises for bad input: it returns either a validated
``MirrorConfig`` or a ``ConfigError`` describing the first problem found, and
the caller reports it once.
"""

import argparse
import os
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Mapping, Optional, Sequence, Union

from dotenv import load_dotenv

DEFAULT_PAGE_SIZE = 50
DEFAULT_YTDLP_PATH = "yt-dlp"
DEFAULT_LOG_FILE = "logs/channel_mirror.log"
CACHE_FILENAME = "feed.json"
FEED_FILENAME = "feed.xml"

TRUE_VALUES = {"1", "true", "yes", "on"}

_US_DATE_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_INTERVAL_RE = re.compile(r"^(\d+)([smhd]?)$")
_INTERVAL_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


class ConfigErrorKind(str, Enum):
    MISSING_CHANNEL = "missing_channel"
    MISSING_OUTPUT_DIR = "missing_output_dir"
    INVALID_DATE = "invalid_date"
    INVALID_PAGE_SIZE = "invalid_page_size"
    INVALID_POLL_INTERVAL = "invalid_poll_interval"


@dataclass(frozen=True)
class ConfigError:
    """A configuration problem detected before any network activity."""

    kind: ConfigErrorKind
    message: str

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class ToolPaths:
    """Locations of the external executables."""

    ytdlp: str = DEFAULT_YTDLP_PATH
    ffmpeg: Optional[str] = None


@dataclass(frozen=True)
class MirrorConfig:
    """Validated settings for one run."""

    channel_name: str
    output_dir: Path
    oldest_date: Optional[datetime] = None
    page_size: int = DEFAULT_PAGE_SIZE
    audio_only: bool = False
    tools: ToolPaths = field(default_factory=ToolPaths)
    rss: bool = False
    rss_path: Optional[Path] = None
    podcast_title: Optional[str] = None
    podcast_url_prefix: str = ""
    poll_interval: int = 0
    verbose: bool = False
    log_file: str = DEFAULT_LOG_FILE

    @property
    def cache_path(self) -> Path:
        return self.output_dir / CACHE_FILENAME

    @property
    def feed_path(self) -> Path:
        return self.rss_path or self.output_dir / FEED_FILENAME

    @property
    def feed_title(self) -> str:
        return self.podcast_title or self.channel_name


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="channel_mirror",
        description="Mirror an Odysee channel to a local directory and optionally publish an RSS feed",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m channel_mirror --channel-name @SomeChannel --output-dir /data
  python -m channel_mirror --channel-name @SomeChannel --output-dir /data --audio-only --rss
  python -m channel_mirror --channel-name @SomeChannel --output-dir /data --oldest-date 12/31/2023
  python -m channel_mirror --channel-name @SomeChannel --output-dir /data --poll-interval 24h

Every option can also be set through the environment (CHANNEL_NAME, OUTPUT_DIR,
OLDEST_DATE, PAGE_SIZE, AUDIO_ONLY, YTDLP_PATH, FFMPEG_PATH, RSS, RSS_PATH,
PODCAST_TITLE, PODCAST_URL_PREFIX, POLL_INTERVAL, LOG_FILE, LOG_DEBUG).
        """,
    )
    parser.add_argument("--channel-name", help="Channel to mirror, e.g. @SomeChannel")
    parser.add_argument("--output-dir", help="Directory receiving the media files")
    parser.add_argument(
        "--oldest-date", help="Ignore items published before this date (MM/DD/YYYY)"
    )
    parser.add_argument(
        "--page-size", help=f"Listing page size (default: {DEFAULT_PAGE_SIZE})"
    )
    parser.add_argument(
        "--audio-only",
        action="store_true",
        default=None,
        help="Extract audio to .m4a instead of downloading video",
    )
    parser.add_argument("--ytdlp-path", help="yt-dlp executable (default: yt-dlp)")
    parser.add_argument("--ffmpeg-path", help="ffmpeg location passed to yt-dlp")
    parser.add_argument(
        "--rss", action="store_true", default=None, help="Write an RSS feed after syncing"
    )
    parser.add_argument("--rss-path", help="Feed output path (default: <output-dir>/feed.xml)")
    parser.add_argument("--podcast-title", help="Feed title (default: channel name)")
    parser.add_argument(
        "--podcast-url-prefix", help="Public URL prefix for feed enclosures"
    )
    parser.add_argument(
        "--poll-interval",
        help="Re-run on this interval, e.g. 3600, 30m, 24h (default: run once)",
    )
    parser.add_argument("--log-file", help=f"Log file (default: {DEFAULT_LOG_FILE})")
    parser.add_argument(
        "--verbose", action="store_true", default=None, help="Detailed console output"
    )
    return parser


def parse_date(value: str) -> datetime:
    """
    Parse a cutoff date given as MM/DD/YYYY (or ISO YYYY-MM-DD).

    Returns midnight UTC of that day.

    Raises:
        ValueError: If the value matches neither format
    """
    match = _US_DATE_RE.match(value.strip())
    if match:
        month, day, year = (int(part) for part in match.groups())
        return datetime(year, month, day, tzinfo=timezone.utc)
    parsed = datetime.fromisoformat(value.strip())
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_interval(value: Optional[str]) -> int:
    """Convert "90", "90s", "30m", "24h" or "7d" to seconds. Empty means 0."""
    if value is None or not value.strip():
        return 0
    match = _INTERVAL_RE.match(value.strip().lower())
    if not match:
        raise ValueError(f"invalid interval: {value!r}")
    amount, unit = match.groups()
    return int(amount) * _INTERVAL_UNITS[unit]


def _flag(value: Optional[bool], env_value: Optional[str]) -> bool:
    if value is not None:
        return value
    return (env_value or "").strip().lower() in TRUE_VALUES


def load_config(
    argv: Optional[Sequence[str]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Union[MirrorConfig, ConfigError]:
    """
    Build the run configuration from command-line flags and the environment.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])
        environ: Environment mapping. When omitted, ``.env`` is loaded into
            os.environ and os.environ is used.

    Returns:
        A MirrorConfig, or a ConfigError for the first invalid setting
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    args = build_parser().parse_args(argv)

    def pick(arg_value: Optional[str], env_name: str) -> Optional[str]:
        if arg_value:
            return arg_value
        return environ.get(env_name) or None

    channel_name = pick(args.channel_name, "CHANNEL_NAME")
    if not channel_name:
        return ConfigError(
            ConfigErrorKind.MISSING_CHANNEL,
            "channel name is required (env: CHANNEL_NAME or --channel-name)",
        )

    output_dir = pick(args.output_dir, "OUTPUT_DIR")
    if not output_dir:
        return ConfigError(
            ConfigErrorKind.MISSING_OUTPUT_DIR,
            "output directory is required (env: OUTPUT_DIR or --output-dir)",
        )

    oldest_date = None
    oldest_raw = pick(args.oldest_date, "OLDEST_DATE")
    if oldest_raw:
        try:
            oldest_date = parse_date(oldest_raw)
        except ValueError:
            return ConfigError(
                ConfigErrorKind.INVALID_DATE,
                f"oldest date must be in MM/DD/YYYY format (e.g. 12/31/2023), got {oldest_raw!r}",
            )

    page_size_raw = pick(args.page_size, "PAGE_SIZE")
    page_size = DEFAULT_PAGE_SIZE
    if page_size_raw:
        try:
            page_size = int(page_size_raw)
        except ValueError:
            page_size = 0
        if page_size <= 0:
            return ConfigError(
                ConfigErrorKind.INVALID_PAGE_SIZE,
                f"page size must be a positive integer, got {page_size_raw!r}",
            )

    poll_raw = pick(args.poll_interval, "POLL_INTERVAL")
    try:
        poll_interval = parse_interval(poll_raw)
    except ValueError:
        return ConfigError(
            ConfigErrorKind.INVALID_POLL_INTERVAL,
            f"poll interval must look like 3600, 90s, 30m, 24h or 7d, got {poll_raw!r}",
        )

    rss_path = pick(args.rss_path, "RSS_PATH")

    return MirrorConfig(
        channel_name=channel_name,
        output_dir=Path(output_dir),
        oldest_date=oldest_date,
        page_size=page_size,
        audio_only=_flag(args.audio_only, environ.get("AUDIO_ONLY")),
        tools=ToolPaths(
            ytdlp=pick(args.ytdlp_path, "YTDLP_PATH") or DEFAULT_YTDLP_PATH,
            ffmpeg=pick(args.ffmpeg_path, "FFMPEG_PATH"),
        ),
        rss=_flag(args.rss, environ.get("RSS")),
        rss_path=Path(rss_path) if rss_path else None,
        podcast_title=pick(args.podcast_title, "PODCAST_TITLE"),
        podcast_url_prefix=(pick(args.podcast_url_prefix, "PODCAST_URL_PREFIX") or "").rstrip("/"),
        poll_interval=poll_interval,
        verbose=_flag(args.verbose, environ.get("LOG_DEBUG")),
        log_file=pick(args.log_file, "LOG_FILE") or DEFAULT_LOG_FILE,
    )
