"""
Materializes one channel item: resolve its media URL, then hand the actual
download/transcode to yt-dlp.

yt-dlp runs as a blocking subprocess. Whatever happens, a failed run never
leaves a partial file behind at the output path, and a failure is reported
through the returned ``FetchResult`` rather than raised, so one bad item
cannot abort the channel sync.
"""

import contextlib
import logging
import os
import subprocess
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Iterator, Optional, Sequence, Union

from channel_mirror.config import ToolPaths
from channel_mirror.ingestion.odysee import ResolutionError, ResolvedMedia, resolve_media_url
from channel_mirror.logger import log_function
from channel_mirror.models import ChannelItem

logger = logging.getLogger(__name__)

AUDIO_FORMAT = "bestaudio/best"
AUDIO_CONTAINER = "m4a"
VIDEO_FORMAT = "bestaudio[ext=m4a]+bestvideo[ext=mp4]/best"


class FetchOutcome(str, Enum):
    SUCCESS = "success"
    EXIT_FAILURE = "exit_failure"
    SPAWN_FAILURE = "spawn_failure"
    UNRESOLVED = "unresolved"


@dataclass
class FetchResult:
    outcome: FetchOutcome
    returncode: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome is FetchOutcome.SUCCESS


Resolver = Callable[[str], ResolvedMedia]
ToolRunner = Callable[[Sequence[str]], FetchResult]


def build_ytdlp_command(
    url: str, output_path: Union[str, Path], audio_only: bool, tools: ToolPaths
) -> list[str]:
    """
    Build the yt-dlp argument list for one download.

    Audio mode extracts the best audio stream and remuxes it to m4a; video mode
    merges the best m4a audio with the best mp4 video, falling back to "best".
    """
    if audio_only:
        cmd = [tools.ytdlp, "-x", "-f", AUDIO_FORMAT, "--remux-video", AUDIO_CONTAINER]
        if tools.ffmpeg:
            cmd += ["--ffmpeg-location", tools.ffmpeg]
    else:
        cmd = [tools.ytdlp, "-f", VIDEO_FORMAT]
    cmd += ["--newline", "-o", str(output_path), url]
    return cmd


def run_fetch_tool(cmd: Sequence[str]) -> FetchResult:
    """Run yt-dlp to completion, forwarding its output to the debug log."""
    try:
        proc = subprocess.Popen(
            list(cmd),
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            errors="replace",
        )
    except OSError as e:
        return FetchResult(FetchOutcome.SPAWN_FAILURE, error=str(e))

    with proc:
        for line in proc.stdout:
            line = line.rstrip()
            if line:
                logger.debug(line)
        returncode = proc.wait()

    if returncode != 0:
        return FetchResult(
            FetchOutcome.EXIT_FAILURE,
            returncode=returncode,
            error=f"yt-dlp exited with code {returncode}",
        )
    return FetchResult(FetchOutcome.SUCCESS, returncode=0)


@contextlib.contextmanager
def partial_output_guard(output_path: Union[str, Path]) -> Iterator[list[bool]]:
    """
    Remove ``output_path`` unless the body marks the download as complete.

    The body sets ``done[0] = True`` on success. Any other exit, including an
    exception, deletes whatever was written.
    """
    done = [False]
    try:
        yield done
    finally:
        if not done[0]:
            remove_partial(output_path)


def remove_partial(output_path: Union[str, Path]) -> None:
    path = Path(output_path)
    try:
        if path.exists():
            os.remove(path)
            logger.info(f"Removed partial file {path}")
    except OSError as e:
        logger.warning(f"Could not remove partial file {path}: {e}")


@log_function(logger_name=__name__)
def materialize(
    item: ChannelItem,
    output_path: Union[str, Path],
    audio_only: bool,
    tools: ToolPaths,
    resolver: Resolver = resolve_media_url,
    runner: ToolRunner = run_fetch_tool,
) -> FetchResult:
    """
    Resolve and download one item to ``output_path``.

    Returns:
        FetchResult; ``ok`` is True only when yt-dlp exited with code 0.
        Resolution and tool failures are logged and returned, never raised.
    """
    print(f"Getting download link for {item.title}...")
    try:
        resolved = resolver(item.source_url)
    except ResolutionError as e:
        logger.error(f"Failed to get download URL for {item.title}: {e}")
        return FetchResult(FetchOutcome.UNRESOLVED, error=str(e))

    if not resolved.content_url:
        logger.error(f"No download URL found for {item.title}, skipping")
        return FetchResult(FetchOutcome.UNRESOLVED, error="empty content URL")

    cmd = build_ytdlp_command(resolved.content_url, output_path, audio_only, tools)
    print(f"  Downloading: {item.title} -> {output_path}")
    logger.info(f"Downloading {item.title} -> {output_path}")

    with partial_output_guard(output_path) as done:
        result = runner(cmd)
        done[0] = result.ok

    if result.ok:
        print(f"  ✓ Downloaded {item.title}")
        logger.info(f"Downloaded {item.title}")
    else:
        print(f"  ✗ Failed: {result.error}")
        logger.error(f"Failed to download {item.title}: {result.error}")
    return result
