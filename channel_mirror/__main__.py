#!/usr/bin/env python3
"""
Main entry point for the channel mirror.

    python -m channel_mirror --channel-name @SomeChannel --output-dir /data

With --poll-interval (or POLL_INTERVAL) the sync runs once immediately and then
again after every interval. Each run is independent; only the cache file
carries state from one run to the next.
"""

import logging
import sys
import time
from typing import Optional, Sequence

from channel_mirror.config import ConfigError, MirrorConfig, load_config
from channel_mirror.ingestion import sync_channel
from channel_mirror.logger import setup_logging

logger = logging.getLogger("channel_mirror")


def run_once(config: MirrorConfig) -> None:
    stats = sync_channel(config)
    print(
        f"\nCompleted: {stats.downloaded} downloaded, {stats.skipped_existing} already on disk, "
        f"{stats.failed} failed, {stats.pages} page(s) fetched "
        f"(stopped: {stats.stop_reason.value if stats.stop_reason else 'n/a'})"
    )
    if stats.failed > 0:
        print(f"Check {config.log_file} for detailed error information")


def poll_forever(config: MirrorConfig) -> None:
    logger.info(f"Starting periodic run loop; interval={config.poll_interval}s")
    while True:
        logger.info("Starting run")
        try:
            run_once(config)
        except Exception as e:
            logger.exception(f"Run failed: {e}")
        logger.info(f"Run complete, sleeping for {config.poll_interval}s")
        time.sleep(config.poll_interval)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Parse the configuration, then run the sync once or on an interval.

    Returns 0 on success, 1 on a configuration error or an unexpected failure,
    and 130 when interrupted. Per-item failures do not change the exit code.
    """
    config = load_config(argv)
    if isinstance(config, ConfigError):
        print(f"✗ Configuration error: {config}", file=sys.stderr)
        return 1

    setup_logging(
        logger_name="channel_mirror",
        log_file=config.log_file,
        verbose=config.verbose,
    )
    logger.info(f"Mirroring {config.channel_name} into {config.output_dir}")

    try:
        if config.poll_interval > 0:
            poll_forever(config)
        else:
            run_once(config)
    except KeyboardInterrupt:
        print("\nSync interrupted by user")
        logger.info("Sync interrupted by user")
        return 130
    except Exception as e:
        print(f"✗ Sync failed: {e}")
        logger.exception(f"Sync failed: {e}")
        return 1

    print("Done.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
