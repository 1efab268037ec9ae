"""Tests for the command-line entry point."""

from unittest.mock import patch

from channel_mirror.__main__ import main
from channel_mirror.ingestion import StopReason, SyncStats


def test_config_error_exits_before_sync(capsys, monkeypatch):
    monkeypatch.delenv("CHANNEL_NAME", raising=False)

    with patch("channel_mirror.config.load_dotenv"), patch(
        "channel_mirror.__main__.sync_channel"
    ) as mock_sync:
        code = main([])

    assert code == 1
    mock_sync.assert_not_called()
    assert "channel name is required" in capsys.readouterr().err


def test_single_run(tmp_path):
    argv = [
        "--channel-name", "@TestChannel",
        "--output-dir", str(tmp_path / "media"),
        "--log-file", str(tmp_path / "logs" / "mirror.log"),
    ]
    stats = SyncStats(pages=1, downloaded=2, stop_reason=StopReason.LAST_PAGE)

    with patch("channel_mirror.__main__.sync_channel", return_value=stats) as mock_sync:
        code = main(argv)

    assert code == 0
    config = mock_sync.call_args.args[0]
    assert config.channel_name == "@TestChannel"


def test_unexpected_failure_exits_nonzero(tmp_path):
    argv = [
        "--channel-name", "@TestChannel",
        "--output-dir", str(tmp_path / "media"),
        "--log-file", str(tmp_path / "logs" / "mirror.log"),
    ]

    with patch("channel_mirror.__main__.sync_channel", side_effect=RuntimeError("boom")):
        assert main(argv) == 1


def test_interrupt_exits_130(tmp_path):
    argv = [
        "--channel-name", "@TestChannel",
        "--output-dir", str(tmp_path / "media"),
        "--log-file", str(tmp_path / "logs" / "mirror.log"),
    ]

    with patch("channel_mirror.__main__.sync_channel", side_effect=KeyboardInterrupt):
        assert main(argv) == 130


def test_poll_loop_survives_a_failed_run(tmp_path):
    argv = [
        "--channel-name", "@TestChannel",
        "--output-dir", str(tmp_path / "media"),
        "--log-file", str(tmp_path / "logs" / "mirror.log"),
        "--poll-interval", "1m",
    ]
    stats = SyncStats(pages=1, stop_reason=StopReason.CAUGHT_UP)

    with patch(
        "channel_mirror.__main__.sync_channel",
        side_effect=[RuntimeError("listing down"), stats, stats],
    ) as mock_sync, patch(
        "channel_mirror.__main__.time.sleep",
        side_effect=[None, None, KeyboardInterrupt],
    ) as mock_sleep:
        code = main(argv)

    assert code == 130
    assert mock_sync.call_count == 3
    assert [call.args for call in mock_sleep.call_args_list] == [(60,), (60,), (60,)]
