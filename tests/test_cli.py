"""Tests for the queue inspection CLI."""

from __future__ import annotations

import argparse
from collections.abc import Generator
from unittest.mock import patch

import pytest

from durable_workqueue.__main__ import (
    _configure_cli_logging,
    build_parser,
    main,
    run_peek,
    run_purge,
    run_stats,
)
from durable_workqueue.config import Settings, override_settings
from durable_workqueue.core.envelope import EnvelopeCodec
from durable_workqueue.factory import QueueFactory


@pytest.fixture(autouse=True)
def quiet_logging() -> Generator[None, None, None]:
    """Keep the CLI from replacing the root logger's handlers."""
    with patch("durable_workqueue.__main__._configure_cli_logging"):
        yield


@pytest.fixture
def seeded_queue(test_settings: Settings) -> str:
    """Queue 'jobs' holding three envelopes and one corrupt entry."""
    codec: EnvelopeCodec[str] = EnvelopeCodec(str)
    store = QueueFactory(test_settings).create_backing_store("jobs")
    try:
        for i, item in enumerate(["alpha", "beta", "gamma"]):
            store.append(codec.encode(codec.wrap(item, str(i))))
        store.append("garbage")
    finally:
        store.close()
    return "jobs"


def _args(**overrides: object) -> argparse.Namespace:
    defaults: dict[str, object] = {"name": "jobs", "verbose": False, "limit": 10, "yes": False}
    defaults.update(overrides)
    return argparse.Namespace(**defaults)


class TestParser:
    def test_subcommands(self) -> None:
        parser = build_parser()

        args = parser.parse_args(["peek", "jobs", "--limit", "3", "-v"])
        assert args.command == "peek"
        assert args.name == "jobs"
        assert args.limit == 3
        assert args.verbose is True

        args = parser.parse_args(["purge", "jobs", "--yes"])
        assert args.yes is True

    def test_no_command_exits_1(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == 1

    def test_version(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])

        assert exc_info.value.code == 0
        assert "durable-workqueue" in capsys.readouterr().out


class TestCliLogging:
    """Logging setup driven by Settings.log_level and Settings.log_json."""

    def test_uses_configured_level_and_format(self, test_settings: Settings) -> None:
        override_settings(test_settings.model_copy(update={"log_level": "ERROR", "log_json": True}))

        with patch("durable_workqueue.core.logging.configure_logging") as mock_configure:
            _configure_cli_logging(verbose=False)

        mock_configure.assert_called_once_with(level="ERROR", json_format=True)

    def test_verbose_forces_debug(self, test_settings: Settings) -> None:
        override_settings(test_settings.model_copy(update={"log_level": "ERROR"}))

        with patch("durable_workqueue.core.logging.configure_logging") as mock_configure:
            _configure_cli_logging(verbose=True)

        mock_configure.assert_called_once_with(level="DEBUG", json_format=False)


class TestStats:
    def test_reports_backlog(self, seeded_queue: str, capsys: pytest.CaptureFixture[str]) -> None:
        assert run_stats(_args()) == 0

        out = capsys.readouterr().out
        assert "Items: 4" in out
        assert "Oldest:" in out
        assert "Types:   str" in out
        assert "Corrupt: 1" in out

    def test_empty_queue(self, test_settings: Settings, capsys: pytest.CaptureFixture[str]) -> None:
        assert run_stats(_args(name="empty")) == 0

        assert "Items: 0" in capsys.readouterr().out

    def test_memory_backend_is_error(
        self, test_settings: Settings, capsys: pytest.CaptureFixture[str]
    ) -> None:
        override_settings(test_settings.model_copy(update={"store_backend": "memory"}))

        assert run_stats(_args()) == 1
        assert "memory backend" in capsys.readouterr().out

    def test_owned_queue_is_error(
        self, seeded_queue: str, test_settings: Settings, capsys: pytest.CaptureFixture[str]
    ) -> None:
        owner = QueueFactory(test_settings).create_backing_store("jobs")
        try:
            assert run_stats(_args()) == 1
        finally:
            owner.close()

        assert "Error:" in capsys.readouterr().out


class TestPeek:
    def test_lists_head_entries(self, seeded_queue: str, capsys: pytest.CaptureFixture[str]) -> None:
        assert run_peek(_args(limit=2)) == 0

        out = capsys.readouterr().out
        assert '"alpha"' in out
        assert '"beta"' in out
        assert "gamma" not in out
        assert "... 2 more" in out

    def test_corrupt_entry_marked(self, seeded_queue: str, capsys: pytest.CaptureFixture[str]) -> None:
        assert run_peek(_args()) == 0

        assert "<corrupt> garbage" in capsys.readouterr().out

    def test_empty(self, test_settings: Settings, capsys: pytest.CaptureFixture[str]) -> None:
        assert run_peek(_args(name="nothing")) == 0

        assert "Queue is empty." in capsys.readouterr().out


class TestPurge:
    def test_requires_confirmation(
        self, seeded_queue: str, test_settings: Settings, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert run_purge(_args()) == 1

        assert "--yes" in capsys.readouterr().out
        store = QueueFactory(test_settings).create_backing_store("jobs")
        try:
            assert store.size() == 4
        finally:
            store.close()

    def test_purges(
        self, seeded_queue: str, test_settings: Settings, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert run_purge(_args(yes=True)) == 0

        assert "Purged 4 items" in capsys.readouterr().out
        store = QueueFactory(test_settings).create_backing_store("jobs")
        try:
            assert store.size() == 0
        finally:
            store.close()

    def test_main_exit_code(self, seeded_queue: str) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["purge", "jobs", "--yes"])

        assert exc_info.value.code == 0
