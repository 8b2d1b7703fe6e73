"""Tests for the timerdeck command line entry point."""

from unittest.mock import patch

import pytest

pytest.importorskip("fastapi")

from timerdeck.timerdeck import build_parser, main


def test_parser_defaults_leave_settings_alone():
    args = build_parser().parse_args([])
    assert args.port is None
    assert args.host is None
    assert args.in_memory is None
    assert args.debug is None


@patch("timerdeck.web.server.run_server")
def test_main_passes_flags_to_settings(mock_run, tmp_path, monkeypatch):
    monkeypatch.delenv("TIMERDECK_PORT", raising=False)
    main(
        [
            "--config",
            str(tmp_path / "missing.json"),
            "--port",
            "9300",
            "--in-memory",
            "--data-file",
            str(tmp_path / "t.json"),
        ]
    )

    settings = mock_run.call_args[0][0]
    assert settings.port == 9300
    assert settings.in_memory is True
    assert settings.data_file == tmp_path / "t.json"
