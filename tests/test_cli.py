"""
Tests for CLI argument parsing and server start-up wiring.
"""

from __future__ import annotations

import json

from userdemo import cli


def test_parse_args_defaults(monkeypatch):
    monkeypatch.delenv("USERDEMO_CONFIG", raising=False)
    args = cli.parse_args([])
    assert args.config == "config.json"
    assert args.host == "0.0.0.0"
    assert args.port is None


def test_parse_args_flags():
    args = cli.parse_args(["--config", "/tmp/x.json", "--port", "9001", "--no-open-browser"])
    assert args.config == "/tmp/x.json"
    assert args.port == 9001
    assert args.open_browser is False


def test_main_runs_uvicorn_with_settings_port(tmp_path, monkeypatch):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"server_url": "https://a.test", "port": 9100}))
    for name in ("SERVER_URL", "USER_API_KEY", "USER_ID", "PORT"):
        monkeypatch.delenv(name, raising=False)
    calls: list[dict] = []
    monkeypatch.setattr(cli.uvicorn, "run", lambda app, **kw: calls.append(kw))

    cli.main(["--config", str(path), "--no-open-browser"])

    assert calls == [{"host": "0.0.0.0", "port": 9100, "log_config": None}]
