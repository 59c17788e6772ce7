"""
tests/test_cli.py — the `baton` command line.
Run with: pytest tests/test_cli.py -v
"""

from __future__ import annotations

import json

import pytest

from baton.cli.__main__ import main
from baton.models.providers.noop import NoOpProvider


class TestRunCommand:
    def test_prints_final_output(self, capsys):
        assert main(["run", "hi", "--provider", "noop"]) == 0
        assert capsys.readouterr().out.strip() == NoOpProvider.GREETING

    def test_json_output(self, capsys):
        assert main(["run", "hi", "--provider", "noop", "--name", "Greeter", "--json"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["final_output"] == NoOpProvider.GREETING
        assert data["last_agent"] == "Greeter"
        assert data["metrics"]["total_turns"] == 1
        assert [m["role"] for m in data["messages"]] == ["user", "assistant"]

    def test_session_db(self, capsys, tmp_path):
        db = str(tmp_path / "chat.db")
        argv = ["run", "hi", "--provider", "noop", "--session-db", db, "--session-id", "me", "--json"]
        assert main(argv) == 0
        capsys.readouterr()
        assert main(argv) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["session_id"] == "me"
        assert len(data["messages"]) == 4

    def test_bad_config_exits_2(self, capsys):
        assert main(["run", "hi", "--provider", "noop", "--name", ""]) == 2
        assert "error:" in capsys.readouterr().err

    def test_session_id_needs_db(self):
        with pytest.raises(SystemExit) as exc:
            main(["run", "hi", "--session-id", "me"])
        assert exc.value.code == 2

    def test_unknown_provider_rejected(self):
        with pytest.raises(SystemExit):
            main(["run", "hi", "--provider", "bedrock"])

    def test_hosted_provider_without_key_exits_2(self, capsys, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        assert main(["run", "hi", "--provider", "anthropic"]) == 2
        assert "anthropic API key is required" in capsys.readouterr().err
