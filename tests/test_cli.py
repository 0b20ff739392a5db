"""Tests for the export CLI."""

import json

import httpx
import pytest

from interlog import cli
from interlog.telemetry.retention import ExportSnapshot


@pytest.fixture
def export_file(tmp_path, make_batch, make_record):
    snapshot = ExportSnapshot(
        failed=(make_batch(2),),
        pending=(make_record("scroll", y=10),),
        session_id="sess0001",
    )
    return snapshot.write(tmp_path / "pending.json")


class TestInspect:
    def test_summary(self, export_file, capsys):
        assert cli.main(["inspect", str(export_file)]) == 0

        out = capsys.readouterr().out
        assert "sess0001" in out
        assert "click" in out
        assert "scroll" in out

    def test_not_an_export(self, tmp_path, capsys):
        path = tmp_path / "other.json"
        path.write_text(json.dumps({"hello": "world"}))

        assert cli.main(["inspect", str(path)]) == 1
        assert "not an interlog export" in capsys.readouterr().err

    def test_missing_file(self, tmp_path):
        assert cli.main(["inspect", str(tmp_path / "nope.json")]) == 1


class TestReplay:
    def test_replays_failed_then_pending(self, export_file, monkeypatch):
        posted = []
        real_client = httpx.AsyncClient

        def handler(request):
            posted.append(json.loads(request.content)["batch"])
            return httpx.Response(200)

        monkeypatch.setattr(
            cli.httpx,
            "AsyncClient",
            lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs),
        )

        assert cli.main(["replay", str(export_file), "--endpoint", "http://c.test/logs"]) == 0
        assert [len(batch) for batch in posted] == [2, 1]
        assert posted[1][0]["type"] == "scroll"

    def test_replay_reports_failures(self, export_file, monkeypatch):
        real_client = httpx.AsyncClient
        monkeypatch.setattr(
            cli.httpx,
            "AsyncClient",
            lambda **kwargs: real_client(
                transport=httpx.MockTransport(lambda request: httpx.Response(500)), **kwargs
            ),
        )

        assert cli.main(["replay", str(export_file)]) == 1


def test_no_command(capsys):
    assert cli.main([]) == 1
