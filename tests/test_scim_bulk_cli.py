import json
import os
from types import SimpleNamespace

import pytest

import scripts.scim_bulk as cli
from gristctl.core.scim_bulk import BULK_REQUEST_SCHEMA


@pytest.fixture(autouse=True)
def grist_env(monkeypatch, grist_config):
    """Never read ~/.gristctl or real credentials."""
    monkeypatch.setattr(cli, "load_settings", lambda config_file=None, **overrides: grist_config)


@pytest.fixture()
def fake_client(monkeypatch, transport):
    """Swap GristClient for the fake transport and remember constructor args."""
    created = SimpleNamespace(args=None)

    def factory(url, token, timeout=None):
        created.args = (url, token, timeout)
        transport.test_connection = lambda: created.reachable
        return transport

    created.reachable = True
    monkeypatch.setattr(cli, "GristClient", factory)
    return created


def write_envelope(tmp_path, payload):
    path = tmp_path / "bulk.json"
    path.write_text(payload if isinstance(payload, str) else json.dumps(payload))
    return path


def test_run_prints_bulk_response(tmp_path, capsys, fake_client, transport, make_response):
    transport.responses.append(make_response(201, {"id": "u1"}))
    path = write_envelope(tmp_path, {
        "schemas": [BULK_REQUEST_SCHEMA],
        "Operations": [{"method": "POST", "path": "/Users", "bulkId": "b1", "data": {"userName": "u"}}],
    })

    exit_code = cli.main(["run", str(path)])

    out = json.loads(capsys.readouterr().out)
    assert exit_code == 0
    assert out["Operations"] == [{"method": "POST", "bulkId": "b1", "status": "201", "response": {"id": "u1"}}]
    assert fake_client.args == ("https://grist.test", "test-token", 5)


def test_run_envelope_error_exits_1(tmp_path, capsys, fake_client, transport):
    path = write_envelope(tmp_path, "{invalid json}")

    exit_code = cli.main(["run", str(path)])

    out = json.loads(capsys.readouterr().out)
    assert exit_code == 1
    assert [op["status"] for op in out["Operations"]] == ["400"]
    assert transport.calls == []


def test_run_reads_stdin(monkeypatch, capsys, fake_client, transport):
    import io
    monkeypatch.setattr("sys.stdin", io.StringIO(json.dumps({"schemas": [BULK_REQUEST_SCHEMA], "Operations": []})))

    exit_code = cli.main(["run", "-"])

    assert exit_code == 0
    assert json.loads(capsys.readouterr().out)["Operations"] == []


def test_run_missing_file(tmp_path, capsys, fake_client):
    exit_code = cli.main(["run", str(tmp_path / "nope.json")])

    assert exit_code == 1
    assert "[run] Error" in capsys.readouterr().err


def test_run_undecodable_file(tmp_path, capsys, fake_client, transport):
    path = tmp_path / "bulk.json"
    path.write_bytes(b'{"schemas": ["\xff\xfe"]}')

    exit_code = cli.main(["run", str(path)])

    captured = capsys.readouterr()
    assert exit_code == 1
    assert "[run] Error" in captured.err
    assert captured.out == ""
    assert transport.calls == []


def test_url_and_token_flags_passed_to_settings(monkeypatch, grist_config, fake_client):
    monkeypatch.delenv("GRIST_URL", raising=False)
    monkeypatch.delenv("GRIST_TOKEN", raising=False)
    seen = {}

    def capture(config_file=None, **overrides):
        seen.update(overrides, config_file=config_file)
        return grist_config

    monkeypatch.setattr(cli, "load_settings", capture)

    assert cli.main(["--url", "https://other.test", "--token", "cli-token", "ping"]) == 0
    assert seen == {"config_file": None, "grist_url": "https://other.test", "grist_token": "cli-token"}
    assert "GRIST_URL" not in os.environ
    assert "GRIST_TOKEN" not in os.environ


def test_ping(capsys, fake_client):
    assert cli.main(["ping"]) == 0
    fake_client.reachable = False
    assert cli.main(["ping"]) == 1


def test_missing_configuration_aborts(monkeypatch, fake_client):
    def fail(config_file=None, **overrides):
        raise RuntimeError("GRIST_URL is required.")

    monkeypatch.setattr(cli, "load_settings", fail)

    with pytest.raises(SystemExit):
        cli.main(["ping"])
    assert fake_client.args is None


def test_no_command_prints_help(capsys):
    assert cli.main([]) == 0
    assert "usage" in capsys.readouterr().out
