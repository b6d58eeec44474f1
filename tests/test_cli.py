import json

from typer.testing import CliRunner

from etwscan.cli.app import app
from etwscan.target.dbgeng import DbgEngPort
from etwscan.target.snapshot import SnapshotPort

runner = CliRunner()

LOGGER = 0xFFFFC80FA1B20000
NODE = 0xFFFFC80FB0000000
PROC = 0xFFFFC80F12345080


def _snapshot(target, tmp_path):
    target.add_logger(LOGGER, 0x24, "EventLog-System", [(NODE, PROC)])
    target.add_logger(0xFFFFC80FA1B30000, 0x25, "DiagLog")
    target.add_process(PROC, 1312, "svchost.exe")
    return target.port.dump(tmp_path / "snap.json")


def test_layouts_command():
    result = runner.invoke(app, ["layouts"])
    assert result.exit_code == 0
    assert "generic" in result.output
    assert "0x5a8" in result.output


def test_replay_json(target, tmp_path):
    path = _snapshot(target, tmp_path)

    result = runner.invoke(app, ["replay", str(path), "--json"])

    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout[result.stdout.index("{"):])
    assert data["total_sessions"] == 2
    assert data["sessions_with_consumers"] == 1
    consumer = data["sessions"][0]["consumers"][0]
    assert consumer["identity"]["pid"] == 1312
    assert consumer["node_address"] == "0xffffc80fb0000000"


def test_replay_table_and_saved_report(target, tmp_path):
    path = _snapshot(target, tmp_path)
    out = tmp_path / "reports"

    result = runner.invoke(app, ["replay", str(path), "--output-dir", str(out)])

    assert result.exit_code == 0, result.output
    assert "svchost.exe" in result.output
    assert "Total consumers: 1" in result.output
    saved = json.loads((out / "consumers_report.json").read_text())
    assert saved["data"]["total_consumers"] == 1


def test_replay_unknown_layout(target, tmp_path):
    path = _snapshot(target, tmp_path)
    result = runner.invoke(app, ["replay", str(path), "--layout", "win95"])
    assert result.exit_code == 2


def test_replay_missing_snapshot(tmp_path):
    result = runner.invoke(app, ["replay", str(tmp_path / "missing.json")])
    assert result.exit_code == 1


def test_loggers_command(target, tmp_path):
    path = _snapshot(target, tmp_path)
    result = runner.invoke(app, ["loggers", str(path)])
    assert result.exit_code == 0
    assert "EventLog-System" in result.output
    assert "Total: 2 loggers" in result.output


def test_scan_requires_a_target(monkeypatch):
    monkeypatch.delenv("ETWSCAN_CONNECTION", raising=False)
    monkeypatch.delenv("ETWSCAN_DUMP", raising=False)
    result = runner.invoke(app, ["scan"])
    assert result.exit_code == 2


def test_replay_bad_pid_ceiling_env(target, tmp_path, monkeypatch):
    path = _snapshot(target, tmp_path)
    monkeypatch.setenv("ETWSCAN_PID_CEILING", "lots")

    result = runner.invoke(app, ["replay", str(path)])

    assert result.exit_code == 2
    assert "ETWSCAN_PID_CEILING" in result.output


def test_replay_layout_file_not_an_object(target, tmp_path):
    path = _snapshot(target, tmp_path)
    layout_file = tmp_path / "offsets.json"
    layout_file.write_text("[744, 1088]")

    result = runner.invoke(app, ["replay", str(path), "--layout-file", str(layout_file)])

    assert result.exit_code == 2


def test_scan_dump_uses_layout_module(target, tmp_path, monkeypatch):
    path = _snapshot(target, tmp_path)
    layout_file = tmp_path / "checked.json"
    layout_file.write_text(json.dumps({"base": "win11", "module": "ntkrnlmp"}))
    opened = {}

    def fake_open_dump(cls, dump, **kwargs):
        opened.update(kwargs, dump=dump)
        return SnapshotPort.load(path)

    monkeypatch.delenv("ETWSCAN_MODULE", raising=False)
    monkeypatch.setattr(DbgEngPort, "open_dump", classmethod(fake_open_dump))

    result = runner.invoke(
        app, ["scan", "--dump", str(tmp_path / "MEMORY.DMP"), "--layout-file", str(layout_file), "--json"]
    )

    assert result.exit_code == 0, result.output
    assert opened["module"] == "ntkrnlmp"
    assert opened["dump"] == tmp_path / "MEMORY.DMP"
    data = json.loads(result.stdout[result.stdout.index("{"):])
    assert data["total_consumers"] == 1
