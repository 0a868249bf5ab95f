from __future__ import annotations

import json

import pytest
import yaml

from ocel_workbench import cli


def test_list_plugins(capsys):
    cli.main(["list-plugins"])
    lines = capsys.readouterr().out.strip().splitlines()
    assert len(lines) == 12
    assert lines[0] == "GenerateOcdg: Generate Ocdg (Generation)"


def test_plugins_validate(capsys):
    cli.main(["plugins", "validate"])
    assert capsys.readouterr().out.strip() == "OK"


def test_plugins_validate_unknown_id():
    with pytest.raises(SystemExit):
        cli.cmd_plugins_validate("teleport")


def test_import_prints_instance_data(capsys, order_log_path):
    cli.main(["import", "--file", str(order_log_path)])
    payload = json.loads(capsys.readouterr().out)
    assert payload["id"] == 1
    assert payload["instancedata"]["Object #"] == 3


def test_run_with_settings_and_export(capsys, monkeypatch, order_log_path, tmp_path):
    monkeypatch.setenv("OCEL_WORKBENCH_CLI_PROGRESS", "1")
    settings = tmp_path / "settings.yaml"
    settings.write_text(
        yaml.safe_dump({"parameters": [{"header": "General", "multichoice:Relations": ["Interaction"]}]}),
        encoding="utf-8",
    )
    out = tmp_path / "graph.gexfocdg"
    cli.main(
        ["run", "--file", str(order_log_path), "--plugin", "GenerateOcdg", "--settings", str(settings), "--out", str(out)]
    )
    lines = capsys.readouterr().out.strip().splitlines()
    assert lines[0] == "[STEP 1/4] Starting Plugin: Generate Ocdg"
    assert lines[-1] == "2"
    assert out.exists()


def test_run_with_json_settings_list(capsys, order_log_path, tmp_path):
    settings = tmp_path / "settings.json"
    settings.write_text(json.dumps([{"header": "General", "dropdown:Frequency": "1D"}]), encoding="utf-8")
    cli.main(["run", "--file", str(order_log_path), "--plugin", "GenerateTimeSeries", "--settings", str(settings)])
    assert capsys.readouterr().out.strip() == "2"


def test_errors_exit_non_zero(capsys, tmp_path):
    path = tmp_path / "table.csv"
    path.write_text("a\n1\n", encoding="utf-8")
    with pytest.raises(SystemExit) as info:
        cli.main(["import", "--file", str(path)])
    assert info.value.code == 1
    assert capsys.readouterr().err.startswith("error: File extension")


def test_serve_refuses_public_host(monkeypatch):
    monkeypatch.delenv("OCEL_WORKBENCH_ALLOW_NETWORK", raising=False)
    with pytest.raises(SystemExit):
        cli.cmd_serve("0.0.0.0", 8000)
