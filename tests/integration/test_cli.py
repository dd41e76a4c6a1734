import json
from pathlib import Path

import pytest
import yaml

from cli.main import build_config, main, parse_args
from nlayernet.data.config import resolve_config


def _last_json(out: str) -> dict:
    return json.loads(out.strip().splitlines()[-1])


def test_cli_preset_with_override(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    Path("short.yaml").write_text(yaml.safe_dump({"train": {"max_iterations": 25}}))
    main(["--preset", "xor-3-3-1", "--config", "short.yaml", "--run-dir", "runs/xor", "--seed", "3"])
    payload = _last_json(capsys.readouterr().out)
    assert payload["mode"] == "training"
    assert payload["iterations"] == 25
    assert payload["stop_reason"] == "max_iterations"
    assert len(payload["outputs"]) == 4
    run_dir = Path("runs/xor")
    assert (run_dir / "metrics.jsonl").exists()
    assert (run_dir / "manifest.json").exists()
    manifest = json.loads((run_dir / "manifest.json").read_text())
    assert manifest["config"]["model"]["seed"] == 3


def test_cli_train_then_run_single(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    Path("short.json").write_text(json.dumps({"train": {"max_iterations": 10}}))
    main(["--preset", "and-2-2-1", "--config", "short.json", "--run-dir", "train", "--save-weights", "w.npz"])
    trained = _last_json(capsys.readouterr().out)
    assert trained["weights"] == "w.npz"

    main(["--preset", "and-2-2-1", "--mode", "run_single", "--run-case", "3", "--load-weights", "w.npz", "--run-dir", "single"])
    single = _last_json(capsys.readouterr().out)
    assert single["mode"] == "run_single"
    assert single["outputs"] == [trained["outputs"][3]]


def test_cli_list_presets(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["--list-presets"])
    assert excinfo.value.code == 0
    names = capsys.readouterr().out.split()
    assert "and-2-2-1" in names and "xor-3-3-1" in names


def test_cli_dump_config(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    Path("short.yaml").write_text(yaml.safe_dump({"train": {"max_iterations": 2}}))
    main(["--config", "short.yaml", "--run-dir", "run", "--dump-config", "out/config.json", "--enable-plots"])
    dumped = json.loads(Path("out/config.json").read_text())
    assert dumped["train"]["max_iterations"] == 2
    assert dumped["train"]["enable_plots"] is True
    assert dumped["model"]["layers"] == [2, 2, 1]


def test_cli_configuration_error_exits_with_message(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    Path("bad.cfg").write_text("Network configuration: 2-2-1\nWobble: 3\n")
    with pytest.raises(SystemExit) as excinfo:
        main(["--config", "bad.cfg"])
    assert excinfo.value.code == 'File "bad.cfg", line 2 - Invalid configuration parameter "wobble"'


def test_cli_truth_table_override_replaces_preset_cases(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    Path("or.txt").write_text("4-2-1\n0 0\n0 1\n1 0\n1 1\n0\n1\n1\n1\n")
    Path("or.yaml").write_text(yaml.safe_dump({"data": {"num_cases": 4, "truth_table": "or.txt"}, "train": {"max_iterations": 3}}))

    config = build_config(parse_args(["--config", "or.yaml"]))
    assert "cases" not in config["data"]
    resolved = resolve_config(config)
    assert resolved.inline_cases is None
    assert resolved.truth_table == "or.txt"

    main(["--config", "or.yaml", "--run-dir", "or-run"])
    manifest = json.loads(Path("or-run/manifest.json").read_text())
    assert manifest["cases"]["source"] == "or.txt"


def test_cli_seed_replaces_preset_initial_weights():
    config = build_config(parse_args(["--preset", "and-2-2-1", "--seed", "5"]))
    assert "initial_weights" not in config["model"]
    assert "initial_weights" in build_config(parse_args(["--preset", "and-2-2-1"]))["model"]
