import csv
import json

import numpy as np
import pytest

from nlayernet.core.activations import Sigmoid
from nlayernet.core.network import Network
from nlayernet.core.types import NetworkTopology
from nlayernet.data.weights import save_weights
from nlayernet.reporting.artifacts import file_digest, write_manifest
from nlayernet.reporting.metrics import CsvSink, JsonlSink
from nlayernet.reporting.plots import PlotAdapter
from nlayernet.reporting.summary import compute_auc, read_metrics, write_summary


def test_compute_auc_trapezoid():
    assert compute_auc([]) == 0.0
    assert compute_auc([3.0]) == 0.0
    assert compute_auc([1.0, 3.0]) == pytest.approx(2.0)
    assert compute_auc([0.0, 1.0, 0.0]) == pytest.approx(1.0)


def test_sinks_write_one_row_per_epoch(tmp_path):
    jsonl = JsonlSink(tmp_path / "m.jsonl", seed=4)
    sink = CsvSink(tmp_path / "m.csv")
    for epoch, error in enumerate([0.5, 0.25], start=1):
        jsonl.on_epoch(epoch, {"error": error, "elapsed": 0.1 * epoch})
        sink(epoch, {"error": error, "elapsed": 0.1 * epoch})

    records = read_metrics(tmp_path / "m.jsonl")
    assert records == [
        {"iteration": 1, "error": 0.5, "elapsed": 0.1, "seed": 4},
        {"iteration": 2, "error": 0.25, "elapsed": 0.2, "seed": 4},
    ]
    with (tmp_path / "m.csv").open() as handle:
        rows = list(csv.DictReader(handle))
    assert [row["iteration"] for row in rows] == ["1", "2"]
    assert float(rows[1]["error"]) == 0.25


def test_sink_truncates_previous_file(tmp_path):
    path = tmp_path / "m.jsonl"
    path.write_text('{"iteration": 9}\n')
    JsonlSink(path)
    assert read_metrics(path) == []


def test_write_summary_error_curve(tmp_path):
    metrics = tmp_path / "m.jsonl"
    sink = JsonlSink(metrics)
    for epoch, error in enumerate([0.4, 0.3, 0.35, 0.1], start=1):
        sink.on_epoch(epoch, {"error": error})

    out = write_summary(metrics, tmp_path / "summary.json", tail=2, extra={"mode": "training"})
    summary = json.loads(open(out).read())
    assert summary["records"] == 4
    assert summary["tail_window"] == 2
    assert summary["mode"] == "training"
    error = summary["error"]
    assert error["first"] == 0.4
    assert error["last"] == 0.1
    assert error["min"] == 0.1
    assert error["min_iteration"] == 4
    assert error["max"] == 0.4
    assert error["tail_mean"] == pytest.approx(0.225)
    assert error["tail_auc"] == pytest.approx(0.225)
    assert error["decreasing_fraction"] == pytest.approx(2 / 3)


def test_write_summary_without_metrics(tmp_path):
    out = write_summary(tmp_path / "absent.jsonl", tmp_path / "summary.json", extra={"iterations": 0})
    summary = json.loads(open(out).read())
    assert summary == {"version": 1, "records": 0, "tail_window": 0, "error": {}, "iterations": 0}


def test_manifest_records_weight_digests(tmp_path):
    network = Network(NetworkTopology((2, 2, 1)), Sigmoid())
    network.randomize(-1.0, 1.0, np.random.default_rng(0))
    weights = save_weights(tmp_path / "w.npz", network)

    path = write_manifest(
        tmp_path / "run" / "manifest.json",
        config={"model": {"layers": [2, 2, 1]}},
        network={"layer_sizes": [2, 2, 1], "weights_in": None, "weights_out": weights},
        cases_provenance={"source": "inline", "num_cases": 4},
    )
    manifest = json.loads(open(path).read())
    assert manifest["network"]["weights_out_sha256"] == file_digest(weights)
    assert len(manifest["network"]["weights_out_sha256"]) == 64
    assert manifest["network"]["weights_in_sha256"] is None
    assert manifest["cases"]["num_cases"] == 4
    assert "numpy" in manifest["environment"]


def test_plot_adapter_disabled_writes_nothing(tmp_path):
    plots = PlotAdapter(tmp_path / "run")
    plots.on_epoch(1, {"error": 0.5})
    assert plots.close() == ""
    assert not (tmp_path / "run").exists()


def test_plot_adapter_saves_error_curve(tmp_path):
    plots = PlotAdapter(tmp_path, enable_plots=True, error_threshold=0.01)
    for epoch in range(1, 6):
        plots(epoch, {"error": 1.0 / epoch})
    path = plots.close()
    assert path.endswith("error.png")
    assert (tmp_path / "error.png").stat().st_size > 0
