"""Run assembly for nlayernet: presets, run modes and artifacts."""

from __future__ import annotations

import json
import time
import warnings
from copy import deepcopy
from pathlib import Path
from typing import Callable, Dict, List, Mapping

import numpy as np

from ..core.errors import ConfigurationError, UnboundedActivationWarning
from ..core.network import Network
from ..core.types import Array, RunMode, RunResult, StopReason, TrainingCase
from ..data.config import RunConfig, read_config_file, resolve_config
from ..data.truth_table import cases_from_config, load_truth_table
from ..data.weights import load_weights, save_weights, stored_activation
from ..reporting.artifacts import write_manifest
from ..reporting.console import RULE, UNBOUNDED_WARNING, ConsoleReporter
from ..reporting.metrics import CsvSink, JsonlSink
from ..reporting.plots import PlotAdapter
from ..reporting.summary import write_summary
from .monitor import TrainingMonitor
from .trainer import Trainer

_AND_CASES = [
    {"inputs": [0, 0], "outputs": [0]},
    {"inputs": [0, 1], "outputs": [0]},
    {"inputs": [1, 0], "outputs": [0]},
    {"inputs": [1, 1], "outputs": [1]},
]

# random starts for AND often settle in a local minimum near 0.031
_AND_START = [[[0.5, -0.5], [0.5, -0.5]], [[1.0], [-1.0]]]

# third input is a constant bias unit
_XOR_CASES = [
    {"inputs": [0, 0, 1], "outputs": [0]},
    {"inputs": [0, 1, 1], "outputs": [1]},
    {"inputs": [1, 0, 1], "outputs": [1]},
    {"inputs": [1, 1, 1], "outputs": [0]},
]

_PRESETS: Dict[str, Mapping[str, object]] = {
    "and-2-2-1": {
        "data": {"num_cases": 4, "cases": _AND_CASES},
        "model": {
            "layers": [2, 2, 1],
            "activation": "sigmoid",
            "initial_weights": _AND_START,
            "weights_out": "runs/and-2-2-1/weights.npz",
        },
        "train": {
            "mode": "training",
            "lambda": 0.3,
            "error_threshold": 2.0e-4,
            "max_iterations": 100000,
            "keep_alive_interval": 10000,
            "eta_interval": 10000,
            "decimal_precision": 6,
            "run_dir": "runs/and-2-2-1",
            "enable_plots": False,
        },
    },
    "xor-3-3-1": {
        "data": {"num_cases": 4, "cases": _XOR_CASES},
        "model": {
            "layers": [3, 3, 1],
            "activation": "sigmoid",
            "random_range": [-1.5, 1.5],
            "seed": 0,
            "weights_out": "runs/xor-3-3-1/weights.npz",
        },
        "train": {
            "mode": "training",
            "lambda": 0.3,
            "error_threshold": 2.0e-4,
            "max_iterations": 100000,
            "keep_alive_interval": 10000,
            "eta_interval": 10000,
            "decimal_precision": 6,
            "run_dir": "runs/xor-3-3-1",
            "enable_plots": False,
        },
    },
}

_PRESET_DIR = Path(__file__).resolve().parents[2] / "configs" / "presets"
_FILE_PRESETS_CACHE: Dict[str, Mapping[str, object]] | None = None


def _file_presets() -> Dict[str, Mapping[str, object]]:
    global _FILE_PRESETS_CACHE
    if _FILE_PRESETS_CACHE is None:
        found: Dict[str, Mapping[str, object]] = {}
        if _PRESET_DIR.exists():
            for file in sorted(_PRESET_DIR.iterdir()):
                if file.suffix.lower() not in {".yaml", ".yml", ".json"}:
                    continue
                data = read_config_file(file)
                missing = {"data", "model", "train"} - set(data)
                if missing:
                    missing_str = ", ".join(sorted(missing))
                    raise ConfigurationError(f"Preset is missing required sections: {missing_str}", path=file)
                found[file.stem] = json.loads(json.dumps(data))
        _FILE_PRESETS_CACHE = found
    return {name: deepcopy(cfg) for name, cfg in _FILE_PRESETS_CACHE.items()}


def presets() -> Mapping[str, Mapping[str, object]]:
    combined: Dict[str, Mapping[str, object]] = {}
    combined.update({name: deepcopy(cfg) for name, cfg in _PRESETS.items()})
    combined.update(_file_presets())
    return combined


def load_preset(name: str) -> Dict[str, object]:
    file_overrides = _file_presets()
    if name in file_overrides:
        return dict(file_overrides[name])
    try:
        return deepcopy(dict(_PRESETS[name]))
    except KeyError:
        raise KeyError(f"Unknown preset: {name}") from None


# ----------------------------------------------------------------------
# Running


def run_pipeline(
    config: Mapping[str, object] | RunConfig,
    *,
    reporter: ConsoleReporter | None = None,
    clock: Callable[[], float] = time.perf_counter,
) -> RunResult:
    """Execute one run in the configured mode and write its artifacts."""

    run_config = config if isinstance(config, RunConfig) else resolve_config(config)
    reporter = reporter or ConsoleReporter(run_config.decimal_precision)
    started = clock()

    _echo_config(run_config, reporter)
    if not run_config.activation.bounded:
        warnings.warn(UnboundedActivationWarning(UNBOUNDED_WARNING), stacklevel=2)

    cases, provenance = _load_cases(run_config)
    network = _build_network(run_config)
    run_dir = _resolve_run_dir(run_config)
    run_dir.mkdir(parents=True, exist_ok=True)

    jsonl = JsonlSink(run_dir / "metrics.jsonl", seed=run_config.seed)
    csv_sink = CsvSink(run_dir / "metrics.csv")
    plots = PlotAdapter(run_dir, run_config.enable_plots, error_threshold=run_config.error_threshold)

    iterations = 0
    average_error: float | None = None
    stop_reason: StopReason | None = None
    mode = run_config.mode

    if mode is RunMode.TRAINING:
        monitor = TrainingMonitor(
            network,
            error_threshold=run_config.error_threshold,
            max_iterations=run_config.max_iterations,
            keep_alive_interval=run_config.keep_alive_interval,
            save_weights_interval=run_config.save_weights_interval,
            eta_interval=run_config.eta_interval,
            weights_out=run_config.weights_out,
            reporter=reporter,
            clock=clock,
        )
        trainer = Trainer(
            network,
            cases,
            learning_rate=run_config.learning_rate,
            error_threshold=run_config.error_threshold,
            max_iterations=run_config.max_iterations,
            callbacks=[monitor, jsonl, csv_sink, plots],
            clock=clock,
        )
        state = trainer.run()
        iterations = state.iterations
        average_error = state.average_error
        stop_reason = state.stop_reason

    selected = [run_config.run_case] if mode is RunMode.RUN_SINGLE else range(len(cases))
    outputs: List[Array] = [network.propagate(cases[idx].inputs) for idx in selected]

    weights_path = ""
    if run_config.saves_weights:
        reporter.saving_weights(run_config.weights_out)
        weights_path = save_weights(run_config.weights_out, network)

    reporter.line(RULE)
    if mode is RunMode.TRAINING:
        reporter.report_training(
            stop_reason=stop_reason,
            iterations=iterations,
            error=float(average_error),  # type: ignore[arg-type]
        )
    for idx, output in zip(selected, outputs):
        expected = cases[idx].targets if mode is RunMode.TRAINING else None
        reporter.report_case(idx, output, expected)
    reporter.finish(clock() - started)

    plots.close()
    manifest = write_manifest(
        run_dir / "manifest.json",
        config=run_config.raw,
        network={
            "layer_sizes": list(network.layer_sizes),
            "activation": run_config.activation.describe(),
            "parameters": network.parameter_count(),
            "weights_in": run_config.weights_in if run_config.load_weights else None,
            "initial_weights": run_config.initial_weights is not None and not run_config.load_weights,
            "weights_out": weights_path or None,
        },
        cases_provenance=provenance,
    )
    summary_path = write_summary(
        jsonl.path,
        run_dir / "summary.json",
        extra={
            "mode": mode.name.lower(),
            "iterations": iterations,
            "average_error": average_error,
            "stop_reason": stop_reason.value if stop_reason else None,
        },
    )

    return RunResult(
        mode=mode,
        outputs=outputs,
        iterations=iterations,
        average_error=average_error,
        stop_reason=stop_reason,
        metrics_path=str(jsonl.path),
        manifest_path=manifest,
        summary_path=summary_path,
        weights_path=weights_path,
    )


def _echo_config(config: RunConfig, reporter: ConsoleReporter) -> None:
    reporter.startup(
        topology=str(config.topology),
        activation=config.activation.label,
        bounded=config.activation.bounded,
        mode=int(config.mode),
        mode_label=config.mode.label,
        num_cases=config.num_cases,
        run_case=config.run_case,
        max_iterations=config.max_iterations,
        learning_rate=config.learning_rate,
        error_threshold=config.error_threshold,
        keep_alive_interval=config.keep_alive_interval,
        save_weights_interval=config.save_weights_interval,
        eta_interval=config.eta_interval,
        truth_table="inline cases" if config.inline_cases is not None else config.truth_table,
        weights_in=config.weights_in if config.load_weights else None,
        initial_weights=config.initial_weights is not None,
        random_range=config.random_range,
        weights_out=config.weights_out if config.saves_weights else None,
    )


def _load_cases(config: RunConfig) -> tuple[List[TrainingCase], Mapping[str, object]]:
    topology = config.topology
    if config.inline_cases is not None:
        cases = cases_from_config(
            config.inline_cases,
            num_cases=config.num_cases,
            num_inputs=topology.num_inputs,
            num_outputs=topology.num_outputs,
            with_outputs=config.with_outputs,
        )
        source = "inline"
    else:
        cases = load_truth_table(
            config.truth_table,
            num_cases=config.num_cases,
            num_inputs=topology.num_inputs,
            num_outputs=topology.num_outputs,
            with_outputs=config.with_outputs,
        )
        source = str(config.truth_table)
    provenance = {"source": source, "num_cases": len(cases), "with_outputs": config.with_outputs}
    return cases, provenance


def _build_network(config: RunConfig) -> Network:
    network = Network(config.topology, config.activation)
    if config.load_weights:
        network.load_state_dict(load_weights(config.weights_in, config.topology))
        label = stored_activation(config.weights_in)
        if label and label != config.activation.label:
            warnings.warn(
                f"Weights in {config.weights_in} were saved with activation {label!r}, "
                f"running with {config.activation.label!r}",
                stacklevel=3,
            )
    elif config.initial_weights is not None:
        network.set_weights(config.initial_weights)
    else:
        low, high = config.random_range
        network.randomize(low, high, np.random.default_rng(config.seed))
    return network


def _resolve_run_dir(config: RunConfig) -> Path:
    if config.run_dir:
        return Path(config.run_dir)
    timestamp = time.strftime("%Y%m%d-%H%M%S")
    return Path("runs") / timestamp / str(config.topology)


__all__ = ["load_preset", "presets", "run_pipeline"]
