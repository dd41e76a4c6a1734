"""Command line entry point for nlayernet runs."""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Iterable

from nlayernet.core.errors import ConfigurationError
from nlayernet.data.config import read_config_file
from nlayernet.training import pipelines

_MODES = ("training", "run_all", "run_single")


def _format_result(result) -> str:
    payload = {
        "mode": result.mode.name.lower(),
        "iterations": result.iterations,
        "average_error": result.average_error,
        "stop_reason": result.stop_reason.value if result.stop_reason else None,
        "outputs": [[float(v) for v in output] for output in result.outputs],
        "metrics": result.metrics_path,
        "manifest": result.manifest_path,
    }
    if result.summary_path:
        payload["summary"] = result.summary_path
    if result.weights_path:
        payload["weights"] = result.weights_path
    return json.dumps(payload, sort_keys=True)


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    preset_names = sorted(pipelines.presets().keys())
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--preset",
        choices=preset_names,
        default="and-2-2-1",
        help="Preset configuration to execute",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="YAML/JSON/legacy text config; replaces the preset when it has all sections, "
        "otherwise it is merged over it",
    )
    parser.add_argument("--mode", choices=_MODES, help="Override the run mode")
    parser.add_argument("--run-case", type=int, help="Case index for run_single mode")
    parser.add_argument(
        "--load-weights", type=Path, help="Start from the weights stored in this file"
    )
    parser.add_argument(
        "--save-weights", type=Path, help="Save the final weights to this file"
    )
    parser.add_argument("--seed", type=int, help="Seed for weight randomisation")
    parser.add_argument("--run-dir", type=Path, help="Directory for run artifacts")
    parser.add_argument(
        "--enable-plots", action="store_true", help="Write error.png to the run directory"
    )
    parser.add_argument(
        "--list-presets", action="store_true", help="List available presets and exit"
    )
    parser.add_argument(
        "--dump-config", type=Path, help="Dump the resolved config to a JSON file"
    )
    return parser.parse_args(argv)


def _merge(base: dict, override: dict) -> dict:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            base[key] = _merge(dict(base[key]), value)
        else:
            base[key] = value
    return base


_CASE_SOURCES = ("cases", "truth_table")


def _drop_inherited_case_source(config: dict, data_override) -> None:
    """Keep only the case source named by the override when it names exactly one."""

    if not isinstance(data_override, dict):
        return
    named = [key for key in _CASE_SOURCES if key in data_override]
    if len(named) != 1:
        return
    for key in _CASE_SOURCES:
        if key not in named:
            config["data"].pop(key, None)


def build_config(args: argparse.Namespace) -> dict:
    config = json.loads(json.dumps(pipelines.load_preset(args.preset)))

    if args.config:
        override = read_config_file(args.config)
        if {"data", "model", "train"} <= set(override.keys()):
            config = json.loads(json.dumps(override))
        else:
            config = _merge(config, override)
            _drop_inherited_case_source(config, override.get("data"))

    model = config.setdefault("model", {})
    train = config.setdefault("train", {})
    if args.mode:
        train["mode"] = args.mode
    if args.run_case is not None:
        train["run_case"] = int(args.run_case)
    if args.load_weights:
        model["load_weights"] = True
        model["weights_in"] = str(args.load_weights)
    if args.save_weights:
        model["save_weights"] = True
        model["weights_out"] = str(args.save_weights)
    if args.seed is not None:
        model["seed"] = int(args.seed)
        model.pop("initial_weights", None)
    if args.run_dir:
        train["run_dir"] = str(args.run_dir)
    if args.enable_plots:
        train["enable_plots"] = True
    return config


def main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(argv)

    if args.list_presets:
        for name in sorted(pipelines.presets().keys()):
            print(name)
        raise SystemExit(0)

    try:
        config = build_config(args)

        if args.dump_config:
            args.dump_config.parent.mkdir(parents=True, exist_ok=True)
            args.dump_config.write_text(json.dumps(config, indent=2))

        result = pipelines.run_pipeline(config)
    except ConfigurationError as exc:
        raise SystemExit(str(exc)) from None

    print(_format_result(result))


if __name__ == "__main__":
    main()
