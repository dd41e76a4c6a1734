"""Run configuration: file loading, legacy text parsing and validation."""

from __future__ import annotations

import json
import re
import warnings
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Sequence, Tuple

import numpy as np
import yaml

from ..core.activations import ActivationFunction, build_activation, normalise_name
from ..core.errors import ConfigurationError
from ..core.types import NetworkTopology, RunMode

SECTIONS = ("data", "model", "train")

DEFAULTS: Mapping[str, Mapping[str, Any]] = {
    "model": {
        "activation": "sigmoid",
        "random_range": [-1.0, 1.0],
        "seed": None,
        "initial_weights": None,
        "load_weights": False,
        "weights_in": "weights.npz",
        "weights_out": "weights.npz",
        "save_weights": False,
    },
    "data": {
        "num_cases": 1,
        "truth_table": "truth_table.txt",
    },
    "train": {
        "mode": 0,
        "run_case": 0,
        "lambda": 0.0,
        "error_threshold": 0.0,
        "max_iterations": 0,
        "keep_alive_interval": 0,
        "save_weights_interval": 0,
        "eta_interval": 0,
        "decimal_precision": 17,
        "enable_plots": False,
    },
}

_LEGACY_SPLIT = re.compile(r"[:,]")


@dataclass(frozen=True)
class RunConfig:
    """Validated configuration for one run."""

    topology: NetworkTopology
    activation: ActivationFunction
    mode: RunMode = RunMode.TRAINING
    num_cases: int = 1
    truth_table: str = "truth_table.txt"
    inline_cases: Sequence[Mapping[str, Any]] | None = None
    random_range: Tuple[float, float] = (-1.0, 1.0)
    seed: int | None = None
    initial_weights: Tuple[np.ndarray, ...] | None = field(default=None, repr=False, compare=False)
    load_weights: bool = False
    weights_in: str = "weights.npz"
    weights_out: str = "weights.npz"
    save_weights: bool = False
    run_case: int = 0
    learning_rate: float = 0.0
    error_threshold: float = 0.0
    max_iterations: int = 0
    keep_alive_interval: int = 0
    save_weights_interval: int = 0
    eta_interval: int = 0
    decimal_precision: int = 17
    run_dir: str | None = None
    enable_plots: bool = False
    raw: Mapping[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def saves_weights(self) -> bool:
        return self.save_weights or self.save_weights_interval > 0

    @property
    def with_outputs(self) -> bool:
        return self.mode is RunMode.TRAINING


# ----------------------------------------------------------------------
# File loading


def read_config_file(path: str | Path) -> Dict[str, Any]:
    """Load a YAML, JSON or legacy ``Key: value`` configuration file into a mapping."""

    path = Path(path)
    if not path.exists():
        raise ConfigurationError("Failed to open config file", path=path)
    text = path.read_text()
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as exc:
            line = None
            mark = getattr(exc, "problem_mark", None)
            if mark is not None:
                line = mark.line + 1
            raise ConfigurationError(f"Invalid YAML: {exc}", path=path, line=line) from None
    elif suffix == ".json":
        try:
            data = json.loads(text or "{}")
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Invalid JSON: {exc.msg}", path=path, line=exc.lineno) from None
    else:
        data = parse_legacy_config(text, path=path)
    if not isinstance(data, Mapping):
        raise ConfigurationError("Configuration must decode to a mapping", path=path)
    return dict(data)


def _to_int(value: str, what: str, path: str | Path | None, line: int) -> int:
    try:
        return int(Decimal(value.strip()))
    except (InvalidOperation, ValueError):
        raise ConfigurationError(f"Poorly formatted integer for {what}: {value}", path=path, line=line) from None


def _to_float(value: str, what: str, path: str | Path | None, line: int) -> float:
    try:
        return float(value.strip())
    except ValueError:
        raise ConfigurationError(f"Poorly formatted double for {what}: {value}", path=path, line=line) from None


def _to_bool(value: str, what: str, path: str | Path | None, line: int) -> bool:
    return value.strip().lower() == "true"


def _to_str(value: str, what: str, path: str | Path | None, line: int) -> str:
    return value.strip()


_Converter = Callable[[str, str, "str | Path | None", int], Any]

_LEGACY_KEYS: Dict[str, Tuple[str, str, _Converter]] = {
    "network configuration": ("model", "layers", _to_str),
    "network mode": ("train", "mode", _to_int),
    "number of cases": ("data", "num_cases", _to_int),
    "number of training cases": ("data", "num_cases", _to_int),
    "max training iterations": ("train", "max_iterations", _to_int),
    "lambda": ("train", "lambda", _to_float),
    "error threshold": ("train", "error_threshold", _to_float),
    "truth table file": ("data", "truth_table", _to_str),
    "load weights": ("model", "load_weights", _to_bool),
    "save weights": ("model", "save_weights", _to_bool),
    "weights file in": ("model", "weights_in", _to_str),
    "weights file out": ("model", "weights_out", _to_str),
    "run case number": ("train", "run_case", _to_int),
    "keep alive interval": ("train", "keep_alive_interval", _to_int),
    "decimal precision": ("train", "decimal_precision", _to_int),
    "save weights interval": ("train", "save_weights_interval", _to_int),
    "eta interval": ("train", "eta_interval", _to_int),
    "random seed": ("model", "seed", _to_int),
}


def _legacy_activation(parts: List[str], path: str | Path | None, line: int) -> Dict[str, Any]:
    name = parts[1].strip()
    key = normalise_name(name)
    args = [part.strip() for part in parts[2:]]
    spec: Dict[str, Any] = {"name": name}
    required: Tuple[str, ...] = ()
    if key == "linear":
        required = ("m", "b")
    elif key == "leaky_relu":
        required = ("alpha",)
    for idx, param in enumerate(required):
        if idx >= len(args) or not args[idx]:
            raise ConfigurationError(
                f"Missing argument for {name} activation function, {param}", path=path, line=line
            )
        spec[param] = _to_float(args[idx], f"{name} activation function, {param}", path, line)
    return spec


def parse_legacy_config(text: str, *, path: str | Path | None = None) -> Dict[str, Any]:
    """Parse the line oriented ``Key: value`` format.

    ``#`` lines and blank lines are skipped and a line reading ``EOF`` ends the
    file. Lines without a colon are ignored with a warning.
    """

    config: Dict[str, Any] = {section: {} for section in SECTIONS}
    low: float | None = None
    high: float | None = None
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if line.lower() == "eof":
            break
        if not line or line.startswith("#"):
            continue
        if ":" not in line:
            warnings.warn(f'File "{path}" - Ignoring garbage line: {line}', stacklevel=2)
            continue
        parts = _LEGACY_SPLIT.split(line)
        key = parts[0].strip().lower()
        value = parts[1].strip() if len(parts) > 1 else ""
        if not value:
            raise ConfigurationError(f"Missing key or value in config file: {line}", path=path, line=lineno)
        if key == "activation function":
            config["model"]["activation"] = _legacy_activation(parts, path, lineno)
        elif key == "random range lower bound":
            low = _to_float(value, "random number range lower bound", path, lineno)
        elif key == "random range upper bound":
            high = _to_float(value, "random number range upper bound", path, lineno)
        elif key in _LEGACY_KEYS:
            section, name, convert = _LEGACY_KEYS[key]
            config[section][name] = convert(value, key.title(), path, lineno)
        else:
            raise ConfigurationError(f'Invalid configuration parameter "{key}"', path=path, line=lineno)

    if low is not None or high is not None:
        default_low, default_high = DEFAULTS["model"]["random_range"]
        config["model"]["random_range"] = [
            low if low is not None else default_low,
            high if high is not None else default_high,
        ]
    return {section: values for section, values in config.items() if values}


# ----------------------------------------------------------------------
# Validation


def _section(config: Mapping[str, Any], name: str) -> Dict[str, Any]:
    merged = dict(DEFAULTS[name])
    values = config.get(name) or {}
    if not isinstance(values, Mapping):
        raise ConfigurationError(f"Config section {name!r} must be a mapping")
    merged.update(values)
    return merged


def _int(values: Mapping[str, Any], key: str, *, minimum: int | None = None) -> int:
    value = values.get(key)
    if isinstance(value, bool) or value is None:
        raise ConfigurationError(f"{key} must be an integer, got {value!r}")
    try:
        result = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{key} must be an integer, got {value!r}") from None
    if result != value and not isinstance(value, str):
        raise ConfigurationError(f"{key} must be an integer, got {value!r}")
    if minimum is not None and result < minimum:
        raise ConfigurationError(f"{key} must be >= {minimum}, got {result}")
    return result


def _float(values: Mapping[str, Any], key: str) -> float:
    value = values.get(key)
    if isinstance(value, bool) or value is None:
        raise ConfigurationError(f"{key} must be a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{key} must be a number, got {value!r}") from None


def _topology(value: Any) -> NetworkTopology:
    if value is None:
        raise ConfigurationError("model.layers is required")
    if isinstance(value, str):
        return NetworkTopology.parse(value)
    if isinstance(value, Sequence):
        return NetworkTopology(tuple(value))
    raise ConfigurationError(f"Invalid network configuration: {value!r}")


def _initial_weights(value: Any, topology: NetworkTopology) -> Tuple[np.ndarray, ...] | None:
    if value is None:
        return None
    shapes = topology.weight_shapes
    if not isinstance(value, Sequence) or isinstance(value, str) or len(value) != len(shapes):
        raise ConfigurationError(f"model.initial_weights must hold {len(shapes)} matrices for {topology}")
    matrices = []
    for idx, (rows, shape) in enumerate(zip(value, shapes)):
        try:
            matrix = np.array(rows, dtype=np.float64)
        except (TypeError, ValueError):
            raise ConfigurationError(f"model.initial_weights[{idx}] is not a numeric matrix") from None
        if matrix.shape != shape:
            raise ConfigurationError(
                f"model.initial_weights[{idx}] has shape {matrix.shape}, expected {shape}"
            )
        matrices.append(matrix)
    return tuple(matrices)


def _random_range(value: Any) -> Tuple[float, float]:
    if not isinstance(value, Sequence) or isinstance(value, str) or len(value) != 2:
        raise ConfigurationError(f"model.random_range must hold two numbers, got {value!r}")
    try:
        low, high = (float(v) for v in value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"model.random_range must hold two numbers, got {value!r}") from None
    return low, high


def resolve_config(config: Mapping[str, Any]) -> RunConfig:
    """Validate a ``data``/``model``/``train`` mapping and build a :class:`RunConfig`."""

    model = _section(config, "model")
    data = _section(config, "data")
    train = _section(config, "train")

    topology = _topology(model.get("layers"))
    seed = model.get("seed")
    activation_spec = model.get("activation")
    if isinstance(activation_spec, Mapping) and seed is not None:
        activation_spec = {"seed": seed, **activation_spec}
    elif isinstance(activation_spec, str) and seed is not None:
        activation_spec = {"name": activation_spec, "seed": seed}
    activation = build_activation(activation_spec)  # type: ignore[arg-type]

    num_cases = _int(data, "num_cases", minimum=1)
    inline = data.get("cases")
    if inline is not None:
        if not isinstance(inline, Sequence) or isinstance(inline, str):
            raise ConfigurationError("data.cases must be a list of {inputs, outputs} entries")
        inline = list(inline)
        if (config.get("data") or {}).get("truth_table"):
            raise ConfigurationError("data.cases and data.truth_table are mutually exclusive, give one case source")

    mode = RunMode.parse(train.get("mode"))
    run_case = _int(train, "run_case", minimum=0)
    if mode is RunMode.RUN_SINGLE and run_case >= num_cases:
        raise ConfigurationError(
            f"Case {run_case} in config exceeds total number of cases: {num_cases}"
        )

    load_weights = bool(model.get("load_weights"))
    weights_in = model.get("weights_in")
    if load_weights and not weights_in:
        raise ConfigurationError("model.load_weights requires model.weights_in")

    run_dir = train.get("run_dir")
    return RunConfig(
        topology=topology,
        activation=activation,
        mode=mode,
        num_cases=num_cases,
        truth_table=str(data.get("truth_table") or ""),
        inline_cases=inline,
        random_range=_random_range(model.get("random_range")),
        seed=None if seed is None else _int(model, "seed"),
        initial_weights=_initial_weights(model.get("initial_weights"), topology),
        load_weights=load_weights,
        weights_in=str(weights_in or ""),
        weights_out=str(model.get("weights_out") or ""),
        save_weights=bool(model.get("save_weights")),
        run_case=run_case,
        learning_rate=_float(train, "lambda"),
        error_threshold=_float(train, "error_threshold"),
        max_iterations=_int(train, "max_iterations", minimum=0),
        keep_alive_interval=_int(train, "keep_alive_interval", minimum=0),
        save_weights_interval=_int(train, "save_weights_interval", minimum=0),
        eta_interval=_int(train, "eta_interval", minimum=0),
        decimal_precision=_int(train, "decimal_precision", minimum=0),
        run_dir=str(run_dir) if run_dir else None,
        enable_plots=bool(train.get("enable_plots")),
        raw=json.loads(json.dumps(config, default=str)),
    )


def load_config(path: str | Path) -> RunConfig:
    """Read and validate ``path``, attaching the file name to any error."""

    data = read_config_file(path)
    try:
        return resolve_config(data)
    except ConfigurationError as exc:
        if exc.path is not None:
            raise
        raise ConfigurationError(exc.message, path=path) from None


__all__ = [
    "DEFAULTS",
    "RunConfig",
    "load_config",
    "parse_legacy_config",
    "read_config_file",
    "resolve_config",
]
