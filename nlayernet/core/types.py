"""Core typing contracts for nlayernet."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import List, Sequence, Tuple

import numpy as np

from .errors import ConfigurationError

Array = np.ndarray

MIN_LAYERS = 3


class RunMode(IntEnum):
    """What the network does once it is configured."""

    TRAINING = 0
    RUN_ALL = 1
    RUN_SINGLE = 2

    @classmethod
    def parse(cls, value: object) -> "RunMode":
        if isinstance(value, RunMode):
            return value
        if isinstance(value, str):
            key = value.strip().lower().replace("-", "_").replace(" ", "_")
            if key.isdigit():
                return cls.parse(int(key))
            for mode in cls:
                if mode.name.lower() == key:
                    return mode
            raise ConfigurationError(f"Unknown network mode: {value!r}")
        try:
            return cls(int(value))  # type: ignore[arg-type]
        except (TypeError, ValueError):
            raise ConfigurationError(f"Unknown network mode: {value!r}") from None

    @property
    def label(self) -> str:
        return {
            RunMode.TRAINING: "Training",
            RunMode.RUN_ALL: "Run All",
            RunMode.RUN_SINGLE: "Run Single",
        }[self]


class StopReason(str, Enum):
    """Why the training loop ended."""

    MAX_ITERATIONS = "max_iterations"
    ERROR_THRESHOLD = "error_threshold"
    NON_FINITE_ERROR = "non_finite_error"


@dataclass(frozen=True)
class NetworkTopology:
    """Validated layer sizes ``[n0, n1, ..., nL]``.

    Layer 0 is the input layer, layer ``L`` the output layer and everything in
    between is hidden. At least one hidden layer is required.
    """

    layer_sizes: Tuple[int, ...]

    def __post_init__(self) -> None:
        sizes = tuple(self.layer_sizes)
        if len(sizes) < MIN_LAYERS:
            raise ConfigurationError(
                f"Network requires a minimum of {MIN_LAYERS} activation layers, got {len(sizes)}"
            )
        checked: list[int] = []
        for size in sizes:
            if isinstance(size, bool) or int(size) != size:
                raise ConfigurationError(f"Layer sizes must be integers, got {sizes!r}")
            if int(size) <= 0:
                raise ConfigurationError(f"Invalid network configuration, layer sizes: {sizes!r}")
            checked.append(int(size))
        object.__setattr__(self, "layer_sizes", tuple(checked))

    @classmethod
    def parse(cls, text: str) -> "NetworkTopology":
        """Parse the dash separated form, e.g. ``"2-5-3-1"``."""

        parts = [part.strip() for part in str(text).split("-")]
        try:
            sizes = tuple(int(part) for part in parts)
        except ValueError:
            raise ConfigurationError(f"Invalid network configuration parameters. Parsed: {text}") from None
        return cls(sizes)

    @property
    def num_layers(self) -> int:
        return len(self.layer_sizes)

    @property
    def output_layer(self) -> int:
        return len(self.layer_sizes) - 1

    @property
    def num_inputs(self) -> int:
        return self.layer_sizes[0]

    @property
    def num_outputs(self) -> int:
        return self.layer_sizes[-1]

    @property
    def weight_shapes(self) -> List[Tuple[int, int]]:
        sizes = self.layer_sizes
        return [(sizes[n], sizes[n + 1]) for n in range(len(sizes) - 1)]

    def parameter_count(self) -> int:
        return int(sum(rows * cols for rows, cols in self.weight_shapes))

    def __str__(self) -> str:
        return "-".join(str(size) for size in self.layer_sizes)


@dataclass(frozen=True)
class TrainingCase:
    """One truth-table row. ``targets`` is ``None`` for inference-only tables."""

    inputs: Array
    targets: Array | None = None


@dataclass
class TrainingState:
    """Mutable progress record of a training run."""

    iterations: int = 0
    average_error: float = math.inf
    stop_reason: StopReason | None = None
    history: List[float] = field(default_factory=list)

    @property
    def done(self) -> bool:
        return self.stop_reason is not None


@dataclass(frozen=True)
class RunResult:
    """Summary returned by :func:`nlayernet.training.pipelines.run_pipeline`."""

    mode: RunMode
    outputs: Sequence[Array]
    iterations: int = 0
    average_error: float | None = None
    stop_reason: StopReason | None = None
    metrics_path: str = ""
    manifest_path: str = ""
    summary_path: str = ""
    weights_path: str = ""
