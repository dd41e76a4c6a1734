"""nlayernet public API."""

from .core import activations  # noqa: F401
from .core import types  # noqa: F401
from .core.activations import build_activation
from .core.errors import ConfigurationError, UnboundedActivationWarning
from .core.network import Network
from .core.types import NetworkTopology, RunMode, RunResult, StopReason, TrainingCase
from .training.pipelines import load_preset, presets, run_pipeline
from .training.trainer import Trainer

__all__ = [
    "ConfigurationError",
    "Network",
    "NetworkTopology",
    "RunMode",
    "RunResult",
    "StopReason",
    "Trainer",
    "TrainingCase",
    "UnboundedActivationWarning",
    "activations",
    "build_activation",
    "load_preset",
    "presets",
    "run_pipeline",
    "types",
]
