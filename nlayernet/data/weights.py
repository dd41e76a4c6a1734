"""Weights files: ``.npz`` archives of the per-layer matrices."""

from __future__ import annotations

from pathlib import Path
from typing import Dict

import numpy as np

from ..core.errors import ConfigurationError
from ..core.network import Network
from ..core.types import Array, NetworkTopology


def checkpoint_path(weights_out: str | Path, iteration: int) -> Path:
    """``iter{N}_{name}`` beside ``weights_out``."""

    target = Path(weights_out)
    return target.with_name(f"iter{int(iteration)}_{target.name}")


def save_weights(path: str | Path, network: Network) -> str:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = network.state_dict()
    with path.open("wb") as handle:
        np.savez_compressed(
            handle,
            layer_sizes=np.asarray(network.layer_sizes, dtype=np.int64),
            activation=np.asarray(network.activation.label),
            **payload,
        )
    return str(path)


def load_weights(path: str | Path, topology: NetworkTopology) -> Dict[str, Array]:
    """Read the ``W0..`` matrices stored at ``path``, checking them against ``topology``.

    The result is a state dict for :meth:`Network.load_state_dict`.
    """

    path = Path(path)
    if not path.exists():
        raise ConfigurationError("Weights file not found", path=path)
    try:
        archive = np.load(path, allow_pickle=False)
    except (OSError, ValueError) as exc:
        raise ConfigurationError(f"Unable to read weights: {exc}", path=path) from None
    with archive:
        if "layer_sizes" not in archive.files:
            raise ConfigurationError("Missing layer_sizes entry", path=path)
        stored = tuple(int(size) for size in archive["layer_sizes"])
        if stored != topology.layer_sizes:
            raise ConfigurationError(
                f"Network configuration {'-'.join(map(str, stored))} does not match {topology}",
                path=path,
            )
        state: Dict[str, Array] = {}
        for idx, shape in enumerate(topology.weight_shapes):
            key = f"W{idx}"
            if key not in archive.files:
                raise ConfigurationError(f"Missing weight matrix {key}", path=path)
            matrix = np.asarray(archive[key], dtype=np.float64)
            if matrix.shape != shape:
                raise ConfigurationError(
                    f"Weight matrix {key} has shape {matrix.shape}, expected {shape}", path=path
                )
            state[key] = matrix
    return state


def stored_activation(path: str | Path) -> str:
    with np.load(Path(path), allow_pickle=False) as archive:
        if "activation" not in archive.files:
            return ""
        return str(archive["activation"])


__all__ = ["checkpoint_path", "load_weights", "save_weights", "stored_activation"]
