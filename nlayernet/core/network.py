"""Fully connected N-layer network: weights, forward propagation and scratch buffers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Mapping, MutableSequence, Sequence

import numpy as np

from .activations import ActivationFunction
from .errors import ConfigurationError
from .types import Array, NetworkTopology


def _as_vector(values: Sequence[float] | Array, size: int, what: str) -> Array:
    vector = np.asarray(values, dtype=np.float64).reshape(-1)
    if vector.shape[0] != size:
        raise ConfigurationError(f"Expected {size} {what} values, got {vector.shape[0]}")
    return vector


@dataclass
class Network:
    """Owns the topology, the weight matrices and the per-case scratch buffers.

    ``weights[n]`` has shape ``(layer_sizes[n], layer_sizes[n + 1])``.
    ``activations[n]`` holds layer ``n`` after the last propagation, ``theta[n]``
    the pre-activation sums feeding layer ``n`` (``theta[0]`` is unused) and
    ``psi[n]`` the error signal of layer ``n`` from the last backward pass.
    """

    topology: NetworkTopology
    activation: ActivationFunction
    weights: MutableSequence[Array] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if not isinstance(self.topology, NetworkTopology):
            self.topology = NetworkTopology(tuple(self.topology))
        sizes = self.topology.layer_sizes
        self.weights = [np.zeros(shape, dtype=np.float64) for shape in self.topology.weight_shapes]
        self.activations: List[Array] = [np.zeros(size, dtype=np.float64) for size in sizes]
        self.theta: List[Array] = [np.zeros(size, dtype=np.float64) for size in sizes]
        self.psi: List[Array] = [np.zeros(size, dtype=np.float64) for size in sizes]

    @property
    def layer_sizes(self) -> Sequence[int]:
        return self.topology.layer_sizes

    def randomize(self, low: float, high: float, rng: np.random.Generator | None = None) -> None:
        """Draw every weight uniformly from ``[low, high)``."""

        rng = rng or np.random.default_rng()
        self.weights = [
            rng.uniform(low, high, size=shape) for shape in self.topology.weight_shapes
        ]

    def set_weights(self, weights: Sequence[Array]) -> None:
        shapes = self.topology.weight_shapes
        if len(weights) != len(shapes):
            raise ConfigurationError(
                f"Expected {len(shapes)} weight matrices for {self.topology}, got {len(weights)}"
            )
        checked: list[Array] = []
        for idx, (matrix, shape) in enumerate(zip(weights, shapes)):
            matrix = np.array(matrix, dtype=np.float64)
            if matrix.shape != shape:
                raise ConfigurationError(
                    f"Weight matrix W{idx} has shape {matrix.shape}, expected {shape}"
                )
            checked.append(matrix)
        self.weights = checked

    def propagate(self, inputs: Sequence[float] | Array) -> Array:
        """Run the forward pass for one input case and return a copy of the output layer."""

        self.activations[0] = _as_vector(inputs, self.topology.num_inputs, "input")
        for n, matrix in enumerate(self.weights):
            theta = np.zeros(matrix.shape[1], dtype=np.float64)
            # sum over source units in increasing k so results are reproducible
            for k in range(matrix.shape[0]):
                theta += self.activations[n][k] * matrix[k]
            self.theta[n + 1] = theta
            self.activations[n + 1] = self.activation.f(theta)
        return self.activations[-1].copy()

    def case_error(self, inputs: Sequence[float] | Array, targets: Sequence[float] | Array) -> float:
        """Half the squared error of one case under the current weights."""

        outputs = self.propagate(inputs)
        expected = _as_vector(targets, self.topology.num_outputs, "target")
        diff = expected - outputs
        return float(0.5 * np.sum(diff * diff))

    def state_dict(self) -> Mapping[str, Array]:
        return {f"W{idx}": W.copy() for idx, W in enumerate(self.weights)}

    def load_state_dict(self, state: Mapping[str, Array]) -> None:
        matrices = []
        for idx in range(len(self.weights)):
            key = f"W{idx}"
            if key not in state:
                raise ConfigurationError(f"Missing weight {key} in state dict")
            matrices.append(state[key])
        self.set_weights(matrices)

    def parameter_count(self) -> int:
        return int(sum(int(w.size) for w in self.weights))


__all__ = ["Network"]
