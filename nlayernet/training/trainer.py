"""Online (per-case) backpropagation training loop for nlayernet."""

from __future__ import annotations

import time
from typing import Callable, Mapping, Sequence

import numpy as np

from ..core.errors import ConfigurationError
from ..core.network import Network
from ..core.types import TrainingCase, TrainingState, StopReason


class Trainer:
    """Run epochs of online gradient descent until convergence or the iteration cap.

    Each case is propagated, its error signal swept backwards and the weights of
    every connectivity layer bumped as soon as that layer's error signal is
    known. The error recorded for a case is measured with the updated weights.
    """

    def __init__(
        self,
        network: Network,
        cases: Sequence[TrainingCase],
        *,
        learning_rate: float,
        error_threshold: float,
        max_iterations: int,
        callbacks: Sequence[object] | None = None,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        if not cases:
            raise ConfigurationError("Training requires at least one case")
        for idx, case in enumerate(cases):
            if case.targets is None:
                raise ConfigurationError(f"Training case #{idx} has no expected outputs")
        self.network = network
        self.cases = list(cases)
        self.learning_rate = float(learning_rate)
        self.error_threshold = float(error_threshold)
        self.max_iterations = int(max_iterations)
        self.callbacks = list(callbacks or [])
        self._clock = clock
        self.state = TrainingState()

    def average_error(self) -> float:
        """Average case error under the current weights, without training."""

        total = 0.0
        for case in self.cases:
            total += self.network.case_error(case.inputs, case.targets)
        return total / len(self.cases)

    def train_case(self, case: TrainingCase) -> float:
        """Apply one backpropagation step for ``case`` and return its new error."""

        net = self.network
        f_prime = net.activation.f_prime
        last = net.topology.output_layer
        net.propagate(case.inputs)
        targets = np.asarray(case.targets, dtype=np.float64).reshape(-1)
        net.psi[last] = (targets - net.activations[last]) * f_prime(net.theta[last])

        for n in range(last - 1, -1, -1):
            matrix = net.weights[n]
            downstream = net.psi[n + 1]
            omega = np.zeros(matrix.shape[0], dtype=np.float64)
            # omega reads this layer's weights before they are bumped
            for j in range(matrix.shape[1]):
                omega += downstream[j] * matrix[:, j]
            matrix += self.learning_rate * np.outer(net.activations[n], downstream)
            if n > 0:
                net.psi[n] = omega * f_prime(net.theta[n])

        return net.case_error(case.inputs, targets)

    def run_epoch(self) -> float:
        total = 0.0
        for case in self.cases:
            total += self.train_case(case)
        return total / len(self.cases)

    def run(self) -> TrainingState:
        state = TrainingState(average_error=self.average_error())
        self.state = state
        started = self._clock()
        self._emit_start(state.average_error)

        while state.iterations < self.max_iterations and state.average_error > self.error_threshold:
            state.average_error = self.run_epoch()
            state.iterations += 1
            state.history.append(state.average_error)
            self._emit_epoch(
                state.iterations,
                {"error": state.average_error, "elapsed": self._clock() - started},
            )

        if state.iterations >= self.max_iterations:
            state.stop_reason = StopReason.MAX_ITERATIONS
        elif state.average_error <= self.error_threshold:
            state.stop_reason = StopReason.ERROR_THRESHOLD
        else:
            # NaN fails the loop test without meeting the threshold
            state.stop_reason = StopReason.NON_FINITE_ERROR
        return state

    # ------------------------------------------------------------------
    # Internal helpers

    def _emit_start(self, initial_error: float) -> None:
        for callback in self.callbacks:
            if hasattr(callback, "start"):
                callback.start(initial_error)  # type: ignore[attr-defined]

    def _emit_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        for callback in self.callbacks:
            if hasattr(callback, "on_epoch"):
                callback.on_epoch(epoch, metrics)  # type: ignore[attr-defined]
            elif callable(callback):
                callback(epoch, metrics)


__all__ = ["Trainer"]
