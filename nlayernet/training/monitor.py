"""Keep-alive messages, periodic weight checkpoints and ETA estimation."""

from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Mapping

from ..core.network import Network
from ..data.weights import checkpoint_path, save_weights
from ..reporting.console import ConsoleReporter


@dataclass(frozen=True)
class Estimate:
    """Projection made by :class:`EtaEstimator`."""

    converges: bool
    iterations: float
    seconds: float


class EtaEstimator:
    """Exponential moving averages of time and error reduction per epoch.

    The smoothing factor is ``2 / iteration``, so early estimates behave like a
    running average and later ones lean toward the most recent epochs.
    """

    def __init__(
        self,
        error_threshold: float,
        max_iterations: int,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.error_threshold = float(error_threshold)
        self.max_iterations = int(max_iterations)
        self._clock = clock
        self.time_ema = 0.0
        self.error_ema = 0.0
        self._prev_time = 0.0
        self._prev_error = 0.0

    def start(self, error: float) -> None:
        self._prev_time = self._clock()
        self._prev_error = float(error)
        self.time_ema = 0.0
        self.error_ema = 0.0

    def update(self, iteration: int, error: float) -> None:
        multiplier = 2.0 / float(iteration)
        now = self._clock()
        self.time_ema = (now - self._prev_time) * multiplier + self.time_ema * (1.0 - multiplier)
        self.error_ema = (self._prev_error - error) * multiplier + self.error_ema * (1.0 - multiplier)
        self._prev_time = now
        self._prev_error = float(error)

    def estimate(self, iteration: int, error: float) -> Estimate:
        remaining = self.max_iterations - iteration
        if self.error_ema > 0:
            iterations = (error - self.error_threshold) / self.error_ema
            if iterations > 0 and iterations + iteration < self.max_iterations:
                return Estimate(True, iterations, iterations * self.time_ema)
        return Estimate(False, float(remaining), remaining * self.time_ema)


class TrainingMonitor:
    """Trainer callback printing keep-alive and ETA lines and writing checkpoints.

    Every interval is an epoch count; ``0`` disables that duty. Nothing is
    reported for the epoch that ends training, the final report covers it.
    """

    def __init__(
        self,
        network: Network,
        *,
        error_threshold: float,
        max_iterations: int,
        keep_alive_interval: int = 0,
        save_weights_interval: int = 0,
        eta_interval: int = 0,
        weights_out: str | Path | None = None,
        reporter: ConsoleReporter | None = None,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        if save_weights_interval > 0 and not weights_out:
            raise ValueError("save_weights_interval requires weights_out")
        self.network = network
        self.error_threshold = float(error_threshold)
        self.max_iterations = int(max_iterations)
        self.keep_alive_interval = int(keep_alive_interval)
        self.save_weights_interval = int(save_weights_interval)
        self.eta_interval = int(eta_interval)
        self.weights_out = Path(weights_out) if weights_out else None
        self.reporter = reporter or ConsoleReporter()
        self._clock = clock
        self.eta = EtaEstimator(error_threshold, max_iterations, clock)
        self.started_at = clock()
        self.checkpoints: List[str] = []
        self.estimates: List[Estimate] = []

    def start(self, initial_error: float) -> None:
        self.eta.start(initial_error)
        self.reporter.training_started(initial_error)

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        error = float(metrics["error"])
        if epoch >= self.max_iterations or error <= self.error_threshold:
            return

        if self.keep_alive_interval > 0 and epoch % self.keep_alive_interval == 0:
            self.reporter.keep_alive(epoch, error, self._clock() - self.started_at)

        if self.save_weights_interval > 0 and epoch % self.save_weights_interval == 0:
            path = save_weights(checkpoint_path(self.weights_out, epoch), self.network)  # type: ignore[arg-type]
            self.checkpoints.append(path)
            self.reporter.checkpoint(epoch, path)

        if self.eta_interval > 0:
            self.eta.update(epoch, error)
            if epoch % self.eta_interval == 0:
                estimate = self.eta.estimate(epoch, error)
                self.estimates.append(estimate)
                if estimate.converges:
                    self.reporter.eta_converge(estimate.iterations, estimate.seconds)
                else:
                    self.reporter.eta_fail(estimate.seconds)


__all__ = ["Estimate", "EtaEstimator", "TrainingMonitor"]
