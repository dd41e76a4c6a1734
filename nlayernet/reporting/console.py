"""Console output for runs: startup echo, progress lines and the final report."""

from __future__ import annotations

import math
import time
from decimal import ROUND_FLOOR, Context, Decimal
from typing import IO, Iterable, Sequence

from ..core.types import StopReason

MILLIS_PER_SEC = 1000.0
SEC_PER_MIN = 60.0
MIN_PER_HR = 60.0
HR_PER_DAY = 24.0
DAYS_PER_WK = 7.0

RULE = "-" * 100
BANNER = "=" * 121

UNBOUNDED_WARNING = "WARNING: Activation function is unbounded. May result in NaN values."

# wide enough for any finite double at any sane precision
_DECIMAL_CONTEXT = Context(prec=1000)


def format_decimal(value: float, precision: int) -> str:
    """Render ``value`` with ``precision`` decimals, rounding toward negative infinity."""

    value = float(value)
    if not math.isfinite(value):
        return str(value)
    quantum = Decimal(1).scaleb(-int(precision))
    return str(Decimal(repr(value)).quantize(quantum, rounding=ROUND_FLOOR, context=_DECIMAL_CONTEXT))


def format_values(values: Iterable[float], precision: int) -> str:
    return "[" + ", ".join(format_decimal(v, precision) for v in values) + "]"


def format_time(seconds: float, precision: int) -> str:
    """Express a duration in the largest unit that keeps the value readable."""

    if seconds < 1.0:
        return f"{format_decimal(seconds * MILLIS_PER_SEC, precision)} milliseconds"
    if seconds < SEC_PER_MIN:
        return f"{format_decimal(seconds, precision)} seconds"
    minutes = seconds / SEC_PER_MIN
    if minutes < MIN_PER_HR:
        return f"{format_decimal(minutes, precision)} minutes"
    hours = minutes / MIN_PER_HR
    if hours < HR_PER_DAY:
        return f"{format_decimal(hours, precision)} hours"
    days = hours / HR_PER_DAY
    if days < DAYS_PER_WK:
        return f"{format_decimal(days, precision)} days"
    return f"{format_decimal(days / DAYS_PER_WK, precision)} weeks"


def timestamp() -> str:
    return time.strftime("%Y/%m/%d %H:%M:%S")


class ConsoleReporter:
    """Prints run progress with a fixed decimal precision."""

    def __init__(self, precision: int = 6, stream: IO[str] | None = None) -> None:
        self.precision = int(precision)
        self.stream = stream

    def line(self, text: str = "") -> None:
        print(text, file=self.stream)

    def decimal(self, value: float) -> str:
        return format_decimal(value, self.precision)

    def duration(self, seconds: float) -> str:
        return format_time(seconds, self.precision)

    # ------------------------------------------------------------------
    # Startup

    def startup(
        self,
        *,
        topology: str,
        activation: str,
        bounded: bool,
        mode: int,
        mode_label: str,
        num_cases: int,
        run_case: int,
        max_iterations: int,
        learning_rate: float,
        error_threshold: float,
        keep_alive_interval: int,
        save_weights_interval: int,
        eta_interval: int,
        truth_table: str,
        weights_in: str | None,
        random_range: Sequence[float],
        weights_out: str | None,
        initial_weights: bool = False,
    ) -> None:
        self.line()
        self.line(BANNER)
        self.line(f"Network configuration: {topology}")
        self.line(f"Activation function: {activation}")
        if not bounded:
            self.line(UNBOUNDED_WARNING)
        self.line()
        self.line(f"Network is in mode: {mode} ({mode_label})")
        if mode == 0:
            self.line()
            self.line(f"Number of training cases: {num_cases}")
            self.line(f"Max training iterations: {max_iterations}")
            self.line(f"Lambda value: {learning_rate}")
            self.line(f"Error threshold: {error_threshold}")
            self.line(f"Keep alive interval: {_interval(keep_alive_interval)}")
            self.line(f"Save weights interval: {_interval(save_weights_interval)}")
            self.line(f"ETA interval: {_interval(eta_interval)}")
            self.line()
            self.line(f"Loading truth table from: {truth_table}")
        else:
            if mode == 2:
                self.line(f"Running case number: {run_case}")
            self.line()
            self.line(f"Loading inputs from: {truth_table}")
        self.line()
        if weights_in:
            self.line(f"Loading weights from file: {weights_in}")
        elif initial_weights:
            self.line("Using initial weights from the configuration")
        else:
            low, high = random_range
            self.line(f"Randomizing weights with range: {low} to {high}")
        if weights_out:
            self.line(f"Saving weights to file: {weights_out}")
        self.line()
        self.line(f"Starting time: {timestamp()}")
        self.line(RULE)

    # ------------------------------------------------------------------
    # Training progress

    def training_started(self, error: float) -> None:
        self.line("Training...")
        self.line(f"Starting training at iteration 0 and error {self.decimal(error)}")

    def keep_alive(self, iteration: int, error: float, elapsed: float) -> None:
        self.line(
            f"Reached training iteration {iteration} with error {self.decimal(error)} "
            f"at {self.duration(elapsed)}"
        )

    def checkpoint(self, iteration: int, path: str) -> None:
        self.line(f"Saved weights at iteration {iteration} to {path}")

    def eta_converge(self, iterations: float, seconds: float) -> None:
        self.line(
            f"ETA: Will converge in {self.decimal(iterations)} iterations and {self.duration(seconds)}"
        )

    def eta_fail(self, seconds: float) -> None:
        self.line(f"ETA: Will fail in {self.duration(seconds)}")

    # ------------------------------------------------------------------
    # Final report

    def report_training(self, *, stop_reason: StopReason | None, iterations: int, error: float) -> None:
        if stop_reason is StopReason.MAX_ITERATIONS:
            self.line("Ended training due to max iterations reached.")
        elif stop_reason is StopReason.ERROR_THRESHOLD:
            self.line("Ended training due to reaching error threshold.")
        elif stop_reason is StopReason.NON_FINITE_ERROR:
            self.line("Ended training due to a non-finite average error.")
        self.line(f"Reached {iterations} iterations.")
        self.line(f"Reached {error!r} average error.")

    def report_case(self, index: int, outputs: Sequence[float], expected: Sequence[float] | None = None) -> None:
        text = f"Input Case #{index}"
        if expected is not None:
            text += f"     Expected: {[float(v) for v in expected]}"
        text += f"     Output: {format_values(outputs, self.precision)}"
        self.line(text)

    def saving_weights(self, path: str) -> None:
        self.line(f"Saving weights to {path}...")

    def finish(self, elapsed: float) -> None:
        self.line()
        self.line(f"Elapsed Time: {self.duration(elapsed)}")
        self.line(f"Ended at: {timestamp()}")
        self.line()


def _interval(value: int) -> str:
    return str(value) if value > 0 else "Disabled"


__all__ = [
    "ConsoleReporter",
    "UNBOUNDED_WARNING",
    "format_decimal",
    "format_time",
    "format_values",
]
