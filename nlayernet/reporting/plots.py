"""Headless-safe plot of the training error curve."""

from __future__ import annotations

from pathlib import Path
from typing import List, Mapping, Tuple


class PlotAdapter:
    """Collect the per-epoch error and optionally save it as ``error.png``."""

    def __init__(self, run_dir: str | Path, enable_plots: bool = False, *, error_threshold: float | None = None):
        self.enable_plots = enable_plots
        self.run_dir = Path(run_dir)
        self.error_threshold = error_threshold
        self._history: List[Tuple[int, float]] = []
        if self.enable_plots:
            self.run_dir.mkdir(parents=True, exist_ok=True)

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        if not self.enable_plots:
            return
        self._history.append((int(epoch), float(metrics.get("error", 0.0))))

    def close(self) -> str:
        if not self.enable_plots or not self._history:
            return ""
        import matplotlib

        matplotlib.use("Agg", force=True)
        import matplotlib.pyplot as plt  # imported lazily for headless safety

        epochs, errors = zip(*self._history)
        fig, ax = plt.subplots()
        ax.plot(epochs, errors, label="average error")
        if self.error_threshold is not None and self.error_threshold > 0:
            ax.axhline(self.error_threshold, linestyle="--", color="grey", label="threshold")
            ax.set_yscale("log")
        ax.set_xlabel("Iteration")
        ax.set_ylabel("Average error")
        ax.set_title("Training Error")
        ax.legend()
        plot_path = self.run_dir / "error.png"
        fig.savefig(plot_path)
        plt.close(fig)
        return str(plot_path)

    __call__ = on_epoch
