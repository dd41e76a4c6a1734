"""Summary of a run's per-epoch error curve."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Mapping, Sequence

import numpy as np


def compute_auc(points: Sequence[float]) -> float:
    """Trapezoidal area under ``points`` with one unit per epoch."""

    if len(points) < 2:
        return 0.0
    y = np.asarray(points, dtype=np.float64)
    integrate = getattr(np, "trapezoid", None) or np.trapz
    return float(integrate(y, dx=1.0))


def read_metrics(path: str | Path) -> list[Mapping[str, object]]:
    path = Path(path)
    if not path.exists():
        return []
    return [json.loads(line) for line in path.read_text().splitlines() if line.strip()]


def _error_curve(records: Sequence[Mapping[str, object]], tail: int) -> tuple[dict, int]:
    iterations = [int(r["iteration"]) for r in records if "error" in r]
    errors = np.asarray([float(r["error"]) for r in records if "error" in r], dtype=np.float64)
    if errors.size == 0:
        return {}, 0
    window = min(tail, errors.size)
    best = int(np.argmin(errors))
    decreasing = float(np.mean(np.diff(errors) < 0)) if errors.size > 1 else 0.0
    return {
        "first": float(errors[0]),
        "last": float(errors[-1]),
        "min": float(errors[best]),
        "min_iteration": iterations[best],
        "max": float(np.max(errors)),
        "mean": float(np.mean(errors)),
        "tail_mean": float(np.mean(errors[-window:])),
        "tail_auc": compute_auc(errors[-window:].tolist()),
        "decreasing_fraction": decreasing,
    }, window


def write_summary(
    metrics_jsonl: str | Path,
    out_summary_json: str | Path,
    *,
    tail: int = 32,
    extra: Mapping[str, object] | None = None,
) -> str:
    """Write ``summary.json`` for the error curve stored in ``metrics_jsonl``.

    ``extra`` entries (run mode, stop reason, ...) are merged at the top level.
    The output holds no timestamps so identical runs give identical files.
    """

    records = read_metrics(metrics_jsonl)
    error, window = _error_curve(records, tail)
    summary = {"version": 1, "records": len(records), "tail_window": window, "error": error}
    summary.update(extra or {})

    out_path = Path(out_summary_json)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json.dumps(summary, sort_keys=True, indent=2))
    return str(out_path)


__all__ = ["compute_auc", "read_metrics", "write_summary"]
