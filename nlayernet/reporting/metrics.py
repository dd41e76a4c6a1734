"""Per-epoch metric sinks: JSON lines and CSV."""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Mapping

FIELDS = ("iteration", "error", "elapsed")


def _record(epoch: int, metrics: Mapping[str, float]) -> dict:
    record = {"iteration": int(epoch)}
    record.update({k: float(v) for k, v in metrics.items() if isinstance(v, (int, float))})
    return record


class JsonlSink:
    """Append one JSON object per epoch to ``path`` (truncated on creation)."""

    def __init__(self, path: str | Path, *, seed: int | None = None) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("")
        self.seed = seed

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        record = _record(epoch, metrics)
        if self.seed is not None:
            record["seed"] = self.seed
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(record) + "\n")

    __call__ = on_epoch


class CsvSink:
    """Write epoch metrics to CSV with a fixed column order."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8", newline="") as handle:
            csv.DictWriter(handle, fieldnames=FIELDS).writeheader()

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        row = _record(epoch, metrics)
        with self.path.open("a", encoding="utf-8", newline="") as handle:
            writer = csv.DictWriter(handle, fieldnames=FIELDS, extrasaction="ignore")
            writer.writerow(row)

    __call__ = on_epoch


__all__ = ["CsvSink", "JsonlSink"]
