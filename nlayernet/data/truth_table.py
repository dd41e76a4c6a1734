"""Truth table files.

Layout::

    4-2-1        cases-inputs-outputs ('-' or 'x' separated)
    0 0          one input row per case
    ...
    0            one output row per case (not read for inference runs)
    ...

Blank lines are ignored. A row written as ``?path`` takes its values from the
first line of ``path``, resolved relative to the truth table's directory.
"""

from __future__ import annotations

import re
import warnings
from pathlib import Path
from typing import Iterator, List, Mapping, Sequence, Tuple

import numpy as np

from ..core.errors import ConfigurationError
from ..core.types import TrainingCase

_HEADER_SPLIT = re.compile(r"[-x]")


def _numbered_lines(path: Path) -> Iterator[Tuple[int, str]]:
    for lineno, raw in enumerate(path.read_text().splitlines(), start=1):
        line = raw.strip()
        if line:
            yield lineno, line


def _parse_values(text: str, count: int, what: str, *, path: Path, line: int) -> np.ndarray:
    parts = text.split()
    if len(parts) != count:
        raise ConfigurationError(
            f"Expected {count} truth table {what} on line. Found {len(parts)}.", path=path, line=line
        )
    try:
        return np.asarray([float(part) for part in parts], dtype=np.float64)
    except ValueError:
        raise ConfigurationError(f"Incorrectly formatted {what} in truth table file", path=path, line=line) from None


def _read_reference(base: Path, ref: str, count: int, case: int) -> np.ndarray:
    target = Path(ref.strip())
    if not target.is_absolute():
        target = base / target
    if not target.exists():
        raise ConfigurationError(f"Could not find file referenced in truth table Case #{case}", path=target)
    lines = target.read_text().splitlines()
    if not lines or not lines[0].strip():
        raise ConfigurationError(f"Empty line when reading from truth table Case #{case}", path=target, line=1)
    parts = lines[0].split()
    if len(parts) > count:
        warnings.warn(
            f'Found {len(parts)} elements in file "{target}". Using only the first {count} elements.',
            stacklevel=3,
        )
    elif len(parts) < count:
        raise ConfigurationError(
            f"Expected {count} values for truth table Case #{case}, found {len(parts)}", path=target, line=1
        )
    try:
        return np.asarray([float(part) for part in parts[:count]], dtype=np.float64)
    except ValueError:
        raise ConfigurationError(f"Incorrectly formatted value for truth table Case #{case}", path=target, line=1) from None


def _read_rows(
    lines: Iterator[Tuple[int, str]], path: Path, num_cases: int, count: int, what: str
) -> List[np.ndarray]:
    rows: list[np.ndarray] = []
    for case in range(num_cases):
        try:
            lineno, line = next(lines)
        except StopIteration:
            raise ConfigurationError(f"Truth table file missing {what}.", path=path) from None
        if line.startswith("?"):
            rows.append(_read_reference(path.parent, line[1:], count, case))
        else:
            rows.append(_parse_values(line, count, what, path=path, line=lineno))
    return rows


def load_truth_table(
    path: str | Path,
    *,
    num_cases: int,
    num_inputs: int,
    num_outputs: int,
    with_outputs: bool = True,
) -> List[TrainingCase]:
    """Read ``num_cases`` cases from ``path``; outputs are skipped when ``with_outputs`` is false."""

    path = Path(path)
    if not path.exists():
        raise ConfigurationError("Failed to open truth table file", path=path)
    lines = _numbered_lines(path)
    try:
        lineno, header = next(lines)
    except StopIteration:
        raise ConfigurationError("Empty truth table file", path=path) from None

    parts = _HEADER_SPLIT.split(header)
    if len(parts) != 3:
        raise ConfigurationError(f"Expected 3 config params. Found {len(parts)}", path=path, line=lineno)
    try:
        declared = tuple(int(part) for part in parts)
    except ValueError:
        raise ConfigurationError(
            f"Incorrectly formatted integer in parsed configuration: {parts}", path=path, line=lineno
        ) from None
    if declared != (num_cases, num_inputs, num_outputs):
        raise ConfigurationError(
            f"Network config {num_cases}-{num_inputs}-{num_outputs} doesn't match truth table config "
            f"{header}",
            path=path,
            line=lineno,
        )

    inputs = _read_rows(lines, path, num_cases, num_inputs, "inputs")
    if not with_outputs:
        return [TrainingCase(inputs=row) for row in inputs]
    outputs = _read_rows(lines, path, num_cases, num_outputs, "outputs")
    return [TrainingCase(inputs=i, targets=o) for i, o in zip(inputs, outputs)]


def cases_from_config(
    entries: Sequence[Mapping[str, object]],
    *,
    num_cases: int,
    num_inputs: int,
    num_outputs: int,
    with_outputs: bool = True,
) -> List[TrainingCase]:
    """Build cases from inline ``[{inputs: [...], outputs: [...]}, ...]`` entries."""

    if len(entries) != num_cases:
        raise ConfigurationError(f"Expected {num_cases} inline cases, found {len(entries)}")
    cases: list[TrainingCase] = []
    for idx, entry in enumerate(entries):
        if not isinstance(entry, Mapping) or "inputs" not in entry:
            raise ConfigurationError(f"Inline case #{idx} requires 'inputs'")
        inputs = _inline_vector(entry["inputs"], num_inputs, idx, "inputs")
        targets = None
        if with_outputs:
            if entry.get("outputs") is None:
                raise ConfigurationError(f"Inline case #{idx} requires 'outputs' for training")
            targets = _inline_vector(entry["outputs"], num_outputs, idx, "outputs")
        cases.append(TrainingCase(inputs=inputs, targets=targets))
    return cases


def _inline_vector(values: object, count: int, idx: int, what: str) -> np.ndarray:
    try:
        vector = np.asarray(values, dtype=np.float64).reshape(-1)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Inline case #{idx} has malformed {what}: {values!r}") from None
    if vector.shape[0] != count:
        raise ConfigurationError(f"Inline case #{idx} expected {count} {what}, found {vector.shape[0]}")
    return vector


def _format_row(values: Sequence[float]) -> str:
    return " ".join(repr(float(v)) for v in values)


def save_truth_table(path: str | Path, cases: Sequence[TrainingCase]) -> str:
    """Write ``cases`` in the format read by :func:`load_truth_table`."""

    if not cases:
        raise ConfigurationError("Cannot save an empty truth table", path=path)
    num_inputs = len(cases[0].inputs)
    num_outputs = len(cases[0].targets) if cases[0].targets is not None else 0
    for idx, case in enumerate(cases):
        if case.targets is None:
            raise ConfigurationError(f"Saving truth table - case #{idx} has no outputs", path=path)
        if len(case.inputs) != num_inputs or len(case.targets) != num_outputs:
            raise ConfigurationError(f"Saving truth table - case #{idx} has inconsistent size", path=path)

    lines = [f"{len(cases)}-{num_inputs}-{num_outputs}"]
    lines.extend(_format_row(case.inputs) for case in cases)
    lines.extend(_format_row(case.targets) for case in cases)  # type: ignore[arg-type]
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines) + "\n")
    return str(path)


__all__ = ["cases_from_config", "load_truth_table", "save_truth_table"]
