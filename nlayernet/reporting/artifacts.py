"""Run manifest: what produced the artifacts in a run directory."""

from __future__ import annotations

import hashlib
import json
import platform
import subprocess
import time
from pathlib import Path
from typing import Mapping

import numpy as np


def _git_sha() -> str:
    try:
        out = subprocess.check_output(["git", "rev-parse", "HEAD"], stderr=subprocess.DEVNULL)
    except (OSError, subprocess.CalledProcessError):  # pragma: no cover - not a checkout
        return "unknown"
    return out.decode().strip()


def file_digest(path: str | Path | None) -> str | None:
    """sha256 of ``path``, or ``None`` when there is no such file."""

    if not path or not Path(path).is_file():
        return None
    return hashlib.sha256(Path(path).read_bytes()).hexdigest()


def write_manifest(
    path: str | Path,
    *,
    config: Mapping[str, object],
    network: Mapping[str, object],
    cases_provenance: Mapping[str, object],
) -> str:
    """Record the config, network layout, case source and weight files of a run."""

    network = dict(network)
    network["weights_in_sha256"] = file_digest(network.get("weights_in"))
    network["weights_out_sha256"] = file_digest(network.get("weights_out"))
    manifest = {
        "git_sha": _git_sha(),
        "generated_at": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "config": config,
        "network": network,
        "cases": dict(cases_provenance),
        "environment": {"python": platform.python_version(), "numpy": np.__version__},
    }
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(manifest, indent=2, default=str))
    return str(path)


__all__ = ["file_digest", "write_manifest"]
