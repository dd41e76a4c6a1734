"""Error types shared by the engine and its file adapters."""

from __future__ import annotations

from pathlib import Path


class ConfigurationError(ValueError):
    """Fatal configuration or file-format problem.

    Carries the offending file and line (when known) so the command line can
    report where the problem is before terminating.
    """

    def __init__(
        self,
        message: str,
        *,
        path: str | Path | None = None,
        line: int | None = None,
    ) -> None:
        self.message = message
        self.path = str(path) if path is not None else None
        self.line = line
        super().__init__(self._render())

    def _render(self) -> str:
        if self.path is None:
            return self.message
        if self.line is None:
            return f'File "{self.path}" - {self.message}'
        return f'File "{self.path}", line {self.line} - {self.message}'


class UnboundedActivationWarning(UserWarning):
    """Emitted when the selected activation function has an unbounded range."""


__all__ = ["ConfigurationError", "UnboundedActivationWarning"]
