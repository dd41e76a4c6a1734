"""Reporting utilities for nlayernet."""

from .artifacts import file_digest, write_manifest
from .console import ConsoleReporter
from .metrics import CsvSink, JsonlSink
from .plots import PlotAdapter

__all__ = ["ConsoleReporter", "CsvSink", "JsonlSink", "PlotAdapter", "file_digest", "write_manifest"]
