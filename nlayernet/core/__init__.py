"""Core numerical primitives for nlayernet."""

from . import activations, errors, network, types

__all__ = ["activations", "errors", "network", "types"]
