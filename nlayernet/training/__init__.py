"""Training loop, monitor and run pipelines."""

from .monitor import EtaEstimator, TrainingMonitor
from .trainer import Trainer

__all__ = ["EtaEstimator", "Trainer", "TrainingMonitor"]
