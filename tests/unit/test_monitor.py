import numpy as np
import pytest

from nlayernet.core.activations import Sigmoid
from nlayernet.core.network import Network
from nlayernet.core.types import NetworkTopology
from nlayernet.data.weights import load_weights
from nlayernet.reporting.console import ConsoleReporter
from nlayernet.training.monitor import EtaEstimator, TrainingMonitor


class FakeClock:
    def __init__(self, step=1.0):
        self.now = 0.0
        self.step = step

    def __call__(self):
        value = self.now
        self.now += self.step
        return value


def _network():
    net = Network(NetworkTopology((2, 2, 1)), Sigmoid())
    net.randomize(-1.0, 1.0, np.random.default_rng(0))
    return net


def test_eta_estimator_moving_averages():
    eta = EtaEstimator(error_threshold=0.0, max_iterations=100, clock=FakeClock())
    eta.start(1.0)
    eta.update(1, 0.9)
    assert eta.time_ema == pytest.approx(2.0)
    assert eta.error_ema == pytest.approx(0.2)
    eta.update(2, 0.8)
    assert eta.time_ema == pytest.approx(1.0)
    assert eta.error_ema == pytest.approx(0.1)

    estimate = eta.estimate(2, 0.8)
    assert estimate.converges
    assert estimate.iterations == pytest.approx(8.0)
    assert estimate.seconds == pytest.approx(8.0)


def test_eta_estimator_projects_failure_past_budget():
    eta = EtaEstimator(error_threshold=0.0, max_iterations=5, clock=FakeClock())
    eta.start(1.0)
    eta.update(1, 0.9)
    eta.update(2, 0.8)
    estimate = eta.estimate(2, 0.8)
    assert not estimate.converges
    assert estimate.seconds == pytest.approx(3.0)


def test_eta_estimator_rising_error_is_failure():
    eta = EtaEstimator(error_threshold=0.1, max_iterations=1000, clock=FakeClock())
    eta.start(0.5)
    eta.update(1, 0.6)
    estimate = eta.estimate(1, 0.6)
    assert eta.error_ema < 0
    assert not estimate.converges
    assert estimate.iterations == pytest.approx(999.0)


def test_keep_alive_every_interval(capsys):
    monitor = TrainingMonitor(
        _network(),
        error_threshold=0.0,
        max_iterations=100,
        keep_alive_interval=2,
        reporter=ConsoleReporter(4),
        clock=FakeClock(),
    )
    monitor.start(0.5)
    for epoch in range(1, 6):
        monitor.on_epoch(epoch, {"error": 0.5 / epoch})
    lines = [line for line in capsys.readouterr().out.splitlines() if line.startswith("Reached")]
    assert len(lines) == 2
    assert lines[0].startswith("Reached training iteration 2 with error 0.2500 at ")
    assert lines[1].startswith("Reached training iteration 4 with error 0.1250 at ")
    assert lines[0].endswith("seconds")


def test_disabled_intervals_print_nothing(capsys):
    monitor = TrainingMonitor(_network(), error_threshold=0.0, max_iterations=100, clock=FakeClock())
    monitor.start(0.5)
    capsys.readouterr()
    for epoch in range(1, 20):
        monitor.on_epoch(epoch, {"error": 0.4})
    assert capsys.readouterr().out == ""
    assert monitor.checkpoints == []
    assert monitor.estimates == []


def test_checkpoints_written_with_iteration_prefix(tmp_path):
    net = _network()
    monitor = TrainingMonitor(
        net,
        error_threshold=0.0,
        max_iterations=100,
        save_weights_interval=2,
        weights_out=tmp_path / "weights.npz",
        clock=FakeClock(),
    )
    for epoch in range(1, 6):
        monitor.on_epoch(epoch, {"error": 0.3})
    assert [p.rsplit("/", 1)[-1] for p in monitor.checkpoints] == ["iter2_weights.npz", "iter4_weights.npz"]
    loaded = load_weights(tmp_path / "iter4_weights.npz", net.topology)
    for a, b in zip(loaded.values(), net.weights):
        assert np.array_equal(a, b)


def test_checkpoint_interval_requires_target():
    with pytest.raises(ValueError):
        TrainingMonitor(_network(), error_threshold=0.0, max_iterations=10, save_weights_interval=5)


def test_eta_lines(capsys):
    monitor = TrainingMonitor(
        _network(),
        error_threshold=0.0,
        max_iterations=1000,
        eta_interval=2,
        reporter=ConsoleReporter(2),
        clock=FakeClock(),
    )
    monitor.start(1.0)
    monitor.on_epoch(1, {"error": 0.9})
    monitor.on_epoch(2, {"error": 0.8})
    out = capsys.readouterr().out
    assert "ETA: Will converge in 8.00 iterations and" in out
    assert len(monitor.estimates) == 1


def test_final_epoch_is_not_reported(capsys, tmp_path):
    monitor = TrainingMonitor(
        _network(),
        error_threshold=0.01,
        max_iterations=4,
        keep_alive_interval=1,
        save_weights_interval=1,
        eta_interval=1,
        weights_out=tmp_path / "w.npz",
        clock=FakeClock(),
    )
    capsys.readouterr()
    monitor.on_epoch(4, {"error": 0.5})
    monitor.on_epoch(3, {"error": 0.005})
    assert capsys.readouterr().out == ""
    assert monitor.checkpoints == []
