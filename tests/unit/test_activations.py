import random

import numpy as np
import pytest

from nlayernet.core import activations
from nlayernet.core.activations import (
    Gaussian,
    LeakyReLU,
    Linear,
    RandomizedReLU,
    ReLU,
    Sigmoid,
    Tanh,
    build_activation,
)
from nlayernet.core.errors import ConfigurationError

# kinks of the ReLU family sit at 0, keep samples away from it
SAMPLES = np.array([-3.1, -1.7, -0.6, -0.05, 0.05, 0.4, 1.2, 2.9])


@pytest.mark.parametrize(
    "fn",
    [
        Sigmoid(),
        Tanh(),
        Gaussian(),
        Linear(2.5, -1.0),
        ReLU(),
        LeakyReLU(0.1),
        RandomizedReLU(random.Random(7)),
    ],
    ids=lambda fn: fn.name,
)
def test_derivative_matches_finite_difference(fn):
    h = 1e-6
    numeric = (fn.f(SAMPLES + h) - fn.f(SAMPLES - h)) / (2 * h)
    np.testing.assert_allclose(fn.f_prime(SAMPLES), numeric, atol=1e-5)


def test_scalar_and_array_agree():
    fn = Sigmoid()
    values = fn.f(SAMPLES)
    for x, expected in zip(SAMPLES, values):
        assert fn.f(float(x)) == pytest.approx(expected)
    assert Sigmoid().f(0.0) == pytest.approx(0.5)
    assert Gaussian().f(0.0) == pytest.approx(1.0)


def test_bounded_flags():
    assert Sigmoid().bounded and Tanh().bounded and Gaussian().bounded
    assert not Linear(1, 0).bounded
    assert not ReLU().bounded
    assert not LeakyReLU(0.2).bounded
    assert not RandomizedReLU(alpha=0.5).bounded


def test_relu_family_slopes():
    relu = ReLU()
    assert relu.f_prime(0.0) == 0.0
    assert relu.f_prime(-2.0) == 0.0
    assert relu.f_prime(3.0) == 1.0
    leaky = LeakyReLU(0.25)
    assert leaky.f(-4.0) == pytest.approx(-1.0)
    assert leaky.f_prime(0.0) == pytest.approx(0.25)
    assert leaky.f(2.0) == pytest.approx(2.0)


def test_labels_include_parameters():
    assert Linear(2, 1).label == "Linear, y = 2.0x + 1.0"
    assert LeakyReLU(0.01).label == "LeakyReLU, α = 0.01"
    assert ReLU().label == "ReLU"
    assert Sigmoid().label == "Sigmoid"
    assert "0.5" in RandomizedReLU(alpha=0.5).label
    described = Linear(3, 4).describe()
    assert described["m"] == 3.0 and described["b"] == 4.0
    assert described["bounded"] is False


def test_randomized_relu_slope_is_fixed_after_construction():
    fn = RandomizedReLU(random.Random(123))
    alpha = fn.alpha
    assert 0.0 <= alpha < 1.0
    for _ in range(50):
        assert fn.f(-1.0) == pytest.approx(-alpha)
        assert fn.f_prime(-0.5) == pytest.approx(alpha)
    assert fn.alpha == alpha


@pytest.mark.parametrize(
    "spec, expected",
    [
        ("sigmoid", Sigmoid),
        ("Hyperbolic Tangent", Tanh),
        ("TANH", Tanh),
        ("gaussian", Gaussian),
        ("relu", ReLU),
        ({"name": "Leaky-ReLU", "alpha": 0.3}, LeakyReLU),
        ({"name": "leaky_relu", "alpha": "0.3"}, LeakyReLU),
        ({"name": "linear", "m": 1, "b": 0}, Linear),
        ("rrelu", RandomizedReLU),
        ("randomized relu", RandomizedReLU),
    ],
)
def test_build_activation_resolves_names(spec, expected):
    assert type(build_activation(spec)) is expected


def test_build_activation_seeded_randomized_relu_is_reproducible():
    first = build_activation({"name": "rrelu", "seed": 5})
    second = build_activation({"name": "rrelu", "seed": 5})
    assert first.alpha == second.alpha
    pinned = build_activation({"name": "rrelu", "alpha": 0.2})
    assert pinned.alpha == pytest.approx(0.2)


@pytest.mark.parametrize(
    "spec",
    [
        "softmax",
        {"name": "linear", "m": 1},
        {"name": "leaky relu"},
        {"name": "leaky relu", "alpha": "steep"},
        {"alpha": 0.1},
        42,
    ],
)
def test_build_activation_rejects_bad_specs(spec):
    with pytest.raises(ConfigurationError):
        build_activation(spec)


def test_available_lists_registered_names():
    names = activations.available()
    assert "sigmoid" in names and "leaky_relu" in names and "rrelu" in names
