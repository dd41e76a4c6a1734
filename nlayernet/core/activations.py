"""Activation functions for nlayernet.

Every activation works elementwise on scalars or numpy arrays. ``f_prime`` is
always evaluated at the pre-activation sum ``x`` (theta), never at ``f(x)``.
"""

from __future__ import annotations

import random
from typing import Callable, Dict, Mapping

import numpy as np

from .errors import ConfigurationError
from .types import Array


class ActivationFunction:
    """Base class: a scalar nonlinearity, its derivative and a display label."""

    name = "activation"
    bounded = True

    def f(self, x: Array) -> Array:
        raise NotImplementedError

    def f_prime(self, x: Array) -> Array:
        raise NotImplementedError

    @property
    def label(self) -> str:
        return self.name

    def describe(self) -> Dict[str, object]:
        return {"name": self.name, "label": self.label, "bounded": self.bounded}

    def __call__(self, x: Array) -> Array:
        return self.f(x)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.label!r})"


class Sigmoid(ActivationFunction):
    name = "sigmoid"

    def f(self, x: Array) -> Array:
        return 1.0 / (1.0 + np.exp(-x))

    def f_prime(self, x: Array) -> Array:
        fx = self.f(x)
        return fx * (1.0 - fx)

    @property
    def label(self) -> str:
        return "Sigmoid"


class Tanh(ActivationFunction):
    name = "tanh"

    def f(self, x: Array) -> Array:
        return np.tanh(x)

    def f_prime(self, x: Array) -> Array:
        fx = self.f(x)
        return 1.0 - fx * fx

    @property
    def label(self) -> str:
        return "Tanh"


class Gaussian(ActivationFunction):
    name = "gaussian"

    def f(self, x: Array) -> Array:
        return np.exp(-(x * x))

    def f_prime(self, x: Array) -> Array:
        return -2.0 * x * self.f(x)

    @property
    def label(self) -> str:
        return "Gaussian"


class Linear(ActivationFunction):
    """``y = m*x + b``."""

    name = "linear"
    bounded = False

    def __init__(self, m: float, b: float) -> None:
        self.m = float(m)
        self.b = float(b)

    def f(self, x: Array) -> Array:
        return self.m * x + self.b

    def f_prime(self, x: Array) -> Array:
        return np.full_like(np.asarray(x, dtype=np.float64), self.m)

    @property
    def label(self) -> str:
        return f"Linear, y = {self.m!r}x + {self.b!r}"

    def describe(self) -> Dict[str, object]:
        payload = super().describe()
        payload.update({"m": self.m, "b": self.b})
        return payload


class LeakyReLU(ActivationFunction):
    """Slope ``alpha`` for ``x <= 0`` and ``1`` above."""

    name = "leaky_relu"
    bounded = False

    def __init__(self, alpha: float) -> None:
        self._alpha = float(alpha)

    @property
    def alpha(self) -> float:
        return self._alpha

    def f(self, x: Array) -> Array:
        return np.where(x <= 0, self._alpha * x, x)

    def f_prime(self, x: Array) -> Array:
        return np.where(x <= 0, self._alpha, 1.0)

    @property
    def label(self) -> str:
        return f"LeakyReLU, α = {self._alpha!r}"

    def describe(self) -> Dict[str, object]:
        payload = super().describe()
        payload["alpha"] = self._alpha
        return payload


class ReLU(LeakyReLU):
    name = "relu"

    def __init__(self) -> None:
        super().__init__(0.0)

    @property
    def label(self) -> str:
        return "ReLU"


class RandomizedReLU(LeakyReLU):
    """Leaky ReLU whose slope is drawn once from ``[0, 1)`` at construction."""

    name = "randomized_relu"

    def __init__(self, rng: random.Random | None = None, *, alpha: float | None = None) -> None:
        if alpha is None:
            alpha = (rng or random.Random()).random()
        super().__init__(alpha)

    @property
    def label(self) -> str:
        return f"Randomized ReLU, α = {self.alpha!r}"


def _leaky(params: Mapping[str, object]) -> ActivationFunction:
    return LeakyReLU(_param(params, "alpha"))


def _linear(params: Mapping[str, object]) -> ActivationFunction:
    return Linear(_param(params, "m"), _param(params, "b"))


def _randomized(params: Mapping[str, object]) -> ActivationFunction:
    if params.get("alpha") is not None:
        return RandomizedReLU(alpha=_param(params, "alpha"))
    seed = params.get("seed")
    return RandomizedReLU(random.Random(seed) if seed is not None else None)


_REGISTRY: Dict[str, Callable[[Mapping[str, object]], ActivationFunction]] = {
    "sigmoid": lambda params: Sigmoid(),
    "tanh": lambda params: Tanh(),
    "hyperbolic_tangent": lambda params: Tanh(),
    "gaussian": lambda params: Gaussian(),
    "relu": lambda params: ReLU(),
    "linear": _linear,
    "leaky_relu": _leaky,
    "randomized_relu": _randomized,
    "rrelu": _randomized,
}


def _param(params: Mapping[str, object], key: str) -> float:
    if params.get(key) is None:
        raise ConfigurationError(f"Activation function {params.get('name')!r} requires parameter {key!r}")
    try:
        return float(params[key])  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise ConfigurationError(
            f"Invalid value for activation parameter {key!r}: {params[key]!r}"
        ) from None


def normalise_name(name: str) -> str:
    return "_".join(str(name).strip().lower().replace("-", " ").replace("_", " ").split())


def available() -> list[str]:
    return sorted(_REGISTRY)


def build_activation(spec: str | Mapping[str, object] | ActivationFunction) -> ActivationFunction:
    """Resolve ``spec`` (a name or ``{name: ..., <params>}``) to an activation."""

    if isinstance(spec, ActivationFunction):
        return spec
    if isinstance(spec, str):
        params: Dict[str, object] = {"name": spec}
    elif isinstance(spec, Mapping):
        params = dict(spec)
    else:
        raise ConfigurationError(f"Unsupported activation specification: {spec!r}")
    if "name" not in params:
        raise ConfigurationError("Activation specification requires a 'name'")
    key = normalise_name(str(params["name"]))
    try:
        factory = _REGISTRY[key]
    except KeyError:
        raise ConfigurationError(f"Unknown activation function: {params['name']!r}") from None
    return factory(params)


__all__ = [
    "ActivationFunction",
    "Gaussian",
    "LeakyReLU",
    "Linear",
    "RandomizedReLU",
    "ReLU",
    "Sigmoid",
    "Tanh",
    "available",
    "build_activation",
    "normalise_name",
]
