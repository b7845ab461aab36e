"""Quality-of-service functions.

A QoS function maps the probability of meeting a deadline to a scalar
utility that the optimizer maximises.

Linear (scale s, bounds pmin <= pmax, offset o):
    q(p) = o                        for p <= pmin
    q(p) = o + s * (p - pmin)       for pmin < p <= pmax
    q(p) = o + s * (pmax - pmin)    for p > pmax

Quadratic (scale s, bounds pmin <= pmax):
    q(p) = 0                        for p <= pmin
    q(p) = s * (p - pmin)^2         for pmin < p <= pmax
    q(p) = s * (pmax - pmin)^2      for p > pmax

Both are continuous at the bounds. Probabilities outside [0, 1] fall on the
flat branches instead of being rejected.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Mapping

from prosit.exceptions import InvalidArgument
from prosit.factory import Builder, Factory, optional_float, require_float


class QoSFun(ABC):
    """Maps a deadline probability to a utility value."""

    @abstractmethod
    def eval(self, probability: float) -> float:
        ...

    def __call__(self, probability: float) -> float:
        return self.eval(probability)


def _check_shape(scale: float, pmin: float, pmax: float) -> None:
    if pmax < pmin or scale < 0:
        raise InvalidArgument(
            f"Wrong QoS function parameters: scale={scale}, pmin={pmin}, pmax={pmax}"
        )


class LinearQoSFun(QoSFun):
    """Piecewise-linear QoS, flat outside [pmin, pmax]."""

    def __init__(self, scale: float, pmin: float, pmax: float, offset: float = 0.0) -> None:
        _check_shape(scale, pmin, pmax)
        self._scale = scale
        self._pmin = pmin
        self._pmax = pmax
        self._offset = offset

    @property
    def scale(self) -> float:
        return self._scale

    @property
    def pmin(self) -> float:
        return self._pmin

    @property
    def pmax(self) -> float:
        return self._pmax

    @property
    def offset(self) -> float:
        return self._offset

    def eval(self, probability: float) -> float:
        if probability <= self._pmin:
            return self._offset
        if probability > self._pmax:
            return self._offset + self._scale * (self._pmax - self._pmin)
        return self._scale * (probability - self._pmin) + self._offset

    def __repr__(self) -> str:
        return (f"LinearQoSFun(scale={self._scale}, pmin={self._pmin}, "
                f"pmax={self._pmax}, offset={self._offset})")


class QuadraticQoSFun(QoSFun):
    """QoS growing with the square of the probability above pmin."""

    def __init__(self, scale: float, pmin: float, pmax: float) -> None:
        _check_shape(scale, pmin, pmax)
        self._scale = scale
        self._pmin = pmin
        self._pmax = pmax

    @property
    def scale(self) -> float:
        return self._scale

    @property
    def pmin(self) -> float:
        return self._pmin

    @property
    def pmax(self) -> float:
        return self._pmax

    def eval(self, probability: float) -> float:
        if probability <= self._pmin:
            return 0.0
        if probability > self._pmax:
            return self._scale * (self._pmax - self._pmin) ** 2
        return self._scale * (probability - self._pmin) ** 2

    def __repr__(self) -> str:
        return f"QuadraticQoSFun(scale={self._scale}, pmin={self._pmin}, pmax={self._pmax})"


@dataclass(frozen=True)
class LinearQoSFunParameters:
    scale: float
    pmin: float
    pmax: float
    offset: float = 0.0


@dataclass(frozen=True)
class QuadraticQoSFunParameters:
    scale: float
    pmin: float
    pmax: float


def _check_limits(scale: float, pmin: float, pmax: float) -> None:
    """Reject probability bounds outside [0, 1] or inverted, and negative scales."""
    if pmin > pmax or not 0.0 <= pmin <= 1.0 or not 0.0 <= pmax <= 1.0:
        raise InvalidArgument(f"Wrong probability limits: pmin={pmin}, pmax={pmax}")
    if scale < 0:
        raise InvalidArgument(f"QoS scale must be non-negative, got {scale}")


class LinearQoSFunBuilder(Builder[LinearQoSFunParameters, QoSFun]):
    parameters_type = LinearQoSFunParameters

    def parse_parameters(self, config: Mapping[str, Any]) -> LinearQoSFunParameters:
        return LinearQoSFunParameters(
            scale=require_float(config, "scale", "qos function"),
            pmin=require_float(config, "pmin", "qos function"),
            pmax=require_float(config, "pmax", "qos function"),
            offset=optional_float(config, "offset", 0.0),
        )

    def create_instance(self, parameters: Any) -> QoSFun:
        p = self.check_parameters(parameters)
        _check_limits(p.scale, p.pmin, p.pmax)
        return LinearQoSFun(p.scale, p.pmin, p.pmax, p.offset)


class QuadraticQoSFunBuilder(Builder[QuadraticQoSFunParameters, QoSFun]):
    parameters_type = QuadraticQoSFunParameters

    def parse_parameters(self, config: Mapping[str, Any]) -> QuadraticQoSFunParameters:
        return QuadraticQoSFunParameters(
            scale=require_float(config, "scale", "qos function"),
            pmin=require_float(config, "pmin", "qos function"),
            pmax=require_float(config, "pmax", "qos function"),
        )

    def create_instance(self, parameters: Any) -> QoSFun:
        p = self.check_parameters(parameters)
        _check_limits(p.scale, p.pmin, p.pmax)
        return QuadraticQoSFun(p.scale, p.pmin, p.pmax)


qos_fun_factory: Factory[QoSFun] = Factory("qos function")


def init() -> None:
    """Register the standard QoS function shapes."""
    qos_fun_factory.register_type("linear", LinearQoSFunBuilder())
    qos_fun_factory.register_type("quadratic", QuadraticQoSFunBuilder())


init()
