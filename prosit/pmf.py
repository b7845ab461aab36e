"""Discrete probability mass functions for computation and interarrival times."""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping

from prosit.exceptions import InvalidArgument
from prosit.factory import (
    Builder,
    Factory,
    convert,
    optional_int,
    require_field,
    require_int,
)

PMF_TOLERANCE = 1e-6


@dataclass
class Pmf:
    """Distribution over non-negative integer time values.

    Attributes:
        probabilities: Mapping from value to its probability. Values that are
                       not present have probability zero.
    """
    probabilities: Dict[int, float] = field(default_factory=dict)

    @classmethod
    def deterministic(cls, value: int) -> "Pmf":
        """Return a distribution concentrated on ``value``."""
        pmf = cls()
        pmf.set(value, 1.0)
        return pmf

    def set(self, value: int, probability: float) -> None:
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            raise InvalidArgument(f"Pmf value must be a non-negative integer, got {value!r}")
        if not math.isfinite(probability) or probability < 0.0 or probability > 1.0 + PMF_TOLERANCE:
            raise InvalidArgument(f"Probability {probability} out of range for value {value}")
        if probability == 0.0:
            self.probabilities.pop(value, None)
        else:
            self.probabilities[value] = float(probability)

    def get(self, value: int) -> float:
        return self.probabilities.get(value, 0.0)

    def support(self) -> List[int]:
        return sorted(self.probabilities)

    def min(self) -> int:
        self._require_nonempty()
        return min(self.probabilities)

    def max(self) -> int:
        self._require_nonempty()
        return max(self.probabilities)

    def mean(self) -> float:
        self._require_nonempty()
        return sum(v * p for v, p in self.probabilities.items())

    def total(self) -> float:
        return sum(self.probabilities.values())

    def check(self) -> None:
        """Raise InvalidArgument unless the probabilities sum to one."""
        total = self.total()
        if not math.isfinite(total) or abs(total - 1.0) > PMF_TOLERANCE:
            raise InvalidArgument(f"Pmf probabilities sum to {total}, expected 1.0")

    def _require_nonempty(self) -> None:
        if not self.probabilities:
            raise InvalidArgument("Empty pmf")

    def __len__(self) -> int:
        return len(self.probabilities)


@dataclass(frozen=True)
class DeterministicParameters:
    value: int


@dataclass(frozen=True)
class UniformParameters:
    min: int
    max: int
    step: int = 1


@dataclass(frozen=True)
class TabulatedParameters:
    values: Dict[int, float]


class DeterministicPmfBuilder(Builder[DeterministicParameters, Pmf]):
    parameters_type = DeterministicParameters

    def parse_parameters(self, config: Mapping[str, Any]) -> DeterministicParameters:
        return DeterministicParameters(require_int(config, "value", "deterministic distribution"))

    def create_instance(self, parameters: Any) -> Pmf:
        p = self.check_parameters(parameters)
        if p.value < 0:
            raise InvalidArgument(f"Deterministic value must be non-negative, got {p.value}")
        return Pmf.deterministic(p.value)


class UniformPmfBuilder(Builder[UniformParameters, Pmf]):
    parameters_type = UniformParameters

    def parse_parameters(self, config: Mapping[str, Any]) -> UniformParameters:
        return UniformParameters(
            min=require_int(config, "min", "uniform distribution"),
            max=require_int(config, "max", "uniform distribution"),
            step=optional_int(config, "step", 1),
        )

    def create_instance(self, parameters: Any) -> Pmf:
        p = self.check_parameters(parameters)
        if p.min < 0 or p.min > p.max:
            raise InvalidArgument(f"Invalid uniform range [{p.min}, {p.max}]")
        if p.step <= 0:
            raise InvalidArgument(f"Uniform step must be positive, got {p.step}")
        values = list(range(p.min, p.max + 1, p.step))
        pmf = Pmf()
        for v in values:
            pmf.set(v, 1.0 / len(values))
        return pmf


class TabulatedPmfBuilder(Builder[TabulatedParameters, Pmf]):
    parameters_type = TabulatedParameters

    def parse_parameters(self, config: Mapping[str, Any]) -> TabulatedParameters:
        table = require_field(config, "values", "pmf distribution")
        if not isinstance(table, Mapping):
            raise InvalidArgument(f"Field 'values' must be a mapping, got {table!r}")
        values = {convert(v, "values", int): convert(p, "values", float) for v, p in table.items()}
        return TabulatedParameters(values)

    def create_instance(self, parameters: Any) -> Pmf:
        p = self.check_parameters(parameters)
        pmf = Pmf()
        for value, probability in sorted(p.values.items()):
            pmf.set(value, probability)
        pmf.check()
        return pmf


distribution_factory: Factory[Pmf] = Factory("distribution")


def init() -> None:
    """Register the built-in distribution types."""
    distribution_factory.register_type("deterministic", DeterministicPmfBuilder())
    distribution_factory.register_type("uniform", UniformPmfBuilder())
    distribution_factory.register_type("pmf", TabulatedPmfBuilder())


init()
