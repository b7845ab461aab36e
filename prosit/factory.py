"""Named-type registries for configurable objects.

A ``Factory`` maps a type name (as it appears in a configuration document) to a
``Builder``. Building an object always happens in two stages:

    1. ``parse_parameters(config)`` only checks that the required fields are
       present and converts them, returning a parameter bundle.
    2. ``create_instance(bundle)`` checks the domain constraints and
       constructs the product.

The same machinery is instantiated for QoS functions, task descriptors and
distributions.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, List, Mapping, Optional, TypeVar

from prosit.exceptions import InvalidArgument, MissingField, TypeMismatch, UnknownType

LOGGER = logging.getLogger(__name__)

P = TypeVar("P")
B = TypeVar("B")


class Builder(ABC, Generic[B, P]):
    """Parses a configuration mapping and builds one concrete product type.

    Subclasses set ``parameters_type`` to the bundle class they produce so that
    ``check_parameters`` can reject bundles built by another builder.
    """

    parameters_type: type = object

    @abstractmethod
    def parse_parameters(self, config: Mapping[str, Any]) -> B:
        """Extract the builder's fields from ``config``."""

    @abstractmethod
    def create_instance(self, parameters: B) -> P:
        """Validate ``parameters`` and construct the product."""

    def check_parameters(self, parameters: Any) -> B:
        if type(parameters) is not self.parameters_type:
            raise TypeMismatch(
                f"{type(self).__name__} cannot use parameters of type "
                f"{type(parameters).__name__}"
            )
        return parameters


class Factory(Generic[P]):
    """Registry mapping type names to builders for one product family."""

    def __init__(self, family: str) -> None:
        self.family = family
        self._builders: Dict[str, Builder[Any, P]] = {}

    def register_type(self, name: str, builder: Builder[Any, P]) -> None:
        """Register ``builder`` under ``name``, replacing any previous entry."""
        if name in self._builders:
            LOGGER.debug("Replacing %s builder '%s'", self.family, name)
        self._builders[name] = builder

    def get_builder(self, name: str) -> Builder[Any, P]:
        try:
            return self._builders[name]
        except KeyError:
            raise UnknownType(f"Unknown {self.family} type '{name}'") from None

    def create(self, name: str, config: Mapping[str, Any]) -> P:
        """Look up the builder for ``name`` and build an object from ``config``."""
        builder = self.get_builder(name)
        parameters = builder.parse_parameters(config)
        LOGGER.debug("Creating %s '%s' from %r", self.family, name, parameters)
        return builder.create_instance(parameters)

    def type_names(self) -> List[str]:
        return sorted(self._builders)

    def __contains__(self, name: object) -> bool:
        return name in self._builders


# Field readers shared by the builders


def convert(value: Any, field: str, kind: type) -> Any:
    """Convert a scalar field to ``kind`` (float or int)."""
    if isinstance(value, bool):
        raise InvalidArgument(f"Field '{field}' must be a number, got {value!r}")
    try:
        converted = kind(value)
    except (TypeError, ValueError):
        raise InvalidArgument(
            f"Field '{field}' must be {kind.__name__}, got {value!r}"
        ) from None
    if kind is int and isinstance(value, float) and converted != value:
        raise InvalidArgument(f"Field '{field}' must be an integer, got {value!r}")
    return converted


def require_field(config: Mapping[str, Any], field: str, owner: str = "") -> Any:
    if field not in config or config[field] is None:
        where = f" for {owner}" if owner else ""
        raise MissingField(f"Parameter '{field}' undefined{where}")
    return config[field]


def require_float(config: Mapping[str, Any], field: str, owner: str = "") -> float:
    require_field(config, field, owner)
    return convert(config[field], field, float)


def optional_float(
    config: Mapping[str, Any], field: str, default: float
) -> float:
    if config.get(field) is None:
        return default
    return convert(config[field], field, float)


def require_int(config: Mapping[str, Any], field: str, owner: str = "") -> int:
    require_field(config, field, owner)
    return convert(config[field], field, int)


def optional_int(
    config: Mapping[str, Any], field: str, default: Optional[int]
) -> Optional[int]:
    if config.get(field) is None:
        return default
    return convert(config[field], field, int)


def require_mapping(
    config: Mapping[str, Any], field: str, owner: str = ""
) -> Mapping[str, Any]:
    value = require_field(config, field, owner)
    if not isinstance(value, Mapping):
        raise InvalidArgument(f"Field '{field}' must be a mapping, got {value!r}")
    return value
