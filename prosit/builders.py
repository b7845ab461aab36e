"""Builders creating task descriptors from configuration mappings.

A task entry looks like::

    name: video
    computation_time: {type: uniform, min: 2, max: 8}
    period: 40                  # or interarrival_time: {type: ..., ...}
    deadline_step: 40
    deadlines: [40, 80, 120]
    budget: 10                  # resource_reservation
    server_period: 20
    qos: {type: linear, scale: 1.0, pmin: 0.5, pmax: 0.95, deadline: 40}
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from prosit.exceptions import InvalidArgument
from prosit.factory import (
    Builder,
    Factory,
    convert,
    optional_int,
    require_field,
    require_int,
    require_mapping,
)
from prosit.models import (
    FixedPriorityTaskDescriptor,
    GenericTaskDescriptor,
    ResourceReservationTaskDescriptor,
)
from prosit.pmf import distribution_factory
from prosit.qos import qos_fun_factory

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class NestedParameters:
    """Parameters of an object built by another factory (distribution, QoS)."""
    builder: Builder
    parameters: Any

    def create(self) -> Any:
        return self.builder.create_instance(self.parameters)


@dataclass
class TaskParameters:
    """Fields shared by every task type."""
    name: str
    computation_time: NestedParameters
    interarrival_time: Optional[NestedParameters] = None
    period: Optional[int] = None
    deadline_step: int = 0
    deadlines: List[int] = field(default_factory=list)
    qos: Optional[Tuple[NestedParameters, int]] = None


@dataclass
class FixedPriorityTaskParameters(TaskParameters):
    priority: int = 0


@dataclass
class ResourceReservationTaskParameters(TaskParameters):
    budget: int = 0
    server_period: int = 0


def _parse_nested(
    factory: Factory, config: Mapping[str, Any], field_name: str, owner: str
) -> NestedParameters:
    nested = require_mapping(config, field_name, owner)
    builder = factory.get_builder(require_field(nested, "type", f"{field_name} of {owner}"))
    return NestedParameters(builder, builder.parse_parameters(nested))


def parse_common(config: Mapping[str, Any]) -> Dict[str, Any]:
    """Parse the fields shared by every task type into keyword arguments.

    Nested distributions and QoS functions are only parsed here; they are
    built together with the task in ``create_instance``.
    """
    name = str(require_field(config, "name", "task"))
    owner = f"task {name}"
    common: Dict[str, Any] = {
        "name": name,
        "computation_time": _parse_nested(distribution_factory, config, "computation_time", owner),
        "deadline_step": optional_int(config, "deadline_step", 0),
    }
    if config.get("period") is not None:
        common["period"] = require_int(config, "period", owner)
    else:
        common["interarrival_time"] = _parse_nested(
            distribution_factory, config, "interarrival_time", owner
        )

    deadlines = config.get("deadlines") or []
    if not isinstance(deadlines, list):
        raise InvalidArgument(f"Field 'deadlines' must be a list for {owner}, got {deadlines!r}")
    common["deadlines"] = [convert(d, "deadlines", int) for d in deadlines]

    if config.get("qos") is not None:
        qos = _parse_nested(qos_fun_factory, config, "qos", owner)
        common["qos"] = (qos, require_int(config["qos"], "deadline", f"qos of {owner}"))
    return common


def timing_arguments(parameters: TaskParameters) -> Dict[str, Any]:
    """Build the timing keyword arguments shared by the task constructors."""
    interarrival = parameters.interarrival_time
    return {
        "interarrival_time": interarrival.create() if interarrival is not None else None,
        "period": parameters.period,
        "deadline_step": parameters.deadline_step,
    }


def finish_task(task: GenericTaskDescriptor, parameters: TaskParameters) -> GenericTaskDescriptor:
    """Register deadlines and the QoS function on a freshly built task."""
    for deadline in parameters.deadlines:
        task.insert_deadline(deadline)
    if parameters.qos is not None:
        qos, deadline = parameters.qos
        task.set_qos_function(qos.create(), deadline)
    LOGGER.debug("Built %r", task)
    return task


class FixedPriorityTaskBuilder(Builder[FixedPriorityTaskParameters, GenericTaskDescriptor]):
    parameters_type = FixedPriorityTaskParameters

    def parse_parameters(self, config: Mapping[str, Any]) -> FixedPriorityTaskParameters:
        common = parse_common(config)
        return FixedPriorityTaskParameters(
            priority=require_int(config, "priority", f"task {common['name']}"), **common
        )

    def create_instance(self, parameters: Any) -> GenericTaskDescriptor:
        p = self.check_parameters(parameters)
        task = FixedPriorityTaskDescriptor(
            p.name,
            p.computation_time.create(),
            p.priority,
            **timing_arguments(p),
        )
        return finish_task(task, p)


class ResourceReservationTaskBuilder(
    Builder[ResourceReservationTaskParameters, GenericTaskDescriptor]
):
    parameters_type = ResourceReservationTaskParameters

    def parse_parameters(self, config: Mapping[str, Any]) -> ResourceReservationTaskParameters:
        common = parse_common(config)
        owner = f"task {common['name']}"
        return ResourceReservationTaskParameters(
            budget=require_int(config, "budget", owner),
            server_period=require_int(config, "server_period", owner),
            **common,
        )

    def create_instance(self, parameters: Any) -> GenericTaskDescriptor:
        p = self.check_parameters(parameters)
        task = ResourceReservationTaskDescriptor(
            p.name,
            p.computation_time.create(),
            p.budget,
            p.server_period,
            **timing_arguments(p),
        )
        return finish_task(task, p)


task_factory: Factory[GenericTaskDescriptor] = Factory("task")


def init() -> None:
    """Register the built-in task types."""
    task_factory.register_type("fixed_priority", FixedPriorityTaskBuilder())
    task_factory.register_type("resource_reservation", ResourceReservationTaskBuilder())


init()
