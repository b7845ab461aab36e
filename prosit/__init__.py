"""PROSIT: probabilistic task descriptors and quality-of-service functions.

This package models real-time tasks whose computation and interarrival times
are probability distributions, keeps track of the probabilistic deadlines
registered for each task, and maps deadline probabilities to QoS values for a
scheduling-parameter optimizer. Probabilities are computed by an external
solver implementing ``ProbabilitySolver``.
"""

from prosit.exceptions import (
    DuplicateEntry,
    InvalidArgument,
    MissingField,
    NotFound,
    PreconditionViolation,
    PrositError,
    SolverError,
    TypeMismatch,
    UnknownType,
)
from prosit.pmf import Pmf, distribution_factory
from prosit.deadlines import DeadlineProbabilityMap
from prosit.solver import ProbabilitySolver
from prosit.factory import Builder, Factory
from prosit.qos import LinearQoSFun, QoSFun, QuadraticQoSFun, qos_fun_factory
from prosit.models import (
    FixedPriorityTaskDescriptor,
    GenericTaskDescriptor,
    ResourceReservationTaskDescriptor,
)
from prosit.builders import task_factory
from prosit.analysis import check_guarantees, evaluate_qos

__version__ = "0.1.0"
__all__ = [
    "PrositError",
    "InvalidArgument",
    "PreconditionViolation",
    "NotFound",
    "UnknownType",
    "DuplicateEntry",
    "TypeMismatch",
    "MissingField",
    "SolverError",
    "Pmf",
    "DeadlineProbabilityMap",
    "ProbabilitySolver",
    "Builder",
    "Factory",
    "QoSFun",
    "LinearQoSFun",
    "QuadraticQoSFun",
    "GenericTaskDescriptor",
    "FixedPriorityTaskDescriptor",
    "ResourceReservationTaskDescriptor",
    "qos_fun_factory",
    "task_factory",
    "distribution_factory",
    "evaluate_qos",
    "check_guarantees",
]
