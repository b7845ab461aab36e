"""Task descriptors.

``GenericTaskDescriptor`` holds the timing model of a task (computation and
interarrival time distributions) and the probabilistic deadlines registered
for it. Subclasses add the parameters of one scheduling policy:

    - FixedPriorityTaskDescriptor: priority in [0, 99].
    - ResourceReservationTaskDescriptor: budget Q and server period Ts with
      Q / Ts <= 1.

Probabilities are computed lazily by an external ``ProbabilitySolver``: the
first ``get_probability`` after the deadlines or the solver changed triggers a
solve, later reads use the cached values.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from prosit.deadlines import DeadlineProbabilityMap
from prosit.exceptions import (
    DuplicateEntry,
    InvalidArgument,
    NotFound,
    PreconditionViolation,
    SolverError,
)
from prosit.pmf import Pmf
from prosit.qos import QoSFun
from prosit.solver import ProbabilitySolver

LOGGER = logging.getLogger(__name__)

MIN_PRIORITY = 0
MAX_PRIORITY = 99


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class GenericTaskDescriptor(ABC):
    """Root of the task descriptor hierarchy.

    A task is periodic when built with ``period`` and aperiodic when built
    with ``interarrival_time``; exactly one of the two must be given. For a
    periodic task the interarrival distribution is the degenerate pmf
    concentrated on the period.

    Attributes:
        name: Unique task identifier.
        deadline_step: Granularity of the registered deadlines (0 until set).
    """

    def __init__(
        self,
        name: str,
        computation_time: Pmf,
        interarrival_time: Optional[Pmf] = None,
        period: Optional[int] = None,
        deadline_step: int = 0,
    ) -> None:
        if not name:
            raise InvalidArgument("Task name must not be empty")
        self._name = name
        if (interarrival_time is None) == (period is None):
            raise InvalidArgument(
                f"Task {name}: exactly one of period and interarrival time must be given"
            )
        if period is not None:
            if not _is_int(period) or period <= 0:
                raise InvalidArgument(f"Task {name}: period must be a positive integer, got {period!r}")
            self._periodic = True
            self._period: Optional[int] = period
            self._interarrival_time = Pmf.deterministic(period)
        else:
            self._periodic = False
            self._period = None
            if len(interarrival_time) == 0 or interarrival_time.min() <= 0:
                raise InvalidArgument(
                    f"Task {name}: interarrival times must be positive and non-empty"
                )
            self._interarrival_time = interarrival_time
        self._computation_time = computation_time
        self._verbose = False
        self._deadline_step = 0
        self._deadlines = DeadlineProbabilityMap()
        self._solver: Optional[ProbabilitySolver] = None
        self._solved = False
        self._qos_function: Optional[QoSFun] = None
        self._qos_deadline: Optional[int] = None
        self._lock = threading.RLock()
        if deadline_step:
            self.set_deadline_step(deadline_step)

    @property
    def name(self) -> str:
        return self._name

    @property
    @abstractmethod
    def policy(self) -> str:
        """Name of the scheduling policy the task is managed with."""

    @abstractmethod
    def scheduling_parameters(self) -> Dict[str, Any]:
        """Return the policy-specific parameters the optimizer can tune."""

    def set_verbose(self, verbose: bool) -> bool:
        """Set the verbose flag and return its previous value."""
        current = self._verbose
        self._verbose = verbose
        return current

    def is_periodic(self) -> bool:
        return self._periodic

    def get_period(self) -> int:
        if not self._periodic:
            raise PreconditionViolation(f"Period wrongly required for aperiodic task {self._name}")
        return self._period

    def get_computation_time(self) -> Pmf:
        return self._computation_time

    def get_interarrival_time(self) -> Pmf:
        if self._periodic:
            raise PreconditionViolation(
                f"Interarrival time wrongly required for periodic task {self._name}"
            )
        return self._interarrival_time

    @property
    def utilization(self) -> float:
        """Mean computation time over mean interarrival time."""
        return self._computation_time.mean() / self._interarrival_time.mean()

    @property
    def deadline_step(self) -> int:
        return self._deadline_step

    def set_deadline_step(self, step: int) -> None:
        """Set the deadline granularity.

        Raises:
            InvalidArgument: If ``step`` is not a positive integer or a
                registered deadline is not a multiple of it.
        """
        if not _is_int(step) or step <= 0:
            raise InvalidArgument(f"Task {self._name}: deadline step must be a positive integer, got {step!r}")
        with self._lock:
            for deadline in self._deadlines:
                if deadline % step:
                    raise InvalidArgument(
                        f"Task {self._name}: deadline {deadline} is not a multiple of step {step}"
                    )
            if step != self._deadline_step:
                self._deadline_step = step
                self._invalidate()

    @property
    def solved(self) -> bool:
        return self._solved

    def deadlines(self) -> List[int]:
        return self._deadlines.deadlines()

    def insert_deadline(self, deadline: int) -> None:
        """Register a deadline whose probability has to be computed.

        Raises:
            PreconditionViolation: If no deadline step has been set.
            InvalidArgument: If ``deadline`` is negative or not a multiple of
                the deadline step.
            DuplicateEntry: If the deadline is already registered.
        """
        if not _is_int(deadline) or deadline < 0:
            raise InvalidArgument(f"Wrong deadline value {deadline!r} for task {self._name}")
        with self._lock:
            if not self._deadline_step:
                raise PreconditionViolation(f"Deadline step unset for task {self._name}")
            if deadline % self._deadline_step:
                raise InvalidArgument(f"Wrong deadline values set for task {self._name}")
            if not self._deadlines.insert(deadline):
                raise DuplicateEntry(f"Deadline {deadline} already defined for task {self._name}")
            self._invalidate()

    def set_solver(self, solver: Optional[ProbabilitySolver]) -> None:
        """Attach ``solver`` (or detach with None) and drop any cached result."""
        with self._lock:
            if solver is not None:
                solver.register_task(self)
            self._solver = solver
            self._invalidate()

    def get_solver(self) -> Optional[ProbabilitySolver]:
        return self._solver

    def compute_probability(self) -> None:
        """Compute the probability of every registered deadline.

        Does nothing if the cached probabilities are still valid.

        Raises:
            PreconditionViolation: If no solver is attached or no deadline
                has been registered.
            SolverError: If the solver reports a failure.
        """
        with self._lock:
            if self._solver is None:
                raise PreconditionViolation(f"Probability solver unset for task {self._name}")
            if self._deadlines.is_empty():
                raise PreconditionViolation(f"No deadline specified for task {self._name}")
            if self._solved:
                return
            log = LOGGER.info if self._verbose else LOGGER.debug
            log("Solving task %s for deadlines %s (step %d)",
                self._name, self._deadlines.deadlines(), self._deadline_step)
            if not self._solver.solve(self._deadlines, self._deadline_step):
                raise SolverError(f"Probability solver failed for task {self._name}")
            unsolved = [d for d, p in self._deadlines.items() if p is None]
            if unsolved:
                raise SolverError(
                    f"Probability solver left deadlines {unsolved} unsolved for task {self._name}"
                )
            self._solved = True
            log("Task %s solved: %s", self._name, dict(self._deadlines.items()))

    def get_probability(self, deadline: int) -> float:
        """Return the probability of respecting ``deadline``.

        Triggers ``compute_probability`` if the cache is not valid.

        Raises:
            NotFound: If the deadline has not been registered.
        """
        with self._lock:
            if not self._solved:
                self.compute_probability()
            if deadline not in self._deadlines:
                raise NotFound(f"Deadline {deadline} does not exist for task {self._name}")
            return self._deadlines.get(deadline)

    def probabilities(self) -> Dict[int, float]:
        """Return all deadline probabilities, solving first if needed."""
        with self._lock:
            if not self._solved:
                self.compute_probability()
            return dict(self._deadlines.items())

    def set_qos_function(self, qos_function: QoSFun, deadline: int) -> None:
        """Attach a QoS function evaluated on the probability of ``deadline``."""
        with self._lock:
            if deadline not in self._deadlines:
                raise NotFound(f"Deadline {deadline} does not exist for task {self._name}")
            self._qos_function = qos_function
            self._qos_deadline = deadline

    def get_qos_function(self) -> Optional[QoSFun]:
        return self._qos_function

    @property
    def qos_deadline(self) -> Optional[int]:
        return self._qos_deadline

    def get_qos(self) -> float:
        with self._lock:
            if self._qos_function is None:
                raise PreconditionViolation(f"QoS function unset for task {self._name}")
            return self._qos_function.eval(self.get_probability(self._qos_deadline))

    def _invalidate(self) -> None:
        self._solved = False
        self._deadlines.clear_probabilities()

    def __repr__(self) -> str:
        timing = f"period={self._period}" if self._periodic else "aperiodic"
        params = ", ".join(f"{k}={v}" for k, v in self.scheduling_parameters().items())
        return f"{type(self).__name__}({self._name}, {timing}, {params})"


class FixedPriorityTaskDescriptor(GenericTaskDescriptor):
    """Task scheduled with fixed priorities (0..99)."""

    def __init__(
        self,
        name: str,
        computation_time: Pmf,
        priority: int,
        interarrival_time: Optional[Pmf] = None,
        period: Optional[int] = None,
        deadline_step: int = 0,
    ) -> None:
        self._check_priority(name, priority)
        super().__init__(name, computation_time, interarrival_time, period, deadline_step)
        self._priority = priority

    @staticmethod
    def _check_priority(name: str, priority: int) -> None:
        if not _is_int(priority) or not MIN_PRIORITY <= priority <= MAX_PRIORITY:
            raise InvalidArgument(f"Priority out of range for task {name}: {priority!r}")

    @property
    def policy(self) -> str:
        return "fixed_priority"

    def scheduling_parameters(self) -> Dict[str, Any]:
        return {"priority": self._priority}

    def get_priority(self) -> int:
        return self._priority

    def set_priority(self, priority: int) -> int:
        """Set the priority and return the previous one."""
        self._check_priority(self._name, priority)
        with self._lock:
            old_priority = self._priority
            if priority != old_priority:
                self._priority = priority
                self._invalidate()
            return old_priority


class ResourceReservationTaskDescriptor(GenericTaskDescriptor):
    """Task scheduled through a reservation of ``budget`` every ``server_period``."""

    def __init__(
        self,
        name: str,
        computation_time: Pmf,
        budget: int,
        server_period: int,
        interarrival_time: Optional[Pmf] = None,
        period: Optional[int] = None,
        deadline_step: int = 0,
    ) -> None:
        self._check_reservation(name, budget, server_period)
        super().__init__(name, computation_time, interarrival_time, period, deadline_step)
        self._budget = budget
        self._server_period = server_period

    @staticmethod
    def _check_reservation(name: str, budget: int, server_period: int) -> None:
        if not _is_int(budget) or budget <= 0:
            raise InvalidArgument(f"Budget must be a positive integer for task {name}, got {budget!r}")
        if not _is_int(server_period) or server_period <= 0:
            raise InvalidArgument(
                f"Server period must be a positive integer for task {name}, got {server_period!r}"
            )
        if budget / server_period > 1.0:
            raise InvalidArgument(
                f"Server period too small for task {name}: budget {budget} > period {server_period}"
            )

    @property
    def policy(self) -> str:
        return "resource_reservation"

    def scheduling_parameters(self) -> Dict[str, Any]:
        return {"budget": self._budget, "server_period": self._server_period}

    @property
    def bandwidth(self) -> float:
        """Fraction of the processor reserved for the task (Q / Ts)."""
        return self._budget / self._server_period

    def get_budget(self) -> int:
        return self._budget

    def get_server_period(self) -> int:
        return self._server_period

    def set_budget(self, budget: int) -> int:
        """Set the budget and return the previous one."""
        self._check_reservation(self._name, budget, self._server_period)
        with self._lock:
            old_budget = self._budget
            if budget != old_budget:
                self._budget = budget
                self._invalidate()
            return old_budget

    def set_server_period(self, server_period: int) -> int:
        """Set the server period and return the previous one."""
        self._check_reservation(self._name, self._budget, server_period)
        with self._lock:
            old_period = self._server_period
            if server_period != old_period:
                self._server_period = server_period
                self._invalidate()
            return old_period
