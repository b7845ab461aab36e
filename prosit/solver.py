"""Interface between task descriptors and probability solvers.

The numerical algorithms live outside this package. A solver only has to
accept task registrations and fill in the probabilities of a deadline map.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from prosit.deadlines import DeadlineProbabilityMap

if TYPE_CHECKING:
    from prosit.models import GenericTaskDescriptor


class ProbabilitySolver(ABC):
    """Computes the probability of respecting a set of deadlines."""

    @abstractmethod
    def register_task(self, task: "GenericTaskDescriptor") -> None:
        """Record that ``task`` may later ask this solver for a solution.

        Called again whenever a task is re-attached, so implementations must
        accept repeated registrations.
        """

    @abstractmethod
    def solve(self, deadlines: DeadlineProbabilityMap, deadline_step: int) -> bool:
        """Fill in the probability of every deadline in ``deadlines``.

        Args:
            deadlines: Map of the deadlines to solve, updated in place.
            deadline_step: Granularity every deadline is a multiple of.

        Returns:
            True on success, False if no solution could be computed.
        """
