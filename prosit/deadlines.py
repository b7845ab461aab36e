"""Ordered map from deadlines to the probability of meeting them."""

import math
from typing import Dict, Iterator, List, Optional, Tuple

from prosit.exceptions import SolverError


class DeadlineProbabilityMap:
    """Deadlines (non-negative integers) mapped to probabilities.

    A probability of ``None`` marks a deadline that has not been solved yet.
    Iteration always follows ascending deadline order.
    """

    def __init__(self) -> None:
        self._entries: Dict[int, Optional[float]] = {}

    def insert(self, deadline: int) -> bool:
        """Add ``deadline`` with an unsolved probability.

        Returns:
            False if the deadline was already present (the map is unchanged).
        """
        if deadline in self._entries:
            return False
        self._entries[deadline] = None
        return True

    def set_probability(self, deadline: int, probability: float) -> None:
        """Store the solved probability for an existing deadline.

        Raises:
            KeyError: If the deadline is not in the map.
            SolverError: If ``probability`` is not a finite value in [0, 1].
        """
        if deadline not in self._entries:
            raise KeyError(deadline)
        if not math.isfinite(probability) or not 0.0 <= probability <= 1.0:
            raise SolverError(f"Probability {probability} out of range for deadline {deadline}")
        self._entries[deadline] = probability

    def get(self, deadline: int) -> Optional[float]:
        return self._entries[deadline]

    def clear_probabilities(self) -> None:
        for deadline in self._entries:
            self._entries[deadline] = None

    def deadlines(self) -> List[int]:
        return sorted(self._entries)

    def items(self) -> List[Tuple[int, Optional[float]]]:
        return [(d, self._entries[d]) for d in self.deadlines()]

    def is_empty(self) -> bool:
        return not self._entries

    def __contains__(self, deadline: object) -> bool:
        return deadline in self._entries

    def __iter__(self) -> Iterator[int]:
        return iter(self.deadlines())

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"DeadlineProbabilityMap({dict(self.items())!r})"
