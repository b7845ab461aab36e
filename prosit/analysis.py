"""Quality-of-service evaluation of a set of task descriptors.

These helpers are what a parameter optimizer calls after applying a candidate
assignment (priorities, budgets, server periods):

    Q = sum_i q_i(P_i{d_i})

where q_i is the QoS function attached to task i and P_i{d_i} is the
probability that task i respects its QoS deadline d_i. Probabilities are
computed lazily, so only tasks whose parameters changed since the last
evaluation go back to their solver.
"""

import logging
from typing import Dict, Iterable, Mapping, Tuple

from prosit.exceptions import NotFound
from prosit.models import GenericTaskDescriptor

LOGGER = logging.getLogger(__name__)


def evaluate_qos(tasks: Iterable[GenericTaskDescriptor]) -> Tuple[float, Dict[str, float]]:
    """Evaluate the QoS of every task and their sum.

    Args:
        tasks: Task descriptors, each with a QoS function attached.

    Returns:
        A tuple of (total, per_task) where per_task maps task names to the
        QoS value of each task.

    Raises:
        PreconditionViolation: If a task has no QoS function or no solver.
    """
    per_task: Dict[str, float] = {}
    total = 0.0

    for task in tasks:
        qos = task.get_qos()
        per_task[task.name] = qos
        total += qos

    LOGGER.debug("Aggregate QoS %.6f over %d tasks", total, len(per_task))
    return total, per_task


def check_guarantees(
    tasks: Iterable[GenericTaskDescriptor],
    guarantees: Mapping[str, Tuple[int, float]],
) -> Tuple[bool, Dict[str, float]]:
    """Check probabilistic deadline guarantees.

    Args:
        tasks: Task descriptors to check.
        guarantees: Maps a task name to ``(deadline, min_probability)``: the
                    task must respect ``deadline`` with at least that
                    probability. Tasks without an entry are not checked.

    Returns:
        A tuple of (satisfied, probabilities) where probabilities maps each
        checked task name to the probability of its guaranteed deadline.

    Raises:
        NotFound: If a guarantee names a task that is not in ``tasks``.
    """
    by_name = {task.name: task for task in tasks}
    probabilities: Dict[str, float] = {}
    satisfied = True

    for name, (deadline, min_probability) in guarantees.items():
        if name not in by_name:
            raise NotFound(f"Guarantee defined for unknown task {name}")
        probability = by_name[name].get_probability(deadline)
        probabilities[name] = probability
        if probability < min_probability:
            LOGGER.info(
                "Task %s misses its guarantee: P{d=%d} = %.6f < %.6f",
                name, deadline, probability, min_probability,
            )
            satisfied = False

    return satisfied, probabilities
