"""Unit tests for task descriptors and lazy probability computation."""

import threading
import unittest

from prosit.deadlines import DeadlineProbabilityMap
from prosit.exceptions import (
    DuplicateEntry,
    InvalidArgument,
    NotFound,
    PreconditionViolation,
    SolverError,
)
from prosit.models import (
    FixedPriorityTaskDescriptor,
    ResourceReservationTaskDescriptor,
)
from prosit.pmf import Pmf
from prosit.qos import LinearQoSFun
from prosit.solver import ProbabilitySolver


class CountingSolver(ProbabilitySolver):
    """Solver assigning P{d} = d / (d + step) and counting its calls."""

    def __init__(self, succeed=True):
        self.succeed = succeed
        self.registered = []
        self.calls = 0

    def register_task(self, task):
        self.registered.append(task)

    def solve(self, deadlines, deadline_step):
        self.calls += 1
        if not self.succeed:
            return False
        for d in deadlines:
            deadlines.set_probability(d, d / (d + deadline_step))
        return True


class LazySolver(CountingSolver):
    """Solver that claims success without filling in probabilities."""

    def solve(self, deadlines, deadline_step):
        self.calls += 1
        return True


class BrokenSolver(CountingSolver):
    def solve(self, deadlines, deadline_step):
        raise RuntimeError("matrix is singular")


class RejectingSolver(CountingSolver):
    """Solver refusing every task registration."""

    def register_task(self, task):
        raise RuntimeError("task set is full")


class OutOfRangeSolver(CountingSolver):
    """Solver producing a value that is not a probability."""

    def solve(self, deadlines, deadline_step):
        self.calls += 1
        for d in deadlines:
            deadlines.set_probability(d, 1.5)
        return True


def make_computation_time():
    pmf = Pmf()
    pmf.set(2, 0.5)
    pmf.set(4, 0.5)
    return pmf


def make_fp_task(**kwargs):
    params = dict(period=10, deadline_step=10)
    params.update(kwargs)
    return FixedPriorityTaskDescriptor("τ1", make_computation_time(), 5, **params)


class TestDeadlineProbabilityMap(unittest.TestCase):
    """Test the deadline map used by task descriptors."""

    def test_insert_unsolved(self):
        """Test that inserted deadlines start unsolved."""
        dmap = DeadlineProbabilityMap()
        self.assertTrue(dmap.insert(20))
        self.assertIsNone(dmap.get(20))

    def test_insert_duplicate(self):
        """Test that a duplicate insert returns False and keeps the map."""
        dmap = DeadlineProbabilityMap()
        dmap.insert(20)
        dmap.set_probability(20, 0.4)
        self.assertFalse(dmap.insert(20))
        self.assertEqual(dmap.get(20), 0.4)

    def test_ascending_order(self):
        """Test that iteration is in ascending deadline order."""
        dmap = DeadlineProbabilityMap()
        for d in (30, 10, 20):
            dmap.insert(d)
        self.assertEqual(list(dmap), [10, 20, 30])

    def test_set_unknown_deadline(self):
        """Test that solvers cannot add deadlines."""
        dmap = DeadlineProbabilityMap()
        with self.assertRaises(KeyError):
            dmap.set_probability(10, 0.5)

    def test_set_invalid_probability(self):
        """Test that solvers can only store finite values in [0, 1]."""
        dmap = DeadlineProbabilityMap()
        dmap.insert(10)
        for bad in (1.5, -0.1, float("nan"), float("inf")):
            with self.assertRaises(SolverError):
                dmap.set_probability(10, bad)
        self.assertIsNone(dmap.get(10))


class TestGenericTaskDescriptor(unittest.TestCase):
    """Test the behaviour shared by every task descriptor."""

    def test_periodic_task(self):
        """Test that a periodic task synthesizes a degenerate interarrival pmf."""
        task = make_fp_task()
        self.assertTrue(task.is_periodic())
        self.assertEqual(task.get_period(), 10)
        self.assertAlmostEqual(task.utilization, 0.3, places=6)

    def test_periodic_interarrival_fails(self):
        """Test that a periodic task refuses interarrival access."""
        task = make_fp_task()
        with self.assertRaises(PreconditionViolation) as ctx:
            task.get_interarrival_time()
        self.assertIn("τ1", str(ctx.exception))

    def test_zero_interarrival_rejected(self):
        """Test that interarrival times must be positive."""
        with self.assertRaises(InvalidArgument) as ctx:
            FixedPriorityTaskDescriptor(
                "τ0", make_computation_time(), 1, interarrival_time=Pmf.deterministic(0)
            )
        self.assertIn("τ0", str(ctx.exception))
        with self.assertRaises(InvalidArgument):
            FixedPriorityTaskDescriptor("τ0", make_computation_time(), 1, interarrival_time=Pmf())

    def test_aperiodic_period_fails(self):
        """Test that an aperiodic task refuses period access."""
        task = FixedPriorityTaskDescriptor(
            "τ2", make_computation_time(), 3, interarrival_time=Pmf.deterministic(20)
        )
        self.assertFalse(task.is_periodic())
        self.assertEqual(task.get_interarrival_time().get(20), 1.0)
        with self.assertRaises(PreconditionViolation):
            task.get_period()

    def test_period_xor_interarrival(self):
        """Test that exactly one of period and interarrival time is required."""
        with self.assertRaises(InvalidArgument):
            FixedPriorityTaskDescriptor("τ", make_computation_time(), 1)
        with self.assertRaises(InvalidArgument):
            FixedPriorityTaskDescriptor(
                "τ", make_computation_time(), 1,
                interarrival_time=Pmf.deterministic(10), period=10,
            )

    def test_insert_deadline(self):
        """Test inserting valid deadlines."""
        task = make_fp_task()
        task.insert_deadline(20)
        task.insert_deadline(10)
        task.insert_deadline(0)
        self.assertEqual(task.deadlines(), [0, 10, 20])
        self.assertFalse(task.solved)

    def test_insert_non_multiple(self):
        """Test that deadlines must be multiples of the step."""
        task = make_fp_task()
        task.insert_deadline(10)
        with self.assertRaises(InvalidArgument):
            task.insert_deadline(15)
        self.assertEqual(task.deadlines(), [10])

    def test_insert_duplicate(self):
        """Test that a deadline cannot be inserted twice."""
        task = make_fp_task()
        task.insert_deadline(10)
        with self.assertRaises(DuplicateEntry):
            task.insert_deadline(10)
        self.assertEqual(task.deadlines(), [10])

    def test_insert_negative(self):
        """Test that negative deadlines are rejected."""
        task = make_fp_task()
        with self.assertRaises(InvalidArgument):
            task.insert_deadline(-10)

    def test_insert_without_step(self):
        """Test that inserting before setting a step fails."""
        task = make_fp_task(deadline_step=0)
        with self.assertRaises(PreconditionViolation):
            task.insert_deadline(10)

    def test_set_deadline_step(self):
        """Test that a new step must divide the registered deadlines."""
        task = make_fp_task(deadline_step=5)
        task.insert_deadline(20)
        task.insert_deadline(30)
        with self.assertRaises(InvalidArgument):
            task.set_deadline_step(20)
        self.assertEqual(task.deadline_step, 5)
        task.set_deadline_step(10)
        self.assertEqual(task.deadline_step, 10)
        with self.assertRaises(InvalidArgument):
            task.set_deadline_step(0)

    def test_compute_without_solver(self):
        """Test that computing without a solver fails."""
        task = make_fp_task()
        task.insert_deadline(10)
        with self.assertRaises(PreconditionViolation):
            task.compute_probability()

    def test_compute_without_deadlines(self):
        """Test that computing without deadlines fails."""
        task = make_fp_task()
        task.set_solver(CountingSolver())
        with self.assertRaises(PreconditionViolation):
            task.compute_probability()

    def test_set_solver_registers_task(self):
        """Test that attaching a solver registers the task with it."""
        task = make_fp_task()
        solver = CountingSolver()
        task.set_solver(solver)
        self.assertEqual(solver.registered, [task])
        self.assertIs(task.get_solver(), solver)

    def test_probability_cached(self):
        """Test that two reads without mutation solve only once."""
        task = make_fp_task()
        task.insert_deadline(10)
        task.insert_deadline(20)
        solver = CountingSolver()
        task.set_solver(solver)

        self.assertAlmostEqual(task.get_probability(10), 0.5, places=6)
        self.assertEqual(solver.calls, 1)
        self.assertAlmostEqual(task.get_probability(20), 2 / 3, places=6)
        self.assertEqual(solver.calls, 1)
        self.assertTrue(task.solved)

    def test_compute_probability_idempotent(self):
        """Test that compute_probability is a no-op when already solved."""
        task = make_fp_task()
        task.insert_deadline(10)
        solver = CountingSolver()
        task.set_solver(solver)
        task.compute_probability()
        task.compute_probability()
        self.assertEqual(solver.calls, 1)

    def test_insert_invalidates(self):
        """Test that inserting a deadline forces a new solve."""
        task = make_fp_task()
        task.insert_deadline(10)
        solver = CountingSolver()
        task.set_solver(solver)
        task.get_probability(10)
        task.insert_deadline(30)
        self.assertFalse(task.solved)
        self.assertAlmostEqual(task.get_probability(30), 0.75, places=6)
        self.assertEqual(solver.calls, 2)

    def test_new_solver_invalidates(self):
        """Test that attaching a solver always forces a new solve."""
        task = make_fp_task()
        task.insert_deadline(10)
        first = CountingSolver()
        task.set_solver(first)
        task.get_probability(10)

        second = CountingSolver()
        task.set_solver(second)
        task.get_probability(10)
        self.assertEqual(first.calls, 1)
        self.assertEqual(second.calls, 1)

        task.set_solver(second)
        task.get_probability(10)
        self.assertEqual(second.calls, 2)
        self.assertEqual(second.registered, [task, task])

    def test_unknown_deadline(self):
        """Test that reading an unregistered deadline fails."""
        task = make_fp_task()
        task.insert_deadline(10)
        task.set_solver(CountingSolver())
        with self.assertRaises(NotFound):
            task.get_probability(20)

    def test_solver_failure(self):
        """Test that a solver failure propagates and keeps the task unsolved."""
        task = make_fp_task()
        task.insert_deadline(10)
        task.set_solver(CountingSolver(succeed=False))
        with self.assertRaises(SolverError):
            task.get_probability(10)
        self.assertFalse(task.solved)

    def test_solver_incomplete(self):
        """Test that a solver must fill in every deadline."""
        task = make_fp_task()
        task.insert_deadline(10)
        task.set_solver(LazySolver())
        with self.assertRaises(SolverError):
            task.compute_probability()
        self.assertFalse(task.solved)

    def test_rejected_registration_keeps_solver(self):
        """Test that a failed registration leaves the previous solver attached."""
        task = make_fp_task()
        task.insert_deadline(10)
        solver = CountingSolver()
        task.set_solver(solver)
        task.get_probability(10)

        with self.assertRaises(RuntimeError):
            task.set_solver(RejectingSolver())
        self.assertIs(task.get_solver(), solver)
        self.assertTrue(task.solved)
        task.get_probability(10)
        self.assertEqual(solver.calls, 1)

    def test_rejected_registration_on_fresh_task(self):
        """Test that a task without solver stays without one."""
        task = make_fp_task()
        with self.assertRaises(RuntimeError):
            task.set_solver(RejectingSolver())
        self.assertIsNone(task.get_solver())

    def test_solver_out_of_range(self):
        """Test that a solver producing a non-probability fails the solve."""
        task = make_fp_task()
        task.insert_deadline(10)
        task.set_solver(OutOfRangeSolver())
        with self.assertRaises(SolverError):
            task.get_probability(10)
        self.assertFalse(task.solved)

    def test_solver_exception_propagates(self):
        """Test that solver exceptions reach the caller unchanged."""
        task = make_fp_task()
        task.insert_deadline(10)
        task.set_solver(BrokenSolver())
        with self.assertRaises(RuntimeError):
            task.get_probability(10)
        self.assertFalse(task.solved)

    def test_probabilities_snapshot(self):
        """Test reading every probability at once."""
        task = make_fp_task()
        task.insert_deadline(10)
        task.insert_deadline(30)
        task.set_solver(CountingSolver())
        probabilities = task.probabilities()
        self.assertEqual(sorted(probabilities), [10, 30])
        self.assertAlmostEqual(probabilities[30], 0.75, places=6)

    def test_qos(self):
        """Test QoS evaluation on the probability of the QoS deadline."""
        task = make_fp_task()
        task.insert_deadline(10)
        task.insert_deadline(30)
        task.set_solver(CountingSolver())
        with self.assertRaises(PreconditionViolation):
            task.get_qos()
        task.set_qos_function(LinearQoSFun(2.0, 0.5, 0.9, 1.0), 30)
        # P{30} = 0.75 -> 2 * (0.75 - 0.5) + 1
        self.assertAlmostEqual(task.get_qos(), 1.5, places=6)

    def test_qos_unknown_deadline(self):
        """Test that the QoS deadline must be registered."""
        task = make_fp_task()
        with self.assertRaises(NotFound):
            task.set_qos_function(LinearQoSFun(1.0, 0.0, 1.0), 10)

    def test_verbose_flag(self):
        """Test that set_verbose returns the previous flag."""
        task = make_fp_task()
        self.assertFalse(task.set_verbose(True))
        self.assertTrue(task.set_verbose(False))

    def test_concurrent_readers_solve_once(self):
        """Test that concurrent first reads trigger a single solve."""
        task = make_fp_task()
        for d in (10, 20, 30, 40):
            task.insert_deadline(d)
        solver = CountingSolver()
        task.set_solver(solver)

        results = []
        threads = [
            threading.Thread(target=lambda d=d: results.append(task.get_probability(d)))
            for d in (10, 20, 30, 40) * 4
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(solver.calls, 1)
        self.assertEqual(len(results), 16)

    def test_concurrent_qos_solve_once(self):
        """Test that concurrent QoS reads trigger a single solve."""
        task = make_fp_task()
        task.insert_deadline(10)
        solver = CountingSolver()
        task.set_solver(solver)
        task.set_qos_function(LinearQoSFun(1.0, 0.0, 1.0), 10)

        results = []
        threads = [threading.Thread(target=lambda: results.append(task.get_qos())) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(solver.calls, 1)
        self.assertEqual(len(results), 8)
        for value in results:
            self.assertAlmostEqual(value, 0.5, places=9)

    def test_set_qos_function_failure_keeps_previous(self):
        """Test that an unknown QoS deadline leaves the old function attached."""
        task = make_fp_task()
        task.insert_deadline(10)
        qos = LinearQoSFun(1.0, 0.0, 1.0)
        task.set_qos_function(qos, 10)
        with self.assertRaises(NotFound):
            task.set_qos_function(LinearQoSFun(2.0, 0.0, 1.0), 20)
        self.assertIs(task.get_qos_function(), qos)
        self.assertEqual(task.qos_deadline, 10)


class TestFixedPriorityTaskDescriptor(unittest.TestCase):
    """Test fixed priority task parameters."""

    def test_priority_range(self):
        """Test that priorities outside 0..99 are rejected."""
        FixedPriorityTaskDescriptor("τ", make_computation_time(), 0, period=10)
        FixedPriorityTaskDescriptor("τ", make_computation_time(), 99, period=10)
        with self.assertRaises(InvalidArgument):
            FixedPriorityTaskDescriptor("τ", make_computation_time(), 100, period=10)
        with self.assertRaises(InvalidArgument):
            FixedPriorityTaskDescriptor("τ", make_computation_time(), -1, period=10)

    def test_set_priority(self):
        """Test that set_priority returns the old priority."""
        task = make_fp_task()
        self.assertEqual(task.set_priority(7), 5)
        self.assertEqual(task.get_priority(), 7)
        self.assertEqual(task.policy, "fixed_priority")
        self.assertEqual(task.scheduling_parameters(), {"priority": 7})

    def test_set_priority_out_of_range(self):
        """Test that an invalid priority leaves the old one in place."""
        task = make_fp_task()
        with self.assertRaises(InvalidArgument):
            task.set_priority(120)
        self.assertEqual(task.get_priority(), 5)

    def test_set_priority_invalidates(self):
        """Test that changing the priority forces a new solve."""
        task = make_fp_task()
        task.insert_deadline(10)
        solver = CountingSolver()
        task.set_solver(solver)
        task.get_probability(10)
        task.set_priority(5)
        self.assertTrue(task.solved)
        task.set_priority(6)
        self.assertFalse(task.solved)
        task.get_probability(10)
        self.assertEqual(solver.calls, 2)


class TestResourceReservationTaskDescriptor(unittest.TestCase):
    """Test resource reservation task parameters."""

    def make_task(self, budget=5, server_period=10):
        return ResourceReservationTaskDescriptor(
            "rr", make_computation_time(), budget, server_period,
            period=40, deadline_step=40,
        )

    def test_valid_reservation(self):
        """Test creating a valid reservation."""
        task = self.make_task()
        self.assertEqual(task.get_budget(), 5)
        self.assertEqual(task.get_server_period(), 10)
        self.assertAlmostEqual(task.bandwidth, 0.5, places=6)
        self.assertEqual(task.policy, "resource_reservation")

    def test_full_bandwidth(self):
        """Test that Q = Ts is accepted."""
        task = self.make_task(budget=10, server_period=10)
        self.assertAlmostEqual(task.bandwidth, 1.0, places=6)

    def test_overloaded_reservation(self):
        """Test that Q / Ts > 1 is rejected at construction."""
        with self.assertRaises(InvalidArgument):
            self.make_task(budget=11, server_period=10)

    def test_non_positive_parameters(self):
        """Test that budget and server period must be positive."""
        with self.assertRaises(InvalidArgument):
            self.make_task(budget=0)
        with self.assertRaises(InvalidArgument):
            self.make_task(server_period=0)

    def test_set_budget(self):
        """Test budget updates and their validation."""
        task = self.make_task()
        self.assertEqual(task.set_budget(8), 5)
        with self.assertRaises(InvalidArgument):
            task.set_budget(11)
        self.assertEqual(task.get_budget(), 8)
        self.assertEqual(task.get_server_period(), 10)

    def test_set_server_period(self):
        """Test server period updates and their validation."""
        task = self.make_task()
        self.assertEqual(task.set_server_period(20), 10)
        with self.assertRaises(InvalidArgument):
            task.set_server_period(4)
        self.assertEqual(task.get_server_period(), 20)
        self.assertEqual(task.get_budget(), 5)

    def test_reservation_change_invalidates(self):
        """Test that changing the reservation forces a new solve."""
        task = self.make_task()
        task.insert_deadline(40)
        solver = CountingSolver()
        task.set_solver(solver)
        task.get_probability(40)
        task.set_budget(6)
        task.get_probability(40)
        task.set_server_period(12)
        task.get_probability(40)
        self.assertEqual(solver.calls, 3)


if __name__ == "__main__":
    unittest.main()
