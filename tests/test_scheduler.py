"""
UNIT TEST: CADENCE SCHEDULER & RUNTIME KERNEL
"""

import io
import shutil
import tempfile
import unittest
import logging
import sys
import os

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from nexus.core.config import ConfigurationError, build_settings
from nexus.core.scheduler import CadenceScheduler
from nexus.hardware.simulator import SimulationIntegrityError
from nexus.main import NexusKernel, main


class FakeTime:
    """Clock and sleep sharing one virtual timeline (integer units)."""
    def __init__(self):
        self.now = 0
        self.sleeps = []

    def clock(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


class TestCadenceScheduler(unittest.TestCase):

    def setUp(self):
        logging.disable(logging.CRITICAL)
        self.time = FakeTime()
        self.sched = CadenceScheduler(clock=self.time.clock, sleep=self.time.sleep)
        self.calls = []

    def tearDown(self):
        logging.disable(logging.NOTSET)

    def _task(self, name):
        return lambda: self.calls.append((name, self.time.now))

    def test_cadences_fire_in_ratio(self):
        self.sched.every(1, "fast", self._task("fast"))
        self.sched.every(10, "medium", self._task("medium"))
        self.sched.every(20, "ai", self._task("ai"))
        self.sched.run(max_runtime_s=100)

        counts = {name: sum(1 for n, _ in self.calls if n == name) for name in ("fast", "medium", "ai")}
        self.assertEqual(counts, {"fast": 99, "medium": 9, "ai": 4})

    def test_nothing_runs_before_first_interval(self):
        self.sched.every(5, "fast", self._task("fast"))
        self.assertEqual(self.sched.run_pending(4), 0)
        self.assertEqual(self.sched.run_pending(5), 1)
        self.assertEqual(self.calls, [("fast", 0)])

    def test_registration_order_within_a_tick(self):
        self.sched.every(2, "step", self._task("step"))
        self.sched.every(2, "infer", self._task("infer"))
        self.sched.run_pending(2)
        self.assertEqual([n for n, _ in self.calls], ["step", "infer"])

    def test_stop_from_inside_a_task(self):
        def halt():
            self.calls.append(("halt", self.time.now))
            self.sched.stop()

        self.sched.every(3, "halt", halt)
        self.sched.run()
        self.assertEqual(self.calls, [("halt", 3)])
        self.assertFalse(self.sched.running)

    def test_task_failure_propagates(self):
        def boom():
            raise SimulationIntegrityError("nan rpm")

        self.sched.every(1, "boom", boom)
        with self.assertRaises(SimulationIntegrityError):
            self.sched.run(max_runtime_s=10)
        self.assertFalse(self.sched.running)

    def test_rejects_non_positive_interval(self):
        with self.assertRaises(ValueError):
            self.sched.every(0, "bad", self._task("bad"))

    def test_empty_scheduler_returns(self):
        self.sched.run()
        self.assertEqual(self.time.sleeps, [])


class TestNexusKernel(unittest.TestCase):

    def setUp(self):
        logging.disable(logging.CRITICAL)
        self.out = io.StringIO()
        settings = build_settings({
            'simulator': {'seed': 99},
            'dashboard': {'clear_screen': False},
        })
        self.kernel = NexusKernel(settings, out=self.out)

    def tearDown(self):
        logging.disable(logging.NOTSET)

    def test_registers_three_cadences(self):
        tasks = {t.name: t.interval_s for t in self.kernel.scheduler.tasks}
        self.assertEqual(tasks, {"fast": 0.1, "medium": 1.0, "ai": 2.0})

    def test_fast_tick_steps_and_renders(self):
        for _ in range(25):
            self.kernel.update_fast()
        self.assertEqual(self.kernel.sim.step_count, 25)
        self.assertEqual(self.kernel.frame, self.kernel.sim.current_state())
        self.assertIn("NEXUS AI LIVE MONITOR", self.out.getvalue())
        self.assertIn("Warming up inference engine", self.out.getvalue())

    def test_ai_tick_populates_panels(self):
        for _ in range(40):
            self.kernel.update_fast()
        self.kernel.update_medium()
        self.kernel.update_ai()
        self.assertIsNotNone(self.kernel.last_result)
        self.assertIsNotNone(self.kernel.last_advisory)
        self.assertLess(self.kernel.ml.rul_km, 15000.0)

        screen = self.kernel.render_dashboard()
        self.assertIn("HEALTH:", screen)
        self.assertIn(self.kernel.last_result.driver.driver_class, screen)
        self.assertIn(self.kernel.last_advisory.monitor.status, screen)

    def test_seeded_runs_repeat(self):
        settings = build_settings({'simulator': {'seed': 99}, 'dashboard': {'enabled': False}})
        twin = NexusKernel(settings, out=io.StringIO())
        for _ in range(200):
            self.kernel.update_fast()
            twin.update_fast()
        a, b = self.kernel.sim.current_state(), twin.sim.current_state()
        self.assertEqual((a.rpm, a.speed, a.throttle, a.load), (b.rpm, b.speed, b.throttle, b.load))


class TestEntryPoint(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmp)

    def test_startup_failure_is_logged_as_fatal(self):
        """
        Case: a bad settings file passed to main() is reported at CRITICAL
        and still propagates to the caller.
        """
        path = os.path.join(self.tmp, "settings.yaml")
        with open(path, 'w') as f:
            f.write("scheduler:\n  fast_interval_ms: 0\n")

        with self.assertLogs("NEXUS.MAIN", level="CRITICAL") as logs:
            with self.assertRaises(ConfigurationError):
                main([path])
        self.assertIn("FATAL SYSTEM ERROR", logs.output[0])


if __name__ == '__main__':
    unittest.main()
