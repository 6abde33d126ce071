"""
MODULE: CADENCE_SCHEDULER

DESCRIPTION:
    Single-threaded, cooperative replacement for browser interval timers.
    Every task runs to completion before the next one starts, so readers
    never observe a half-finished simulator step.
"""

import time
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

logger = logging.getLogger("NEXUS.SCHED")


@dataclass
class PeriodicTask:
    name: str
    interval_s: float
    callback: Callable[[], None]
    next_due: float = 0.0
    runs: int = 0


class CadenceScheduler:
    def __init__(self, clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep):
        self.clock = clock
        self.sleep = sleep
        self.tasks: List[PeriodicTask] = []
        self.running = False

    def every(self, interval_s: float, name: str, callback: Callable[[], None]) -> PeriodicTask:
        if interval_s <= 0:
            raise ValueError(f"Interval for '{name}' must be positive")
        # First run is one interval out, like setInterval
        task = PeriodicTask(name, interval_s, callback, next_due=self.clock() + interval_s)
        self.tasks.append(task)
        logger.debug(f"[SCHED] Registered '{name}' every {interval_s * 1000:.0f}ms")
        return task

    def run_pending(self, now: Optional[float] = None) -> int:
        """Runs each due task once, in registration order. Returns the count run."""
        now = self.clock() if now is None else now
        ran = 0
        for task in self.tasks:
            if task.next_due <= now:
                try:
                    task.callback()
                except Exception:
                    logger.error(f"[SCHED] Task '{task.name}' crashed", exc_info=True)
                    raise
                task.runs += 1
                task.next_due = now + task.interval_s
                ran += 1
        return ran

    def next_due(self) -> Optional[float]:
        if not self.tasks:
            return None
        return min(t.next_due for t in self.tasks)

    def stop(self):
        self.running = False

    def run(self, max_runtime_s: Optional[float] = None):
        """Blocks until stop() is called or the runtime budget elapses."""
        self.running = True
        started = self.clock()
        try:
            while self.running:
                now = self.clock()
                if max_runtime_s is not None and now - started >= max_runtime_s:
                    logger.info(f"[SCHED] Runtime limit {max_runtime_s}s reached.")
                    break
                self.run_pending(now)
                due = self.next_due()
                if due is None:
                    break
                self.sleep(max(0.0, due - self.clock()))
        finally:
            self.running = False
