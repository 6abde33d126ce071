"""
MODULE: TELEMETRY_SIMULATOR
PROFILE: NEXUS_DEMO_VEHICLE (VIRTUAL)

DESCRIPTION:
    A virtual OBD-II data source for the NEXUS dashboard when no vehicle is
    attached.

    The simulator owns a single vehicle record and a shadow "target" record.
    A debounced, probabilistic drive-mode machine pushes the targets up
    (ACCELERATING) or down (DECELERATING), and every channel chases its target
    with its own smoothing factor, so throttle reacts fastest and road speed
    slowest. Battery voltage is an independent alternator ripple.

    Each step appends the smoothed channels to fixed-length rolling buffers
    which feed the inference engine.
"""

import math
import time
import random
import logging
from collections import deque
from dataclasses import dataclass, asdict, replace
from typing import Callable, Dict, Optional, Tuple

# Configure module-level logger
logger = logging.getLogger("NEXUS.SIM")

HISTORY_SIZE = 100

# Channels recorded in the rolling history (battery is not tracked)
HISTORY_CHANNELS = ("rpm", "speed", "load", "coolant", "throttle", "fuel_efficiency")

ACCELERATING = "ACCELERATING"
DECELERATING = "DECELERATING"


class SimulationIntegrityError(RuntimeError):
    """A simulation step produced a non-finite value."""


@dataclass
class VehicleState:
    rpm: float = 1000.0
    speed: float = 0.0           # km/h
    throttle: float = 0.0        # %
    load: float = 20.0           # %
    coolant: float = 90.0        # C
    battery: float = 13.8        # V
    fuel_efficiency: float = 8.5 # L/100km (lower = more efficient)

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class TelemetrySnapshot:
    """Read-only copy of the vehicle record handed to consumers."""
    rpm: float
    speed: float
    throttle: float
    load: float
    coolant: float
    battery: float
    fuel_efficiency: float

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)


class DriveModeMachine:
    """
    Two-state (ACCELERATING / DECELERATING) machine with a debounce.

    After more than `debounce_ticks` ticks in a mode, each tick flips with
    probability 1 - `flip_threshold`.
    """

    def __init__(self, rng: Optional[random.Random] = None,
                 debounce_ticks: int = 50, flip_threshold: float = 0.95,
                 initial_mode: str = DECELERATING):
        if initial_mode not in (ACCELERATING, DECELERATING):
            raise ValueError(f"Unknown drive mode: {initial_mode}")
        self.rng = rng or random.Random()
        self.debounce_ticks = debounce_ticks
        self.flip_threshold = flip_threshold
        self.mode = initial_mode
        self.ticks = 0

    @property
    def is_accelerating(self) -> bool:
        return self.mode == ACCELERATING

    def advance(self) -> bool:
        """Counts one tick. Returns True if the mode flipped."""
        self.ticks += 1
        if self.ticks > self.debounce_ticks and self.rng.random() > self.flip_threshold:
            self.mode = DECELERATING if self.is_accelerating else ACCELERATING
            self.ticks = 0
            logger.debug(f"[SIM] Drive mode -> {self.mode}")
            return True
        return False


class TelemetrySimulator:
    """
    The virtual engine. Single writer of the vehicle record and history.
    """

    # --- TARGET DYNAMICS (per step) ---
    # (increment, ceiling) while accelerating
    ACCEL_PROFILE = {
        'throttle': (2.0, 85.0),
        'rpm': (60.0, 5500.0),
        'speed': (0.8, 140.0),
        'load': (1.5, 95.0),
        'fuel_efficiency': (0.5, 25.0),   # High consumption
    }
    # (decrement, floor) while decelerating
    DECEL_PROFILE = {
        'throttle': (3.0, 0.0),
        'rpm': (80.0, 800.0),
        'speed': (0.4, 0.0),
        'load': (2.0, 15.0),
        'fuel_efficiency': (0.2, 4.5),    # Low consumption
    }

    RPM_JITTER = 15.0

    # Coolant creeps up under heavy load, otherwise relaxes to the thermostat floor
    COOLANT_HEAT_LOAD = 70.0
    COOLANT_HEAT_RATE = 0.02
    COOLANT_COOL_RATE = 0.01
    COOLANT_FLOOR = 88.0

    # --- SMOOTHING FACTORS (lerp alpha) ---
    # Throttle is a pedal (fast), speed carries vehicle inertia (slow)
    SMOOTHING = {
        'rpm': 0.08,
        'speed': 0.04,
        'throttle': 0.10,
        'load': 0.08,
        'coolant': 0.05,
        'fuel_efficiency': 0.05,
    }

    # Alternator ripple
    BATTERY_NOMINAL = 13.5
    BATTERY_RIPPLE = 0.2

    # Physical envelope of every bounded channel (coolant has no ceiling)
    BOUNDS = {
        'throttle': (0.0, 85.0),
        'rpm': (800.0, 5500.0),
        'speed': (0.0, 140.0),
        'load': (15.0, 95.0),
        'fuel_efficiency': (4.5, 25.0),
        'coolant': (88.0, math.inf),
    }

    def __init__(self, history_size: int = HISTORY_SIZE,
                 rng: Optional[random.Random] = None,
                 clock: Callable[[], float] = time.monotonic,
                 initial_state: Optional[VehicleState] = None):
        if history_size < 1:
            raise ValueError("history_size must be positive")
        self.rng = rng or random.Random()
        self.clock = clock
        self.start_time = clock()
        self.history_size = history_size

        self._state = replace(initial_state) if initial_state else VehicleState()
        self._target = replace(self._state)
        self.drive_mode = DriveModeMachine(self.rng)
        self.step_count = 0

        # Pre-filled so every window statistic has a full denominator from tick zero
        self._history: Dict[str, deque] = {
            ch: deque([getattr(self._state, ch)] * history_size, maxlen=history_size)
            for ch in HISTORY_CHANNELS
        }
        logger.info(f"[SIM] Virtual engine online. History depth: {history_size} samples.")

    @staticmethod
    def lerp(start: float, end: float, amt: float) -> float:
        return (1 - amt) * start + amt * end

    def _update_targets(self):
        t = self._target
        if self.drive_mode.is_accelerating:
            for field, (step, ceiling) in self.ACCEL_PROFILE.items():
                setattr(t, field, min(getattr(t, field) + step, ceiling))
        else:
            for field, (step, floor) in self.DECEL_PROFILE.items():
                setattr(t, field, max(getattr(t, field) - step, floor))

        # Zero-mean RPM jitter, re-clamped so the target stays inside the envelope
        rpm_lo, rpm_hi = self.BOUNDS['rpm']
        jitter = (self.rng.random() - 0.5) * 2 * self.RPM_JITTER
        t.rpm = min(max(t.rpm + jitter, rpm_lo), rpm_hi)

        if self._state.load > self.COOLANT_HEAT_LOAD:
            t.coolant += self.COOLANT_HEAT_RATE
        else:
            t.coolant = max(t.coolant - self.COOLANT_COOL_RATE, self.COOLANT_FLOOR)

    def step(self):
        """
        Advances the virtual engine by one tick.
        State and every history channel are updated together, or not at all.
        """
        self.drive_mode.advance()
        self._update_targets()

        new_state = replace(self._state)
        for field, alpha in self.SMOOTHING.items():
            setattr(new_state, field,
                    self.lerp(getattr(self._state, field), getattr(self._target, field), alpha))

        elapsed = self.clock() - self.start_time
        new_state.battery = self.BATTERY_NOMINAL + self.BATTERY_RIPPLE * math.sin(elapsed)

        bad = {k: v for k, v in new_state.as_dict().items() if not math.isfinite(v)}
        if bad:
            logger.critical(f"[SIM] Non-finite telemetry at step {self.step_count + 1}: {bad}")
            raise SimulationIntegrityError(f"Non-finite telemetry: {bad}")

        self._state = new_state
        for ch in HISTORY_CHANNELS:
            self._history[ch].append(getattr(new_state, ch))
        self.step_count += 1

    def current_state(self) -> TelemetrySnapshot:
        return TelemetrySnapshot(**self._state.as_dict())

    def target_state(self) -> TelemetrySnapshot:
        return TelemetrySnapshot(**self._target.as_dict())

    def history(self) -> Dict[str, Tuple[float, ...]]:
        return {ch: tuple(buf) for ch, buf in self._history.items()}
