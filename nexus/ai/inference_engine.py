"""
MODULE: VEHICLE_INFERENCE_ENGINE
CLASSIFICATION: HEURISTIC DIAGNOSTICS

DESCRIPTION:
    Turns a telemetry snapshot plus the rolling history into the diagnostic
    picture shown on the AI panels:

    1. Health scores (thermal / engine / electrical) and the weighted
       'hygiene' composite. Scores are not clamped; extreme coolant drives
       the thermal score below zero.
    2. RPM anomaly flag from the population variance of the last 20 samples.
    3. Remaining Useful Life, a per-engine wear counter that only goes down.
    4. Driver behaviour classification (see driver_classifier).
"""

import math
import random
import logging
import numpy as np
from dataclasses import dataclass, asdict
from typing import Dict, Mapping, Optional, Sequence

from nexus.ai.driver_classifier import (
    DriverBehaviourKernel,
    DriverFeatures,
    DriverVerdict,
    round_half_up,
    throttle_aggression,
    rpm_volatility,
)
from nexus.hardware.simulator import TelemetrySnapshot

# Configure module-level logger
logger = logging.getLogger("NEXUS.AI")


@dataclass
class HealthScores:
    hygiene: int
    thermal: float
    engine: float
    electrical: float


@dataclass
class RulEstimate:
    km: int           # floored
    probability: str  # "High" / "Low" failure likelihood


@dataclass
class InferenceResult:
    scores: HealthScores
    rul: RulEstimate
    anomaly: bool
    rpm_variance: float
    driver: DriverVerdict

    def to_dict(self) -> Dict:
        out = asdict(self)
        f = self.driver.features
        out["driver"]["features"] = {
            "throttle": round_half_up(f.throttle_aggression),
            "rpm_volatility": round(f.rpm_volatility, 1),
            "efficiency": f.efficiency_score,
        }
        return out


class InferenceEngine:
    """
    Fixed-threshold diagnostics. The only state that shapes results across
    calls is the RUL wear counter, so separate engines age independently.
    A second flag tracks whether an RPM anomaly is already active; it only
    gates the onset warning log.
    """

    # --- HEALTH THRESHOLDS ---
    COOLANT_LIMIT_C = 100.0
    COOLANT_PENALTY_PER_C = 5.0
    RPM_LIMIT = 4500.0
    RPM_PENALTY = 5.0
    LOAD_LIMIT = 90.0
    LOAD_PENALTY = 2.0
    BATTERY_LOW_V = 12.8
    BATTERY_PENALTY = 10.0

    # Composite weights (sum to 1.0)
    W_THERMAL = 0.4
    W_ENGINE = 0.4
    W_ELECTRICAL = 0.2

    # --- ANOMALY ---
    ANOMALY_WINDOW = 20
    ANOMALY_VARIANCE_LIMIT = 5000.0  # rpm^2

    # --- WEAR MODEL ---
    INITIAL_RUL_KM = 15000.0
    WEAR_RATE = 0.1                  # km per call at 50% load
    RUL_HIGH_RISK_COOLANT_C = 102.0

    def __init__(self, initial_rul_km: float = INITIAL_RUL_KM,
                 rng: Optional[random.Random] = None):
        self.rul_km = float(initial_rul_km)
        self.driver_kernel = DriverBehaviourKernel(rng)
        self._anomaly_active = False

    def health_scores(self, s: TelemetrySnapshot) -> HealthScores:
        thermal = 100.0 - max(0.0, s.coolant - self.COOLANT_LIMIT_C) * self.COOLANT_PENALTY_PER_C

        engine = 100.0
        if s.rpm > self.RPM_LIMIT:
            engine -= self.RPM_PENALTY
        if s.load > self.LOAD_LIMIT:
            engine -= self.LOAD_PENALTY

        electrical = 100.0
        if s.battery < self.BATTERY_LOW_V:
            electrical -= self.BATTERY_PENALTY

        hygiene = round_half_up(thermal * self.W_THERMAL + engine * self.W_ENGINE + electrical * self.W_ELECTRICAL)
        return HealthScores(hygiene=hygiene, thermal=thermal, engine=engine, electrical=electrical)

    def rpm_variance(self, rpm_history: Sequence[float]) -> float:
        """Population variance (divide by N) of the most recent window."""
        if len(rpm_history) == 0:
            raise ValueError("RPM history is empty")
        recent = np.asarray(rpm_history[-self.ANOMALY_WINDOW:], dtype=float)
        return float(np.var(recent))

    def consume_life(self, load: float) -> float:
        degradation = (load / 100.0) * 2
        # Negative load would rejuvenate the engine
        self.rul_km -= max(0.0, degradation * self.WEAR_RATE)
        return self.rul_km

    def infer(self, state: TelemetrySnapshot,
              history: Mapping[str, Sequence[float]]) -> InferenceResult:
        if len(history["throttle"]) == 0:
            raise ValueError("Throttle history is empty")

        # 1. Health
        scores = self.health_scores(state)

        # 2. Anomaly
        variance = self.rpm_variance(history["rpm"])
        is_anomaly = variance > self.ANOMALY_VARIANCE_LIMIT
        if is_anomaly and not self._anomaly_active:
            logger.warning(f"[AI] RPM anomaly onset. Variance {variance:.0f} rpm^2")
        self._anomaly_active = is_anomaly

        # 3. RUL
        self.consume_life(state.load)
        rul = RulEstimate(
            km=math.floor(self.rul_km),
            probability="High" if state.coolant > self.RUL_HIGH_RISK_COOLANT_C else "Low",
        )

        # 4. Driver
        features = DriverFeatures(
            throttle_aggression=throttle_aggression(history["throttle"]),
            rpm_volatility=rpm_volatility(variance),
            speed=state.speed,
        )
        verdict = self.driver_kernel.classify(features)

        logger.debug(
            f"[AI] hygiene={scores.hygiene} anomaly={is_anomaly} "
            f"driver={verdict.driver_class} rul={rul.km}km"
        )
        return InferenceResult(
            scores=scores,
            rul=rul,
            anomaly=is_anomaly,
            rpm_variance=variance,
            driver=verdict,
        )
