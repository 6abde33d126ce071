"""
MODULE: DRIVER_BEHAVIOUR_CLASSIFIER
CLASSIFICATION: HEURISTIC / RULE ENGINE

DESCRIPTION:
    Labels the driver from two features extracted from the rolling history:

    1. Throttle Aggression (0-100): the sum of every frame-to-frame throttle
       increase, doubled and capped. Throttle releases are ignored, so hard
       acceleration scores the same whatever the braking looks like.
    2. RPM Volatility: standard deviation of the recent RPM window / 100.

    The rule cascade is evaluated top-down, first match wins.
"""

import math
import random
import logging
import numpy as np
from dataclasses import dataclass
from typing import Optional, Sequence

# Configure module-level logger
logger = logging.getLogger("NEXUS.AI.DRIVER")

AGGRESSIVE = "AGGRESSIVE"
ECO_OPTIMAL = "ECO-OPTIMAL"
ERRATIC = "ERRATIC"
NORMAL = "NORMAL"

DRIVER_CLASSES = (AGGRESSIVE, ECO_OPTIMAL, ERRATIC, NORMAL)


@dataclass
class DriverFeatures:
    """
    The feature vector fed into the rule cascade.
    """
    throttle_aggression: float  # 0-100
    rpm_volatility: float       # sqrt(rpm variance) / 100
    speed: float                # km/h, current

    @property
    def efficiency_score(self) -> int:
        return round_half_up(100 - self.throttle_aggression * 0.6)


@dataclass
class DriverVerdict:
    driver_class: str
    confidence: int     # %
    insight: str
    features: DriverFeatures


def round_half_up(x: float) -> int:
    """Rounds .5 ties upward (dashboard convention), unlike the built-in round."""
    return math.floor(x + 0.5)


def throttle_aggression(throttle_history: Sequence[float]) -> float:
    """Sum of positive throttle deltas, scaled by 2 and capped at 100."""
    samples = np.asarray(throttle_history, dtype=float)
    if samples.size < 2:
        return 0.0
    deltas = np.diff(samples)
    rises = float(deltas[deltas > 0].sum())
    return min(100.0, rises * 2)


def rpm_volatility(rpm_variance: float) -> float:
    return float(np.sqrt(rpm_variance)) / 100


class DriverBehaviourKernel:
    """
    Coded decision list. Thresholds are fixed, nothing is learned.
    """

    AGGRESSION_HIGH = 60.0
    AGGRESSION_LOW = 20.0
    ECO_MIN_SPEED = 30.0        # km/h, no eco credit for crawling
    VOLATILITY_LIMIT = 8.0

    # NORMAL confidence is a baseline plus [0, JITTER) noise
    NORMAL_BASE_CONFIDENCE = 85.0
    NORMAL_CONFIDENCE_JITTER = 10.0

    INSIGHTS = {
        AGGRESSIVE: "High throttle aggression detected. Impact on fuel +12%.",
        ECO_OPTIMAL: "Smooth acceleration profile. Fuel efficiency maximized.",
        ERRATIC: "Unstable RPM detected. Check transmission linkage.",
        NORMAL: "Behavior within normal baseline.",
    }

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def classify(self, f: DriverFeatures) -> DriverVerdict:
        if f.throttle_aggression > self.AGGRESSION_HIGH:
            label, confidence = AGGRESSIVE, 92.0
        elif f.throttle_aggression < self.AGGRESSION_LOW and f.speed > self.ECO_MIN_SPEED:
            label, confidence = ECO_OPTIMAL, 96.0
        elif f.rpm_volatility > self.VOLATILITY_LIMIT:
            label, confidence = ERRATIC, 78.0
        else:
            label = NORMAL
            confidence = self.NORMAL_BASE_CONFIDENCE + self.rng.random() * self.NORMAL_CONFIDENCE_JITTER

        return DriverVerdict(
            driver_class=label,
            confidence=round_half_up(confidence),
            insight=self.INSIGHTS[label],
            features=f,
        )
