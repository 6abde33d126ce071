"""
MODULE: DIAGNOSTIC_ADVISOR

DESCRIPTION:
    Converts an inference result into the verdicts the dashboard panels show:
    risk level, fuel impact, the anomaly monitor checklist and maintenance
    recommendations. No rendering happens here; the output is plain data.
"""

import logging
from dataclasses import dataclass, field
from typing import List

from nexus.ai.driver_classifier import AGGRESSIVE, ECO_OPTIMAL
from nexus.ai.inference_engine import InferenceResult
from nexus.hardware.simulator import TelemetrySnapshot

logger = logging.getLogger("NEXUS.ADVISOR")

RISK_SUMMARIES = {
    "Low": "All systems operating within optimal parameters.",
    "Medium": "Minor thermal irregularity detected. Monitoring.",
    "High": "Critical system stress detected. Maintenance required.",
}

FUEL_IMPACT = {
    AGGRESSIVE: "+12% Consumption",
    ECO_OPTIMAL: "-5% Consumption",
}

STATUS_NORMAL = "SYSTEM NORMAL"
STATUS_ANOMALY = "ANOMALY DETECTED"
STATUS_WARNING = "WARNING"

COOLANT_WARNING_C = 100.0
COOLANT_ELEVATED_C = 90.0
VOLTAGE_DROP_V = 12.5
THERMAL_SERVICE_SCORE = 90


@dataclass
class MonitorItem:
    kind: str   # "issue" / "check"
    text: str


@dataclass
class AnomalyMonitor:
    status: str
    severity: str   # "" / "warning" / "critical"
    items: List[MonitorItem] = field(default_factory=list)


@dataclass
class Advisory:
    risk: str
    summary: str
    fuel_impact: str
    monitor: AnomalyMonitor
    recommendations: List[str]


def risk_level(hygiene: int) -> str:
    if hygiene < 60:
        return "High"
    if hygiene < 80:
        return "Medium"
    return "Low"


def fuel_impact(driver_class: str) -> str:
    return FUEL_IMPACT.get(driver_class, "Neutral")


def coolant_band(coolant: float) -> str:
    if coolant > COOLANT_WARNING_C:
        return "critical"
    if coolant > COOLANT_ELEVATED_C:
        return "elevated"
    return "nominal"


def anomaly_monitor(result: InferenceResult, state: TelemetrySnapshot) -> AnomalyMonitor:
    monitor = AnomalyMonitor(status=STATUS_NORMAL, severity="")

    if result.anomaly:
        monitor.status = STATUS_ANOMALY
        monitor.severity = "critical"
        monitor.items.append(MonitorItem("issue", "RPM Pattern Instability"))
    else:
        monitor.items.append(MonitorItem("check", "RPM Variance Nominal"))

    if state.coolant > COOLANT_WARNING_C:
        # Thermal warning takes the headline even over an RPM anomaly
        monitor.status = STATUS_WARNING
        if monitor.severity != "critical":
            monitor.severity = "warning"
        monitor.items.append(MonitorItem("issue", "Thermal Threshold Exceeded"))
    else:
        monitor.items.append(MonitorItem("check", "Thermal Gradient Stable"))

    if state.battery < VOLTAGE_DROP_V:
        monitor.items.append(MonitorItem("issue", "Voltage Drop Detected"))

    return monitor


def recommendations(result: InferenceResult) -> List[str]:
    recs = []
    if result.driver.driver_class == AGGRESSIVE:
        recs.append("Reduce throttle aggression to improve fuel economy.")
    else:
        recs.append("Maintain current driving style for optimal battery/engine life.")

    if result.scores.thermal < THERMAL_SERVICE_SCORE:
        recs.append("Check coolant levels during next stop.")
    return recs


def advise(result: InferenceResult, state: TelemetrySnapshot) -> Advisory:
    risk = risk_level(result.scores.hygiene)
    if risk == "High":
        logger.warning(f"[ADVISOR] Hygiene score {result.scores.hygiene}. Risk HIGH.")
    return Advisory(
        risk=risk,
        summary=RISK_SUMMARIES[risk],
        fuel_impact=fuel_impact(result.driver.driver_class),
        monitor=anomaly_monitor(result, state),
        recommendations=recommendations(result),
    )
