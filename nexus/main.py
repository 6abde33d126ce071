"""
PROJECT: NEXUS AI (Vehicle Analytics Demo)
FILE: MAIN_KERNEL

DESCRIPTION:
    Boots the virtual engine and the inference engine, then drives them from
    three fixed cadences on a single thread:
      - fast:   simulator tick + live gauges
      - medium: coolant / battery readouts
      - ai:     inference + health, driver and anomaly panels
    The terminal dashboard is a thin consumer of plain data snapshots.

    USAGE:
    'python -m nexus.main [path/to/settings.yaml]'
"""

import os
import sys
import signal
import random
import logging
from datetime import datetime
from typing import Optional

from nexus.core.config import Settings, load_config
from nexus.core.scheduler import CadenceScheduler
from nexus.hardware.simulator import TelemetrySimulator, TelemetrySnapshot
from nexus.ai.inference_engine import InferenceEngine, InferenceResult
from nexus.ai.advisor import Advisory, advise, coolant_band

logger = logging.getLogger("NEXUS.MAIN")

# ANSI Colors
C_RESET = "\033[0m"
C_GREEN = "\033[92m"
C_RED = "\033[91m"
C_YELLOW = "\033[93m"
C_CYAN = "\033[96m"

RISK_COLORS = {"Low": C_GREEN, "Medium": C_YELLOW, "High": C_RED}
BAND_COLORS = {"nominal": C_CYAN, "elevated": C_YELLOW, "critical": C_RED}


def configure_logging(settings: Settings):
    handlers = []
    if settings.log_file:
        log_dir = os.path.dirname(settings.log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.FileHandler(settings.log_file))
    else:
        # stdout belongs to the dashboard
        handlers.append(logging.StreamHandler(sys.stderr))
    logging.basicConfig(level=settings.log_level, format=settings.log_format, handlers=handlers)


class NexusKernel:
    """
    The Master Controller.
    """
    def __init__(self, settings: Settings, out=None):
        self.settings = settings
        self.out = out or sys.stdout
        self.session_id = datetime.now().strftime("NX_%Y%m%d_%H%M%S")

        rng = random.Random(settings.seed)
        self.sim = TelemetrySimulator(history_size=settings.history_size, rng=rng)
        self.ml = InferenceEngine(rng=rng)
        self.scheduler = CadenceScheduler()

        self.frame: TelemetrySnapshot = self.sim.current_state()
        self.last_result: Optional[InferenceResult] = None
        self.last_advisory: Optional[Advisory] = None
        # Medium-cadence readouts lag the gauges on purpose
        self.slow_coolant = self.frame.coolant
        self.slow_battery = self.frame.battery

        self.scheduler.every(settings.fast_interval_s, "fast", self.update_fast)
        self.scheduler.every(settings.medium_interval_s, "medium", self.update_medium)
        self.scheduler.every(settings.ai_interval_s, "ai", self.update_ai)
        logger.info(f"[BOOT] Session {self.session_id} ready. Seed: {settings.seed}")

    def update_fast(self):
        self.sim.step()
        self.frame = self.sim.current_state()
        self._render()

    def update_medium(self):
        state = self.sim.current_state()
        self.slow_coolant = state.coolant
        self.slow_battery = state.battery

    def update_ai(self):
        state = self.sim.current_state()
        self.last_result = self.ml.infer(state, self.sim.history())
        self.last_advisory = advise(self.last_result, state)

    def _shutdown(self, signum, frame):
        logger.warning("SHUTDOWN SIGNAL RECEIVED. STOPPING TIMERS...")
        self.scheduler.stop()

    def run(self):
        signal.signal(signal.SIGINT, self._shutdown)
        signal.signal(signal.SIGTERM, self._shutdown)
        logger.info("[BOOT] Timers armed. Entering main loop.")
        self.scheduler.run(self.settings.max_runtime_s)
        logger.info(f"Kernel stopped after {self.sim.step_count} ticks.")

    def _render(self):
        if self.settings.dashboard_enabled:
            self.out.write(self.render_dashboard())
            self.out.flush()

    def render_dashboard(self) -> str:
        f = self.frame
        lines = []
        if self.settings.clear_screen:
            lines.append("\033[2J\033[H")

        mode = self.sim.drive_mode.mode
        lines.append(f"{C_CYAN}=== NEXUS AI LIVE MONITOR ==={C_RESET}")
        lines.append(f"SESSION: {self.session_id} | MODE: {mode} | TICK: {self.sim.step_count}")
        lines.append("=" * 60)

        # --- ROW 1: LIVE GAUGES ---
        lines.append(f"{C_YELLOW}[ ENGINE VITALS ]{C_RESET}")
        lines.append(f"RPM:   {f.rpm:>5.0f}  | SPEED: {f.speed:>3.0f} km/h | LOAD:  {f.load:>3.0f}%")
        temp_color = BAND_COLORS[coolant_band(self.slow_coolant)]
        lines.append(
            f"THROTTLE: {f.throttle:>3.0f}% | COOLANT: {temp_color}{self.slow_coolant:>5.0f}C{C_RESET}"
            f" | BATT: {self.slow_battery:>4.1f}V | FUEL: {f.fuel_efficiency:>4.1f} L/100km"
        )
        lines.append("-" * 60)

        # --- ROW 2: AI PANELS ---
        lines.append(f"{C_YELLOW}[ AI DIAGNOSTICS ]{C_RESET}")
        r, a = self.last_result, self.last_advisory
        if r is None or a is None:
            lines.append("Warming up inference engine...")
        else:
            risk_color = RISK_COLORS[a.risk]
            lines.append(
                f"HEALTH: {risk_color}{r.scores.hygiene:>3d}{C_RESET} (RISK {a.risk}) | "
                f"RUL: {r.rul.km:,} km ({r.rul.probability})"
            )
            lines.append(f"  {a.summary}")
            lines.append(
                f"DRIVER: {r.driver.driver_class} ({r.driver.confidence}%) | "
                f"FUEL IMPACT: {a.fuel_impact}"
            )
            lines.append(f"  {r.driver.insight}")
            mon_color = C_RED if a.monitor.severity else C_GREEN
            lines.append(f"MONITOR: {mon_color}{a.monitor.status}{C_RESET}")
            for item in a.monitor.items:
                mark = "!" if item.kind == "issue" else "+"
                lines.append(f"  [{mark}] {item.text}")
            for rec in a.recommendations:
                lines.append(f"  > {rec}")
        lines.append("=" * 60)
        return "\n".join(lines) + "\n"


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    try:
        settings = load_config(argv[0] if argv else None)
        configure_logging(settings)
        kernel = NexusKernel(settings)
        kernel.run()
    except Exception as e:
        logger.critical(f"FATAL SYSTEM ERROR: {e}")
        raise
    return 0


if __name__ == "__main__":
    sys.exit(main())
