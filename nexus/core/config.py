"""
MODULE: CONFIGURATION_LOADER

DESCRIPTION:
    Reads config/settings.yaml and layers it over the built-in defaults.
    A missing file is not an error: the demo runs on defaults.
"""

import os
import copy
import logging
import yaml
from dataclasses import dataclass
from typing import Any, Dict, Optional

logger = logging.getLogger("NEXUS.CONFIG")

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
DEFAULT_CONFIG_PATH = os.path.join(PROJECT_ROOT, "config", "settings.yaml")

DEFAULTS: Dict[str, Dict[str, Any]] = {
    'scheduler': {
        'fast_interval_ms': 100,     # simulator tick + gauges
        'medium_interval_ms': 1000,  # coolant / battery readouts
        'ai_interval_ms': 2000,      # inference panels
        'max_runtime_s': None,
    },
    'simulator': {
        'history_size': 100,
        'seed': None,
    },
    'logging': {
        'level': 'INFO',
        'file': None,
        'format': "%(asctime)s | %(levelname)-8s | %(name)-16s | %(message)s",
    },
    'dashboard': {
        'enabled': True,
        'clear_screen': True,
    },
}

# The anomaly window reads the last 20 RPM samples
MIN_HISTORY_SIZE = 20


class ConfigurationError(ValueError):
    pass


@dataclass
class Settings:
    fast_interval_s: float
    medium_interval_s: float
    ai_interval_s: float
    max_runtime_s: Optional[float]
    history_size: int
    seed: Optional[int]
    log_level: str
    log_file: Optional[str]
    log_format: str
    dashboard_enabled: bool
    clear_screen: bool


def _merge(raw: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    merged = copy.deepcopy(DEFAULTS)
    for section, values in raw.items():
        if section not in merged:
            logger.warning(f"[CONFIG] Ignoring unknown section '{section}'")
            continue
        if values is None:
            continue
        if not isinstance(values, dict):
            raise ConfigurationError(f"Section '{section}' must be a mapping")
        for key, value in values.items():
            if key not in merged[section]:
                logger.warning(f"[CONFIG] Ignoring unknown key '{section}.{key}'")
                continue
            merged[section][key] = value
    return merged


def _interval(cfg: Dict[str, Any], key: str) -> float:
    value = cfg[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigurationError(f"scheduler.{key} must be a positive number, got {value!r}")
    return value / 1000.0


def _flag(cfg: Dict[str, Any], section: str, key: str) -> bool:
    value = cfg[key]
    if not isinstance(value, bool):
        raise ConfigurationError(f"{section}.{key} must be true or false, got {value!r}")
    return value


def _resolve(path: Optional[str]) -> Optional[str]:
    if not path:
        return None
    return path if os.path.isabs(path) else os.path.join(PROJECT_ROOT, path)


def build_settings(raw: Optional[Dict[str, Any]] = None) -> Settings:
    cfg = _merge(raw or {})
    sched, sim, log, dash = cfg['scheduler'], cfg['simulator'], cfg['logging'], cfg['dashboard']

    history_size = sim['history_size']
    if isinstance(history_size, bool) or not isinstance(history_size, int) or history_size < MIN_HISTORY_SIZE:
        raise ConfigurationError(
            f"simulator.history_size must be an integer >= {MIN_HISTORY_SIZE}, got {history_size!r}"
        )

    max_runtime = sched['max_runtime_s']
    if max_runtime is not None and (not isinstance(max_runtime, (int, float)) or max_runtime <= 0):
        raise ConfigurationError(f"scheduler.max_runtime_s must be positive or null, got {max_runtime!r}")

    log_level = str(log['level']).upper()
    if not isinstance(logging.getLevelName(log_level), int):
        raise ConfigurationError(f"logging.level must be a standard level name, got {log['level']!r}")

    seed = sim['seed']
    if seed is not None and (isinstance(seed, bool) or not isinstance(seed, int)):
        raise ConfigurationError(f"simulator.seed must be an integer or null, got {seed!r}")

    return Settings(
        fast_interval_s=_interval(sched, 'fast_interval_ms'),
        medium_interval_s=_interval(sched, 'medium_interval_ms'),
        ai_interval_s=_interval(sched, 'ai_interval_ms'),
        max_runtime_s=max_runtime,
        history_size=history_size,
        seed=seed,
        log_level=log_level,
        log_file=_resolve(log['file']),
        log_format=log['format'],
        dashboard_enabled=_flag(dash, 'dashboard', 'enabled'),
        clear_screen=_flag(dash, 'dashboard', 'clear_screen'),
    )


def load_config(path: Optional[str] = None) -> Settings:
    config_path = path or DEFAULT_CONFIG_PATH
    if not os.path.exists(config_path):
        logger.warning(f"[CONFIG] No settings at {config_path}. Running on defaults.")
        return build_settings()

    with open(config_path, 'r') as f:
        try:
            raw = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Malformed YAML in {config_path}: {e}") from e

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigurationError(f"{config_path} must contain a mapping at the top level")

    logger.info(f"[CONFIG] Loaded {config_path}")
    return build_settings(raw)
