"""Runtime settings read from the environment.

Env vars:
  PLANNER_DATA_DIR=<path>          -> folder for scenarios.json / plans.json
  PLANNER_LOG_LEVEL=INFO           -> logging level for the server entry point
  PLANNER_DEFAULT_YEARS=40         -> horizon used when a request omits it
  PLANNER_DEFAULT_INFLATION=0.02   -> inflation used when a request omits it
  PLANNER_PORT=8000                -> port for `python -m gipuzkoa_planner.backend`
  PLANNER_DEBUG=1                  -> Flask debug mode
"""
from __future__ import annotations

import os
from dataclasses import dataclass

TRUTHY = {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


@dataclass
class PlannerSettings:
    data_dir: str = "user_data"
    log_level: str = "INFO"
    default_years: int = 40
    default_inflation: float = 0.02
    port: int = 8000
    debug: bool = False

    @property
    def scenarios_path(self) -> str:
        return os.path.join(self.data_dir, "scenarios.json")

    @property
    def plans_path(self) -> str:
        return os.path.join(self.data_dir, "plans.json")


def load_settings() -> PlannerSettings:
    return PlannerSettings(
        data_dir=os.getenv("PLANNER_DATA_DIR", "user_data") or "user_data",
        log_level=str(os.getenv("PLANNER_LOG_LEVEL", "INFO")).upper(),
        default_years=_env_int("PLANNER_DEFAULT_YEARS", 40),
        default_inflation=_env_float("PLANNER_DEFAULT_INFLATION", 0.02),
        port=_env_int("PLANNER_PORT", 8000),
        debug=str(os.getenv("PLANNER_DEBUG", "")).lower() in TRUTHY,
    )
