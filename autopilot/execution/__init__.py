"""Maneuver execution.

Available components:
    ManeuverExecutor: Flies a ManeuverPlan from ignition to cutoff
    BurnCompletion: Burn-vector rotation test for the end of a burn
    auto_stage: Stages when available thrust drops
"""

from autopilot.execution.burn import burn_duration, effective_isp, schedule_burn
from autopilot.execution.executor import BurnCompletion, ExecutorState, ManeuverExecutor
from autopilot.execution.staging import AutoStageState, auto_stage

__all__ = [
    "AutoStageState",
    "BurnCompletion",
    "ExecutorState",
    "ManeuverExecutor",
    "auto_stage",
    "burn_duration",
    "effective_isp",
    "schedule_burn",
]
