"""Maneuver planning.

Available components:
    ManeuverPlanner: Circularization and transfer planning by search
    StalenessGuard: Score wrapper rejecting candidates too close to now
    registered: Context manager pairing node registration and removal
"""

from autopilot.planning.planner import ManeuverPlanner
from autopilot.planning.scoring import StalenessGuard, registered

__all__ = [
    "ManeuverPlanner",
    "StalenessGuard",
    "registered",
]
