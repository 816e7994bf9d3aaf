"""Automatic staging on loss of thrust.

The caller owns an ``AutoStageState`` and passes it to every
``auto_stage`` call of a flight phase. The state remembers the highest
available thrust seen since the last staging event; a drop of more than
``StagingConfig.thrust_drop`` below it means an engine has burned out and
the next stage is activated.

Example:
    >>> state = AutoStageState()
    >>> while burning:
    ...     auto_stage(vessel, actuators, clock, state)
    ...     clock.tick()
"""

import logging
from dataclasses import dataclass

from autopilot.config import StagingConfig
from autopilot.interfaces import Actuators, Clock, Vessel

logger = logging.getLogger(__name__)


@dataclass
class AutoStageState:
    """Reference thrust for detecting burnout [N]. None until first sampled."""
    last_thrust: float | None = None


def auto_stage(
    vessel: Vessel,
    actuators: Actuators,
    clock: Clock,
    state: AutoStageState,
    config: StagingConfig | None = None,
) -> bool:
    """Stage if available thrust has dropped since the last call.

    Returns:
        True if a stage was activated
    """
    config = config or StagingConfig()
    thrust = vessel.available_thrust

    if state.last_thrust is None or thrust > state.last_thrust:
        state.last_thrust = thrust
        return False

    if thrust >= state.last_thrust - config.thrust_drop:
        return False

    if vessel.stages_remaining <= 0:
        logger.warning(
            "Thrust dropped from %.1f N to %.1f N with no stages left",
            state.last_thrust, thrust,
        )
        state.last_thrust = thrust
        return False

    logger.info("Thrust dropped from %.1f N to %.1f N, staging", state.last_thrust, thrust)
    actuators.stage()
    clock.wait(config.settle_time)
    state.last_thrust = vessel.available_thrust
    return True
