"""Exceptions raised by the guidance engine.

Invalid arguments (a non-positive tolerance, an empty parameter vector)
raise the built-in ValueError. The classes below cover faults detected
while a maneuver or descent is in progress; each aborts the current
attempt after the throttle, steering and flight plan have been released.
"""


class GuidanceError(Exception):
    """Base class for faults that abort a maneuver or descent."""


class NumericDegeneracyError(GuidanceError, ArithmeticError):
    """A control law would divide by zero or produce a non-finite value.

    Raised for zero effective specific impulse (no ignited engine), zero
    available thrust when computing a burn, and a thrust-to-weight margin
    that leaves no deceleration during descent.
    """


class ActuatorUnavailableError(GuidanceError):
    """No thrust is available for a burn, even after staging."""
