"""
Exception types raised while computing cross sections and generating events.

Numerical degeneracies (NaN partial cross sections) are not errors: they are
floored to zero and logged by the reaction that produced them.
"""


class ScatterError(Exception):
    """Base class for all NuScatterX errors."""


class PhysicsViolation(ScatterError, ValueError):
    """Unphysical input caught by a selection rule or an unknown process/transition type."""


class KinematicInfeasibility(ScatterError, ValueError):
    """The requested reaction cannot proceed at the given energy."""


class ConfigurationMismatch(ScatterError, ValueError):
    """Inputs are inconsistent with how a reaction, source or generator was configured."""
