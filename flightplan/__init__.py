"""
flightplan - ordered, fail-fast deployment runner

Runs flights (batches of shell commands) on the local machine or in parallel
on the hosts of a destination, stopping at the first failed flight.
"""

__version__ = "0.1.0"


__all__ = [
    "Briefing",
    "Flightplan",
    "PlanResult",
    "FlightplanError",
    "ConfigError",
    "CommandError",
    "PlanAbortedError",
    "FlightAbortedError",
]

from .briefing import Briefing
from .errors import CommandError, ConfigError, FlightAbortedError, FlightplanError, PlanAbortedError
from .plan import Flightplan, PlanResult
