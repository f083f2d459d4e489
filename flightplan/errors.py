"""
Error classes for flightplan execution.

Failures travel bottom-up through these types:
- CommandError: a command failed on a transport (non-zero exit or I/O error)
- FlightAbortedError: flight code aborted its transport on purpose
- ConfigError: the destination/briefing is unusable, nothing runs
- PlanAbortedError: the plan was aborted before it was started

Transports raise, flights catch and aggregate, the plan stops the run.
"""


class FlightplanError(Exception):
    """Base exception for flightplan."""
    pass


class ConfigError(FlightplanError):
    """
    Configuration error - fatal before any flight runs.

    Examples:
    - Unknown destination while remote flights are registered
    - Destination configured without any host
    - Invalid YAML config file
    """
    pass


class PlanAbortedError(FlightplanError):
    """Plan was marked aborted before start() was reached."""
    pass


class CommandError(FlightplanError):
    """
    A command failed on a transport.

    Carries the CommandResult when the process ran at all; result is None
    when the process could not be spawned.
    """

    def __init__(self, message: str, result=None):
        super().__init__(message)
        self.result = result


class FlightAbortedError(FlightplanError):
    """Raised by Transport.abort() to leave a flight body."""
    pass
