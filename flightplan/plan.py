"""
Flightplan orchestrator.

A flightplan is an ordered list of flights executed one after another. Local
flights run on the local machine, remote flights run in parallel on every
host of the chosen destination. The first aborted flight stops the plan:
every later flight is skipped.

    plan = Flightplan()
    plan.briefing({"destinations": {"production": [{"host": "www1"}, {"host": "www2"}]}})

    @plan.local
    def build(local):
        local.exec("make dist")

    @plan.remote
    def deploy(remote):
        remote.exec("systemctl restart app")

    plan.start("production")
"""

import asyncio
import logging
import os
import sys
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional

from flightplan.briefing import Briefing
from flightplan.errors import ConfigError, FlightplanError, PlanAbortedError
from flightplan.flight import Flight, FlightFunction, FlightStatus, LocalFlight, RemoteFlight
from flightplan.utils import (
    format_duration,
    get_logger,
    print_banner,
    print_error,
    print_info,
    print_success,
)

Callback = Callable[[], Any]


def _noop() -> None:
    pass


@dataclass
class PlanResult:
    """Result of a complete flightplan execution."""

    aborted: bool
    started_at: datetime
    ended_at: datetime
    execution_time: int  # milliseconds
    flights: List[FlightStatus] = field(default_factory=list)
    abort_message: Optional[str] = None

    @property
    def exit_code(self) -> int:
        return 1 if self.aborted else 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "aborted": self.aborted,
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat(),
            "execution_time": self.execution_time,
            "flights": [status.to_dict() for status in self.flights],
            "abort_message": self.abort_message,
        }


class Flightplan:
    """
    Main flightplan orchestrator.

    Holds the flights, the briefing and the lifecycle callbacks, and runs
    the flights in registration order with fail-fast semantics.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.flights: List[Flight] = []
        self.logger = logger or get_logger()
        self._briefing: Optional[Briefing] = None
        self._aborted = False
        self._abort_message: Optional[str] = None
        self._started = False
        self.execution_time = 0

        self._success_callback: Callback = _noop
        self._disaster_callback: Callback = _noop
        self._debriefing_callback: Callback = _noop

    # -------------------------
    # declaration
    # -------------------------
    def briefing(self, config: Optional[Mapping[str, Any]] = None):
        """
        Configure destinations, or return the current briefing.

        Without arguments the existing Briefing (or None) is returned, the
        same object on every call. With a config mapping the briefing is
        (re)initialized and the plan is returned for chaining.
        """
        if config is None:
            return self._briefing
        self._briefing = Briefing(config)
        return self

    def local(self, fn: FlightFunction) -> FlightFunction:
        """Register a flight executed once on the local machine."""
        self._register(LocalFlight(fn))
        return fn

    def remote(self, fn: FlightFunction) -> FlightFunction:
        """Register a flight executed in parallel on all destination hosts."""
        self._register(RemoteFlight(fn))
        return fn

    def _register(self, flight: Flight) -> None:
        if self._started:
            raise FlightplanError("Flights cannot be added after the flightplan has started")
        self.flights.append(flight)

    def success(self, fn: Callback) -> Callback:
        """fn() is called after all flights succeeded."""
        self._success_callback = fn
        return fn

    def disaster(self, fn: Callback) -> Callback:
        """fn() is called after the flightplan was aborted."""
        self._disaster_callback = fn
        return fn

    def debriefing(self, fn: Callback) -> Callback:
        """fn() is called at the very end of every completed run."""
        self._debriefing_callback = fn
        return fn

    # -------------------------
    # abort
    # -------------------------
    def is_aborted(self) -> bool:
        return self._aborted

    def abort(self, message: Optional[str] = None) -> None:
        """
        Abort the flightplan; no further flight will be launched.

        A running flight is not interrupted, the plan stops once it returns.
        """
        self._aborted = True
        if message and not self._abort_message:
            self._abort_message = message

    def requires_destination(self) -> bool:
        return any(isinstance(flight, RemoteFlight) for flight in self.flights)

    # -------------------------
    # execution
    # -------------------------
    def run(self, destination: Optional[str] = None, options: Optional[Mapping[str, Any]] = None) -> PlanResult:
        """
        Execute all flights and the lifecycle callbacks.

        Args:
            destination: Destination name (may be None for local-only plans)
            options: Host field overrides, e.g. {"username": "admin"}

        Returns:
            PlanResult with execution details

        Raises:
            ConfigError: If a required destination is unknown
            PlanAbortedError: If the plan was aborted before it started
        """
        if self._briefing is None:
            self._briefing = Briefing()
        self._briefing.apply_options(options, destination)
        self.logger.debug("Briefing done", extra={"event": "briefing_done"})

        if self.requires_destination() and not self._briefing.has_destination(destination):
            self.logger.error(
                f"{destination or '<empty>'} is not a valid destination",
                extra={
                    "event": "invalid_destination",
                    "metadata": {"destination": destination, "known": self._briefing.destinations()},
                },
            )
            raise ConfigError(f"{destination or '<empty>'} is not a valid destination")

        if self.is_aborted():
            message = self._abort_message or "Flightplan aborted"
            self.logger.error(
                f"Flightplan was aborted before it started: {message}",
                extra={"event": "plan_aborted", "metadata": {"abort_message": self._abort_message}},
            )
            raise PlanAbortedError(message)

        self._started = True
        hosts = (
            self._briefing.get_hosts_for_destination(destination)
            if self._briefing.has_destination(destination)
            else []
        )

        print_banner(f"Flightplan to {destination or 'localhost'}")
        self.logger.info(
            f"Executing flightplan with {len(self.flights)} planned flight(s) to {destination or 'localhost'}",
            extra={
                "event": "plan_started",
                "metadata": {"destination": destination, "flights": len(self.flights)},
            },
        )

        started_at = datetime.utcnow()
        start = time.perf_counter()

        statuses = asyncio.run(self._fly_all(hosts))

        self.execution_time = int(round((time.perf_counter() - start) * 1000))
        result = PlanResult(
            aborted=self.is_aborted(),
            started_at=started_at,
            ended_at=datetime.utcnow(),
            execution_time=self.execution_time,
            flights=statuses,
            abort_message=self._abort_message,
        )

        if result.aborted:
            print_error(f"Flightplan aborted after {format_duration(self.execution_time)}")
            self.logger.error(
                f"Flightplan aborted after {self.execution_time}ms",
                extra={"event": "plan_aborted", "metadata": result.to_dict()},
            )
            self._disaster_callback()
        else:
            print_success(f"Flightplan finished after {format_duration(self.execution_time)}")
            self.logger.info(
                f"Flightplan finished after {self.execution_time}ms",
                extra={"event": "plan_finished", "metadata": result.to_dict()},
            )
            self._success_callback()
        self._debriefing_callback()

        return result

    async def _fly_all(self, hosts: List[Dict[str, Any]]) -> List[FlightStatus]:
        statuses = []
        total = len(self.flights)

        for index, flight in enumerate(self.flights, start=1):
            label = f"{index}/{total}"
            print_info(f"Flight {label} launched...")
            self.logger.info(
                f"Flight {label} launched",
                extra={"event": "flight_launched", "flight": index, "metadata": {"kind": flight.kind}},
            )

            status = await flight.liftoff(hosts)
            statuses.append(status)

            if flight.is_aborted():
                self.abort(f"Flight {label} failed")
                print_error(
                    f"Flight {label} aborted after {format_duration(status.execution_time)} "
                    f"when {'; '.join(status.crash_recordings) or 'aborted'}"
                )
                self.logger.error(
                    f"Flight {label} aborted after {status.execution_time}ms",
                    extra={"event": "flight_aborted", "flight": index, "metadata": status.to_dict()},
                )
                break

            print_success(f"Flight {label} landed after {format_duration(status.execution_time)}")
            self.logger.info(
                f"Flight {label} landed after {status.execution_time}ms",
                extra={"event": "flight_landed", "flight": index, "metadata": status.to_dict()},
            )

            if self.is_aborted():
                # abort() called from flight code
                self.logger.error(
                    f"Flightplan aborted during flight {label}: {self._abort_message or 'no reason given'}",
                    extra={"event": "flight_aborted", "flight": index},
                )
                break

        return statuses

    def start(self, destination: Optional[str] = None, options: Optional[Mapping[str, Any]] = None) -> None:
        """
        Run the flightplan and terminate the process.

        Exit code 0 on success, 1 for an aborted plan, an unknown destination,
        an interrupt (SIGINT) or any uncaught error.
        """
        try:
            result = self.run(destination, options)
        except (ConfigError, PlanAbortedError):
            # Already reported by run()
            sys.exit(1)
        except KeyboardInterrupt:
            print_error("Flightplan was interrupted")
            self.logger.error("Flightplan was interrupted", extra={"event": "plan_interrupted"})
            _emergency_exit(1)
        except Exception as e:
            print_error(f"Flightplan aborted: {e}")
            self.logger.error(
                f"Flightplan aborted with exception: {e}",
                extra={"event": "plan_exception", "metadata": {"exception": str(e)}},
                exc_info=True,
            )
            sys.exit(1)
        else:
            sys.exit(result.exit_code)

    def __repr__(self) -> str:
        return f"Flightplan(flights={len(self.flights)}, aborted={self._aborted})"


def _emergency_exit(code: int) -> None:
    """Exit without waiting for flight worker threads that may still run commands."""
    logging.shutdown()
    sys.stdout.flush()
    sys.stderr.flush()
    os._exit(code)
