"""
Flights: units of work executed by a flightplan.

A flight wraps a user function that receives a transport. Local flights call
it once against the local machine; remote flights call it once per host of the
destination, all hosts in parallel.

Flight functions are ordinary blocking code. They run on worker threads while
the plan's event loop performs the command I/O for them.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

from flightplan.errors import ConfigError, FlightplanError
from flightplan.transport import LocalTransport, SSHTransport, Transport
from flightplan.utils import get_logger

FlightFunction = Callable[[Transport], Any]


@dataclass
class FlightStatus:
    """Outcome of a flight."""

    aborted: bool = False
    execution_time: int = 0  # milliseconds
    crash_recordings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "aborted": self.aborted,
            "execution_time": self.execution_time,
            "crash_recordings": list(self.crash_recordings),
        }


class Flight(ABC):
    """
    Abstract base class for flights.

    Each flight must implement:
    - execute(): run the flight function against the given hosts and fill in status
    """

    kind = "flight"

    def __init__(self, fn: FlightFunction, logger: Optional[logging.Logger] = None):
        """
        Initialize flight.

        Args:
            fn: Flight function, called with a Transport
            logger: Logger instance
        """
        if not callable(fn):
            raise TypeError(f"Flight function must be callable, got {type(fn).__name__}")
        self.fn = fn
        self.logger = logger or get_logger("flight")
        self.status = FlightStatus()
        self._launched = False

    @abstractmethod
    async def execute(self, hosts: List[Mapping[str, Any]]) -> None:
        """Run the flight function and record the outcome in self.status."""
        pass

    async def liftoff(self, hosts: List[Mapping[str, Any]]) -> FlightStatus:
        """
        Run the flight exactly once.

        Returns:
            FlightStatus with execution details

        Raises:
            FlightplanError: If the flight was already launched
            ConfigError: If a remote flight gets no hosts
        """
        if self._launched:
            raise FlightplanError(f"{self!r} has already been launched")
        self._launched = True

        start = time.perf_counter()
        try:
            await self.execute(hosts)
        finally:
            self.status.execution_time = int(round((time.perf_counter() - start) * 1000))
        return self.status

    def get_status(self) -> FlightStatus:
        return self.status

    def is_aborted(self) -> bool:
        return self.status.aborted

    async def _dispatch(self, transports: List[Transport]) -> None:
        """
        Run the flight function once per transport, each on its own worker thread.

        Waits for every worker; exceptions that escape _fly are recorded on
        the transport they belong to.
        """
        loop = asyncio.get_running_loop()
        pool = ThreadPoolExecutor(max_workers=len(transports), thread_name_prefix=f"flight-{self.kind}")
        try:
            outcomes = await asyncio.gather(
                *(loop.run_in_executor(pool, self._fly, transport) for transport in transports),
                return_exceptions=True,
            )
        finally:
            # Workers may still wait on the loop when the run is interrupted
            pool.shutdown(wait=False)

        for transport, outcome in zip(transports, outcomes):
            if isinstance(outcome, BaseException):
                transport.record_failure(f"{type(outcome).__name__}: {outcome}")

    def _fly(self, transport: Transport) -> Transport:
        """Call the flight function on a worker thread; failures end up on the transport."""
        try:
            self.fn(transport)
        except FlightplanError as e:
            # Command failures and manual aborts are recorded by the transport
            if not transport.is_aborted():
                transport.record_failure(str(e))
        except Exception as e:
            self.logger.error(
                f"{transport.label} flight raised {type(e).__name__}: {e}",
                extra={"event": "flight_exception", "host": transport.label},
                exc_info=True,
            )
            transport.record_failure(f"{type(e).__name__}: {e}")
        return transport

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(fn={getattr(self.fn, '__name__', self.fn)!r})"


class LocalFlight(Flight):
    """Flight executed once on the local machine."""

    kind = "local"
    transport_class = LocalTransport

    async def execute(self, hosts: List[Mapping[str, Any]]) -> None:
        loop = asyncio.get_running_loop()
        transport = self.transport_class(loop, hosts)

        await self._dispatch([transport])

        self.status.aborted = transport.is_aborted()
        self.status.crash_recordings = transport.get_crash_recordings()


class RemoteFlight(Flight):
    """
    Flight executed in parallel on every host of the destination.

    All hosts run to completion; a failing host never cancels its siblings.
    """

    kind = "remote"
    transport_class = SSHTransport

    async def execute(self, hosts: List[Mapping[str, Any]]) -> None:
        if not hosts:
            raise ConfigError("Remote flights need at least one destination host")

        loop = asyncio.get_running_loop()
        transports: List[Transport] = [self.transport_class(host, loop) for host in hosts]

        # One worker per host so no host waits for a free thread
        await self._dispatch(transports)

        failed = [t for t in transports if t.is_aborted()]
        for transport in transports:
            self.logger.debug(
                f"{transport.label} {'failed' if transport in failed else 'done'}",
                extra={"event": "host_completed", "host": transport.label},
            )

        self.status.aborted = bool(failed)
        self.status.crash_recordings = [
            f"{transport.label}: {message}"
            for transport in failed
            for message in transport.get_crash_recordings()
        ]
