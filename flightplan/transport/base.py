"""
Base classes for transports.

A transport is bound to exactly one execution target (the local machine or
one remote host) and to the event loop of the running plan. Flight code runs
on a worker thread and calls transport methods as ordinary blocking
functions; each command is scheduled as a coroutine on the plan's event loop
and the calling thread waits on the resulting future.
"""

import asyncio
import logging
import shlex
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Coroutine, Dict, List, Optional

from flightplan.errors import CommandError, FlightAbortedError
from flightplan.utils import get_logger


@dataclass
class CommandResult:
    """Result of one command execution."""

    command: str
    code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.code == 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "command": self.command,
            "code": self.code,
            "stdout": self.stdout,
            "stderr": self.stderr,
        }


async def communicate(process: asyncio.subprocess.Process, command: str) -> CommandResult:
    """Wait for a spawned process and collect its output."""
    stdout, stderr = await process.communicate()
    return CommandResult(
        command=command,
        code=process.returncode,
        stdout=stdout.decode(errors="replace") if stdout else "",
        stderr=stderr.decode(errors="replace") if stderr else "",
    )


class Transport(ABC):
    """
    Abstract base class for transports.

    Each transport must implement:
    - label: human-readable name of the target
    - _spawn(): run one shell command and return its CommandResult

    Once a command fails the transport is aborted for good. Further calls are
    not blocked; stopping is up to the flight body (a failed command raises
    CommandError, which ends it unless caught).
    """

    def __init__(self, loop: asyncio.AbstractEventLoop, logger: Optional[logging.Logger] = None):
        """
        Initialize transport.

        Args:
            loop: Event loop driving the plan's I/O
            logger: Logger instance (defaults to flightplan.transport)
        """
        self._loop = loop
        self.logger = logger or get_logger("transport")
        self._aborted = False
        self._crash_recordings: List[str] = []
        self._failsafe = False
        self._silent = False

    @property
    @abstractmethod
    def label(self) -> str:
        """Name of the execution target used in logs and crash recordings."""
        pass

    @abstractmethod
    async def _spawn(self, command: str, exec_options: Dict[str, Any]) -> CommandResult:
        """
        Run a shell command on the target.

        Raises:
            OSError: If the process cannot be started
        """
        pass

    # -------------------------
    # state
    # -------------------------
    def is_aborted(self) -> bool:
        return self._aborted

    def get_crash_recordings(self) -> List[str]:
        return list(self._crash_recordings)

    def record_failure(self, message: str) -> None:
        """Append a crash recording and mark the transport aborted."""
        self._crash_recordings.append(message)
        self._aborted = True

    # -------------------------
    # modes
    # -------------------------
    def failsafe(self) -> None:
        """Failed commands from now on are logged but do not abort."""
        self._failsafe = True

    def unsafe(self) -> None:
        """Failed commands from now on abort the flight (default)."""
        self._failsafe = False

    def silent(self) -> None:
        """Stop echoing command output."""
        self._silent = True

    def verbose(self) -> None:
        """Echo command output (default)."""
        self._silent = False

    # -------------------------
    # public API
    # -------------------------
    def exec(
        self,
        command: str,
        failsafe: Optional[bool] = None,
        silent: Optional[bool] = None,
        exec_options: Optional[Dict[str, Any]] = None,
    ) -> CommandResult:
        """
        Execute a shell command and block until it finishes.

        Args:
            command: Shell command line
            failsafe: Override the transport's failsafe mode for this call
            silent: Override the transport's silent mode for this call
            exec_options: Target specific options (cwd, env)

        Returns:
            CommandResult

        Raises:
            CommandError: If the command fails and failsafe is off
        """
        failsafe = self._failsafe if failsafe is None else failsafe
        silent = self._silent if silent is None else silent

        self.logger.info(
            f"{self.label} $ {command}",
            extra={"event": "command_started", "host": self.label},
        )

        try:
            result = self._run(self._spawn(command, exec_options or {}))
        except OSError as e:
            message = f"'{command}' could not be executed: {e}"
            if failsafe:
                self.logger.warning(f"{self.label} {message} (failsafe)", extra={"host": self.label})
                return CommandResult(command=command, code=-1, stderr=str(e))
            self.record_failure(message)
            raise CommandError(message) from e

        if not silent:
            self._echo(result)

        if not result.ok:
            message = f"'{command}' failed with exit code {result.code}"
            if failsafe:
                self.logger.warning(
                    f"{self.label} {message} (failsafe)",
                    extra={"event": "command_failed", "host": self.label},
                )
                return result
            self.logger.error(
                f"{self.label} {message}",
                extra={"event": "command_failed", "host": self.label, "metadata": result.to_dict()},
            )
            self.record_failure(message)
            raise CommandError(message, result)

        return result

    def sudo(self, command: str, user: str = "root", **kwargs) -> CommandResult:
        """Execute a command as another user via sudo."""
        wrapped = f"sudo -u {shlex.quote(user)} -i bash -c {shlex.quote(command)}"
        return self.exec(wrapped, **kwargs)

    def log(self, message: str) -> None:
        self.logger.info(f"{self.label} {message}", extra={"event": "flight_log", "host": self.label})

    def debug(self, message: str) -> None:
        self.logger.debug(f"{self.label} {message}", extra={"event": "flight_debug", "host": self.label})

    def abort(self, message: Optional[str] = None) -> None:
        """
        Abort the flight from flight code.

        Raises:
            FlightAbortedError: Always
        """
        message = message or "Flight aborted manually"
        self.logger.error(f"{self.label} {message}", extra={"event": "transport_aborted", "host": self.label})
        self.record_failure(message)
        raise FlightAbortedError(message)

    # -------------------------
    # helpers
    # -------------------------
    def _run(self, coro: Coroutine[Any, Any, CommandResult]) -> CommandResult:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is self._loop:
            coro.close()
            raise RuntimeError(
                f"{self.__class__.__name__} commands block; call them from a flight body, "
                "not from the event loop"
            )

        return asyncio.run_coroutine_threadsafe(coro, self._loop).result()

    def _echo(self, result: CommandResult) -> None:
        for line in result.stdout.splitlines():
            self.logger.info(f"{self.label} {line}", extra={"host": self.label})
        for line in result.stderr.splitlines():
            self.logger.warning(f"{self.label} {line}", extra={"host": self.label})

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(label={self.label}, aborted={self._aborted})"


# Commands exposed as shortcut methods, e.g. transport.ls("-al /var/www")
COMMANDS = [
    "awk", "cat", "chgrp", "chmod", "chown", "cp", "curl", "df", "du", "echo",
    "find", "git", "grep", "hostname", "ln", "ls", "mkdir", "mv", "ps", "pwd",
    "rm", "rmdir", "sed", "tail", "tar", "touch", "uptime", "wget", "which", "whoami",
]


def _make_shortcut(name: str):
    def shortcut(self: Transport, args: str = "", **kwargs) -> CommandResult:
        return self.exec(f"{name} {args}".strip(), **kwargs)

    shortcut.__name__ = name
    shortcut.__doc__ = f"Run `{name} <args>` on the target."
    return shortcut


for _name in COMMANDS:
    setattr(Transport, _name, _make_shortcut(_name))
