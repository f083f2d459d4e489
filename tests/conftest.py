import asyncio
import logging
import threading

import pytest

from flightplan.briefing import host_label
from flightplan.flight import RemoteFlight
from flightplan.transport.base import CommandResult, Transport


class FakeRemoteTransport(Transport):
    """Remote transport that simulates commands instead of opening ssh sessions.

    Host descriptor keys understood:
        fail: list of commands that exit with code 1 on this host
        delay: seconds every command takes on this host
    """

    executed = []

    def __init__(self, host, loop, logger=None):
        super().__init__(loop, logger)
        self.host = host

    @property
    def label(self):
        return host_label(self.host)

    async def _spawn(self, command, exec_options):
        await asyncio.sleep(self.host.get("delay", 0))
        FakeRemoteTransport.executed.append((self.host["host"], command))
        code = 1 if command in self.host.get("fail", []) else 0
        return CommandResult(command=command, code=code, stdout=f"{self.host['host']}: {command}\n")


@pytest.fixture
def fake_remote(monkeypatch):
    """Route remote flights through FakeRemoteTransport; yields the executed-commands log."""
    FakeRemoteTransport.executed = []
    monkeypatch.setattr(RemoteFlight, "transport_class", FakeRemoteTransport)
    yield FakeRemoteTransport.executed


@pytest.fixture
def running_loop():
    """An event loop running in a background thread, as during a flight."""
    loop = asyncio.new_event_loop()
    thread = threading.Thread(target=loop.run_forever, daemon=True)
    thread.start()
    yield loop
    loop.call_soon_threadsafe(loop.stop)
    thread.join(timeout=5)
    loop.close()


@pytest.fixture(autouse=True)
def reset_flightplan_logger():
    # The CLI installs handlers on the shared logger
    yield
    logger = logging.getLogger("flightplan")
    logger.handlers = []
    logger.propagate = True
