"""
Transport layer for local and remote execution.

Provides:
- Local command execution (asyncio subprocess)
- SSH remote execution (system ssh binary)
- File transfer to remote hosts (rsync)
"""

from flightplan.transport.base import COMMANDS, CommandResult, Transport
from flightplan.transport.local import LocalTransport
from flightplan.transport.ssh import SSHTransport

__all__ = ["COMMANDS", "CommandResult", "Transport", "LocalTransport", "SSHTransport"]
