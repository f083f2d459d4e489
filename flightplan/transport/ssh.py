"""SSH transport.

Uses the system ssh binary so the user's ssh config, agent and keys apply
unchanged. Host descriptor fields understood here:

    host         hostname or ssh config alias (required)
    username     remote user
    port         ssh port (default 22)
    private_key  path to an identity file
    ssh_options  mapping of extra `-o Key=Value` options
"""

import asyncio
import logging
import shlex
from typing import Any, Dict, List, Mapping, Optional

from flightplan.briefing import host_label
from flightplan.errors import ConfigError
from flightplan.transport.base import CommandResult, Transport, communicate

DEFAULT_SSH_OPTIONS = {
    "BatchMode": "yes",
    "StrictHostKeyChecking": "accept-new",
}


def ssh_options_args(host: Mapping[str, Any]) -> List[str]:
    """Connection flags shared by ssh and rsync's remote shell."""
    args: List[str] = ["-p", str(int(host.get("port") or 22))]

    private_key = host.get("private_key")
    if private_key:
        args += ["-i", str(private_key)]

    options = dict(DEFAULT_SSH_OPTIONS)
    options.update(host.get("ssh_options") or {})
    for key, value in options.items():
        args += ["-o", f"{key}={value}"]
    return args


def ssh_destination(host: Mapping[str, Any]) -> str:
    if not host.get("host"):
        raise ConfigError(f"Host descriptor without 'host': {dict(host)}")
    username = host.get("username")
    return f"{username}@{host['host']}" if username else str(host["host"])


class SSHTransport(Transport):
    """Transport running commands on one remote host over ssh."""

    def __init__(
        self,
        host: Mapping[str, Any],
        loop: asyncio.AbstractEventLoop,
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__(loop, logger)
        self.host = host
        self._destination = ssh_destination(host)

    @property
    def label(self) -> str:
        return host_label(self.host)

    def _ssh_cmd(self, command: str, env: Optional[Dict[str, Any]] = None) -> List[str]:
        # Compose env exports inside the remote bash -lc context.
        if env:
            exports = [
                f"export {k}={shlex.quote(str(v))}" for k, v in env.items() if v is not None
            ]
            if exports:
                command = "; ".join(exports) + "; " + command

        return ["ssh"] + ssh_options_args(self.host) + [
            self._destination,
            "bash -lc " + shlex.quote(command),
        ]

    async def _spawn(self, command: str, exec_options: Dict[str, Any]) -> CommandResult:
        remote_command = command
        cwd = exec_options.get("cwd")
        if cwd:
            remote_command = f"cd {shlex.quote(str(cwd))} && {command}"

        argv = self._ssh_cmd(remote_command, env=exec_options.get("env"))
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            stdin=asyncio.subprocess.DEVNULL,
        )
        return await communicate(process, command)
