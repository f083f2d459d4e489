"""Local transport: runs commands on the machine executing the plan."""

import asyncio
import logging
import os
import shlex
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from flightplan.briefing import host_label
from flightplan.errors import CommandError
from flightplan.transport.base import CommandResult, Transport, communicate
from flightplan.transport.ssh import ssh_destination, ssh_options_args


class LocalTransport(Transport):
    """
    Transport bound to the local host.

    The hosts of the current destination (if any) are only used by
    transfer() to know where files should be copied to.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        hosts: Optional[List[Mapping[str, Any]]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__(loop, logger)
        self.hosts = list(hosts or [])

    @property
    def label(self) -> str:
        return "localhost"

    async def _spawn(self, command: str, exec_options: Dict[str, Any]) -> CommandResult:
        env = None
        if exec_options.get("env"):
            env = dict(os.environ)
            env.update({k: str(v) for k, v in exec_options["env"].items() if v is not None})

        process = await asyncio.create_subprocess_shell(
            command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            stdin=asyncio.subprocess.DEVNULL,
            cwd=exec_options.get("cwd"),
            env=env,
        )
        return await communicate(process, command)

    def transfer(self, files: Union[str, Iterable[str]], remote_dir: str, **kwargs) -> List[CommandResult]:
        """
        Copy local files to every host of the current destination with rsync.

        Args:
            files: A path or list of paths (relative to the working directory)
            remote_dir: Target directory on the remote hosts

        Returns:
            One CommandResult per host, in host order

        Raises:
            CommandError: If no destination hosts are known or a copy fails
        """
        if isinstance(files, str):
            files = [files]
        files = [f for f in files if f]

        if not self.hosts:
            message = "transfer() needs a destination with at least one host"
            self.record_failure(message)
            raise CommandError(message)
        if not files:
            self.logger.warning("transfer() called without files, nothing to do")
            return []

        sources = " ".join(shlex.quote(f) for f in files)
        results = []
        for host in self.hosts:
            remote_shell = " ".join(["ssh"] + [shlex.quote(a) for a in ssh_options_args(host)])
            self.log(f"transferring {len(files)} file(s) to {host_label(host)}:{remote_dir}")
            command = (
                f"rsync -az --relative -e {shlex.quote(remote_shell)} {sources} "
                f"{shlex.quote(ssh_destination(host) + ':' + remote_dir)}"
            )
            results.append(self.exec(command, **kwargs))
        return results
