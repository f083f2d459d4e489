"""
Briefing - resolves destination names to host descriptors.

A briefing is built from a mapping of destination name to one or more host
descriptors. Host descriptors are plain dicts of SSH connection attributes
(host, username, port, private_key, ssh_options, ...) and are opaque to the
orchestration code: one descriptor yields one remote transport.

Every descriptor must name its `host`; entries are checked when the briefing
is built, so a broken briefing fails before any flight runs. The spellings
`privateKey`, `user` and `sshOptions` are accepted for `private_key`,
`username` and `ssh_options`. Password and agent settings are ignored with a
warning because ssh runs in batch mode.

Example:
    {
        "destinations": {
            "staging": {"host": "staging.example.com", "username": "deploy"},
            "production": [
                {"host": "www1.example.com", "username": "deploy"},
                {"host": "www2.example.com", "username": "deploy"},
            ],
        }
    }
"""

import copy
from typing import Any, Dict, List, Mapping, Optional

from flightplan.errors import ConfigError
from flightplan.utils import get_logger

logger = get_logger("briefing")

HostDescriptor = Dict[str, Any]

# Alternative spellings accepted for descriptor fields
HOST_FIELD_ALIASES = {
    "privateKey": "private_key",
    "user": "username",
    "sshOptions": "ssh_options",
}

# Fields that cannot work with a non-interactive system ssh
UNSUPPORTED_HOST_FIELDS = ("password", "passphrase", "agent", "agentForward")


def host_label(host: Mapping[str, Any]) -> str:
    """Human-readable name of a host descriptor (user@host or host)."""
    name = str(host.get("host", "<unknown>"))
    username = host.get("username")
    return f"{username}@{name}" if username else name


class Briefing:
    """Destination -> host list resolver."""

    def __init__(self, config: Optional[Mapping[str, Any]] = None):
        """
        Initialize briefing.

        Args:
            config: Either {"destinations": {...}} or the destinations mapping itself
        """
        config = config or {}
        destinations = config.get("destinations", config)
        if not isinstance(destinations, Mapping):
            raise ConfigError("destinations must be a mapping of name to host(s)")

        self._destinations: Dict[str, List[HostDescriptor]] = {}
        for name, hosts in destinations.items():
            self._destinations[name] = self._normalize(name, hosts)

    @staticmethod
    def _normalize(name: str, hosts: Any) -> List[HostDescriptor]:
        if hosts is None:
            return []
        if isinstance(hosts, Mapping):
            hosts = [hosts]
        if not isinstance(hosts, (list, tuple)):
            raise ConfigError(f"Destination '{name}': expected a host or a list of hosts")

        normalized = []
        for host in hosts:
            if not isinstance(host, Mapping):
                raise ConfigError(f"Destination '{name}': host entries must be mappings")
            normalized.append(Briefing._normalize_host(name, host))
        return normalized

    @staticmethod
    def _normalize_host(name: str, host: Mapping[str, Any]) -> HostDescriptor:
        descriptor = copy.deepcopy(dict(host))
        for alias, field in HOST_FIELD_ALIASES.items():
            if alias in descriptor:
                value = descriptor.pop(alias)
                descriptor.setdefault(field, value)

        if not descriptor.get("host"):
            raise ConfigError(f"Destination '{name}': host entry without 'host': {descriptor}")

        for field in UNSUPPORTED_HOST_FIELDS:
            if field in descriptor:
                logger.warning(
                    f"Destination '{name}': '{field}' is ignored for {host_label(descriptor)}; "
                    "ssh runs in batch mode, use a key or the ssh agent",
                    extra={"event": "host_field_ignored", "host": host_label(descriptor)},
                )
        return descriptor

    def apply_options(self, options: Optional[Mapping[str, Any]], destination: Optional[str] = None) -> "Briefing":
        """
        Overwrite host fields with option values.

        Args:
            options: Flat field -> value patch (e.g. {"username": "admin"}); None values are skipped
            destination: Only patch this destination's hosts (all destinations if None)

        Returns:
            self
        """
        overrides = {k: v for k, v in (options or {}).items() if v is not None}
        if not overrides:
            return self

        if destination is None:
            targets = list(self._destinations.values())
        else:
            targets = [self._destinations.get(destination, [])]

        for hosts in targets:
            for host in hosts:
                host.update(overrides)
        return self

    def has_destination(self, name: Optional[str]) -> bool:
        return bool(name) and bool(self._destinations.get(name))

    def get_hosts_for_destination(self, name: Optional[str]) -> List[HostDescriptor]:
        """
        Get hosts of a destination in declaration order.

        Raises:
            ConfigError: If the destination is unknown or has no hosts
        """
        if not name or name not in self._destinations:
            raise ConfigError(f"{name or '<empty>'} is not a valid destination")

        hosts = self._destinations[name]
        if not hosts:
            raise ConfigError(f"Destination '{name}' has no hosts")
        return list(hosts)

    def destinations(self) -> List[str]:
        return list(self._destinations)

    def __repr__(self) -> str:
        return f"Briefing(destinations={self.destinations()})"
