"""
Host lookup backed by the application configuration.
"""

from typing import Dict, Iterable

from ..config import HostConfig
from ..domain.exceptions import NotFoundError
from ..domain.models import HostAvailabilityContext


class HostDirectory:
    """Resolves host ids to availability contexts."""

    def __init__(self, hosts: Iterable[HostConfig]):
        self._hosts: Dict[str, HostConfig] = {host.id: host for host in hosts}

    def get_host_availability_context(self, host_id: str) -> HostAvailabilityContext:
        """
        Build a fresh availability context for a host.

        Raises:
            NotFoundError: If the host does not exist
        """
        host = self._hosts.get(host_id)
        if host is None:
            raise NotFoundError(f"Host not found: {host_id}")
        return host.to_context()

    def get_host(self, host_id: str) -> HostConfig:
        host = self._hosts.get(host_id)
        if host is None:
            raise NotFoundError(f"Host not found: {host_id}")
        return host

    def __iter__(self):
        return iter(self._hosts.values())
