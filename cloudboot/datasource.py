"""Common types shared by every source of instance configuration."""

from __future__ import annotations

import abc
import ipaddress
from dataclasses import dataclass
from typing import Any, Union

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


@dataclass
class Metadata:
    """Instance details reported by a datasource."""

    public_ipv4: IPAddress | None = None
    public_ipv6: IPAddress | None = None
    private_ipv4: IPAddress | None = None
    private_ipv6: IPAddress | None = None
    hostname: str = ""
    ssh_public_keys: dict[str, str] | None = None
    network_config: Any = None


class Datasource(abc.ABC):
    """A place from which user-data and metadata can be obtained."""

    @abc.abstractmethod
    def is_available(self) -> bool:
        """Return whether the source can currently be read."""

    @abc.abstractmethod
    def availability_changes(self) -> bool:
        """Return whether availability may change over time, so polling is useful."""

    @abc.abstractmethod
    def config_root(self) -> str:
        """Return the root location of the source's configuration."""

    @abc.abstractmethod
    def fetch_metadata(self) -> Metadata:
        """Return the instance metadata offered by the source."""

    @abc.abstractmethod
    def fetch_userdata(self) -> bytes:
        """Return the raw user-data offered by the source."""

    @abc.abstractmethod
    def source_type(self) -> str:
        """Return a short name identifying the kind of source."""