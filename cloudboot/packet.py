"""Datasource for the Packet metadata service."""

from __future__ import annotations

import ipaddress
import json
from dataclasses import dataclass, field
from typing import Any

from cloudboot.datasource import Datasource, IPAddress, Metadata
from cloudboot.metadata_service import Getter, MetadataService

API_VERSION = ""
USERDATA_PATH = "userdata"
METADATA_PATH = "metadata"


def _object(value: Any, what: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{what} must be a JSON object")
    return value


def _value(obj: dict[str, Any], key: str, kind: type, default: Any) -> Any:
    value = obj.get(key)
    if value is None:
        return default
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise ValueError(f"field {key!r} has the wrong type")
    return value


def _ip(value: Any) -> IPAddress | None:
    """Decode an IP address field; empty or missing means no address."""
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValueError("IP address must be a string")
    try:
        return ipaddress.ip_address(value)
    except ValueError:
        raise ValueError(f"invalid IP address: {value}") from None


@dataclass
class Netblock:
    address: IPAddress | None = None
    cidr: int = 0
    netmask: IPAddress | None = None
    gateway: IPAddress | None = None
    address_family: int = 0
    public: bool = False

    @classmethod
    def from_json(cls, value: Any) -> Netblock:
        obj = _object(value, "address")
        return cls(
            address=_ip(obj.get("address")),
            cidr=_value(obj, "cidr", int, 0),
            netmask=_ip(obj.get("netmask")),
            gateway=_ip(obj.get("gateway")),
            address_family=_value(obj, "address_family", int, 0),
            public=_value(obj, "public", bool, False),
        )


@dataclass
class Nic:
    name: str = ""
    mac: str = ""

    @classmethod
    def from_json(cls, value: Any) -> Nic:
        obj = _object(value, "interface")
        return cls(name=_value(obj, "name", str, ""), mac=_value(obj, "mac", str, ""))


@dataclass
class NetworkData:
    interfaces: list[Nic] = field(default_factory=list)
    netblocks: list[Netblock] = field(default_factory=list)
    dns: list[IPAddress | None] = field(default_factory=list)

    @classmethod
    def from_json(cls, value: Any) -> NetworkData:
        obj = _object(value, "network")
        return cls(
            interfaces=[Nic.from_json(item) for item in _value(obj, "interfaces", list, [])],
            netblocks=[Netblock.from_json(item) for item in _value(obj, "addresses", list, [])],
            dns=[_ip(item) for item in _value(obj, "dns", list, [])],
        )


@dataclass
class PacketMetadata:
    hostname: str = ""
    ssh_keys: list[str] = field(default_factory=list)
    network_data: NetworkData = field(default_factory=NetworkData)

    @classmethod
    def from_json(cls, value: Any) -> PacketMetadata:
        obj = _object(value, "metadata")
        keys = list(_value(obj, "ssh_keys", list, []))
        if not all(isinstance(key, str) for key in keys):
            raise ValueError("ssh_keys must be strings")
        return cls(
            hostname=_value(obj, "hostname", str, ""),
            ssh_keys=keys,
            network_data=NetworkData.from_json(obj.get("network")),
        )


class PacketMetadataService(MetadataService, Datasource):
    """Metadata service answering with a JSON document at ``metadata``."""

    def __init__(self, root: str, client: Getter | None = None) -> None:
        super().__init__(root, API_VERSION, USERDATA_PATH, METADATA_PATH, client)

    def fetch_metadata(self) -> Metadata:
        metadata = Metadata()
        data = self.fetch_data(self.metadata_url())
        if not data:
            return metadata
        document = PacketMetadata.from_json(json.loads(data))

        for netblock in document.network_data.netblocks:
            if netblock.address_family == 4:
                if netblock.public:
                    metadata.public_ipv4 = netblock.address
                else:
                    metadata.private_ipv4 = netblock.address
            else:
                metadata.public_ipv6 = netblock.address

        metadata.hostname = document.hostname
        metadata.ssh_public_keys = {
            str(index): key for index, key in enumerate(document.ssh_keys)
        }
        metadata.network_config = document.network_data
        return metadata

    def source_type(self) -> str:
        return "packet-metadata-service"