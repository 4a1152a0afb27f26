"""Datasource for the DigitalOcean metadata service."""

from __future__ import annotations

import ipaddress
import json
from dataclasses import dataclass, field
from typing import Any

from cloudboot.datasource import Datasource, IPAddress, Metadata
from cloudboot.metadata_service import Getter, MetadataService

DEFAULT_ADDRESS = "http://169.254.169.254/"
API_VERSION = "metadata/v1"
USERDATA_PATH = API_VERSION + "/user-data"
METADATA_PATH = API_VERSION + ".json"


def _parse_ip(text: str) -> IPAddress | None:
    try:
        return ipaddress.ip_address(text)
    except ValueError:
        return None


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


def _list(obj: dict[str, Any], key: str) -> list[Any]:
    return list(_value(obj, key, list, []))


@dataclass
class Address:
    ip_address: str = ""
    netmask: str = ""
    cidr: int = 0
    gateway: str = ""

    @classmethod
    def from_json(cls, value: Any) -> Address | None:
        if value is None:
            return None
        obj = _object(value, "address")
        return cls(
            ip_address=_value(obj, "ip_address", str, ""),
            netmask=_value(obj, "netmask", str, ""),
            cidr=_value(obj, "cidr", int, 0),
            gateway=_value(obj, "gateway", str, ""),
        )


@dataclass
class Interface:
    ipv4: Address | None = None
    ipv6: Address | None = None
    anchor_ipv4: Address | None = None
    mac: str = ""
    kind: str = ""

    @classmethod
    def from_json(cls, value: Any) -> Interface:
        obj = _object(value, "interface")
        return cls(
            ipv4=Address.from_json(obj.get("ipv4")),
            ipv6=Address.from_json(obj.get("ipv6")),
            anchor_ipv4=Address.from_json(obj.get("anchor_ipv4")),
            mac=_value(obj, "mac", str, ""),
            kind=_value(obj, "type", str, ""),
        )


@dataclass
class Interfaces:
    public: list[Interface] = field(default_factory=list)
    private: list[Interface] = field(default_factory=list)

    @classmethod
    def from_json(cls, value: Any) -> Interfaces:
        obj = _object(value, "interfaces")
        return cls(
            public=[Interface.from_json(item) for item in _list(obj, "public")],
            private=[Interface.from_json(item) for item in _list(obj, "private")],
        )


@dataclass
class DNS:
    nameservers: list[str] = field(default_factory=list)

    @classmethod
    def from_json(cls, value: Any) -> DNS:
        obj = _object(value, "dns")
        servers = _list(obj, "nameservers")
        if not all(isinstance(server, str) for server in servers):
            raise ValueError("nameservers must be strings")
        return cls(nameservers=servers)


@dataclass
class DigitalOceanMetadata:
    hostname: str = ""
    interfaces: Interfaces = field(default_factory=Interfaces)
    public_keys: list[str] = field(default_factory=list)
    dns: DNS = field(default_factory=DNS)

    @classmethod
    def from_json(cls, value: Any) -> DigitalOceanMetadata:
        obj = _object(value, "metadata")
        keys = _list(obj, "public_keys")
        if not all(isinstance(key, str) for key in keys):
            raise ValueError("public_keys must be strings")
        return cls(
            hostname=_value(obj, "hostname", str, ""),
            interfaces=Interfaces.from_json(obj.get("interfaces")),
            public_keys=keys,
            dns=DNS.from_json(obj.get("dns")),
        )


class DigitalOceanMetadataService(MetadataService, Datasource):
    """Metadata service answering with a single JSON document."""

    def __init__(self, root: str = DEFAULT_ADDRESS, client: Getter | None = None) -> None:
        super().__init__(root, API_VERSION, USERDATA_PATH, METADATA_PATH, client)

    def fetch_metadata(self) -> Metadata:
        metadata = Metadata()
        data = self.fetch_data(self.metadata_url())
        if not data:
            return metadata
        document = DigitalOceanMetadata.from_json(json.loads(data))

        if document.interfaces.public:
            first = document.interfaces.public[0]
            if first.ipv4 is not None:
                metadata.public_ipv4 = _parse_ip(first.ipv4.ip_address)
            if first.ipv6 is not None:
                metadata.public_ipv6 = _parse_ip(first.ipv6.ip_address)
        if document.interfaces.private:
            first = document.interfaces.private[0]
            if first.ipv4 is not None:
                metadata.private_ipv4 = _parse_ip(first.ipv4.ip_address)
            if first.ipv6 is not None:
                metadata.private_ipv6 = _parse_ip(first.ipv6.ip_address)

        metadata.hostname = document.hostname
        metadata.ssh_public_keys = {
            str(index): key for index, key in enumerate(document.public_keys)
        }
        metadata.network_config = document
        return metadata

    def source_type(self) -> str:
        return "digitalocean-metadata-service"