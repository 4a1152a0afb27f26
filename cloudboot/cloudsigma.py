"""Datasource reading the CloudSigma server context."""

from __future__ import annotations

import base64
import binascii
import ipaddress
import json
import os
import re
import socket
import string
from typing import Any, Protocol

import psutil

from cloudboot.datasource import Datasource, IPAddress, Metadata

USER_DATA_FIELD_NAME = "cloudinit-user-data"
PRODUCT_NAME_FILE = "/sys/class/dmi/id/product_name"
DHCP_LEASES_DIR = "/run/systemd/netif/leases/"


class ServerContextClient(Protocol):
    """Access to the server context exposed to the guest."""

    def all(self) -> Any: ...

    def key(self, key: str) -> Any: ...

    def meta(self) -> dict[str, str]: ...

    def fetch_raw(self, key: str) -> bytes: ...


def _parse_ip(text: str) -> IPAddress | None:
    try:
        return ipaddress.ip_address(text)
    except ValueError:
        return None


def _parse_mac(text: str) -> bytes:
    parts = re.split(r"[:-]", text)
    if len(parts) not in (6, 8, 20) or not all(
        len(part) == 2 and all(c in string.hexdigits for c in part) for part in parts
    ):
        raise ValueError(f"invalid MAC address: {text}")
    return bytes.fromhex("".join(parts))


def _find_local_ip(mac: str) -> ipaddress.IPv4Address:
    wanted = _parse_mac(mac)
    for addrs in psutil.net_if_addrs().values():
        hardware = []
        for addr in addrs:
            if addr.family == psutil.AF_LINK:
                try:
                    hardware.append(_parse_mac(addr.address))
                except ValueError:
                    continue
        if wanted not in hardware:
            continue
        for addr in addrs:
            if addr.family == socket.AF_INET:
                return ipaddress.IPv4Address(addr.address)
    raise LookupError("Local IP not found")


def _has_dhcp_leases() -> bool:
    try:
        return len(os.listdir(DHCP_LEASES_DIR)) > 0
    except OSError:
        return False


def _object(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def is_base64_encoded(field: str, userdata: dict[str, str]) -> bool:
    """Return whether ``field`` is listed in the ``base64_fields`` entry."""
    fields = userdata.get("base64_fields")
    if fields is None:
        return False
    return field in fields.split(",")


class ServerContextService(Datasource):
    """Server context reached through ``client``."""

    def __init__(self, client: ServerContextClient) -> None:
        self.client = client

    def is_available(self) -> bool:
        try:
            with open(PRODUCT_NAME_FILE, "rb") as handle:
                product_name = handle.read(10)
        except OSError:
            return False
        return product_name == b"CloudSigma" and _has_dhcp_leases()

    def availability_changes(self) -> bool:
        return True

    def config_root(self) -> str:
        return ""

    def source_type(self) -> str:
        return "server-context"

    def fetch_metadata(self) -> Metadata:
        metadata = Metadata()
        document = json.loads(self.client.fetch_raw(""))
        if not isinstance(document, dict):
            raise ValueError("server context is not a JSON object")

        metadata.hostname = document.get("name") or document.get("uuid") or ""

        metadata.ssh_public_keys = {}
        # An empty string rather than a missing field marks the lack of a key.
        key = _object(document.get("meta")).get("ssh_public_key") or ""
        if key:
            metadata.ssh_public_keys[key.split(" ")[-1]] = key

        for nic in document.get("nics") or []:
            nic = _object(nic)
            ip_uuid = _object(_object(nic.get("ip_v4_conf")).get("ip")).get("uuid") or ""
            if ip_uuid:
                metadata.public_ipv4 = _parse_ip(ip_uuid)
            vlan_uuid = _object(nic.get("vlan")).get("uuid") or ""
            if vlan_uuid:
                try:
                    metadata.private_ipv4 = _find_local_ip(nic.get("mac") or "")
                except (LookupError, ValueError, OSError):
                    pass
        return metadata

    def fetch_userdata(self) -> bytes:
        meta = self.client.meta()
        user_data = meta.get(USER_DATA_FIELD_NAME)
        if user_data is None:
            return b""
        if is_base64_encoded(USER_DATA_FIELD_NAME, meta):
            cleaned = user_data.replace("\r", "").replace("\n", "")
            try:
                return base64.b64decode(cleaned, validate=True)
            except (binascii.Error, ValueError):
                return b""
        return user_data.encode()