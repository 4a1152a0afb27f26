"""Datasource reading the files left behind by the Azure provisioning agent."""

from __future__ import annotations

import ipaddress
import logging
import os
import posixpath
import xml.etree.ElementTree as ET
from typing import Callable

from cloudboot.datasource import Datasource, IPAddress, Metadata

log = logging.getLogger(__name__)

ReadFile = Callable[[str], bytes]


def _read_bytes(filename: str) -> bytes:
    with open(filename, "rb") as handle:
        return handle.read()


def _parse_ip(text: str) -> IPAddress | None:
    try:
        return ipaddress.ip_address(text)
    except ValueError:
        return None


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _children(element: ET.Element | None, name: str) -> list[ET.Element]:
    if element is None:
        return []
    return [child for child in element if _local_name(child.tag) == name]


def _child(element: ET.Element | None, name: str) -> ET.Element | None:
    matches = _children(element, name)
    return matches[0] if matches else None


def _split_host(hostport: str) -> str | None:
    """Return the host part of ``host:port``, or None when it has no port."""
    if hostport.startswith("["):
        end = hostport.find("]")
        if end < 0 or not hostport[end + 1:].startswith(":"):
            return None
        return hostport[1:end]
    host, sep, _port = hostport.rpartition(":")
    if not sep or ":" in host:
        return None
    return host


class WAAgent(Datasource):
    """Agent state directory at ``root``."""

    def __init__(self, root: str, read_file: ReadFile | None = None) -> None:
        self.root = root
        self._read_file = read_file or _read_bytes

    def is_available(self) -> bool:
        try:
            os.stat(posixpath.join(self.root, "provisioned"))
        except FileNotFoundError:
            return False
        except OSError:
            return True
        return True

    def availability_changes(self) -> bool:
        return True

    def config_root(self) -> str:
        return self.root

    def fetch_metadata(self) -> Metadata:
        metadata = Metadata()
        data = self._try_read_file(posixpath.join(self.root, "SharedConfig.xml"))
        if not data:
            return metadata

        document = ET.fromstring(data)
        incarnation = _child(document, "Incarnation")
        wanted = incarnation.get("instance", "") if incarnation is not None else ""
        instance = next(
            (
                candidate
                for candidate in _children(_child(document, "Instances"), "Instance")
                if candidate.get("id", "") == wanted
            ),
            None,
        )
        if instance is None:
            return metadata

        metadata.private_ipv4 = _parse_ip(instance.get("address", ""))
        for endpoint in _children(_child(instance, "InputEndpoints"), "Endpoint"):
            host = _split_host(endpoint.get("loadBalancedPublicAddress", ""))
            if host is not None:
                metadata.public_ipv4 = _parse_ip(host)
                break
        return metadata

    def fetch_userdata(self) -> bytes:
        data = self._try_read_file(posixpath.join(self.root, "CustomData"))
        return data if data is not None else b""

    def source_type(self) -> str:
        return "waagent"

    def _try_read_file(self, filename: str) -> bytes | None:
        log.info("Attempting to read from %r", filename)
        try:
            return self._read_file(filename)
        except FileNotFoundError:
            return None