"""Datasource reading VMware guest configuration from an OVF environment."""

from __future__ import annotations

import base64
import binascii
import gzip
import ipaddress
import itertools
import logging
import os
import xml.etree.ElementTree as ET
from typing import Callable

from cloudboot.datasource import Datasource, IPAddress, Metadata
from cloudboot.fetch import HttpClient

log = logging.getLogger(__name__)

ReadConfig = Callable[[str], str]
UrlDownload = Callable[[str], bytes]

_GUESTINFO_PREFIX = "guestinfo."


def _no_config(key: str) -> str:
    return ""


def _url_download(url: str) -> bytes:
    return HttpClient().get_retry(url)


def _b64(raw: bytes) -> bytes:
    try:
        return base64.b64decode(raw, validate=True)
    except binascii.Error as err:
        raise ValueError(f"invalid base64 content: {err}") from err


def _decode_content(content: str, encoding: str) -> bytes:
    """Decode ``content`` according to an encoding name such as ``gzip+base64``."""
    raw = content.encode("utf-8", "surrogateescape")
    if encoding in ("base64", "b64"):
        return _b64(raw)
    if encoding in ("gz", "gzip"):
        return gzip.decompress(raw)
    if encoding in ("gz+base64", "gzip+base64", "gz+b64", "gzip+b64"):
        return gzip.decompress(_b64(raw))
    raise ValueError(f'Unsupported encoding "{encoding}"')


def _parse_cidr_address(text: str) -> IPAddress:
    if "/" not in text:
        raise ValueError(f"invalid CIDR address: {text}")
    try:
        ip = ipaddress.ip_interface(text).ip
    except ValueError:
        raise ValueError(f"invalid CIDR address: {text}") from None
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        return ip.ipv4_mapped
    return ip


def _local_name(name: str) -> str:
    return name.rsplit("}", 1)[-1]


def _ovf_properties(document: bytes | str) -> dict[str, str]:
    if not document:
        return {}
    try:
        root = ET.fromstring(document)
    except ET.ParseError:
        log.warning("Could not parse OVF environment document")
        return {}
    properties: dict[str, str] = {}
    for element in root.iter():
        if _local_name(element.tag) != "Property":
            continue
        attrs = {_local_name(name): value for name, value in element.attrib.items()}
        if "key" in attrs:
            properties[attrs["key"]] = attrs.get("value", "")
    return properties


def ovf_read_config(document: bytes | str) -> ReadConfig:
    """Return a lookup of guestinfo variables held in an OVF environment document."""
    properties = _ovf_properties(document)

    def read_config(key: str) -> str:
        return properties.get(_GUESTINFO_PREFIX + key, "")

    return read_config


class VMware(Datasource):
    """Guest configuration obtained through ``read_config`` lookups."""

    def __init__(
        self,
        read_config: ReadConfig | None = None,
        url_download: UrlDownload | None = None,
        ovf_file_name: str = "",
    ) -> None:
        self.read_config = read_config or _no_config
        self.url_download = url_download or _url_download
        self.ovf_file_name = ovf_file_name

    def is_available(self) -> bool:
        if not self.ovf_file_name:
            return False
        try:
            os.stat(self.ovf_file_name)
        except FileNotFoundError:
            return False
        except OSError:
            return True
        return True

    def availability_changes(self) -> bool:
        return False

    def config_root(self) -> str:
        return "/"

    def _read_quietly(self, key: str) -> str:
        try:
            return self.read_config(key)
        except Exception:  # lookup failures simply mean the value is absent
            return ""

    def fetch_metadata(self) -> Metadata:
        metadata = Metadata(hostname=self._read_quietly("hostname"))
        netconf: dict[str, str] = {}

        def save(key: str) -> str:
            value = self._read_quietly(key)
            if value:
                netconf[key] = value
            return value

        for index in itertools.count():
            if not save(f"dns.server.{index}"):
                break

        found = True
        index = 0
        while found:
            found = False
            for name in ("name", "mac", "dhcp"):
                if save(f"interface.{index}.{name}"):
                    found = True

            role = self._read_quietly(f"interface.{index}.role")
            for addr_index in itertools.count():
                address = save(f"interface.{index}.ip.{addr_index}.address")
                if not address:
                    break
                found = True
                ip = _parse_cidr_address(address)
                is_v4 = isinstance(ip, ipaddress.IPv4Address)
                if role == "public":
                    if is_v4:
                        metadata.public_ipv4 = ip
                    else:
                        metadata.public_ipv6 = ip
                elif role == "private":
                    if is_v4:
                        metadata.private_ipv4 = ip
                    else:
                        metadata.private_ipv6 = ip
                elif role:
                    raise ValueError(f'unrecognized role: "{role}"')

            for route_index in itertools.count():
                gateway = save(f"interface.{index}.route.{route_index}.gateway")
                destination = save(f"interface.{index}.route.{route_index}.destination")
                if not gateway and not destination:
                    break
                found = True
            index += 1

        metadata.network_config = netconf
        return metadata

    def fetch_userdata(self) -> bytes:
        encoding = self.read_config("coreos.config.data.encoding")
        data = self.read_config("coreos.config.data")

        if not data:
            url = self.read_config("coreos.config.url")
            if url:
                data = self.url_download(url).decode("utf-8", "surrogateescape")

        if encoding:
            return _decode_content(data, encoding)
        return data.encode("utf-8", "surrogateescape")

    def source_type(self) -> str:
        return "vmware"


def new_datasource(file_name: str) -> VMware:
    """Create a datasource from an OVF environment file.

    Without a file name no guestinfo channel is reachable, so the returned
    datasource reports itself unavailable and yields empty values.
    """
    if file_name:
        log.info("Using OVF environment from %s", file_name)
        try:
            with open(file_name, "rb") as handle:
                document = handle.read()
        except OSError:
            document = b""
        return VMware(
            read_config=ovf_read_config(document),
            url_download=_url_download,
            ovf_file_name=file_name,
        )
    log.info("No OVF environment given; guestinfo variables are not reachable")
    return VMware(url_download=_url_download)