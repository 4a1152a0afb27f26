"""Datasource for the EC2-style instance metadata service."""

from __future__ import annotations

import ipaddress
import logging

from cloudboot.datasource import Datasource, IPAddress, Metadata
from cloudboot.metadata_service import Getter, MetadataService

log = logging.getLogger(__name__)

DEFAULT_ADDRESS = "http://169.254.169.254/"
API_VERSION = "2009-04-04/"
USERDATA_PATH = API_VERSION + "user-data"
METADATA_PATH = API_VERSION + "meta-data"


def _parse_ip(text: str) -> IPAddress | None:
    try:
        return ipaddress.ip_address(text)
    except ValueError:
        return None


class Ec2MetadataService(MetadataService, Datasource):
    """Metadata service answering with line-oriented attribute listings."""

    def __init__(self, root: str = DEFAULT_ADDRESS, client: Getter | None = None) -> None:
        super().__init__(root, API_VERSION, USERDATA_PATH, METADATA_PATH, client)

    def fetch_metadata(self) -> Metadata:
        metadata = Metadata()
        base = self.metadata_url()

        key_ids: dict[str, str] = {}
        for keyname in self.fetch_attributes(f"{base}/public-keys"):
            key_id, sep, name = keyname.partition("=")
            if not sep:
                raise ValueError(f'malformed public key: "{keyname}"')
            key_ids[name] = key_id

        metadata.ssh_public_keys = {}
        for name, key_id in key_ids.items():
            metadata.ssh_public_keys[name] = self.fetch_attribute(
                f"{base}/public-keys/{key_id}/openssh-key"
            )
            log.info("Found SSH key for %r", name)

        metadata.hostname = self.fetch_attribute(f"{base}/hostname").split(" ")[0]
        metadata.private_ipv4 = _parse_ip(self.fetch_attribute(f"{base}/local-ipv4"))
        metadata.public_ipv4 = _parse_ip(self.fetch_attribute(f"{base}/public-ipv4"))
        return metadata

    def fetch_attributes(self, url: str) -> list[str]:
        """Return the lines of the resource at ``url``."""
        text = self.fetch_data(url).decode("utf-8", errors="replace")
        lines = text.split("\n")
        if lines[-1] == "":
            lines.pop()
        return [line[:-1] if line.endswith("\r") else line for line in lines]

    def fetch_attribute(self, url: str) -> str:
        """Return the first line of the resource at ``url``, or an empty string."""
        attrs = self.fetch_attributes(url)
        return attrs[0] if attrs else ""

    def source_type(self) -> str:
        return "ec2-metadata-service"