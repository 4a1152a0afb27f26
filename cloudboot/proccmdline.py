"""Datasource locating user-data through the kernel command line."""

from __future__ import annotations

import logging

from cloudboot.datasource import Datasource, Metadata
from cloudboot.fetch import HttpClient

log = logging.getLogger(__name__)

PROC_CMDLINE_LOCATION = "/proc/cmdline"
PROC_CMDLINE_CLOUD_CONFIG_FLAG = "cloud-config-url"


def find_cloud_config_url(text: str) -> str:
    """Return the last ``cloud-config-url`` value on a command line.

    Underscores in option names count as dashes. Raises LookupError if the
    option is not present with a value.
    """
    url: str | None = None
    for token in text.split(" "):
        key, sep, value = token.partition("=")
        if key.replace("_", "-") != PROC_CMDLINE_CLOUD_CONFIG_FLAG:
            continue
        if not sep:
            log.info("Found cloud-config-url in /proc/cmdline with no value, ignoring.")
            continue
        url = value
    if url is None:
        raise LookupError("cloud-config-url not found")
    return url


class ProcCmdline(Datasource):
    """User-data at a URL named on the kernel command line."""

    def __init__(self, location: str = PROC_CMDLINE_LOCATION,
                 client: HttpClient | None = None) -> None:
        self.location = location
        self._client = client if client is not None else HttpClient()

    def _read_cmdline(self) -> str:
        with open(self.location, encoding="utf-8", errors="replace") as handle:
            return handle.read().strip()

    def is_available(self) -> bool:
        try:
            find_cloud_config_url(self._read_cmdline())
        except (OSError, LookupError):
            return False
        return True

    def availability_changes(self) -> bool:
        return False

    def config_root(self) -> str:
        return ""

    def fetch_metadata(self) -> Metadata:
        return Metadata()

    def fetch_userdata(self) -> bytes:
        url = find_cloud_config_url(self._read_cmdline())
        return self._client.get_retry(url)

    def source_type(self) -> str:
        return "proc-cmdline"