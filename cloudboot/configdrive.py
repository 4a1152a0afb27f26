"""Datasource reading an OpenStack-style config drive."""

from __future__ import annotations

import json
import logging
import os
import posixpath
from typing import Callable

from cloudboot.datasource import Datasource, Metadata

log = logging.getLogger(__name__)

OPENSTACK_API_VERSION = "latest"

ReadFile = Callable[[str], bytes]


def _read_bytes(filename: str) -> bytes:
    with open(filename, "rb") as handle:
        return handle.read()


def _join(*parts: str) -> str:
    joined = posixpath.join(*parts)
    return posixpath.normpath(joined) if joined else ""


class ConfigDrive(Datasource):
    """Config drive mounted at ``root``."""

    def __init__(self, root: str, read_file: ReadFile | None = None) -> None:
        self.root = root
        self._read_file = read_file or _read_bytes

    def is_available(self) -> bool:
        try:
            os.stat(self.root)
        except FileNotFoundError:
            return False
        except OSError:
            return True
        return True

    def availability_changes(self) -> bool:
        return True

    def config_root(self) -> str:
        return self._openstack_root

    def fetch_metadata(self) -> Metadata:
        metadata = Metadata()
        data = self._try_read_file(_join(self._openstack_version_root, "meta_data.json"))
        if not data:
            return metadata
        document = json.loads(data)
        if not isinstance(document, dict):
            raise ValueError("meta_data.json does not hold a JSON object")

        metadata.ssh_public_keys = document.get("public_keys")
        metadata.hostname = document.get("hostname") or ""
        network_config = document.get("network_config") or {}
        content_path = network_config.get("content_path") or ""
        if content_path:
            metadata.network_config = self._try_read_file(
                _join(self._openstack_root, content_path)
            )
        return metadata

    def fetch_userdata(self) -> bytes:
        data = self._try_read_file(_join(self._openstack_version_root, "user_data"))
        return data if data is not None else b""

    def source_type(self) -> str:
        return "cloud-drive"

    @property
    def _openstack_root(self) -> str:
        return _join(self.root, "openstack")

    @property
    def _openstack_version_root(self) -> str:
        return _join(self._openstack_root, OPENSTACK_API_VERSION)

    def _try_read_file(self, filename: str) -> bytes | None:
        log.info("Attempting to read from %r", filename)
        try:
            return self._read_file(filename)
        except FileNotFoundError:
            return None