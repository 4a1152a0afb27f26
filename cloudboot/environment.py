"""Substitution environment applied to configuration before it is acted on."""

from __future__ import annotations

import os
import posixpath
import re
from dataclasses import dataclass, field

from cloudboot.datasource import IPAddress, Metadata

DEFAULT_SSH_KEY_NAME = "coreos-cloudinit"

_ENV_VARS = {
    "$public_ipv4": "COREOS_PUBLIC_IPV4",
    "$private_ipv4": "COREOS_PRIVATE_IPV4",
    "$public_ipv6": "COREOS_PUBLIC_IPV6",
    "$private_ipv6": "COREOS_PRIVATE_IPV6",
}


@dataclass
class EnvFile:
    """Variables to be written to an environment file at ``path``."""

    path: str
    vars: dict[str, str] = field(default_factory=dict)


def _join(*parts: str) -> str:
    joined = posixpath.join(*parts)
    return posixpath.normpath(joined) if joined else ""


class Environment:
    """Where configuration is applied and which addresses are substituted into it."""

    def __init__(
        self,
        root: str,
        config_root: str,
        workspace: str,
        ssh_key_name: str,
        metadata: Metadata,
    ) -> None:
        self.root = root
        self.config_root = config_root
        self.ssh_key_name = ssh_key_name
        self._workspace = workspace

        def first_non_null(address: IPAddress | None, variable: str) -> str:
            if address is None:
                return os.environ.get(variable, "")
            return str(address)

        self._substitutions = {
            "$public_ipv4": first_non_null(metadata.public_ipv4, _ENV_VARS["$public_ipv4"]),
            "$private_ipv4": first_non_null(metadata.private_ipv4, _ENV_VARS["$private_ipv4"]),
            "$public_ipv6": first_non_null(metadata.public_ipv6, _ENV_VARS["$public_ipv6"]),
            "$private_ipv6": first_non_null(metadata.private_ipv6, _ENV_VARS["$private_ipv6"]),
        }

    @property
    def workspace(self) -> str:
        return _join(self.root, self._workspace)

    def apply(self, data: str) -> str:
        """Replace every substitution key in ``data``; a leading backslash escapes it."""
        for key, value in self._substitutions.items():
            escaped = re.escape(key)
            data = re.sub(
                r"([^\\]|^)" + escaped,
                lambda match, value=value: match.group(1) + value,
                data,
            )
            data = re.sub(r"\\" + escaped, lambda _match, key=key: key, data)
        return data

    def default_environment_file(self) -> EnvFile | None:
        """Return /etc/environment contents for the known addresses, or None if there are none."""
        env_file = EnvFile(path="/etc/environment")
        for key, variable in _ENV_VARS.items():
            value = self._substitutions.get(key, "")
            if value:
                env_file.vars[variable] = value
        return env_file if env_file.vars else None