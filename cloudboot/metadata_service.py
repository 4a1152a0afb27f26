"""Shared behaviour of datasources backed by an HTTP metadata service."""

from __future__ import annotations

from typing import Protocol

from cloudboot.fetch import FetchError, HttpClient, NotFoundError


class Getter(Protocol):
    """Anything able to fetch a URL once or with retries."""

    def get(self, url: str) -> bytes: ...

    def get_retry(self, url: str) -> bytes: ...


class MetadataService:
    """A metadata service rooted at ``root`` with fixed user-data and metadata paths."""

    def __init__(
        self,
        root: str,
        api_version: str = "",
        userdata_path: str = "",
        metadata_path: str = "",
        client: Getter | None = None,
    ) -> None:
        if not root.endswith("/"):
            root += "/"
        self.root = root
        self.api_version = api_version
        self.userdata_path = userdata_path
        self.metadata_path = metadata_path
        self.client: Getter = client if client is not None else HttpClient()

    def is_available(self) -> bool:
        try:
            self.client.get(self.root + self.api_version)
        except FetchError:
            return False
        return True

    def availability_changes(self) -> bool:
        return True

    def config_root(self) -> str:
        return self.root

    def fetch_userdata(self) -> bytes:
        return self.fetch_data(self.userdata_url())

    def fetch_data(self, url: str) -> bytes:
        """Fetch ``url``; a resource that does not exist yields empty data."""
        try:
            return self.client.get_retry(url)
        except NotFoundError:
            return b""

    def metadata_url(self) -> str:
        return self.root + self.metadata_path

    def userdata_url(self) -> str:
        return self.root + self.userdata_path