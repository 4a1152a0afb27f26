"""Datasource fetching user-data from a URL."""

from __future__ import annotations

from cloudboot.datasource import Datasource, Metadata
from cloudboot.fetch import FetchError, HttpClient


class RemoteFile(Datasource):
    """User-data served at ``url``."""

    def __init__(self, url: str, client: HttpClient | None = None) -> None:
        self.url = url
        self._client = client if client is not None else HttpClient()

    def is_available(self) -> bool:
        try:
            self._client.get(self.url)
        except FetchError:
            return False
        return True

    def availability_changes(self) -> bool:
        return True

    def config_root(self) -> str:
        return ""

    def fetch_metadata(self) -> Metadata:
        return Metadata()

    def fetch_userdata(self) -> bytes:
        return self._client.get_retry(self.url)

    def source_type(self) -> str:
        return "url"