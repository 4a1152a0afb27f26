"""Fetching SSH public keys published as JSON key listings."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from cloudboot.metadata_service import Getter
from cloudboot.fetch import HttpClient

_GITHUB_KEYS_URL = "https://api.github.com/users/{user}/keys"


@dataclass
class UserKey:
    """One entry of a key listing."""

    key: str = ""
    id: int = 0

    @classmethod
    def from_json(cls, value: Any) -> UserKey:
        if not isinstance(value, dict):
            raise ValueError("key entry must be a JSON object")
        key = value.get("key")
        key_id = value.get("id")
        if key is None:
            key = ""
        if key_id is None:
            key_id = 0
        if not isinstance(key, str):
            raise ValueError("field 'key' must be a string")
        if not isinstance(key_id, int) or isinstance(key_id, bool):
            raise ValueError("field 'id' must be an integer")
        return cls(key=key, id=key_id)


def github_keys_url(github_user: str) -> str:
    """Return the URL listing the public keys of a GitHub user."""
    return _GITHUB_KEYS_URL.format(user=github_user)


def fetch_user_keys(url: str, client: Getter | None = None) -> list[str]:
    """Fetch a JSON key listing from ``url`` and return the keys in order."""
    client = client if client is not None else HttpClient()
    document = json.loads(client.get_retry(url))
    if document is None:
        return []
    if not isinstance(document, list):
        raise ValueError("key listing must be a JSON array")
    return [UserKey.from_json(entry).key for entry in document]