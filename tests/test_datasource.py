import ipaddress

import pytest

from cloudboot.datasource import Datasource, Metadata


class _Static(Datasource):
    def __init__(self, userdata):
        self._userdata = userdata

    def is_available(self):
        return bool(self._userdata)

    def availability_changes(self):
        return False

    def config_root(self):
        return "/static"

    def fetch_metadata(self):
        return Metadata(hostname="static-host")

    def fetch_userdata(self):
        return self._userdata

    def source_type(self):
        return "static"


def test_metadata_defaults_are_empty():
    metadata = Metadata()
    assert metadata.hostname == ""
    assert metadata.public_ipv4 is None
    assert metadata.private_ipv6 is None
    assert metadata.ssh_public_keys is None
    assert metadata.network_config is None


def test_metadata_equality_compares_fields():
    first = Metadata(public_ipv4=ipaddress.ip_address("192.0.2.3"), hostname="host")
    second = Metadata(public_ipv4=ipaddress.ip_address("192.0.2.3"), hostname="host")
    assert first == second
    assert first != Metadata(hostname="host")


def test_datasource_is_abstract():
    with pytest.raises(TypeError):
        Datasource()


def test_concrete_subclass_answers_through_interface():
    source = _Static(b"#cloud-config\n")
    assert source.is_available() is True
    assert source.fetch_userdata() == b"#cloud-config\n"
    assert source.fetch_metadata() == Metadata(hostname="static-host")
    assert source.config_root() == "/static"
    assert source.source_type() == "static"
    assert _Static(b"").is_available() is False