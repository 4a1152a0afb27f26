import ipaddress
import json

import pytest

from cloudboot.cloudsigma import ServerContextService, is_base64_encoded


class FakeCepgoClient:
    def __init__(self, raw=b"", meta=None, keys=None, err=None):
        self.raw = raw
        self.meta_data = meta or {}
        self.keys = keys or {}
        self.err = err

    def all(self):
        if self.err:
            raise self.err
        return self.keys

    def key(self, key):
        if self.err:
            raise self.err
        return self.keys.get(key)

    def meta(self):
        if self.err:
            raise self.err
        return self.meta_data

    def fetch_raw(self, key):
        if self.err:
            raise self.err
        return self.raw


CONTEXT = {
    "context": True,
    "cpu": 4000,
    "cpu_model": None,
    "cpus_instead_of_cores": False,
    "enable_numa": False,
    "grantees": [],
    "hv_relaxed": False,
    "hv_tsc": False,
    "jobs": [],
    "mem": 4294967296,
    "meta": {
        "base64_fields": "cloudinit-user-data",
        "cloudinit-user-data": "I2Nsb3VkLWNvbmZpZwoKaG9zdG5hbWU6IGNvcmVvczE=",
        "ssh_public_key": "ssh-rsa AAAAB3NzaC1yc2E.../hQ5D5 core@example.com",
    },
    "name": "coreos",
    "nics": [
        {
            "boot_order": None,
            "ip_v4_conf": {
                "conf": "dhcp",
                "ip": {
                    "gateway": "31.171.244.1",
                    "meta": {},
                    "nameservers": ["178.22.66.167", "178.22.71.56", "8.8.8.8"],
                    "netmask": 22,
                    "tags": [],
                    "uuid": "31.171.251.74",
                },
            },
            "ip_v6_conf": None,
            "mac": "02:00:00:00:00:01",
            "model": "virtio",
            "vlan": None,
        },
        {
            "boot_order": None,
            "ip_v4_conf": None,
            "ip_v6_conf": None,
            "mac": "02:00:00:00:00:02",
            "model": "virtio",
            "vlan": {
                "meta": {"description": "", "name": "CoreOS"},
                "tags": [],
                "uuid": "5dec030e-25b8-4621-a5a4-a3302c9d9619",
            },
        },
    ],
    "smp": 2,
    "status": "running",
    "uuid": "20a0059b-041e-4d0c-bcc6-9b2852de48b3",
}


def test_empty_public_ssh_key():
    raw = json.dumps({
        "meta": {
            "base64_fields": "cloudinit-user-data",
            "cloudinit-user-data": "I2Nsb3VkLWNvbmZpZwoKaG9zdG5hbWU6IGNvcmVvczE=",
            "ssh_public_key": "",
        }
    }).encode()
    metadata = ServerContextService(FakeCepgoClient(raw=raw)).fetch_metadata()
    assert metadata.ssh_public_keys == {}


def test_fetch_metadata():
    service = ServerContextService(FakeCepgoClient(raw=json.dumps(CONTEXT).encode()))
    metadata = service.fetch_metadata()
    assert metadata.hostname == "coreos"
    assert metadata.ssh_public_keys["core@example.com"] == (
        "ssh-rsa AAAAB3NzaC1yc2E.../hQ5D5 core@example.com"
    )
    assert metadata.public_ipv4 == ipaddress.ip_address("31.171.251.74")


def test_fetch_metadata_hostname_falls_back_to_uuid():
    raw = json.dumps({"uuid": "20a0059b-041e-4d0c-bcc6-9b2852de48b3"}).encode()
    metadata = ServerContextService(FakeCepgoClient(raw=raw)).fetch_metadata()
    assert metadata.hostname == "20a0059b-041e-4d0c-bcc6-9b2852de48b3"


def test_fetch_metadata_error_propagates():
    service = ServerContextService(FakeCepgoClient(err=OSError("boom")))
    with pytest.raises(OSError, match="boom"):
        service.fetch_metadata()


@pytest.mark.parametrize(
    "meta, expected",
    [
        (
            {"base64_fields": "cloudinit-user-data",
             "cloudinit-user-data": "aG9zdG5hbWU6IGNvcmVvc190ZXN0"},
            b"hostname: coreos_test",
        ),
        (
            {"cloudinit-user-data": "#cloud-config\\nhostname: coreos1"},
            b"#cloud-config\\nhostname: coreos1",
        ),
        ({}, b""),
        (
            {"base64_fields": "cloudinit-user-data", "cloudinit-user-data": "!!not base64!!"},
            b"",
        ),
    ],
)
def test_fetch_userdata(meta, expected):
    service = ServerContextService(FakeCepgoClient(meta=meta))
    assert service.fetch_userdata() == expected


def test_fetch_userdata_error():
    service = ServerContextService(FakeCepgoClient(err=OSError("no context")))
    with pytest.raises(OSError, match="no context"):
        service.fetch_userdata()


@pytest.mark.parametrize(
    "fields, expected",
    [
        ("cloudinit-user-data,foo,bar", True),
        ("bar,cloudinit-user-data,foo,bar", True),
        ("cloudinit-user-data", True),
        ("", False),
        ("foo", False),
    ],
)
def test_is_base64_encoded(fields, expected):
    assert is_base64_encoded("cloudinit-user-data", {"base64_fields": fields}) is expected


def test_is_base64_encoded_without_field_list():
    assert is_base64_encoded("cloudinit-user-data", {}) is False


def test_fixed_answers():
    service = ServerContextService(FakeCepgoClient())
    assert service.source_type() == "server-context"
    assert service.config_root() == ""
    assert service.availability_changes() is True