import pytest

from cloudboot.datasource import Metadata
from cloudboot.localfile import LocalFile


def test_fetch_userdata_reads_file(tmp_path):
    target = tmp_path / "user_data"
    target.write_bytes(b"#cloud-config\nhostname: foo\n")
    assert LocalFile(str(target)).fetch_userdata() == b"#cloud-config\nhostname: foo\n"


def test_fetch_userdata_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        LocalFile(str(tmp_path / "absent")).fetch_userdata()


def test_is_available_follows_file(tmp_path):
    target = tmp_path / "user_data"
    source = LocalFile(str(target))
    assert source.is_available() is False
    target.write_bytes(b"")
    assert source.is_available() is True


def test_static_answers(tmp_path):
    source = LocalFile(str(tmp_path / "user_data"))
    assert source.fetch_metadata() == Metadata()
    assert source.config_root() == ""
    assert source.availability_changes() is True
    assert source.source_type() == "local-file"