from datetime import datetime, timedelta
from pathlib import Path

import pytest

from ak_asset_storage.dto import (
    AssetDirInfo,
    AssetEntry,
    BundleDetailsDto,
    BundleFilterDto,
    RemoteVersion,
    VersionDetailDto,
    VersionDto,
)
from ak_asset_storage.errors import ApplicationError


@pytest.fixture
def tree(tmp_path):
    sub = tmp_path / "sub"
    sub.mkdir()
    data = b"hello"
    (sub / "a.txt").write_bytes(data)
    return tmp_path, data


def test_file_entry(tree):
    base, data = tree
    entry = AssetEntry.from_path(base / "sub" / "a.txt", base)
    assert entry.name == "a.txt"
    assert entry.path == str(Path("sub", "a.txt"))
    assert entry.size == len(data)
    assert entry.is_dir is False


def test_directory_entry(tree):
    base, _ = tree
    entry = AssetEntry.from_path(base / "sub", base)
    assert entry.is_dir is True
    assert entry.path == "sub"


def test_base_itself_has_empty_path(tree):
    base, _ = tree
    entry = AssetEntry.from_path(base, base)
    assert entry.path == ""
    assert entry.name == base.name


def test_timestamps_are_utc_rfc3339(tree):
    base, _ = tree
    entry = AssetEntry.from_path(base / "sub" / "a.txt", base)
    for stamp in (entry.create_at, entry.modified_at):
        assert datetime.fromisoformat(stamp).utcoffset() == timedelta(0)


def test_target_outside_base_fails(tree, tmp_path_factory):
    base, _ = tree
    other = tmp_path_factory.mktemp("other")
    with pytest.raises(ApplicationError):
        AssetEntry.from_path(other, base)


def test_missing_target_fails(tree):
    base, _ = tree
    with pytest.raises(ApplicationError):
        AssetEntry.from_path(base / "missing", base)


def test_dir_info_to_dict(tree):
    base, _ = tree
    directory = AssetEntry.from_path(base / "sub", base)
    child = AssetEntry.from_path(base / "sub" / "a.txt", base)
    info = AssetDirInfo(dir=directory, children=[child])
    result = info.to_dict()
    assert result["dir"] == directory.to_dict()
    assert result["children"] == [child.to_dict()]
    assert set(child.to_dict()) == {"name", "path", "size", "create_at", "modified_at", "is_dir"}


def test_bundle_details_keys_are_camel_case():
    dto = BundleDetailsDto(1, "arts/a.ab", 2, "abc", 10, 3, "r", "c", True)
    result = dto.to_dict()
    assert set(result) == {
        "id", "path", "fileId", "fileHash", "fileSize",
        "versionId", "versionRes", "versionClient", "versionIsReady",
    }
    assert result["fileHash"] == "abc"
    assert result["versionIsReady"] is True


def test_version_dtos_to_dict():
    summary = VersionDto(1, "client-1.0.0", "1.0.0", False)
    assert summary.to_dict() == {
        "id": 1, "clientVersion": "client-1.0.0", "resVersion": "1.0.0", "isReady": False,
    }
    detail = VersionDetailDto(1, "client-1.0.0", "1.0.0", True, '{"abInfos": []}')
    assert detail.to_dict()["hotUpdateList"] == '{"abInfos": []}'
    assert detail.to_dict()["isReady"] is True


def test_bundle_filter_defaults_and_remote_version():
    flt = BundleFilterDto()
    assert (flt.path, flt.hash, flt.file, flt.version) == (None, None, None, None)
    remote = RemoteVersion(client_version="1.1.0", res_version="1.1.0")
    assert remote == RemoteVersion("1.1.0", "1.1.0")