import pytest
import pytest_asyncio
from sqlalchemy import create_engine

from ak_asset_storage.dto import BundleFilterDto
from ak_asset_storage.entities import Bundle, File, Version
from ak_asset_storage.errors import DatabaseError, ExternalServiceError
from ak_asset_storage.persistence import SqlRepository

HOT_UPDATE_LIST = """{
    "fullPack": {
        "name": "__FULLPACK__",
        "hash": "",
        "md5": "",
        "totalSize": 2012245432,
        "abSize": 0
    },
    "versionId": "20-07-08-12-58-19-ee6a0d",
    "abInfos": [{
        "name": "ui/skin/2018#sale.ab",
        "hash": "0c1b5433cc652adf9ec1c3f522d2e4cd",
        "md5": "3574616c7b8c8392424992df9392bb84",
        "totalSize": 334148,
        "abSize": 398586
    }]
}"""

HASH_A = "db28dd91fd6680c37a6fa6b705d0488e589699c48e535ee422919a3e4175a0c6"
HASH_B = "a1b2c3d4e5f6789012345678901234567890abcdef1234567890abcdef123456"


def _engine(path):
    return create_engine(f"sqlite:///{path}", connect_args={"check_same_thread": False})


@pytest_asyncio.fixture
async def repo(tmp_path):
    engine = _engine(tmp_path / "db.sqlite")
    repository = SqlRepository(engine)
    await repository.migrate()
    yield repository
    engine.dispose()


def _version(res, client, is_ready=False):
    return Version.from_raw(res, client, is_ready, HOT_UPDATE_LIST)


@pytest.mark.asyncio
async def test_health_check_true_on_working_database(repo):
    assert await repo.health_check() is True


@pytest.mark.asyncio
async def test_health_check_false_on_unreachable_database(tmp_path):
    engine = _engine(tmp_path / "missing_dir" / "db.sqlite")
    assert await SqlRepository(engine).health_check() is False


@pytest.mark.asyncio
async def test_operation_without_schema_raises_database_error(tmp_path):
    repository = SqlRepository(_engine(tmp_path / "empty.sqlite"))
    with pytest.raises(DatabaseError) as info:
        await repository.create_version(_version("1.0.0", "1.0.0"))
    assert info.value.message == "Failed to create version"
    assert isinstance(info.value, ExternalServiceError)


@pytest.mark.asyncio
async def test_create_and_get_version_round_trip(repo):
    new_id = await repo.create_version(_version("1.0.0", "client-1.0.0"))
    loaded = await repo.get_version_by_id(new_id)
    assert loaded.id == new_id
    assert loaded.res == "1.0.0"
    assert loaded.client == "client-1.0.0"
    assert loaded.is_ready is False
    assert loaded.hot_update_list.raw == HOT_UPDATE_LIST
    assert loaded.hot_update_list.ab_infos[0].name == "ui/skin/2018#sale.ab"


@pytest.mark.asyncio
async def test_get_missing_version_returns_none(repo):
    assert await repo.get_version_by_id(42) is None
    assert await repo.get_latest_version() is None
    assert await repo.get_oldest_unready_version() is None


@pytest.mark.asyncio
async def test_latest_and_oldest_unready(repo):
    first = await repo.create_version(_version("1.0.0", "c1"))
    second = await repo.create_version(_version("1.1.0", "c2"))
    third = await repo.create_version(_version("1.2.0", "c3"))
    assert (await repo.get_latest_version()).id == third
    assert (await repo.get_oldest_unready_version()).id == first
    await repo.mark_version_ready(first)
    assert (await repo.get_oldest_unready_version()).id == second
    assert (await repo.get_version_by_id(first)).is_ready is True


@pytest.mark.asyncio
async def test_is_client_and_res_exist(repo):
    await repo.create_version(_version("1.0.0", "client-1.0.0"))
    assert await repo.is_client_and_res_exist("client-1.0.0", "1.0.0") is True
    assert await repo.is_client_and_res_exist("1.0.0", "client-1.0.0") is False


@pytest.mark.asyncio
async def test_query_versions_in_id_order(repo):
    ids = [
        await repo.create_version(_version("1.0.0", "c1")),
        await repo.create_version(_version("1.1.0", "c2", is_ready=True)),
    ]
    rows = await repo.query_versions()
    assert [row.id for row in rows] == ids
    assert rows[1].to_dict() == {
        "id": ids[1],
        "clientVersion": "c2",
        "resVersion": "1.1.0",
        "isReady": True,
    }


@pytest.mark.asyncio
async def test_query_version_detail(repo):
    new_id = await repo.create_version(_version("1.0.0", "c1"))
    detail = await repo.query_version_detail_by_id(new_id)
    assert detail.hot_update_list == HOT_UPDATE_LIST
    assert detail.client_version == "c1"
    assert detail.res_version == "1.0.0"
    assert await repo.query_version_detail_by_id(new_id + 1) is None


@pytest.mark.asyncio
async def test_file_round_trip(repo):
    file_id = await repo.create_file(File(hash=HASH_A, size=1024))
    loaded = await repo.get_file_by_hash(HASH_A)
    assert loaded == File(hash=HASH_A, size=1024, id=file_id)
    assert await repo.get_file_by_hash(HASH_B) is None


@pytest.mark.asyncio
async def test_bundle_round_trip(repo):
    version_id = await repo.create_version(_version("1.0.0", "c1"))
    file_id = await repo.create_file(File(hash=HASH_A, size=10))
    bundle_id = await repo.create_bundle(
        Bundle(path="arts/[pack]common.ab", version_id=version_id, file_id=file_id)
    )
    loaded = await repo.get_bundle_by_version_and_path(version_id, "arts/[pack]common.ab")
    assert loaded == Bundle(
        path="arts/[pack]common.ab", version_id=version_id, file_id=file_id, id=bundle_id
    )
    assert await repo.get_bundle_by_version_and_path(version_id, "other.ab") is None


@pytest.fixture
def populate():
    async def fill(repository):
        v1 = await repository.create_version(_version("1.0.0", "c1"))
        v2 = await repository.create_version(_version("1.1.0", "c2", is_ready=True))
        fa = await repository.create_file(File(hash=HASH_A, size=10))
        fb = await repository.create_file(File(hash=HASH_B, size=20))
        b1 = await repository.create_bundle(Bundle("arts/[pack]common.ab", v1, fa))
        b2 = await repository.create_bundle(Bundle("arts/furniture_group_hub.ab", v1, fb))
        b3 = await repository.create_bundle(Bundle("arts/[pack]common.ab", v2, fa))
        return {"v1": v1, "v2": v2, "fa": fa, "fb": fb, "b1": b1, "b2": b2, "b3": b3}

    return fill


@pytest.mark.asyncio
async def test_bundle_details_by_id(repo, populate):
    ids = await populate(repo)
    detail = await repo.query_bundle_by_id_with_details(ids["b3"])
    assert detail.to_dict() == {
        "id": ids["b3"],
        "path": "arts/[pack]common.ab",
        "fileId": ids["fa"],
        "fileHash": HASH_A,
        "fileSize": 10,
        "versionId": ids["v2"],
        "versionRes": "1.1.0",
        "versionClient": "c2",
        "versionIsReady": True,
    }
    assert await repo.query_bundle_by_id_with_details(ids["b3"] + 100) is None


@pytest.mark.asyncio
async def test_bundle_filters(repo, populate):
    ids = await populate(repo)
    everything = await repo.query_bundles_with_details(BundleFilterDto())
    assert sorted(d.id for d in everything) == sorted([ids["b1"], ids["b2"], ids["b3"]])

    by_path = await repo.query_bundles_with_details(BundleFilterDto(path="furniture"))
    assert [d.id for d in by_path] == [ids["b2"]]

    by_hash = await repo.query_bundles_with_details(BundleFilterDto(hash=HASH_A))
    assert sorted(d.id for d in by_hash) == sorted([ids["b1"], ids["b3"]])

    by_file = await repo.query_bundles_with_details(BundleFilterDto(file=ids["fb"]))
    assert [d.id for d in by_file] == [ids["b2"]]

    combined = await repo.query_bundles_with_details(
        BundleFilterDto(hash=HASH_A, version=ids["v2"])
    )
    assert [d.id for d in combined] == [ids["b3"]]


@pytest.mark.asyncio
async def test_bundles_by_version(repo, populate):
    ids = await populate(repo)
    rows = await repo.query_bundles_by_version_id(ids["v1"])
    assert sorted(d.id for d in rows) == sorted([ids["b1"], ids["b2"]])
    assert all(d.version_id == ids["v1"] for d in rows)
    assert await repo.query_bundles_by_version_id(ids["v2"] + 1) == []


@pytest.mark.asyncio
async def test_replace_all_demands(repo):
    await repo.replace_all_demands([("item_a", '{"x":1}'), ("item_b", "[]")])
    assert await repo.query_usage_by_item_name("item_a") == '{"x":1}'
    assert await repo.query_usage_by_item_name("item_b") == "[]"

    await repo.replace_all_demands([("item_c", "null")])
    assert await repo.query_usage_by_item_name("item_a") is None
    assert await repo.query_usage_by_item_name("item_c") == "null"


@pytest.mark.asyncio
async def test_replace_all_demands_rolls_back_on_failure(repo):
    await repo.replace_all_demands([("item_a", "1")])
    with pytest.raises(DatabaseError) as info:
        await repo.replace_all_demands([("dup", "1"), ("dup", "2")])
    assert info.value.message == "Failed to insert item demand for dup"
    assert await repo.query_usage_by_item_name("item_a") == "1"
    assert await repo.query_usage_by_item_name("dup") is None