"""Tests for mirroring archives into the local cache."""
import httpx
import pytest

from redbook_sync.application.domain import ArchiveReference
from redbook_sync.application.exceptions import DownloadError
from redbook_sync.application.service import ArchiveCacheSynchronizer
from redbook_sync.infrastructure.downloader import HttpDownloader

BASE_URL = "https://bulkdata.example.test/fulltext/2020/"


def _ref(name):
    return ArchiveReference(name=name, url=BASE_URL + name)


def _synchronizer(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    downloader = HttpDownloader(client, timeout=5, chunk_size=4)
    return ArchiveCacheSynchronizer(downloader)


def _payload_handler(requested, failing=()):
    def handler(request: httpx.Request) -> httpx.Response:
        name = request.url.path.split("/")[-1]
        requested.append(name)
        if name in failing:
            return httpx.Response(404)
        return httpx.Response(200, content=f"payload of {name}".encode())

    return handler


@pytest.mark.asyncio
async def test_only_missing_archives_are_fetched(tmp_path):
    cache_dir = tmp_path / "zips"
    cache_dir.mkdir()
    (cache_dir / "ipa200102.zip").write_bytes(b"already here")
    requested = []
    synchronizer = _synchronizer(_payload_handler(requested))

    fetched = await synchronizer.sync_archives(
        [_ref("ipa200102.zip"), _ref("ipa200109.zip")], cache_dir
    )

    assert requested == ["ipa200109.zip"]
    assert [archive.path.name for archive in fetched] == ["ipa200109.zip"]
    assert (cache_dir / "ipa200109.zip").read_bytes() == b"payload of ipa200109.zip"
    assert (cache_dir / "ipa200102.zip").read_bytes() == b"already here"


@pytest.mark.asyncio
async def test_rerun_with_full_cache_performs_no_fetches(tmp_path):
    cache_dir = tmp_path / "zips"
    refs = [_ref("ipa200102.zip"), _ref("ipa200109.zip")]
    requested = []
    synchronizer = _synchronizer(_payload_handler(requested))

    await synchronizer.sync_archives(refs, cache_dir)
    assert requested == ["ipa200102.zip", "ipa200109.zip"]

    requested.clear()
    fetched = await synchronizer.sync_archives(refs, cache_dir)

    assert requested == []
    assert fetched == []


@pytest.mark.asyncio
async def test_failed_fetch_aborts_and_keeps_earlier_archives(tmp_path):
    cache_dir = tmp_path / "zips"
    requested = []
    synchronizer = _synchronizer(
        _payload_handler(requested, failing={"ipa200109.zip"})
    )

    with pytest.raises(DownloadError):
        await synchronizer.sync_archives(
            [_ref("ipa200102.zip"), _ref("ipa200109.zip"), _ref("ipa200116.zip")],
            cache_dir,
        )

    assert requested == ["ipa200102.zip", "ipa200109.zip"]
    assert sorted(path.name for path in cache_dir.iterdir()) == ["ipa200102.zip"]


@pytest.mark.asyncio
async def test_cache_directory_is_created(tmp_path):
    cache_dir = tmp_path / "nested" / "zips"

    await _synchronizer(_payload_handler([])).sync_archives([], cache_dir)

    assert cache_dir.is_dir()
