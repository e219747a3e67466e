import asyncio

import cbor2
import pytest

from ogsync.chainsync import ORIGIN, PointStruct
from ogsync.errors import DecodeError
from ogsync.store import FileStore, NopStore


def test_file_store_keeps_newest_points(tmp_path):
    store = FileStore(tmp_path / "checkpoints" / "points.cbor", keep=3)

    async def main():
        assert await store.load() == []
        for slot in (10, 30, 20, 40):
            await store.save(PointStruct(id=f"{slot:02x}" * 32, slot=slot, height=slot // 10))
        await store.save(PointStruct(id=f"{40:02x}" * 32, slot=40, height=4))
        return await store.load()

    points = asyncio.run(main())
    assert [p.slot for p in points] == [40, 30, 20]
    assert points[0].height == 4
    assert not (tmp_path / "checkpoints" / "points.cbor.tmp").exists()


def test_file_store_origin(tmp_path):
    store = FileStore(tmp_path / "points.cbor")

    async def main():
        await store.save(ORIGIN)
        await store.save(PointStruct(id="ab", slot=1))
        return await store.load()

    assert asyncio.run(main()) == [PointStruct(id="ab", slot=1), ORIGIN]


def test_file_store_rejects_garbage(tmp_path):
    path = tmp_path / "points.cbor"
    path.write_bytes(cbor2.dumps({"not": "a list"}))
    with pytest.raises(DecodeError):
        asyncio.run(FileStore(path).load())


def test_nop_store():
    async def main():
        store = NopStore()
        await store.save(ORIGIN)
        return await store.load()

    assert asyncio.run(main()) == []
