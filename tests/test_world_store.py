import os
import sys
import time
import pickle
import threading

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from mineworld.config import WorldConfig, ConfigError
from mineworld.mapgen import TerrainGenerator
from mineworld.world_db import WorldDB, position_key, parse_position_key
from mineworld.world_store import ChunkStore
from mineworld.blocks import AIR, BEDROCK, STONE, GLASS

SEED = 12345


class CountingGenerator(object):
    '''Wraps a generator, counting calls and slowing them down so requests overlap.'''
    def __init__(self, delay=0.05):
        self.inner = TerrainGenerator(WorldConfig(seed=SEED))
        self.delay = delay
        self.calls = []
        self.lock = threading.Lock()

    def generate_chunk(self, cx, cz):
        with self.lock:
            self.calls.append((cx, cz))
        time.sleep(self.delay)
        return self.inner.generate_chunk(cx, cz)

    def biome_at(self, x, z):
        return self.inner.biome_at(x, z)


def _store(tmp_path, generator=None):
    return ChunkStore(WorldConfig(seed=SEED), path=str(tmp_path / "world.pkl"), generator=generator)


def test_generate_chunk_at_origin(tmp_path):
    store = _store(tmp_path)
    chunk = store.get_or_generate_chunk(0, 0)
    assert chunk.generated
    assert chunk.coordinate == (0, 0)
    assert not chunk.dirty
    assert store.get_block(0, 0, 0) == BEDROCK
    assert store.get_or_generate_chunk(0, 0) is chunk
    assert store.generated_count == 1
    assert store.cache_hits >= 1
    with pytest.raises(AttributeError):
        chunk.coordinate = (1, 1)


def test_set_save_load_round_trip(tmp_path):
    store = _store(tmp_path)
    store.set_block(5, 64, 5, STONE)
    assert store.get_block(5, 64, 5) == STONE
    assert store.get_chunk(0, 0).dirty
    assert store.save_dirty_chunks() == 1
    assert not store.get_chunk(0, 0).dirty
    assert store.save_dirty_chunks() == 0

    fresh = _store(tmp_path)
    assert fresh.load_world() == 1
    assert fresh.get_block(5, 64, 5) == STONE
    assert fresh.get_chunk(0, 0).modified == {(5, 64, 5): STONE}


def test_removed_block_persists_as_air(tmp_path):
    store = _store(tmp_path)
    assert store.get_block(3, 0, 3) == BEDROCK
    store.set_block(3, 0, 3, AIR)
    chunk = store.get_chunk(0, 0)
    assert chunk.blocks[(3, 0, 3)] == AIR
    assert store.get_block(3, 0, 3) == AIR
    store.save_dirty_chunks()

    fresh = _store(tmp_path)
    fresh.load_world()
    assert not fresh.get_chunk(0, 0).generated
    assert fresh.get_block(3, 0, 3) == AIR
    assert fresh.get_block(4, 0, 4) == BEDROCK


def test_negative_coordinates_map_to_floor_chunks(tmp_path):
    store = _store(tmp_path)
    assert store.chunk_coordinate(-1, -17) == (-1, -2)
    store.set_block(-1, 70, -17, GLASS)
    assert (-1, 70, -17) in store.get_chunk(-1, -2).modified


def test_concurrent_requests_generate_once(tmp_path):
    gen = CountingGenerator()
    store = _store(tmp_path, generator=gen)
    barrier = threading.Barrier(8)
    results = [None] * 8

    def worker(i):
        barrier.wait()
        results[i] = store.get_or_generate_chunk(3, 3)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert gen.calls == [(3, 3)]
    assert all(r is results[0] for r in results)
    assert results[0].generated
    assert store.generated_count == 1


def test_generate_chunks_on_worker_pool(tmp_path):
    gen = CountingGenerator(delay=0.0)
    coords = [(0, 0), (1, 0), (0, 1), (1, 0)]
    with _store(tmp_path, generator=gen) as store:
        chunks = store.generate_chunks(coords)
        assert [c.coordinate for c in chunks] == coords
        assert chunks[1] is chunks[3]
        assert sorted(gen.calls) == [(0, 0), (0, 1), (1, 0)]
        assert sorted(store.loaded_chunks()) == [(0, 0), (0, 1), (1, 0)]


def test_block_api_validation(tmp_path):
    store = _store(tmp_path)
    with pytest.raises(ValueError):
        store.set_block(0, 70, 0, "unobtainium")
    with pytest.raises(ValueError):
        store.set_block(0, 128, 0, STONE)
    with pytest.raises(ValueError):
        store.set_block(0, -1, 0, STONE)
    assert store.get_block(0, -1, 0) == AIR
    assert store.get_block(0, 128, 0) == AIR
    # nothing was generated for the rejected writes
    assert store.generated_count == 0


def test_invalid_configuration():
    with pytest.raises(ConfigError):
        WorldConfig(seed="abc")
    with pytest.raises(ConfigError):
        WorldConfig(seed=2**63)
    with pytest.raises(ConfigError):
        WorldConfig(chunk_size=0)
    with pytest.raises(ConfigError):
        WorldConfig(world_height=-5)
    with pytest.raises(ConfigError):
        WorldConfig(world_height=64, sea_level=64)
    with pytest.raises(ConfigError):
        WorldConfig(workers=0)
    with pytest.raises(ConfigError):
        ChunkStore(config={"seed": 1})
    assert WorldConfig(world_height=32).sea_level == 31


def test_missing_or_corrupt_file_gives_empty_world(tmp_path):
    store = _store(tmp_path)
    assert store.load_world() == 0
    with open(tmp_path / "world.pkl", "wb") as f:
        f.write(b"not a pickle at all")
    store = _store(tmp_path)
    assert store.load_world() == 0
    assert store.get_block(0, 0, 0) == BEDROCK
    with open(tmp_path / "world.pkl", "wb") as f:
        pickle.dump({"blocks": [("1,2,3", "unobtainium")]}, f)
    assert _store(tmp_path).load_world() == 0


def test_save_failure_keeps_chunks_dirty(tmp_path):
    store = ChunkStore(WorldConfig(seed=SEED), path=str(tmp_path / "missing" / "world.pkl"))
    store.set_block(1, 80, 1, GLASS)
    assert store.save_dirty_chunks() == 0
    assert store.get_chunk(0, 0).dirty
    assert not store.unload_chunk(0, 0)
    assert store.get_chunk(0, 0) is not None


def test_unload_flushes_then_evicts(tmp_path):
    store = _store(tmp_path)
    store.set_block(17, 90, 2, GLASS)
    assert store.unload_chunk(1, 0)
    assert store.get_chunk(1, 0) is None
    assert not store.unload_chunk(1, 0)
    # regenerated chunk still carries the override
    assert store.get_block(17, 90, 2) == GLASS
    fresh = _store(tmp_path)
    fresh.load_world()
    assert fresh.get_block(17, 90, 2) == GLASS


def test_ground_height_and_biome(tmp_path):
    store = _store(tmp_path)
    gen = store.generator
    for x, z in [(0, 0), (-32, 32)]:
        ground = store.get_ground_height(x, z)
        assert ground >= gen.surface_height(x, z)
        assert store.get_block(x, ground, z) != AIR
        assert store.biome_at(x, z) is gen.biome_at(x, z)


def test_world_db_format(tmp_path):
    path = str(tmp_path / "w.pkl")
    db = WorldDB(path, 16, SEED)
    db.update({(1, 2, 3): STONE, (-17, 5, 40): AIR})
    assert db.save()
    with open(path, "rb") as f:
        data = pickle.load(f)
    assert sorted(data["blocks"]) == [("-17,5,40", AIR), ("1,2,3", STONE)]
    assert data["seed"] == SEED
    assert isinstance(data["timestamp"], float)
    assert parse_position_key(position_key((-17, 5, 40))) == (-17, 5, 40)

    other = WorldDB(path, 16, SEED)
    assert other.load() == 2
    assert other.get_chunk_data((-2, 2)) == {(-17, 5, 40): AIR}
    assert other.timestamp == data["timestamp"]


def test_world_file_naming_unknown_module_gives_empty_world(tmp_path):
    # a GLOBAL opcode that references a module which does not exist
    with open(tmp_path / "world.pkl", "wb") as f:
        f.write(b"cno_such_module\nthing\n.")
    store = _store(tmp_path)
    assert store.load_world() == 0
    assert store.get_block(0, 0, 0) == BEDROCK


def test_write_racing_eviction_is_kept(tmp_path, monkeypatch):
    store = _store(tmp_path)
    store.get_or_generate_chunk(0, 0)
    fetch = store.get_or_generate_chunk
    evicted = []

    def fetch_then_unload(cx, cz):
        chunk = fetch(cx, cz)
        if not evicted:
            assert store.unload_chunk(cx, cz)
            evicted.append(chunk)
        return chunk

    monkeypatch.setattr(store, "get_or_generate_chunk", fetch_then_unload)
    store.set_block(1, 100, 1, GLASS)
    assert evicted[0].evicted
    assert (1, 100, 1) not in evicted[0].modified
    assert store.get_chunk(0, 0) is not evicted[0]
    assert store.save_dirty_chunks() == 1
    assert store.get_block(1, 100, 1) == GLASS
    fresh = _store(tmp_path)
    fresh.load_world()
    assert fresh.get_block(1, 100, 1) == GLASS


def test_concurrent_saves_all_succeed(tmp_path):
    path = str(tmp_path / "w.pkl")
    db = WorldDB(path, 16, SEED)
    db.update({(x, 70, z): STONE for x in range(-100, 100) for z in range(-50, 50)})
    for _ in range(5):
        barrier = threading.Barrier(4)
        results = [None] * 4

        def worker(i):
            barrier.wait()
            results[i] = db.save()

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert all(results)
    assert not os.path.exists(path + ".tmp")
    assert WorldDB(path, 16, SEED).load() == 200 * 100


def test_removing_air_is_a_no_op(tmp_path):
    store = _store(tmp_path)
    assert store.get_block(0, 127, 0) == AIR
    store.set_block(0, 127, 0, AIR)
    chunk = store.get_chunk(0, 0)
    assert not chunk.dirty
    assert (0, 127, 0) not in chunk.modified
    assert (0, 127, 0) not in chunk.blocks
    assert store.save_dirty_chunks() == 0
    # removing a placed block still records the removal
    store.set_block(0, 127, 0, GLASS)
    store.set_block(0, 127, 0, AIR)
    assert chunk.modified[(0, 127, 0)] == AIR
