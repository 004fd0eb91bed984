'''
world_store.py -- chunk cache, on-demand generation and the block read/write API.
'''

import threading
import concurrent.futures

from . import logutil
from .config import WorldConfig, ConfigError
from .blocks import AIR, validate
from .mapgen import TerrainGenerator
from .world_db import WorldDB


class Chunk(object):
    '''
    Blocks of one chunk column keyed by world (x, y, z). `modified` holds the
    player overrides applied on top of generated terrain; it may contain
    explicit air where a block was removed.
    '''
    def __init__(self, coordinate):
        self._coordinate = tuple(coordinate)
        self.blocks = {}
        self.modified = {}
        self.generated = False
        self.dirty = False
        # set under `lock` once the store has dropped this chunk
        self.evicted = False
        self.lock = threading.RLock()

    @property
    def coordinate(self):
        return self._coordinate

    def get(self, position):
        with self.lock:
            return self.blocks.get(position, AIR)

    def __repr__(self):
        return (f"Chunk({self._coordinate}, blocks={len(self.blocks)}, "
                f"modified={len(self.modified)}, generated={self.generated}, dirty={self.dirty})")


class ChunkStore(object):
    '''
    Owns every loaded chunk of a world.

    Chunks are generated lazily and at most once: concurrent requests for the
    same coordinate wait on the first request's event and receive the same
    Chunk. Generation itself runs without holding the store lock.
    '''
    def __init__(self, config=None, path=None, generator=None):
        if config is None:
            config = WorldConfig()
        if not isinstance(config, WorldConfig):
            raise ConfigError(f"expected a WorldConfig, got {config!r}")
        self.config = config
        self.chunk_size = config.chunk_size
        self.world_height = config.world_height
        if generator is None:
            generator = TerrainGenerator(config)
        self.generator = generator
        self.db = WorldDB(path, self.chunk_size, config.seed)
        self._lock = threading.Lock()
        self._chunks = {}
        self._pending = {}
        self._executor = None
        self.generated_count = 0
        self.cache_hits = 0
        logutil.log("WORLD", f"chunk store ready {config!r} file={self.db.path}")

    def chunk_coordinate(self, x, z):
        return x // self.chunk_size, z // self.chunk_size

    def get_chunk(self, cx, cz):
        with self._lock:
            return self._chunks.get((cx, cz))

    def loaded_chunks(self):
        with self._lock:
            return list(self._chunks)

    def get_or_generate_chunk(self, cx, cz):
        coordinate = (cx, cz)
        while True:
            with self._lock:
                chunk = self._chunks.get(coordinate)
                if chunk is not None and chunk.generated:
                    self.cache_hits += 1
                    return chunk
                event = self._pending.get(coordinate)
                owner = event is None
                if owner:
                    event = threading.Event()
                    self._pending[coordinate] = event
            if owner:
                break
            # another thread is generating this chunk
            event.wait()
        try:
            blocks = self.generator.generate_chunk(cx, cz)
            overrides = self.db.get_chunk_data(coordinate)
            with self._lock:
                chunk = self._chunks.get(coordinate)
                if chunk is None:
                    chunk = Chunk(coordinate)
                    self._chunks[coordinate] = chunk
            with chunk.lock:
                overrides.update(chunk.modified)
                blocks.update(overrides)
                chunk.blocks = blocks
                chunk.modified = overrides
                chunk.generated = True
            with self._lock:
                self.generated_count += 1
        finally:
            with self._lock:
                del self._pending[coordinate]
            event.set()
        return chunk

    def generate_chunks(self, coordinates):
        '''
        Generate (or fetch) several chunks on the worker pool. Returns the
        chunks in the order of `coordinates`.
        '''
        coordinates = list(coordinates)
        with self._lock:
            if self._executor is None:
                self._executor = concurrent.futures.ThreadPoolExecutor(
                    max_workers=self.config.workers, thread_name_prefix='chunkgen')
            executor = self._executor
        futures = [executor.submit(self.get_or_generate_chunk, cx, cz) for cx, cz in coordinates]
        return [f.result() for f in futures]

    def get_block(self, x, y, z):
        if not 0 <= y < self.world_height:
            return AIR
        chunk = self.get_or_generate_chunk(*self.chunk_coordinate(x, z))
        return chunk.get((x, y, z))

    def set_block(self, x, y, z, block):
        validate(block)
        if not 0 <= y < self.world_height:
            raise ValueError(f"y={y} outside world height [0, {self.world_height})")
        position = (x, y, z)
        while True:
            chunk = self.get_or_generate_chunk(*self.chunk_coordinate(x, z))
            with chunk.lock:
                if chunk.evicted:
                    # unloaded between lookup and write; fetch it again
                    continue
                if block == AIR and position not in chunk.modified and position not in chunk.blocks:
                    return
                chunk.blocks[position] = block
                chunk.modified[position] = block
                chunk.dirty = True
                return

    def get_ground_height(self, x, z):
        '''
        Highest y holding a non-air block in column (x, z), or 0 if the column
        is empty.
        '''
        chunk = self.get_or_generate_chunk(*self.chunk_coordinate(x, z))
        with chunk.lock:
            for y in range(self.world_height - 1, -1, -1):
                if chunk.blocks.get((x, y, z), AIR) != AIR:
                    return y
        return 0

    def biome_at(self, x, z):
        return self.generator.biome_at(x, z)

    def _save_chunks(self, chunks):
        overrides = {}
        flushed = []
        for chunk in chunks:
            with chunk.lock:
                if not chunk.dirty:
                    continue
                overrides.update(chunk.modified)
                chunk.dirty = False
                flushed.append(chunk)
        if not flushed:
            return 0
        self.db.update(overrides)
        if not self.db.save():
            for chunk in flushed:
                with chunk.lock:
                    chunk.dirty = True
            return 0
        logutil.log("WORLD", f"saved {len(overrides)} overrides from {len(flushed)} chunks")
        return len(overrides)

    def save_dirty_chunks(self):
        '''
        Persist the overrides of every dirty chunk. Returns the number of
        overrides written (0 if nothing was dirty or the write failed).
        '''
        with self._lock:
            chunks = list(self._chunks.values())
        return self._save_chunks(chunks)

    def load_world(self):
        '''
        Read the world file and install its overrides into the chunk maps.
        Chunks not yet generated are created holding only the overrides and
        are completed on first request. Returns the number of overrides read.
        '''
        count = self.db.load()
        for coordinate, overrides in self.db.chunk_overrides().items():
            self._install_overrides(coordinate, overrides)
        logutil.log("WORLD", f"world loaded: {count} overrides, {len(self.loaded_chunks())} chunks")
        return count

    def _install_overrides(self, coordinate, overrides):
        while True:
            with self._lock:
                chunk = self._chunks.get(coordinate)
                if chunk is None:
                    chunk = Chunk(coordinate)
                    self._chunks[coordinate] = chunk
            with chunk.lock:
                if chunk.evicted:
                    continue
                for position, block in overrides.items():
                    if chunk.dirty and position in chunk.modified:
                        # unsaved edit made after the file was written
                        continue
                    chunk.modified[position] = block
                    if chunk.generated:
                        chunk.blocks[position] = block
                return

    def unload_chunk(self, cx, cz):
        '''
        Flush the chunk's unsaved overrides and drop it from memory. A chunk
        whose save failed stays loaded. Returns True if the chunk was evicted.
        '''
        chunk = self.get_chunk(cx, cz)
        if chunk is None:
            return False
        self._save_chunks([chunk])
        with chunk.lock:
            if chunk.dirty:
                logutil.log("WORLD", f"keeping chunk {(cx, cz)} loaded, save failed", level="WARN")
                return False
            with self._lock:
                if self._chunks.get((cx, cz)) is chunk:
                    del self._chunks[(cx, cz)]
            chunk.evicted = True
        return True

    def close(self):
        with self._lock:
            executor = self._executor
            self._executor = None
        if executor is not None:
            executor.shutdown(wait=True)
        self.save_dirty_chunks()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()
