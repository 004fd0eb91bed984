'''
world_db.py -- persisted player block overrides for a world.

The file is a pickle of {'blocks': [("x,y,z", block), ...], 'timestamp': float,
'seed': int}. Only blocks changed by the player are stored; everything else is
regenerated from the seed.
'''

import os
import time
import pickle
import threading

from . import config
from . import logutil
from .blocks import validate

LOAD_ERRORS = (OSError, EOFError, pickle.UnpicklingError, ImportError, ValueError, TypeError,
    AttributeError, IndexError, KeyError, OverflowError)


def position_key(position):
    x, y, z = position
    return f"{int(x)},{int(y)},{int(z)}"


def parse_position_key(key):
    x, y, z = key.split(',')
    return int(x), int(y), int(z)


class WorldDB(object):
    def __init__(self, path=None, chunk_size=None, seed=None):
        if path is None:
            path = getattr(config, 'WORLD_FILE_PATH', 'world.pkl')
        if chunk_size is None:
            chunk_size = getattr(config, 'CHUNK_SIZE', 16)
        self.path = path
        self.chunk_size = chunk_size
        self.seed = seed
        self.timestamp = None
        self._lock = threading.Lock()
        self._save_lock = threading.Lock()
        # chunk coordinate -> {position: block}
        self._overrides = {}

    def get_seed(self):
        return self.seed

    def _chunk_of(self, position):
        return position[0] // self.chunk_size, position[2] // self.chunk_size

    def load(self):
        '''
        Read the world file, replacing any overrides held in memory. A missing
        or unreadable file leaves an empty world. Returns the number of
        overrides loaded.
        '''
        if not os.path.exists(self.path):
            logutil.log("WORLD_DB", f"no world file at {self.path}, starting empty", level="WARN")
            with self._lock:
                self._overrides = {}
            return 0
        try:
            with open(self.path, 'rb') as f:
                data = pickle.load(f)
            overrides = {}
            for key, block in data['blocks']:
                position = parse_position_key(key)
                overrides.setdefault(self._chunk_of(position), {})[position] = validate(block)
            timestamp = data.get('timestamp')
            stored_seed = data.get('seed')
        except LOAD_ERRORS as e:
            logutil.log("WORLD_DB", f"could not read world file {self.path}: {e!r}; starting empty", level="WARN")
            with self._lock:
                self._overrides = {}
            return 0
        if self.seed is not None and stored_seed is not None and stored_seed != self.seed:
            logutil.log("WORLD_DB", f"world file seed {stored_seed} differs from world seed {self.seed}", level="WARN")
        with self._lock:
            self._overrides = overrides
            self.timestamp = timestamp
        count = sum(len(v) for v in overrides.values())
        logutil.log("WORLD_DB", f"loaded {count} block overrides from {self.path}")
        return count

    def update(self, overrides):
        '''
        Merge {position: block} into the stored overrides.
        '''
        with self._lock:
            for position, block in overrides.items():
                self._overrides.setdefault(self._chunk_of(position), {})[position] = block

    def get_chunk_data(self, coordinate):
        with self._lock:
            return dict(self._overrides.get(tuple(coordinate), {}))

    def chunk_overrides(self):
        with self._lock:
            return {coord: dict(blocks) for coord, blocks in self._overrides.items()}

    def __len__(self):
        with self._lock:
            return sum(len(v) for v in self._overrides.values())

    def save(self):
        '''
        Write every stored override to disk. The file is replaced atomically
        so a failed write leaves the previous save intact. Returns True on
        success.
        '''
        # one writer at a time owns the temp file
        with self._save_lock:
            with self._lock:
                blocks = [(position_key(p), b) for chunk in self._overrides.values() for p, b in chunk.items()]
            payload = {'blocks': blocks, 'timestamp': time.time(), 'seed': self.seed}
            tmp_path = f"{self.path}.tmp"
            try:
                with open(tmp_path, 'wb') as f:
                    pickle.dump(payload, f, -1)
                os.replace(tmp_path, self.path)
            except OSError as e:
                logutil.log("WORLD_DB", f"failed to save world to {self.path}: {e!r}", level="ERROR")
                return False
            with self._lock:
                self.timestamp = payload['timestamp']
        logutil.log("WORLD_DB", f"saved {len(blocks)} block overrides to {self.path}", level="DEBUG")
        return True
