import numbers

# Size of chunks used to group block generation and storage.
CHUNK_SIZE = 16 #width and depth (x and z)
WORLD_HEIGHT = 128 #height of world (y)
SEA_LEVEL = 64

# Default world seed when the embedding application does not supply one.
SEED = 12345

# Noise scales (world units -> noise units).
BIOME_SCALE = 0.005
ELEVATION_SCALE = 0.0025
TERRAIN_SCALE = 0.01
CAVE_SCALE = 0.02
ORE_SCALE = 0.1

# Terrain shaping amplitudes (blocks).
CONTINENT_AMPLITUDE = 24.0
BASE_AMPLITUDE = 10.0
HILL_AMPLITUDE = 8.0
MOUNTAIN_AMPLITUDE = 36.0
HEIGHT_OFFSET = 2

# Caves only form between these heights and below the stone layer.
CAVE_FLOOR = 4
CAVE_CEILING = 60
CAVE_BAND = 0.05  # half-width of the spaghetti tunnel band
CAVERN_THRESHOLD = 0.45

# Ore veins: density threshold and depth band [min_y, max_y).
ORE_SETTINGS = [
    {'block': 'coal_ore', 'threshold': 0.25, 'min_y': 5, 'max_y': 80, 'offset': 0.0},
    {'block': 'iron_ore', 'threshold': 0.30, 'min_y': 5, 'max_y': 48, 'offset': 311.0},
    {'block': 'gold_ore', 'threshold': 0.34, 'min_y': 3, 'max_y': 32, 'offset': 577.0},
    {'block': 'diamond_ore', 'threshold': 0.36, 'min_y': 2, 'max_y': 16, 'offset': 911.0},
]

# Vegetation and structures.
TREE_MIN_HEIGHT = 4
TREE_EXTRA_HEIGHT = 3 # trunk height is TREE_MIN_HEIGHT + [0, TREE_EXTRA_HEIGHT)
TREE_CANOPY_RADIUS = 2
VILLAGE_CHANCE_SCALE = 1.0
VILLAGE_MARGIN = 3
VILLAGE_MAX_SLOPE = 4
DUNGEON_CHANCE = 0.02
DUNGEON_MIN_Y = 6
DUNGEON_MAX_Y = 30

# Chunk generation worker threads used by ChunkStore.generate_chunks.
GENERATION_WORKERS = 4

# Persisted world file (block overrides).
WORLD_FILE_PATH = 'world.pkl'

# Enable ANSI colors in logs.
LOG_COLOR = True


class ConfigError(ValueError):
    '''
    Raised for invalid world parameters; fatal for the world being constructed.
    '''


def _require_int(name, value):
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise ConfigError(f"{name} must be an integer, got {value!r}")
    return int(value)


class WorldConfig(object):
    '''
    Per-world parameters supplied by the embedding application at startup.
    Values are validated once here so the generation pipeline can rely on them.
    '''
    def __init__(self, seed=None, chunk_size=None, world_height=None, sea_level=None, workers=None):
        if seed is None:
            seed = SEED
        if chunk_size is None:
            chunk_size = CHUNK_SIZE
        if world_height is None:
            world_height = WORLD_HEIGHT
        if sea_level is None:
            sea_level = min(SEA_LEVEL, _require_int('world_height', world_height) - 1)
        if workers is None:
            workers = GENERATION_WORKERS
        self.seed = _require_int('seed', seed)
        if abs(self.seed) >= 1 << 63:
            raise ConfigError(f"seed {self.seed} is outside the 64-bit range")
        self.chunk_size = _require_int('chunk_size', chunk_size)
        if self.chunk_size <= 0:
            raise ConfigError(f"chunk_size must be positive, got {self.chunk_size}")
        self.world_height = _require_int('world_height', world_height)
        if self.world_height <= 0:
            raise ConfigError(f"world_height must be positive, got {self.world_height}")
        self.sea_level = _require_int('sea_level', sea_level)
        if not 0 <= self.sea_level < self.world_height:
            raise ConfigError(f"sea_level {self.sea_level} outside [0, {self.world_height})")
        self.workers = _require_int('workers', workers)
        if self.workers < 1:
            raise ConfigError(f"workers must be at least 1, got {self.workers}")

    def __repr__(self):
        return (f"WorldConfig(seed={self.seed}, chunk_size={self.chunk_size}, "
                f"world_height={self.world_height}, sea_level={self.sea_level}, workers={self.workers})")
