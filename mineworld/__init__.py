'''
mineworld -- deterministic voxel terrain generation and chunk storage for a
block-building sandbox.
'''

from .config import WorldConfig, ConfigError
from .noise import NoiseField, hash01
from .biomes import Biome, BiomeClassifier, BIOMES
from .caves import CaveCarver
from .decorate import OrePlacer, VegetationPlacer, StructurePlacer
from .mapgen import TerrainGenerator
from .world_db import WorldDB
from .world_store import Chunk, ChunkStore

__all__ = [
    'WorldConfig', 'ConfigError', 'NoiseField', 'hash01', 'Biome', 'BiomeClassifier', 'BIOMES',
    'CaveCarver', 'OrePlacer', 'VegetationPlacer', 'StructurePlacer', 'TerrainGenerator',
    'WorldDB', 'Chunk', 'ChunkStore',
]
