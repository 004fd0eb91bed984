#std/external libs
import time
import numpy

#local libs
from . import config
from . import logutil
from .config import WorldConfig
from .noise import NoiseField
from .biomes import BiomeClassifier, BIOME_LIST, STONE_DEPTHS, surface_for
from .caves import CaveCarver
from .decorate import Bounds, OrePlacer, VegetationPlacer, StructurePlacer
from .blocks import BLOCKS, BLOCK_ID, BLOCK_TYPES, AIR, BEDROCK, STONE, WATER

BLOCK_NAMES = [b.name for b in BLOCKS]
AIR_ID = BLOCK_ID[AIR]
BEDROCK_ID = BLOCK_ID[BEDROCK]
STONE_ID = BLOCK_ID[STONE]
WATER_ID = BLOCK_ID[WATER]
ORE_HOST_IDS = [BLOCK_ID[name] for name, b in BLOCK_TYPES.items() if b.ore_host]

# Offsets that separate the terrain layers sampled from the shared field.
HILL_OFFSET = 500.0
MOUNTAIN_OFFSET = 2000.0


def smoothstep(edge0, edge1, x):
    t = numpy.clip((x - edge0) / (edge1 - edge0), 0.0, 1.0)
    return t * t * (3.0 - 2.0 * t)


class ColumnGrid(object):
    '''
    Heights and biome indices for a rectangle of world columns starting at
    world (x0, z0). Arrays are indexed [x - x0, z - z0].
    '''
    def __init__(self, x0, z0, heights, biomes, sea_level):
        self.x0 = x0
        self.z0 = z0
        self.heights = heights
        self.biomes = biomes
        self.sea_level = sea_level

    @property
    def width(self):
        return self.heights.shape[0]

    @property
    def depth(self):
        return self.heights.shape[1]

    def crop(self, x0, z0, width, depth):
        gx = x0 - self.x0
        gz = z0 - self.z0
        return ColumnGrid(x0, z0, self.heights[gx:gx + width, gz:gz + depth],
            self.biomes[gx:gx + width, gz:gz + depth], self.sea_level)

    def biome(self, gx, gz):
        return BIOME_LIST[int(self.biomes[gx, gz])]

    def surface(self, gx, gz):
        return surface_for(self.biome(gx, gz), int(self.heights[gx, gz]), self.sea_level)


class TerrainGenerator(object):
    '''
    Turns world coordinates into blocks.

    Holds one NoiseField for the world seed and the per-stage helpers built on
    it. Nothing here is mutated after construction, so one generator can be
    shared by any number of worker threads.
    '''
    def __init__(self, world_config=None):
        if world_config is None:
            world_config = WorldConfig()
        self.config = world_config
        self.seed = world_config.seed
        self.chunk_size = world_config.chunk_size
        self.world_height = world_config.world_height
        self.sea_level = world_config.sea_level
        self.terrain_scale = getattr(config, 'TERRAIN_SCALE', 0.01)
        self.continent_amplitude = getattr(config, 'CONTINENT_AMPLITUDE', 24.0)
        self.base_amplitude = getattr(config, 'BASE_AMPLITUDE', 10.0)
        self.hill_amplitude = getattr(config, 'HILL_AMPLITUDE', 8.0)
        self.mountain_amplitude = getattr(config, 'MOUNTAIN_AMPLITUDE', 36.0)
        self.height_offset = getattr(config, 'HEIGHT_OFFSET', 2)

        self.noise = NoiseField(self.seed)
        self.classifier = BiomeClassifier(self.noise)
        self.carver = CaveCarver(self.noise, self.world_height)
        self.ores = OrePlacer(self.noise)
        self.vegetation = VegetationPlacer(self.seed, self.sea_level)
        self.structures = StructurePlacer(self.seed, self.chunk_size, self.world_height, self.sea_level)

    def height_from_signals(self, xs, zs, elevation):
        '''
        Surface height for world columns given their continental elevation
        signal. Mountains only rise where the elevation is already high.
        '''
        n = self.noise
        s = self.terrain_scale
        base = n.fbm(xs*s, zs*s, 4, 0.5, 2.0)
        hills = n.fbm(xs*s*0.5 + HILL_OFFSET, zs*s*0.5 + HILL_OFFSET, 3, 0.6, 2.0)
        ridges = n.ridged(xs*s*0.25 + MOUNTAIN_OFFSET, zs*s*0.25 + MOUNTAIN_OFFSET, 4, 0.5, 2.0)
        raw = (self.sea_level
               + elevation * self.continent_amplitude
               + base * self.base_amplitude
               + hills * self.hill_amplitude
               + ridges * smoothstep(0.15, 0.5, elevation) * self.mountain_amplitude
               + self.height_offset)
        heights = numpy.floor(raw).astype(numpy.int64)
        clamped = numpy.clip(heights, 1, self.world_height - 1)
        if numpy.any(clamped != heights):
            count = int(numpy.count_nonzero(clamped != heights))
            logutil.log("MAPGEN", f"clamped {count} column heights into [1, {self.world_height - 1}]", level="WARN")
        return clamped

    def sample_columns(self, x0, z0, width, depth):
        xs, zs = numpy.meshgrid(
            numpy.arange(x0, x0 + width, dtype=numpy.float64),
            numpy.arange(z0, z0 + depth, dtype=numpy.float64),
            indexing='ij')
        biomes, elevation = self.classifier.classify_grid(xs, zs)
        heights = self.height_from_signals(xs, zs, elevation)
        return ColumnGrid(x0, z0, heights, biomes, self.sea_level)

    def surface_height(self, x, z):
        return int(self.sample_columns(x, z, 1, 1).heights[0, 0])

    def biome_at(self, x, z):
        return self.sample_columns(x, z, 1, 1).biome(0, 0)

    def _fill(self, grid):
        '''
        Block id array of shape (width, world_height, depth) for the columns
        in `grid`: layers, caves and ores.
        '''
        H = self.world_height
        w, d = grid.width, grid.depth
        heights = grid.heights
        stone_top = numpy.maximum(1, heights - STONE_DEPTHS[grid.biomes])
        sub_ids = numpy.zeros((w, d), dtype=numpy.int16)
        top_ids = numpy.zeros((w, d), dtype=numpy.int16)
        for gx in range(w):
            for gz in range(d):
                sub_ids[gx, gz] = BLOCK_ID[grid.biome(gx, gz).subsurface_block]
                top_ids[gx, gz] = BLOCK_ID[grid.surface(gx, gz)]

        y = numpy.arange(H)[None, :, None]
        h = heights[:, None, :]
        codes = numpy.full((w, H, d), AIR_ID, dtype=numpy.int16)
        codes = numpy.where(y < stone_top[:, None, :], STONE_ID, codes)
        codes = numpy.where((y >= stone_top[:, None, :]) & (y < h), sub_ids[:, None, :], codes)
        codes = numpy.where(y == h, top_ids[:, None, :], codes)
        codes = numpy.where((y > h) & (y <= self.sea_level), WATER_ID, codes)
        codes[:, 0, :] = BEDROCK_ID

        caves = self.carver.carve_mask(grid.x0, grid.z0, w, d, stone_top)
        ymax = caves.shape[1]
        if ymax:
            cut = codes[:, :ymax, :]
            cut[caves & (cut == STONE_ID)] = AIR_ID

        host = numpy.isin(codes, ORE_HOST_IDS)
        gx, gy, gz = numpy.nonzero(host)
        if len(gx):
            result = self.ores.assign(gx + grid.x0, gy, gz + grid.z0)
            hit = result >= 0
            ore_ids = numpy.array([BLOCK_ID[s['block']] for s in self.ores.settings], dtype=numpy.int16)
            codes[gx[hit], gy[hit], gz[hit]] = ore_ids[result[hit]]
        return codes

    def synthesize_column(self, x, z):
        '''
        Sorted (y, block) pairs for every non-air block of column (x, z),
        before trees and structures are added.
        '''
        codes = self._fill(self.sample_columns(x, z, 1, 1))[0, :, 0]
        return [(int(y), BLOCK_NAMES[codes[y]]) for y in numpy.flatnonzero(codes != AIR_ID)]

    def generate_chunk(self, cx, cz, features=True):
        '''
        Generate the block map of chunk (cx, cz) as a dict keyed by world
        (x, y, z). Air is never stored. With `features` off only the terrain
        columns are produced (no trees, villages or dungeons).
        '''
        t0 = time.perf_counter()
        size = self.chunk_size
        x0 = cx * size
        z0 = cz * size
        pad = self.vegetation.radius if features else 0
        padded = self.sample_columns(x0 - pad, z0 - pad, size + 2*pad, size + 2*pad)
        core = padded.crop(x0, z0, size, size)
        codes = self._fill(core)
        gx, gy, gz = numpy.nonzero(codes != AIR_ID)
        blocks = {}
        for i, j, k, c in zip(gx.tolist(), gy.tolist(), gz.tolist(), codes[gx, gy, gz].tolist()):
            blocks[(x0 + i, j, z0 + k)] = BLOCK_NAMES[c]
        trees = 0
        village = dungeon = None
        if features:
            bounds = Bounds(x0, z0, size, self.world_height)
            village = self.structures.village_site(cx, cz, core)
            trees = self.vegetation.place_trees(blocks, padded, bounds,
                skip=self.structures.in_footprint(village))
            if village is not None:
                self.structures.place_village(blocks, village, core, bounds)
            dungeon = self.structures.dungeon_site(cx, cz, core)
            if dungeon is not None:
                skipped = self.structures.place_dungeon(blocks, dungeon, bounds)
                logutil.log("MAPGEN", f"dungeon at {dungeon} skipped={skipped}", level="DEBUG")
        dt = time.perf_counter() - t0
        logutil.log("MAPGEN", f"chunk {(cx, cz)} blocks={len(blocks)} trees={trees} "
            f"village={village is not None} dungeon={dungeon is not None} {dt*1000:.1f}ms", level="DEBUG")
        return blocks
