'''
decorate.py -- post-processing passes that add ores, trees and structures to
generated chunk block maps.

Every pass writes into a sparse block dict keyed by world (x, y, z); removing
a key makes the position air. Writes outside the chunk being generated are
skipped, never wrapped or clamped.
'''
import collections

import numpy

from . import config
from . import logutil
from .noise import hash01
from .blocks import (AIR, COBBLESTONE, DIRT, GRASS, SAND, SNOW, WATER, WOOD, PLANKS,
    LEAVES, GLASS, CRAFTING_TABLE, FARMLAND, WHEAT_RIPE)

# Salts keep independent per-position decisions uncorrelated.
SALT_TREE = 11
SALT_TREE_HEIGHT = 12
SALT_VILLAGE = 21
SALT_DUNGEON = 31
SALT_DUNGEON_Y = 32

TREE_SOILS = (GRASS, DIRT, SNOW)


class Bounds(collections.namedtuple('Bounds', ['x0', 'z0', 'size', 'height'])):
    '''
    The block volume of one chunk: x in [x0, x0+size), z in [z0, z0+size),
    y in [0, height).
    '''
    __slots__ = ()

    def contains(self, x, y, z):
        return (self.x0 <= x < self.x0 + self.size and
                self.z0 <= z < self.z0 + self.size and
                0 <= y < self.height)


def put(blocks, bounds, position, block, replace=True):
    '''
    Write `block` at `position` if it lies inside `bounds`. A `block` of None
    or air removes the entry. Returns True if the map was touched.
    '''
    x, y, z = position
    if y <= 0 or not bounds.contains(x, y, z):
        # y == 0 is bedrock and never replaced.
        return False
    if not replace and position in blocks:
        return False
    if block is None or block == AIR:
        blocks.pop(position, None)
    else:
        blocks[position] = block
    return True


def stamp(blocks, bounds, template, origin):
    '''
    Write a template of (dx, dy, dz, block) entries relative to `origin`.
    Returns the number of entries skipped for falling outside `bounds`.
    '''
    ox, oy, oz = origin
    skipped = 0
    for dx, dy, dz, block in template:
        if not put(blocks, bounds, (ox + dx, oy + dy, oz + dz), block):
            skipped += 1
    return skipped


class OrePlacer(object):
    '''
    Converts stone into ore. Each ore type samples its own 3D density field and
    only applies inside its depth band; ores are tried from the highest
    threshold (rarest) down and the first match wins.
    '''
    def __init__(self, noise_field):
        self.noise = noise_field
        self.scale = getattr(config, 'ORE_SCALE', 0.1)
        settings = getattr(config, 'ORE_SETTINGS')
        self.settings = sorted(settings, key=lambda s: -s['threshold'])

    def assign(self, xs, ys, zs):
        '''
        Returns an index array into `self.settings` (or -1 for no ore) for
        1D arrays of stone positions.
        '''
        xs = numpy.asarray(xs, dtype=numpy.float64).ravel()
        ys = numpy.asarray(ys, dtype=numpy.float64).ravel()
        zs = numpy.asarray(zs, dtype=numpy.float64).ravel()
        result = numpy.full(xs.shape, -1, dtype=numpy.int64)
        s = self.scale
        for idx, setting in enumerate(self.settings):
            band = (result < 0) & (ys >= setting['min_y']) & (ys < setting['max_y'])
            if not band.any():
                continue
            o = setting['offset']
            density = self.noise.fbm3(xs[band]*s + o, ys[band]*s + o, zs[band]*s + o, 3, 0.6, 2.0)
            hit = numpy.flatnonzero(band)[numpy.asarray(density) > setting['threshold']]
            result[hit] = idx
        return result


class VegetationPlacer(object):
    '''
    Grows trees on suitable surface columns. The chance and trunk height come
    from position hashes so a tree is the same whichever chunk is generated
    first.
    '''
    def __init__(self, seed, sea_level):
        self.seed = seed
        self.sea_level = sea_level
        self.min_height = getattr(config, 'TREE_MIN_HEIGHT', 4)
        self.extra_height = getattr(config, 'TREE_EXTRA_HEIGHT', 3)
        self.radius = getattr(config, 'TREE_CANOPY_RADIUS', 2)
        self.canopy = self._build_canopy(self.radius)

    @staticmethod
    def _build_canopy(radius):
        # offsets relative to the top trunk block
        canopy = []
        for dy in range(-1, 3):
            for dx in range(-radius, radius + 1):
                for dz in range(-radius, radius + 1):
                    dist = (dx*dx + dz*dz) ** 0.5
                    if dist <= radius and (dy < 1 or dist <= 1):
                        canopy.append((dx, dy, dz))
        return canopy

    def trunk_height(self, x, z, height, biome, surface):
        '''
        Trunk height of the tree rooted on column (x, z), or 0 for no tree.
        '''
        if biome.ocean or height < self.sea_level or surface not in TREE_SOILS:
            return 0
        if hash01(self.seed, x, z, salt=SALT_TREE) >= biome.tree_chance:
            return 0
        return self.min_height + int(hash01(self.seed, x, z, salt=SALT_TREE_HEIGHT) * self.extra_height)

    def place_trees(self, blocks, columns, bounds, skip=None):
        '''
        Add trees rooted anywhere in `columns` (which should extend at least the
        canopy radius beyond `bounds`) and write the parts that fall inside
        `bounds`. `skip(x, z)` suppresses trees on reserved columns.
        '''
        trees = []
        for gx in range(columns.width):
            for gz in range(columns.depth):
                x = columns.x0 + gx
                z = columns.z0 + gz
                if skip is not None and skip(x, z):
                    continue
                height = int(columns.heights[gx, gz])
                th = self.trunk_height(x, z, height, columns.biome(gx, gz), columns.surface(gx, gz))
                if th:
                    trees.append((x, z, height, th))
        # all trunks first so leaves of one tree never displace another's trunk
        for x, z, height, th in trees:
            for y in range(height + 1, height + th + 1):
                put(blocks, bounds, (x, y, z), WOOD)
        for x, z, height, th in trees:
            top = height + th
            for dx, dy, dz in self.canopy:
                put(blocks, bounds, (x + dx, top + dy, z + dz), LEAVES, replace=False)
        return len(trees)


def _box(width, height, depth, shell, interior=None, y0=0):
    # hollow box template; `interior` None clears the inside
    template = []
    for dx in range(width):
        for dz in range(depth):
            for dy in range(height):
                edge = (dx in (0, width - 1) or dz in (0, depth - 1) or dy in (0, height - 1))
                template.append((dx, y0 + dy, dz, shell if edge else interior))
    return template


def _build_house():
    # 5x5 footprint; dy 0 is the floor at ground level, dy 4 the roof
    template = []
    for dx in range(5):
        for dz in range(5):
            template.append((dx, 0, dz, COBBLESTONE))
            template.append((dx, 4, dz, WOOD))
            for dy in range(1, 4):
                wall = dx in (0, 4) or dz in (0, 4)
                template.append((dx, dy, dz, PLANKS if wall else None))
    # doorway, windows and a crafting table
    overrides = {(2, 1, 0): None, (2, 2, 0): None, (0, 2, 2): GLASS, (4, 2, 2): GLASS,
                 (2, 2, 4): GLASS, (1, 1, 3): CRAFTING_TABLE}
    return [(dx, dy, dz, overrides.get((dx, dy, dz), b)) for dx, dy, dz, b in template]


def _build_well():
    template = []
    for dx in range(3):
        for dz in range(3):
            ring = (dx, dz) != (1, 1)
            for dy in range(-2, 2):
                if ring:
                    template.append((dx, dy, dz, COBBLESTONE))
                elif dy <= 0:
                    template.append((dx, dy, dz, WATER))
            template.append((dx, 3, dz, COBBLESTONE))
    for dx, dz in ((0, 0), (0, 2), (2, 0), (2, 2)):
        template.append((dx, 2, dz, WOOD))
    return template


def _build_farm():
    # 4 wide, 5 deep; an irrigation row down the middle
    template = []
    for dx in range(4):
        for dz in range(5):
            if dz == 2:
                template.append((dx, 0, dz, WATER))
            else:
                template.append((dx, 0, dz, FARMLAND))
                template.append((dx, 1, dz, WHEAT_RIPE))
    return template


VILLAGE_SPAN = 10
VILLAGE_LAYOUT = [
    ((0, 0), _build_house()),
    ((6, 1), _build_well()),
    ((6, 5), _build_farm()),
]
DUNGEON_SIZE = (7, 5, 7)
DUNGEON_ROOF = 4


class StructurePlacer(object):
    '''
    Places villages and underground dungeons. Each chunk rolls once per
    structure kind; anchors stay inside the chunk with a margin so a structure
    never needs blocks from a neighbouring chunk.
    '''
    def __init__(self, seed, chunk_size, world_height, sea_level):
        self.seed = seed
        self.chunk_size = chunk_size
        self.world_height = world_height
        self.sea_level = sea_level
        self.village_scale = getattr(config, 'VILLAGE_CHANCE_SCALE', 1.0)
        self.margin = getattr(config, 'VILLAGE_MARGIN', 3)
        self.max_slope = getattr(config, 'VILLAGE_MAX_SLOPE', 4)
        self.dungeon_chance = getattr(config, 'DUNGEON_CHANCE', 0.02)
        self.dungeon_min_y = max(1, getattr(config, 'DUNGEON_MIN_Y', 6))
        self.dungeon_max_y = getattr(config, 'DUNGEON_MAX_Y', 30)

    def village_site(self, cx, cz, core):
        '''
        Returns (x, z, ground_y) of the village footprint corner, or None.
        `core` holds the columns of this chunk only.
        '''
        m = self.margin
        if self.chunk_size - 2*m < VILLAGE_SPAN:
            return None
        center = self.chunk_size // 2
        biome = core.biome(center, center)
        chance = biome.village_chance * self.village_scale
        if biome.ocean or hash01(self.seed, cx, cz, salt=SALT_VILLAGE) >= chance:
            return None
        heights = core.heights[m:m + VILLAGE_SPAN, m:m + VILLAGE_SPAN]
        if int(heights.max()) - int(heights.min()) > self.max_slope:
            return None
        ground = int(numpy.median(heights))
        if ground < self.sea_level or ground + 6 >= self.world_height:
            return None
        return core.x0 + m, core.z0 + m, ground

    def in_footprint(self, site):
        if site is None:
            return None
        sx, sz, _ = site
        def test(x, z):
            return sx <= x < sx + VILLAGE_SPAN and sz <= z < sz + VILLAGE_SPAN
        return test

    def place_village(self, blocks, site, core, bounds):
        sx, sz, ground = site
        for x in range(sx, sx + VILLAGE_SPAN):
            for z in range(sz, sz + VILLAGE_SPAN):
                if not bounds.contains(x, ground, z):
                    continue
                gx = x - core.x0
                gz = z - core.z0
                biome = core.biome(gx, gz)
                height = int(core.heights[gx, gz])
                for y in range(ground + 1, self.world_height):
                    put(blocks, bounds, (x, y, z), AIR)
                fill = biome.subsurface_block if biome.subsurface_block != WATER else SAND
                for y in range(height + 1, ground):
                    put(blocks, bounds, (x, y, z), fill)
                surface = biome.surface_block if biome.surface_block != WATER else SAND
                put(blocks, bounds, (x, ground, z), surface)
        skipped = 0
        for (dx, dz), template in VILLAGE_LAYOUT:
            skipped += stamp(blocks, bounds, template, (sx + dx, ground, sz + dz))
        logutil.log("MAPGEN", f"village at {(sx, ground, sz)} skipped={skipped}", level="DEBUG")

    def dungeon_site(self, cx, cz, core):
        if hash01(self.seed, cx, cz, salt=SALT_DUNGEON) >= self.dungeon_chance:
            return None
        w, h, d = DUNGEON_SIZE
        ox = (self.chunk_size - w) // 2
        oz = (self.chunk_size - d) // 2
        if ox < 0 or oz < 0:
            return None
        heights = core.heights[ox:ox + w, oz:oz + d]
        top = min(self.dungeon_max_y, int(heights.min()) - DUNGEON_ROOF - h)
        if top < self.dungeon_min_y:
            return None
        span = top - self.dungeon_min_y + 1
        y = self.dungeon_min_y + int(hash01(self.seed, cx, cz, salt=SALT_DUNGEON_Y) * span)
        return core.x0 + ox, y, core.z0 + oz

    def place_dungeon(self, blocks, site, bounds):
        w, h, d = DUNGEON_SIZE
        return stamp(blocks, bounds, _box(w, h, d, COBBLESTONE), site)
