import collections

import numpy

from . import config
from .blocks import GRASS, DIRT, SAND, STONE, SNOW, WATER

Biome = collections.namedtuple('Biome', [
    'name',
    'surface_block',
    'subsurface_block',
    'stone_depth',
    'tree_chance',
    'village_chance',
    'temperature',
    'humidity',
    'snow_level',
    'ocean',
])

BIOMES = collections.OrderedDict((b.name, b) for b in [
    Biome('plains', GRASS, DIRT, 4, 0.02, 0.01, 0.8, 0.4, 90, False),
    Biome('forest', GRASS, DIRT, 4, 0.15, 0.003, 0.7, 0.8, 90, False),
    Biome('desert', SAND, SAND, 8, 0.001, 0.005, 2.0, 0.0, 150, False),
    Biome('mountains', STONE, STONE, 1, 0.005, 0.001, 0.2, 0.3, 80, False),
    Biome('ocean', WATER, SAND, 6, 0.0, 0.0, 0.5, 0.5, 90, True),
    Biome('tundra', SNOW, DIRT, 4, 0.01, 0.002, 0.0, 0.5, 0, False),
])
BIOME_LIST = list(BIOMES.values())
BIOME_INDEX = {name: i for i, name in enumerate(BIOMES)}

STONE_DEPTHS = numpy.array([b.stone_depth for b in BIOME_LIST], dtype=numpy.int64)

PLAINS = BIOME_INDEX['plains']
FOREST = BIOME_INDEX['forest']
DESERT = BIOME_INDEX['desert']
MOUNTAINS = BIOME_INDEX['mountains']
OCEAN = BIOME_INDEX['ocean']
TUNDRA = BIOME_INDEX['tundra']

# Decision thresholds. Elevation is raw fbm in [-1, 1]; climate signals are in [0, 1].
OCEAN_ELEVATION = -0.25
MOUNTAIN_ELEVATION = 0.35
COLD = 0.3
HOT = 0.62
DRY = 0.45
WET = 0.55

HUMIDITY_OFFSET = 1000.0


def classify_signals(elevation, temperature, humidity):
    '''
    Map climate signals to biome indices with ordered rules. Earlier rules take
    precedence, and the final rule catches everything else so that every input
    has exactly one biome.
    '''
    elevation = numpy.asarray(elevation)
    temperature = numpy.asarray(temperature)
    humidity = numpy.asarray(humidity)
    return numpy.select(
        [
            elevation < OCEAN_ELEVATION,
            elevation > MOUNTAIN_ELEVATION,
            temperature < COLD,
            (temperature > HOT) & (humidity < DRY),
            humidity > WET,
        ],
        [OCEAN, MOUNTAINS, TUNDRA, DESERT, FOREST],
        default=PLAINS,
    ).astype(numpy.int8)


def surface_for(biome, height, sea_level):
    '''
    Top block of a column: snow above the biome's snow line, water for
    submerged ocean floor, otherwise the biome's surface block.
    '''
    if height > biome.snow_level:
        return SNOW
    if biome.ocean:
        return WATER if height < sea_level else biome.subsurface_block
    return biome.surface_block


class BiomeClassifier(object):
    '''
    Classifies world columns into biomes from three low-frequency noise signals:
    elevation (shared with the terrain height), temperature and humidity.
    '''
    def __init__(self, noise_field):
        self.noise = noise_field
        self.biome_scale = getattr(config, 'BIOME_SCALE', 0.005)
        self.elevation_scale = getattr(config, 'ELEVATION_SCALE', 0.0025)

    def signals(self, xs, zs):
        n = self.noise
        es = self.elevation_scale
        bs = self.biome_scale
        elevation = n.fbm(xs*es, zs*es, 4, 0.5, 2.0)
        temperature = 0.5 + 0.5*numpy.tanh(2.0*n.fbm(xs*bs, zs*bs, 3, 0.5, 2.0))
        humidity = 0.5 + 0.5*numpy.tanh(2.0*n.fbm(xs*bs + HUMIDITY_OFFSET, zs*bs + HUMIDITY_OFFSET, 3, 0.5, 2.0))
        return elevation, temperature, humidity

    def classify_grid(self, xs, zs):
        '''
        Returns (biome index array, elevation array) for arrays of world x/z.
        '''
        elevation, temperature, humidity = self.signals(xs, zs)
        return classify_signals(elevation, temperature, humidity), elevation

    def classify(self, x, z):
        index, _ = self.classify_grid(numpy.asarray(float(x)), numpy.asarray(float(z)))
        return BIOME_LIST[int(index)]
