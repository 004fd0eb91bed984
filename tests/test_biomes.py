import os
import sys

import numpy as np

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from mineworld.noise import NoiseField
from mineworld.biomes import (BiomeClassifier, BIOMES, BIOME_LIST, classify_signals, surface_for,
    PLAINS, FOREST, DESERT, MOUNTAINS, OCEAN, TUNDRA)
from mineworld.blocks import SNOW, WATER, SAND, GRASS


def test_classification_is_total():
    rng = np.random.RandomState(1337)
    elevation = rng.uniform(-1, 1, 10000)
    temperature = rng.uniform(0, 1, 10000)
    humidity = rng.uniform(0, 1, 10000)
    idx = classify_signals(elevation, temperature, humidity)
    assert idx.shape == (10000,)
    assert idx.min() >= 0 and idx.max() < len(BIOME_LIST)
    # every biome is reachable
    assert set(np.unique(idx)) == set(range(len(BIOME_LIST)))


def test_classification_rules_and_precedence():
    cases = [
        ((-0.5, 0.1, 0.9), OCEAN),
        ((0.6, 0.1, 0.1), MOUNTAINS),
        ((0.0, 0.1, 0.9), TUNDRA),
        ((0.0, 0.9, 0.1), DESERT),
        ((0.0, 0.9, 0.9), FOREST),
        ((0.0, 0.5, 0.9), FOREST),
        ((0.0, 0.5, 0.5), PLAINS),
    ]
    for (e, t, h), expected in cases:
        assert int(classify_signals(e, t, h)) == expected, (e, t, h)


def test_classifier_is_deterministic():
    a = BiomeClassifier(NoiseField(12345))
    b = BiomeClassifier(NoiseField(12345))
    for x, z in [(0, 0), (-1000, 250), (4096, -8192), (17, 33)]:
        biome = a.classify(x, z)
        assert biome is b.classify(x, z)
        assert biome in BIOMES.values()


def test_classify_grid_matches_classify():
    c = BiomeClassifier(NoiseField(777))
    xs, zs = np.meshgrid(np.arange(-40, 40, 8.0), np.arange(-40, 40, 8.0), indexing='ij')
    idx, elevation = c.classify_grid(xs, zs)
    assert idx.shape == xs.shape == elevation.shape
    assert np.all(np.abs(elevation) <= 1.0)


def test_surface_for():
    assert surface_for(BIOMES['tundra'], 65, 64) == SNOW
    assert surface_for(BIOMES['plains'], 70, 64) == GRASS
    assert surface_for(BIOMES['plains'], 91, 64) == SNOW
    assert surface_for(BIOMES['ocean'], 50, 64) == WATER
    assert surface_for(BIOMES['ocean'], 64, 64) == SAND
    assert surface_for(BIOMES['desert'], 120, 64) == SAND
