import numpy

from . import config

# Offsets decorrelate the tunnel fields that share one NoiseField.
TUNNEL_OFFSET_A = 0.0
TUNNEL_OFFSET_B = 100.0
CAVERN_OFFSET = 400.0
# Tunnels run mostly horizontally: y is sampled at a higher frequency.
VERTICAL_SQUASH = 1.5


class CaveCarver(object):
    '''
    Decides which stone positions are cavities.

    Two independent 3D fbm fields are thresholded around zero; where both are
    near zero at once the intersection forms long thin tunnels. A third field
    at half the frequency opens occasional larger caverns. The decision depends
    only on (x, y, z), the seed and the column's stone top, so a position gets
    the same answer no matter which chunk asks.
    '''
    def __init__(self, noise_field, world_height):
        self.noise = noise_field
        self.scale = getattr(config, 'CAVE_SCALE', 0.02)
        self.band = getattr(config, 'CAVE_BAND', 0.05)
        self.cavern_threshold = getattr(config, 'CAVERN_THRESHOLD', 0.45)
        self.floor = max(1, getattr(config, 'CAVE_FLOOR', 4))
        self.ceiling = min(world_height, getattr(config, 'CAVE_CEILING', 60))

    def density(self, xs, ys, zs):
        '''
        Boolean cavity field for world coordinate arrays (no height limits applied).
        '''
        s = self.scale
        n = self.noise
        ys = ys * VERTICAL_SQUASH
        a = n.fbm3(xs*s + TUNNEL_OFFSET_A, ys*s + TUNNEL_OFFSET_A, zs*s + TUNNEL_OFFSET_A, 3, 0.5, 2.0)
        b = n.fbm3(xs*s + TUNNEL_OFFSET_B, ys*s + TUNNEL_OFFSET_B, zs*s + TUNNEL_OFFSET_B, 3, 0.5, 2.0)
        c = n.fbm3(xs*s*0.5 + CAVERN_OFFSET, ys*s*0.5 + CAVERN_OFFSET, zs*s*0.5 + CAVERN_OFFSET, 2, 0.5, 2.0)
        tunnel = (numpy.abs(a) < self.band) & (numpy.abs(b) < self.band)
        return tunnel | (numpy.asarray(c) > self.cavern_threshold)

    def carve_mask(self, x0, z0, width, depth, stone_top):
        '''
        Cavity mask for a block of columns starting at world (x0, z0).

        `stone_top` has shape (width, depth) and holds, per column, the first y
        that is no longer stone. Returns a bool array of shape
        (width, ymax, depth) indexed [x, y, z] where ymax is the highest y any
        cave could reach; every y at or above ymax is solid.
        '''
        stone_top = numpy.asarray(stone_top)
        ymax = int(min(self.ceiling, stone_top.max(initial=0)))
        if ymax <= self.floor:
            return numpy.zeros((width, max(ymax, 0), depth), dtype=bool)
        xs, ys, zs = numpy.meshgrid(
            numpy.arange(x0, x0 + width, dtype=numpy.float64),
            numpy.arange(0, ymax, dtype=numpy.float64),
            numpy.arange(z0, z0 + depth, dtype=numpy.float64),
            indexing='ij')
        mask = numpy.zeros((width, ymax, depth), dtype=bool)
        sub = numpy.s_[:, self.floor:, :]
        mask[sub] = self.density(xs[sub], ys[sub], zs[sub])
        y_grid = numpy.arange(ymax)[None, :, None]
        mask &= y_grid < stone_top[:, None, :]
        return mask

    def is_cavity(self, x, y, z, stone_top):
        if y < self.floor or y >= min(self.ceiling, stone_top):
            return False
        return bool(self.density(numpy.asarray(float(x)), numpy.asarray(float(y)), numpy.asarray(float(z))))
