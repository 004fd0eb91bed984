#
# Seeded simplex noise for 2D and 3D, vectorised with numpy.
#
# Based on example code by Stefan Gustavson (stegu@itn.liu.se).
# Optimisations by Peter Eastman (peastman@drizzle.stanford.edu).
# Better rank ordering method by Stefan Gustavson in 2012.
#
# The skew/gradient code below was placed in the public domain by its
# original author, Stefan Gustavson.
#
import numbers

import numpy


grad3 = numpy.array([(1,1,0),(-1,1,0),(1,-1,0),(-1,-1,0),
                     (1,0,1),(-1,0,1),(1,0,-1),(-1,0,-1),
                     (0,1,1),(0,-1,1),(0,1,-1),(0,-1,-1)], dtype=numpy.float64)
grad3.flags.writeable = False

#Skewing and unskewing factors for 2 and 3 dimensions
F2 = 0.5*(3.0**0.5-1.0)
G2 = (3.0-3.0**0.5)/6.0
F3 = 1.0/3.0
G3 = 1.0/6.0

MASK64 = (1 << 64) - 1


# returns floor of floating point array by coercing to integer
def fastfloor(x):
    return numpy.floor(x).astype(numpy.int64)


def _result(value):
    # scalar in, python float out
    if numpy.ndim(value) == 0:
        return float(value)
    return value


def _corner2(x, y, gi):
    t = 0.5 - x*x - y*y
    t = numpy.where(t < 0, 0.0, t)
    t = t*t
    g = grad3[gi]
    return t * t * (g[..., 0]*x + g[..., 1]*y)


def _corner3(x, y, z, gi):
    t = 0.6 - x*x - y*y - z*z
    t = numpy.where(t < 0, 0.0, t)
    t = t*t
    g = grad3[gi]
    return t * t * (g[..., 0]*x + g[..., 1]*y + g[..., 2]*z)


def hash01(seed, *coords, salt=0):
    '''
    Deterministic float in [0, 1) for an integer lattice position.

    Splitmix64-style mixing of the seed, every coordinate and a `salt` that
    separates independent decisions taken at the same position (tree chance,
    tree height, village roll, ...).
    '''
    h = (int(seed) * 0x9E3779B97F4A7C15) ^ (int(salt) * 0x94D049BB133111EB)
    for n, c in enumerate(coords):
        h ^= (int(c) + n * 0x632BE59BD9B4E019) * 0xD6E8FEB86659FD93
        h &= MASK64
        h = (h ^ (h >> 30)) * 0xbf58476d1ce4e5b9 & MASK64
    h = (h ^ (h >> 27)) * 0x94d049bb133111eb & MASK64
    h ^= (h >> 31)
    return (h & ((1 << 53) - 1)) / float(1 << 53)


class NoiseField(object):
    '''
    Seeded gradient noise and fractal compositions.

    The permutation table is derived only from `seed` using a private
    generator, and is read-only afterwards, so a NoiseField can be shared by
    any number of generation threads.

    All sampling methods accept python scalars or numpy arrays (which are
    broadcast together). Scalars return a python float.
    '''
    def __init__(self, seed):
        if isinstance(seed, bool) or not isinstance(seed, numbers.Integral):
            raise TypeError(f"noise seed must be an integer, got {seed!r}")
        self.seed = int(seed)
        rng = numpy.random.default_rng(self.seed & MASK64)
        p = rng.permutation(256)
        # To remove the need for index wrapping, double the permutation table length
        perm = p[numpy.arange(512) & 255].astype(numpy.int64)
        perm_mod12 = perm % 12
        perm.flags.writeable = False
        perm_mod12.flags.writeable = False
        self.perm = perm
        self.perm_mod12 = perm_mod12

    # 2D simplex noise
    def noise2(self, xin, yin):
        xin = numpy.asarray(xin, dtype=numpy.float64)
        yin = numpy.asarray(yin, dtype=numpy.float64)
        perm = self.perm
        pmod = self.perm_mod12
        # Skew the input space to determine which simplex cell we're in
        s = (xin+yin)*F2
        i = fastfloor(xin+s)
        j = fastfloor(yin+s)
        t = (i+j)*G2
        x0 = xin-(i-t) # The x,y distances from the cell origin
        y0 = yin-(j-t)
        # lower triangle, XY order: (0,0)->(1,0)->(1,1)
        # upper triangle, YX order: (0,0)->(0,1)->(1,1)
        i1 = (x0 > y0).astype(numpy.int64)
        j1 = 1 - i1
        x1 = x0 - i1 + G2 # Offsets for middle corner in (x,y) unskewed coords
        y1 = y0 - j1 + G2
        x2 = x0 - 1.0 + 2.0 * G2 # Offsets for last corner in (x,y) unskewed coords
        y2 = y0 - 1.0 + 2.0 * G2
        # Work out the hashed gradient indices of the three simplex corners
        ii = i & 255
        jj = j & 255
        gi0 = pmod[ii+perm[jj]]
        gi1 = pmod[ii+i1+perm[jj+j1]]
        gi2 = pmod[ii+1+perm[jj+1]]
        # The result is scaled to return values in the interval [-1,1].
        return _result(70.0 * (_corner2(x0, y0, gi0) + _corner2(x1, y1, gi1) + _corner2(x2, y2, gi2)))

    # 3D simplex noise
    def noise3(self, xin, yin, zin):
        xin = numpy.asarray(xin, dtype=numpy.float64)
        yin = numpy.asarray(yin, dtype=numpy.float64)
        zin = numpy.asarray(zin, dtype=numpy.float64)
        perm = self.perm
        pmod = self.perm_mod12
        s = (xin+yin+zin)*F3
        i = fastfloor(xin+s)
        j = fastfloor(yin+s)
        k = fastfloor(zin+s)
        t = (i+j+k)*G3
        x0 = xin-(i-t)
        y0 = yin-(j-t)
        z0 = zin-(k-t)
        # For the 3D case, the simplex shape is a slightly irregular tetrahedron.
        # Rank the offsets to find which of the six simplices we are in.
        xy = x0>=y0
        yz = y0>=z0
        xz = x0>=z0
        i1 = (xy&(yz|xz)).astype(numpy.int64)
        i2 = (xy | ~xy&yz&xz).astype(numpy.int64)
        j1 = (~xy&yz).astype(numpy.int64)
        j2 = (xy&yz | ~xy).astype(numpy.int64)
        k1 = (xy&~yz&~xz | ~xy&~yz).astype(numpy.int64)
        k2 = (xy&~yz | ~xy&(~yz|~xz)).astype(numpy.int64)
        x1 = x0 - i1 + G3 # Offsets for second corner in (x,y,z) coords
        y1 = y0 - j1 + G3
        z1 = z0 - k1 + G3
        x2 = x0 - i2 + 2.0*G3 # Offsets for third corner
        y2 = y0 - j2 + 2.0*G3
        z2 = z0 - k2 + 2.0*G3
        x3 = x0 - 1.0 + 3.0*G3 # Offsets for last corner
        y3 = y0 - 1.0 + 3.0*G3
        z3 = z0 - 1.0 + 3.0*G3
        ii = i & 255
        jj = j & 255
        kk = k & 255
        gi0 = pmod[ii+perm[jj+perm[kk]]]
        gi1 = pmod[ii+i1+perm[jj+j1+perm[kk+k1]]]
        gi2 = pmod[ii+i2+perm[jj+j2+perm[kk+k2]]]
        gi3 = pmod[ii+1+perm[jj+1+perm[kk+1]]]
        n = (_corner3(x0, y0, z0, gi0) + _corner3(x1, y1, z1, gi1) +
             _corner3(x2, y2, z2, gi2) + _corner3(x3, y3, z3, gi3))
        # The result is scaled to stay just inside [-1,1]
        return _result(32.0 * n)

    def _fractal(self, sample, coords, octaves, persistence, lacunarity, fold=None):
        coords = [numpy.asarray(c, dtype=numpy.float64) for c in coords]
        total = numpy.zeros(numpy.broadcast(*coords).shape)
        amplitude = 1.0
        frequency = 1.0
        norm = 0.0
        for _ in range(int(octaves)):
            n = sample(*[c * frequency for c in coords])
            if fold is not None:
                n = fold(n)
            total = total + n * amplitude
            norm += amplitude
            amplitude *= persistence
            frequency *= lacunarity
        if norm == 0.0:
            return _result(numpy.zeros_like(total))
        return _result(total / norm)

    def fbm(self, x, y, octaves=4, persistence=0.5, lacunarity=2.0):
        '''
        Fractal Brownian motion over 2D simplex noise, normalized to [-1, 1].
        `octaves <= 0` contributes nothing and returns 0.
        '''
        return self._fractal(self.noise2, (x, y), octaves, persistence, lacunarity)

    def ridged(self, x, y, octaves=4, persistence=0.5, lacunarity=2.0):
        '''
        Ridged multi-octave noise in [0, 1]: each octave adds `1 - |noise|`,
        which folds zero crossings into sharp crests.
        '''
        return self._fractal(self.noise2, (x, y), octaves, persistence, lacunarity,
            fold=lambda n: 1.0 - numpy.abs(n))

    def fbm3(self, x, y, z, octaves=4, persistence=0.5, lacunarity=2.0):
        return self._fractal(self.noise3, (x, y, z), octaves, persistence, lacunarity)
