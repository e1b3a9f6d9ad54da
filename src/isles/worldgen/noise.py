"""Noise height field for island generation.

Provides a seeded fBm (fractal Brownian motion) over OpenSimplex noise,
sampled tile by tile so the world can grow without bounds.
"""

from functools import lru_cache
from typing import Protocol

import numpy as np
from numpy.typing import NDArray
from opensimplex import OpenSimplex

from ..config import NoiseParameters


class HeightField(Protocol):
    """Anything that maps a tile coordinate to a height."""

    def height(self, x: int, y: int) -> float: ...


def fbm(
    noise: OpenSimplex,
    x: float,
    y: float,
    octaves: int = 6,
    lacunarity: float = 2.0,
    persistence: float = 0.5,
    frequency: float = 0.05,
) -> float:
    """Fractal Brownian motion at a single point.

    Sums octaves of simplex noise at increasing frequencies and
    decreasing amplitudes.

    Args:
        noise: Seeded simplex noise generator.
        x: Sample x coordinate.
        y: Sample y coordinate.
        octaves: Number of noise layers to sum.
        lacunarity: Frequency multiplier between octaves.
        persistence: Amplitude multiplier between octaves.
        frequency: Frequency of the base octave.

    Returns:
        Noise value, roughly in range [-1, 1].
    """
    total = 0.0
    amplitude = 1.0
    max_amplitude = 0.0
    freq = frequency

    for _ in range(octaves):
        total += amplitude * noise.noise2(x * freq, y * freq)
        max_amplitude += amplitude
        freq *= lacunarity
        amplitude *= persistence

    return total / max_amplitude


def fbm_array(
    noise: OpenSimplex,
    xs: NDArray[np.float64],
    ys: NDArray[np.float64],
    octaves: int = 6,
    lacunarity: float = 2.0,
    persistence: float = 0.5,
    frequency: float = 0.05,
) -> NDArray[np.float64]:
    """Vectorized fBm over a grid.

    Args:
        noise: Seeded simplex noise generator.
        xs: 1D array of x coordinates.
        ys: 1D array of y coordinates.
        octaves: Number of noise layers to sum.
        lacunarity: Frequency multiplier between octaves.
        persistence: Amplitude multiplier between octaves.
        frequency: Frequency of the base octave.

    Returns:
        2D array of shape (len(ys), len(xs)).
    """
    xs = np.asarray(xs, dtype=np.float64)
    ys = np.asarray(ys, dtype=np.float64)
    result = np.zeros((len(ys), len(xs)), dtype=np.float64)

    amplitude = 1.0
    max_amplitude = 0.0
    freq = frequency

    for _ in range(octaves):
        result += amplitude * noise.noise2array(xs * freq, ys * freq)
        max_amplitude += amplitude
        freq *= lacunarity
        amplitude *= persistence

    result /= max_amplitude
    return result


class NoiseField:
    """Seeded fBm height field.

    Heights are memoized per instance; the instance is safe to share
    between generation workers since it is never mutated after creation
    (the cache is internally locked).
    """

    def __init__(self, seed: int, params: NoiseParameters, cache_size: int = 1 << 18):
        self.seed = seed
        self.params = params
        self._noise = OpenSimplex(seed)
        self._cached = lru_cache(maxsize=cache_size)(self._compute)

    def _compute(self, x: int, y: int) -> float:
        p = self.params
        return fbm(
            self._noise,
            float(x),
            float(y),
            octaves=p.octaves,
            lacunarity=p.lacunarity,
            persistence=p.persistence,
            frequency=p.frequency,
        )

    def height(self, x: int, y: int) -> float:
        """Height at a tile coordinate."""
        return self._cached(x, y)

    def heights(self, xs: NDArray[np.int64], ys: NDArray[np.int64]) -> NDArray[np.float64]:
        """Heights over the grid ``ys x xs``, shape (len(ys), len(xs))."""
        p = self.params
        return fbm_array(
            self._noise,
            np.asarray(xs, dtype=np.float64),
            np.asarray(ys, dtype=np.float64),
            octaves=p.octaves,
            lacunarity=p.lacunarity,
            persistence=p.persistence,
            frequency=p.frequency,
        )

    def __repr__(self) -> str:
        return f"NoiseField(seed={self.seed}, params={self.params!r})"
