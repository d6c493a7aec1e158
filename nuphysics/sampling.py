"""
Sampling primitives over a numpy random Generator.

None of these functions own a random stream: the caller passes the
``np.random.Generator`` in, so every draw comes from the one stream held by
nuphysics.generator.Generator and the order of draws stays reproducible.

Draw order per call:
- uniform_random_double: one draw
- sample_discrete: one draw
- rejection_sample: two draws (x, then y) per trial
- inverse_transform_sample: one draw
"""

import logging
import math
from typing import Callable, Sequence, Tuple

import numpy as np
from scipy import integrate, optimize

from .constants import UNKNOWN_MAX

logger = logging.getLogger(__name__)

DEFAULT_SAFETY_FACTOR = 1.01
DEFAULT_MAX_SEARCH_TOLERANCE = 1e-8
DEFAULT_BISECTION_TOLERANCE = 1e-12
MAX_BISECTION_ITERATIONS = 200


def uniform_random_double(rng: np.random.Generator, low: float, high: float,
                          inclusive: bool = False) -> float:
    """Uniform draw on [low, high) or, if inclusive, on [low, high]."""
    if inclusive:
        upper = np.nextafter(high, math.inf)
        return min(float(rng.uniform(low, upper)), high)
    return float(rng.uniform(low, high))


def sample_discrete(rng: np.random.Generator, weights: Sequence[float]) -> int:
    """
    Draw an index with probability proportional to its weight.

    Negative weights are clamped to zero. Raises ValueError if no weight
    is positive.
    """
    w = np.clip(np.asarray(weights, dtype=float), 0.0, None)
    total = float(w.sum())
    if not total > 0.0:
        raise ValueError("Discrete distribution needs at least one positive weight")
    cumulative = np.cumsum(w)
    r = rng.random() * total
    index = int(np.searchsorted(cumulative, r, side="right"))
    return min(index, len(w) - 1)


def maximize(f: Callable[[float], float], a: float, b: float,
             tol: float = DEFAULT_MAX_SEARCH_TOLERANCE,
             breakpoints: Sequence[float] = ()) -> Tuple[float, float]:
    """
    Locate the maximum of f on [a, b].

    Brent's bounded method runs on each smooth piece between the interior
    ``breakpoints``; the ends of every piece are checked separately since
    bounded searches never land exactly on them. A step in f sits at a
    breakpoint, so both one-sided values there are candidates.
    Returns (x_max, f_max).
    """
    edges = [a] + sorted(p for p in breakpoints if a < p < b) + [b]
    candidates = []
    for lo, hi in zip(edges, edges[1:]):
        result = optimize.minimize_scalar(lambda x: -f(x), bounds=(lo, hi), method="bounded",
                                          options={"xatol": tol})
        candidates.append((float(result.x), -float(result.fun)))
        for x in (lo, float(np.nextafter(lo, hi)), float(np.nextafter(hi, lo)), hi):
            candidates.append((x, f(x)))
    x_best, f_best = max(candidates, key=lambda c: c[1])
    logger.debug(f"Maximum search on [{a}, {b}] found f({x_best:.6g}) = {f_best:.6g}")
    return x_best, f_best


class RejectionSampler:
    """
    Accept/reject sampler for a density f on [xmin, xmax].

    Candidates x are drawn uniformly on [xmin, xmax] and comparison values y
    uniformly on [0, fmax * safety_factor]; x is accepted when y <= f(x).
    If fmax is UNKNOWN_MAX it is located with maximize() on first use, searching
    each piece between the breakpoints of f separately.
    Keeps acceptance statistics like an unweighting controller.
    """

    def __init__(self, f: Callable[[float], float], xmin: float, xmax: float,
                 fmax: float = UNKNOWN_MAX, safety_factor: float = DEFAULT_SAFETY_FACTOR,
                 max_search_tolerance: float = DEFAULT_MAX_SEARCH_TOLERANCE,
                 breakpoints: Sequence[float] = ()):
        self.f = f
        self.xmin = xmin
        self.xmax = xmax
        self.fmax = fmax
        self.safety_factor = safety_factor
        self.max_search_tolerance = max_search_tolerance
        self.breakpoints = tuple(breakpoints)
        self.accepted = 0
        self.rejected = 0

    def _ensure_max(self):
        if self.fmax == UNKNOWN_MAX:
            _, self.fmax = maximize(self.f, self.xmin, self.xmax, self.max_search_tolerance,
                                    self.breakpoints)
        if not self.fmax > 0.0:
            raise ValueError(
                f"Cannot rejection sample a density with maximum {self.fmax} "
                f"on [{self.xmin}, {self.xmax}]"
            )

    def sample(self, rng: np.random.Generator) -> float:
        self._ensure_max()
        while True:
            envelope = self.fmax * self.safety_factor
            x = uniform_random_double(rng, self.xmin, self.xmax, inclusive=True)
            y = uniform_random_double(rng, 0.0, envelope, inclusive=True)
            fx = self.f(x)
            if fx > envelope:
                logger.warning(
                    f"Rejection sampling envelope {envelope:.6g} violated by "
                    f"f({x:.6g}) = {fx:.6g}; raising the maximum"
                )
                self.fmax = fx
            if y <= fx:
                self.accepted += 1
                return x
            self.rejected += 1

    @property
    def efficiency(self) -> float:
        total = self.accepted + self.rejected
        return self.accepted / total if total > 0 else 0.0


def rejection_sample(rng: np.random.Generator, f: Callable[[float], float],
                     xmin: float, xmax: float, fmax: float = UNKNOWN_MAX,
                     safety_factor: float = DEFAULT_SAFETY_FACTOR,
                     max_search_tolerance: float = DEFAULT_MAX_SEARCH_TOLERANCE,
                     breakpoints: Sequence[float] = ()) -> Tuple[float, float]:
    """Sample f on [xmin, xmax] by rejection. Returns (x, fmax) so callers can reuse the maximum."""
    sampler = RejectionSampler(f, xmin, xmax, fmax, safety_factor, max_search_tolerance, breakpoints)
    x = sampler.sample(rng)
    return x, sampler.fmax


def inverse_transform_sample(rng: np.random.Generator, cdf: Callable[[float], float],
                             xmin: float, xmax: float,
                             bisection_tolerance: float = DEFAULT_BISECTION_TOLERANCE) -> float:
    """Invert a non-decreasing CDF on [xmin, xmax] at one uniform draw by bisection."""
    u = float(rng.random())
    lo, hi = xmin, xmax
    for _ in range(MAX_BISECTION_ITERATIONS):
        if hi - lo <= bisection_tolerance:
            break
        mid = 0.5 * (lo + hi)
        if cdf(mid) < u:
            lo = mid
        else:
            hi = mid
    return 0.5 * (lo + hi)


class TabulatedCDF:
    """Piecewise-linear CDF through tabulated (x, F(x)) points, normalized to end at 1."""

    def __init__(self, x: Sequence[float], cdf_values: Sequence[float]):
        self.x = np.asarray(x, dtype=float)
        values = np.asarray(cdf_values, dtype=float)
        if self.x.ndim != 1 or self.x.shape != values.shape or len(self.x) < 2:
            raise ValueError("Tabulated CDF needs matching 1D grids with at least two points")
        if np.any(np.diff(self.x) <= 0.0):
            raise ValueError("Tabulated CDF grid must be strictly increasing")
        if np.any(np.diff(values) < 0.0):
            raise ValueError("Tabulated CDF values must be non-decreasing")
        values = values - values[0]
        if not values[-1] > 0.0:
            raise ValueError("Tabulated CDF has zero total probability")
        self.values = values / values[-1]

    @classmethod
    def from_pdf(cls, pdf: Callable[[float], float], xmin: float, xmax: float,
                 n_points: int = 1001) -> "TabulatedCDF":
        """Integrate a density on a uniform grid with the trapezoid rule."""
        x = np.linspace(xmin, xmax, n_points)
        y = np.array([max(pdf(xi), 0.0) for xi in x], dtype=float)
        cdf = integrate.cumulative_trapezoid(y, x, initial=0.0)
        return cls(x, cdf)

    @property
    def xmin(self) -> float:
        return float(self.x[0])

    @property
    def xmax(self) -> float:
        return float(self.x[-1])

    def __call__(self, x: float) -> float:
        return float(np.interp(x, self.x, self.values))

    def sample(self, rng: np.random.Generator,
               bisection_tolerance: float = DEFAULT_BISECTION_TOLERANCE) -> float:
        return inverse_transform_sample(rng, self, self.xmin, self.xmax, bisection_tolerance)
