"""
Projectile sources: energy spectra of the incident neutrinos.

Energies are projectile total energies in MeV. pdf(E) is normalized to
unity on [E_min, E_max].
"""

from abc import ABC, abstractmethod
from typing import Sequence

import numpy as np
from scipy import integrate

from . import constants as const
from .errors import ConfigurationMismatch
from .sampling import TabulatedCDF

NEUTRINO_NAMES = {
    "ve": const.ELECTRON_NEUTRINO,
    "vebar": const.ELECTRON_ANTINEUTRINO,
    "vu": const.MUON_NEUTRINO,
    "vubar": const.MUON_ANTINEUTRINO,
    "vt": const.TAU_NEUTRINO,
    "vtbar": const.TAU_ANTINEUTRINO,
    "dm": const.DARK_MATTER,
}


def neutrino_pdg(name_or_pdg) -> int:
    """Resolve a projectile name ('ve', 'vubar', ...) or PDG code."""
    if isinstance(name_or_pdg, str):
        key = name_or_pdg.strip()
        if key in NEUTRINO_NAMES:
            return NEUTRINO_NAMES[key]
        try:
            name_or_pdg = int(key)
        except ValueError:
            raise ConfigurationMismatch(f"Unrecognized projectile name '{key}'") from None
    pdg = int(name_or_pdg)
    if pdg not in NEUTRINO_NAMES.values():
        raise ConfigurationMismatch(f"Unsupported projectile PDG code {pdg}")
    return pdg


class NeutrinoSource(ABC):
    """Energy distribution of one projectile species."""

    def __init__(self, pdg: int):
        self.pdg = neutrino_pdg(pdg)

    @property
    @abstractmethod
    def E_min(self) -> float: ...

    @property
    @abstractmethod
    def E_max(self) -> float: ...

    @abstractmethod
    def pdf(self, E: float) -> float:
        """Probability density (MeV^-1) of incident energy E."""

    @abstractmethod
    def sample_incident_energy(self, rng: np.random.Generator) -> float:
        """Draw an incident (not cross-section weighted) projectile energy."""

    def breakpoints(self) -> Sequence[float]:
        """Energies where pdf() is not smooth, for numerical integration."""
        return ()


class MonoSource(NeutrinoSource):
    """All projectiles share one energy."""

    def __init__(self, pdg: int, energy: float):
        super().__init__(pdg)
        if not energy > 0.0:
            raise ConfigurationMismatch(f"Monoenergetic source energy must be positive, got {energy}")
        self.energy = float(energy)

    @property
    def E_min(self) -> float:
        return self.energy

    @property
    def E_max(self) -> float:
        return self.energy

    def pdf(self, E: float) -> float:
        # Delta function: only the identity of the support matters
        return 1.0 if E == self.energy else 0.0

    def sample_incident_energy(self, rng: np.random.Generator) -> float:
        return self.energy

    def __repr__(self):
        return f"MonoSource(pdg={self.pdg}, E={self.energy} MeV)"


class HistogramSource(NeutrinoSource):
    """Piecewise-constant spectrum given by bin left edges, bin weights and the last bin's right edge."""

    def __init__(self, pdg: int, E_bin_lefts: Sequence[float], weights: Sequence[float], E_max: float):
        super().__init__(pdg)
        lefts = np.asarray(E_bin_lefts, dtype=float)
        w = np.asarray(weights, dtype=float)
        if lefts.ndim != 1 or lefts.shape != w.shape or len(lefts) == 0:
            raise ConfigurationMismatch("Histogram source needs equal numbers of bin edges and weights")
        self.edges = np.append(lefts, float(E_max))
        if np.any(np.diff(self.edges) <= 0.0):
            raise ConfigurationMismatch("Histogram source bin edges must be strictly increasing")
        if self.edges[0] < 0.0:
            raise ConfigurationMismatch("Histogram source energies must be non-negative")
        if np.any(w < 0.0):
            raise ConfigurationMismatch("Histogram source weights must be non-negative")

        norm = float(np.sum(w * np.diff(self.edges)))
        if not norm > 0.0:
            raise ConfigurationMismatch("Histogram source has zero total weight")
        self.densities = w / norm
        self._cdf = TabulatedCDF(self.edges, np.concatenate(([0.0], np.cumsum(self.densities * np.diff(self.edges)))))

    @property
    def E_min(self) -> float:
        return float(self.edges[0])

    @property
    def E_max(self) -> float:
        return float(self.edges[-1])

    def pdf(self, E: float) -> float:
        if E < self.edges[0] or E > self.edges[-1]:
            return 0.0
        i = int(np.searchsorted(self.edges, E, side="right")) - 1
        i = min(i, len(self.densities) - 1)
        return float(self.densities[i])

    def sample_incident_energy(self, rng: np.random.Generator) -> float:
        return self._cdf.sample(rng)

    def breakpoints(self) -> Sequence[float]:
        return tuple(float(e) for e in self.edges[1:-1])


class GridSource(NeutrinoSource):
    """Spectrum tabulated on an energy grid and linearly interpolated."""

    def __init__(self, pdg: int, energies: Sequence[float], probabilities: Sequence[float]):
        super().__init__(pdg)
        E = np.asarray(energies, dtype=float)
        p = np.asarray(probabilities, dtype=float)
        if E.ndim != 1 or E.shape != p.shape or len(E) < 2:
            raise ConfigurationMismatch("Grid source needs matching energy and probability grids")
        if np.any(np.diff(E) <= 0.0):
            raise ConfigurationMismatch("Grid source energies must be strictly increasing")
        if np.any(p < 0.0):
            raise ConfigurationMismatch("Grid source probabilities must be non-negative")

        norm = float(integrate.trapezoid(p, E))
        if not norm > 0.0:
            raise ConfigurationMismatch("Grid source has zero total probability")
        self.energies = E
        self.densities = p / norm
        self._cdf = TabulatedCDF.from_pdf(self.pdf, float(E[0]), float(E[-1]),
                                          n_points=max(1001, 10 * len(E)))

    @property
    def E_min(self) -> float:
        return float(self.energies[0])

    @property
    def E_max(self) -> float:
        return float(self.energies[-1])

    def pdf(self, E: float) -> float:
        if E < self.energies[0] or E > self.energies[-1]:
            return 0.0
        return float(np.interp(E, self.energies, self.densities))

    def sample_incident_energy(self, rng: np.random.Generator) -> float:
        return self._cdf.sample(rng)

    def breakpoints(self) -> Sequence[float]:
        return tuple(float(e) for e in self.energies[1:-1])


def is_monoenergetic(source: NeutrinoSource) -> bool:
    return source.E_min == source.E_max
