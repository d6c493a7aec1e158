"""
Nuclear structure data needed while building events.

Parsing structure files is left to the caller: a StructureDatabase is
filled in code (see nuphysics.data for built-in values) with ground-state
spin-parities and, optionally, level-density models.
"""

import math
from typing import Callable, Dict, Tuple

from .errors import ConfigurationMismatch
from .transitions import Parity

# (Ex, twoJ, parity) -> level density (MeV^-1)
LevelDensityModel = Callable[[float, int, Parity], float]


def spin_cutoff_level_density(sigma: float) -> LevelDensityModel:
    """
    Spin-dependent part of a Fermi gas level density.

    rho(J) ~ (2J + 1) exp(-(J + 1/2)^2 / (2 sigma^2)), parity-independent.
    Only relative values matter when choosing between spins.
    """
    if not sigma > 0.0:
        raise ValueError(f"Spin cutoff parameter must be positive, got {sigma}")

    def model(Ex: float, twoJ: int, parity: Parity) -> float:
        J = twoJ / 2.0
        return (2.0 * J + 1.0) * math.exp(-(J + 0.5) ** 2 / (2.0 * sigma ** 2))

    return model


class StructureDatabase:
    def __init__(self):
        self._gs_spin_parities: Dict[int, Tuple[int, Parity]] = {}
        self._level_densities: Dict[int, LevelDensityModel] = {}

    def set_gs_spin_parity(self, pdg: int, twoJ: int, parity: Parity):
        if twoJ < 0:
            raise ValueError(f"twoJ must be non-negative, got {twoJ}")
        self._gs_spin_parities[pdg] = (twoJ, Parity(parity))

    def gs_spin_parity(self, pdg: int) -> Tuple[int, Parity]:
        """(twoJ, parity) of a nuclide's ground state."""
        try:
            return self._gs_spin_parities[pdg]
        except KeyError:
            raise ConfigurationMismatch(f"No ground-state spin-parity known for nuclide {pdg}") from None

    def set_level_density_model(self, pdg: int, model: LevelDensityModel):
        self._level_densities[pdg] = model

    def has_level_density(self, pdg: int) -> bool:
        return pdg in self._level_densities

    def level_density(self, pdg: int, Ex: float, twoJ: int, parity: Parity) -> float:
        try:
            model = self._level_densities[pdg]
        except KeyError:
            raise ConfigurationMismatch(f"No level density model for nuclide {pdg}") from None
        return model(Ex, twoJ, parity)
