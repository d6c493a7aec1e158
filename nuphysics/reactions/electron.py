"""
Neutrino-electron elastic scattering on the electrons of a target atom.

The tree-level cross sections depend on two couplings g1, g2 set by the
neutrino flavor. Electron binding energies are neglected, so the atomic
cross section is Z times the free-electron one.
"""

import logging
import math

import numpy as np

from .. import constants as const
from ..errors import ConfigurationMismatch, KinematicInfeasibility
from ..mass_table import MassTable
from ..particles import get_particle_symbol
from ..sampling import rejection_sample, uniform_random_double
from ..transitions import Parity
from .base import ProcessType, Reaction, TargetAtom, get_ejectile_pdg

logger = logging.getLogger(__name__)

COS_MIN = -1.0
COS_MAX = 1.0


def coupling_constants(pdg_a: int):
    """(g1, g2) for a projectile neutrino species."""
    s2w = const.SIN2_THETA_W
    if pdg_a == const.ELECTRON_NEUTRINO:
        return const.ONE_HALF + s2w, s2w
    if pdg_a == const.ELECTRON_ANTINEUTRINO:
        return s2w, const.ONE_HALF + s2w
    if pdg_a in (const.MUON_NEUTRINO, const.TAU_NEUTRINO):
        return -const.ONE_HALF + s2w, s2w
    if pdg_a in (const.MUON_ANTINEUTRINO, const.TAU_ANTINEUTRINO):
        return s2w, -const.ONE_HALF + s2w
    raise ConfigurationMismatch(f"Unrecognized projectile PDG code {pdg_a} for electron scattering")


class ElectronReaction(Reaction):
    """nu + e- -> nu + e- for electrons bound in ``target_atom_pdg``."""

    def __init__(self, pdg_a: int, target_atom_pdg: int, mass_table: MassTable):
        self.process_type = ProcessType.NU_ELECTRON_ELASTIC
        self.atom = TargetAtom(target_atom_pdg)
        self.g1, self.g2 = coupling_constants(pdg_a)

        self.pdg_a = pdg_a
        self.pdg_b = const.ELECTRON
        self.pdg_c = get_ejectile_pdg(pdg_a, self.process_type)
        self.pdg_d = const.ELECTRON

        self.ma = mass_table.get_particle_mass(self.pdg_a)
        self.mb = mass_table.get_particle_mass(self.pdg_b)
        self.mc = mass_table.get_particle_mass(self.pdg_c)
        self.md_gs = mass_table.get_particle_mass(self.pdg_d)

        self.description = (
            f"{get_particle_symbol(self.pdg_a)} + {get_particle_symbol(self.pdg_b)} → "
            f"{get_particle_symbol(self.pdg_c)} + {get_particle_symbol(self.pdg_d)}"
        )
        self.KEa_threshold = ((self.mc + self.md_gs) ** 2 - (self.ma + self.mb) ** 2) / (2.0 * self.mb)

    def threshold_kinetic_energy(self) -> float:
        return self.KEa_threshold

    def atomic_target(self) -> TargetAtom:
        return self.atom

    def _s_and_Ec(self, KEa: float):
        s = (self.ma + self.mb) ** 2 + 2.0 * self.mb * KEa
        Ec_cm = (s + self.mc ** 2 - self.md_gs ** 2) / (2.0 * math.sqrt(s))
        return s, Ec_cm

    def total_xs(self, pdg_a: int, KEa: float) -> float:
        if pdg_a != self.pdg_a or KEa < self.KEa_threshold:
            return 0.0

        s, Ec_cm = self._s_and_Ec(KEa)
        me2_over_s = self.md_gs ** 2 / s
        g1, g2 = self.g1, self.g2
        g2_sq_over_3 = g2 * g2 / 3.0

        xs = (4.0 / math.pi) * (const.GF * Ec_cm) ** 2 * (
            g1 ** 2
            + (g2_sq_over_3 - g1 * g2) * me2_over_s
            + g2_sq_over_3 * (1.0 + me2_over_s ** 2)
        )
        # One free electron per unit of atomic number
        return xs * self.atom.Z

    def diff_xs(self, pdg_a: int, KEa: float, cos_theta_c_cm: float) -> float:
        if pdg_a != self.pdg_a or KEa < self.KEa_threshold:
            return 0.0
        if abs(cos_theta_c_cm) > 1.0:
            return 0.0

        s, Ec_cm = self._s_and_Ec(KEa)
        me2_over_s = self.md_gs ** 2 / s
        g1, g2 = self.g1, self.g2

        terms = (g1 ** 2
                 + g1 * g2 * me2_over_s * (cos_theta_c_cm - 1.0)
                 + (g2 * (1.0 + const.ONE_HALF * (1.0 - me2_over_s) * (cos_theta_c_cm - 1.0))) ** 2)
        return (2.0 / math.pi) * (const.GF * Ec_cm) ** 2 * terms * self.atom.Z

    def max_diff_xs(self, KEa: float) -> float:
        """
        Maximum of diff_xs over [-1, 1].

        The derivative vanishes at cth = -A / B; that point competes with
        the two endpoints when it lies inside the range.
        """
        s, _ = self._s_and_Ec(KEa)
        me2_over_s = self.md_gs ** 2 / s
        B = const.ONE_HALF * (self.g2 * (1.0 - me2_over_s)) ** 2
        A = self.g1 * self.g2 * me2_over_s + self.g2 ** 2 * (1.0 - me2_over_s) - B

        candidates = [self.diff_xs(self.pdg_a, KEa, COS_MIN), self.diff_xs(self.pdg_a, KEa, COS_MAX)]
        if B != 0.0:
            cth = -A / B
            if COS_MIN <= cth <= COS_MAX:
                candidates.append(self.diff_xs(self.pdg_a, KEa, cth))
        return max(candidates)

    def create_event(self, pdg_a: int, KEa: float, rng: np.random.Generator, structure_db=None):
        self._check_projectile(pdg_a)
        if KEa < self.KEa_threshold:
            raise KinematicInfeasibility(
                f"Could not create this event. The kinetic energy ({KEa} MeV) of the projectile "
                f"is below the reaction threshold of {self.KEa_threshold} MeV"
            )

        s, Ec_cm, pc_cm, Ed_cm = self.two_two_scatter(KEa)
        cos_theta_c_cm, _ = rejection_sample(
            rng, lambda c: self.diff_xs(pdg_a, KEa, c), COS_MIN, COS_MAX, self.max_diff_xs(KEa))
        phi_c_cm = uniform_random_double(rng, 0.0, const.TWO_PI, inclusive=False)
        logger.debug(f"{self.description}: cos(theta_c_cm) = {cos_theta_c_cm:.6f}, phi = {phi_c_cm:.6f}")

        # Electrons have spin 1/2 and positive intrinsic parity
        return self.make_event_object(KEa, pc_cm, cos_theta_c_cm, phi_c_cm, Ec_cm, Ed_cm,
                                      0.0, 1, Parity.POSITIVE)
