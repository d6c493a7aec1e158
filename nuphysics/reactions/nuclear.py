"""
Neutrino-nucleus reactions in the allowed approximation.

Cross sections are summed over the reaction's matrix-element table:

    sigma_i = (GF^2 / pi) (Eb Ed / s) Ec pc B_i  x  process factor

with the process factor |Vud|^2 F_C(beta_rel) for charged-current
scattering and Q_w^2 / 4 for the Fermi part of neutral-current scattering.
F_C is a Coulomb correction chosen by CoulombMode.

Units: MeV, cross sections in MeV^-2.
"""

import logging
import math
import warnings
from enum import Enum
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .. import constants as const
from ..errors import ConfigurationMismatch, KinematicInfeasibility, PhysicsViolation
from ..kinematics import real_sqrt
from ..mass_table import MassTable
from ..matrix_elements import MatrixElement, MatrixElementTable, TransitionType
from ..particles import ELEMENT_SYMBOLS, get_nucleus_pdg, get_particle_A, get_particle_Z, get_particle_symbol
from ..sampling import rejection_sample, sample_discrete, uniform_random_double
from ..special_functions import log_gamma
from ..transitions import spin_parity_string
from .base import ProcessType, Reaction, TargetAtom, get_ejectile_pdg, process_type_to_string

logger = logging.getLogger(__name__)

# Axial coupling used by the dark matter absorption amplitude
_G_A = 1.2694


class CoulombMode(Enum):
    NO_CORRECTION = "none"
    FERMI_FUNCTION = "Fermi"
    EMA = "EMA"
    MEMA = "MEMA"
    FERMI_AND_EMA = "Fermi-EMA"
    FERMI_AND_MEMA = "Fermi-MEMA"

    @classmethod
    def from_string(cls, s: str) -> "CoulombMode":
        for mode in cls:
            if mode.value == s:
                return mode
        raise ConfigurationMismatch(f"The string \"{s}\" is not a valid Coulomb correction mode")

    def __str__(self):
        return self.value


DEFAULT_COULOMB_MODE = CoulombMode.FERMI_AND_MEMA

# Change in nuclear charge and ionic charge of the residue for each process
_DELTA_Z = {
    ProcessType.NEUTRINO_CC: 1,
    ProcessType.ANTINEUTRINO_CC: -1,
    ProcessType.NC: 0,
    ProcessType.DM: 1,
}


class NuclearReaction(Reaction):
    """
    a + A -> c + B* for a fixed projectile, target nuclide and process.

    The residue mass depends on the sampled level; it is computed for each
    event (md_gs + E_level) and never stored on the reaction, so one
    reaction can be used by several generators at once.
    """

    def __init__(self, process_type: ProcessType, pdg_a: int, pdg_b: int,
                 matrix_elements: Sequence[MatrixElement], mass_table: MassTable,
                 coulomb_mode: CoulombMode = DEFAULT_COULOMB_MODE,
                 pdg_d: Optional[int] = None, q_d: Optional[int] = None,
                 dm_uv_cutoff: float = 1.0):
        try:
            self.process_type = ProcessType(process_type)
        except ValueError:
            raise PhysicsViolation(f"Unrecognized process type {process_type!r}") from None
        if self.process_type not in _DELTA_Z:
            raise PhysicsViolation(
                f"{process_type_to_string(self.process_type)} is not a nuclear process"
            )

        self.pdg_a = pdg_a
        self.pdg_b = pdg_b
        self.pdg_c = get_ejectile_pdg(pdg_a, self.process_type)
        # Tables are shared between reactions; plain sequences get the ordering check
        if not isinstance(matrix_elements, MatrixElementTable):
            matrix_elements = MatrixElementTable(matrix_elements)
        self.matrix_elements = matrix_elements
        self.coulomb_mode = coulomb_mode
        self.dm_uv_cutoff = dm_uv_cutoff

        self.Zi = get_particle_Z(pdg_b)
        self.Ai = get_particle_A(pdg_b)
        self.pdg_d = pdg_d if pdg_d is not None else get_nucleus_pdg(
            self.Zi + _DELTA_Z[self.process_type], self.Ai)
        self.Zf = get_particle_Z(self.pdg_d)
        self.Af = get_particle_A(self.pdg_d)
        self.q_d = q_d if q_d is not None else _DELTA_Z[self.process_type]

        self.ma = mass_table.get_particle_mass(self.pdg_a)
        self.mc = mass_table.get_particle_mass(self.pdg_c)
        # Codes above 10^9 are taken to be neutral atoms
        if self.pdg_b > 1000000000:
            self.mb = mass_table.get_atomic_mass(self.pdg_b)
        else:
            self.mb = mass_table.get_particle_mass(self.pdg_b)
        if self.pdg_d > 1000000000:
            # Ionized residue: remove q_d electron masses from the neutral atom
            self.md_gs = (mass_table.get_atomic_mass(self.pdg_d)
                          - self.q_d * mass_table.get_particle_mass(const.ELECTRON))
        else:
            self.md_gs = mass_table.get_particle_mass(self.pdg_d)

        if self.process_type == ProcessType.DM:
            self.KEa_threshold = self.md_gs + self.mc - self.mb
            warnings.warn(
                "Dark matter absorption reactions are experimental and their cross "
                "sections have not been validated",
                UserWarning,
                stacklevel=2,
            )
        else:
            self.KEa_threshold = ((self.mc + self.md_gs) ** 2 - (self.ma + self.mb) ** 2) / (2.0 * self.mb)

        self.description = self._make_description()
        logger.debug(
            f"Created {self.description}: ma = {self.ma} MeV, mb = {self.mb} MeV, "
            f"mc = {self.mc} MeV, md_gs = {self.md_gs} MeV, "
            f"threshold KE = {self.KEa_threshold} MeV"
        )

    def _make_description(self) -> str:
        desc = (
            f"{get_particle_symbol(self.pdg_a)} + {self.Ai}{ELEMENT_SYMBOLS[self.Zi]} → "
            f"{get_particle_symbol(self.pdg_c)} + {self.Af}{ELEMENT_SYMBOLS[self.Zf]}"
        )
        if any(me.level_energy > 0.0 for me in self.matrix_elements):
            return desc + "*"
        return desc + " (g.s.)"

    # -------------------- Kinematic limits --------------------

    def threshold_kinetic_energy(self) -> float:
        return self.KEa_threshold

    def atomic_target(self) -> TargetAtom:
        return TargetAtom(self.pdg_b)

    def max_level_energy(self, KEa: float) -> float:
        """Largest residue excitation energy reachable at projectile KE KEa (MeV)."""
        E_cm = math.sqrt((self.ma + self.mb) ** 2 + 2.0 * self.mb * KEa)
        return E_cm - self.mc - self.md_gs

    # -------------------- Coulomb corrections --------------------

    def weak_nuclear_charge(self) -> float:
        Ni = self.Ai - self.Zi
        return Ni - (1.0 - 4.0 * const.SIN2_THETA_W) * self.Zi

    def fermi_function(self, beta_c: float) -> float:
        """
        Fermi function F(Zf, beta_c) for the outgoing lepton.

        Evaluated in log space since |Gamma(s + i eta)|^2 and exp(pi eta)
        over- and underflow separately for slow leptons. Returns NaN for
        beta_c outside (0, 1).
        """
        if not 0.0 < beta_c < 1.0:
            return math.nan

        alpha_Z = const.ALPHA_EM * self.Zf
        if alpha_Z >= 1.0:
            return math.nan
        gamma_c = 1.0 / math.sqrt(1.0 - beta_c * beta_c)
        s = math.sqrt(1.0 - alpha_Z ** 2)
        rho = const.nuclear_radius_natural_units(self.Af)

        # Sommerfeld parameter (sign flips for a positively charged lepton)
        eta = alpha_Z / beta_c
        if self.pdg_c < 0:
            eta = -eta

        x = 2.0 * beta_c * gamma_c * rho * self.mc
        if not x > 0.0:
            return math.nan

        log_F = (math.log(2.0 * (1.0 + s))
                 + (2.0 * s - 2.0) * math.log(x)
                 + math.pi * eta
                 + 2.0 * log_gamma(complex(s, eta)).real
                 - 2.0 * math.lgamma(1.0 + 2.0 * s))
        return math.exp(log_F)

    def ema_factor(self, beta_rel_cd: float, modified: bool = False) -> Tuple[float, bool]:
        """
        Effective momentum approximation factor and its validity flag.

        The lepton energy in the final-nucleus rest frame is shifted by the
        Coulomb potential of a uniformly charged sphere. ``ok`` is False when
        the shifted energy falls below the lepton mass.
        """
        R_nuc = const.nuclear_radius_natural_units(self.Af)
        Vc = -3.0 * self.Zf * const.ALPHA_EM / (2.0 * R_nuc)
        if self.pdg_c < 0:
            Vc = -Vc

        if not 0.0 <= beta_rel_cd < 1.0:
            logger.warning(f"Invalid beta_rel = {beta_rel_cd} encountered in the EMA factor")
            return math.nan, False

        gamma_rel = 1.0 / math.sqrt(1.0 - beta_rel_cd ** 2)
        E_c = gamma_rel * self.mc
        p_c = beta_rel_cd * E_c
        E_c_eff = E_c - Vc
        ok = E_c_eff >= self.mc
        if p_c == 0.0:
            return math.nan, False

        p_c_eff = real_sqrt(E_c_eff ** 2 - self.mc ** 2)
        if modified:
            return (p_c_eff * E_c_eff) / (p_c * E_c), ok
        return (p_c_eff / p_c) ** 2, ok

    def coulomb_correction_factor(self, beta_rel_cd: float) -> float:
        mode = self.coulomb_mode
        if mode is CoulombMode.NO_CORRECTION:
            return 1.0

        fermi = self.fermi_function(beta_rel_cd)
        if mode is CoulombMode.FERMI_FUNCTION:
            return fermi

        use_mema = mode in (CoulombMode.MEMA, CoulombMode.FERMI_AND_MEMA)
        factor_ema, ok = self.ema_factor(beta_rel_cd, use_mema)

        if mode in (CoulombMode.EMA, CoulombMode.MEMA):
            if ok:
                return factor_ema
            raise PhysicsViolation(f"Invalid {mode.value} factor for beta_rel = {beta_rel_cd}")

        if mode not in (CoulombMode.FERMI_AND_EMA, CoulombMode.FERMI_AND_MEMA):
            raise PhysicsViolation(f"Unrecognized Coulomb correction mode {mode!r}")

        # (M)EMA pushes the lepton below threshold: fall back to the Fermi function
        if not ok:
            return fermi

        # Otherwise take the smaller correction
        if abs(fermi - 1.0) < abs(factor_ema - 1.0):
            return fermi
        return factor_ema

    # -------------------- Cross sections --------------------

    def _partial_xs(self, mat_el: MatrixElement, KEa: float) -> Tuple[float, float]:
        """Partial cross section to one level and the CM ejectile speed."""
        if mat_el.strength == 0.0:
            return 0.0, 0.0

        md = self.md_gs + mat_el.level_energy
        s, Ec_cm, pc_cm, Ed_cm = self.two_two_scatter(KEa, md)
        sqrt_s = math.sqrt(s)
        Eb_cm = (s + self.mb ** 2 - self.ma ** 2) / (2.0 * sqrt_s)
        beta_c_cm = pc_cm / Ec_cm

        if self.process_type == ProcessType.DM:
            return self._dm_partial_xs(Ec_cm, md), beta_c_cm

        # Lorentz-invariant relative speed of the ejectile and residue
        pc_dot_pd = Ed_cm * Ec_cm + pc_cm ** 2
        beta_rel_cd = real_sqrt(pc_dot_pd ** 2 - self.mc ** 2 * md ** 2) / pc_dot_pd

        xs = (const.GF2 / math.pi) * (Eb_cm * Ed_cm / s) * Ec_cm * pc_cm * mat_el.strength

        if self.process_type in (ProcessType.NEUTRINO_CC, ProcessType.ANTINEUTRINO_CC):
            xs *= const.VUD2 * self.coulomb_correction_factor(beta_rel_cd)
        elif self.process_type == ProcessType.NC:
            # Only the Fermi (CEvNS) part carries the weak charge
            if mat_el.type is TransitionType.FERMI:
                xs *= 0.25 * self.weak_nuclear_charge() ** 2
        else:
            raise PhysicsViolation(f"Unrecognized process type {self.process_type!r}")
        return xs, beta_c_cm

    def _dm_partial_xs(self, Ee: float, md: float) -> float:
        """Squared-amplitude estimate for fermionic dark matter absorption."""
        me = const.M_ELECTRON
        mx = self.ma
        mn = const.M_NEUTRON
        mp = const.M_PROTON
        m_thresh = md + me - self.mb
        pe = real_sqrt((m_thresh - mx) * (m_thresh - mx - 2.0 * me))
        mc2 = self.mc ** 2

        m_squared = 4.0 * mn * mx / self.dm_uv_cutoff ** 4 * (
            Ee * (2.0 * mn - mp + 2.0 * mx - Ee) - mc2
            + 2.0 * _G_A * (Ee * Ee - mc2)
            + 2.0 * _G_A ** 2 * (Ee * (2.0 * mn + mp + 2.0 * mx - Ee) - mc2)
        )
        return max(pe / (16.0 * math.pi * mx * self.md_gs ** 2) * m_squared, 0.0)

    def partial_xs(self, mat_el: MatrixElement, KEa: float) -> float:
        """Total cross section (MeV^-2) to the level of one matrix element."""
        if mat_el.level_energy > self.max_level_energy(KEa):
            return 0.0
        return self._partial_xs(mat_el, KEa)[0]

    def level_diff_xs(self, mat_el: MatrixElement, KEa: float, cos_theta_c_cm: float) -> float:
        """dsigma/dcos(theta_c^CM) (MeV^-2) to the level of one matrix element."""
        if abs(cos_theta_c_cm) > 1.0:
            return 0.0
        if mat_el.level_energy > self.max_level_energy(KEa):
            return 0.0
        xs, beta_c_cm = self._partial_xs(mat_el, KEa)
        return xs * mat_el.cos_theta_pdf(cos_theta_c_cm, beta_c_cm)

    def level_weights(self, KEa: float, cos_theta_c_cm: Optional[float] = None) -> List[float]:
        """
        Partial cross sections to every accessible level, in table order.

        Iteration stops at the first level above max_level_energy(KEa), so
        entry i always belongs to matrix element i. Zero-strength levels get
        weight zero. Passing cos_theta_c_cm gives differential weights.
        """
        max_E_level = self.max_level_energy(KEa)
        weights = []
        for mat_el in self.matrix_elements:
            if mat_el.level_energy > max_E_level:
                break

            xs, beta_c_cm = self._partial_xs(mat_el, KEa)
            if cos_theta_c_cm is not None:
                xs *= mat_el.cos_theta_pdf(cos_theta_c_cm, beta_c_cm)

            if math.isnan(xs):
                logger.warning(f"Partial cross section for reaction {self.description} gave NaN result")
                logger.debug(
                    f"Parameters were level energy = {mat_el.level_energy} MeV, projectile "
                    f"kinetic energy = {KEa} MeV, and reduced matrix element = {mat_el.strength}. "
                    "The partial cross section to this level will be set to zero."
                )
                xs = 0.0
            weights.append(xs)
        return weights

    def total_xs(self, pdg_a: int, KEa: float) -> float:
        if pdg_a != self.pdg_a or KEa <= 0.0 or KEa < self.KEa_threshold:
            return 0.0
        return math.fsum(self.level_weights(KEa))

    def diff_xs(self, pdg_a: int, KEa: float, cos_theta_c_cm: float) -> float:
        if pdg_a != self.pdg_a or KEa <= 0.0 or KEa < self.KEa_threshold:
            return 0.0
        if abs(cos_theta_c_cm) > 1.0:
            return 0.0
        return math.fsum(self.level_weights(KEa, cos_theta_c_cm))

    # -------------------- Event creation --------------------

    def sample_cos_theta_c_cm(self, mat_el: MatrixElement, beta_c_cm: float,
                              rng: np.random.Generator) -> float:
        fmax = mat_el.max_cos_theta_pdf(beta_c_cm)
        cos_theta, _ = rejection_sample(
            rng, lambda c: mat_el.cos_theta_pdf(c, beta_c_cm), -1.0, 1.0, fmax)
        return cos_theta

    def _residue_spin_parity(self, mat_el: MatrixElement, E_level: float,
                             rng: np.random.Generator, structure_db):
        # Discrete levels carry their own spin-parity
        if mat_el.level is not None:
            return mat_el.level.twoJ, mat_el.level.parity

        if structure_db is None:
            raise ConfigurationMismatch(
                f"A structure database is needed to assign the spin-parity of a continuum "
                f"level at {E_level} MeV in {self.description}"
            )
        twoJ_gs, P_gs = structure_db.gs_spin_parity(self.pdg_b)

        # Fermi transitions keep the initial spin-parity
        if mat_el.type is TransitionType.FERMI:
            return twoJ_gs, P_gs

        if mat_el.type is not TransitionType.GAMOW_TELLER:
            raise PhysicsViolation(f"Unrecognized matrix element type {mat_el.type!r}")

        # Gamow-Teller: parity unchanged, |J_gs - 1| <= J <= J_gs + 1
        if twoJ_gs == 0:
            return 2, P_gs

        allowed_twoJs = list(range(abs(twoJ_gs - 2), twoJ_gs + 3, 2))
        if structure_db.has_level_density(self.pdg_d):
            weights = [structure_db.level_density(self.pdg_d, E_level, twoJ, P_gs)
                       for twoJ in allowed_twoJs]
        else:
            weights = [1.0] * len(allowed_twoJs)
        if not sum(w for w in weights if w > 0.0) > 0.0:
            logger.warning(
                f"Level densities vanish for all allowed spins at {E_level} MeV; "
                "sampling them with equal weights"
            )
            weights = [1.0] * len(allowed_twoJs)
        return allowed_twoJs[sample_discrete(rng, weights)], P_gs

    def create_event(self, pdg_a: int, KEa: float, rng: np.random.Generator, structure_db=None):
        """
        Sample a residue level and CM frame ejectile direction, then build the Event.

        Random draws, in order: level index, rejection-sampled cos(theta)
        (two draws per trial), phi, and a spin draw for Gamow-Teller
        continuum entries from a nucleus with nonzero ground-state spin.
        """
        self._check_projectile(pdg_a)
        if KEa < self.KEa_threshold:
            raise KinematicInfeasibility(
                f"Could not create this event. Projectile kinetic energy {KEa} MeV is below "
                f"the threshold value {self.KEa_threshold} MeV for {self.description}"
            )

        weights = self.level_weights(KEa)
        if not weights:
            raise KinematicInfeasibility(
                f"Could not create this event. {self.description} has no kinematically "
                f"accessible levels for a projectile kinetic energy of {KEa} MeV "
                f"(max E_level = {self.max_level_energy(KEa)} MeV)"
            )
        if not math.fsum(weights) > 0.0:
            raise KinematicInfeasibility(
                f"Could not create this event. All kinematically accessible levels of "
                f"{self.description} for a projectile kinetic energy of {KEa} MeV "
                f"(max E_level = {self.max_level_energy(KEa)} MeV) have vanishing matrix elements"
            )

        mat_el = self.matrix_elements[sample_discrete(rng, weights)]
        E_level = mat_el.level_energy
        md = self.md_gs + E_level

        s, Ec_cm, pc_cm, Ed_cm = self.two_two_scatter(KEa, md)
        beta_c_cm = pc_cm / Ec_cm
        cos_theta_c_cm = self.sample_cos_theta_c_cm(mat_el, beta_c_cm, rng)
        phi_c_cm = uniform_random_double(rng, 0.0, const.TWO_PI, inclusive=False)

        twoJ, parity = self._residue_spin_parity(mat_el, E_level, rng, structure_db)
        logger.debug(
            f"Sampled a {mat_el.type.value} transition from the {TargetAtom(self.pdg_b)} "
            f"ground state to the {self.Af}{ELEMENT_SYMBOLS[self.Zf]} level with "
            f"Ex = {E_level} MeV and spin-parity {spin_parity_string(twoJ, parity)}"
        )

        # The target is a neutral atom; the residue is left ionized with charge q_d
        return self.make_event_object(KEa, pc_cm, cos_theta_c_cm, phi_c_cm, Ec_cm, Ed_cm,
                                      E_level, twoJ, parity, md=md,
                                      target_charge=0, residue_charge=self.q_d)
