"""
Kinematics helpers for two-two scattering (a + b -> c + d).

The projectile travels along +z toward a target at rest in the lab frame.
Units: MeV (natural units c = 1).
"""

from __future__ import annotations
import math
from dataclasses import dataclass
from typing import NamedTuple, Optional, Tuple
import numpy as np


# -----------------------------
# FourVector
# -----------------------------
@dataclass
class FourVector:
    E: float
    px: float
    py: float
    pz: float

    @property
    def p(self) -> np.ndarray:
        return np.array([self.px, self.py, self.pz], dtype=float)

    def momentum(self) -> float:
        return math.sqrt(self.px * self.px + self.py * self.py + self.pz * self.pz)

    def mass(self) -> float:
        m2 = self.E * self.E - self.momentum() ** 2
        return math.sqrt(max(m2, 0.0))

    def beta(self) -> np.ndarray:
        if self.E == 0.0:
            return np.zeros(3, dtype=float)
        return self.p / self.E

    def boost(self, beta: np.ndarray) -> "FourVector":
        p4 = np.array([self.E, self.px, self.py, self.pz], dtype=float)
        boosted = lorentz_boost_array(p4, np.asarray(beta, dtype=float))
        return FourVector(float(boosted[0]), float(boosted[1]), float(boosted[2]), float(boosted[3]))

    def dot(self, other: "FourVector") -> float:
        """Minkowski inner product with (+,-,-,-) signature."""
        return self.E * other.E - (self.px * other.px + self.py * other.py + self.pz * other.pz)

    def to_tuple(self) -> Tuple[float, float, float, float]:
        return (self.E, self.px, self.py, self.pz)

    def __add__(self, other: "FourVector") -> "FourVector":
        return FourVector(self.E + other.E, self.px + other.px, self.py + other.py, self.pz + other.pz)

    def __sub__(self, other: "FourVector") -> "FourVector":
        return FourVector(self.E - other.E, self.px - other.px, self.py - other.py, self.pz - other.pz)

    def __repr__(self) -> str:
        return f"FourVector(E={self.E:.6f}, px={self.px:.6f}, py={self.py:.6f}, pz={self.pz:.6f})"


# -----------------------------
# Lorentz boost
# -----------------------------
def lorentz_boost_array(p4: np.ndarray, beta: np.ndarray) -> np.ndarray:
    """Boost p4 into the frame in which its original frame moves with velocity beta."""
    beta = np.asarray(beta, dtype=float)
    p4 = np.asarray(p4, dtype=float)
    beta2 = float(np.dot(beta, beta))
    if beta2 >= 1.0:
        raise ValueError("beta^2 < 1 required.")
    if beta2 <= 1e-18:
        return p4.copy()
    gamma = 1.0 / math.sqrt(1.0 - beta2)
    bp = float(np.dot(beta, p4[1:]))
    Eprime = gamma * (p4[0] + bp)
    factor = ((gamma - 1.0) * bp / beta2) + gamma * p4[0]
    pprime = p4[1:] + factor * beta
    return np.array([Eprime, pprime[0], pprime[1], pprime[2]], dtype=float)


def real_sqrt(num: float) -> float:
    """Square root that treats a non-positive argument as roundoff and returns zero."""
    if num <= 0.0:
        return 0.0
    return math.sqrt(num)


# -----------------------------
# Two-two scattering
# -----------------------------
class TwoTwoSystem(NamedTuple):
    """PDG codes and rest masses of the four particles in a + b -> c + d.

    ``md`` is the residue mass for the current event (ground-state mass plus
    the sampled excitation energy), so a new system is built for every event.
    """

    pdg_a: int
    pdg_b: int
    pdg_c: int
    pdg_d: int
    ma: float
    mb: float
    mc: float
    md: float


def two_two_scatter(Ea: float, ma: float, mb: float, mc: float, md: float
                    ) -> Tuple[float, float, float, float]:
    """CM frame kinematics for a projectile of lab-frame total energy Ea.

    Returns
    -------
    (s, Ec_cm, pc_cm, Ed_cm)
        Mandelstam s, the ejectile's CM frame total energy and momentum
        magnitude, and the residue's CM frame total energy.
    """
    s = ma * ma + mb * mb + 2.0 * mb * Ea
    sqrt_s = math.sqrt(s)

    Ec_cm = (s + mc * mc - md * md) / (2.0 * sqrt_s)
    pc_cm = real_sqrt(Ec_cm * Ec_cm - mc * mc)

    # Roundoff may push the residue below its rest mass
    Ed_cm = max(sqrt_s - Ec_cm, md)
    return s, Ec_cm, pc_cm, Ed_cm


def make_event_object(Ea: float, pc_cm: float, cos_theta_c_cm: float, phi_c_cm: float,
                      Ec_cm: float, Ed_cm: float, E_level: float, twoJ: int, parity,
                      system: TwoTwoSystem, reaction=None,
                      target_charge: Optional[int] = None,
                      residue_charge: Optional[int] = None):
    """Build a lab-frame Event from sampled CM frame ejectile angles.

    The ejectile and residue are created in the CM frame and boosted to the
    lab frame along +z with beta_z = pa / (Ea + mb). The projectile and target
    are recorded directly in the lab frame.
    """
    from .events import Event, ParticleRole
    from .particles import Particle

    sin_theta_c_cm = real_sqrt(1.0 - cos_theta_c_cm * cos_theta_c_cm)

    pc_cm_x = sin_theta_c_cm * math.cos(phi_c_cm) * pc_cm
    pc_cm_y = sin_theta_c_cm * math.sin(phi_c_cm) * pc_cm
    pc_cm_z = cos_theta_c_cm * pc_cm

    ma, mb, mc, md = system.ma, system.mb, system.mc, system.md
    pa = real_sqrt(Ea * Ea - ma * ma)

    # TODO: support projectile directions other than +z
    projectile = Particle(system.pdg_a, FourVector(Ea, 0.0, 0.0, pa), ma)
    target = Particle(system.pdg_b, FourVector(mb, 0.0, 0.0, 0.0), mb, charge=target_charge)

    ejectile_cm = FourVector(Ec_cm, pc_cm_x, pc_cm_y, pc_cm_z)
    residue_cm = FourVector(Ed_cm, -pc_cm_x, -pc_cm_y, -pc_cm_z)

    beta = np.array([0.0, 0.0, pa / (Ea + mb)], dtype=float)
    ejectile = Particle(system.pdg_c, ejectile_cm.boost(beta), mc)
    residue = Particle(system.pdg_d, residue_cm.boost(beta), md, charge=residue_charge)

    event = Event(E_level, twoJ=twoJ, parity=parity, reaction=reaction)
    event.add_initial_particle(projectile, ParticleRole.PROJECTILE)
    event.add_initial_particle(target, ParticleRole.TARGET)
    event.add_final_particle(ejectile, ParticleRole.EJECTILE)
    event.add_final_particle(residue, ParticleRole.RESIDUE)
    return event
