from __future__ import annotations
from typing import List, Optional

from . import constants as const
from .kinematics import FourVector

# Relative tolerance on E^2 - |p|^2 - m^2 at construction
MASS_SHELL_TOLERANCE = 1e-6

ELEMENT_SYMBOLS = (
    "Nn", "H", "He", "Li", "Be", "B", "C", "N", "O", "F", "Ne",
    "Na", "Mg", "Al", "Si", "P", "S", "Cl", "Ar", "K", "Ca",
    "Sc", "Ti", "V", "Cr", "Mn", "Fe", "Co", "Ni", "Cu", "Zn",
    "Ga", "Ge", "As", "Se", "Br", "Kr", "Rb", "Sr", "Y", "Zr",
    "Nb", "Mo", "Tc", "Ru", "Rh", "Pd", "Ag", "Cd", "In", "Sn",
    "Sb", "Te", "I", "Xe", "Cs", "Ba", "La", "Ce", "Pr", "Nd",
    "Pm", "Sm", "Eu", "Gd", "Tb", "Dy", "Ho", "Er", "Tm", "Yb",
    "Lu", "Hf", "Ta", "W", "Re", "Os", "Ir", "Pt", "Au", "Hg",
    "Tl", "Pb", "Bi", "Po", "At", "Rn", "Fr", "Ra", "Ac", "Th",
    "Pa", "U", "Np", "Pu", "Am", "Cm", "Bk", "Cf", "Es", "Fm",
    "Md", "No", "Lr", "Rf", "Db", "Sg", "Bh", "Hs", "Mt", "Ds",
    "Rg", "Cn", "Nh", "Fl", "Mc", "Lv", "Ts", "Og",
)

_PARTICLE_SYMBOLS = {
    11: "e",
    12: "νe",
    13: "μ",
    14: "νμ",
    15: "τ",
    16: "ντ",
    17: "X",
    22: "γ",
    2112: "n",
    2212: "p",
    1000010020: "d",
    1000010030: "t",
    1000020030: "h",
    1000020040: "α",
}

# Charges of particles (antiparticles flip the sign)
_PARTICLE_CHARGES = {
    11: -1, 12: 0, 13: -1, 14: 0, 15: -1, 16: 0,
    17: 0, 22: 0, 2112: 0, 2212: 1,
}


# -------------------- PDG helpers --------------------

def is_ion(pdg: int) -> bool:
    return 1000000000 < pdg < 2000000000


def get_particle_Z(pdg: int) -> int:
    if pdg == const.PROTON:
        return 1
    if pdg == const.NEUTRON:
        return 0
    if pdg > 1000000000:
        return (pdg % 10000000) // 10000
    return 0


def get_particle_A(pdg: int) -> int:
    if pdg in (const.PROTON, const.NEUTRON):
        return 1
    if pdg > 1000000000:
        return (pdg % 10000) // 10
    return 0


def get_nucleus_pdg(Z: int, A: int) -> int:
    """PDG code for a ground-state nucleus with atomic number Z and mass number A."""
    if Z == 0 and A == 1:
        return const.NEUTRON
    if Z == 1 and A == 1:
        return const.PROTON
    return 1000000000 + 10000 * Z + 10 * A


def get_particle_charge(pdg: int) -> int:
    """Electric charge in units of e. Nuclear codes are treated as bare nuclei."""
    if pdg > 1000000000:
        return (pdg % 10000000) // 10000
    try:
        charge = _PARTICLE_CHARGES[abs(pdg)]
    except KeyError:
        raise ValueError(f"No charge known for PDG code {pdg}") from None
    return -charge if pdg < 0 else charge


def get_particle_symbol(pdg: int) -> str:
    if pdg > 1000000000 and pdg not in _PARTICLE_SYMBOLS:
        return f"{get_particle_A(pdg)}{ELEMENT_SYMBOLS[get_particle_Z(pdg)]}"
    charge = get_particle_charge(pdg)
    symbol = _PARTICLE_SYMBOLS[abs(pdg)]
    if charge < 0:
        symbol += "⁻"
    elif charge > 0:
        symbol += "⁺"
    elif pdg < 0:
        symbol = "anti-" + symbol
    return symbol


# -------------------- Particle --------------------

class Particle:
    """
    A particle or nucleus with a lab-frame four-momentum.

    Decay products are attached with add_child() and are owned by this
    particle, so the children of an event's particles always form a tree.
    """

    def __init__(self, pdg: int, fourvec: FourVector, mass: float, charge: Optional[int] = None):
        self.pdg = pdg
        self.fourvec = fourvec
        self.mass = mass
        self.charge = get_particle_charge(pdg) if charge is None else charge
        self.children: List[Particle] = []

        m2 = fourvec.E ** 2 - fourvec.momentum() ** 2
        scale = max(fourvec.E ** 2, 1.0)
        if abs(m2 - mass * mass) > MASS_SHELL_TOLERANCE * scale:
            raise ValueError(
                f"Particle {pdg} is off shell: E^2 - p^2 = {m2:.9g} MeV^2 "
                f"but m^2 = {mass * mass:.9g} MeV^2"
            )

    @classmethod
    def at_rest(cls, pdg: int, mass: float, charge: Optional[int] = None) -> "Particle":
        return cls(pdg, FourVector(mass, 0.0, 0.0, 0.0), mass, charge)

    @property
    def total_energy(self) -> float:
        return self.fourvec.E

    @property
    def kinetic_energy(self) -> float:
        return max(self.fourvec.E - self.mass, 0.0)

    def momentum(self) -> float:
        return self.fourvec.momentum()

    def add_child(self, child: "Particle"):
        if child is self or self in child.descendants():
            raise ValueError("A particle cannot be its own descendant")
        self.children.append(child)

    def descendants(self) -> List["Particle"]:
        found = []
        for c in self.children:
            found.append(c)
            found.extend(c.descendants())
        return found

    def __repr__(self):
        return (
            f"Particle(pdg={self.pdg}, mass={self.mass:.6f} MeV, "
            f"charge={self.charge:+d}e, fv={self.fourvec})"
        )
