from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, Tuple

import numpy as np

from .. import constants as const
from ..errors import ConfigurationMismatch, PhysicsViolation
from ..kinematics import TwoTwoSystem, make_event_object, two_two_scatter
from ..particles import ELEMENT_SYMBOLS, get_particle_A, get_particle_Z


class ProcessType(IntEnum):
    NEUTRINO_CC = 0  # nuclear matrix elements contain t-
    ANTINEUTRINO_CC = 1  # t+
    NC = 2  # t3
    NU_ELECTRON_ELASTIC = 3
    DM = 4  # fermionic dark matter absorption (experimental)


_PROCESS_NAMES = {
    ProcessType.NEUTRINO_CC: "ν CC",
    ProcessType.ANTINEUTRINO_CC: "ν̄ CC",
    ProcessType.NC: "NC",
    ProcessType.NU_ELECTRON_ELASTIC: "ES",
    ProcessType.DM: "DM",
}

_PROJECTILES = {
    ProcessType.NEUTRINO_CC: (const.ELECTRON_NEUTRINO, const.MUON_NEUTRINO, const.TAU_NEUTRINO),
    ProcessType.ANTINEUTRINO_CC: (const.ELECTRON_ANTINEUTRINO, const.MUON_ANTINEUTRINO,
                                  const.TAU_ANTINEUTRINO),
    ProcessType.NC: const.NEUTRINOS,
    ProcessType.NU_ELECTRON_ELASTIC: const.NEUTRINOS,
    ProcessType.DM: (const.DARK_MATTER,),
}


def process_type_to_string(process: ProcessType) -> str:
    try:
        return _PROCESS_NAMES[ProcessType(process)]
    except (KeyError, ValueError):
        raise PhysicsViolation(f"Unrecognized process type {process!r}") from None


def get_projectiles(process: ProcessType) -> Tuple[int, ...]:
    """PDG codes of the projectiles that take part in a process."""
    try:
        return _PROJECTILES[ProcessType(process)]
    except (KeyError, ValueError):
        raise PhysicsViolation(f"Unrecognized process type {process!r}") from None


def get_ejectile_pdg(pdg_a: int, process: ProcessType) -> int:
    """
    Ejectile PDG code for a projectile and process.

    CC turns a neutrino into its charged lepton (12 -> 11), anti-CC an
    antineutrino into its antilepton (-12 -> -11), and NC/ES leave the
    projectile unchanged. DM absorption emits an electron.
    """
    if pdg_a not in get_projectiles(process):
        raise ConfigurationMismatch(
            f"Projectile {pdg_a} does not participate in {process_type_to_string(process)} reactions"
        )
    if process == ProcessType.NEUTRINO_CC:
        return pdg_a - 1
    if process == ProcessType.ANTINEUTRINO_CC:
        return pdg_a + 1
    if process == ProcessType.DM:
        return const.ELECTRON
    return pdg_a


@dataclass(frozen=True)
class TargetAtom:
    """A neutral atom identified by the PDG code of its nucleus."""

    pdg: int

    def __post_init__(self):
        if self.pdg <= 1000000000 or self.Z < 1 or self.A < self.Z:
            raise ConfigurationMismatch(f"Invalid nuclear PDG code {self.pdg} for a target atom")

    @property
    def Z(self) -> int:
        return get_particle_Z(self.pdg)

    @property
    def A(self) -> int:
        return get_particle_A(self.pdg)

    def __str__(self):
        return f"{self.A}{ELEMENT_SYMBOLS[self.Z]}"


class Reaction(ABC):
    """
    Abstract two-two scattering reaction a + b -> c + d.

    The projectile (a) moves along +z with lab-frame kinetic energy KEa
    toward the target (b), which is at rest. All particle masses are fixed
    at construction; the residue mass for a particular excited level is
    computed per event and passed along explicitly.
    """

    pdg_a: int
    pdg_b: int
    pdg_c: int
    pdg_d: int
    ma: float
    mb: float
    mc: float
    md_gs: float
    process_type: ProcessType
    description: str = ""

    @abstractmethod
    def total_xs(self, pdg_a: int, KEa: float) -> float:
        """Total cross section (MeV^-2); zero if pdg_a does not match the projectile."""

    @abstractmethod
    def diff_xs(self, pdg_a: int, KEa: float, cos_theta_c_cm: float) -> float:
        """dsigma/dcos(theta_c^CM) (MeV^-2); zero if pdg_a does not match the projectile."""

    @abstractmethod
    def create_event(self, pdg_a: int, KEa: float, rng: np.random.Generator, structure_db=None):
        """Sample and build an Event. Raises ConfigurationMismatch if pdg_a does not match."""

    @abstractmethod
    def threshold_kinetic_energy(self) -> float:
        """Smallest projectile KE (MeV) that reaches the residue ground state."""

    @abstractmethod
    def atomic_target(self) -> TargetAtom:
        """The atom struck by the projectile (for electron reactions, the atom owning the electron)."""

    # -------------------- Shared kinematics --------------------

    def system(self, md: Optional[float] = None) -> TwoTwoSystem:
        return TwoTwoSystem(self.pdg_a, self.pdg_b, self.pdg_c, self.pdg_d,
                            self.ma, self.mb, self.mc, self.md_gs if md is None else md)

    def two_two_scatter(self, KEa: float, md: Optional[float] = None):
        """CM frame kinematics (s, Ec_cm, pc_cm, Ed_cm) for a residue of mass md."""
        md = self.md_gs if md is None else md
        return two_two_scatter(KEa + self.ma, self.ma, self.mb, self.mc, md)

    def make_event_object(self, KEa: float, pc_cm: float, cos_theta_c_cm: float, phi_c_cm: float,
                          Ec_cm: float, Ed_cm: float, E_level: float, twoJ: int, parity,
                          md: Optional[float] = None, target_charge: Optional[int] = None,
                          residue_charge: Optional[int] = None):
        return make_event_object(KEa + self.ma, pc_cm, cos_theta_c_cm, phi_c_cm, Ec_cm, Ed_cm,
                                 E_level, twoJ, parity, self.system(md), reaction=self,
                                 target_charge=target_charge, residue_charge=residue_charge)

    def _check_projectile(self, pdg_a: int):
        if pdg_a != self.pdg_a:
            raise ConfigurationMismatch(
                f"Could not create this event. The requested projectile PDG code {pdg_a} "
                f"does not match the projectile {self.pdg_a} of {self.description}"
            )

    def __repr__(self):
        return f"{type(self).__name__}({self.description})"
