from __future__ import annotations
import math
from enum import Enum
from typing import Dict, List, Optional, Tuple, Any
import numpy as np

from .kinematics import FourVector
from .particles import Particle, get_particle_symbol


class ParticleRole(Enum):
    PROJECTILE = "projectile"
    TARGET = "target"
    EJECTILE = "ejectile"
    RESIDUE = "residue"


class Event:
    """
    A single two-two scattering event a + b -> c + d.

    Holds the residue excitation energy and spin-parity, a non-owning
    reference to the Reaction that produced it, and the initial and final
    particles in insertion order, each tagged by its role.
    """

    def __init__(self, E_level: float, twoJ: int = 0, parity=None, reaction=None):
        self.E_level = E_level
        self.twoJ = twoJ
        self.parity = parity
        self.reaction = reaction
        self._initial: List[Tuple[ParticleRole, Particle]] = []
        self._final: List[Tuple[ParticleRole, Particle]] = []

    def add_initial_particle(self, particle: Particle, role: ParticleRole):
        self._initial.append((role, particle))

    def add_final_particle(self, particle: Particle, role: ParticleRole):
        self._final.append((role, particle))

    @property
    def initial_particles(self) -> List[Particle]:
        return [p for _, p in self._initial]

    @property
    def final_particles(self) -> List[Particle]:
        return [p for _, p in self._final]

    def _find(self, role: ParticleRole) -> Optional[Particle]:
        for r, p in self._initial + self._final:
            if r is role:
                return p
        return None

    @property
    def projectile(self) -> Optional[Particle]:
        return self._find(ParticleRole.PROJECTILE)

    @property
    def target(self) -> Optional[Particle]:
        return self._find(ParticleRole.TARGET)

    @property
    def ejectile(self) -> Optional[Particle]:
        return self._find(ParticleRole.EJECTILE)

    @property
    def residue(self) -> Optional[Particle]:
        return self._find(ParticleRole.RESIDUE)

    def initial_four_momentum(self) -> FourVector:
        total = FourVector(0.0, 0.0, 0.0, 0.0)
        for p in self.initial_particles:
            total = total + p.fourvec
        return total

    def final_four_momentum(self) -> FourVector:
        total = FourVector(0.0, 0.0, 0.0, 0.0)
        for p in self.final_particles:
            total = total + p.fourvec
        return total

    def invariant_mass(self) -> float:
        """Invariant mass of the final state, sqrt(s) for a two-two event."""
        return self.final_four_momentum().mass()

    def total_charge(self, initial: bool = True) -> int:
        particles = self.initial_particles if initial else self.final_particles
        return sum(p.charge for p in particles)

    def process_tag(self) -> str:
        lhs = " + ".join(get_particle_symbol(p.pdg) for p in self.initial_particles)
        rhs = " + ".join(get_particle_symbol(p.pdg) for p in self.final_particles)
        return f"{lhs} → {rhs}"

    def to_dict(self) -> Dict[str, Any]:
        """Plain-data snapshot of the event, handy for comparisons and printing."""
        def _pack(entries):
            return [
                {
                    "role": role.value,
                    "pdg": p.pdg,
                    "mass": p.mass,
                    "charge": p.charge,
                    "p4": p.fourvec.to_tuple(),
                }
                for role, p in entries
            ]

        return {
            "E_level": self.E_level,
            "twoJ": self.twoJ,
            "parity": None if self.parity is None else int(self.parity),
            "initial": _pack(self._initial),
            "final": _pack(self._final),
        }

    def __repr__(self):
        ej = self.ejectile
        ke = ej.kinetic_energy if ej is not None else math.nan
        return (
            f"Event({self.process_tag()}, E_level={self.E_level:.4f} MeV, "
            f"twoJ={self.twoJ}, KE_c={ke:.4f} MeV)"
        )


def momentum_imbalance(event: Event) -> np.ndarray:
    """Initial minus final four-momentum as an (E, px, py, pz) array."""
    diff = event.initial_four_momentum() - event.final_four_momentum()
    return np.array(diff.to_tuple(), dtype=float)
