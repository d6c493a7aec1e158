"""
Rest-mass lookup for particles and neutral atoms.

A MassTable is an ordinary object: build one (optionally from a SQLite
file) and hand it to every reaction that needs masses. Particle masses are
stored in MeV, atomic masses in micro-amu as they appear in mass
evaluations, and converted to MeV on lookup.
"""

import logging
import math
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Optional

from . import constants as const
from .particles import get_nucleus_pdg, get_particle_A, get_particle_Z

logger = logging.getLogger(__name__)

# Particle masses (MeV)
DEFAULT_PARTICLE_MASSES: Dict[int, float] = {
    const.PHOTON: 0.0,
    const.ELECTRON: const.M_ELECTRON,
    const.ELECTRON_NEUTRINO: 0.0,
    const.MUON: 105.6583715,
    const.MUON_NEUTRINO: 0.0,
    const.TAU: 1776.82,
    const.TAU_NEUTRINO: 0.0,
    const.DARK_MATTER: 10.0,
    const.NEUTRON: const.M_NEUTRON,
    const.PROTON: const.M_PROTON,
    const.DEUTERON: 1875.612859,
    const.TRITON: 2808.921005,
    const.HELION: 2808.391482,
    const.ALPHA: 3727.379240,
}

# Atomic masses (micro-amu), keyed by nucleus PDG code
DEFAULT_ATOMIC_MASSES: Dict[int, float] = {
    1000010010: 1007825.03207,   # 1H
    1000010020: 2014101.77812,   # 2H
    1000010030: 3016049.2777,    # 3H
    1000020030: 3016029.3191,    # 3He
    1000020040: 4002603.25415,   # 4He
    1000050120: 12014352.6,      # 12B
    1000060120: 12000000.0,      # 12C
    1000070120: 12018613.2,      # 12N
    1000070160: 16006101.7,      # 16N
    1000080160: 15994914.61956,  # 16O
    1000090160: 16011466.0,      # 16F
    1000170400: 39970415.5,      # 40Cl
    1000180400: 39962383.1237,   # 40Ar
    1000190400: 39963998.166,    # 40K
    1000200400: 39962590.98,     # 40Ca
    1000310760: 75928827.6,      # 76Ga
    1000320760: 75921402.726,    # 76Ge
    1000330760: 75922392.0,      # 76As
}

# Liquid drop (semi-empirical mass formula) coefficients, MeV
_LD_VOLUME = 15.75
_LD_SURFACE = 17.8
_LD_COULOMB = 0.711
_LD_ASYMMETRY = 23.7
_LD_PAIRING = 11.18

_M_HYDROGEN_MICRO_AMU = 1007825.03207
_M_NEUTRON_MICRO_AMU = 1008664.91585


class MassTable:
    """Particle and atomic mass lookups in MeV."""

    def __init__(self, particle_masses: Optional[Dict[int, float]] = None,
                 atomic_masses: Optional[Dict[int, float]] = None):
        self._particle_masses = dict(DEFAULT_PARTICLE_MASSES)
        self._atomic_masses = dict(DEFAULT_ATOMIC_MASSES)
        if particle_masses:
            self._particle_masses.update(particle_masses)
        if atomic_masses:
            self._atomic_masses.update(atomic_masses)

    # -------------------- SQLite source --------------------

    @staticmethod
    @contextmanager
    def _connect(path: Path):
        conn = sqlite3.connect(path)
        try:
            yield conn
        finally:
            conn.close()

    @classmethod
    def from_sqlite(cls, path) -> "MassTable":
        """
        Load masses from a SQLite file on top of the built-in values.

        Expected tables:
            particle_masses(pdg INTEGER, mass_mev REAL)
            atomic_masses(pdg INTEGER, mass_micro_amu REAL)
        Either table may be absent.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Mass table database not found at {path}")

        particle_masses: Dict[int, float] = {}
        atomic_masses: Dict[int, float] = {}
        with cls._connect(path) as conn:
            cur = conn.cursor()
            cur.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
            tables = {row[0] for row in cur.fetchall()}

            if "particle_masses" in tables:
                cur.execute("SELECT pdg, mass_mev FROM particle_masses")
                particle_masses = {int(pdg): float(m) for pdg, m in cur.fetchall()}
            if "atomic_masses" in tables:
                cur.execute("SELECT pdg, mass_micro_amu FROM atomic_masses")
                atomic_masses = {int(pdg): float(m) for pdg, m in cur.fetchall()}

        logger.info(
            f"Loaded {len(particle_masses)} particle and {len(atomic_masses)} "
            f"atomic masses from {path}"
        )
        return cls(particle_masses, atomic_masses)

    # -------------------- Lookups --------------------

    def get_particle_mass(self, pdg: int) -> float:
        """Rest mass (MeV). Antiparticles share the particle's mass."""
        try:
            return self._particle_masses[abs(pdg)]
        except KeyError:
            raise KeyError(f"Particle mass not found for PDG code {pdg}") from None

    def has_atomic_mass(self, pdg: int) -> bool:
        return pdg in self._atomic_masses

    def get_atomic_mass(self, pdg: int, theory_ok: bool = True) -> float:
        """Mass (MeV) of the neutral atom whose nucleus has this PDG code."""
        if pdg == const.NEUTRON:
            return self.get_particle_mass(const.NEUTRON)
        if pdg == const.PROTON:
            pdg = 1000010010  # hydrogen atom
        try:
            return self._atomic_masses[pdg] * const.MICRO_AMU
        except KeyError:
            if not theory_ok:
                raise KeyError(f"Atomic mass not found for PDG code {pdg}") from None
        Z = get_particle_Z(pdg)
        A = get_particle_A(pdg)
        logger.debug(f"Using liquid drop model mass for Z={Z}, A={A}")
        return self.liquid_drop_model_atomic_mass(Z, A)

    def get_atomic_mass_ZA(self, Z: int, A: int, theory_ok: bool = True) -> float:
        return self.get_atomic_mass(get_nucleus_pdg(Z, A), theory_ok)

    def get_binding_energy(self, Z: int, A: int, theory_ok: bool = True) -> float:
        """Nuclear binding energy (MeV) from atomic masses."""
        N = A - Z
        m_atom = self.get_atomic_mass_ZA(Z, A, theory_ok)
        return (Z * _M_HYDROGEN_MICRO_AMU + N * _M_NEUTRON_MICRO_AMU) * const.MICRO_AMU - m_atom

    def get_mass_excess(self, Z: int, A: int, theory_ok: bool = True) -> float:
        return self.get_atomic_mass_ZA(Z, A, theory_ok) - A * 1e6 * const.MICRO_AMU

    def get_fragment_separation_energy(self, Z: int, A: int, fragment_pdg: int,
                                       theory_ok: bool = True) -> float:
        """Energy (MeV) needed to remove a nuclear fragment from the nucleus (Z, A)."""
        Zf = get_particle_Z(fragment_pdg)
        Af = get_particle_A(fragment_pdg)
        if Zf > Z or Af >= A:
            raise ValueError(f"Fragment {fragment_pdg} cannot be emitted by Z={Z}, A={A}")

        if fragment_pdg == const.NEUTRON:
            m_frag = self.get_particle_mass(const.NEUTRON)
        else:
            m_frag = self.get_atomic_mass_ZA(Zf, Af, theory_ok)
        m_daughter = self.get_atomic_mass_ZA(Z - Zf, A - Af, theory_ok)
        return m_daughter + m_frag - self.get_atomic_mass_ZA(Z, A, theory_ok)

    # -------------------- Liquid drop model --------------------

    @staticmethod
    def liquid_drop_model_binding_energy(Z: int, A: int) -> float:
        if A <= 0 or Z < 0 or Z > A:
            raise ValueError(f"Invalid nucleus Z={Z}, A={A}")
        N = A - Z
        B = (_LD_VOLUME * A
             - _LD_SURFACE * A ** (2.0 / 3.0)
             - _LD_COULOMB * Z * (Z - 1) / A ** const.ONE_THIRD
             - _LD_ASYMMETRY * (N - Z) ** 2 / A)
        if Z % 2 == 0 and N % 2 == 0:
            B += _LD_PAIRING / math.sqrt(A)
        elif Z % 2 == 1 and N % 2 == 1:
            B -= _LD_PAIRING / math.sqrt(A)
        return B

    def liquid_drop_model_atomic_mass(self, Z: int, A: int) -> float:
        """Theoretical atomic mass (MeV) from the semi-empirical mass formula."""
        N = A - Z
        m_free = (Z * _M_HYDROGEN_MICRO_AMU + N * _M_NEUTRON_MICRO_AMU) * const.MICRO_AMU
        return m_free - self.liquid_drop_model_binding_energy(Z, A)

    def liquid_drop_model_mass_excess(self, Z: int, A: int) -> float:
        return self.liquid_drop_model_atomic_mass(Z, A) - A * 1e6 * const.MICRO_AMU
