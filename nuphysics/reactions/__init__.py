"""
Two-two scattering reactions and helpers that build them.

Usage:
    from nuphysics.reactions import make_nuclear_reactions, ProcessType

    reactions = make_nuclear_reactions(ProcessType.NEUTRINO_CC, 1000180400, table, mass_table)
    xs = reactions[0].total_xs(12, 10.0)
"""
from typing import Iterable, List, Optional

from ..mass_table import MassTable
from ..matrix_elements import MatrixElementTable, register
from .base import (
    ProcessType,
    Reaction,
    TargetAtom,
    get_ejectile_pdg,
    get_projectiles,
    process_type_to_string,
)
from .electron import ElectronReaction
from .nuclear import DEFAULT_COULOMB_MODE, CoulombMode, NuclearReaction


def make_nuclear_reactions(process: ProcessType, pdg_b: int, table: MatrixElementTable,
                           mass_table: MassTable, coulomb_mode: CoulombMode = DEFAULT_COULOMB_MODE,
                           projectiles: Optional[Iterable[int]] = None,
                           **kwargs) -> List[NuclearReaction]:
    """
    One NuclearReaction per projectile of ``process``, all sharing ``table``.

    The table is also registered under (pdg_b, process) so later lookups
    return the same object.
    """
    register(pdg_b, ProcessType(process), table)
    pdgs = get_projectiles(process) if projectiles is None else tuple(projectiles)
    return [
        NuclearReaction(process, pdg_a, pdg_b, table, mass_table, coulomb_mode, **kwargs)
        for pdg_a in pdgs
    ]


def make_electron_reactions(target_atom_pdg: int, mass_table: MassTable,
                            projectiles: Optional[Iterable[int]] = None) -> List[ElectronReaction]:
    pdgs = get_projectiles(ProcessType.NU_ELECTRON_ELASTIC) if projectiles is None else tuple(projectiles)
    return [ElectronReaction(pdg_a, target_atom_pdg, mass_table) for pdg_a in pdgs]


__all__ = [
    "ProcessType",
    "Reaction",
    "TargetAtom",
    "NuclearReaction",
    "ElectronReaction",
    "CoulombMode",
    "DEFAULT_COULOMB_MODE",
    "get_ejectile_pdg",
    "get_projectiles",
    "process_type_to_string",
    "make_nuclear_reactions",
    "make_electron_reactions",
]
