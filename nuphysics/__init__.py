"""
NuScatterX physics package: two-two scattering of neutrinos on nuclei and
atomic electrons.

Usage:
    from nuphysics import Generator, MassTable, MonoSource, Target
    from nuphysics.data import ar40_cc_table, default_structure_db
    from nuphysics.reactions import ProcessType, make_nuclear_reactions

    reactions = make_nuclear_reactions(ProcessType.NEUTRINO_CC, 1000180400,
                                       ar40_cc_table(), MassTable(), projectiles=[12])
    gen = Generator(seed=123, source=MonoSource(12, 15.0), target=Target.single(1000180400),
                    reactions=reactions, structure_db=default_structure_db())
    event = gen.create_event()
"""

from .config import GeneratorConfig
from .errors import ConfigurationMismatch, KinematicInfeasibility, PhysicsViolation, ScatterError
from .events import Event, ParticleRole
from .generator import Generator, simulate_batch
from .kinematics import FourVector
from .mass_table import MassTable
from .particles import Particle
from .source import GridSource, HistogramSource, MonoSource, NeutrinoSource
from .structure import StructureDatabase
from .target import Target

__version__ = "0.1.0"

__all__ = [
    "GeneratorConfig",
    "ScatterError",
    "PhysicsViolation",
    "KinematicInfeasibility",
    "ConfigurationMismatch",
    "Event",
    "ParticleRole",
    "Generator",
    "simulate_batch",
    "FourVector",
    "MassTable",
    "Particle",
    "NeutrinoSource",
    "MonoSource",
    "HistogramSource",
    "GridSource",
    "StructureDatabase",
    "Target",
]
