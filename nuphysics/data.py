"""
Small built-in nuclear data sets for demonstrations and tests.

The 40Ar charged-current table is an approximate, rounded rendition of
published B(F) and B(GT) values for 40Ar -> 40K; it is good enough to
exercise the generator but should be replaced by a real structure
evaluation for physics work.
"""

from . import constants as const
from .matrix_elements import Level, MatrixElementTable
from .structure import StructureDatabase, spin_cutoff_level_density
from .transitions import Parity

AR40 = 1000180400
K40 = 1000190400

# Discrete 40K levels: (Ex in MeV, twoJ, parity)
K40_LEVELS = (
    Level(0.0, 8, Parity.NEGATIVE),
    Level(0.02989, 6, Parity.NEGATIVE),
    Level(0.80014, 4, Parity.NEGATIVE),
    Level(0.89128, 10, Parity.NEGATIVE),
    Level(2.28960, 2, Parity.POSITIVE),
    Level(2.73000, 2, Parity.POSITIVE),
    Level(3.11000, 2, Parity.POSITIVE),
    Level(3.79800, 2, Parity.POSITIVE),
    Level(4.38350, 0, Parity.POSITIVE),
)

# (Ex in MeV, transition type, strength)
AR40_CC_ROWS = (
    (2.28960, "GT", 0.90),
    (2.73000, "GT", 1.50),
    (3.11000, "GT", 0.87),
    (3.79800, "GT", 0.50),
    (4.38350, "F", 4.00),
    (4.79000, "GT", 0.28),
    (5.33000, "GT", 0.22),
    (6.10000, "GT", 0.33),
    (7.22000, "GT", 0.24),
)

# Ground-state twoJ and parity
GS_SPIN_PARITIES = {
    const.PROTON: (1, Parity.POSITIVE),
    const.NEUTRON: (1, Parity.POSITIVE),
    1000010010: (1, Parity.POSITIVE),
    1000010020: (2, Parity.POSITIVE),
    1000020040: (0, Parity.POSITIVE),
    1000050120: (2, Parity.POSITIVE),
    1000060120: (0, Parity.POSITIVE),
    1000070120: (2, Parity.POSITIVE),
    1000070160: (4, Parity.NEGATIVE),
    1000080160: (0, Parity.POSITIVE),
    1000090160: (0, Parity.NEGATIVE),
    1000170400: (4, Parity.NEGATIVE),
    AR40: (0, Parity.POSITIVE),
    K40: (8, Parity.NEGATIVE),
    1000200400: (0, Parity.POSITIVE),
    1000320760: (0, Parity.POSITIVE),
    1000330760: (4, Parity.NEGATIVE),
}


def ar40_cc_table() -> MatrixElementTable:
    """Approximate 40Ar(nu_e, e-)40K* matrix elements."""
    return MatrixElementTable.from_rows(AR40_CC_ROWS, levels=K40_LEVELS)


def default_structure_db(spin_cutoff: float = 3.0) -> StructureDatabase:
    """StructureDatabase with the built-in ground states and a spin-cutoff level density for 40K."""
    db = StructureDatabase()
    for pdg, (twoJ, parity) in GS_SPIN_PARITIES.items():
        db.set_gs_spin_parity(pdg, twoJ, parity)
    db.set_level_density_model(K40, spin_cutoff_level_density(spin_cutoff))
    return db
