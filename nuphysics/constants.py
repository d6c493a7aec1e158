"""
Physical constants, PDG codes and unit factors.

Units: MeV, fm (natural units hbar = c = 1 unless stated otherwise).
"""

import math

# -----------------------------
# PDG particle codes
# -----------------------------
PHOTON = 22
ELECTRON = 11
POSITRON = -11
ELECTRON_NEUTRINO = 12
ELECTRON_ANTINEUTRINO = -12
MUON = 13
MUON_NEUTRINO = 14
MUON_ANTINEUTRINO = -14
TAU = 15
TAU_NEUTRINO = 16
TAU_ANTINEUTRINO = -16
DARK_MATTER = 17  # placeholder code for the experimental DM process
NEUTRON = 2112
PROTON = 2212
DEUTERON = 1000010020
TRITON = 1000010030
HELION = 1000020030
ALPHA = 1000020040

NEUTRINOS = (
    ELECTRON_NEUTRINO, ELECTRON_ANTINEUTRINO,
    MUON_NEUTRINO, MUON_ANTINEUTRINO,
    TAU_NEUTRINO, TAU_ANTINEUTRINO,
)

# Signals to rejection sampling that the PDF maximum must be searched for
UNKNOWN_MAX = math.inf

# -----------------------------
# Electroweak constants
# -----------------------------
GF = 1.16637e-11  # Fermi coupling constant (MeV^-2)
GF2 = GF * GF
VUD = 0.97427  # |V_ud|
VUD2 = VUD * VUD
SIN2_THETA_W = 0.23155  # effective weak mixing angle (2014 PDG)

# -----------------------------
# Electromagnetic / nuclear constants
# -----------------------------
ALPHA_EM = 7.2973525698e-3  # fine structure constant
HBAR_C = 197.3269718  # MeV * fm
HBAR_C2 = HBAR_C * HBAR_C
M_ELECTRON = 0.510998928  # MeV
M_PROTON = 938.272046  # MeV
M_NEUTRON = 939.565379  # MeV
R0 = 1.2  # fm, nuclear radius parameter for R = r0 * A^(1/3)

# -----------------------------
# Unit conversions
# -----------------------------
MICRO_AMU = 931.49410242e-6  # MeV per micro-amu
MB = 1.0 / 3.89379338e5  # MeV^-2 per mb
FM2_TO_MINUS40_CM2 = 1e14
HBAR_C2_CM2 = 3.89379338e-22  # MeV^2 * cm^2, converts MeV^-2 to cm^2

ONE_HALF = 0.5
ONE_THIRD = 1.0 / 3.0
TWO_PI = 2.0 * math.pi


def nuclear_radius_natural_units(A: int) -> float:
    """Approximate nuclear radius R = r0 * A^(1/3) expressed in MeV^-1."""
    return R0 * A ** ONE_THIRD / HBAR_C
