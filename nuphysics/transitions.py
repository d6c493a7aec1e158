"""
Electromagnetic transition physics for nuclear de-excitation.

- Parity: intrinsic parity with multiplication
- determine_gamma_transition_type: selection rules -> (type, multipolarity)
- gamma_strength_function: Brink-Axel Lorentzian f_XL(E_gamma)
- weisskopf_partial_decay_width: single-particle width estimate
- gamma_transmission_coefficient: T_XL = 2 pi f_XL E_gamma^(2l+1)

Energies in MeV, strength functions in MeV^-(2l+1).
"""

import math
from enum import Enum, IntEnum
from typing import Tuple

from . import constants as const
from .errors import PhysicsViolation


# Suppression applied for each extra unit of multipolarity
MULTIPOLE_SUPPRESSION = 8e-4

# Reference energy (MeV) used to normalize the M1 strength to the E1 one
_M1_REFERENCE_ENERGY = 7.0


class Parity(IntEnum):
    POSITIVE = 1
    NEGATIVE = -1

    def __mul__(self, other):
        if isinstance(other, Parity):
            return Parity(int(self) * int(other))
        return int(self) * other

    __rmul__ = __mul__

    def __neg__(self):
        return Parity(-int(self))

    def __str__(self):
        return "+" if self is Parity.POSITIVE else "-"

    @classmethod
    def from_char(cls, c: str) -> "Parity":
        if c == "+":
            return cls.POSITIVE
        if c == "-":
            return cls.NEGATIVE
        raise ValueError(f"Invalid parity character '{c}'")


class GammaType(Enum):
    ELECTRIC = "E"
    MAGNETIC = "M"

    def __str__(self):
        return self.value


def spin_parity_string(twoJ: int, parity: Parity) -> str:
    if twoJ % 2 == 0:
        return f"{twoJ // 2}{parity}"
    return f"{twoJ}/2{parity}"


def determine_gamma_transition_type(twoJi: int, Pi: Parity, twoJf: int, Pf: Parity
                                    ) -> Tuple[GammaType, int]:
    """
    Classify a gamma transition between two nuclear levels.

    Uses the lowest allowed multipolarity l = max(1, |Jf - Ji|). The
    transition is electric when Pi * Pf == (-1)^l and magnetic otherwise.

    Raises
    ------
    PhysicsViolation
        For 0 -> 0 transitions or an odd value of |twoJf - twoJi|.
    """
    if twoJi == 0 and twoJf == 0:
        raise PhysicsViolation("Gamma transitions between two J = 0 levels are forbidden")

    two_delta_J = abs(twoJf - twoJi)
    if two_delta_J % 2 != 0:
        raise PhysicsViolation(
            f"Odd change in two times the nuclear spin (twoJi = {twoJi}, twoJf = {twoJf}) "
            "cannot be carried away by a photon"
        )

    l = max(1, two_delta_J // 2)
    if int(Pi * Pf) == (-1) ** l:
        return GammaType.ELECTRIC, l
    return GammaType.MAGNETIC, l


# -----------------------------
# Strength functions
# -----------------------------
def _lorentzian(sigma: float, e: float, gamma: float, l: int, e_gamma: float) -> float:
    return (sigma * e_gamma ** (3 - 2 * l) * gamma ** 2
            / ((2 * l + 1) * math.pi ** 2
               * ((e_gamma ** 2 - e ** 2) ** 2 + e_gamma ** 2 * gamma ** 2)))


def _giant_resonance_parameters(Z: int, A: int, gamma_type: GammaType, l: int):
    """(energy, width, peak cross section) of the giant resonance, MeV / MeV / MeV^-2."""
    if gamma_type is GammaType.ELECTRIC:
        if l == 1:
            e = 31.2 * A ** (-const.ONE_THIRD) + 20.6 * A ** (-1.0 / 6.0)
            gamma = 0.026 * e ** 1.91
            sigma = 1.2 * 120 * (A - Z) * Z / (A * math.pi * gamma) * const.MB
            return e, gamma, sigma

        e = 63 * A ** (-const.ONE_THIRD)
        gamma = 6.11 - 0.012 * A
        sigma = 0.00014 * Z ** 2 * e / (A ** const.ONE_THIRD * gamma) * const.MB
        for _ in range(2, l):
            sigma *= MULTIPOLE_SUPPRESSION
        return e, gamma, sigma

    # Magnetic: fix the M1 strength at the reference energy relative to E1
    e7 = _M1_REFERENCE_ENERGY
    factor = gamma_strength_function(Z, A, GammaType.ELECTRIC, 1, e7) / (0.0588 * A ** 0.878)
    gamma = 4.0
    e = 41 * A ** (-const.ONE_THIRD)
    sigma = ((e7 ** 2 - e ** 2) ** 2 + e7 ** 2 * gamma ** 2) * 3 * math.pi ** 2 * factor / (e7 * gamma ** 2)
    for _ in range(1, l):
        sigma *= MULTIPOLE_SUPPRESSION
    return e, gamma, sigma


def gamma_strength_function(Z: int, A: int, gamma_type: GammaType, l: int, e_gamma: float) -> float:
    """Brink-Axel strength function f_XL(E_gamma) in MeV^-(2l+1)."""
    if l < 1:
        raise PhysicsViolation(f"Invalid multipolarity l = {l} for a gamma transition")
    if not isinstance(gamma_type, GammaType):
        raise PhysicsViolation(f"Unrecognized gamma transition type {gamma_type!r}")

    e, gamma, sigma = _giant_resonance_parameters(Z, A, gamma_type, l)
    return _lorentzian(sigma, e, gamma, l, e_gamma)


def gamma_transmission_coefficient(Z: int, A: int, gamma_type: GammaType, l: int,
                                   e_gamma: float) -> float:
    return const.TWO_PI * gamma_strength_function(Z, A, gamma_type, l, e_gamma) * e_gamma ** (2 * l + 1)


# -----------------------------
# Weisskopf estimates
# -----------------------------
def double_factorial(n: int) -> int:
    result = 1
    while n > 1:
        result *= n
        n -= 2
    return result


def weisskopf_partial_decay_width(A: int, gamma_type: GammaType, l: int, e_gamma: float) -> float:
    """
    Weisskopf single-particle estimate of a gamma partial width (MeV).

    Electric widths scale as (R E_gamma / hbar c)^(2l) E_gamma; magnetic
    widths are the electric ones times 10 (hbar c / (m_p R))^2.
    """
    if l < 1:
        raise PhysicsViolation(f"Invalid multipolarity l = {l} for a gamma transition")

    lam = (l + 1) / (l * double_factorial(2 * l + 1) ** 2) * (3.0 / (l + 3)) ** 2
    R = const.R0 * A ** const.ONE_THIRD  # fm
    width_el = 2 * const.ALPHA_EM * lam * (R * e_gamma / const.HBAR_C) ** (2 * l) * e_gamma

    if gamma_type is GammaType.ELECTRIC:
        return width_el
    if gamma_type is GammaType.MAGNETIC:
        return 10 * width_el * (const.HBAR_C / (const.M_PROTON * R)) ** 2
    raise PhysicsViolation(f"Unrecognized gamma transition type {gamma_type!r}")
