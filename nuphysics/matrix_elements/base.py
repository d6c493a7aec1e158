from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..transitions import Parity


class TransitionType(Enum):
    FERMI = "F"
    GAMOW_TELLER = "GT"

    @classmethod
    def from_code(cls, code) -> "TransitionType":
        """Accept 'F'/'GT' (any case) or the integer codes 0 (Fermi) and 1 (Gamow-Teller)."""
        if isinstance(code, TransitionType):
            return code
        if code == 0:
            return cls.FERMI
        if code == 1:
            return cls.GAMOW_TELLER
        key = str(code).strip().upper()
        for t in cls:
            if key in (t.value, t.name):
                return t
        raise ValueError(f"Unrecognized matrix element type {code!r}")


@dataclass(frozen=True)
class Level:
    """A discrete nuclear level of the residue."""

    energy: float  # excitation energy (MeV)
    twoJ: int
    parity: Parity


class MatrixElement(ABC):
    """
    Reduced nuclear matrix element for a transition to one residue level.

    ``level`` is None for continuum entries, in which case the residue
    spin-parity is assigned from selection rules when an event is built.
    All implementations must be pure functions (no RNG).
    """

    type: TransitionType
    name: str = "abstract"

    def __init__(self, level_energy: float, strength: float, level: Optional[Level] = None):
        if strength < 0.0:
            raise ValueError(f"Matrix element strength must be non-negative, got {strength}")
        self.level_energy = level_energy
        self.strength = strength
        self.level = level

    @abstractmethod
    def cos_theta_pdf(self, cos_theta: float, beta_c_cm: float) -> float:
        """
        Normalized angular distribution of the ejectile in the CM frame.

        Args:
            cos_theta: CM frame scattering cosine
            beta_c_cm: CM frame ejectile speed

        Returns:
            Probability density on [-1, 1]
        """

    @abstractmethod
    def max_cos_theta_pdf(self, beta_c_cm: float) -> float:
        """Largest value of cos_theta_pdf on [-1, 1] for this ejectile speed."""

    def __repr__(self):
        return (
            f"{type(self).__name__}(level_energy={self.level_energy:.4f} MeV, "
            f"strength={self.strength:.6g})"
        )
