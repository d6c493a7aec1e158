import logging
from typing import Dict, Iterable, List, Sequence

from .errors import ConfigurationMismatch
from .reactions.base import TargetAtom

logger = logging.getLogger(__name__)


class Target:
    """
    A mixture of neutral atoms with atom (number) fractions.

    Fractions are normalized to sum to one at construction.
    """

    def __init__(self, nuclides: Sequence[int], atom_fractions: Sequence[float]):
        if len(nuclides) == 0:
            raise ConfigurationMismatch("A target needs at least one nuclide")
        if len(nuclides) != len(atom_fractions):
            raise ConfigurationMismatch(
                f"Target has {len(nuclides)} nuclides but {len(atom_fractions)} atom fractions"
            )
        if len(set(nuclides)) != len(nuclides):
            raise ConfigurationMismatch("Duplicate nuclides in target definition")
        if any(f < 0.0 for f in atom_fractions):
            raise ConfigurationMismatch("Target atom fractions must be non-negative")

        total = float(sum(atom_fractions))
        if not total > 0.0:
            raise ConfigurationMismatch("Target atom fractions sum to zero")
        if abs(total - 1.0) > 1e-8:
            logger.info(f"Renormalizing target atom fractions (sum was {total})")

        self._fractions: Dict[TargetAtom, float] = {
            TargetAtom(int(pdg)): float(f) / total for pdg, f in zip(nuclides, atom_fractions)
        }

    @classmethod
    def single(cls, pdg: int) -> "Target":
        return cls([pdg], [1.0])

    @property
    def atoms(self) -> List[TargetAtom]:
        return list(self._fractions)

    def atom_fraction(self, atom: TargetAtom) -> float:
        """Fraction of target atoms of this kind (zero if absent)."""
        return self._fractions.get(atom, 0.0)

    def contains(self, atom: TargetAtom) -> bool:
        return atom in self._fractions

    def items(self) -> Iterable:
        return self._fractions.items()

    def __repr__(self):
        parts = ", ".join(f"{atom}: {frac:.4g}" for atom, frac in self._fractions.items())
        return f"Target({parts})"
