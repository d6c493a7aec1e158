"""
Matrix-element tables and the registry that lets reactions share them.

Key format: (target_pdg, process) where process is a ProcessType
Example: (1000180400, ProcessType.NEUTRINO_CC) for 40Ar(nu_e, e-)40K*

Tables are read-only once built, so one table can back every reaction
that uses the same target and process.
"""
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from .base import Level, MatrixElement, TransitionType
from .fermi import FermiMatrixElement
from .gamow_teller import GamowTellerMatrixElement

_CLASSES = {
    TransitionType.FERMI: FermiMatrixElement,
    TransitionType.GAMOW_TELLER: GamowTellerMatrixElement,
}


def make_matrix_element(level_energy: float, strength: float, me_type,
                        level: Optional[Level] = None) -> MatrixElement:
    """Build the MatrixElement subclass matching ``me_type``."""
    return _CLASSES[TransitionType.from_code(me_type)](level_energy, strength, level)


class MatrixElementTable(Sequence):
    """Matrix elements ordered by non-decreasing level energy."""

    def __init__(self, matrix_elements: Iterable[MatrixElement]):
        self._elements: List[MatrixElement] = list(matrix_elements)
        for prev, cur in zip(self._elements, self._elements[1:]):
            if cur.level_energy < prev.level_energy:
                raise ValueError(
                    "Matrix elements must be ordered by increasing level energy "
                    f"({cur.level_energy} MeV follows {prev.level_energy} MeV)"
                )

    @classmethod
    def from_rows(cls, rows: Iterable[Tuple], levels: Optional[Sequence[Level]] = None
                  ) -> "MatrixElementTable":
        """
        Build a table from (level_energy, type, strength) rows.

        If ``levels`` is given, each row is attached to the discrete level
        with the same energy (within 1 keV), if there is one.
        """
        elements = []
        for energy, me_type, strength in rows:
            level = None
            if levels:
                level = min(levels, key=lambda lv: abs(lv.energy - energy))
                if abs(level.energy - energy) > 1e-3:
                    level = None
            elements.append(make_matrix_element(float(energy), float(strength), me_type, level))
        return cls(elements)

    def __getitem__(self, index):
        return self._elements[index]

    def __len__(self) -> int:
        return len(self._elements)

    def __iter__(self) -> Iterator[MatrixElement]:
        return iter(self._elements)

    def __repr__(self):
        return f"MatrixElementTable({len(self)} entries)"


# Global registry: (target_pdg, process) -> MatrixElementTable
_REGISTRY: Dict[tuple, MatrixElementTable] = {}


def register(target_pdg: int, process, table: MatrixElementTable):
    """
    Register a matrix-element table for a target and process.

    Example:
        >>> register(1000180400, ProcessType.NEUTRINO_CC, table)
    """
    _REGISTRY[(target_pdg, process)] = table


def get_matrix_elements(target_pdg: int, process) -> MatrixElementTable:
    try:
        return _REGISTRY[(target_pdg, process)]
    except KeyError:
        raise KeyError(f"No matrix elements registered for target {target_pdg} and {process}") from None


def list_registered_tables():
    return {k: len(v) for k, v in _REGISTRY.items()}


def clear_registry():
    _REGISTRY.clear()
