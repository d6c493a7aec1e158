"""
Nuclear matrix elements for allowed (Fermi and Gamow-Teller) transitions.

Usage:
    from nuphysics.matrix_elements import MatrixElementTable

    table = MatrixElementTable.from_rows([(0.0, "F", 1.0), (2.29, "GT", 1.5)])
    pdf = table[0].cos_theta_pdf(cos_theta, beta_c_cm)
"""
from .base import Level, MatrixElement, TransitionType
from .fermi import FermiMatrixElement
from .gamow_teller import GamowTellerMatrixElement
from .registry import (
    MatrixElementTable,
    clear_registry,
    get_matrix_elements,
    list_registered_tables,
    make_matrix_element,
    register,
)

__all__ = [
    "Level",
    "MatrixElement",
    "TransitionType",
    "FermiMatrixElement",
    "GamowTellerMatrixElement",
    "MatrixElementTable",
    "make_matrix_element",
    "register",
    "get_matrix_elements",
    "list_registered_tables",
    "clear_registry",
]
