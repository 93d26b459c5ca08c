"""Element-local and global operator assembly."""

from .global_matrices import (
    apply_dirichlet_rows,
    assemble_1d,
    assemble_2d,
    boundary_compound_indices,
    element_pair_triplets,
)
from .local_matrices import OperatorKind, local_matrices, local_matrix, triple_product_arrays

__all__ = [
    "OperatorKind",
    "local_matrices",
    "local_matrix",
    "triple_product_arrays",
    "assemble_1d",
    "assemble_2d",
    "element_pair_triplets",
    "boundary_compound_indices",
    "apply_dirichlet_rows",
]
