"""Spectral-element grids, indexing, assembly and linear solvers."""

from fem.coordinates import (
    Coordinate,
    Discretization,
    GridInput,
    SpectralOperatorSet,
    define_coordinate,
)
from fem.exceptions import (
    ConfigurationError,
    ConvergenceWarning,
    FokkerPlanckError,
    ShapeMismatchError,
    SingularOperatorError,
)
from fem.indexing import (
    compound_index,
    compound_index_inverse,
    ravel_c_to_vpavperp,
    ravel_vpavperp_to_c,
)

__all__ = [
    "Coordinate",
    "Discretization",
    "GridInput",
    "SpectralOperatorSet",
    "define_coordinate",
    "compound_index",
    "compound_index_inverse",
    "ravel_vpavperp_to_c",
    "ravel_c_to_vpavperp",
    "FokkerPlanckError",
    "ConfigurationError",
    "SingularOperatorError",
    "ShapeMismatchError",
    "ConvergenceWarning",
]
