"""Element-local mass and stiffness matrices.

All integrals are evaluated with the element quadrature stored in the
coordinate's SpectralOperatorSet, using the weight ``J = 1`` for the
Cartesian coordinate and ``J = vperp`` for the cylindrical one. The Radau
element's quadrature has no point on the axis, so the singular weights of
the ``MN`` kind stay finite.
"""

from __future__ import annotations

from enum import Enum

import numpy as np

from ..coordinates import Coordinate, SpectralOperatorSet
from ..exceptions import ConfigurationError


class OperatorKind(Enum):
    """Bilinear form evaluated by the local operator builder.

    ============================  =====================================
    kind                          entry [i, j]
    ============================  =====================================
    ``M``                         int phi_i phi_j J
    ``K``                         -int phi_i' phi_j' J
    ``K_with_BC_terms``           K plus [phi_i phi_j' J] at domain ends
    ``P``                         int phi_i phi_j' J
    ``MN``                        int phi_i phi_j J / vperp^2
    ``MR``                        int phi_i phi_j J / vperp
    ============================  =====================================
    """

    MASS = "M"
    STIFFNESS = "K"
    STIFFNESS_WITH_BC_TERMS = "K_with_BC_terms"
    FIRST_DERIVATIVE = "P"
    MASS_OVER_VPERP_SQUARED = "MN"
    MASS_OVER_VPERP = "MR"

    @property
    def needs_cylindrical(self) -> bool:
        return self in (OperatorKind.MASS_OVER_VPERP_SQUARED, OperatorKind.MASS_OVER_VPERP)


def _weighted_quadrature(coord: Coordinate, spectral: SpectralOperatorSet) -> np.ndarray:
    """Quadrature weights times the coordinate Jacobian, shape (nelement, nquad)."""
    if coord.cylindrical:
        return spectral.w_quad * spectral.x_quad
    return spectral.w_quad


def _require_spectral(coord: Coordinate, spectral: SpectralOperatorSet | None):
    if spectral is None or not coord.discretization.is_spectral:
        raise ConfigurationError(
            f"{coord.name}: element operators need a spectral discretization, "
            f"got {coord.discretization.value}"
        )


def local_matrices(
    coord: Coordinate, spectral: SpectralOperatorSet | None, kind
) -> np.ndarray:
    """
    Local matrices of one kind for every element of a coordinate.

    Parameters
    ----------
    coord : Coordinate
        The coordinate
    spectral : SpectralOperatorSet
        Element bases and quadrature tables of ``coord``
    kind : OperatorKind or str
        Bilinear form, e.g. ``"M"`` or ``"K"``

    Returns
    -------
    np.ndarray
        Array of shape (nelement, ngrid, ngrid)

    Raises
    ------
    ConfigurationError
        For finite-difference coordinates, unknown kinds, or kinds that
        need the cylindrical weight on a Cartesian coordinate.
    """
    _require_spectral(coord, spectral)
    try:
        kind = OperatorKind(kind)
    except ValueError:
        raise ConfigurationError(f"Unknown operator kind '{kind}'") from None
    if kind.needs_cylindrical and not coord.cylindrical:
        raise ConfigurationError(
            f"Operator kind '{kind.value}' is only defined for the cylindrical coordinate"
        )

    L = spectral.lagrange
    dL = spectral.dlagrange
    wJ = _weighted_quadrature(coord, spectral)

    if kind is OperatorKind.MASS:
        return np.einsum("eq,eqi,eqj->eij", wJ, L, L)
    if kind is OperatorKind.FIRST_DERIVATIVE:
        return np.einsum("eq,eqi,eqj->eij", wJ, L, dL)
    if kind is OperatorKind.MASS_OVER_VPERP_SQUARED:
        return np.einsum("eq,eqi,eqj->eij", wJ / spectral.x_quad**2, L, L)
    if kind is OperatorKind.MASS_OVER_VPERP:
        return np.einsum("eq,eqi,eqj->eij", wJ / spectral.x_quad, L, L)

    K = -np.einsum("eq,eqi,eqj->eij", wJ, dL, dL)
    if kind is OperatorKind.STIFFNESS_WITH_BC_TERMS:
        _add_boundary_terms(K, coord, spectral)
    return K


def _add_boundary_terms(K: np.ndarray, coord: Coordinate, spectral: SpectralOperatorSet):
    """Add phi_i phi_j' J at the upper end and subtract it at the lower end."""
    upper = coord.element_boundaries[-1]
    J_upper = upper if coord.cylindrical else 1.0
    K[-1, -1, :] += J_upper * spectral.diff_matrices[-1][-1, :]
    if not coord.cylindrical:
        K[0, 0, :] -= spectral.diff_matrices[0][0, :]


def local_matrix(
    coord: Coordinate, spectral: SpectralOperatorSet | None, ielement: int, kind
) -> np.ndarray:
    """Local (ngrid, ngrid) matrix of one element."""
    return local_matrices(coord, spectral, kind)[ielement]


def triple_product_arrays(
    coord: Coordinate, spectral: SpectralOperatorSet | None
) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """
    Rank-3 element integrals used by the weak-form collision operator.

    Returns
    -------
    Y0, Y1, Y2, Y3 : np.ndarray
        Arrays of shape (nelement, ngrid, ngrid, ngrid) indexed
        ``[e, k, j, i]`` with k the coefficient, j the distribution and
        i the test function:

        - ``Y0 = int phi_k phi_j phi_i J``
        - ``Y1 = int phi_k phi_j phi_i' J``
        - ``Y2 = int phi_k phi_j' phi_i' J``
        - ``Y3 = int phi_k phi_j' phi_i J``
    """
    _require_spectral(coord, spectral)
    L = spectral.lagrange
    dL = spectral.dlagrange
    wJ = _weighted_quadrature(coord, spectral)
    Y0 = np.einsum("eq,eqk,eqj,eqi->ekji", wJ, L, L, L)
    Y1 = np.einsum("eq,eqk,eqj,eqi->ekji", wJ, L, L, dL)
    Y2 = np.einsum("eq,eqk,eqj,eqi->ekji", wJ, L, dL, dL)
    Y3 = np.einsum("eq,eqk,eqj,eqi->ekji", wJ, L, dL, L)
    return Y0, Y1, Y2, Y3
