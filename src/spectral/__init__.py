"""Nodal spectral-element bases, node sets and quadrature rules."""

from spectral.polynomial import (
    barycentric_diff_matrix,
    barycentric_weights,
    chebyshev_gauss_radau_nodes,
    gauss_legendre_quadrature,
    gauss_radau_quadrature,
    lagrange_matrix,
    legendre_gauss_lobatto_nodes,
    legendre_gauss_radau_nodes,
)
from spectral.spectral import (
    ChebyshevLobattoBasis,
    ChebyshevRadauBasis,
    ElementKind,
    LegendreLobattoBasis,
    LegendreRadauBasis,
    NodeFamily,
    SpectralBasis,
    chebyshev_diff_matrix,
    chebyshev_gauss_lobatto_nodes,
    create_element_basis,
    legendre_diff_matrix,
)

__all__ = [
    # Bases
    "SpectralBasis",
    "LegendreLobattoBasis",
    "LegendreRadauBasis",
    "ChebyshevLobattoBasis",
    "ChebyshevRadauBasis",
    "ElementKind",
    "NodeFamily",
    "create_element_basis",
    # Nodes and quadrature
    "legendre_gauss_lobatto_nodes",
    "legendre_gauss_radau_nodes",
    "chebyshev_gauss_lobatto_nodes",
    "chebyshev_gauss_radau_nodes",
    "gauss_legendre_quadrature",
    "gauss_radau_quadrature",
    # Differentiation and interpolation
    "chebyshev_diff_matrix",
    "legendre_diff_matrix",
    "barycentric_diff_matrix",
    "barycentric_weights",
    "lagrange_matrix",
]
