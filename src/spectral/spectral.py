"""Nodal spectral-element bases for velocity-space coordinates."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum

import numpy as np

from .polynomial import (
    barycentric_diff_matrix,
    barycentric_weights,
    chebyshev_gauss_radau_nodes,
    gauss_legendre_quadrature,
    gauss_radau_quadrature,
    lagrange_matrix,
    legendre_gauss_lobatto_nodes,
    legendre_gauss_radau_nodes,
    vandermonde,
    vandermonde_x,
)


class NodeFamily(Enum):
    """Polynomial family used to place the collocation nodes."""

    LEGENDRE = "legendre"
    CHEBYSHEV = "chebyshev"


class ElementKind(Enum):
    """Element classification within a coordinate.

    LOBATTO elements include both end points. RADAU elements touch the
    cylindrical axis and carry no node (and no quadrature point) there.
    """

    LOBATTO = "lobatto"
    RADAU = "radau"


def chebyshev_gauss_lobatto_nodes(num_points: int) -> np.ndarray:
    """
    Return Chebyshev-Gauss-Lobatto nodes on [-1, 1].

    Parameters
    ----------
    num_points : int
        Number of nodes (N+1)

    Returns
    -------
    np.ndarray
        Chebyshev-Gauss-Lobatto nodes: x_j = -cos(πj/N) for j=0,...,N

    Notes
    -----
    These are the extrema of the Chebyshev polynomial T_N(x), including
    the endpoints ±1.
    """
    N = num_points - 1
    j = np.arange(num_points)
    return -np.cos(np.pi * j / N)


def chebyshev_diff_matrix(nodes: np.ndarray) -> np.ndarray:
    """
    Return Chebyshev spectral differentiation matrix on Gauss-Lobatto nodes.

    Parameters
    ----------
    nodes : np.ndarray
        Chebyshev-Gauss-Lobatto nodes in [-1, 1]

    Returns
    -------
    np.ndarray
        Differentiation matrix of shape (N+1, N+1)

    References
    ----------
    Trefethen (2000), "Spectral Methods in MATLAB"
    """
    N = len(nodes) - 1

    if N == 0:
        return np.zeros((1, 1))

    # c_i = 2 at the end points, 1 elsewhere
    c = np.ones(N + 1)
    c[0] = 2.0
    c[N] = 2.0

    i = np.arange(N + 1)
    sign = (-1.0) ** (i[:, None] + i[None, :])
    diff = nodes[:, None] - nodes[None, :]
    np.fill_diagonal(diff, 1.0)
    D = (c[:, None] / c[None, :]) * sign / diff
    np.fill_diagonal(D, 0.0)

    # Negative row sum so that d/dx[constant] = 0
    D[np.diag_indices_from(D)] = -np.sum(D, axis=1)
    return D


def legendre_diff_matrix(nodes: np.ndarray) -> np.ndarray:
    r"""
    Return Legendre spectral differentiation matrix at arbitrary nodes.

    Parameters
    ----------
    nodes : np.ndarray
        Collocation nodes

    Returns
    -------
    np.ndarray
        Differentiation matrix of shape (N, N)

    Notes
    -----
    The differentiation matrix is constructed as

    .. math::

        D = V_x V^{-1}

    where :math:`V` is the Vandermonde matrix and :math:`V_x` contains
    derivatives of the basis polynomials.

    References
    ----------
    Engsig-Karup, "Lecture 2: Polynomial Methods"
    """
    V = vandermonde(nodes)
    Vx = vandermonde_x(nodes)
    identity = np.eye(nodes.size)
    return Vx @ np.linalg.solve(V, identity)


class SpectralBasis(ABC):
    """Nodal Lagrange basis on a single element ``[a, b]``.

    Subclasses choose the reference nodes on [-1, 1] and the quadrature rule
    used to integrate products of basis functions over the element.
    """

    kind = ElementKind.LOBATTO

    def __init__(self, num_points: int, domain: tuple[float, float] = (-1.0, 1.0)):
        self.num_points = num_points
        self.domain = (float(domain[0]), float(domain[1]))
        a, b = self.domain
        self.scale = 0.5 * (b - a)
        self.reference_nodes = self.reference_node_set(num_points)
        self.nodes = self.to_physical(self.reference_nodes)
        self._bary = barycentric_weights(self.reference_nodes)

    def to_physical(self, xi: np.ndarray) -> np.ndarray:
        a, _ = self.domain
        return a + self.scale * (np.asarray(xi) + 1.0)

    def to_reference(self, x: np.ndarray) -> np.ndarray:
        a, _ = self.domain
        return (np.asarray(x) - a) / self.scale - 1.0

    @abstractmethod
    def reference_node_set(self, num_points: int) -> np.ndarray:
        """
        Return nodal points of the basis on [-1, 1].

        Parameters
        ----------
        num_points : int
            Number of collocation points

        Returns
        -------
        np.ndarray
            Increasing reference nodes
        """

    @abstractmethod
    def reference_quadrature(self, num_points: int) -> tuple[np.ndarray, np.ndarray]:
        """Quadrature points and weights on [-1, 1]."""

    def reference_diff_matrix(self) -> np.ndarray:
        return barycentric_diff_matrix(self.reference_nodes, self._bary)

    def diff_matrix(self) -> np.ndarray:
        """
        Return derivative matrix scaled to the physical element.

        Returns
        -------
        np.ndarray
            Differentiation matrix of shape (N, N), D[i, j] = l_j'(x_i)
        """
        return self.reference_diff_matrix() / self.scale

    def quadrature(self, num_points: int | None = None) -> tuple[np.ndarray, np.ndarray]:
        """Physical quadrature points and weights (default: 2N points)."""
        if num_points is None:
            num_points = 2 * self.num_points
        xi, w = self.reference_quadrature(num_points)
        return self.to_physical(xi), self.scale * w

    def lagrange_matrix(self, x: np.ndarray) -> np.ndarray:
        """Basis values L[q, j] = l_j(x_q) at physical points ``x``."""
        return lagrange_matrix(self.reference_nodes, self.to_reference(x), self._bary)

    def lagrange_derivative_matrix(self, x: np.ndarray) -> np.ndarray:
        """Basis derivatives dL[q, j] = l_j'(x_q) at physical points ``x``."""
        return self.lagrange_matrix(x) @ self.diff_matrix()


class LegendreLobattoBasis(SpectralBasis):
    """Legendre-Gauss-Lobatto nodal polynomial basis."""

    def reference_node_set(self, num_points: int) -> np.ndarray:
        return legendre_gauss_lobatto_nodes(num_points)

    def reference_quadrature(self, num_points: int):
        return gauss_legendre_quadrature(num_points)

    def reference_diff_matrix(self) -> np.ndarray:
        return legendre_diff_matrix(self.reference_nodes)


class ChebyshevLobattoBasis(SpectralBasis):
    """Chebyshev-Gauss-Lobatto nodal polynomial basis."""

    def reference_node_set(self, num_points: int) -> np.ndarray:
        return chebyshev_gauss_lobatto_nodes(num_points)

    def reference_quadrature(self, num_points: int):
        return gauss_legendre_quadrature(num_points)

    def reference_diff_matrix(self) -> np.ndarray:
        return chebyshev_diff_matrix(self.reference_nodes)


class LegendreRadauBasis(SpectralBasis):
    """Legendre-Gauss-Radau basis with no node at the lower element end."""

    kind = ElementKind.RADAU

    def reference_node_set(self, num_points: int) -> np.ndarray:
        return legendre_gauss_radau_nodes(num_points)

    def reference_quadrature(self, num_points: int):
        return gauss_radau_quadrature(num_points)


class ChebyshevRadauBasis(SpectralBasis):
    """Chebyshev-Gauss-Radau basis with no node at the lower element end."""

    kind = ElementKind.RADAU

    def reference_node_set(self, num_points: int) -> np.ndarray:
        return chebyshev_gauss_radau_nodes(num_points)

    def reference_quadrature(self, num_points: int):
        return gauss_radau_quadrature(num_points)


_BASES = {
    (NodeFamily.LEGENDRE, ElementKind.LOBATTO): LegendreLobattoBasis,
    (NodeFamily.LEGENDRE, ElementKind.RADAU): LegendreRadauBasis,
    (NodeFamily.CHEBYSHEV, ElementKind.LOBATTO): ChebyshevLobattoBasis,
    (NodeFamily.CHEBYSHEV, ElementKind.RADAU): ChebyshevRadauBasis,
}


def create_element_basis(
    family: NodeFamily,
    kind: ElementKind,
    num_points: int,
    domain: tuple[float, float],
) -> SpectralBasis:
    """Factory for element bases.

    Parameters
    ----------
    family : NodeFamily
        Legendre or Chebyshev node placement
    kind : ElementKind
        Lobatto (ordinary) or Radau (axis) element
    num_points : int
        Points per element
    domain : tuple
        Physical element end points (a, b)
    """
    return _BASES[(family, kind)](num_points, domain)
