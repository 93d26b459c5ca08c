"""Orthogonal polynomials, node sets and quadrature rules on [-1, 1]."""

from __future__ import annotations

import numpy as np
from numpy.polynomial import legendre as npleg
from numpy.polynomial.legendre import Legendre
from scipy.special import roots_legendre


def jacobi_poly(xs: np.ndarray, alpha: float, beta: float, N: int) -> np.ndarray:
    """Compute Jacobi polynomial P_N^{(alpha,beta)}(x) using recurrence."""
    xs = np.asarray(xs, dtype=float)
    if N == 0:
        return np.ones_like(xs)
    if N == 1:
        return 0.5 * (alpha - beta + (alpha + beta + 2) * xs)

    jpm2, jpm1 = np.ones_like(xs), 0.5 * (alpha - beta + (alpha + beta + 2) * xs)
    for n in range(2, N + 1):
        am1 = (2 * ((n - 1) + alpha) * ((n - 1) + beta)) / (
            (2 * (n - 1) + alpha + beta + 1) * (2 * (n - 1) + alpha + beta)
        )
        a0 = (alpha**2 - beta**2) / (
            (2 * (n - 1) + alpha + beta + 2) * (2 * (n - 1) + alpha + beta)
        )
        ap1 = (2 * ((n - 1) + 1) * ((n - 1) + alpha + beta + 1)) / (
            (2 * (n - 1) + alpha + beta + 2) * (2 * (n - 1) + alpha + beta + 1)
        )
        jpm2, jpm1 = jpm1, ((a0 + xs) * jpm1 - am1 * jpm2) / ap1
    return jpm1


def vandermonde(nodes: np.ndarray) -> np.ndarray:
    """Vandermonde matrix V[i, n] = P_n(x_i) for Legendre polynomials."""
    N = len(nodes)
    V = np.zeros((N, N))
    for n in range(N):
        V[:, n] = jacobi_poly(nodes, 0.0, 0.0, n)
    return V


def vandermonde_x(nodes: np.ndarray) -> np.ndarray:
    """Derivative Vandermonde matrix Vx[i, n] = P_n'(x_i)."""
    N = len(nodes)
    Vx = np.zeros((N, N))
    for n in range(1, N):  # n=0 derivative is 0
        Vx[:, n] = 0.5 * (n + 1) * jacobi_poly(nodes, 1.0, 1.0, n - 1)
    return Vx


# =============================================================================
# Node sets
# =============================================================================


def legendre_gauss_lobatto_nodes(num_points: int) -> np.ndarray:
    """Legendre-Gauss-Lobatto nodes on [-1, 1] (both endpoints included)."""
    degree = num_points - 1
    roots = Legendre.basis(degree).deriv().roots()
    return np.sort(np.concatenate(([-1.0], np.real(roots), [1.0])))


def legendre_gauss_radau_nodes(num_points: int) -> np.ndarray:
    """Legendre-Gauss-Radau nodes on [-1, 1] including x = +1 but not x = -1.

    The left-Radau points are the roots of :math:`P_{n-1} + P_n`; reflecting
    them moves the fixed node to the upper end of the interval.
    """
    coeffs = np.zeros(num_points + 1)
    coeffs[num_points - 1] = 1.0
    coeffs[num_points] = 1.0
    left = np.real(npleg.legroots(coeffs))
    nodes = np.sort(-left)
    nodes[-1] = 1.0
    return nodes


def chebyshev_gauss_radau_nodes(num_points: int) -> np.ndarray:
    """Chebyshev-Gauss-Radau nodes on [-1, 1] including x = +1 but not x = -1.

    x_j = cos(2 pi j / (2n - 1)) for j = 0, ..., n-1.
    """
    j = np.arange(num_points)
    return np.sort(np.cos(2.0 * np.pi * j / (2 * num_points - 1)))


# =============================================================================
# Quadrature rules
# =============================================================================


def gauss_legendre_quadrature(num_points: int) -> tuple[np.ndarray, np.ndarray]:
    """Gauss-Legendre points and weights on [-1, 1]; exact to degree 2n-1."""
    x, w = roots_legendre(num_points)
    return np.asarray(x, dtype=float), np.asarray(w, dtype=float)


def gauss_radau_quadrature(num_points: int) -> tuple[np.ndarray, np.ndarray]:
    """Gauss-Radau points and weights on [-1, 1] with the fixed node at x = +1.

    Exact to degree 2n-2. No point is placed at x = -1.

    Notes
    -----
    Weights are the reflection of the left-Radau weights
    :math:`w_j = (1 - x_j) / (n^2 P_{n-1}(x_j)^2)`.
    """
    x = legendre_gauss_radau_nodes(num_points)
    coeffs = np.zeros(num_points)
    coeffs[num_points - 1] = 1.0
    p_nm1 = npleg.legval(x, coeffs)
    w = (1.0 + x) / (num_points**2 * p_nm1**2)
    return x, w


# =============================================================================
# Lagrange interpolation
# =============================================================================


def barycentric_weights(nodes: np.ndarray) -> np.ndarray:
    """Compute barycentric interpolation weights for given nodes.

    Parameters
    ----------
    nodes : np.ndarray
        Interpolation nodes

    Returns
    -------
    np.ndarray
        Barycentric weights :math:`w_j = 1 / \\prod_{k \\ne j} (x_j - x_k)`
    """
    diff = nodes[:, None] - nodes[None, :]
    np.fill_diagonal(diff, 1.0)
    return 1.0 / np.prod(diff, axis=1)


def barycentric_diff_matrix(nodes: np.ndarray, weights: np.ndarray | None = None) -> np.ndarray:
    """Nodal differentiation matrix for an arbitrary node set.

    D[i, j] = l_j'(x_i), with diagonal entries from the negative row sum so
    that constants are differentiated exactly to zero.
    """
    if weights is None:
        weights = barycentric_weights(nodes)
    diff = nodes[:, None] - nodes[None, :]
    np.fill_diagonal(diff, 1.0)
    D = (weights[None, :] / weights[:, None]) / diff
    np.fill_diagonal(D, 0.0)
    D[np.diag_indices_from(D)] = -np.sum(D, axis=1)
    return D


def lagrange_matrix(
    nodes: np.ndarray, x: np.ndarray, weights: np.ndarray | None = None
) -> np.ndarray:
    """Evaluate all Lagrange basis polynomials of ``nodes`` at points ``x``.

    Returns
    -------
    np.ndarray
        Matrix L of shape (len(x), len(nodes)) with L[q, j] = l_j(x_q).
    """
    if weights is None:
        weights = barycentric_weights(nodes)
    x = np.atleast_1d(np.asarray(x, dtype=float))
    diff = x[:, None] - nodes[None, :]
    coincident = np.abs(diff) < 1e-14
    diff[coincident] = 1.0
    terms = weights[None, :] / diff
    L = terms / np.sum(terms, axis=1, keepdims=True)
    rows = np.any(coincident, axis=1)
    L[rows] = coincident[rows].astype(float)
    return L
