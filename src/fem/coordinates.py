"""One-dimensional spectral-element velocity coordinates.

A coordinate is a uniform partition of an interval into ``nelement``
elements carrying ``ngrid`` nodes each. Adjacent elements share their end
node, so the coordinate has ``n = (ngrid - 1) * nelement + 1`` global points.

The parallel velocity ``vpa`` spans ``[-L/2, L/2]``. The perpendicular
velocity ``vperp`` is a cylindrical radius spanning ``[0, L]``; its first
element is a Radau element without a node on the axis, and its integration
weights include the cylindrical factor ``2 vperp``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

import numpy as np

from spectral import ElementKind, NodeFamily, SpectralBasis, create_element_basis

from .exceptions import ConfigurationError, check_shape

log = logging.getLogger(__name__)

CYLINDRICAL_COORDINATES = ("vperp",)


class Discretization(Enum):
    """Discretization families supported by a coordinate."""

    FINITE_DIFFERENCE = "finite_difference"
    GAUSS_LEGENDRE_PSEUDOSPECTRAL = "gausslegendre_pseudospectral"
    CHEBYSHEV_PSEUDOSPECTRAL = "chebyshev_pseudospectral"

    @classmethod
    def from_value(cls, value) -> "Discretization":
        """Accept an enum member or its string value."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            valid = ", ".join(d.value for d in cls)
            raise ConfigurationError(
                f"Unknown discretization '{value}'. Expected one of: {valid}"
            ) from None

    @property
    def is_spectral(self) -> bool:
        return self is not Discretization.FINITE_DIFFERENCE

    @property
    def node_family(self) -> NodeFamily:
        if self is Discretization.GAUSS_LEGENDRE_PSEUDOSPECTRAL:
            return NodeFamily.LEGENDRE
        if self is Discretization.CHEBYSHEV_PSEUDOSPECTRAL:
            return NodeFamily.CHEBYSHEV
        raise ConfigurationError(
            "Finite-difference coordinates have no element basis"
        )


@dataclass(frozen=True)
class GridInput:
    """Grid specification for one velocity coordinate."""

    name: str
    ngrid: int
    nelement: int
    L: float
    discretization: Discretization = Discretization.GAUSS_LEGENDRE_PSEUDOSPECTRAL

    @classmethod
    def from_half_length(
        cls,
        name: str,
        ngrid: int,
        nelement: int,
        domain_half_length: float,
        discretization=Discretization.GAUSS_LEGENDRE_PSEUDOSPECTRAL,
    ) -> "GridInput":
        """Build from a domain half length, ``L = 2 * domain_half_length``."""
        if domain_half_length <= 0:
            raise ConfigurationError(
                f"{name}: domain_half_length must be positive, got {domain_half_length}"
            )
        return cls(
            name=name,
            ngrid=ngrid,
            nelement=nelement,
            L=2.0 * domain_half_length,
            discretization=Discretization.from_value(discretization),
        )

    def validate(self):
        if int(self.ngrid) != self.ngrid or self.ngrid < 2:
            raise ConfigurationError(
                f"{self.name}: ngrid must be an integer >= 2, got {self.ngrid}"
            )
        if int(self.nelement) != self.nelement or self.nelement < 1:
            raise ConfigurationError(
                f"{self.name}: nelement must be an integer >= 1, got {self.nelement}"
            )
        if not self.L > 0:
            raise ConfigurationError(f"{self.name}: L must be positive, got {self.L}")
        Discretization.from_value(self.discretization)


@dataclass(frozen=True, eq=False)
class Coordinate:
    """Immutable 1D grid with quadrature weights and element-to-global map."""

    name: str
    ngrid: int
    nelement: int
    n: int
    L: float
    grid: np.ndarray
    wgts: np.ndarray
    igrid_full: np.ndarray  # (ngrid, nelement) local point, element -> global index
    imin: np.ndarray
    imax: np.ndarray
    element_boundaries: np.ndarray
    discretization: Discretization

    @property
    def cylindrical(self) -> bool:
        return self.name in CYLINDRICAL_COORDINATES

    @property
    def lower_index(self) -> int | None:
        """Global index of the lower domain end, None for the cylindrical axis."""
        return None if self.cylindrical else 0


@dataclass(frozen=True, eq=False)
class SpectralOperatorSet:
    """Per-element bases and quadrature tables for one coordinate.

    All arrays are stacked over elements so that element loops can be
    expressed as vectorised contractions.

    Attributes
    ----------
    elements : tuple of SpectralBasis
        One basis per element, RADAU kind for the element on the axis.
    x_quad, w_quad : np.ndarray
        Quadrature points and weights, shape (nelement, nquad).
    lagrange : np.ndarray
        Basis values at quadrature points, shape (nelement, nquad, ngrid).
    dlagrange : np.ndarray
        Basis derivatives at quadrature points, same shape.
    diff_matrices : np.ndarray
        Nodal differentiation matrices, shape (nelement, ngrid, ngrid).
    """

    elements: tuple
    x_quad: np.ndarray
    w_quad: np.ndarray
    lagrange: np.ndarray
    dlagrange: np.ndarray
    diff_matrices: np.ndarray

    @property
    def kinds(self) -> tuple:
        return tuple(element.kind for element in self.elements)

    @property
    def nquad(self) -> int:
        return self.x_quad.shape[1]

    def derivative(self, f: np.ndarray, coord: Coordinate) -> np.ndarray:
        """First derivative on the grid, averaged at shared element nodes."""
        check_shape(f, (coord.n,), "f")
        df = np.zeros(coord.n)
        counts = np.zeros(coord.n)
        local = np.einsum("eij,je->ie", self.diff_matrices, f[coord.igrid_full])
        np.add.at(df, coord.igrid_full.ravel(), local.ravel())
        np.add.at(counts, coord.igrid_full.ravel(), 1.0)
        return df / counts


def composite_simpson_weights(grid: np.ndarray) -> np.ndarray:
    """Composite Simpson weights on a uniform grid.

    An even number of points closes the last interval with the trapezoid rule.
    """
    n = grid.size
    h = grid[1] - grid[0]
    wgts = np.zeros(n)
    if n == 2:
        wgts[:] = 0.5 * h
        return wgts
    m = n if n % 2 == 1 else n - 1
    wgts[:m:2] = 2.0 * h / 3.0
    wgts[1:m:2] = 4.0 * h / 3.0
    wgts[0] = h / 3.0
    wgts[m - 1] = h / 3.0
    if m < n:
        wgts[m - 1] += 0.5 * h
        wgts[n - 1] += 0.5 * h
    return wgts


def _jacobian(x: np.ndarray, cylindrical: bool) -> np.ndarray:
    return 2.0 * x if cylindrical else np.ones_like(x)


def define_coordinate(grid_input: GridInput) -> tuple[Coordinate, SpectralOperatorSet | None]:
    """Build a Coordinate and, for spectral discretizations, its operator set.

    Parameters
    ----------
    grid_input : GridInput
        Grid specification

    Returns
    -------
    coord : Coordinate
        The immutable grid
    spectral : SpectralOperatorSet or None
        Element bases and quadrature tables (None for finite differences)

    Raises
    ------
    ConfigurationError
        If ngrid < 2, nelement < 1, L <= 0 or the discretization is unknown.
    """
    grid_input.validate()
    name = grid_input.name
    ngrid = int(grid_input.ngrid)
    nelement = int(grid_input.nelement)
    L = float(grid_input.L)
    discretization = Discretization.from_value(grid_input.discretization)
    cylindrical = name in CYLINDRICAL_COORDINATES

    n = (ngrid - 1) * nelement + 1
    lower = 0.0 if cylindrical else -0.5 * L
    element_boundaries = np.linspace(lower, lower + L, nelement + 1)

    imin = np.arange(nelement) * (ngrid - 1)
    imax = imin + ngrid - 1
    igrid_full = imin[None, :] + np.arange(ngrid)[:, None]

    if not discretization.is_spectral:
        grid = np.linspace(lower, lower + L, n)
        wgts = composite_simpson_weights(grid)
        if cylindrical:
            wgts = wgts * 2.0 * grid
        spectral = None
    else:
        family = discretization.node_family
        elements = []
        for ielement in range(nelement):
            kind = ElementKind.RADAU if (cylindrical and ielement == 0) else ElementKind.LOBATTO
            domain = (element_boundaries[ielement], element_boundaries[ielement + 1])
            elements.append(create_element_basis(family, kind, ngrid, domain))

        grid = np.zeros(n)
        for ielement, element in enumerate(elements):
            grid[igrid_full[:, ielement]] = element.nodes

        spectral = _build_operator_set(elements)
        local_wgts = np.einsum(
            "eqj,eq->je",
            spectral.lagrange,
            spectral.w_quad * _jacobian(spectral.x_quad, cylindrical),
        )
        wgts = np.zeros(n)
        np.add.at(wgts, igrid_full.ravel(), local_wgts.ravel())

    for arr in (grid, wgts, igrid_full, imin, imax, element_boundaries):
        arr.flags.writeable = False

    coord = Coordinate(
        name=name,
        ngrid=ngrid,
        nelement=nelement,
        n=n,
        L=L,
        grid=grid,
        wgts=wgts,
        igrid_full=igrid_full,
        imin=imin,
        imax=imax,
        element_boundaries=element_boundaries,
        discretization=discretization,
    )
    log.debug(
        f"{name}: {discretization.value}, ngrid={ngrid}, nelement={nelement}, n={n}, L={L}"
    )
    return coord, spectral


def _build_operator_set(elements: list[SpectralBasis]) -> SpectralOperatorSet:
    x_quad, w_quad, lagrange, dlagrange, diff = [], [], [], [], []
    for element in elements:
        xq, wq = element.quadrature()
        x_quad.append(xq)
        w_quad.append(wq)
        lagrange.append(element.lagrange_matrix(xq))
        dlagrange.append(element.lagrange_derivative_matrix(xq))
        diff.append(element.diff_matrix())
    return SpectralOperatorSet(
        elements=tuple(elements),
        x_quad=np.array(x_quad),
        w_quad=np.array(w_quad),
        lagrange=np.array(lagrange),
        dlagrange=np.array(dlagrange),
        diff_matrices=np.array(diff),
    )


def grid_input_from_config(name: str, cfg) -> GridInput:
    """Build a GridInput from a mapping with ngrid, nelement, L and discretization."""
    return GridInput(
        name=name,
        ngrid=int(cfg["ngrid"]),
        nelement=int(cfg["nelement"]),
        L=float(cfg["L"]),
        discretization=Discretization.from_value(
            cfg.get("discretization", Discretization.GAUSS_LEGENDRE_PSEUDOSPECTRAL.value)
        ),
    )
