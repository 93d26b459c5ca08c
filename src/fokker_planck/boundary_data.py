"""Dirichlet data for the Rosenbluth potentials from their Green's functions.

On the outer edges of the domain (vpa = +-L/2 and vperp = L) each potential
is evaluated directly as an integral of the distribution against an
elliptic-integral kernel:

    Phi(vpa, vperp) = 1 / pi^{3/2} int int F(vpa', vperp') K_Phi vperp' dvperp' dvpa'

with

    a = vpa - vpa',  s = a^2 + (vperp + vperp')^2,  d = a^2 + (vperp - vperp')^2,
    m = 4 vperp vperp' / s

and K(m), E(m) the complete elliptic integrals of parameter m. The integral
is evaluated with the element quadrature, F being interpolated to the
quadrature points with the Lagrange matrices.
"""

from __future__ import annotations

import logging

import numpy as np
from scipy.special import ellipe, ellipk

from fem.coordinates import Coordinate, SpectralOperatorSet
from fem.exceptions import ConfigurationError, check_shape
from utilities.parallel import ExecutionContext, run_parallel_region

from .datastructures import ROSENBLUTH_QUANTITIES, EdgeData, RosenbluthBoundaryData
from .maxwellian import rosenbluth_potentials_maxwellian

log = logging.getLogger(__name__)

# Target number of kernel evaluations per batch of boundary points
BATCH_ELEMENTS = 2_000_000


# ========================================================
# Green's function kernels
# ========================================================


def green_function_kernels(vpa_b, vperp_b, vpa_q, vperp_q) -> dict:
    """
    Kernels of every potential for boundary points against quadrature points.

    Parameters
    ----------
    vpa_b, vperp_b : np.ndarray
        Boundary point coordinates, shape (npts,), vperp_b > 0
    vpa_q : np.ndarray
        Quadrature points in vpa, shape (nq_vpa,)
    vperp_q : np.ndarray
        Quadrature points in vperp, shape (nq_vperp,), all > 0

    Returns
    -------
    dict
        Arrays of shape (npts, nq_vpa, nq_vperp) keyed like ROSENBLUTH_QUANTITIES
    """
    a = vpa_b[:, None, None] - vpa_q[None, :, None]
    vp = vperp_b[:, None, None]
    vpp = vperp_q[None, None, :]

    a2 = a**2
    s = a2 + (vp + vpp) ** 2
    d = a2 + (vp - vpp) ** 2
    sqrt_s = np.sqrt(s)
    m = 4.0 * vp * vpp / s
    K = ellipk(m)
    E = ellipe(m)

    cross = (a2 + vpp**2 - vp**2) / (2.0 * vp * sqrt_s)
    E_over_d = E / (d * sqrt_s)
    dGdvperp = 4.0 * ((vp + vpp) * E / sqrt_s + (E - K) * cross)
    dHdvperp = 4.0 * (-(vp + vpp) * K / (s * sqrt_s) + (E - (d / s) * K) * cross / d)

    return {
        "H": 4.0 * K / sqrt_s,
        "dHdvpa": -4.0 * a * E_over_d,
        "dHdvperp": dHdvperp,
        "G": 4.0 * sqrt_s * E,
        "dGdvperp": dGdvperp,
        "d2Gdvperp2": 4.0 * K / sqrt_s + 4.0 * a2 * E_over_d - dGdvperp / vp,
        "d2Gdvperpdvpa": a * dHdvperp,
        "d2Gdvpa2": 4.0 * K / sqrt_s - 4.0 * a2 * E_over_d,
    }


# ========================================================
# Boundary data
# ========================================================


def _weighted_quadrature_values(F, vpa, vperp, vpa_spectral, vperp_spectral):
    """F at the element quadrature points times the integration weights."""
    F_local = F[vpa.igrid_full[:, :, None, None], vperp.igrid_full[None, None, :, :]]
    Fq = np.einsum(
        "aqj,bsk,jakb->aqbs",
        vpa_spectral.lagrange,
        vperp_spectral.lagrange,
        F_local,
        optimize=True,
    )
    w_vpa = vpa_spectral.w_quad.ravel()
    w_vperp = (vperp_spectral.w_quad * vperp_spectral.x_quad).ravel()
    nq_vpa, nq_vperp = w_vpa.size, w_vperp.size
    weights = np.outer(w_vpa, w_vperp) / np.pi**1.5
    return Fq.reshape(nq_vpa, nq_vperp) * weights


def _boundary_points(vpa: Coordinate, vperp: Coordinate):
    """Points of the three edges, in the order lower_vpa, upper_vpa, upper_vperp."""
    vpa_b = np.concatenate(
        [np.full(vperp.n, vpa.grid[0]), np.full(vperp.n, vpa.grid[-1]), vpa.grid]
    )
    vperp_b = np.concatenate([vperp.grid, vperp.grid, np.full(vpa.n, vperp.grid[-1])])
    return vpa_b, vperp_b


def _split_edges(values: np.ndarray, nvpa: int, nvperp: int) -> EdgeData:
    return EdgeData(
        lower_vpa=values[:nvperp].copy(),
        upper_vpa=values[nvperp : 2 * nvperp].copy(),
        upper_vperp=values[2 * nvperp :].copy(),
    )


def calculate_rosenbluth_boundary_data(
    F: np.ndarray,
    vpa: Coordinate,
    vperp: Coordinate,
    vpa_spectral: SpectralOperatorSet,
    vperp_spectral: SpectralOperatorSet,
    nranks: int = 1,
    out: RosenbluthBoundaryData | None = None,
) -> RosenbluthBoundaryData:
    """
    Evaluate every potential on the Dirichlet edges from the integral formula.

    Boundary points are shared among ``nranks`` workers and processed in
    batches that bound the size of the kernel arrays.

    Raises
    ------
    ConfigurationError
        If either grid has no element tables.
    ShapeMismatchError
        If F does not match the grid.
    """
    if vpa_spectral is None or vperp_spectral is None:
        raise ConfigurationError("Boundary data needs spectral element quadrature")
    check_shape(F, (vpa.n, vperp.n), "F")

    Fw = _weighted_quadrature_values(F, vpa, vperp, vpa_spectral, vperp_spectral)
    vpa_q = vpa_spectral.x_quad.ravel()
    vperp_q = vperp_spectral.x_quad.ravel()
    vpa_b, vperp_b = _boundary_points(vpa, vperp)
    npts = vpa_b.size
    batch = max(1, BATCH_ELEMENTS // Fw.size)

    def evaluate(context: ExecutionContext):
        points = context.partition(npts)
        values = {name: np.zeros(len(points)) for name in ROSENBLUTH_QUANTITIES}
        for start in range(0, len(points), batch):
            local = slice(start, min(start + batch, len(points)))
            idx = np.arange(points.start, points.stop)[local]
            kernels = green_function_kernels(vpa_b[idx], vperp_b[idx], vpa_q, vperp_q)
            for name, kernel in kernels.items():
                values[name][local] = np.einsum("pqs,qs->p", kernel, Fw)
        return points, values

    results = run_parallel_region(evaluate, nranks)

    # serial region: gather the boundary values of every worker
    gathered = {name: np.zeros(npts) for name in ROSENBLUTH_QUANTITIES}
    for points, values in results:
        for name in ROSENBLUTH_QUANTITIES:
            gathered[name][points.start : points.stop] = values[name]

    data = out if out is not None else RosenbluthBoundaryData.allocate(vpa.n, vperp.n)
    for name in ROSENBLUTH_QUANTITIES:
        setattr(data, name, _split_edges(gathered[name], vpa.n, vperp.n))
    log.debug(f"Computed Rosenbluth boundary data at {npts} points with {nranks} worker(s)")
    return data


def boundary_data_from_fields(fields: dict) -> RosenbluthBoundaryData:
    """Boundary data taken from full 2D arrays keyed like ROSENBLUTH_QUANTITIES."""
    return RosenbluthBoundaryData(
        **{name: EdgeData.from_field(fields[name]) for name in ROSENBLUTH_QUANTITIES}
    )


def maxwellian_boundary_data(dens, upar, vth, vpa, vperp) -> RosenbluthBoundaryData:
    """Exact boundary data of a Maxwellian field distribution."""
    return boundary_data_from_fields(rosenbluth_potentials_maxwellian(dens, upar, vth, vpa, vperp))


def compare_boundary_data(numerical: RosenbluthBoundaryData, exact: RosenbluthBoundaryData) -> dict:
    """Maximum absolute difference on the edges for every quantity."""
    errors = {}
    for name, edge in numerical.items():
        ref = getattr(exact, name)
        errors[name] = float(
            max(
                np.max(np.abs(edge.lower_vpa - ref.lower_vpa)),
                np.max(np.abs(edge.upper_vpa - ref.upper_vpa)),
                np.max(np.abs(edge.upper_vperp - ref.upper_vperp)),
            )
        )
    return errors
