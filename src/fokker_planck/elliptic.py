"""Weak-form elliptic solves for the Rosenbluth potentials.

Each potential is found from

    L u = B s

with ``L`` the (vector) Laplacian, ``B`` a weak-form source operator and
Dirichlet data on the outer edges. The right-hand side is built with the
raw operators, the known boundary values are moved to it, and the system is
solved with the factorized boundary-condition variant of ``L``.
"""

from __future__ import annotations

import logging

import numpy as np

from fem.exceptions import check_shape
from fem.indexing import ravel_c_to_vpavperp, ravel_vpavperp_to_c
from fem.linear_solvers import Factorization
from utilities.parallel import fill_by_blocks

from .datastructures import CollisionOperatorWorkspace, EdgeData, RosenbluthBoundaryData
from .operators import FokkerPlanckOperators

log = logging.getLogger(__name__)

SQRT_PI = np.sqrt(np.pi)


def elliptic_solve(
    out: np.ndarray,
    source: np.ndarray,
    edge_data: EdgeData,
    factorization: Factorization,
    raw_operator,
    rhs_operator,
    boundary_indices: np.ndarray,
    workspace: CollisionOperatorWorkspace | None = None,
    nranks: int = 1,
) -> np.ndarray:
    """
    Solve ``raw_operator u = rhs_operator source`` with Dirichlet data.

    Parameters
    ----------
    out : np.ndarray
        Result array of shape (nvpa, nvperp), overwritten
    source : np.ndarray
        Source field of shape (nvpa, nvperp)
    edge_data : EdgeData
        Values of ``u`` on the Dirichlet edges
    factorization : Factorization
        Factorization of the boundary-condition variant of ``raw_operator``
    raw_operator, rhs_operator : sparse matrix
        Operators on compound vectors
    boundary_indices : np.ndarray
        Compound indices of the Dirichlet edges
    workspace : CollisionOperatorWorkspace, optional
        Scratch buffers for the compound vectors
    nranks : int
        Workers writing the result

    Returns
    -------
    np.ndarray
        ``out``
    """
    nvpa, nvperp = out.shape
    check_shape(source, (nvpa, nvperp), "source")
    if workspace is not None:
        sc, rhsc = workspace.sc, workspace.rhsc
    else:
        sc, rhsc = np.zeros(nvpa * nvperp), np.zeros(nvpa * nvperp)

    ravel_vpavperp_to_c(source, nvpa, nvperp, out=sc)
    rhsc[:] = rhs_operator @ sc

    u_bnd = ravel_vpavperp_to_c(edge_data.to_field(nvpa, nvperp), nvpa, nvperp)[boundary_indices]
    rhsc -= raw_operator[:, boundary_indices] @ u_bnd
    rhsc[boundary_indices] = u_bnd

    solution = factorization.solve(rhsc)
    return fill_by_blocks(out, ravel_c_to_vpavperp(solution, nvpa, nvperp), nranks)


def mass_matrix_solve(
    out: np.ndarray, rhsc: np.ndarray, operators: FokkerPlanckOperators, nranks: int = 1
) -> np.ndarray:
    """Solve ``MM2D u = rhsc`` with the Cholesky factor."""
    solution = operators.factorizations["MM"].solve(rhsc)
    return fill_by_blocks(out, ravel_c_to_vpavperp(solution, *out.shape), nranks)


def perpendicular_laplacian_edges(boundary_data: RosenbluthBoundaryData, vperp) -> EdgeData:
    """Edge values of ``d2G/dvperp2 + (1/vperp) dG/dvperp``."""
    d2G, dG = boundary_data.d2Gdvperp2, boundary_data.dGdvperp
    return EdgeData(
        lower_vpa=d2G.lower_vpa + dG.lower_vpa / vperp.grid,
        upper_vpa=d2G.upper_vpa + dG.upper_vpa / vperp.grid,
        upper_vperp=d2G.upper_vperp + dG.upper_vperp / vperp.grid[-1],
    )


def calculate_rosenbluth_potentials(
    F: np.ndarray,
    operators: FokkerPlanckOperators,
    workspace: CollisionOperatorWorkspace,
    boundary_data: RosenbluthBoundaryData,
    algebraic_solve_for_d2Gdvperp2: bool = True,
    nranks: int = 1,
) -> CollisionOperatorWorkspace:
    """
    Fill the workspace with the potentials of ``F`` and their derivatives.

    H and its first derivatives come from ``del^2 H = -4/sqrt(pi) F``, G and
    its derivatives from ``del^2 G = 2 H``. Perpendicular derivatives use the
    vector Laplacian.

    ``d2G/dvperp2`` follows from ``del_perp^2 G = d2G/dvperp2 + (1/vperp) dG/dvperp``.
    With ``algebraic_solve_for_d2Gdvperp2`` the perpendicular Laplacian is
    ``2 H - d2G/dvpa2``; otherwise it is solved for from
    ``del^2 (del_perp^2 G) = del_perp^2 (2 H)``, the two operators commuting.
    """
    nvpa, nvperp = operators.shape
    check_shape(F, (nvpa, nvperp), "F")
    factors = operators.factorizations
    bnd = operators.boundary_indices
    LP, LV = factors["LP"], factors["LV"]
    S = workspace.S_dummy

    def solve(out, edge, factor, raw, rhs_operator):
        elliptic_solve(out, S, edge, factor, raw, rhs_operator, bnd, workspace, nranks)

    S[:] = -(4.0 / SQRT_PI) * F
    solve(workspace.HH, boundary_data.H, LP, operators.LP2D, operators.MM2D)
    solve(workspace.dHdvpa, boundary_data.dHdvpa, LP, operators.LP2D, operators.PPpar2D)
    solve(workspace.dHdvperp, boundary_data.dHdvperp, LV, operators.LV2D, operators.PPperp2D)

    S[:] = 2.0 * workspace.HH
    solve(workspace.GG, boundary_data.G, LP, operators.LP2D, operators.MM2D)
    solve(workspace.d2Gdvpa2, boundary_data.d2Gdvpa2, LP, operators.LP2D, operators.KKpar2D_with_BC_terms)
    solve(workspace.dGdvperp, boundary_data.dGdvperp, LV, operators.LV2D, operators.PPperp2D)
    solve(
        workspace.d2Gdvperpdvpa,
        boundary_data.d2Gdvperpdvpa,
        LV,
        operators.LV2D,
        operators.PPparPPperp2D,
    )

    if algebraic_solve_for_d2Gdvperp2:
        S[:] = 2.0 * workspace.HH - workspace.d2Gdvpa2
    else:
        laplacian_perp = workspace.rhsvpavperp
        solve(
            laplacian_perp,
            perpendicular_laplacian_edges(boundary_data, operators.vperp),
            LP,
            operators.LP2D,
            operators.KKperp2D_with_BC_terms,
        )
        S[:] = laplacian_perp

    # M d2Gdvperp2 = M del_perp^2 G - MR dGdvperp
    ravel_vpavperp_to_c(S, nvpa, nvperp, out=workspace.sc)
    workspace.rhsc[:] = operators.MM2D @ workspace.sc
    ravel_vpavperp_to_c(workspace.dGdvperp, nvpa, nvperp, out=workspace.sc)
    workspace.rhsc -= operators.MR2D @ workspace.sc
    mass_matrix_solve(workspace.d2Gdvperp2, workspace.rhsc, operators, nranks)

    log.debug("Calculated Rosenbluth potentials")
    return workspace
