"""Weak-form Fokker-Planck collision operator.

The collision operator of test species s with field species s' is

    C = nu_ss' div( del del G . del Fs - 2 (ms / ms') Fs del H )

with G and H the Rosenbluth potentials of Fs'. Projected on the test
functions it becomes a sum of element-local triple products

    (M C)_i = -nu sum_{k, j} Y_perp (x) Y_par [k, j, i] Fs_j Phi_k

with Phi one of the potential derivatives. Element pairs are shared among
workers, each accumulating a private compound vector; the vectors are summed
in a serial region before the mass-matrix solve.
"""

from __future__ import annotations

import logging

import numpy as np

from fem.exceptions import ConfigurationError, check_shape
from fem.indexing import compound_index, ravel_c_to_vpavperp
from utilities.parallel import ExecutionContext, fill_by_blocks, run_parallel_region

from .boundary_data import calculate_rosenbluth_boundary_data
from .datastructures import CollisionOperatorWorkspace, RosenbluthBoundaryData
from .elliptic import calculate_rosenbluth_potentials
from .maxwellian import F_maxwellian, rosenbluth_potentials_maxwellian
from .moments import get_moments
from .operators import FokkerPlanckOperators

log = logging.getLogger(__name__)


def _element_local(f: np.ndarray, vpa, vperp, ielement_vpa, ielement_vperp) -> np.ndarray:
    """Values of ``f`` on every listed element pair, shape (npairs, ngrid_vpa, ngrid_vperp)."""
    ivpa = vpa.igrid_full[:, ielement_vpa].T
    ivperp = vperp.igrid_full[:, ielement_vperp].T
    return f[ivpa[:, :, None], ivperp[:, None, :]]


def assemble_collision_rhs(
    Fs: np.ndarray,
    workspace: CollisionOperatorWorkspace,
    operators: FokkerPlanckOperators,
    mass_ratio: float,
    nranks: int = 1,
) -> np.ndarray:
    """
    Weak-form projection of ``-C / nu`` on the test functions.

    Parameters
    ----------
    Fs : np.ndarray
        Test-particle distribution, shape (nvpa, nvperp)
    workspace : CollisionOperatorWorkspace
        Holds the potentials of the field-particle distribution
    operators : FokkerPlanckOperators
        Grids and triple-product arrays
    mass_ratio : float
        ms / ms'
    nranks : int
        Workers sharing the element pairs

    Returns
    -------
    np.ndarray
        Compound vector of length nvpa * nvperp
    """
    vpa, vperp = operators.vpa, operators.vperp
    Y0par, Y1par, Y2par, Y3par = operators.vpa_Y
    Y0perp, Y1perp, Y2perp, Y3perp = operators.vperp_Y
    npairs = vpa.nelement * vperp.nelement
    nc = operators.nc

    # (coefficient, perpendicular array, parallel array, coefficient field)
    terms = (
        (1.0, Y0perp, Y2par, workspace.d2Gdvpa2),
        (1.0, Y3perp, Y1par, workspace.d2Gdvperpdvpa),
        (-2.0 * mass_ratio, Y0perp, Y1par, workspace.dHdvpa),
        (1.0, Y1perp, Y3par, workspace.d2Gdvperpdvpa),
        (1.0, Y2perp, Y0par, workspace.d2Gdvperp2),
        (-2.0 * mass_ratio, Y1perp, Y0par, workspace.dHdvperp),
    )

    def assemble_partition(context: ExecutionContext) -> np.ndarray:
        pairs = np.asarray(context.partition(npairs), dtype=int)
        rhs = np.zeros(nc)
        if pairs.size == 0:
            return rhs
        ielement_vperp, ielement_vpa = np.divmod(pairs, vpa.nelement)
        F_local = _element_local(Fs, vpa, vperp, ielement_vpa, ielement_vperp)

        local = np.zeros((pairs.size, vpa.ngrid, vperp.ngrid))
        for coefficient, Yperp, Ypar, field in terms:
            field_local = _element_local(field, vpa, vperp, ielement_vpa, ielement_vperp)
            local += coefficient * np.einsum(
                "pkji,plmn,pjm,pkl->pin",
                Ypar[ielement_vpa],
                Yperp[ielement_vperp],
                F_local,
                field_local,
                optimize=True,
            )

        ivpa = vpa.igrid_full[:, ielement_vpa].T
        ivperp = vperp.igrid_full[:, ielement_vperp].T
        ic = compound_index(ivpa[:, :, None], ivperp[:, None, :], vpa.n)
        np.add.at(rhs, ic.ravel(), local.ravel())
        return rhs

    partial = run_parallel_region(assemble_partition, nranks)

    # serial region: sum the private vectors
    return np.sum(partial, axis=0)


def fokker_planck_collision_operator_weak_form(
    Fs: np.ndarray,
    Fsp: np.ndarray,
    ms: float,
    msp: float,
    nussp: float,
    operators: FokkerPlanckOperators,
    workspace: CollisionOperatorWorkspace,
    boundary_data: RosenbluthBoundaryData | None = None,
    use_maxwellian_rosenbluth_coefficients: bool = False,
    use_maxwellian_field_particle_distribution: bool = False,
    impose_zero_boundary: bool = False,
    algebraic_solve_for_d2Gdvperp2: bool = True,
    nranks: int = 1,
) -> np.ndarray:
    """
    Evaluate the collision operator C[Fs, Fs'] into ``workspace.CC``.

    Parameters
    ----------
    Fs, Fsp : np.ndarray
        Test- and field-particle distributions, shape (nvpa, nvperp)
    ms, msp : float
        Species masses
    nussp : float
        Collision frequency
    operators : FokkerPlanckOperators
        Assembled and factorized operators
    workspace : CollisionOperatorWorkspace
        Buffers, overwritten
    boundary_data : RosenbluthBoundaryData, optional
        Dirichlet data for the potentials; computed from the Green's
        functions when omitted
    use_maxwellian_rosenbluth_coefficients : bool
        Use the analytical potentials of the Maxwellian with the moments
        of Fsp instead of solving for them
    use_maxwellian_field_particle_distribution : bool
        Replace Fsp by the Maxwellian with its moments before solving
    impose_zero_boundary : bool
        Solve for C with zero values on the Dirichlet edges
    algebraic_solve_for_d2Gdvperp2 : bool
        Obtain d2G/dvperp2 from the other G derivatives instead of an
        extra elliptic solve
    nranks : int
        Workers used in the parallel regions

    Returns
    -------
    np.ndarray
        ``workspace.CC``

    Raises
    ------
    ShapeMismatchError
        If an input does not match the grid.
    ConfigurationError
        If a mass is not positive.
    """
    nvpa, nvperp = operators.shape
    check_shape(Fs, (nvpa, nvperp), "Fs")
    check_shape(Fsp, (nvpa, nvperp), "Fsp")
    check_shape(workspace.CC, (nvpa, nvperp), "workspace")
    if ms <= 0 or msp <= 0:
        raise ConfigurationError(f"Species masses must be positive, got ms={ms}, msp={msp}")
    vpa, vperp = operators.vpa, operators.vperp

    if use_maxwellian_rosenbluth_coefficients or use_maxwellian_field_particle_distribution:
        moments = get_moments(Fsp, vpa, vperp, msp)
        maxwellian_args = (moments["density"], moments["upar"], moments["vth"], vpa, vperp)

    if use_maxwellian_rosenbluth_coefficients:
        for name, values in rosenbluth_potentials_maxwellian(*maxwellian_args).items():
            workspace.potentials()[name][:, :] = values
    else:
        F_field = F_maxwellian(*maxwellian_args) if use_maxwellian_field_particle_distribution else Fsp
        if boundary_data is None:
            boundary_data = calculate_rosenbluth_boundary_data(
                F_field,
                vpa,
                vperp,
                operators.vpa_spectral,
                operators.vperp_spectral,
                nranks=nranks,
                out=workspace.boundary_data,
            )
        workspace.boundary_data = boundary_data
        calculate_rosenbluth_potentials(
            F_field,
            operators,
            workspace,
            boundary_data,
            algebraic_solve_for_d2Gdvperp2=algebraic_solve_for_d2Gdvperp2,
            nranks=nranks,
        )

    rhsc = assemble_collision_rhs(Fs, workspace, operators, ms / msp, nranks)
    rhsc *= -nussp

    if impose_zero_boundary:
        rhsc[operators.boundary_indices] = 0.0
        solution = operators.factorizations["MM_zero_bc"].solve(rhsc)
    else:
        solution = operators.factorizations["MM"].solve(rhsc)
    workspace.rhsc[:] = rhsc

    fill_by_blocks(workspace.CC, ravel_c_to_vpavperp(solution, nvpa, nvperp), nranks)
    return workspace.CC
