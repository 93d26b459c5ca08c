"""Verification of the weak-form operators against Maxwellian solutions.

- ``second_derivative_test``: mass-matrix solves of the weak second derivatives
- ``weak_form_collision_test``: potentials and C[Fs, Fs'] for Maxwellian inputs
- ``run_assembly_test``: element-count scan with expected scalings and timings
"""

from __future__ import annotations

import logging
import time

import numpy as np

from fem.coordinates import Discretization, GridInput, define_coordinate
from fem.indexing import ravel_c_to_vpavperp, ravel_vpavperp_to_c

from .boundary_data import compare_boundary_data, maxwellian_boundary_data
from .collisions import fokker_planck_collision_operator_weak_form
from .conservation import conserving_corrections, enforce_vpavperp_boundary_conditions
from .datastructures import (
    ERROR_QUANTITIES,
    AssemblyTestResult,
    CollisionOperatorWorkspace,
    CollisionTestErrors,
    CollisionTestParameters,
    MomentErrors,
)
from .elliptic import elliptic_solve
from .maxwellian import Cssp_maxwellian_inputs, F_maxwellian, rosenbluth_potentials_maxwellian
from .metrics import error_data
from .moments import entropy_production, get_density, get_ppar, get_pperp, get_pressure, get_upar
from .operators import FokkerPlanckOperators, init_fokker_planck_operators

log = logging.getLogger(__name__)


def define_velocity_grids(params: CollisionTestParameters):
    """(vpa, vpa_spectral, vperp, vperp_spectral) for the test parameters."""
    discretization = Discretization.from_value(params.discretization)
    vpa, vpa_spectral = define_coordinate(
        GridInput("vpa", params.ngrid, params.nelement_vpa, params.Lvpa, discretization)
    )
    vperp, vperp_spectral = define_coordinate(
        GridInput("vperp", params.ngrid, params.nelement_vperp, params.Lvperp, discretization)
    )
    return vpa, vpa_spectral, vperp, vperp_spectral


# ========================================================
# Second derivative test
# ========================================================


def second_derivative_test(operators: FokkerPlanckOperators, impose_zero_boundary: bool = False):
    """
    Weak second derivatives of exp(-vpa^2 - vperp^2).

    ``M^-1 KKpar2D_with_BC_terms f`` approximates d2f/dvpa2 = (4 vpa^2 - 2) f
    and ``M^-1 KKperp2D_with_BC_terms f`` approximates
    (1/vperp) d/dvperp (vperp df/dvperp) = (4 vperp^2 - 4) f.

    Returns
    -------
    tuple of ErrorData
        Errors of the parallel and perpendicular derivatives
    """
    vpa, vperp = operators.vpa, operators.vperp
    nvpa, nvperp = operators.shape
    vpa2 = vpa.grid[:, None] ** 2
    vperp2 = vperp.grid[None, :] ** 2
    f = np.exp(-vpa2 - vperp2)
    exact_vpa = (4.0 * vpa2 - 2.0) * f
    exact_vperp = (4.0 * vperp2 - 4.0) * f

    fc = ravel_vpavperp_to_c(f, nvpa, nvperp)
    results = []
    for K, exact in (
        (operators.KKpar2D_with_BC_terms, exact_vpa),
        (operators.KKperp2D_with_BC_terms, exact_vperp),
    ):
        rhsc = K @ fc
        if impose_zero_boundary:
            rhsc[operators.boundary_indices] = 0.0
            solution = operators.factorizations["MM_zero_bc"].solve(rhsc)
        else:
            solution = operators.factorizations["MM"].solve(rhsc)
        numerical = ravel_c_to_vpavperp(solution, nvpa, nvperp)
        results.append(error_data(exact, numerical, vpa, vperp))
    return tuple(results)


# ========================================================
# Weak-form collision operator test
# ========================================================


def weak_form_collision_test(params: CollisionTestParameters, operators: FokkerPlanckOperators | None = None):
    """
    Compare the weak-form operator with the exact Maxwellian results.

    Parameters
    ----------
    params : CollisionTestParameters
        Grid and operator options
    operators : FokkerPlanckOperators, optional
        Reuse previously assembled operators on the same grid

    Returns
    -------
    errors : CollisionTestErrors
    calculate_time : float
        Seconds spent evaluating the operator
    init_time : float
        Seconds spent assembling and factorizing
    """
    start = time.perf_counter()
    if operators is None:
        vpa, vpa_spectral, vperp, vperp_spectral = define_velocity_grids(params)
        operators = init_fokker_planck_operators(
            vpa, vperp, vpa_spectral, vperp_spectral, nranks=params.nranks
        )
    vpa, vperp = operators.vpa, operators.vperp
    init_time = time.perf_counter() - start

    # field particles (dens, upar, vth), test particles (denss, upars, vths)
    dens, upar, vth = 1.0, 1.0, 1.0
    if params.test_self_operator:
        denss, upars, vths = dens, upar, vth
    else:
        denss, upars, vths = 1.0, -1.0, 2.0 / 3.0
    ms, msp, nussp = params.ms, params.msp, params.nussp

    Fs = F_maxwellian(denss, upars, vths, vpa, vperp)
    F = F_maxwellian(dens, upar, vth, vpa, vperp)
    exact = rosenbluth_potentials_maxwellian(dens, upar, vth, vpa, vperp)
    exact["C"] = Cssp_maxwellian_inputs(
        denss, upars, vths, ms, dens, upar, vth, msp, nussp, vpa, vperp
    )
    boundary_exact = maxwellian_boundary_data(dens, upar, vth, vpa, vperp)

    start = time.perf_counter()
    workspace = CollisionOperatorWorkspace.allocate(vpa.n, vperp.n)
    fokker_planck_collision_operator_weak_form(
        Fs,
        F,
        ms,
        msp,
        nussp,
        operators,
        workspace,
        use_maxwellian_rosenbluth_coefficients=params.use_maxwellian_rosenbluth_coefficients,
        use_maxwellian_field_particle_distribution=params.use_maxwellian_field_particle_distribution,
        impose_zero_boundary=params.impose_zero_boundary,
        algebraic_solve_for_d2Gdvperp2=params.algebraic_solve_for_d2Gdvperp2,
        nranks=params.nranks,
    )
    C = workspace.CC.copy()
    if params.test_numerical_conserving_terms and params.test_self_operator:
        enforce_vpavperp_boundary_conditions(C, vpa, vperp)
        conserving_corrections(C, Fs, vpa, vperp, mode=params.conservation_mode, mass=ms)

    # solve for G from the computed H as an additional check
    boundary_G = (
        boundary_exact.G
        if params.use_maxwellian_rosenbluth_coefficients
        else workspace.boundary_data.G
    )
    G = np.zeros_like(C)
    elliptic_solve(
        G,
        2.0 * workspace.HH,
        boundary_G,
        operators.factorizations["LP"],
        operators.LP2D,
        operators.MM2D,
        operators.boundary_indices,
        nranks=params.nranks,
    )
    calculate_time = time.perf_counter() - start

    numerical = dict(workspace.potentials())
    numerical["G"] = G
    numerical["C"] = C
    errors = {name: error_data(exact[name], numerical[name], vpa, vperp) for name in ERROR_QUANTITIES}

    boundary_errors = None
    if not params.use_maxwellian_rosenbluth_coefficients:
        boundary_errors = compare_boundary_data(workspace.boundary_data, boundary_exact)
        for name, value in boundary_errors.items():
            log.debug(f"boundary data {name}: max error {value:.3e}")

    delta_density = get_density(C, vpa, vperp)
    if params.test_self_operator:
        moments = MomentErrors(
            delta_density=delta_density,
            delta_upar=get_upar(C, vpa, vperp, dens),
            delta_pressure=get_pressure(
                get_ppar(C, vpa, vperp, upar, msp), get_pperp(C, vpa, vperp, msp)
            ),
        )
    else:
        moments = MomentErrors(delta_density=delta_density)

    result = CollisionTestErrors(
        **errors,
        moments=moments,
        entropy_production=entropy_production(Fs, C, vpa, vperp),
        boundary_data_errors=boundary_errors,
    )
    log.info(
        f"nelement=({vpa.nelement}, {vperp.nelement}), ngrid={vpa.ngrid}: "
        f"C max error {result.C.max:.3e}, L2 {result.C.L2:.3e} "
        f"(init {init_time:.2f}s, calculate {calculate_time:.2f}s)"
    )
    return result, calculate_time, init_time


# ========================================================
# Element-count scan
# ========================================================


def expected_nelement_scaling(nelement_list, ngrid: int) -> list:
    """(1 / nelement)^(ngrid - 1)."""
    return [(1.0 / n) ** (ngrid - 1) for n in nelement_list]


def expected_nelement_integral_scaling(nelement_list, ngrid: int) -> list:
    """(1 / nelement)^(ngrid + 1)."""
    return [(1.0 / n) ** (ngrid + 1) for n in nelement_list]


def expect_timing(nelement_list, power: float) -> list:
    return [float(n) ** power for n in nelement_list]


def run_assembly_test(ngrid: int = 5, nelement_list=(8,), **options) -> AssemblyTestResult:
    """
    Run the collision test for a list of element counts.

    Each entry ``n`` uses ``2n`` elements in vpa and ``n`` in vperp.
    Remaining keyword arguments are CollisionTestParameters fields.
    """
    nelement_list = [int(n) for n in nelement_list]
    max_errors = {name: [] for name in ERROR_QUANTITIES}
    L2_errors = {name: [] for name in ERROR_QUANTITIES}
    moments, calculate_times, init_times = [], [], []

    for nelement in nelement_list:
        params = CollisionTestParameters(
            ngrid=ngrid, nelement_vpa=2 * nelement, nelement_vperp=nelement, **options
        )
        errors, calculate_time, init_time = weak_form_collision_test(params)
        for name in ERROR_QUANTITIES:
            max_errors[name].append(getattr(errors, name).max)
            L2_errors[name].append(getattr(errors, name).L2)
        moments.append(errors.moments)
        calculate_times.append(calculate_time)
        init_times.append(init_time)

    return AssemblyTestResult(
        ngrid=ngrid,
        nelement_list=nelement_list,
        max_errors=max_errors,
        L2_errors=L2_errors,
        moments=moments,
        expected=expected_nelement_scaling(nelement_list, ngrid),
        expected_integral=expected_nelement_integral_scaling(nelement_list, ngrid),
        calculate_times=calculate_times,
        init_times=init_times,
    )
