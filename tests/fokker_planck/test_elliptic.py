"""Tests for the weak-form elliptic solves of the Rosenbluth potentials."""

import numpy as np
import pytest

from fokker_planck.boundary_data import maxwellian_boundary_data
from fokker_planck.datastructures import (
    ROSENBLUTH_QUANTITIES,
    CollisionOperatorWorkspace,
    EdgeData,
)
from fokker_planck.elliptic import (
    calculate_rosenbluth_potentials,
    elliptic_solve,
    perpendicular_laplacian_edges,
)
from fokker_planck.maxwellian import F_maxwellian, rosenbluth_potentials_maxwellian
from fokker_planck.metrics import relative_max_error

MOMENTS = (1.0, 1.0, 1.0)
FIRST_ORDER = ("H", "dHdvpa", "dHdvperp", "G", "dGdvperp")
SECOND_ORDER = ("d2Gdvpa2", "d2Gdvperp2", "d2Gdvperpdvpa")


def solve_potentials(operators):
    """Numerical and exact potentials of a Maxwellian with exact boundary data."""
    vpa, vperp = operators.vpa, operators.vperp
    F = F_maxwellian(*MOMENTS, vpa, vperp)
    workspace = CollisionOperatorWorkspace.allocate(vpa.n, vperp.n)
    boundary_data = maxwellian_boundary_data(*MOMENTS, vpa, vperp)
    calculate_rosenbluth_potentials(F, operators, workspace, boundary_data)
    exact = rosenbluth_potentials_maxwellian(*MOMENTS, vpa, vperp)
    return workspace.potentials(), exact


@pytest.fixture(scope="module")
def coarse_potentials(coarse_operators):
    return solve_potentials(coarse_operators)


@pytest.fixture(scope="module")
def medium_potentials(medium_operators):
    return solve_potentials(medium_operators)


class TestEllipticSolve:
    """Tests for a single Dirichlet solve."""

    def test_quadratic_is_exact(self, coarse_operators):
        """u = vpa^2 + vperp^2 lies in the element space and has del^2 u = 6."""
        ops = coarse_operators
        vpa, vperp = ops.vpa.grid[:, None], ops.vperp.grid[None, :]
        u_exact = vpa**2 + vperp**2
        u = np.zeros(ops.shape)
        elliptic_solve(
            u,
            np.full(ops.shape, 6.0),
            EdgeData.from_field(u_exact),
            ops.factorizations["LP"],
            ops.LP2D,
            ops.MM2D,
            ops.boundary_indices,
        )
        assert np.allclose(u, u_exact, rtol=0.0, atol=1e-9)

    def test_boundary_values_imposed(self, coarse_operators, rng):
        ops = coarse_operators
        edges = EdgeData.from_field(rng.standard_normal(ops.shape))
        u = np.zeros(ops.shape)
        elliptic_solve(
            u,
            rng.standard_normal(ops.shape),
            edges,
            ops.factorizations["LP"],
            ops.LP2D,
            ops.MM2D,
            ops.boundary_indices,
        )
        result = EdgeData.from_field(u)
        assert np.allclose(result.lower_vpa, edges.lower_vpa, atol=1e-12)
        assert np.allclose(result.upper_vpa, edges.upper_vpa, atol=1e-12)
        assert np.allclose(result.upper_vperp, edges.upper_vperp, atol=1e-12)

    def test_parallel_write_matches_serial(self, coarse_operators, rng):
        ops = coarse_operators
        source = rng.standard_normal(ops.shape)
        edges = EdgeData.allocate(*ops.shape)
        results = []
        for nranks in (1, 4):
            u = np.zeros(ops.shape)
            elliptic_solve(
                u,
                source,
                edges,
                ops.factorizations["LV"],
                ops.LV2D,
                ops.PPperp2D,
                ops.boundary_indices,
                nranks=nranks,
            )
            results.append(u)
        assert np.array_equal(results[0], results[1])


class TestRosenbluthPotentials:
    """Potentials of a Maxwellian against the analytical results."""

    @pytest.mark.parametrize("name", FIRST_ORDER)
    def test_first_order_quantities(self, medium_potentials, name):
        numerical, exact = medium_potentials
        assert relative_max_error(exact[name], numerical[name]) < 1e-2

    @pytest.mark.parametrize("name", SECOND_ORDER)
    def test_second_order_quantities(self, medium_potentials, name):
        numerical, exact = medium_potentials
        assert relative_max_error(exact[name], numerical[name]) < 5e-2

    @pytest.mark.parametrize("name", ("H", "G", "dHdvpa", "d2Gdvpa2"))
    def test_refinement_reduces_error(self, coarse_potentials, medium_potentials, name):
        coarse = relative_max_error(coarse_potentials[1][name], coarse_potentials[0][name])
        medium = relative_max_error(medium_potentials[1][name], medium_potentials[0][name])
        assert medium < coarse / 2

    def test_all_quantities_filled(self, medium_potentials):
        numerical, _ = medium_potentials
        assert set(numerical) == set(ROSENBLUTH_QUANTITIES)
        for values in numerical.values():
            assert np.all(np.isfinite(values))
            assert np.max(np.abs(values)) > 0.0

    def test_perpendicular_laplacian_edges(self, coarse_operators):
        """d2G/dvperp2 + dG/dvperp / vperp = 2 H - d2G/dvpa2 on the edges."""
        vpa, vperp = coarse_operators.vpa, coarse_operators.vperp
        data = maxwellian_boundary_data(*MOMENTS, vpa, vperp)
        edges = perpendicular_laplacian_edges(data, vperp)
        for side in ("lower_vpa", "upper_vpa", "upper_vperp"):
            expected = 2.0 * getattr(data.H, side) - getattr(data.d2Gdvpa2, side)
            assert np.allclose(getattr(edges, side), expected, rtol=1e-9, atol=1e-10)
