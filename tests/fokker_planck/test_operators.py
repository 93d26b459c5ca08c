"""Tests for operator initialisation and the weak second derivatives."""

import numpy as np
import pytest

from fem.coordinates import Discretization, GridInput, define_coordinate
from fem.exceptions import ConfigurationError
from fem.linear_solvers import FactorizationCache
from fokker_planck.operators import init_fokker_planck_operators
from fokker_planck.metrics import convergence_orders, expected_order
from fokker_planck.verification import expected_nelement_scaling, second_derivative_test

FACTORIZATIONS = ("MM", "MM_zero_bc", "LP", "LV")


class TestInitialisation:
    """Tests for init_fokker_planck_operators."""

    def test_dimensions(self, coarse_operators):
        ops = coarse_operators
        assert ops.shape == (ops.vpa.n, ops.vperp.n)
        assert ops.nc == ops.nvpa * ops.nvperp
        for name in ("MM2D", "LP2D", "LV2D", "MR2D", "PPpar2D", "PPperp2D", "PPparPPperp2D"):
            assert getattr(ops, name).shape == (ops.nc, ops.nc)

    def test_factorizations_registered(self, coarse_operators):
        for name in FACTORIZATIONS:
            assert name in coarse_operators.factorizations

    def test_symmetric_operators(self, coarse_operators):
        for name in ("MM2D", "KKpar2D", "KKperp2D", "LP2D", "LV2D", "MR2D"):
            A = getattr(coarse_operators, name)
            assert abs(A - A.T).max() < 1e-12

    def test_laplacian_annihilates_constants(self, coarse_operators):
        ones = np.ones(coarse_operators.nc)
        assert np.max(np.abs(coarse_operators.LP2D @ ones)) < 1e-11

    def test_uses_given_cache(self, coarse_grids):
        vpa, vpa_spectral, vperp, vperp_spectral = coarse_grids
        cache = FactorizationCache()
        ops = init_fokker_planck_operators(vpa, vperp, vpa_spectral, vperp_spectral, cache=cache)
        assert ops.factorizations is cache
        assert cache.factorization_count == len(FACTORIZATIONS)

    def test_parallel_assembly_matches_serial(self, coarse_grids, coarse_operators):
        vpa, vpa_spectral, vperp, vperp_spectral = coarse_grids
        ops = init_fokker_planck_operators(vpa, vperp, vpa_spectral, vperp_spectral, nranks=3)
        assert abs(ops.LV2D - coarse_operators.LV2D).max() < 1e-13

    def test_swapped_coordinates_rejected(self, coarse_grids):
        vpa, vpa_spectral, vperp, vperp_spectral = coarse_grids
        with pytest.raises(ConfigurationError):
            init_fokker_planck_operators(vperp, vpa, vperp_spectral, vpa_spectral)

    def test_finite_difference_rejected(self):
        fd = Discretization.FINITE_DIFFERENCE
        vpa, vpa_spectral = define_coordinate(GridInput("vpa", 5, 4, 12.0, fd))
        vperp, vperp_spectral = define_coordinate(GridInput("vperp", 5, 2, 6.0, fd))
        with pytest.raises(ConfigurationError):
            init_fokker_planck_operators(vpa, vperp, vpa_spectral, vperp_spectral)


def operators_for(
    ngrid, nelement_vpa, nelement_vperp, discretization, vpa_half_length=6.0, vperp_half_length=3.0
):
    vpa, vpa_spectral = define_coordinate(
        GridInput.from_half_length("vpa", ngrid, nelement_vpa, vpa_half_length, discretization)
    )
    vperp, vperp_spectral = define_coordinate(
        GridInput.from_half_length("vperp", ngrid, nelement_vperp, vperp_half_length, discretization)
    )
    return init_fokker_planck_operators(vpa, vperp, vpa_spectral, vperp_spectral)


@pytest.fixture(scope="module")
def legendre_fine_operators():
    """ngrid=5 with 32 x 16 Legendre elements."""
    return operators_for(5, 32, 16, Discretization.GAUSS_LEGENDRE_PSEUDOSPECTRAL)


@pytest.fixture(scope="module")
def chebyshev_fine_operators():
    """ngrid=5 with 64 x 32 Chebyshev elements."""
    return operators_for(5, 64, 32, Discretization.CHEBYSHEV_PSEUDOSPECTRAL)


class TestSecondDerivatives:
    """Weak second derivatives of exp(-vpa^2 - vperp^2)."""

    # (operator fixture, vpa bound, vperp bound) on 16 x 8 elements
    MEDIUM_BOUNDS = [
        ("medium_operators", 3e-3, 1e-2),
        ("chebyshev_medium_operators", 2.5e-2, 9e-2),
    ]

    @pytest.mark.parametrize("fixture,vpa_bound,vperp_bound", MEDIUM_BOUNDS)
    def test_accuracy(self, request, fixture, vpa_bound, vperp_bound):
        err_vpa, err_vperp = second_derivative_test(request.getfixturevalue(fixture))
        assert err_vpa.max < vpa_bound
        assert err_vperp.max < vperp_bound
        assert err_vpa.L2 <= err_vpa.max

    @pytest.mark.parametrize("fixture,vpa_bound,vperp_bound", MEDIUM_BOUNDS)
    def test_zero_boundary(self, request, fixture, vpa_bound, vperp_bound):
        err_vpa, err_vperp = second_derivative_test(
            request.getfixturevalue(fixture), impose_zero_boundary=True
        )
        assert err_vpa.max < vpa_bound
        assert err_vperp.max < vperp_bound

    def test_reference_resolution(self):
        """ngrid=5, 16 elements per coordinate, half lengths 6 and 3.

        Both derivatives are accurate to about 1.5e-3 here; an error of
        1e-6 needs a higher ngrid or many more elements.
        """
        ops = operators_for(5, 16, 16, Discretization.GAUSS_LEGENDRE_PSEUDOSPECTRAL)
        err_vpa, err_vperp = second_derivative_test(ops)
        assert err_vpa.max < 3e-3
        assert err_vperp.max < 3e-3

    def test_refinement(self, coarse_operators, medium_operators):
        coarse = second_derivative_test(coarse_operators)
        medium = second_derivative_test(medium_operators)
        for c, m in zip(coarse, medium):
            assert m.max < c.max / 3

    def test_legendre_order(self, coarse_operators, medium_operators, legendre_fine_operators):
        """The parallel derivative converges close to the expected (1/nelement)^(ngrid-1)."""
        nelement = [8, 16, 32]
        errors = [
            second_derivative_test(ops)[0].max
            for ops in (coarse_operators, medium_operators, legendre_fine_operators)
        ]
        observed = np.mean(convergence_orders(errors, nelement))
        assert observed > expected_order(expected_nelement_scaling(nelement, 5), nelement) - 1.5
        fine_vperp = second_derivative_test(legendre_fine_operators)[1].max
        assert fine_vperp < second_derivative_test(medium_operators)[1].max

    def test_chebyshev_order(self, chebyshev_medium_operators, chebyshev_fine_operators):
        nelement = [16, 64]
        medium = second_derivative_test(chebyshev_medium_operators)
        fine = second_derivative_test(chebyshev_fine_operators)
        target = expected_order(expected_nelement_scaling(nelement, 5), nelement) - 1.5
        for m, f in zip(medium, fine):
            assert convergence_orders([m.max, f.max], nelement)[0] > target
