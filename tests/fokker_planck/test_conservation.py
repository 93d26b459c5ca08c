"""Tests for the boundary and conserving corrections of a collision operator."""

import warnings

import numpy as np
import pytest

from fem.exceptions import ConfigurationError, ConvergenceWarning, ShapeMismatchError
from fokker_planck.conservation import (
    ConservationMode,
    conserving_corrections,
    enforce_vpavperp_boundary_conditions,
)
from fokker_planck.maxwellian import F_maxwellian
from fokker_planck.moments import get_density, get_upar


@pytest.fixture
def distribution(coarse_grids):
    vpa, _, vperp, _ = coarse_grids
    return F_maxwellian(1.0, 0.5, 1.0, vpa, vperp)


def moment_basis(F, vpa, vperp):
    """(1, wpar, wpar^2 + vperp^2) about the mean velocity of F."""
    upar = get_upar(F, vpa, vperp, get_density(F, vpa, vperp))
    wpar = np.broadcast_to(vpa.grid[:, None] - upar, F.shape)
    return np.ones_like(F), wpar, wpar**2 + vperp.grid[None, :] ** 2


class TestBoundaryConditions:
    """Tests for enforce_vpavperp_boundary_conditions."""

    def test_edges_zeroed(self, coarse_grids, rng):
        vpa, _, vperp, _ = coarse_grids
        C = rng.standard_normal((vpa.n, vperp.n))
        interior = C[1:-1, :-1].copy()
        result = enforce_vpavperp_boundary_conditions(C, vpa, vperp)
        assert result is C
        assert np.all(C[0] == 0.0) and np.all(C[-1] == 0.0) and np.all(C[:, -1] == 0.0)
        assert np.array_equal(C[1:-1, :-1], interior)

    def test_shape_checked(self, coarse_grids):
        vpa, _, vperp, _ = coarse_grids
        with pytest.raises(ShapeMismatchError):
            enforce_vpavperp_boundary_conditions(np.zeros((vpa.n, vperp.n + 1)), vpa, vperp)


class TestConservingCorrections:
    """Tests for conserving_corrections."""

    def test_full_removes_moments(self, coarse_grids, distribution, rng):
        vpa, _, vperp, _ = coarse_grids
        C = rng.standard_normal(distribution.shape) * distribution
        with warnings.catch_warnings():
            warnings.simplefilter("error", ConvergenceWarning)
            result = conserving_corrections(C, distribution, vpa, vperp)
        assert result.mode == "full"
        assert abs(result.delta_density) < 1e-10
        assert abs(result.delta_upar) < 1e-10
        assert abs(result.delta_pressure) < 1e-10

    def test_full_recovers_coefficients(self, coarse_grids, distribution):
        """A combination of the conserved quantities is removed entirely."""
        vpa, _, vperp, _ = coarse_grids
        psi0, psi1, psi2 = moment_basis(distribution, vpa, vperp)
        C = (0.3 * psi0 - 0.2 * psi1 + 0.1 * psi2) * distribution
        result = conserving_corrections(C, distribution, vpa, vperp, mode="full")
        assert np.allclose(result.coefficients, (0.3, -0.2, 0.1), rtol=1e-8)
        assert np.max(np.abs(C)) < 1e-12

    def test_density_mode(self, coarse_grids, distribution):
        vpa, _, vperp, _ = coarse_grids
        _, _, psi2 = moment_basis(distribution, vpa, vperp)
        C = 0.1 * psi2 * distribution
        with pytest.warns(ConvergenceWarning):
            result = conserving_corrections(C, distribution, vpa, vperp, mode=ConservationMode.DENSITY)
        assert result.mode == "density"
        assert len(result.coefficients) == 1
        assert abs(result.delta_density) < 1e-12
        assert abs(result.delta_pressure) > 1e-3

    def test_density_mode_accepts_string(self, coarse_grids, distribution):
        vpa, _, vperp, _ = coarse_grids
        C = 0.25 * distribution
        result = conserving_corrections(C, distribution, vpa, vperp, mode="density")
        assert np.isclose(result.coefficients[0], 0.25)
        assert np.max(np.abs(C)) < 1e-12

    def test_tolerance_controls_warning(self, coarse_grids, distribution):
        vpa, _, vperp, _ = coarse_grids
        _, _, psi2 = moment_basis(distribution, vpa, vperp)
        C = 0.1 * psi2 * distribution
        with warnings.catch_warnings():
            warnings.simplefilter("error", ConvergenceWarning)
            conserving_corrections(C, distribution, vpa, vperp, mode="density", tolerance=10.0)

    def test_unknown_mode(self, coarse_grids, distribution):
        vpa, _, vperp, _ = coarse_grids
        with pytest.raises(ConfigurationError):
            conserving_corrections(distribution.copy(), distribution, vpa, vperp, mode="energy")

    def test_result_dataframe(self, coarse_grids, distribution):
        vpa, _, vperp, _ = coarse_grids
        C = 0.01 * distribution
        df = conserving_corrections(C, distribution, vpa, vperp).to_dataframe()
        assert list(df["mode"]) == ["full"]
