"""Tests for coordinate construction and compound indexing."""

import numpy as np
import pytest

from fem.coordinates import Discretization, GridInput, define_coordinate, grid_input_from_config
from fem.exceptions import ConfigurationError, ShapeMismatchError
from fem.indexing import (
    compound_index,
    compound_index_inverse,
    local_compound_indices,
    ravel_c_to_vpavperp,
    ravel_vpavperp_to_c,
)


class TestDefineCoordinate:
    """Tests for define_coordinate."""

    @pytest.mark.parametrize("ngrid,nelement", [(3, 1), (5, 4), (7, 3)])
    def test_point_count(self, ngrid, nelement):
        """n = (ngrid - 1) * nelement + 1."""
        coord, _ = define_coordinate(GridInput("vpa", ngrid, nelement, 4.0))
        assert coord.n == (ngrid - 1) * nelement + 1
        assert coord.grid.shape == (coord.n,)
        assert coord.igrid_full.shape == (ngrid, nelement)

    def test_vpa_domain(self):
        """vpa spans [-L/2, L/2] with increasing nodes."""
        vpa, _ = define_coordinate(GridInput("vpa", 5, 4, 12.0))
        assert np.isclose(vpa.grid[0], -6.0)
        assert np.isclose(vpa.grid[-1], 6.0)
        assert np.all(np.diff(vpa.grid) > 0)
        assert vpa.lower_index == 0
        assert not vpa.cylindrical

    def test_vperp_domain(self):
        """vperp spans (0, L] with no node on the axis."""
        vperp, spectral = define_coordinate(GridInput("vperp", 5, 4, 6.0))
        assert vperp.grid[0] > 0.0
        assert np.isclose(vperp.grid[-1], 6.0)
        assert np.all(np.diff(vperp.grid) > 0)
        assert vperp.cylindrical
        assert vperp.lower_index is None
        assert np.all(spectral.x_quad > 0.0)

    def test_shared_element_nodes(self):
        """The last node of each element is the first node of the next."""
        vpa, _ = define_coordinate(GridInput("vpa", 5, 6, 12.0))
        assert np.all(vpa.igrid_full[-1, :-1] == vpa.igrid_full[0, 1:])
        assert np.allclose(vpa.grid[vpa.imax[:-1]], vpa.element_boundaries[1:-1])

    def test_weights_integrate_polynomials(self):
        """vpa weights integrate 1 and x^2; vperp weights include 2 vperp."""
        vpa, _ = define_coordinate(GridInput("vpa", 5, 4, 12.0))
        vperp, _ = define_coordinate(GridInput("vperp", 5, 4, 6.0))
        assert np.isclose(np.sum(vpa.wgts), 12.0)
        assert np.isclose(np.sum(vpa.wgts * vpa.grid**2), 2 * 6.0**3 / 3)
        assert np.isclose(np.sum(vperp.wgts), 36.0)
        assert np.isclose(np.sum(vperp.wgts * vperp.grid**2), 6.0**4 / 2)

    def test_weights_integrate_gaussian(self):
        """Gaussian moments are integrated to high accuracy."""
        vpa, _ = define_coordinate(GridInput("vpa", 5, 16, 12.0))
        vperp, _ = define_coordinate(GridInput("vperp", 5, 8, 6.0))
        assert np.isclose(np.sum(vpa.wgts * np.exp(-vpa.grid**2)), np.sqrt(np.pi), rtol=1e-4)
        assert np.isclose(np.sum(vperp.wgts * np.exp(-vperp.grid**2)), 1.0, rtol=1e-4)

    def test_arrays_read_only(self):
        """Coordinate arrays cannot be modified."""
        vpa, _ = define_coordinate(GridInput("vpa", 5, 2, 4.0))
        with pytest.raises(ValueError):
            vpa.grid[0] = 1.0
        with pytest.raises(ValueError):
            vpa.wgts[0] = 1.0

    def test_chebyshev(self):
        """Chebyshev elements share the coordinate layout."""
        vpa, spectral = define_coordinate(
            GridInput("vpa", 5, 4, 12.0, Discretization.CHEBYSHEV_PSEUDOSPECTRAL)
        )
        assert spectral is not None
        assert np.isclose(np.sum(vpa.wgts), 12.0)

    def test_finite_difference(self):
        """Finite-difference coordinates are uniform with no element tables."""
        vpa, spectral = define_coordinate(
            GridInput("vpa", 3, 8, 4.0, Discretization.FINITE_DIFFERENCE)
        )
        assert spectral is None
        assert np.allclose(np.diff(vpa.grid), 0.25)
        assert np.isclose(np.sum(vpa.wgts), 4.0)

    def test_spectral_derivative(self):
        """Nodal derivative of a smooth function."""
        vpa, spectral = define_coordinate(GridInput("vpa", 7, 8, 6.0))
        df = spectral.derivative(np.sin(vpa.grid), vpa)
        assert np.max(np.abs(df - np.cos(vpa.grid))) < 1e-4


class TestGridValidation:
    """Tests for invalid grid inputs."""

    @pytest.mark.parametrize(
        "kwargs",
        [
            dict(ngrid=1, nelement=2, L=1.0),
            dict(ngrid=5, nelement=0, L=1.0),
            dict(ngrid=5, nelement=2, L=0.0),
            dict(ngrid=5, nelement=2, L=-1.0),
        ],
    )
    def test_invalid_input(self, kwargs):
        with pytest.raises(ConfigurationError):
            define_coordinate(GridInput("vpa", **kwargs))

    def test_unknown_discretization(self):
        with pytest.raises(ConfigurationError):
            Discretization.from_value("spline")

    def test_from_half_length(self):
        grid_input = GridInput.from_half_length("vpa", 5, 2, 3.0)
        assert grid_input.L == 6.0
        with pytest.raises(ConfigurationError):
            GridInput.from_half_length("vpa", 5, 2, -1.0)

    def test_from_config(self):
        grid_input = grid_input_from_config(
            "vperp", {"ngrid": 4, "nelement": 3, "L": 5.0, "discretization": "chebyshev_pseudospectral"}
        )
        assert grid_input.discretization is Discretization.CHEBYSHEV_PSEUDOSPECTRAL
        assert grid_input.ngrid == 4


class TestCompoundIndex:
    """Tests for compound indexing."""

    def test_forward(self):
        assert compound_index(2, 3, 5) == 17
        assert compound_index(0, 0, 5) == 0

    def test_inverse(self):
        assert compound_index_inverse(17, 5) == (2, 3)

    def test_bijection(self):
        """Every compound index appears exactly once."""
        i1, i2 = np.meshgrid(np.arange(4), np.arange(3), indexing="ij")
        c = compound_index(i1.ravel(), i2.ravel(), 4)
        assert np.array_equal(np.sort(c), np.arange(12))
        j1, j2 = compound_index_inverse(c, 4)
        assert np.array_equal(j1, i1.ravel())
        assert np.array_equal(j2, i2.ravel())

    def test_out_of_range(self):
        with pytest.raises(IndexError):
            compound_index(5, 0, 5)
        with pytest.raises(IndexError):
            compound_index_inverse(-1, 5)

    def test_local_indices(self):
        i1, i2 = local_compound_indices(3, 2)
        assert np.array_equal(i1, [0, 1, 2, 0, 1, 2])
        assert np.array_equal(i2, [0, 0, 0, 1, 1, 1])


class TestRavel:
    """Tests for 2D <-> compound conversion."""

    def test_vpa_fast_index(self, rng):
        f = rng.standard_normal((4, 3))
        fc = ravel_vpavperp_to_c(f, 4, 3)
        for ivpa in range(4):
            for ivperp in range(3):
                assert fc[ivpa + 4 * ivperp] == f[ivpa, ivperp]

    def test_unravel(self, rng):
        f = rng.standard_normal((4, 3))
        out = np.zeros((4, 3))
        ravel_c_to_vpavperp(ravel_vpavperp_to_c(f, 4, 3), 4, 3, out=out)
        assert np.array_equal(out, f)

    def test_shape_mismatch(self):
        with pytest.raises(ShapeMismatchError):
            ravel_vpavperp_to_c(np.zeros((3, 4)), 4, 3)
        with pytest.raises(ShapeMismatchError):
            ravel_c_to_vpavperp(np.zeros(11), 4, 3)
