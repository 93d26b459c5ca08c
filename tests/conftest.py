"""Pytest configuration and fixtures for the velocity-space operator tests."""

import sys
from pathlib import Path

import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


def _grids(
    ngrid, nelement_vpa, nelement_vperp, Lvpa=12.0, Lvperp=6.0, discretization="gausslegendre_pseudospectral"
):
    from fem.coordinates import Discretization, GridInput, define_coordinate

    discretization = Discretization.from_value(discretization)
    vpa, vpa_spectral = define_coordinate(GridInput("vpa", ngrid, nelement_vpa, Lvpa, discretization))
    vperp, vperp_spectral = define_coordinate(
        GridInput("vperp", ngrid, nelement_vperp, Lvperp, discretization)
    )
    return vpa, vpa_spectral, vperp, vperp_spectral


@pytest.fixture
def legendre_basis():
    """Legendre-Gauss-Lobatto basis with 5 points on [0, 2]."""
    from spectral import LegendreLobattoBasis

    return LegendreLobattoBasis(5, domain=(0.0, 2.0))


@pytest.fixture
def radau_basis():
    """Legendre-Gauss-Radau basis with 5 points on [0, 1]."""
    from spectral import LegendreRadauBasis

    return LegendreRadauBasis(5, domain=(0.0, 1.0))


@pytest.fixture(scope="session")
def coarse_grids():
    """ngrid=5 with 8 x 4 elements on vpa in [-6, 6], vperp in [0, 6]."""
    return _grids(5, 8, 4)


@pytest.fixture(scope="session")
def medium_grids():
    """ngrid=5 with 16 x 8 elements on vpa in [-6, 6], vperp in [0, 6]."""
    return _grids(5, 16, 8)


@pytest.fixture(scope="session")
def coarse_operators(coarse_grids):
    from fokker_planck.operators import init_fokker_planck_operators

    return init_fokker_planck_operators(*_ordered(coarse_grids))


@pytest.fixture(scope="session")
def medium_operators(medium_grids):
    from fokker_planck.operators import init_fokker_planck_operators

    return init_fokker_planck_operators(*_ordered(medium_grids))


def build_operators(ngrid, nelement_vpa, nelement_vperp, discretization="gausslegendre_pseudospectral"):
    from fokker_planck.operators import init_fokker_planck_operators

    grids = _grids(ngrid, nelement_vpa, nelement_vperp, discretization=discretization)
    return init_fokker_planck_operators(*_ordered(grids))


@pytest.fixture(scope="session")
def chebyshev_coarse_operators():
    """Chebyshev elements, ngrid=5 with 8 x 4 elements."""
    return build_operators(5, 8, 4, "chebyshev_pseudospectral")


@pytest.fixture(scope="session")
def chebyshev_medium_operators():
    """Chebyshev elements, ngrid=5 with 16 x 8 elements."""
    return build_operators(5, 16, 8, "chebyshev_pseudospectral")


def _ordered(grids):
    vpa, vpa_spectral, vperp, vperp_spectral = grids
    return vpa, vperp, vpa_spectral, vperp_spectral


@pytest.fixture
def maxwellian_moments():
    """(dens, upar, vth) of the field-particle Maxwellian used in the tests."""
    return 1.0, 1.0, 1.0


@pytest.fixture
def rng():
    return np.random.default_rng(1234)
