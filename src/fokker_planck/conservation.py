"""Boundary conditions and conserving corrections for a computed collision operator."""

from __future__ import annotations

import logging
import warnings
from enum import Enum

import numpy as np

from fem.exceptions import ConfigurationError, ConvergenceWarning, check_shape

from .datastructures import ConservationResult
from .moments import get_density, get_ppar, get_pperp, get_pressure, get_upar, integrate_over_vspace

log = logging.getLogger(__name__)


class ConservationMode(Enum):
    """Moments restored by the correction."""

    FULL = "full"  # density, parallel momentum and energy
    DENSITY = "density"


def enforce_vpavperp_boundary_conditions(C: np.ndarray, vpa, vperp) -> np.ndarray:
    """Zero C on the Dirichlet edges vpa = +-L/2 and vperp = L, in place."""
    check_shape(C, (vpa.n, vperp.n), "C")
    C[0, :] = 0.0
    C[-1, :] = 0.0
    C[:, -1] = 0.0
    return C


def conserving_corrections(
    C: np.ndarray,
    F: np.ndarray,
    vpa,
    vperp,
    mode=ConservationMode.FULL,
    tolerance: float = 1e-6,
    mass: float = 1.0,
) -> ConservationResult:
    """
    Remove the non-conserved part of a self-collision operator, in place.

    In FULL mode C is corrected by ``(x0 + x1 wpar + x2 w^2) F`` with the
    coefficients chosen so that density, parallel momentum and energy
    moments of C vanish. In DENSITY mode only ``(dn / n) F`` is subtracted.

    Parameters
    ----------
    C : np.ndarray
        Collision operator, corrected in place
    F : np.ndarray
        Distribution the operator acts on
    vpa, vperp : Coordinate
        Velocity grids
    mode : ConservationMode or str
        Which moments to restore
    tolerance : float
        Residual moments above this raise a ConvergenceWarning
    mass : float
        Species mass used for the pressure moment

    Returns
    -------
    ConservationResult
        Residual moments of the corrected operator
    """
    try:
        mode = ConservationMode(mode)
    except ValueError:
        raise ConfigurationError(f"Unknown conservation mode '{mode}'") from None
    check_shape(C, (vpa.n, vperp.n), "C")
    check_shape(F, (vpa.n, vperp.n), "F")

    dens = get_density(F, vpa, vperp)
    upar = get_upar(F, vpa, vperp, dens)

    if mode is ConservationMode.FULL:
        wpar = vpa.grid[:, None] - upar
        w2 = wpar**2 + vperp.grid[None, :] ** 2
        psi = [np.ones_like(C), np.broadcast_to(wpar, C.shape), w2]
        A = np.array([[integrate_over_vspace(F * pa * pb, vpa, vperp) for pb in psi] for pa in psi])
        b = np.array([integrate_over_vspace(C * pa, vpa, vperp) for pa in psi])
        x = np.linalg.solve(A, b)
        C -= (x[0] + x[1] * wpar + x[2] * w2) * F
        coefficients = tuple(float(v) for v in x)
    else:
        dn = get_density(C, vpa, vperp)
        C -= (dn / dens) * F
        coefficients = (dn / dens,)

    result = ConservationResult(
        delta_density=get_density(C, vpa, vperp),
        delta_upar=get_upar(C, vpa, vperp, dens),
        delta_pressure=get_pressure(
            get_ppar(C, vpa, vperp, upar, mass), get_pperp(C, vpa, vperp, mass)
        ),
        mode=mode.value,
        coefficients=coefficients,
    )
    residual = max(abs(result.delta_density), abs(result.delta_upar), abs(result.delta_pressure))
    if residual > tolerance:
        log.warning(f"Conservation residual {residual:.3e} above tolerance {tolerance:.1e}")
        warnings.warn(
            f"Residual moments after {mode.value} conservation correction exceed "
            f"{tolerance:.1e}: dn={result.delta_density:.3e}, du={result.delta_upar:.3e}, "
            f"dp={result.delta_pressure:.3e}",
            ConvergenceWarning,
            stacklevel=2,
        )
    log.debug(f"Conservation correction ({mode.value}): coefficients={coefficients}")
    return result
