"""Velocity moments of distributions on the (vpa, vperp) grid.

Integrals use the coordinate weights, which already contain the cylindrical
factor ``2 vperp``, and are normalised by ``sqrt(pi)`` so that the
Maxwellian ``n / vth^3 exp(-v^2 / vth^2)`` has density ``n``.
"""

import numpy as np

from fem.exceptions import check_shape

SQRT_PI = np.sqrt(np.pi)


def integrate_over_vspace(f: np.ndarray, vpa, vperp) -> float:
    check_shape(f, (vpa.n, vperp.n), "f")
    return float(np.einsum("ij,i,j->", f, vpa.wgts, vperp.wgts) / SQRT_PI)


def get_density(f, vpa, vperp) -> float:
    return integrate_over_vspace(f, vpa, vperp)


def get_upar(f, vpa, vperp, density: float) -> float:
    return integrate_over_vspace(f * vpa.grid[:, None], vpa, vperp) / density


def get_ppar(f, vpa, vperp, upar: float, mass: float = 1.0) -> float:
    wpar = vpa.grid[:, None] - upar
    return 2.0 * mass * integrate_over_vspace(f * wpar**2, vpa, vperp)


def get_pperp(f, vpa, vperp, mass: float = 1.0) -> float:
    return mass * integrate_over_vspace(f * vperp.grid[None, :] ** 2, vpa, vperp)


def get_pressure(ppar: float, pperp: float) -> float:
    return (ppar + 2.0 * pperp) / 3.0


def get_vth(pressure: float, density: float, mass: float = 1.0) -> float:
    return float(np.sqrt(pressure / (density * mass)))


def get_qpar(f, vpa, vperp, upar: float, mass: float = 1.0) -> float:
    """Parallel heat flux, the wpar (wpar^2 + vperp^2) moment."""
    wpar = vpa.grid[:, None] - upar
    w2 = wpar**2 + vperp.grid[None, :] ** 2
    return 2.0 * mass * integrate_over_vspace(f * wpar * w2, vpa, vperp)


def get_rmom(f, vpa, vperp, upar: float, mass: float = 1.0) -> float:
    """Fourth moment ``(wpar^2 + vperp^2)^2``."""
    wpar = vpa.grid[:, None] - upar
    w2 = wpar**2 + vperp.grid[None, :] ** 2
    return mass * integrate_over_vspace(f * w2**2, vpa, vperp)


def get_moments(f, vpa, vperp, mass: float = 1.0) -> dict:
    """Density, mean velocity, pressures and thermal speed of ``f``."""
    density = get_density(f, vpa, vperp)
    upar = get_upar(f, vpa, vperp, density)
    ppar = get_ppar(f, vpa, vperp, upar, mass)
    pperp = get_pperp(f, vpa, vperp, mass)
    pressure = get_pressure(ppar, pperp)
    return {
        "density": density,
        "upar": upar,
        "ppar": ppar,
        "pperp": pperp,
        "pressure": pressure,
        "vth": get_vth(pressure, density, mass),
    }


# ========================================================
# Entropy production
# ========================================================


def entropy_production(F, C, vpa, vperp) -> float:
    """-int F C d^3v."""
    return -integrate_over_vspace(F * C, vpa, vperp)


def log_entropy_production(F, C, vpa, vperp) -> float:
    """-int ln(F) C d^3v, the Boltzmann form of the entropy production.

    Points where F is not positive are excluded.
    """
    positive = F > 0.0
    logF = np.zeros_like(F)
    logF[positive] = np.log(F[positive])
    return -integrate_over_vspace(logF * C, vpa, vperp)
