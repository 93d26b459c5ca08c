"""Analytical Maxwellian distributions, Rosenbluth potentials and collision operator.

For a drifting Maxwellian

    F = n / vth^3 exp(-eta^2),   eta = |w| / vth,   w = (vpa - upar, vperp)

the Rosenbluth potentials are radial functions of ``eta``:

    H = (n / vth) h(eta),   h = erf(eta) / eta
    G = n vth g(eta),       g = exp(-eta^2) / sqrt(pi) + (eta + 1 / (2 eta)) erf(eta)

Derivatives follow from the chain rule with d eta / d w_i = w_i / (vth^2 eta).
Every ratio that is singular at ``eta = 0`` is replaced by its Taylor series
for ``eta < ETA_SERIES``.

All functions take the velocity grids as Coordinates or plain 1D arrays and
return arrays of shape (nvpa, nvperp).
"""

import numpy as np
from scipy.special import erf

SQRT_PI = np.sqrt(np.pi)
ETA_SERIES = 0.05


# ========================================================
# Radial functions
# ========================================================


def _series_switch(eta, direct, series):
    small = eta < ETA_SERIES
    eta_safe = np.where(small, 1.0, eta)
    return np.where(small, series(eta), direct(eta_safe))


def h_radial(eta):
    """erf(eta) / eta."""
    return _series_switch(
        eta,
        lambda x: erf(x) / x,
        lambda x: (2.0 / SQRT_PI) * (1.0 - x**2 / 3.0 + x**4 / 10.0 - x**6 / 42.0),
    )


def dh_over_eta(eta):
    """h'(eta) / eta."""
    return _series_switch(
        eta,
        lambda x: (2.0 / SQRT_PI) * np.exp(-(x**2)) / x**2 - erf(x) / x**3,
        lambda x: (2.0 / SQRT_PI) * (-2.0 / 3.0 + 2.0 * x**2 / 5.0 - x**4 / 7.0 + x**6 / 27.0),
    )


def g_radial(eta):
    """exp(-eta^2) / sqrt(pi) + (eta + 1 / (2 eta)) erf(eta)."""
    return _series_switch(
        eta,
        lambda x: np.exp(-(x**2)) / SQRT_PI + (x + 0.5 / x) * erf(x),
        lambda x: (2.0 + 2.0 * x**2 / 3.0 - x**4 / 15.0 + x**6 / 105.0) / SQRT_PI,
    )


def dg_over_eta(eta):
    """g'(eta) / eta."""
    return _series_switch(
        eta,
        lambda x: np.exp(-(x**2)) / (SQRT_PI * x**2) + (1.0 - 0.5 / x**2) * erf(x) / x,
        lambda x: (4.0 / 3.0 - 4.0 * x**2 / 15.0 + 2.0 * x**4 / 35.0 - 2.0 * x**6 / 189.0)
        / SQRT_PI,
    )


def d2g_radial(eta):
    """g''(eta)."""
    return _series_switch(
        eta,
        lambda x: erf(x) / x**3 - 2.0 * np.exp(-(x**2)) / (SQRT_PI * x**2),
        lambda x: (4.0 / 3.0 - 4.0 * x**2 / 5.0 + 2.0 * x**4 / 7.0 - 2.0 * x**6 / 27.0)
        / SQRT_PI,
    )


def d2g_anisotropic(eta):
    """(g'' - g' / eta) / eta^2."""
    return _series_switch(
        eta,
        lambda x: (d2g_radial(x) - dg_over_eta(x)) / x**2,
        lambda x: (-8.0 / 15.0 + 8.0 * x**2 / 35.0 - 4.0 * x**4 / 63.0) / SQRT_PI,
    )


# ========================================================
# Grid helpers
# ========================================================


def _grid(x) -> np.ndarray:
    return np.asarray(getattr(x, "grid", x), dtype=float)


def _velocities(upar, vth, vpa, vperp):
    """Relative velocities (wpa, wperp) and eta on the (vpa, vperp) mesh."""
    wpa, wperp = np.meshgrid(_grid(vpa) - upar, _grid(vperp), indexing="ij")
    eta = np.sqrt(wpa**2 + wperp**2) / vth
    return wpa, wperp, eta


# ========================================================
# Distribution and derivatives
# ========================================================


def F_maxwellian(dens, upar, vth, vpa, vperp):
    _, _, eta = _velocities(upar, vth, vpa, vperp)
    return dens / vth**3 * np.exp(-(eta**2))


def F_bi_maxwellian(dens, upar, vth_par, vth_perp, vpa, vperp):
    """Maxwellian with different parallel and perpendicular thermal speeds."""
    wpa, wperp = np.meshgrid(_grid(vpa) - upar, _grid(vperp), indexing="ij")
    return dens / (vth_par * vth_perp**2) * np.exp(-((wpa / vth_par) ** 2) - (wperp / vth_perp) ** 2)


def dFdvpa_maxwellian(dens, upar, vth, vpa, vperp):
    wpa, _, _ = _velocities(upar, vth, vpa, vperp)
    return -2.0 * wpa / vth**2 * F_maxwellian(dens, upar, vth, vpa, vperp)


def dFdvperp_maxwellian(dens, upar, vth, vpa, vperp):
    _, wperp, _ = _velocities(upar, vth, vpa, vperp)
    return -2.0 * wperp / vth**2 * F_maxwellian(dens, upar, vth, vpa, vperp)


def d2Fdvpa2_maxwellian(dens, upar, vth, vpa, vperp):
    wpa, _, _ = _velocities(upar, vth, vpa, vperp)
    F = F_maxwellian(dens, upar, vth, vpa, vperp)
    return (4.0 * wpa**2 / vth**4 - 2.0 / vth**2) * F


def d2Fdvperp2_maxwellian(dens, upar, vth, vpa, vperp):
    _, wperp, _ = _velocities(upar, vth, vpa, vperp)
    F = F_maxwellian(dens, upar, vth, vpa, vperp)
    return (4.0 * wperp**2 / vth**4 - 2.0 / vth**2) * F


def d2Fdvperpdvpa_maxwellian(dens, upar, vth, vpa, vperp):
    wpa, wperp, _ = _velocities(upar, vth, vpa, vperp)
    return 4.0 * wpa * wperp / vth**4 * F_maxwellian(dens, upar, vth, vpa, vperp)


# ========================================================
# Rosenbluth potentials
# ========================================================


def H_maxwellian(dens, upar, vth, vpa, vperp):
    _, _, eta = _velocities(upar, vth, vpa, vperp)
    return dens / vth * h_radial(eta)


def dHdvpa_maxwellian(dens, upar, vth, vpa, vperp):
    wpa, _, eta = _velocities(upar, vth, vpa, vperp)
    return dens / vth**3 * dh_over_eta(eta) * wpa


def dHdvperp_maxwellian(dens, upar, vth, vpa, vperp):
    _, wperp, eta = _velocities(upar, vth, vpa, vperp)
    return dens / vth**3 * dh_over_eta(eta) * wperp


def G_maxwellian(dens, upar, vth, vpa, vperp):
    _, _, eta = _velocities(upar, vth, vpa, vperp)
    return dens * vth * g_radial(eta)


def dGdvperp_maxwellian(dens, upar, vth, vpa, vperp):
    _, wperp, eta = _velocities(upar, vth, vpa, vperp)
    return dens / vth * dg_over_eta(eta) * wperp


def d2Gdvpa2_maxwellian(dens, upar, vth, vpa, vperp):
    wpa, _, eta = _velocities(upar, vth, vpa, vperp)
    return dens / vth**3 * d2g_anisotropic(eta) * wpa**2 + dens / vth * dg_over_eta(eta)


def d2Gdvperp2_maxwellian(dens, upar, vth, vpa, vperp):
    _, wperp, eta = _velocities(upar, vth, vpa, vperp)
    return dens / vth**3 * d2g_anisotropic(eta) * wperp**2 + dens / vth * dg_over_eta(eta)


def d2Gdvperpdvpa_maxwellian(dens, upar, vth, vpa, vperp):
    wpa, wperp, eta = _velocities(upar, vth, vpa, vperp)
    return dens / vth**3 * d2g_anisotropic(eta) * wpa * wperp


def rosenbluth_potentials_maxwellian(dens, upar, vth, vpa, vperp) -> dict:
    """Every potential and derivative, keyed like ROSENBLUTH_QUANTITIES."""
    args = (dens, upar, vth, vpa, vperp)
    return {
        "H": H_maxwellian(*args),
        "dHdvpa": dHdvpa_maxwellian(*args),
        "dHdvperp": dHdvperp_maxwellian(*args),
        "G": G_maxwellian(*args),
        "dGdvperp": dGdvperp_maxwellian(*args),
        "d2Gdvperp2": d2Gdvperp2_maxwellian(*args),
        "d2Gdvperpdvpa": d2Gdvperpdvpa_maxwellian(*args),
        "d2Gdvpa2": d2Gdvpa2_maxwellian(*args),
    }


# ========================================================
# Collision operator
# ========================================================


def Cssp_maxwellian_inputs(denss, upars, vths, ms, dens, upar, vth, msp, nussp, vpa, vperp):
    """
    Exact collision operator C[Fs, Fs'] of two Maxwellians.

    Parameters
    ----------
    denss, upars, vths : float
        Moments of the test-particle Maxwellian Fs
    ms : float
        Test-particle mass
    dens, upar, vth : float
        Moments of the field-particle Maxwellian Fs'
    msp : float
        Field-particle mass
    nussp : float
        Collision frequency
    vpa, vperp : Coordinate or np.ndarray
        Velocity grids

    Returns
    -------
    np.ndarray
        C on the (nvpa, nvperp) grid
    """
    s = (denss, upars, vths, vpa, vperp)
    f = (dens, upar, vth, vpa, vperp)
    mass_ratio = ms / msp

    Fs = F_maxwellian(*s)
    _, _, eta = _velocities(upar, vth, vpa, vperp)

    # dFs/dvperp / vperp and dG/dvperp / vperp are regular on the axis
    dFsdvperp_over_vperp = -2.0 * Fs / vths**2
    dGdvperp_over_vperp = dens / vth * dg_over_eta(eta)

    return nussp * (
        d2Fdvpa2_maxwellian(*s) * d2Gdvpa2_maxwellian(*f)
        + d2Fdvperp2_maxwellian(*s) * d2Gdvperp2_maxwellian(*f)
        + 2.0 * d2Fdvperpdvpa_maxwellian(*s) * d2Gdvperpdvpa_maxwellian(*f)
        + dFsdvperp_over_vperp * dGdvperp_over_vperp
        + 2.0
        * (1.0 - mass_ratio)
        * (
            dFdvpa_maxwellian(*s) * dHdvpa_maxwellian(*f)
            + dFdvperp_maxwellian(*s) * dHdvperp_maxwellian(*f)
        )
        + (8.0 / SQRT_PI) * mass_ratio * Fs * F_maxwellian(*f)
    )
