"""Error norms on the velocity grid."""

import numpy as np

from fem.exceptions import check_shape

from .datastructures import ErrorData
from .moments import integrate_over_vspace


def max_error(exact: np.ndarray, numerical: np.ndarray) -> float:
    check_shape(numerical, exact.shape, "numerical")
    return float(np.max(np.abs(numerical - exact)))


def L2_error(exact: np.ndarray, numerical: np.ndarray, vpa, vperp) -> float:
    """sqrt(int err^2 d^3v / int d^3v)."""
    check_shape(numerical, exact.shape, "numerical")
    err2 = integrate_over_vspace((numerical - exact) ** 2, vpa, vperp)
    volume = integrate_over_vspace(np.ones(exact.shape), vpa, vperp)
    return float(np.sqrt(err2 / volume))


def error_data(exact: np.ndarray, numerical: np.ndarray, vpa, vperp) -> ErrorData:
    return ErrorData(max=max_error(exact, numerical), L2=L2_error(exact, numerical, vpa, vperp))


def relative_max_error(exact: np.ndarray, numerical: np.ndarray) -> float:
    return max_error(exact, numerical) / float(np.max(np.abs(exact)))


def convergence_orders(errors, nelement_list) -> np.ndarray:
    """Observed orders log(e_i / e_{i+1}) / log(n_{i+1} / n_i) between successive grids."""
    errors = np.asarray(errors, dtype=float)
    nel = np.asarray(nelement_list, dtype=float)
    return np.log(errors[:-1] / errors[1:]) / np.log(nel[1:] / nel[:-1])


def expected_order(expected, nelement_list) -> float:
    """Order of an expected-error sequence such as ``expected_nelement_scaling``."""
    return float(np.mean(convergence_orders(expected, nelement_list)))
