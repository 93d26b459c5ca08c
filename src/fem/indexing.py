"""Compound indexing of the tensor-product (vpa, vperp) grid.

A pair of per-dimension indices ``(i1, i2)`` with row extent ``n1`` maps to
the flat index ``c = i1 + n1 * i2`` (all indices 0-based). The same map is
used with the element extent ``ngrid`` for local element indices and with
the global grid size for global indices. ``vpa`` is always the fast index.
"""

import numpy as np

from .exceptions import check_shape


def compound_index(i1, i2, n1: int):
    """Flat compound index of ``(i1, i2)`` for row extent ``n1``."""
    i1 = np.asarray(i1)
    i2 = np.asarray(i2)
    if np.any(i1 < 0) or np.any(i1 >= n1) or np.any(i2 < 0):
        raise IndexError(f"compound index out of range for row extent {n1}")
    c = i1 + n1 * i2
    return int(c) if c.ndim == 0 else c


def compound_index_inverse(c, n1: int):
    """Recover ``(i1, i2)`` from a compound index with row extent ``n1``."""
    c = np.asarray(c)
    if np.any(c < 0):
        raise IndexError("compound index must be non-negative")
    i2, i1 = np.divmod(c, n1)
    if c.ndim == 0:
        return int(i1), int(i2)
    return i1, i2


def local_compound_indices(ngrid_vpa: int, ngrid_vperp: int) -> tuple[np.ndarray, np.ndarray]:
    """Per-dimension local indices for every local compound index of an element pair."""
    ic = np.arange(ngrid_vpa * ngrid_vperp)
    return compound_index_inverse(ic, ngrid_vpa)


def ravel_vpavperp_to_c(f: np.ndarray, nvpa: int, nvperp: int, out: np.ndarray | None = None):
    """Flatten an (nvpa, nvperp) array to a compound vector."""
    check_shape(f, (nvpa, nvperp), "f")
    if out is None:
        return f.ravel(order="F").copy()
    check_shape(out, (nvpa * nvperp,), "out")
    out[:] = f.ravel(order="F")
    return out


def ravel_c_to_vpavperp(fc: np.ndarray, nvpa: int, nvperp: int, out: np.ndarray | None = None):
    """Reshape a compound vector to an (nvpa, nvperp) array."""
    check_shape(fc, (nvpa * nvperp,), "fc")
    if out is None:
        return fc.reshape((nvpa, nvperp), order="F").copy()
    check_shape(out, (nvpa, nvperp), "out")
    out[:, :] = fc.reshape((nvpa, nvperp), order="F")
    return out
