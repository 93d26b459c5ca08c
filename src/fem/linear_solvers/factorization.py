"""Sparse direct factorizations that are computed once and reused.

scipy does not ship a sparse Cholesky factorization. The CHOLESKY method is
a symmetric-mode SuperLU factorization with diagonal pivoting; for a
symmetric matrix its pivots are those of LDL^T, so positive pivots certify
positive definiteness.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

import numpy as np
from scipy import sparse
from scipy.sparse.linalg import SuperLU, splu

from ..exceptions import SingularOperatorError, check_shape

log = logging.getLogger(__name__)


class FactorizationMethod(Enum):
    LU = "lu"
    CHOLESKY = "cholesky"


@dataclass(frozen=True, eq=False)
class Factorization:
    """Immutable handle on the factorization of one operator snapshot."""

    name: str
    method: FactorizationMethod
    shape: tuple
    lu: SuperLU
    matrix: object  # the factored operator, held so identity checks stay valid

    @property
    def pivots(self) -> np.ndarray:
        return self.lu.U.diagonal()

    def solve(self, rhs: np.ndarray) -> np.ndarray:
        check_shape(rhs, (self.shape[0],), f"rhs for '{self.name}'")
        return self.lu.solve(rhs)


def factorize(name: str, matrix, method=FactorizationMethod.LU, symmetry_tol: float = 1e-12) -> Factorization:
    """
    Factorize a sparse operator.

    Parameters
    ----------
    name : str
        Operator identity used in error messages
    matrix : sparse matrix
        Square operator
    method : FactorizationMethod
        LU for general (including boundary-condition-augmented) operators,
        CHOLESKY for symmetric positive definite ones
    symmetry_tol : float
        Relative tolerance of the symmetry check for CHOLESKY

    Raises
    ------
    SingularOperatorError
        If the operator is singular or, for CHOLESKY, not symmetric
        positive definite.
    """
    method = FactorizationMethod(method)
    A = sparse.csc_matrix(matrix)
    if A.shape[0] != A.shape[1]:
        raise SingularOperatorError(name, f"operator is not square: {A.shape}")

    if method is FactorizationMethod.CHOLESKY:
        scale = abs(A).max()
        asymmetry = abs(A - A.T).max() if A.nnz else 0.0
        if asymmetry > symmetry_tol * scale:
            raise SingularOperatorError(name, f"operator is not symmetric (|A - A^T| = {asymmetry:.3e})")
        kwargs = dict(
            permc_spec="MMD_AT_PLUS_A",
            diag_pivot_thresh=0.0,
            options=dict(SymmetricMode=True),
        )
    else:
        kwargs = {}

    try:
        lu = splu(A, **kwargs)
    except RuntimeError as exc:
        raise SingularOperatorError(name, str(exc)) from exc

    if method is FactorizationMethod.CHOLESKY:
        pivots = lu.U.diagonal()
        if np.any(pivots <= 0.0):
            raise SingularOperatorError(
                name, f"operator is not positive definite (min pivot {pivots.min():.3e})"
            )

    log.debug(f"Factorized '{name}' ({method.value}), n={A.shape[0]}, nnz={A.nnz}")
    return Factorization(name=name, method=method, shape=A.shape, lu=lu, matrix=matrix)


class FactorizationCache:
    """Factorizations keyed by operator name.

    ``factorize`` only does work the first time an operator is registered,
    or when a different matrix object is registered under the same name,
    in which case the old factorization is replaced rather than modified.
    """

    def __init__(self):
        self._factors: dict[str, Factorization] = {}
        self.factorization_count = 0

    def factorize(self, name: str, matrix, method=FactorizationMethod.LU) -> Factorization:
        cached = self._factors.get(name)
        if cached is not None and cached.matrix is matrix:
            return cached
        factor = factorize(name, matrix, method)
        self._factors[name] = factor
        self.factorization_count += 1
        return factor

    def __getitem__(self, name: str) -> Factorization:
        try:
            return self._factors[name]
        except KeyError:
            raise KeyError(f"No factorization registered under '{name}'") from None

    def __contains__(self, name: str) -> bool:
        return name in self._factors

    def solve(self, name: str, rhs: np.ndarray) -> np.ndarray:
        return self[name].solve(rhs)

    def invalidate(self, name: str | None = None):
        """Drop one (or every) cached factorization."""
        if name is None:
            self._factors.clear()
        else:
            self._factors.pop(name, None)
