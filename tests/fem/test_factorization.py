"""Tests for the factorization cache."""

import gc
import weakref

import numpy as np
import pytest
from scipy import sparse

from fem.exceptions import ShapeMismatchError, SingularOperatorError
from fem.linear_solvers import FactorizationCache, FactorizationMethod, factorize


def spd_matrix(n=6):
    """Tridiagonal 1D Laplacian (symmetric positive definite)."""
    return sparse.diags([-np.ones(n - 1), 2 * np.ones(n), -np.ones(n - 1)], [-1, 0, 1]).tocsr()


class TestFactorize:
    """Tests for single factorizations."""

    def test_lu_solve(self, rng):
        A = spd_matrix() + sparse.diags(np.ones(5), 1, shape=(6, 6))
        x = rng.standard_normal(6)
        factor = factorize("A", A, FactorizationMethod.LU)
        assert np.allclose(factor.solve(A @ x), x)

    def test_cholesky_solve(self, rng):
        A = spd_matrix()
        x = rng.standard_normal(6)
        factor = factorize("A", A, FactorizationMethod.CHOLESKY)
        assert factor.method is FactorizationMethod.CHOLESKY
        assert np.all(factor.pivots > 0)
        assert np.allclose(factor.solve(A @ x), x)

    def test_singular_raises(self):
        A = sparse.csr_matrix(np.array([[1.0, 0.0], [0.0, 0.0]]))
        with pytest.raises(SingularOperatorError) as excinfo:
            factorize("singular", A)
        assert excinfo.value.operator_name == "singular"

    def test_cholesky_rejects_nonsymmetric(self):
        A = spd_matrix() + sparse.diags(np.ones(5), 1, shape=(6, 6))
        with pytest.raises(SingularOperatorError):
            factorize("A", A, FactorizationMethod.CHOLESKY)

    def test_cholesky_rejects_indefinite(self):
        A = sparse.diags([1.0, -1.0, 2.0]).tocsr()
        with pytest.raises(SingularOperatorError):
            factorize("A", A, FactorizationMethod.CHOLESKY)

    def test_non_square_raises(self):
        with pytest.raises(SingularOperatorError):
            factorize("A", sparse.csr_matrix(np.ones((2, 3))))

    def test_rhs_shape_checked(self):
        factor = factorize("A", spd_matrix())
        with pytest.raises(ShapeMismatchError):
            factor.solve(np.ones(5))


class TestFactorizationCache:
    """Tests for reuse and invalidation."""

    def test_reuse_same_matrix(self):
        cache = FactorizationCache()
        A = spd_matrix()
        first = cache.factorize("A", A)
        second = cache.factorize("A", A)
        assert first is second
        assert cache.factorization_count == 1

    def test_new_matrix_replaces(self):
        cache = FactorizationCache()
        first = cache.factorize("A", spd_matrix())
        second = cache.factorize("A", spd_matrix())
        assert first is not second
        assert cache["A"] is second
        assert cache.factorization_count == 2

    def test_solve_and_lookup(self, rng):
        cache = FactorizationCache()
        A = spd_matrix()
        cache.factorize("A", A, FactorizationMethod.CHOLESKY)
        x = rng.standard_normal(6)
        assert "A" in cache
        assert np.allclose(cache.solve("A", A @ x), x)
        with pytest.raises(KeyError):
            cache["B"]

    def test_holds_factored_matrix(self):
        """The cache keeps the factored matrix alive, so its identity cannot be reused."""
        cache = FactorizationCache()
        A = spd_matrix()
        ref = weakref.ref(A)
        cache.factorize("A", A)
        del A
        gc.collect()
        assert ref() is not None
        assert cache["A"].matrix is ref()
        assert cache.factorize("A", ref()) is cache["A"]

    def test_equal_matrix_refactorized(self):
        cache = FactorizationCache()
        A = spd_matrix()
        first = cache.factorize("A", A)
        second = cache.factorize("A", A.copy())
        assert first is not second
        assert cache.factorization_count == 2

    def test_invalidate(self):
        cache = FactorizationCache()
        cache.factorize("A", spd_matrix())
        cache.factorize("B", spd_matrix())
        cache.invalidate("A")
        assert "A" not in cache and "B" in cache
        cache.invalidate()
        assert "B" not in cache
