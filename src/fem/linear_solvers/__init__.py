"""Direct sparse linear solvers."""

from .factorization import Factorization, FactorizationCache, FactorizationMethod, factorize

__all__ = ["Factorization", "FactorizationCache", "FactorizationMethod", "factorize"]
