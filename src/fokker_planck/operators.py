"""Global weak-form operators of the Fokker-Planck problem.

Everything here depends only on the grids, so it is built once by
``init_fokker_planck_operators`` and shared by every evaluation of the
collision operator. Compound vectors use ``c = ivpa + nvpa * ivperp``, so a
2D operator ``A_vpa (x) A_vperp`` is assembled from the local matrices of
both coordinates by element pairs.

Naming
------
=========================  ===========================================
operator                   weak form (vpa kind x vperp kind)
=========================  ===========================================
MM2D                       M x M
KKpar2D                    K x M
KKperp2D                   M x K
KKpar2D_with_BC_terms      K_with_BC_terms x M
KKperp2D_with_BC_terms     M x K_with_BC_terms
LP2D                       KKpar2D + KKperp2D (Laplacian)
LV2D                       LP2D - M x MN (vector Laplacian)
MR2D                       M x MR
PPpar2D                    P x M
PPperp2D                   M x P
PPparPPperp2D              P x P
=========================  ===========================================

The ``*_bc`` variants have the Dirichlet rows and columns replaced by the
identity and are what gets factorized.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

import numpy as np
from scipy import sparse

from fem.assembly import (
    OperatorKind,
    apply_dirichlet_rows,
    assemble_2d,
    boundary_compound_indices,
    triple_product_arrays,
)
from fem.coordinates import Coordinate, SpectralOperatorSet
from fem.exceptions import ConfigurationError
from fem.linear_solvers import FactorizationCache, FactorizationMethod

log = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class FokkerPlanckOperators:
    """Immutable set of assembled operators and their factorizations."""

    vpa: Coordinate
    vperp: Coordinate
    vpa_spectral: SpectralOperatorSet
    vperp_spectral: SpectralOperatorSet

    MM2D: sparse.csr_matrix
    KKpar2D: sparse.csr_matrix
    KKperp2D: sparse.csr_matrix
    KKpar2D_with_BC_terms: sparse.csr_matrix
    KKperp2D_with_BC_terms: sparse.csr_matrix
    LP2D: sparse.csr_matrix
    LV2D: sparse.csr_matrix
    MR2D: sparse.csr_matrix
    PPpar2D: sparse.csr_matrix
    PPperp2D: sparse.csr_matrix
    PPparPPperp2D: sparse.csr_matrix

    LP2D_bc: sparse.csr_matrix
    LV2D_bc: sparse.csr_matrix
    MM2D_zero_bc: sparse.csr_matrix

    boundary_indices: np.ndarray
    vpa_Y: tuple
    vperp_Y: tuple
    factorizations: FactorizationCache

    @property
    def nvpa(self) -> int:
        return self.vpa.n

    @property
    def nvperp(self) -> int:
        return self.vperp.n

    @property
    def nc(self) -> int:
        return self.vpa.n * self.vperp.n

    @property
    def shape(self) -> tuple:
        return (self.vpa.n, self.vperp.n)


def init_fokker_planck_operators(
    vpa: Coordinate,
    vperp: Coordinate,
    vpa_spectral: SpectralOperatorSet | None,
    vperp_spectral: SpectralOperatorSet | None,
    nranks: int = 1,
    cache: FactorizationCache | None = None,
) -> FokkerPlanckOperators:
    """
    Assemble and factorize every operator needed by the collision operator.

    Parameters
    ----------
    vpa, vperp : Coordinate
        Parallel and perpendicular velocity grids
    vpa_spectral, vperp_spectral : SpectralOperatorSet
        Element tables of the grids
    nranks : int
        Workers sharing the element-pair assembly
    cache : FactorizationCache, optional
        Existing cache to register the factorizations in

    Raises
    ------
    ConfigurationError
        If either coordinate is not spectral or the names are swapped.
    SingularOperatorError
        If an operator cannot be factorized.
    """
    if vperp.name != "vperp" or vpa.name == "vperp":
        raise ConfigurationError(
            f"Expected coordinates named ('vpa', 'vperp'), got ('{vpa.name}', '{vperp.name}')"
        )
    start = time.perf_counter()

    def assemble(kind_vpa: OperatorKind, kind_vperp: OperatorKind):
        return assemble_2d(vpa, vperp, vpa_spectral, vperp_spectral, kind_vpa, kind_vperp, nranks)

    MM2D = assemble(OperatorKind.MASS, OperatorKind.MASS)
    KKpar2D = assemble(OperatorKind.STIFFNESS, OperatorKind.MASS)
    KKperp2D = assemble(OperatorKind.MASS, OperatorKind.STIFFNESS)
    KKpar2D_with_BC_terms = assemble(OperatorKind.STIFFNESS_WITH_BC_TERMS, OperatorKind.MASS)
    KKperp2D_with_BC_terms = assemble(OperatorKind.MASS, OperatorKind.STIFFNESS_WITH_BC_TERMS)
    MN2D = assemble(OperatorKind.MASS, OperatorKind.MASS_OVER_VPERP_SQUARED)
    MR2D = assemble(OperatorKind.MASS, OperatorKind.MASS_OVER_VPERP)
    PPpar2D = assemble(OperatorKind.FIRST_DERIVATIVE, OperatorKind.MASS)
    PPperp2D = assemble(OperatorKind.MASS, OperatorKind.FIRST_DERIVATIVE)
    PPparPPperp2D = assemble(OperatorKind.FIRST_DERIVATIVE, OperatorKind.FIRST_DERIVATIVE)

    LP2D = (KKpar2D + KKperp2D).tocsr()
    LV2D = (LP2D - MN2D).tocsr()

    bnd = boundary_compound_indices(vpa, vperp)
    LP2D_bc = apply_dirichlet_rows(LP2D, bnd)
    LV2D_bc = apply_dirichlet_rows(LV2D, bnd)
    MM2D_zero_bc = apply_dirichlet_rows(MM2D, bnd)
    log.debug(f"Assembled 2D operators in {time.perf_counter() - start:.3f}s")

    cache = cache if cache is not None else FactorizationCache()
    cache.factorize("MM", MM2D, FactorizationMethod.CHOLESKY)
    cache.factorize("MM_zero_bc", MM2D_zero_bc, FactorizationMethod.LU)
    cache.factorize("LP", LP2D_bc, FactorizationMethod.LU)
    cache.factorize("LV", LV2D_bc, FactorizationMethod.LU)

    log.info(
        f"Initialised Fokker-Planck operators: nvpa={vpa.n}, nvperp={vperp.n}, "
        f"nc={vpa.n * vperp.n} ({time.perf_counter() - start:.3f}s)"
    )
    return FokkerPlanckOperators(
        vpa=vpa,
        vperp=vperp,
        vpa_spectral=vpa_spectral,
        vperp_spectral=vperp_spectral,
        MM2D=MM2D,
        KKpar2D=KKpar2D,
        KKperp2D=KKperp2D,
        KKpar2D_with_BC_terms=KKpar2D_with_BC_terms,
        KKperp2D_with_BC_terms=KKperp2D_with_BC_terms,
        LP2D=LP2D,
        LV2D=LV2D,
        MR2D=MR2D,
        PPpar2D=PPpar2D,
        PPperp2D=PPperp2D,
        PPparPPperp2D=PPparPPperp2D,
        LP2D_bc=LP2D_bc,
        LV2D_bc=LV2D_bc,
        MM2D_zero_bc=MM2D_zero_bc,
        boundary_indices=bnd,
        vpa_Y=triple_product_arrays(vpa, vpa_spectral),
        vperp_Y=triple_product_arrays(vperp, vperp_spectral),
        factorizations=cache,
    )
