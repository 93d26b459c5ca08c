"""Global sparse operators on the compound (vpa, vperp) grid.

Element contributions are accumulated as COO triplets and converted to CSR,
which sums duplicate entries. Entries on nodes shared between neighbouring
elements are therefore added, never overwritten.
"""

from __future__ import annotations

import logging

import numpy as np
from scipy import sparse

from utilities.parallel import ExecutionContext, run_parallel_region

from ..coordinates import Coordinate, SpectralOperatorSet
from ..indexing import compound_index, local_compound_indices
from .local_matrices import local_matrices

log = logging.getLogger(__name__)


def assemble_1d(
    coord: Coordinate, spectral: SpectralOperatorSet, kind
) -> sparse.csr_matrix:
    """Assemble a 1D global operator of size (n, n) from element matrices."""
    local = local_matrices(coord, spectral, kind)
    idx = coord.igrid_full.T  # (nelement, ngrid)
    rows = np.broadcast_to(idx[:, :, None], local.shape)
    cols = np.broadcast_to(idx[:, None, :], local.shape)
    A = sparse.coo_matrix(
        (local.ravel(), (rows.ravel(), cols.ravel())), shape=(coord.n, coord.n)
    )
    return A.tocsr()


def element_pair_triplets(
    vpa: Coordinate,
    vperp: Coordinate,
    local_vpa: np.ndarray,
    local_vperp: np.ndarray,
    element_pairs: np.ndarray,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    COO triplets of a tensor-product operator for a set of element pairs.

    For every element pair and every pair of local compound indices
    ``(ic, icp)`` the entry ``A_vpa[ivpa, ivpap] * A_vperp[ivperp, ivperpp]``
    is emitted at the global compound indices of the two nodes.

    Parameters
    ----------
    vpa, vperp : Coordinate
        The two coordinates
    local_vpa, local_vperp : np.ndarray
        Local matrices of shape (nelement, ngrid, ngrid) for each coordinate
    element_pairs : np.ndarray
        Flat element-pair indices ``ielement_vpa + nelement_vpa * ielement_vperp``

    Returns
    -------
    rows, cols, data : np.ndarray
        Flattened triplets
    """
    ielement_vperp, ielement_vpa = np.divmod(element_pairs, vpa.nelement)
    ivpa_local, ivperp_local = local_compound_indices(vpa.ngrid, vperp.ngrid)

    ivpa_global = vpa.igrid_full[ivpa_local][:, ielement_vpa].T  # (npairs, nloc)
    ivperp_global = vperp.igrid_full[ivperp_local][:, ielement_vperp].T
    ic_global = compound_index(ivpa_global, ivperp_global, vpa.n)

    a_vpa = local_vpa[ielement_vpa][:, ivpa_local[:, None], ivpa_local[None, :]]
    a_vperp = local_vperp[ielement_vperp][:, ivperp_local[:, None], ivperp_local[None, :]]
    data = a_vpa * a_vperp

    rows = np.broadcast_to(ic_global[:, :, None], data.shape)
    cols = np.broadcast_to(ic_global[:, None, :], data.shape)
    return rows.ravel(), cols.ravel(), data.ravel()


def assemble_2d(
    vpa: Coordinate,
    vperp: Coordinate,
    vpa_spectral: SpectralOperatorSet,
    vperp_spectral: SpectralOperatorSet,
    kind_vpa,
    kind_vperp,
    nranks: int = 1,
) -> sparse.csr_matrix:
    """
    Assemble the 2D operator ``A_vpa (x) A_vperp`` by element pairs.

    Parameters
    ----------
    vpa, vperp : Coordinate
        The two coordinates
    vpa_spectral, vperp_spectral : SpectralOperatorSet
        Their element tables
    kind_vpa, kind_vperp : OperatorKind or str
        Local operator kinds, e.g. ``("K", "M")`` for the parallel stiffness
    nranks : int
        Number of workers sharing the element pairs

    Returns
    -------
    scipy.sparse.csr_matrix
        Matrix of shape (nvpa * nvperp, nvpa * nvperp)
    """
    local_vpa = local_matrices(vpa, vpa_spectral, kind_vpa)
    local_vperp = local_matrices(vperp, vperp_spectral, kind_vperp)
    npairs = vpa.nelement * vperp.nelement

    def assemble_partition(context: ExecutionContext):
        pairs = np.asarray(context.partition(npairs), dtype=int)
        return element_pair_triplets(vpa, vperp, local_vpa, local_vperp, pairs)

    triplets = run_parallel_region(assemble_partition, nranks)

    # serial region: merge the private triplets of every worker
    rows = np.concatenate([t[0] for t in triplets])
    cols = np.concatenate([t[1] for t in triplets])
    data = np.concatenate([t[2] for t in triplets])
    nc = vpa.n * vperp.n
    A = sparse.coo_matrix((data, (rows, cols)), shape=(nc, nc)).tocsr()
    A.sum_duplicates()
    log.debug(f"Assembled {kind_vpa}x{kind_vperp}: nc={nc}, nnz={A.nnz}")
    return A


def boundary_compound_indices(vpa: Coordinate, vperp: Coordinate) -> np.ndarray:
    """Compound indices of the Dirichlet edges: vpa = +-L/2 and vperp = L.

    The axis ``vperp = 0`` is not a boundary of the cylindrical domain.
    """
    ivperp = np.arange(vperp.n)
    ivpa = np.arange(vpa.n)
    lower_vpa = compound_index(np.zeros_like(ivperp), ivperp, vpa.n)
    upper_vpa = compound_index(np.full_like(ivperp, vpa.n - 1), ivperp, vpa.n)
    upper_vperp = compound_index(ivpa, np.full_like(ivpa, vperp.n - 1), vpa.n)
    return np.unique(np.concatenate([lower_vpa, upper_vpa, upper_vperp]))


def apply_dirichlet_rows(matrix: sparse.spmatrix, boundary_indices: np.ndarray) -> sparse.csr_matrix:
    """
    Boundary-condition variant of an operator.

    Rows and columns of the constrained degrees of freedom are zeroed and a
    unit pivot is placed on their diagonal. The raw operator is left
    untouched so it can still be used to build right-hand sides.
    """
    n = matrix.shape[0]
    keep = np.ones(n)
    keep[boundary_indices] = 0.0
    D = sparse.diags(keep)
    return (D @ matrix @ D + sparse.diags(1.0 - keep)).tocsr()
