"""Weak-form Fokker-Planck collision operator on the (vpa, vperp) grid."""

from fokker_planck.boundary_data import (
    calculate_rosenbluth_boundary_data,
    maxwellian_boundary_data,
)
from fokker_planck.collisions import fokker_planck_collision_operator_weak_form
from fokker_planck.conservation import (
    ConservationMode,
    conserving_corrections,
    enforce_vpavperp_boundary_conditions,
)
from fokker_planck.datastructures import (
    AssemblyTestResult,
    CollisionOperatorWorkspace,
    CollisionTestErrors,
    CollisionTestParameters,
    ConservationResult,
    EdgeData,
    ErrorData,
    MomentErrors,
    RosenbluthBoundaryData,
)
from fokker_planck.elliptic import calculate_rosenbluth_potentials, elliptic_solve
from fokker_planck.operators import FokkerPlanckOperators, init_fokker_planck_operators
from fokker_planck.verification import run_assembly_test, weak_form_collision_test

__all__ = [
    "calculate_rosenbluth_boundary_data",
    "maxwellian_boundary_data",
    "fokker_planck_collision_operator_weak_form",
    "ConservationMode",
    "conserving_corrections",
    "enforce_vpavperp_boundary_conditions",
    "AssemblyTestResult",
    "CollisionOperatorWorkspace",
    "CollisionTestErrors",
    "CollisionTestParameters",
    "ConservationResult",
    "EdgeData",
    "ErrorData",
    "MomentErrors",
    "RosenbluthBoundaryData",
    "calculate_rosenbluth_potentials",
    "elliptic_solve",
    "FokkerPlanckOperators",
    "init_fokker_planck_operators",
    "run_assembly_test",
    "weak_form_collision_test",
]
