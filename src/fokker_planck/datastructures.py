"""Data structures for collision-operator configuration, workspaces and results.

Structure:
- CollisionTestParameters: input configuration of the verification driver
- CollisionOperatorWorkspace: arrays reused by every operator evaluation
- EdgeData / RosenbluthBoundaryData: Dirichlet data on the domain edges
- ErrorData, MomentErrors, CollisionTestErrors, ConservationResult,
  AssemblyTestResult: immutable result records
"""

from dataclasses import asdict, dataclass, field, fields
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

ROSENBLUTH_QUANTITIES = (
    "H",
    "dHdvpa",
    "dHdvperp",
    "G",
    "dGdvperp",
    "d2Gdvperp2",
    "d2Gdvperpdvpa",
    "d2Gdvpa2",
)

ERROR_QUANTITIES = (
    "C",
    "H",
    "dHdvpa",
    "dHdvperp",
    "G",
    "dGdvperp",
    "d2Gdvpa2",
    "d2Gdvperpdvpa",
    "d2Gdvperp2",
)


# ========================================================
# Parameters (Input Configuration)
# ========================================================


@dataclass
class CollisionTestParameters:
    """Configuration of one weak-form collision-operator test."""

    ngrid: int = 5
    nelement_vpa: int = 8
    nelement_vperp: int = 4
    Lvpa: float = 12.0
    Lvperp: float = 6.0
    discretization: str = "gausslegendre_pseudospectral"
    test_self_operator: bool = True
    impose_zero_boundary: bool = False
    use_maxwellian_rosenbluth_coefficients: bool = False
    use_maxwellian_field_particle_distribution: bool = False
    algebraic_solve_for_d2Gdvperp2: bool = True
    test_numerical_conserving_terms: bool = False
    conservation_mode: str = "full"
    ms: float = 1.0
    msp: float = 1.0
    nussp: float = 1.0
    nranks: int = 1

    def to_dataframe(self):
        return pd.DataFrame([asdict(self)])

    def to_mlflow(self) -> dict:
        return {k: str(v) if isinstance(v, bool) else v for k, v in asdict(self).items()}


# ========================================================
# Boundary data
# ========================================================


@dataclass
class EdgeData:
    """Values of one field on the three Dirichlet edges.

    ``lower_vpa``/``upper_vpa`` hold f(-L/2, vperp) and f(L/2, vperp),
    ``upper_vperp`` holds f(vpa, L).
    """

    lower_vpa: np.ndarray
    upper_vpa: np.ndarray
    upper_vperp: np.ndarray

    @classmethod
    def allocate(cls, nvpa: int, nvperp: int):
        return cls(
            lower_vpa=np.zeros(nvperp),
            upper_vpa=np.zeros(nvperp),
            upper_vperp=np.zeros(nvpa),
        )

    @classmethod
    def from_field(cls, f: np.ndarray):
        """Take the edge values of a full (nvpa, nvperp) array."""
        return cls(
            lower_vpa=f[0, :].copy(),
            upper_vpa=f[-1, :].copy(),
            upper_vperp=f[:, -1].copy(),
        )

    def to_field(self, nvpa: int, nvperp: int) -> np.ndarray:
        """Full array that is zero away from the edges."""
        f = np.zeros((nvpa, nvperp))
        f[0, :] = self.lower_vpa
        f[-1, :] = self.upper_vpa
        f[:, -1] = self.upper_vperp
        return f

    def max_abs(self) -> float:
        return float(
            max(
                np.max(np.abs(self.lower_vpa)),
                np.max(np.abs(self.upper_vpa)),
                np.max(np.abs(self.upper_vperp)),
            )
        )


@dataclass
class RosenbluthBoundaryData:
    """Edge data for every Rosenbluth potential and derivative."""

    H: EdgeData
    dHdvpa: EdgeData
    dHdvperp: EdgeData
    G: EdgeData
    dGdvperp: EdgeData
    d2Gdvperp2: EdgeData
    d2Gdvperpdvpa: EdgeData
    d2Gdvpa2: EdgeData

    @classmethod
    def allocate(cls, nvpa: int, nvperp: int):
        return cls(**{name: EdgeData.allocate(nvpa, nvperp) for name in ROSENBLUTH_QUANTITIES})

    def items(self):
        return [(name, getattr(self, name)) for name in ROSENBLUTH_QUANTITIES]


# ========================================================
# Workspace
# ========================================================


@dataclass
class CollisionOperatorWorkspace:
    """Arrays reused by every collision-operator evaluation.

    Allocated once for a fixed grid and never resized. Contents are
    undefined after an evaluation that raised.
    """

    # Rosenbluth potentials and derivatives
    HH: np.ndarray
    dHdvpa: np.ndarray
    dHdvperp: np.ndarray
    GG: np.ndarray
    dGdvperp: np.ndarray
    d2Gdvperp2: np.ndarray
    d2Gdvperpdvpa: np.ndarray
    d2Gdvpa2: np.ndarray

    # Collision operator result
    CC: np.ndarray

    # Scratch buffers
    S_dummy: np.ndarray
    rhsvpavperp: np.ndarray
    rhsc: np.ndarray
    sc: np.ndarray

    boundary_data: RosenbluthBoundaryData = None

    @classmethod
    def allocate(cls, nvpa: int, nvperp: int):
        """Allocate all arrays with proper sizes."""
        nc = nvpa * nvperp
        return cls(
            HH=np.zeros((nvpa, nvperp)),
            dHdvpa=np.zeros((nvpa, nvperp)),
            dHdvperp=np.zeros((nvpa, nvperp)),
            GG=np.zeros((nvpa, nvperp)),
            dGdvperp=np.zeros((nvpa, nvperp)),
            d2Gdvperp2=np.zeros((nvpa, nvperp)),
            d2Gdvperpdvpa=np.zeros((nvpa, nvperp)),
            d2Gdvpa2=np.zeros((nvpa, nvperp)),
            CC=np.zeros((nvpa, nvperp)),
            S_dummy=np.zeros((nvpa, nvperp)),
            rhsvpavperp=np.zeros((nvpa, nvperp)),
            rhsc=np.zeros(nc),
            sc=np.zeros(nc),
            boundary_data=RosenbluthBoundaryData.allocate(nvpa, nvperp),
        )

    @property
    def shape(self) -> tuple:
        return self.CC.shape

    def potentials(self) -> Dict[str, np.ndarray]:
        """Potential arrays keyed like ROSENBLUTH_QUANTITIES."""
        return {
            "H": self.HH,
            "dHdvpa": self.dHdvpa,
            "dHdvperp": self.dHdvperp,
            "G": self.GG,
            "dGdvperp": self.dGdvperp,
            "d2Gdvperp2": self.d2Gdvperp2,
            "d2Gdvperpdvpa": self.d2Gdvperpdvpa,
            "d2Gdvpa2": self.d2Gdvpa2,
        }


# ========================================================
# Results (immutable records)
# ========================================================


@dataclass(frozen=True)
class ErrorData:
    """Maximum and L2 norm of a pointwise error."""

    max: float
    L2: float


@dataclass(frozen=True)
class MomentErrors:
    """Moments of a collision operator that should vanish."""

    delta_density: float = 0.0
    delta_upar: float = 0.0
    delta_pressure: float = 0.0


@dataclass(frozen=True)
class ConservationResult:
    """Residual moments after a conservation correction."""

    delta_density: float
    delta_upar: float
    delta_pressure: float
    mode: str = "full"
    coefficients: tuple = ()

    def to_dataframe(self):
        return pd.DataFrame([asdict(self)])


@dataclass(frozen=True)
class CollisionTestErrors:
    """Errors of one weak-form collision-operator test."""

    C: ErrorData
    H: ErrorData
    dHdvpa: ErrorData
    dHdvperp: ErrorData
    G: ErrorData
    dGdvperp: ErrorData
    d2Gdvpa2: ErrorData
    d2Gdvperpdvpa: ErrorData
    d2Gdvperp2: ErrorData
    moments: MomentErrors = field(default_factory=MomentErrors)
    entropy_production: float = 0.0
    boundary_data_errors: Optional[Dict[str, float]] = None

    def to_mlflow(self) -> dict:
        """Flatten into scalar metrics, e.g. ``C_max`` and ``C_L2``."""
        metrics = {}
        for name in ERROR_QUANTITIES:
            err = getattr(self, name)
            metrics[f"{name}_max"] = err.max
            metrics[f"{name}_L2"] = err.L2
        for f in fields(self.moments):
            metrics[f.name] = getattr(self.moments, f.name)
        metrics["entropy_production"] = self.entropy_production
        if self.boundary_data_errors is not None:
            for name, value in self.boundary_data_errors.items():
                metrics[f"boundary_{name}_max"] = value
        return metrics

    def to_dataframe(self):
        rows = [
            {"quantity": name, "max": getattr(self, name).max, "L2": getattr(self, name).L2}
            for name in ERROR_QUANTITIES
        ]
        return pd.DataFrame(rows)


@dataclass(frozen=True)
class AssemblyTestResult:
    """Element-count scan of the weak-form collision test."""

    ngrid: int
    nelement_list: List[int]
    max_errors: Dict[str, List[float]]
    L2_errors: Dict[str, List[float]]
    moments: List[MomentErrors]
    expected: List[float]
    expected_integral: List[float]
    calculate_times: List[float]
    init_times: List[float]

    def to_dataframe(self) -> pd.DataFrame:
        """One row per element count."""
        data = {"nelement": self.nelement_list}
        for name, values in self.max_errors.items():
            data[f"{name}_max"] = values
        for name, values in self.L2_errors.items():
            data[f"{name}_L2"] = values
        data["delta_density"] = [m.delta_density for m in self.moments]
        data["delta_upar"] = [m.delta_upar for m in self.moments]
        data["delta_pressure"] = [m.delta_pressure for m in self.moments]
        data["expected"] = self.expected
        data["expected_integral"] = self.expected_integral
        data["calculate_time_s"] = self.calculate_times
        data["init_time_s"] = self.init_times
        return pd.DataFrame(data)

    def convergence_rates(self, quantity: str, norm: str = "max") -> np.ndarray:
        """Observed orders between successive element counts."""
        from .metrics import convergence_orders

        errors = (self.max_errors if norm == "max" else self.L2_errors)[quantity]
        return convergence_orders(errors, self.nelement_list)
