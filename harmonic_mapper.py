"""
Harmonic Mapper: log-polar spiral and principal-component views of a family
of integer-indexed scalar sequences.

Each function in the library maps an index n to a real value. For a chosen
index range and parameter set the engine produces one of two views:

  Log-Polar Spiral:
    Every active function becomes a 2D point series. The radius is the
    function value scaled by 10^alf plus a coupling pull toward the other
    active functions; the angle is phi*n + psi.

  Hypercube Projection:
    The active functions are sampled into an (n_steps x n_functions) matrix
    which is projected onto its two principal axes, giving one trajectory
    point per index.

FUNCTION FAMILIES:
    - Polynomial:        S(n), T(n), M(n)
    - Signal/Bitwise:    X1(n), X2(n), X3(n)
    - Chaotic:           Tesla(n)
    - SuperComputable:   B(n), BB(n)
    - RealWorld:         user-supplied series, built on demand

Usage:
    from harmonic_mapper import AppState, SystemParameters, MappingMode, compute

    state = AppState(
        parameters=SystemParameters(n_min=0, n_max=500, phi=3.14, psi=1.618),
        active_function_ids=["s_n", "t_n", "tesla_n"],
        map_mode=MappingMode.SPIRAL,
    )
    series = compute(state)          # list of PlotDataSeries

    state = state.replace(map_mode=MappingMode.PCA)
    trajectory = compute(state)      # list of PcaPoint

    # Individual stages
    matrix = build_sample_matrix(state)
    series = project_spiral(matrix, state.parameters)
    trajectory = reduce_dimensions(matrix)

Every call is a pure function of its input. Nothing is cached between calls.
"""

import dataclasses
import math
import warnings
import numpy as np
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Union

from sklearn.decomposition import PCA


# =============================================================================
# DATA MODEL
# =============================================================================

def _json_float(v):
    """Documents are strict JSON: non-finite numbers are written as null."""
    v = float(v)
    return v if math.isfinite(v) else None


def _doc_float(v):
    return float("nan") if v is None else float(v)



class FunctionFamily(str, Enum):
    """Growth-character grouping of library functions."""
    POLYNOMIAL = "T/M/S (Polynomial)"
    SIGNAL = "X (Signal/Bitwise)"
    CHAOTIC = "Tesla (Chaotic)"
    SUPER_COMPUTABLE = "B/BB (Super-Computable)"
    REAL_WORLD = "Real-World Data"


class MappingMode(str, Enum):
    SPIRAL = "Log-Polar Spiral"
    PCA = "Hypercube Projection"
    BITWISE = "Binary State Plot"


@dataclass(frozen=True)
class FunctionDefinition:
    """A named scalar sequence.

    ``fn`` is vectorised: it takes an integer ndarray of indices and returns
    a float64 ndarray of the same shape.
    """
    id: str
    name: str
    family: FunctionFamily
    fn: Callable[[np.ndarray], np.ndarray]
    description: str = ""

    def evaluate(self, n: Union[int, np.ndarray]) -> np.ndarray:
        idx = np.atleast_1d(np.asarray(n, dtype=np.int64))
        with np.errstate(over='ignore', invalid='ignore', divide='ignore'):
            return np.asarray(self.fn(idx), dtype=float)

    def __call__(self, n: int) -> float:
        return float(self.evaluate(n)[0])


@dataclass
class SystemParameters:
    n_min: int = 0
    n_max: int = 500
    phi: float = 3.14     # angular velocity per unit index
    psi: float = 1.618    # phase offset
    alf: float = 0.0      # radial scale exponent, scale = 10**alf
    q: float = 0.1        # coupling strength
    htf: float = 1.0      # harmonic tuning, carried but not used by the transform

    @property
    def n_steps(self) -> int:
        return self.n_max - self.n_min + 1


@dataclass
class EmpiricalSeries:
    """User-supplied data indexed by absolute n."""
    name: str
    data: np.ndarray

    def __post_init__(self):
        self.data = np.asarray(self.data, dtype=float).ravel()

    def lookup(self, n: np.ndarray) -> np.ndarray:
        n = np.asarray(n, dtype=np.int64)
        out = np.zeros(n.shape, dtype=float)
        inside = (n >= 0) & (n < len(self.data))
        out[inside] = self.data[n[inside]]
        # Missing samples read as zero
        out[np.isnan(out)] = 0.0
        return out


@dataclass
class AppState:
    """Engine input: parameters, active functions, view and optional data."""
    parameters: SystemParameters = field(default_factory=SystemParameters)
    active_function_ids: List[str] = field(default_factory=list)
    map_mode: MappingMode = MappingMode.SPIRAL
    real_world_data: Optional[EmpiricalSeries] = None

    def __post_init__(self):
        self.map_mode = MappingMode(self.map_mode)

    def replace(self, **changes) -> 'AppState':
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_dict(cls, doc: dict) -> 'AppState':
        """Build from a configuration document (camelCase keys).

        Missing parameters fall back to the canonical configuration.
        """
        base = CANONICAL_STATE.parameters
        p = doc.get("parameters", {}) or {}
        params = SystemParameters(
            n_min=int(p.get("nMin", base.n_min)),
            n_max=int(p.get("nMax", base.n_max)),
            phi=_doc_float(p.get("phi", base.phi)),
            psi=_doc_float(p.get("psi", base.psi)),
            alf=_doc_float(p.get("alf", base.alf)),
            q=_doc_float(p.get("q", base.q)),
            htf=_doc_float(p.get("htf", base.htf)),
        )
        mode = doc.get("mapMode", CANONICAL_STATE.map_mode.value)
        try:
            mode = MappingMode(mode)
        except ValueError:
            valid = [m.value for m in MappingMode]
            raise ValueError(f"Unknown mapMode {mode!r}. Use one of: {valid}")

        series = None
        rw = doc.get("realWorldData")
        if rw:
            # Document nulls are missing samples
            values = [np.nan if v is None else v for v in rw.get("data", [])]
            series = EmpiricalSeries(name=rw.get("name", "Real-World Data"), data=values)

        ids = doc.get("activeFunctionIds", CANONICAL_STATE.active_function_ids)
        return cls(
            parameters=params,
            active_function_ids=list(ids),
            map_mode=mode,
            real_world_data=series,
        )

    def to_dict(self) -> dict:
        p = self.parameters
        doc = {
            "parameters": {
                "nMin": p.n_min, "nMax": p.n_max, "phi": _json_float(p.phi),
                "psi": _json_float(p.psi), "alf": _json_float(p.alf),
                "q": _json_float(p.q), "htf": _json_float(p.htf),
            },
            "activeFunctionIds": list(self.active_function_ids),
            "mapMode": self.map_mode.value,
        }
        if self.real_world_data is not None:
            doc["realWorldData"] = {
                "name": self.real_world_data.name,
                "data": [_json_float(v) for v in self.real_world_data.data],
            }
        return doc


@dataclass
class PlotDataPoint:
    n: int
    value: float
    x: float
    y: float


@dataclass
class PlotDataSeries:
    id: str
    name: str
    family: FunctionFamily
    data: List[PlotDataPoint] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "family": self.family.value,
            "data": [{"n": p.n, "value": _json_float(p.value),
                      "x": _json_float(p.x), "y": _json_float(p.y)} for p in self.data],
        }

    def __repr__(self):
        return f"{self.name} [{self.family.value}]: {len(self.data)} points"


@dataclass
class PcaPoint:
    n: int
    x: float  # PC1
    y: float  # PC2
    original_vector: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"n": self.n, "x": _json_float(self.x), "y": _json_float(self.y),
                "originalVector": {k: _json_float(v) for k, v in self.original_vector.items()}}


PcaPlotData = List[PcaPoint]


@dataclass
class SampleMatrix:
    """Active functions evaluated over [n_min, n_max].

    ``values`` maps function id to an array of n_steps floats aligned with
    ``indices``. The empty matrix has no functions and n_steps == 0.
    """
    functions: List[FunctionDefinition] = field(default_factory=list)
    values: Dict[str, np.ndarray] = field(default_factory=dict)
    n_min: int = 0
    n_steps: int = 0

    @property
    def indices(self) -> np.ndarray:
        return np.arange(self.n_min, self.n_min + self.n_steps, dtype=np.int64)

    @property
    def is_empty(self) -> bool:
        return self.n_steps == 0 or not self.functions

    def as_array(self) -> np.ndarray:
        """(n_steps, n_functions) array, columns in active-function order."""
        if self.is_empty:
            return np.zeros((0, 0))
        return np.column_stack([self.values[f.id] for f in self.functions])


# =============================================================================
# FUNCTION LIBRARY
# =============================================================================

REAL_WORLD_ID = "real_world"

_REGISTRY: Dict[str, FunctionDefinition] = {}


def function(id, name, family, description=""):
    """Decorator that registers a vectorised generator in the library."""

    def decorator(fn):
        if id in _REGISTRY or id == REAL_WORLD_ID:
            raise ValueError(f"Function id {id!r} is reserved or already registered")
        _REGISTRY[id] = FunctionDefinition(
            id=id, name=name, family=family, fn=fn, description=description,
        )
        return fn

    return decorator


def get_functions(family=None) -> List[FunctionDefinition]:
    """Catalog in registration order, optionally filtered by family."""
    result = list(_REGISTRY.values())
    if family is not None:
        family = FunctionFamily(family)
        result = [f for f in result if f.family == family]
    return result


def get_function(id: str) -> FunctionDefinition:
    try:
        return _REGISTRY[id]
    except KeyError:
        raise KeyError(f"Unknown function {id!r}. Available: {', '.join(_REGISTRY)}")


def real_world_function(series: EmpiricalSeries) -> FunctionDefinition:
    """Library variant backed by user data: indexed lookup, 0 outside it."""
    return FunctionDefinition(
        id=REAL_WORLD_ID,
        name=series.name,
        family=FunctionFamily.REAL_WORLD,
        fn=series.lookup,
        description="User-uploaded time series data.",
    )


# --- Polynomial ---

@function("s_n", "S(n)", FunctionFamily.POLYNOMIAL, "Simple linear growth.")
def gen_linear(n):
    return n.astype(float)


@function("t_n", "T(n)", FunctionFamily.POLYNOMIAL, "Log-linear growth.")
def gen_log_linear(n):
    n = n.astype(float)
    return n * np.log(n + 1)


@function("m_n", "M(n)", FunctionFamily.POLYNOMIAL, "Quadratic growth.")
def gen_quadratic(n):
    n = n.astype(float)
    return 0.1 * n * n


# --- Signal / bitwise ---
# Bit operations act on the integer index itself.

@function("x1_n", "X1(n)=n^6-n", FunctionFamily.SIGNAL, "Bitwise XOR operation.")
def gen_xor(n):
    return ((n ^ 6) - n).astype(float)


@function("x2_n", "X2(n)=n|6-n", FunctionFamily.SIGNAL, "Bitwise OR operation.")
def gen_or(n):
    return ((n | 6) - n).astype(float)


@function("x3_n", "X3(n)=n&6-n", FunctionFamily.SIGNAL, "Bitwise AND operation.")
def gen_and(n):
    return ((n & 6) - n).astype(float)


# --- Chaotic ---

@function("tesla_n", "Tesla(n)", FunctionFamily.CHAOTIC,
          "A chaotic, unpredictable function.")
def gen_tesla(n):
    n = n.astype(float)
    return 100 * np.sin(n * n * 0.01) * np.cos(n * 0.1)


# --- Super-computable ---

@function("b_n", "B(n)", FunctionFamily.SUPER_COMPUTABLE,
          "Rapidly growing, super-polynomial function.")
def gen_super_poly(n):
    n = n.astype(float)
    exponent = np.log(n + 1) + 1
    out = np.power(n, exponent) * 0.01
    # (-1) ** -inf is undefined, numpy would return 1
    out[(np.abs(n) == 1) & np.isinf(exponent)] = np.nan
    return out


@function("bb_n", "BB(n)", FunctionFamily.SUPER_COMPUTABLE,
          'Represents exponential, "uncomputable-like" growth.')
def gen_exp_sine(n):
    n = n.astype(float)
    # Overflows to +/-inf past n ~ 1750; passed through, not clamped
    return np.power(1.5, n) * np.sin(n) * 5


CANONICAL_STATE = AppState(
    parameters=SystemParameters(
        n_min=0, n_max=500, phi=3.14, psi=1.618, alf=0.0, q=0.1, htf=1.0,
    ),
    active_function_ids=["s_n", "t_n", "x1_n", "tesla_n", "b_n"],
    map_mode=MappingMode.SPIRAL,
)


# =============================================================================
# COUPLING MODEL
# =============================================================================

def coupling(id_a: str, id_b: str) -> float:
    """Deterministic coefficient in [0, 1) for the ordered pair (a, b).

    Rolling 31x hash over the UTF-16 code units of ``id_a + id_b``, wrapped
    to signed 32 bits at every step, then |hash| mod 100 / 100.
    Not symmetric: coupling(a, b) and coupling(b, a) hash different strings.
    """
    combined = (id_a + id_b).encode("utf-16-le")
    h = 0
    for i in range(0, len(combined), 2):
        unit = combined[i] | (combined[i + 1] << 8)
        h = (h * 31 + unit) & 0xFFFFFFFF
        if h >= 0x80000000:
            h -= 0x100000000
    return (abs(h) % 100) / 100


def coupling_matrix(ids: Sequence[str]) -> np.ndarray:
    """C[i, j] = coupling(ids[i], ids[j]), zero diagonal."""
    k = len(ids)
    C = np.zeros((k, k))
    for i, a in enumerate(ids):
        for j, b in enumerate(ids):
            if i != j:
                C[i, j] = coupling(a, b)
    return C


# =============================================================================
# SAMPLE MATRIX BUILDER
# =============================================================================

def resolve_active_functions(state: AppState) -> List[FunctionDefinition]:
    """Catalog entries whose id is active, in catalog order, then the
    RealWorld variant if data is supplied and 'real_world' is active.
    Unknown ids and duplicates are ignored."""
    active = set(state.active_function_ids)
    functions = [f for f in _REGISTRY.values() if f.id in active]
    if state.real_world_data is not None and REAL_WORLD_ID in active:
        functions.append(real_world_function(state.real_world_data))
    return functions


def build_sample_matrix(state: AppState) -> SampleMatrix:
    params = state.parameters
    functions = resolve_active_functions(state)
    n_steps = params.n_steps
    if n_steps <= 0 or not functions:
        return SampleMatrix(n_min=params.n_min)

    indices = np.arange(params.n_min, params.n_max + 1, dtype=np.int64)
    values = {}
    for f in functions:
        col = f.evaluate(indices)
        n_bad = int(np.count_nonzero(~np.isfinite(col)))
        if n_bad:
            warnings.warn(f"{f.name}: {n_bad} non-finite values in "
                          f"[{params.n_min}, {params.n_max}]", RuntimeWarning)
        values[f.id] = col

    return SampleMatrix(functions=functions, values=values,
                        n_min=params.n_min, n_steps=n_steps)


# =============================================================================
# SPIRAL PROJECTOR
# =============================================================================

def coupling_terms(matrix: SampleMatrix) -> np.ndarray:
    """(n_functions, n_steps) array of sum_j C[i, j] * (f_j - f_i)."""
    ids = [f.id for f in matrix.functions]
    F = np.vstack([matrix.values[i] for i in ids])
    C = coupling_matrix(ids)
    terms = np.zeros_like(F)
    with np.errstate(over='ignore', invalid='ignore'):
        for i in range(len(ids)):
            for j in range(len(ids)):
                if i != j:
                    terms[i] += C[i, j] * (F[j] - F[i])
    return terms


def project_spiral(matrix: SampleMatrix, params: SystemParameters) -> List[PlotDataSeries]:
    """Log-polar map of every active function.

    r = 10**alf * f_i(n) + q * coupling_i(n)
    theta = phi * n + psi
    """
    if matrix.is_empty:
        return []

    n = matrix.indices
    theta = params.phi * n + params.psi
    cos_t, sin_t = np.cos(theta), np.sin(theta)
    # q <= 0 switches coupling off entirely, so r is exactly scale * f
    terms = coupling_terms(matrix) if params.q > 0 else None

    series = []
    with np.errstate(over='ignore', invalid='ignore'):
        # Extreme alf overflows to inf rather than raising
        scale = np.power(10.0, params.alf)
        for i, f in enumerate(matrix.functions):
            vals = matrix.values[f.id]
            r = scale * vals
            if terms is not None:
                r = r + params.q * terms[i]
            xs, ys = r * cos_t, r * sin_t
            points = [
                PlotDataPoint(n=int(n[k]), value=float(vals[k]),
                              x=float(xs[k]), y=float(ys[k]))
                for k in range(matrix.n_steps)
            ]
            series.append(PlotDataSeries(id=f.id, name=f.name, family=f.family,
                                         data=points))
    return series


# =============================================================================
# DIMENSIONALITY REDUCER
# =============================================================================

def reduce_dimensions(matrix: SampleMatrix, return_model: bool = False):
    """Project the sample matrix onto its top two principal axes.

    Mean-centred, unscaled PCA. Needs at least 2 functions and 1 index,
    otherwise the result is empty. With ``return_model`` the fitted
    sklearn PCA (or None when no fit was needed) is returned alongside.
    """
    if matrix.is_empty or len(matrix.functions) < 2:
        return ([], None) if return_model else []

    X = matrix.as_array().copy()
    X[np.isnan(X)] = 0.0
    coords = np.zeros((matrix.n_steps, 2))
    model = None

    if not np.all(np.isfinite(X)):
        warnings.warn("Sample matrix contains infinite values; "
                      "principal axes are undefined", RuntimeWarning)
        coords[:] = np.nan
    elif matrix.n_steps > 1:
        k = min(2, matrix.n_steps, X.shape[1])
        model = PCA(n_components=k, svd_solver="full")
        coords[:, :k] = model.fit_transform(X)
    # A single row centres to the origin

    names = [f.name for f in matrix.functions]
    raw = matrix.as_array()
    points = []
    for row, n in enumerate(matrix.indices):
        points.append(PcaPoint(
            n=int(n),
            x=float(coords[row, 0]),
            y=float(coords[row, 1]),
            original_vector={name: float(raw[row, c]) for c, name in enumerate(names)},
        ))
    return (points, model) if return_model else points


# =============================================================================
# ENGINE
# =============================================================================

def calculate_plot_data(state: AppState) -> List[PlotDataSeries]:
    return project_spiral(build_sample_matrix(state), state.parameters)


def calculate_pca_projection(state: AppState) -> PcaPlotData:
    return reduce_dimensions(build_sample_matrix(state))


def compute(state: AppState) -> Union[List[PlotDataSeries], PcaPlotData]:
    """Run the view selected by ``state.map_mode``.

    The bitwise view consumes the same series as the spiral view.
    """
    if state.map_mode == MappingMode.PCA:
        return calculate_pca_projection(state)
    return calculate_plot_data(state)
