"""Correspondence search for the Gromov-Hausdorff distance.

For finite spaces the infimum over candidate couplings is a minimum over
correspondences ``R ⊆ X × Y`` (relations whose projections cover X and Y):

    GH(X, Y) = ½ · min_R dis(R),   dis(R) = max_{(x,y),(x',y')∈R} |d_X(x,x') - d_Y(y,y')|

``dis(R)`` only takes values in the finite set ``{|a - b| : a ∈ d_X, b ∈ d_Y}``,
so the minimum is found by binary search over that set. Deciding whether a
threshold τ admits a correspondence is a covering-clique problem on the
compatibility graph whose nodes are pairs ``(x, y)`` and whose edges join
pairs with ``|d_X(x,x') - d_Y(y,y')| ≤ τ``: R is feasible iff some maximal
clique covers both sides.

For larger inputs a relaxed search seeds assignment maps from an optimal
Gromov-Wasserstein transport plan (POT) and refines them by hill climbing;
the result is an upper bound paired with the certified lower bounds below.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple
import logging

import networkx as nx
import numpy as np
import ot

from ..utils.config import NUMERICAL, SEARCH
from ..utils.exceptions import ComputationError, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Correspondence:
    """A relation between X and Y with its distortion.

    Attributes:
        pairs: Sorted tuple of index pairs ``(x, y)``
        distortion: ``dis(R)``
    """
    pairs: Tuple[Tuple[int, int], ...]
    distortion: float

    @classmethod
    def from_arrays(cls, DX: np.ndarray, DY: np.ndarray, left, right) -> "Correspondence":
        pairs = tuple(sorted(set(zip(np.asarray(left).tolist(), np.asarray(right).tolist()))))
        left = np.array([p[0] for p in pairs], dtype=np.int64)
        right = np.array([p[1] for p in pairs], dtype=np.int64)
        return cls(pairs=pairs, distortion=distortion(DX, DY, left, right))

    @classmethod
    def from_maps(cls, DX: np.ndarray, DY: np.ndarray, f, g) -> "Correspondence":
        """Graph of ``f: X -> Y`` united with the transposed graph of ``g: Y -> X``."""
        f = np.asarray(f, dtype=np.int64)
        g = np.asarray(g, dtype=np.int64)
        left = np.concatenate([np.arange(f.size), g])
        right = np.concatenate([f, np.arange(g.size)])
        return cls.from_arrays(DX, DY, left, right)

    @property
    def left(self) -> np.ndarray:
        return np.array([p[0] for p in self.pairs], dtype=np.int64)

    @property
    def right(self) -> np.ndarray:
        return np.array([p[1] for p in self.pairs], dtype=np.int64)

    def covers(self, n: int, m: int) -> bool:
        return (set(self.left.tolist()) == set(range(n))
                and set(self.right.tolist()) == set(range(m)))

    def is_bijection(self, n: int, m: int) -> bool:
        return n == m and len(self.pairs) == n and self.covers(n, m)

    def as_map(self) -> Dict[int, int]:
        """``x -> y`` for a bijective correspondence."""
        return dict(self.pairs)

    def __len__(self) -> int:
        return len(self.pairs)


def distortion(DX: np.ndarray, DY: np.ndarray, left, right) -> float:
    """Distortion of the relation ``{(left[k], right[k])}``."""
    left = np.asarray(left, dtype=np.int64)
    right = np.asarray(right, dtype=np.int64)
    if left.size == 0:
        raise ValidationError("distortion of an empty relation is undefined")
    return float(np.abs(DX[np.ix_(left, left)] - DY[np.ix_(right, right)]).max())


def diameter_lower_bound(DX: np.ndarray, DY: np.ndarray) -> float:
    """``GH >= ½ |diam X - diam Y|``."""
    return 0.5 * abs(float(DX.max()) - float(DY.max()))


def eccentricity_lower_bound(DX: np.ndarray, DY: np.ndarray) -> float:
    """``GH >= ½ · max(sup_x inf_y |e(x) - e(y)|, sup_y inf_x |e(x) - e(y)|)``.

    Related points of a correspondence have eccentricities within ``dis(R)``.
    """
    ex = DX.max(axis=1)
    ey = DY.max(axis=1)
    diff = np.abs(ex[:, None] - ey[None, :])
    return 0.5 * float(max(diff.min(axis=1).max(), diff.min(axis=0).max()))


def lower_bound(DX: np.ndarray, DY: np.ndarray) -> float:
    return max(diameter_lower_bound(DX, DY), eccentricity_lower_bound(DX, DY))


def candidate_thresholds(DX: np.ndarray, DY: np.ndarray) -> np.ndarray:
    """Sorted distinct values ``|a - b|`` with ``a`` a distance of X, ``b`` of Y."""
    dx = np.unique(DX)
    dy = np.unique(DY)
    return np.unique(np.abs(dx[:, None] - dy[None, :]))


def _feasible_correspondence(DX: np.ndarray, DY: np.ndarray, tau: float,
                             atol: float) -> Optional[Tuple[np.ndarray, np.ndarray]]:
    """A correspondence with distortion ≤ τ, or None."""
    n, m = DX.shape[0], DY.shape[0]
    ex = DX.max(axis=1)
    ey = DY.max(axis=1)
    allowed = np.abs(ex[:, None] - ey[None, :]) <= tau + atol
    if not allowed.any(axis=1).all() or not allowed.any(axis=0).all():
        return None

    I, J = np.nonzero(allowed)
    compatible = np.abs(DX[np.ix_(I, I)] - DY[np.ix_(J, J)]) <= tau + atol
    rows, cols = np.nonzero(np.triu(compatible, k=1))

    G = nx.Graph()
    G.add_nodes_from(range(I.size))
    G.add_edges_from(zip(rows.tolist(), cols.tolist()))

    for clique in nx.find_cliques(G):
        clique = np.asarray(clique, dtype=np.int64)
        if np.unique(I[clique]).size == n and np.unique(J[clique]).size == m:
            return I[clique], J[clique]
    return None


def exact_correspondence(
    DX: np.ndarray,
    DY: np.ndarray,
    atol: float = NUMERICAL.DEFAULT_ATOL,
    lower: Optional[float] = None,
) -> Tuple[Correspondence, Dict[str, Any]]:
    """Correspondence of minimal distortion by binary search over thresholds.

    Args:
        DX, DY: Distance matrices
        atol: Tolerance when comparing distances
        lower: A known lower bound on GH used to skip small thresholds

    Returns:
        (optimal correspondence, search log)
    """
    if lower is None:
        lower = lower_bound(DX, DY)

    thresholds = candidate_thresholds(DX, DY)
    thresholds = thresholds[thresholds >= 2.0 * lower - atol]
    if thresholds.size == 0:
        raise ComputationError("no admissible distortion threshold",
                               operation="exact_correspondence",
                               values={'lower_bound': lower})

    lo, hi = 0, thresholds.size - 1
    witness = None
    witness_index = None
    evaluations = 0
    while lo < hi:
        mid = (lo + hi) // 2
        evaluations += 1
        found = _feasible_correspondence(DX, DY, thresholds[mid], atol)
        if found is not None:
            hi = mid
            witness, witness_index = found, mid
        else:
            lo = mid + 1

    if witness is None or witness_index != lo:
        evaluations += 1
        witness = _feasible_correspondence(DX, DY, thresholds[lo], atol)
        if witness is None:
            raise ComputationError("largest distortion threshold is infeasible",
                                   operation="exact_correspondence",
                                   values={'threshold': float(thresholds[lo])})

    corr = Correspondence.from_arrays(DX, DY, *witness)
    log = {
        'solver': 'clique_binary_search',
        'n_thresholds': int(thresholds.size),
        'n_evaluations': evaluations,
        'threshold': float(thresholds[lo]),
    }
    logger.debug(f"Exact correspondence: distortion={corr.distortion:.6g}, "
                 f"{evaluations} feasibility checks over {thresholds.size} thresholds")
    return corr, log


def _map_distortion(DX: np.ndarray, DY: np.ndarray, f: np.ndarray, g: np.ndarray) -> float:
    left = np.concatenate([np.arange(f.size), g])
    right = np.concatenate([f, np.arange(g.size)])
    return distortion(DX, DY, left, right)


def refine_maps(
    DX: np.ndarray,
    DY: np.ndarray,
    f: np.ndarray,
    g: np.ndarray,
    sweeps: int = SEARCH.REFINE_SWEEPS,
    atol: float = NUMERICAL.DEFAULT_ATOL,
) -> Tuple[np.ndarray, np.ndarray, float]:
    """Hill-climb single reassignments of ``f: X -> Y`` and ``g: Y -> X``.

    Returns:
        (refined f, refined g, distortion of the induced correspondence)
    """
    f = np.array(f, dtype=np.int64)
    g = np.array(g, dtype=np.int64)
    best = _map_distortion(DX, DY, f, g)

    for sweep in range(sweeps):
        improved = False
        for source, size in ((f, DY.shape[0]), (g, DX.shape[0])):
            for k in range(source.size):
                current = source[k]
                for candidate in range(size):
                    if candidate == current:
                        continue
                    source[k] = candidate
                    value = _map_distortion(DX, DY, f, g)
                    if value < best - atol:
                        best, current, improved = value, candidate, True
                source[k] = current
        logger.debug(f"Refinement sweep {sweep}: distortion={best:.6g}")
        if not improved:
            break

    return f, g, best


def relaxed_correspondence(
    DX: np.ndarray,
    DY: np.ndarray,
    max_iter: int = SEARCH.GW_MAX_ITER,
    tol: float = SEARCH.GW_TOLERANCE,
    sweeps: int = SEARCH.REFINE_SWEEPS,
    atol: float = NUMERICAL.DEFAULT_ATOL,
) -> Tuple[Correspondence, Dict[str, Any]]:
    """Upper-bound correspondence from a Gromov-Wasserstein plan plus refinement.

    Three seeds are refined and the best one is kept: the argmax maps of the
    POT transport plan, nearest-eccentricity maps, and maps matching
    eccentricity quantiles.
    """
    n, m = DX.shape[0], DY.shape[0]
    p = ot.unif(n)
    q = ot.unif(m)
    plan, gw_log = ot.gromov.gromov_wasserstein(
        DX, DY, p, q,
        loss_fun='square_loss',
        max_iter=max_iter,
        tol_rel=tol,
        tol_abs=tol,
        log=True,
    )
    plan = np.asarray(plan)
    if plan.shape != (n, m) or not np.all(np.isfinite(plan)):
        raise ComputationError("transport plan is not finite", operation="gromov_wasserstein",
                               values={'shape': plan.shape})

    ex = DX.max(axis=1)
    ey = DY.max(axis=1)
    ecc_gap = np.abs(ex[:, None] - ey[None, :])
    order_x = np.argsort(ex, kind='stable')
    order_y = np.argsort(ey, kind='stable')
    rank_x = np.empty(n, dtype=np.int64)
    rank_x[order_x] = np.arange(n)
    rank_y = np.empty(m, dtype=np.int64)
    rank_y[order_y] = np.arange(m)
    seeds = {
        'transport': (plan.argmax(axis=1), plan.argmax(axis=0)),
        'eccentricity': (ecc_gap.argmin(axis=1), ecc_gap.argmin(axis=0)),
        # Eccentricity quantiles, a bijection when n == m
        'rank': (order_y[(rank_x * m) // n], order_x[(rank_y * n) // m]),
    }

    best_name, best = None, None
    for name, (f0, g0) in seeds.items():
        f, g, value = refine_maps(DX, DY, f0, g0, sweeps=sweeps, atol=atol)
        if best is None or value < best[2]:
            best_name, best = name, (f, g, value)

    corr = Correspondence.from_maps(DX, DY, best[0], best[1])
    log = {
        'solver': 'gw_transport_refined',
        'seed': best_name,
        'gw_dist': float(gw_log.get('gw_dist', np.nan)),
        'refine_sweeps': sweeps,
    }
    logger.debug(f"Relaxed correspondence ({best_name} seed): distortion={corr.distortion:.6g}")
    return corr, log
