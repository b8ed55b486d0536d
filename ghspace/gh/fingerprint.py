"""Discretization fingerprints.

A fingerprint of a compact space p at resolution ε is obtained by

1. choosing an ε-net ``s = (x_0, ..., x_{N-1})`` of p (greedy farthest-point
   order from the basepoint, which is also the bijection with ``{0..N-1}``);
2. quantizing its distances to ``m_ij = min(⌊d(x_i, x_j)/ε⌋, M)``.

If p and q have diameter ≤ C and identical fingerprints with ``M ≥ C/ε``,
the nets differ by less than ε entrywise, so

    GH(p, q) ≤ GH(p, s_p) + GH(s_p, s_q) + GH(s_q, q) ≤ ε + ε/2 + ε = 2.5·ε

Under uniform bounds C and K(ε) on diameter and net size there are finitely
many fingerprints at each resolution, which makes any such family totally
bounded; letting ε run through ``ε_0·2^-k`` the reconstructions form a
countable dense subset of the GH space.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple
import logging
import math

import numpy as np

from ..metric.space import FiniteMetricSpace
from ..utils.config import FINGERPRINT
from ..utils.exceptions import ConfigurationError, ValidationError
from ..utils.validation import validate_positive
from .gh_config import GHConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Fingerprint:
    """Quantized distance matrix of an ε-net.

    Attributes:
        matrix: Quantized distances, row-major tuple of tuples
        epsilon: Resolution ε
        n_points: Net size N
        diameter_bound: Diameter bound C the fingerprint was taken under
        cap: Quantization cap M
        error_factor: GH radius of a fingerprint cell in units of ε
    """
    matrix: Tuple[Tuple[int, ...], ...]
    epsilon: float
    n_points: int
    diameter_bound: float
    cap: int
    error_factor: float = FINGERPRINT.ERROR_FACTOR

    def to_array(self) -> np.ndarray:
        return np.array(self.matrix, dtype=np.int64).reshape(self.n_points, self.n_points)

    @property
    def error_bound(self) -> float:
        """GH distance bound between spaces sharing this fingerprint."""
        return self.error_factor * self.epsilon

    @property
    def reconstruction_error(self) -> float:
        """GH distance bound between a source space and ``reconstruct()``."""
        return FINGERPRINT.RECONSTRUCTION_FACTOR * self.epsilon

    def reconstruct(self) -> FiniteMetricSpace:
        """Finite metric space with distances ``ε·(m + 1)`` off the diagonal.

        Every source distance lies in ``[ε·m, ε·(m + 1))`` so the result is
        within ``1.5·ε`` of the source space (when no entry is capped).
        """
        M = self.to_array().astype(np.float64)
        D = self.epsilon * (M + 1.0)
        np.fill_diagonal(D, 0.0)
        return FiniteMetricSpace(D, name="reconstruction", validate=False)

    def to_dict(self) -> Dict[str, Any]:
        """Convert fingerprint to a JSON-serializable dictionary."""
        return {
            'matrix': [list(row) for row in self.matrix],
            'epsilon': self.epsilon,
            'n_points': self.n_points,
            'diameter_bound': self.diameter_bound,
            'cap': self.cap,
            'error_factor': self.error_factor,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Fingerprint':
        """Create fingerprint from dictionary.

        Raises:
            ValidationError: If the matrix does not match the recorded size
        """
        matrix = tuple(tuple(int(v) for v in row) for row in data['matrix'])
        n = int(data['n_points'])
        if len(matrix) != n or any(len(row) != n for row in matrix):
            raise ValidationError("fingerprint matrix does not match n_points",
                                  parameter="matrix", expected=n, actual=len(matrix))
        return cls(
            matrix=matrix,
            epsilon=float(data['epsilon']),
            n_points=n,
            diameter_bound=float(data['diameter_bound']),
            cap=int(data['cap']),
            error_factor=float(data.get('error_factor', FINGERPRINT.ERROR_FACTOR)),
        )


@dataclass
class CompactnessWitness:
    """Partition of a family of spaces into fingerprint cells.

    Every cell has GH diameter at most ``error_bound`` and there are at most
    ``max_fingerprints`` cells, so the family is totally bounded.
    """
    epsilon: float
    diameter_bound: float
    covering_number: int
    cap: int
    error_bound: float
    max_fingerprints: int
    cells: Dict[Fingerprint, List[int]] = field(default_factory=dict)

    @property
    def n_cells(self) -> int:
        return len(self.cells)

    @property
    def is_bounded(self) -> bool:
        return self.n_cells <= self.max_fingerprints

    def cell_of(self, index: int) -> Fingerprint:
        for fp, members in self.cells.items():
            if index in members:
                return fp
        raise ValidationError(f"no space with index {index} in the witness", parameter="index")

    def representatives(self) -> List[int]:
        """First member of every cell."""
        return [members[0] for members in self.cells.values()]

    def net(self) -> List[FiniteMetricSpace]:
        """Reconstructions of every cell: a finite net of the family."""
        return [fp.reconstruct() for fp in self.cells]


class DiscretizationFingerprinter:
    """Builds fingerprints under the diameter and covering bounds of a GHConfig."""

    def __init__(self, config: Optional[GHConfig] = None):
        self.config = config or GHConfig()
        self.config.validate()

    def select_net(self, space: FiniteMetricSpace, epsilon: float) -> np.ndarray:
        """Greedy farthest-point ε-net starting at the basepoint.

        Returns:
            Net indices in selection order
        """
        epsilon = validate_positive(epsilon, "epsilon")
        D = space.distances
        net = [space.basepoint]
        nearest = D[space.basepoint].copy()
        while nearest.max() > epsilon + self.config.atol:
            far = int(nearest.argmax())
            net.append(far)
            np.minimum(nearest, D[far], out=nearest)
        return np.array(net, dtype=np.int64)

    def diameter_bound_for(self, space: FiniteMetricSpace) -> float:
        return self.config.diameter_bound if self.config.diameter_bound is not None else space.diameter

    def cap_for(self, epsilon: float, diameter_bound: float) -> int:
        """Quantization cap M, at least ``ceil(C/ε)``.

        Raises:
            ConfigurationError: If a configured cap is below ``ceil(C/ε)``, which
                would merge distances in ``[ε·M, C]`` into one entry
        """
        needed = max(1, int(math.ceil(diameter_bound / epsilon)))
        cap = self.config.fingerprint_cap
        if cap is None:
            return needed
        if cap < needed:
            raise ConfigurationError(
                f"fingerprint_cap={cap} is below ceil(C/epsilon)={needed} "
                f"for C={diameter_bound:.4g}, epsilon={epsilon:.4g}",
                config_key='fingerprint_cap', config_value=cap)
        return int(cap)

    def fingerprint(self, space: FiniteMetricSpace, epsilon: float) -> Fingerprint:
        """Fingerprint of ``space`` at resolution ``epsilon``.

        Raises:
            ValidationError: If the space exceeds the diameter bound C or its
                ε-net exceeds the covering bound K(ε)
            ConfigurationError: If the configured cap is below ``ceil(C/ε)``
        """
        epsilon = validate_positive(epsilon, "epsilon")
        C = self.diameter_bound_for(space)
        if space.diameter > C + self.config.atol:
            raise ValidationError("space exceeds the diameter bound", parameter="diameter",
                                  expected=f"<= {C}", actual=space.diameter)

        net = self.select_net(space, epsilon)
        K = self.config.covering_number(epsilon)
        if K is not None and net.size > K:
            raise ValidationError("epsilon-net exceeds the covering bound",
                                  parameter="covering_bound", expected=f"<= {K}", actual=net.size)

        M = self.cap_for(epsilon, C)
        D = space.distances[np.ix_(net, net)]
        Q = np.minimum(np.floor((D + self.config.atol) / epsilon), M).astype(np.int64)
        np.fill_diagonal(Q, 0)

        fp = Fingerprint(
            matrix=tuple(tuple(int(v) for v in row) for row in Q),
            epsilon=float(epsilon),
            n_points=int(net.size),
            diameter_bound=float(C),
            cap=M,
            error_factor=self.config.fingerprint_error_factor,
        )
        logger.debug(f"Fingerprint at epsilon={epsilon:.4g}: N={fp.n_points}, M={M}")
        return fp

    def fingerprint_schedule(self, space: FiniteMetricSpace, epsilon: float,
                             levels: int = FINGERPRINT.DEFAULT_SCHEDULE_LEVELS) -> List[Fingerprint]:
        """Fingerprints at ``epsilon·2^-k`` for ``k = 0..levels-1``."""
        if levels < 1:
            raise ValidationError("levels must be at least 1", parameter="levels", actual=levels)
        return [self.fingerprint(space, epsilon * 2.0 ** (-k)) for k in range(levels)]

    def max_fingerprints(self, epsilon: float) -> int:
        """Number of distinct fingerprints at resolution ε under the (C, K) bounds.

        Raises:
            ConfigurationError: If the diameter or covering bound is not configured
        """
        C, K = self._require_bounds(epsilon)
        M = self.cap_for(epsilon, C)
        return sum((M + 1) ** (N * (N - 1) // 2) for N in range(1, K + 1))

    def compactness_witness(self, spaces: Sequence[FiniteMetricSpace],
                            epsilon: float) -> CompactnessWitness:
        """Group a family into fingerprint cells of GH diameter ≤ ``error_factor·ε``.

        Raises:
            ConfigurationError: If the diameter or covering bound is not configured
            ValidationError: If a space violates the bounds
        """
        epsilon = validate_positive(epsilon, "epsilon")
        C, K = self._require_bounds(epsilon)
        cells: Dict[Fingerprint, List[int]] = {}
        for index, space in enumerate(spaces):
            cells.setdefault(self.fingerprint(space, epsilon), []).append(index)

        witness = CompactnessWitness(
            epsilon=epsilon,
            diameter_bound=C,
            covering_number=K,
            cap=self.cap_for(epsilon, C),
            error_bound=self.config.fingerprint_error_factor * epsilon,
            max_fingerprints=self.max_fingerprints(epsilon),
            cells=cells,
        )
        logger.info(f"Compactness witness at epsilon={epsilon:.4g}: "
                    f"{len(spaces)} spaces in {witness.n_cells} cells")
        return witness

    def _require_bounds(self, epsilon: float) -> Tuple[float, int]:
        if self.config.diameter_bound is None:
            raise ConfigurationError("compactness criterion needs a diameter bound",
                                     config_key='diameter_bound')
        K = self.config.covering_number(epsilon)
        if K is None:
            raise ConfigurationError("compactness criterion needs a covering bound",
                                     config_key='covering_bound')
        return float(self.config.diameter_bound), K
