"""Isometry classes and the Gromov-Hausdorff space.

The GH space is the set of isometry classes of nonempty compact metric
spaces. Rather than materialising equivalence classes, a GHSpace keeps an
arena of representatives and canonicalises them with a union-find
structure: ``to_class`` looks for an isometric representative among the
arena entries with matching invariants and only adds a new class when none
exists, so isometric inputs always map to the same class object.
"""

from typing import Dict, Iterable, List, Optional, Tuple, Union
import logging

import networkx as nx
import numpy as np
from networkx.algorithms import isomorphism

from ..metric.embedding import NonemptyCompactSubset, kuratowski_embedding
from ..metric.space import FiniteMetricSpace
from ..utils.config import NUMERICAL
from ..utils.exceptions import ValidationError
from .coupling import CouplingResult, GromovHausdorffComputer
from .gh_config import GHConfig

logger = logging.getLogger(__name__)


def _weighted_complete_graph(space: FiniteMetricSpace) -> nx.Graph:
    D = space.distances
    ecc = space.eccentricities
    G = nx.Graph()
    for i in range(space.n_points):
        G.add_node(i, eccentricity=float(ecc[i]))
    for i in range(space.n_points):
        for j in range(i + 1, space.n_points):
            G.add_edge(i, j, weight=float(D[i, j]))
    return G


def isometry_invariants_match(X: FiniteMetricSpace, Y: FiniteMetricSpace,
                              atol: float = NUMERICAL.DEFAULT_ATOL) -> bool:
    """Cheap necessary conditions for X and Y to be isometric."""
    if X.n_points != Y.n_points:
        return False
    if not np.allclose(np.sort(X.distances, axis=None), np.sort(Y.distances, axis=None),
                       rtol=0.0, atol=atol):
        return False
    return np.allclose(np.sort(X.eccentricities), np.sort(Y.eccentricities), rtol=0.0, atol=atol)


def find_isometry(X: FiniteMetricSpace, Y: FiniteMetricSpace,
                  atol: float = NUMERICAL.DEFAULT_ATOL) -> Optional[np.ndarray]:
    """Search for a distance-preserving bijection ``f: X -> Y``.

    Args:
        X, Y: Finite metric spaces
        atol: Tolerance when comparing distances

    Returns:
        Array ``f`` with ``d_Y(f[i], f[j]) = d_X(i, j)``, or None when the
        spaces are not isometric
    """
    if not isometry_invariants_match(X, Y, atol):
        return None
    if X.n_points == 1:
        return np.zeros(1, dtype=np.int64)

    matcher = isomorphism.GraphMatcher(
        _weighted_complete_graph(X),
        _weighted_complete_graph(Y),
        node_match=isomorphism.numerical_node_match('eccentricity', 0.0, rtol=0.0, atol=atol),
        edge_match=isomorphism.numerical_edge_match('weight', 0.0, rtol=0.0, atol=atol),
    )
    mapping = next(matcher.isomorphisms_iter(), None)
    if mapping is None:
        return None
    return np.array([mapping[i] for i in range(X.n_points)], dtype=np.int64)


class IsometryClass:
    """An element of the Gromov-Hausdorff space.

    Carries a source space and its canonical representative, the Kuratowski
    image in ℓ∞. Two classes are equal iff their spaces are isometric.

    Attributes:
        space: A finite metric space of the class
        representative: Kuratowski image of ``space``
        index: Arena index when the class belongs to a GHSpace
    """

    def __init__(self, space: FiniteMetricSpace, atol: float = NUMERICAL.DEFAULT_ATOL,
                 index: Optional[int] = None, arena: Optional["GHSpace"] = None):
        if not isinstance(space, FiniteMetricSpace):
            raise ValidationError("isometry classes are built from FiniteMetricSpace instances",
                                  parameter="space", actual=type(space).__name__)
        self.space = space
        self.atol = atol
        self.index = index
        self._arena = arena
        self._representative = None

    @property
    def representative(self) -> NonemptyCompactSubset:
        if self._representative is None:
            self._representative = kuratowski_embedding(self.space)
        return self._representative

    @property
    def n_points(self) -> int:
        return self.space.n_points

    @property
    def diameter(self) -> float:
        return self.space.diameter

    def hausdorff_upper_bound(self, other: "IsometryClass") -> float:
        """Hausdorff distance of the two ℓ∞ representatives.

        This is one particular coupling, so it bounds the GH distance from above.
        """
        return self.representative.hausdorff_distance(other.representative)

    def isometry_to(self, other: "IsometryClass") -> Optional[np.ndarray]:
        return find_isometry(self.space, other.space, max(self.atol, other.atol))

    def __eq__(self, other) -> bool:
        if not isinstance(other, IsometryClass):
            return NotImplemented
        if self is other:
            return True
        if self._arena is not None and self._arena is other._arena:
            return self._arena.find(self.index) == self._arena.find(other.index)
        return self.isometry_to(other) is not None

    def __hash__(self) -> int:
        return hash(self.n_points)

    def __repr__(self) -> str:
        index = f"index={self.index}, " if self.index is not None else ""
        return f"IsometryClass({index}n_points={self.n_points}, diameter={self.diameter:.6g})"


ClassLike = Union[IsometryClass, FiniteMetricSpace]


class GHSpace:
    """Arena of isometry classes with the Gromov-Hausdorff metric.

    Example:
        >>> gh = GHSpace()
        >>> p = gh.to_class(FiniteMetricSpace.uniform(2))
        >>> q = gh.to_class(FiniteMetricSpace.uniform(3))
        >>> gh.dist(p, q)
        0.5
    """

    def __init__(self, computer: Optional[GromovHausdorffComputer] = None,
                 config: Optional[GHConfig] = None):
        self.computer = computer or GromovHausdorffComputer(config)
        self.atol = self.computer.config.atol
        self._classes: List[IsometryClass] = []
        self._parent: List[int] = []
        self._by_size: Dict[int, List[int]] = {}
        self._couplings: Dict[Tuple[int, int], CouplingResult] = {}

    # ------------------------------------------------------------------
    # Union-find
    # ------------------------------------------------------------------
    def find(self, index: int) -> int:
        root = index
        while self._parent[root] != root:
            root = self._parent[root]
        while self._parent[index] != root:
            self._parent[index], index = root, self._parent[index]
        return root

    def _union(self, a: int, b: int) -> int:
        ra, rb = self.find(a), self.find(b)
        if ra == rb:
            return ra
        keep, drop = min(ra, rb), max(ra, rb)
        self._parent[drop] = keep
        self._couplings = {k: v for k, v in self._couplings.items() if drop not in k}
        logger.debug(f"Merged isometry class {drop} into {keep}")
        return keep

    # ------------------------------------------------------------------
    # Classes
    # ------------------------------------------------------------------
    def to_class(self, item: ClassLike) -> IsometryClass:
        """Canonical class of a space (or of a class built elsewhere).

        Isometric inputs return the same object.
        """
        if isinstance(item, IsometryClass):
            if item._arena is self:
                return self._classes[self.find(item.index)]
            item = item.space

        existing = self._lookup(item)
        if existing is not None:
            return self._classes[existing]

        index = len(self._classes)
        cls = IsometryClass(item, atol=self.atol, index=index, arena=self)
        self._classes.append(cls)
        self._parent.append(index)
        self._by_size.setdefault(item.n_points, []).append(index)
        logger.debug(f"New isometry class {index}: n_points={item.n_points}")
        return cls

    def _lookup(self, space: FiniteMetricSpace) -> Optional[int]:
        seen = set()
        for index in self._by_size.get(space.n_points, []):
            root = self.find(index)
            if root in seen:
                continue
            seen.add(root)
            if find_isometry(self._classes[root].space, space, self.atol) is not None:
                return root
        return None

    def _root(self, p: ClassLike) -> int:
        return self.find(self.to_class(p).index)

    def classes(self) -> List[IsometryClass]:
        """Canonical classes in arena order."""
        return [c for i, c in enumerate(self._classes) if self.find(i) == i]

    def merge(self, p: ClassLike, q: ClassLike) -> IsometryClass:
        """Union two classes whose spaces are isometric.

        Raises:
            ValidationError: If no isometry between the classes exists
        """
        a, b = self._root(p), self._root(q)
        if a != b and find_isometry(self._classes[a].space, self._classes[b].space,
                                    self.atol) is None:
            raise ValidationError("cannot merge classes that are not isometric",
                                  parameter="classes", actual=(a, b))
        return self._classes[self._union(a, b)]

    # ------------------------------------------------------------------
    # Metric
    # ------------------------------------------------------------------
    def optimal_coupling(self, p: ClassLike, q: ClassLike) -> CouplingResult:
        """Optimal coupling of the representatives of p and q, oriented p -> q."""
        a, b = self._root(p), self._root(q)
        key = (min(a, b), max(a, b))
        result = self._couplings.get(key)
        if result is None:
            result = self.computer.compute_optimal_coupling(self._classes[key[0]].space,
                                                            self._classes[key[1]].space)
            self._couplings[key] = result
        return result if a == key[0] else result.swapped()

    def dist(self, p: ClassLike, q: ClassLike) -> float:
        """Gromov-Hausdorff distance between two classes."""
        a, b = self._root(p), self._root(q)
        if a == b:
            return 0.0
        result = self.optimal_coupling(self._classes[a], self._classes[b])
        if (result.exact and result.distance <= self.atol
                and find_isometry(self._classes[a].space, self._classes[b].space,
                                  self.atol) is not None):
            logger.info(f"Classes {a} and {b} are isometric; merging")
            self._union(a, b)
            return 0.0
        return result.distance

    def distance_matrix(self, classes: Optional[Iterable[ClassLike]] = None) -> np.ndarray:
        items = self.classes() if classes is None else list(classes)
        k = len(items)
        M = np.zeros((k, k))
        for i in range(k):
            for j in range(i + 1, k):
                M[i, j] = M[j, i] = self.dist(items[i], items[j])
        return M

    def __len__(self) -> int:
        return len(self.classes())

    def __contains__(self, item) -> bool:
        if isinstance(item, IsometryClass):
            if item._arena is self:
                return True
            item = item.space
        if not isinstance(item, FiniteMetricSpace):
            return False
        return self._lookup(item) is not None
