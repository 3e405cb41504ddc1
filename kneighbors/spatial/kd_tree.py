"""
Tree-backed spatial index.

The search itself is scikit-learn's.  The built-in metrics (euclidean,
manhattan, chebyshev) are served by :class:`sklearn.neighbors.KDTree`; any
other callable goes to :class:`sklearn.neighbors.BallTree`, whose pruning
only relies on the triangle inequality and therefore stays exact for metrics
that are not aligned with the coordinate axes (Mahalanobis, for example).

The serialized form keeps the records rather than the tree, and
:meth:`KDTree.from_dict` builds the tree again.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
from sklearn.neighbors import BallTree
from sklearn.neighbors import KDTree as _SklearnKDTree

from kneighbors.distance import DistanceFunction, sklearn_metric
from kneighbors.spatial.base_index import Neighbor, Record, SpatialIndex

logger = logging.getLogger(__name__)


class KDTree(SpatialIndex):
    """Nearest-neighbour tree over augmented records.

    Parameters
    ----------
    records : list of list
        Records to index; the first ``n_dims`` entries are coordinates.
    distance : callable
        Metric applied to the coordinate part of each record.
    n_dims : int
        Number of leading coordinate columns per record.
    leaf_size : int, optional
        Passed on to the scikit-learn tree.

    Notes
    -----
    Use :meth:`build` or :meth:`from_dict` rather than calling the
    constructor directly; they validate the records first.
    """

    index_type = "kd_tree"

    def __init__(
        self,
        records: List[Record],
        distance: DistanceFunction,
        n_dims: int,
        leaf_size: int = 40,
    ) -> None:
        super().__init__(distance, n_dims)
        self.records = records
        metric, metric_params = sklearn_metric(distance)
        tree_cls = BallTree if metric == "pyfunc" else _SklearnKDTree
        self.tree = tree_cls(
            self._coordinate_matrix(records), leaf_size=leaf_size, metric=metric, **metric_params
        )
        logger.debug("Built %s over %d records (metric=%s)", tree_cls.__name__, len(records), metric)

    @classmethod
    def build(
        cls,
        points: Sequence[Sequence[Any]],
        distance: DistanceFunction,
        n_dims: Optional[int] = None,
    ) -> "KDTree":
        records, n_dims = cls._prepare(points, n_dims)
        return cls(records, distance, n_dims)

    def __len__(self) -> int:
        return len(self.records)

    def nearest(self, point: Sequence[float], k: int) -> List[Neighbor]:
        self._check_k(k)
        query = self._query_vector(point)
        dist, idx = self.tree.query(query.reshape(1, -1), k=min(k, len(self.records)))
        dist, idx = dist[0], idx[0]
        # equal distances come back in insertion order
        order = np.lexsort((idx, dist))
        return [(self.records[i], float(d)) for i, d in zip(idx[order], dist[order])]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.index_type,
            "n_dims": self.n_dims,
            "points": [list(r) for r in self.records],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], distance: DistanceFunction) -> "KDTree":
        cls._check_type(data)
        return cls.build(data["points"], distance, int(data["n_dims"]))
