"""
Exhaustive-scan spatial index.

Every query measures the distance to every stored record in one vectorised
call to scikit-learn's :class:`~sklearn.metrics.DistanceMetric`.  It is
slower than :class:`~kneighbors.spatial.kd_tree.KDTree` on anything but
small sets, but its ordering is easy to reason about: records at equal
distance come back in insertion order.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import numpy as np
from sklearn.metrics import DistanceMetric

from kneighbors.distance import DistanceFunction, sklearn_metric
from kneighbors.spatial.base_index import Neighbor, Record, SpatialIndex


class BruteForceIndex(SpatialIndex):
    """Linear scan over all records."""

    index_type = "brute_force"

    def __init__(self, records: List[Record], distance: DistanceFunction, n_dims: int) -> None:
        super().__init__(distance, n_dims)
        self.records = records
        metric, metric_params = sklearn_metric(distance)
        self._metric = DistanceMetric.get_metric(metric, **metric_params)
        self._coords = self._coordinate_matrix(records)

    @classmethod
    def build(
        cls,
        points: Sequence[Sequence[Any]],
        distance: DistanceFunction,
        n_dims: Optional[int] = None,
    ) -> "BruteForceIndex":
        records, n_dims = cls._prepare(points, n_dims)
        return cls(records, distance, n_dims)

    def __len__(self) -> int:
        return len(self.records)

    def nearest(self, point: Sequence[float], k: int) -> List[Neighbor]:
        self._check_k(k)
        query = self._query_vector(point)
        dist = self._metric.pairwise(query.reshape(1, -1), self._coords)[0]
        # stable sort, so ties keep insertion order
        order = np.argsort(dist, kind="stable")[:k]
        return [(self.records[i], float(dist[i])) for i in order]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.index_type,
            "n_dims": self.n_dims,
            "points": [list(r) for r in self.records],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], distance: DistanceFunction) -> "BruteForceIndex":
        cls._check_type(data)
        return cls([list(r) for r in data["points"]], distance, int(data["n_dims"]))
