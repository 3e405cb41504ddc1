"""
Base class for spatial indexes.

A spatial index stores records and answers "k nearest to this point"
queries.  A record is a sequence whose first ``n_dims`` entries are the
coordinates; any trailing entries are payload (the classifier appends the
label) and are handed back untouched with each neighbour.

Concrete subclasses must implement :meth:`build`, :meth:`nearest`,
:meth:`to_dict` and :meth:`from_dict`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from kneighbors.distance import DistanceFunction

Record = List[Any]
Neighbor = Tuple[Record, float]


class SpatialIndex(ABC):
    """Abstract base class for all nearest-neighbour indexes."""

    #: tag written into :meth:`to_dict` so a payload is not read back by the
    #: wrong index type
    index_type: str = ""

    def __init__(self, distance: DistanceFunction, n_dims: int) -> None:
        self.distance = distance
        self.n_dims = n_dims

    @classmethod
    @abstractmethod
    def build(
        cls,
        points: Sequence[Sequence[Any]],
        distance: DistanceFunction,
        n_dims: Optional[int] = None,
    ) -> "SpatialIndex":
        """Create an index over ``points``.

        Parameters
        ----------
        points : sequence of records
            Records to index.  Each is copied into a list.
        distance : callable
            Metric used to compare coordinates.
        n_dims : int, optional
            Number of leading coordinate columns.  Defaults to the full
            record length.

        Raises
        ------
        ValueError
            If ``points`` is empty or ``n_dims`` does not fit the records.
        """

    @abstractmethod
    def nearest(self, point: Sequence[float], k: int) -> List[Neighbor]:
        """Return up to ``k`` ``(record, distance)`` pairs, nearest first."""

    @abstractmethod
    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-serializable representation of the index."""

    @classmethod
    @abstractmethod
    def from_dict(cls, data: Dict[str, Any], distance: DistanceFunction) -> "SpatialIndex":
        """Rebuild an index from :meth:`to_dict` output."""

    @abstractmethod
    def __len__(self) -> int:
        """Number of records held by the index."""

    def coordinates(self, record: Sequence[Any]) -> List[float]:
        return list(record[: self.n_dims])

    def _coordinate_matrix(self, records: Sequence[Record]) -> np.ndarray:
        return np.asarray([self.coordinates(r) for r in records], dtype=float).reshape(len(records), self.n_dims)

    def _query_vector(self, point: Sequence[float]) -> np.ndarray:
        query = np.asarray(point, dtype=float).ravel()
        if query.shape[0] != self.n_dims:
            raise ValueError(
                f"query has {query.shape[0]} dimensions but the index was built with {self.n_dims}"
            )
        return query

    @staticmethod
    def _prepare(points: Sequence[Sequence[Any]], n_dims: Optional[int]) -> Tuple[List[Record], int]:
        records = [list(p) for p in points]
        if not records:
            raise ValueError("cannot build an index over an empty point set")
        if n_dims is None:
            n_dims = len(records[0])
        if n_dims < 1 or n_dims > len(records[0]):
            raise ValueError(
                f"n_dims must be between 1 and the record length ({len(records[0])}), got {n_dims}"
            )
        return records, n_dims

    @staticmethod
    def _check_k(k: int) -> None:
        if k < 1:
            raise ValueError(f"k must be a positive integer, got {k}")

    @classmethod
    def _check_type(cls, data: Dict[str, Any]) -> None:
        found = data.get("type", cls.index_type)
        if found != cls.index_type:
            raise ValueError(f"cannot load a '{found}' index into {cls.__name__}")
