"""
K-nearest neighbours classifier.

Training stores every sample in a spatial index with its label appended to
the feature vector.  Prediction asks the index for the ``k`` closest records
and returns the label with the most votes among them.

Ties are settled by proximity: the running leader only changes when a
class strictly overtakes it, and neighbours are counted from nearest to
farthest, so among equally voted classes the one that reached the top count
first wins.
"""

from __future__ import annotations

import logging
import numbers
from typing import Any, Dict, List, Optional, Sequence, Tuple, Type

import numpy as np
from sklearn.metrics import accuracy_score

from kneighbors.distance import (
    DistanceFunction,
    is_default_distance,
    resolve_distance,
)
from kneighbors.exceptions import ModelValidationError
from kneighbors.models.base_model import BaseModel
from kneighbors.spatial import KDTree, SpatialIndex

logger = logging.getLogger(__name__)

MODEL_NAME = "KNN"

_SHAPE_ERROR = "input must be a vector or a matrix of numbers"
_VECTOR_TYPES = (list, tuple, np.ndarray)


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, (bool, np.bool_))


def _is_vector(value: Any) -> bool:
    return isinstance(value, _VECTOR_TYPES) and len(value) > 0 and _is_number(value[0])


def _as_builtin(label: Any) -> Any:
    # numpy scalars are not JSON serializable
    return label.item() if isinstance(label, np.generic) else label


def _from_json_label(label: Any) -> Any:
    # JSON turns tuple labels into lists
    if isinstance(label, list):
        return tuple(_from_json_label(v) for v in label)
    return label


def _validate_k(k: Any) -> int:
    if isinstance(k, bool) or not isinstance(k, numbers.Integral) or k < 1:
        raise ValueError(f"k must be a positive integer, got {k!r}")
    return int(k)


class KNeighborsClassifier(BaseModel):
    """Majority-vote k-nearest neighbours classifier.

    Parameters
    ----------
    k : int, optional
        Number of neighbours to poll.  Defaults to the number of distinct
        training labels plus one, resolved on every :meth:`fit`.
    distance : callable or str, optional
        Metric used to build and query the index, or the name of a metric
        registered in :mod:`kneighbors.distance`.  Defaults to Euclidean.
    index_cls : type, optional
        :class:`~kneighbors.spatial.SpatialIndex` subclass used to hold the
        training set.  Defaults to :class:`~kneighbors.spatial.KDTree`.

    Examples
    --------
    >>> clf = KNeighborsClassifier(k=3).fit([[0, 0], [0, 1], [5, 5], [5, 6]], ["a", "a", "b", "b"])
    >>> clf.predict([0.2, 0.4])
    'a'
    >>> restored = KNeighborsClassifier.load(clf.to_json())
    >>> restored.predict([[5, 5.5], [0, 0]])
    ['b', 'a']
    """

    def __init__(
        self,
        k: Optional[int] = None,
        distance: DistanceFunction | str | None = None,
        index_cls: Type[SpatialIndex] = KDTree,
    ) -> None:
        super().__init__()
        self._requested_k = None if k is None else _validate_k(k)
        self.distance = resolve_distance(distance)
        self.index_cls = index_cls

        self.index: Optional[SpatialIndex] = None
        self.k: Optional[int] = None
        self.classes: set = set()
        self.uses_default_metric = is_default_distance(self.distance)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(k={self.k if self.is_trained else self._requested_k}, "
            f"distance={getattr(self.distance, '__name__', self.distance)!r}, "
            f"trained={self.is_trained})"
        )

    # ------------------------------------------------------------------
    # training
    # ------------------------------------------------------------------
    def fit(self, X: Sequence[Sequence[float]], y: Sequence[Any]) -> "KNeighborsClassifier":
        """Index the training set and resolve ``k``.

        Parameters
        ----------
        X : sequence of sequences or np.ndarray
            Feature matrix of shape (n_samples, n_features).
        y : sequence or np.ndarray
            Labels of length n_samples.  Any hashable values are accepted.

        Returns
        -------
        KNeighborsClassifier
            ``self``, trained.

        Raises
        ------
        ValueError
            If ``X`` and ``y`` differ in length, or the index rejects the
            training set (e.g. because it is empty).
        """
        labels = [_as_builtin(label) for label in y]
        if len(X) != len(labels):
            raise ValueError(f"X has {len(X)} samples but y has {len(labels)} labels")

        classes = set(labels)
        k = self._requested_k if self._requested_k is not None else len(classes) + 1

        points = []
        for row, label in zip(X, labels):
            point = [float(v) for v in row]
            point.append(label)
            points.append(point)
        n_dims = len(points[0]) - 1 if points else None

        index = self.index_cls.build(points, self.distance, n_dims=n_dims)

        self.index = index
        self.k = k
        self.classes = classes
        self.uses_default_metric = is_default_distance(self.distance)
        self.is_trained = True
        logger.debug(
            "Fitted KNN on %d samples, %d classes, k=%d, default metric=%s",
            len(points),
            len(classes),
            k,
            self.uses_default_metric,
        )
        return self

    def _restore(self, model: Dict[str, Any]) -> "KNeighborsClassifier":
        """Take over the trained state of a serialized model as-is."""
        self.index = self.index_cls.from_dict(model["index"], self.distance)
        self.k = model["k"]
        self.classes = {_from_json_label(label) for label in model["classes"]}
        self.uses_default_metric = bool(model["usesDefaultMetric"])
        self.is_trained = True
        return self

    # ------------------------------------------------------------------
    # prediction
    # ------------------------------------------------------------------
    def predict(self, X):
        """Predict the label of a vector, or of every row of a matrix.

        Parameters
        ----------
        X : sequence or np.ndarray
            Either a single feature vector (its first element is a number)
            or a matrix whose rows are feature vectors.

        Returns
        -------
        label or list
            One label for a vector, a list of labels (in row order) for a
            matrix.

        Raises
        ------
        TypeError
            If ``X`` is neither a numeric vector nor a matrix of them.
        NotTrainedError
            If the model has not been fitted or loaded.
        """
        if _is_vector(X):
            self._require_trained()
            return self._vote(X)
        if isinstance(X, _VECTOR_TYPES) and len(X) > 0 and _is_vector(X[0]):
            self._require_trained()
            return [self._vote(row) for row in X]
        raise TypeError(_SHAPE_ERROR)

    def _vote(self, query: Sequence[float]) -> Any:
        neighbors = self.index.nearest(query, self.k)
        votes = {label: 0 for label in self.classes}
        leader = None
        leader_votes = 0
        for record, _ in neighbors:
            label = _from_json_label(record[-1])
            votes[label] = votes.get(label, 0) + 1
            if votes[label] > leader_votes:
                leader = label
                leader_votes = votes[label]
        return leader

    def kneighbors(self, x: Sequence[float]) -> List[Tuple[List[float], Any, float]]:
        """Return the ``k`` neighbours of one vector as ``(features, label, distance)``."""
        if not _is_vector(x):
            raise TypeError(_SHAPE_ERROR)
        self._require_trained()
        return [
            (record[:-1], _from_json_label(record[-1]), dist)
            for record, dist in self.index.nearest(x, self.k)
        ]

    def score(self, X: Sequence[Sequence[float]], y: Sequence[Any]) -> float:
        """Mean accuracy of :meth:`predict` on ``X`` against ``y``."""
        predictions = self.predict(X)
        return float(accuracy_score([_as_builtin(label) for label in y], predictions))

    # ------------------------------------------------------------------
    # serialization
    # ------------------------------------------------------------------
    def to_json(self) -> Dict[str, Any]:
        """Return the trained state as a JSON-serializable dict."""
        self._require_trained()
        return {
            "name": MODEL_NAME,
            "index": self.index.to_dict(),
            "k": self.k,
            "classes": list(self.classes),
            "usesDefaultMetric": self.uses_default_metric,
        }

    @classmethod
    def load(
        cls,
        model: Dict[str, Any],
        distance: Optional[DistanceFunction | str] = None,
        index_cls: Type[SpatialIndex] = KDTree,
    ) -> "KNeighborsClassifier":
        """Create a trained classifier from :meth:`to_json` output.

        Parameters
        ----------
        model : dict
            Serialized model.
        distance : callable or str, optional
            The distance function the model was trained with, or its
            registered name.  Required when that was not the default metric,
            and must be left out (or be the default) when it was.
        index_cls : type, optional
            Index class that produced ``model["index"]``.

        Raises
        ------
        ModelValidationError
            If the payload is not a KNN model, its ``k`` is invalid, it lacks
            the index or the class list, or the supplied metric does not
            match the one used in training.
        KeyError
            If ``distance`` names no registered metric.
        """
        distance = resolve_distance(distance)
        name = model.get("name")
        if name != MODEL_NAME:
            raise ModelValidationError(f"invalid model: {name}")

        uses_default = bool(model.get("usesDefaultMetric"))
        if not uses_default and is_default_distance(distance):
            raise ModelValidationError(
                "a custom distance function was used to create the model. Please provide it again"
            )
        if uses_default and not is_default_distance(distance):
            raise ModelValidationError(
                "the model was created with the default distance function. Do not load it with another one"
            )
        try:
            k = _validate_k(model.get("k"))
        except ValueError as exc:
            raise ModelValidationError(f"invalid model: {exc}") from exc
        missing = [key for key in ("index", "classes") if key not in model]
        if missing:
            raise ModelValidationError(f"invalid model: missing {', '.join(missing)}")

        logger.debug("Loading KNN model with k=%d and %d classes", k, len(model.get("classes", ())))
        return cls(k=k, distance=distance, index_cls=index_cls)._restore(model)
