"""
kneighbors - k-nearest neighbours classification.

This package exposes a majority-vote KNN classifier built on a pluggable
spatial index, the distance functions it can be configured with, and a
JSON model format that can be saved, restored and re-validated against the
metric it was trained with.

The public API re-exports the most commonly used classes so they can be
imported directly from the `kneighbors` package.
"""

from kneighbors.distance import (  # noqa: F401
    DEFAULT_DISTANCE,
    chebyshev_distance,
    euclidean_distance,
    get_distance,
    manhattan_distance,
    register_distance,
)
from kneighbors.exceptions import KNeighborsError, ModelValidationError, NotTrainedError  # noqa: F401
from kneighbors.models.knn_classifier import KNeighborsClassifier  # noqa: F401
from kneighbors.models.model_registry import ModelRegistry  # noqa: F401
from kneighbors.spatial import BruteForceIndex, KDTree, SpatialIndex  # noqa: F401

__version__ = "1.0.0"

__all__ = [
    "DEFAULT_DISTANCE",
    "euclidean_distance",
    "manhattan_distance",
    "chebyshev_distance",
    "get_distance",
    "register_distance",
    "KNeighborsError",
    "ModelValidationError",
    "NotTrainedError",
    "KNeighborsClassifier",
    "ModelRegistry",
    "SpatialIndex",
    "KDTree",
    "BruteForceIndex",
]
