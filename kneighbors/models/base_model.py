"""
Base model classes for kneighbors.

A model encapsulates both training and inference.  Concrete subclasses must
implement :meth:`fit`, :meth:`predict` and :meth:`to_json`; the
``is_trained`` flag tracks whether state has been set by training or by
loading a serialized model.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Sequence

from kneighbors.exceptions import NotTrainedError


class BaseModel(ABC):
    """Abstract base class for all models."""

    def __init__(self, **kwargs) -> None:
        self.is_trained = False

    @abstractmethod
    def fit(self, X: Sequence[Sequence[float]], y: Sequence[Any]) -> "BaseModel":
        """Train the model on labelled feature vectors.

        Parameters
        ----------
        X: sequence of sequences
            Feature matrix of shape (n_samples, n_features).
        y: sequence
            Target labels of length n_samples.
        """

    @abstractmethod
    def predict(self, X):
        """Predict the label of one feature vector or of each row in a matrix."""

    @abstractmethod
    def to_json(self) -> Dict[str, Any]:
        """Return a JSON-serializable snapshot of the trained state."""

    def train(self, X: Sequence[Sequence[float]], y: Sequence[Any]) -> "BaseModel":
        """Alias of :meth:`fit`."""
        return self.fit(X, y)

    def _require_trained(self) -> None:
        if not self.is_trained:
            raise NotTrainedError()
