"""
Model definitions for kneighbors.

Models encapsulate training, prediction and serialization.  The base class
defines the common lifecycle; the k-nearest neighbours classifier is the
concrete implementation, and the registry stores trained models on disk.
"""

from kneighbors.models.base_model import BaseModel  # noqa: F401
from kneighbors.models.knn_classifier import KNeighborsClassifier  # noqa: F401

# model management
from kneighbors.models.model_registry import ModelRegistry, ModelMetadata  # noqa: F401
