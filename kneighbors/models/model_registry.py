"""
Model registry for kneighbors.

This module provides a small on-disk store for serialized classifiers.
Each entry is the model's :meth:`~KNeighborsClassifier.to_json` payload
written as JSON, plus a metadata record with a checksum so a tampered or
truncated file is caught before it is loaded.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from kneighbors.distance import DistanceFunction
from kneighbors.exceptions import ModelValidationError
from kneighbors.models.knn_classifier import KNeighborsClassifier

logger = logging.getLogger(__name__)

REGISTRY_ENV_VAR = "KNEIGHBORS_REGISTRY_DIR"


def default_registry_dir() -> Path:
    """Registry location from ``KNEIGHBORS_REGISTRY_DIR`` or ``~/.kneighbors/models``."""
    env_dir = os.getenv(REGISTRY_ENV_VAR)
    if env_dir:
        return Path(env_dir).expanduser()
    return Path.home() / ".kneighbors" / "models"


@dataclass
class ModelMetadata:
    """Metadata for a saved model.

    Parameters
    ----------
    name : str
        Human-readable model name.
    version : str
        Model version (e.g., "1.0.0" or timestamp-based).
    model_type : str
        Value of the payload's ``name`` field (``"KNN"``).
    created_at : str
        ISO format timestamp of when model was saved.
    metrics : dict
        Performance metrics (accuracy, f1, etc.).
    hyperparameters : dict
        ``k``, the class count and whether the default metric was used.
    tags : list[str]
        User-defined tags for organization.
    checksum : str
        SHA-256 hash of the model file for integrity checking.
    file_path : str
        Path of the model file relative to the registry directory.
    """

    name: str
    version: str
    model_type: str
    created_at: str
    metrics: Dict[str, float]
    hyperparameters: Dict[str, Any]
    tags: List[str]
    checksum: str
    file_path: str

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> ModelMetadata:
        return cls(**data)


class ModelRegistry:
    """Registry for managing serialized models.

    Layout::

        registry_dir/
        ├── models/
        │   ├── iris_v1.0.0.json
        │   └── iris_v1.1.0.json
        └── metadata/
            ├── iris_v1.0.0.json
            └── iris_v1.1.0.json

    Parameters
    ----------
    registry_dir : str or Path, optional
        Directory to store models.  Defaults to :func:`default_registry_dir`.

    Examples
    --------
    >>> registry = ModelRegistry("/tmp/knn-registry")
    >>> registry.save(clf, name="iris", version="1.0.0", metrics={"accuracy": 0.96})
    >>> restored = registry.load("iris")
    """

    def __init__(self, registry_dir: Optional[str | Path] = None):
        if registry_dir is None:
            registry_dir = default_registry_dir()

        self.registry_dir = Path(registry_dir)
        self.models_dir = self.registry_dir / "models"
        self.metadata_dir = self.registry_dir / "metadata"

        self.models_dir.mkdir(parents=True, exist_ok=True)
        self.metadata_dir.mkdir(parents=True, exist_ok=True)

    def _compute_checksum(self, file_path: Path) -> str:
        sha256_hash = hashlib.sha256()
        with open(file_path, "rb") as f:
            for byte_block in iter(lambda: f.read(4096), b""):
                sha256_hash.update(byte_block)
        return sha256_hash.hexdigest()

    def _generate_version(self) -> str:
        return datetime.now().strftime("%Y%m%d_%H%M%S")

    def _paths(self, name: str, version: str) -> tuple[Path, Path]:
        filename = f"{name}_v{version}.json"
        return self.models_dir / filename, self.metadata_dir / filename

    def save(
        self,
        model: KNeighborsClassifier | Dict[str, Any],
        name: str,
        *,
        version: Optional[str] = None,
        metrics: Optional[Dict[str, float]] = None,
        tags: Optional[List[str]] = None,
        overwrite: bool = False,
    ) -> ModelMetadata:
        """Save a trained classifier (or its serialized payload).

        Parameters
        ----------
        model : KNeighborsClassifier or dict
            Trained classifier, or the output of its ``to_json()``.
        name : str
            Model name.  Spaces are replaced with underscores.
        version : str, optional
            Version string. If None, generates timestamp-based version.
        metrics : dict, optional
            Performance metrics (e.g., {"accuracy": 0.95}).
        tags : list[str], optional
            Tags for organization.
        overwrite : bool, optional
            If True, overwrite existing model. Default is False.

        Raises
        ------
        FileExistsError
            If the name/version pair exists and ``overwrite`` is False.
        """
        payload = model.to_json() if isinstance(model, KNeighborsClassifier) else model

        name = name.strip().replace(" ", "_")
        if version is None:
            version = self._generate_version()

        model_path, metadata_path = self._paths(name, version)
        if not overwrite and (model_path.exists() or metadata_path.exists()):
            raise FileExistsError(
                f"Model {name} v{version} already exists. "
                "Use overwrite=True to replace it."
            )

        with open(model_path, "w") as f:
            json.dump(payload, f)

        metadata = ModelMetadata(
            name=name,
            version=version,
            model_type=str(payload.get("name")),
            created_at=datetime.now().isoformat(),
            metrics=metrics or {},
            hyperparameters={
                "k": payload.get("k"),
                "n_classes": len(payload.get("classes", [])),
                "uses_default_metric": payload.get("usesDefaultMetric"),
            },
            tags=tags or [],
            checksum=self._compute_checksum(model_path),
            file_path=str(model_path.relative_to(self.registry_dir)),
        )
        with open(metadata_path, "w") as f:
            json.dump(metadata.to_dict(), f, indent=2)

        logger.info("Saved model %s v%s to %s", name, version, model_path)
        return metadata

    def load_payload(
        self,
        name: str,
        version: Optional[str] = None,
        verify_checksum: bool = True,
    ) -> Dict[str, Any]:
        """Read the serialized payload of a model without restoring it.

        Raises
        ------
        FileNotFoundError
            If the model or its metadata is missing.
        ModelValidationError
            If checksum verification fails.
        """
        if version is None:
            metadata = self.get_latest(name)
            if metadata is None:
                raise FileNotFoundError(f"No models found with name '{name}'")
        else:
            metadata = self.get_metadata(name, version)
            if metadata is None:
                raise FileNotFoundError(f"Model {name} v{version} not found in registry")

        model_path = self.registry_dir / metadata.file_path
        if not model_path.exists():
            raise FileNotFoundError(f"Model file not found: {model_path}")

        if verify_checksum and self._compute_checksum(model_path) != metadata.checksum:
            raise ModelValidationError(
                f"Checksum mismatch for {name} v{metadata.version}. "
                f"File may be corrupted."
            )

        with open(model_path, "r") as f:
            return json.load(f)

    def load(
        self,
        name: str,
        version: Optional[str] = None,
        *,
        distance: Optional[DistanceFunction] = None,
        verify_checksum: bool = True,
    ) -> KNeighborsClassifier:
        """Load and restore a classifier from the registry.

        ``distance`` is passed on to :meth:`KNeighborsClassifier.load` and
        must be the function the model was trained with when that was not
        the default metric.  If ``version`` is None the latest is loaded.
        """
        payload = self.load_payload(name, version, verify_checksum=verify_checksum)
        return KNeighborsClassifier.load(payload, distance)

    def get_metadata(self, name: str, version: str) -> Optional[ModelMetadata]:
        _, metadata_path = self._paths(name, version)
        if not metadata_path.exists():
            return None
        with open(metadata_path, "r") as f:
            return ModelMetadata.from_dict(json.load(f))

    def get_latest(self, name: str) -> Optional[ModelMetadata]:
        """Metadata of the most recently saved version of ``name``, if any."""
        versions = [m for m in self.list_models() if m.name == name]
        return versions[0] if versions else None

    def list_models(self, name_filter: Optional[str] = None) -> List[ModelMetadata]:
        """All models, newest first, optionally filtered by name substring."""
        models = []
        for metadata_file in self.metadata_dir.glob("*.json"):
            with open(metadata_file, "r") as f:
                meta = ModelMetadata.from_dict(json.load(f))
            if name_filter and name_filter not in meta.name:
                continue
            models.append(meta)

        models.sort(key=lambda m: m.created_at, reverse=True)
        return models

    def search(
        self,
        *,
        tags: Optional[List[str]] = None,
        min_accuracy: Optional[float] = None,
    ) -> List[ModelMetadata]:
        """Models that carry ANY of ``tags`` and reach ``min_accuracy``."""
        results = []
        for meta in self.list_models():
            if tags and not any(tag in meta.tags for tag in tags):
                continue
            if min_accuracy is not None and meta.metrics.get("accuracy", 0.0) < min_accuracy:
                continue
            results.append(meta)
        return results

    def delete(self, name: str, version: str) -> bool:
        """Delete a model and its metadata.  Returns False if neither existed."""
        deleted = False
        for path in self._paths(name, version):
            if path.exists():
                path.unlink()
                deleted = True
        if deleted:
            logger.info("Deleted model %s v%s", name, version)
        return deleted
