"""
Command line interface for kneighbors.

This module defines the ``kneighbors`` entry point.  It provides commands to
train a classifier from CSV data, predict with a saved model, cross-validate
and manage the model registry.

CSV files used for training hold the feature columns followed by the label
in the last column; files used for prediction hold feature columns only.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import pandas as pd

from kneighbors.distance import available_distances, get_distance
from kneighbors.evaluation import cross_validate_model
from kneighbors.models import KNeighborsClassifier, ModelRegistry

logger = logging.getLogger(__name__)


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="kneighbors", description="k-nearest neighbours classifier CLI")
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity",
    )
    parser.add_argument(
        "--registry-dir",
        type=str,
        default=None,
        help="Model registry directory (default: $KNEIGHBORS_REGISTRY_DIR or ~/.kneighbors/models)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # train command
    train_parser = subparsers.add_parser("train", help="Train a classifier on CSV data")
    train_parser.add_argument("--csv", type=str, required=True, help="CSV with feature columns and a trailing label column")
    train_parser.add_argument("--k", type=int, default=None, help="Number of neighbours (default: number of classes + 1)")
    train_parser.add_argument("--distance", type=str, default=None, choices=available_distances(), help="Distance metric")
    train_parser.add_argument("--output", type=str, default=None, help="Where to write the model (default: <csv>.model.json)")

    # predict command
    predict_parser = subparsers.add_parser("predict", help="Predict labels with a saved model")
    predict_parser.add_argument("--model", type=str, required=True, help="Path to a model JSON file")
    predict_parser.add_argument("--csv", type=str, required=True, help="CSV with feature columns only")
    predict_parser.add_argument("--distance", type=str, default=None, choices=available_distances(), help="Metric the model was trained with")

    # evaluate command
    eval_parser = subparsers.add_parser("evaluate", help="Cross-validate a classifier on CSV data")
    eval_parser.add_argument("--csv", type=str, required=True, help="CSV with feature columns and a trailing label column")
    eval_parser.add_argument("--k", type=int, default=None, help="Number of neighbours")
    eval_parser.add_argument("--distance", type=str, default=None, choices=available_distances(), help="Distance metric")
    eval_parser.add_argument("--folds", type=int, default=5, help="Number of folds")

    # save-model command
    save_model_parser = subparsers.add_parser("save-model", help="Save a model file to the registry")
    save_model_parser.add_argument("--model-file", type=str, required=True, help="Path to a model JSON file")
    save_model_parser.add_argument("--name", type=str, required=True, help="Model name")
    save_model_parser.add_argument("--version", type=str, help="Version (default: auto-generated timestamp)")
    save_model_parser.add_argument("--tags", nargs="+", help="Tags for organization")
    save_model_parser.add_argument("--accuracy", type=float, help="Model accuracy")

    # list-models command
    list_models_parser = subparsers.add_parser("list-models", help="List all models in the registry")
    list_models_parser.add_argument("--filter", type=str, help="Filter by name (substring match)")
    list_models_parser.add_argument("--tags", nargs="+", help="Filter by tags")
    list_models_parser.add_argument("--format", choices=["table", "json"], default="table", help="Output format")

    return parser.parse_args(argv)


def _read_training_csv(path: str):
    logger.info("Reading training data from %s", path)
    df = pd.read_csv(path)
    X = df.iloc[:, :-1].values
    y = df.iloc[:, -1].values
    return X, y


def _distance_arg(name: Optional[str]):
    return get_distance(name) if name else None


def main(argv: Optional[List[str]] = None) -> None:
    args = _parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s %(name)s %(levelname)s: %(message)s")

    if args.command == "train":
        X, y = _read_training_csv(args.csv)
        model = KNeighborsClassifier(k=args.k, distance=_distance_arg(args.distance))
        model.fit(X, y)
        output = Path(args.output) if args.output else Path(args.csv).with_suffix(".model.json")
        output.write_text(json.dumps(model.to_json()))
        print(f"Model trained on {len(y)} samples (k={model.k}) and saved to {output}")

    elif args.command == "predict":
        payload = json.loads(Path(args.model).read_text())
        model = KNeighborsClassifier.load(payload, _distance_arg(args.distance))
        X = pd.read_csv(args.csv).values
        print(json.dumps(model.predict(X)))

    elif args.command == "evaluate":
        X, y = _read_training_csv(args.csv)
        model = KNeighborsClassifier(k=args.k, distance=_distance_arg(args.distance))
        results = cross_validate_model(model, X, y, n_folds=args.folds)
        print(results.summary())

    elif args.command == "save-model":
        payload = json.loads(Path(args.model_file).read_text())
        metrics = {}
        if args.accuracy is not None:
            metrics["accuracy"] = args.accuracy

        registry = ModelRegistry(args.registry_dir)
        metadata = registry.save(
            payload,
            name=args.name,
            version=args.version,
            metrics=metrics,
            tags=args.tags or [],
        )
        print(f"✓ Model saved: {metadata.name} v{metadata.version}")
        print(f"  Type: {metadata.model_type}")
        print(f"  Path: {metadata.file_path}")
        if metrics:
            print(f"  Metrics: {json.dumps(metrics, indent=4)}")

    elif args.command == "list-models":
        registry = ModelRegistry(args.registry_dir)
        if args.tags:
            models = registry.search(tags=args.tags)
        elif args.filter:
            models = registry.list_models(name_filter=args.filter)
        else:
            models = registry.list_models()

        if not models:
            print("No models found in registry.")
            return

        if args.format == "json":
            print(json.dumps([m.to_dict() for m in models], indent=2))
        else:
            print(f"\n{'Name':<30} {'Version':<15} {'k':<5} {'Created':<20} {'Accuracy':<10}")
            print("=" * 85)
            for m in models:
                accuracy = m.metrics.get("accuracy", "-")
                if isinstance(accuracy, float):
                    accuracy = f"{accuracy:.3f}"
                created = m.created_at[:19].replace("T", " ")
                k = m.hyperparameters.get("k", "-")
                print(f"{m.name:<30} {m.version:<15} {str(k):<5} {created:<20} {accuracy:<10}")
            print(f"\nTotal: {len(models)} models\n")


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
