"""
Distance functions for nearest-neighbour search.

A distance function takes two equal-length numeric sequences and returns a
non-negative ``float``.  Functions are compared by identity: a model trained
with :data:`DEFAULT_DISTANCE` remembers that fact, and a different function
computing the same numbers is still treated as a custom metric.

The registry maps short names (as used on the command line) to the
canonical function objects, so looking up ``"euclidean"`` returns the very
object that :func:`is_default_distance` recognises.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Sequence, Tuple

import numpy as np

DistanceFunction = Callable[[Sequence[float], Sequence[float]], float]


def euclidean_distance(a: Sequence[float], b: Sequence[float]) -> float:
    """Straight-line (L2) distance between two vectors."""
    diff = np.asarray(a, dtype=float) - np.asarray(b, dtype=float)
    return float(np.sqrt(np.dot(diff, diff)))


def manhattan_distance(a: Sequence[float], b: Sequence[float]) -> float:
    """City-block (L1) distance between two vectors."""
    return float(np.sum(np.abs(np.asarray(a, dtype=float) - np.asarray(b, dtype=float))))


def chebyshev_distance(a: Sequence[float], b: Sequence[float]) -> float:
    """Largest coordinate difference (L-infinity) between two vectors."""
    diff = np.abs(np.asarray(a, dtype=float) - np.asarray(b, dtype=float))
    return float(diff.max()) if diff.size else 0.0


DEFAULT_DISTANCE: DistanceFunction = euclidean_distance

_REGISTRY: Dict[str, DistanceFunction] = {
    "euclidean": euclidean_distance,
    "manhattan": manhattan_distance,
    "chebyshev": chebyshev_distance,
}

_SKLEARN_METRICS = (
    ("euclidean", euclidean_distance),
    ("manhattan", manhattan_distance),
    ("chebyshev", chebyshev_distance),
)


def available_distances() -> List[str]:
    """Return the names of all registered distance functions."""
    return sorted(_REGISTRY)


def get_distance(name: str) -> DistanceFunction:
    """Look up a registered distance function by name.

    Raises
    ------
    KeyError
        If no function is registered under ``name``.
    """
    try:
        return _REGISTRY[name.lower()]
    except KeyError:
        raise KeyError(
            f"Unknown distance '{name}'. Available: {', '.join(available_distances())}"
        ) from None


def register_distance(name: str, fn: DistanceFunction) -> None:
    """Register ``fn`` under ``name`` so it can be selected by name."""
    key = name.lower()
    if key in _REGISTRY:
        raise ValueError(f"Distance '{name}' is already registered")
    if not callable(fn):
        raise TypeError("distance must be callable")
    _REGISTRY[key] = fn


def sklearn_metric(fn: DistanceFunction) -> Tuple[str, Dict[str, Any]]:
    """Metric name and keyword arguments for scikit-learn's neighbour search.

    The built-in functions map onto scikit-learn's own metrics by name; any
    other callable is wrapped as a ``"pyfunc"`` metric.
    """
    for name, builtin in _SKLEARN_METRICS:
        if fn is builtin:
            return name, {}
    return "pyfunc", {"func": fn}


def is_default_distance(fn: DistanceFunction) -> bool:
    # identity, not behavioural equality
    return fn is DEFAULT_DISTANCE


def resolve_distance(distance: DistanceFunction | str | None) -> DistanceFunction:
    """Turn a constructor/CLI argument into a distance function.

    ``None`` selects the default, a string is looked up in the registry and a
    callable is returned unchanged.
    """
    if distance is None:
        return DEFAULT_DISTANCE
    if isinstance(distance, str):
        return get_distance(distance)
    if not callable(distance):
        raise TypeError("distance must be a callable or a registered name")
    return distance
