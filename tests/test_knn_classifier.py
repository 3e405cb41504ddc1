"""Tests for the k-nearest neighbours classifier."""
import json

import numpy as np
import pytest

from kneighbors import (
    BruteForceIndex,
    KDTree,
    KNeighborsClassifier,
    ModelValidationError,
    NotTrainedError,
    SpatialIndex,
)
from kneighbors.distance import euclidean_distance, manhattan_distance


def _clusters(seed=0, per_cluster=20):
    """Three well separated 2-D clusters labelled 'a', 'b' and 'c'."""
    rng = np.random.default_rng(seed)
    centers = {"a": (0.0, 0.0), "b": (10.0, 10.0), "c": (-10.0, 10.0)}
    X, y = [], []
    for label, center in centers.items():
        X.append(rng.normal(loc=center, scale=0.5, size=(per_cluster, 2)))
        y.extend([label] * per_cluster)
    return np.vstack(X), y


class ScriptedIndex(SpatialIndex):
    """Index double that returns every record in insertion order."""

    index_type = "scripted"

    def __init__(self, records, distance, n_dims):
        super().__init__(distance, n_dims)
        self.records = records
        self.queries = []

    @classmethod
    def build(cls, points, distance, n_dims=None):
        records, n_dims = cls._prepare(points, n_dims)
        return cls(records, distance, n_dims)

    def nearest(self, point, k):
        self.queries.append(list(point))
        return [(r, float(i)) for i, r in enumerate(self.records[:k])]

    def to_dict(self):
        return {"type": self.index_type, "n_dims": self.n_dims, "points": self.records}

    @classmethod
    def from_dict(cls, data, distance):
        return cls([list(r) for r in data["points"]], distance, data["n_dims"])

    def __len__(self):
        return len(self.records)


class TestConstruction:
    def test_defaults(self):
        clf = KNeighborsClassifier()
        assert clf.distance is euclidean_distance
        assert clf.index_cls is KDTree
        assert clf.k is None
        assert not clf.is_trained

    def test_distance_by_name(self):
        clf = KNeighborsClassifier(distance="manhattan")
        assert clf.distance is manhattan_distance
        assert not clf.uses_default_metric

    @pytest.mark.parametrize("k", [0, -3, 2.5, True, "3"])
    def test_invalid_k(self, k):
        with pytest.raises(ValueError, match="k must be a positive integer"):
            KNeighborsClassifier(k=k)


class TestFit:
    def test_default_k_is_classes_plus_one(self):
        clf = KNeighborsClassifier().fit([[0], [1], [2], [3]], ["A", "B", "C", "A"])
        assert clf.classes == {"A", "B", "C"}
        assert clf.k == 4

    def test_explicit_k(self):
        clf = KNeighborsClassifier(k=2).fit([[0], [1], [2]], ["A", "B", "C"])
        assert clf.k == 2

    def test_refit_replaces_state(self):
        clf = KNeighborsClassifier()
        clf.fit([[0], [1]], ["A", "B"])
        assert clf.k == 3
        clf.fit([[0], [1], [2], [3]], [1, 2, 3, 4])
        assert clf.k == 5
        assert clf.classes == {1, 2, 3, 4}
        # every point gets one vote, so the nearest one wins
        assert clf.predict([2.1]) == 3

    def test_does_not_mutate_input(self):
        X = [[0.0, 1.0], [2.0, 3.0]]
        KNeighborsClassifier(k=1).fit(X, ["a", "b"])
        assert X == [[0.0, 1.0], [2.0, 3.0]]

    def test_length_mismatch(self):
        with pytest.raises(ValueError, match="samples"):
            KNeighborsClassifier().fit([[0], [1]], ["a"])

    def test_empty_training_set_keeps_previous_state(self):
        clf = KNeighborsClassifier(k=1).fit([[0.0]], ["a"])
        with pytest.raises(ValueError):
            clf.fit([], [])
        assert clf.predict([0.0]) == "a"

    def test_numpy_labels_become_builtin(self):
        clf = KNeighborsClassifier().fit(np.array([[0.0], [1.0]]), np.array([0, 1]))
        assert all(type(c) is int for c in clf.classes)
        json.dumps(clf.to_json())

    def test_metric_flag(self):
        assert KNeighborsClassifier().fit([[0]], ["a"]).uses_default_metric
        assert not KNeighborsClassifier(distance=manhattan_distance).fit([[0]], ["a"]).uses_default_metric

    def test_train_alias(self):
        clf = KNeighborsClassifier(k=1)
        clf.train([[0], [5]], ["x", "y"])
        assert clf.predict([4]) == "y"


class TestPredict:
    def test_majority_inside_clusters(self):
        X, y = _clusters()
        clf = KNeighborsClassifier(k=5).fit(X, y)
        assert clf.predict([0.1, -0.2]) == "a"
        assert clf.predict([9.8, 10.3]) == "b"
        assert clf.predict([-10.2, 9.9]) == "c"

    def test_single_vs_batch_dispatch(self):
        clf = KNeighborsClassifier(k=1).fit([[1, 2, 3], [4, 5, 6]], ["low", "high"])
        assert clf.predict([1, 2, 3]) == "low"
        assert clf.predict([[1, 2, 3], [4, 5, 6]]) == ["low", "high"]
        assert clf.predict([[4, 5, 6], [1, 2, 3]]) == ["high", "low"]

    def test_numpy_inputs(self):
        clf = KNeighborsClassifier(k=1).fit([[1, 2], [4, 5]], ["low", "high"])
        assert clf.predict(np.array([1.0, 2.0])) == "low"
        assert clf.predict(np.array([[4.0, 5.0], [1.0, 2.0]])) == ["high", "low"]
        assert clf.predict((4, 5)) == "high"

    @pytest.mark.parametrize("bad", ["not an array", [], [[]], [["a", "b"]], [True, False], {"x": 1}, 3.0, None])
    def test_invalid_input(self, bad):
        clf = KNeighborsClassifier(k=1).fit([[0.0, 0.0]], ["a"])
        with pytest.raises(TypeError, match="input must be a vector or a matrix of numbers"):
            clf.predict(bad)

    def test_shape_checked_before_training_state(self):
        with pytest.raises(TypeError):
            KNeighborsClassifier().predict("not an array")

    def test_predict_before_fit(self):
        with pytest.raises(NotTrainedError, match="has not been trained"):
            KNeighborsClassifier().predict([1.0, 2.0])

    def test_k_larger_than_training_set(self):
        clf = KNeighborsClassifier(k=50).fit([[0], [1], [10]], ["a", "a", "b"])
        assert clf.predict([9]) == "a"

    def test_score(self):
        X, y = _clusters()
        clf = KNeighborsClassifier(k=3).fit(X, y)
        assert clf.score(X, y) == pytest.approx(1.0)

    def test_kneighbors(self):
        clf = KNeighborsClassifier(k=2).fit([[0.0], [1.0], [5.0]], ["a", "b", "c"])
        neighbors = clf.kneighbors([0.2])
        assert [label for _, label, _ in neighbors] == ["a", "b"]
        assert neighbors[0][0] == [0.0]
        assert neighbors[0][2] == pytest.approx(0.2)
        with pytest.raises(TypeError):
            clf.kneighbors([[0.2]])


class TestTieBreak:
    """The leader only changes on a strict improvement, scanning nearest first."""

    @pytest.mark.parametrize(
        "labels, expected",
        [
            (["A", "B", "A", "B"], "A"),
            (["B", "A", "B", "A"], "B"),
            (["A", "B", "B", "A"], "B"),
            (["B", "A", "A", "B"], "A"),
        ],
    )
    def test_proximity_order(self, labels, expected):
        X = [[1.0], [2.0], [3.0], [4.0]]
        clf = KNeighborsClassifier(k=4).fit(X, labels)
        assert clf.predict([0.0]) == expected

    def test_independent_of_label_order(self):
        X = [[1.0], [2.0]]
        assert KNeighborsClassifier(k=2).fit(X, ["z", "a"]).predict([0.0]) == "z"
        assert KNeighborsClassifier(k=2).fit(X, ["a", "z"]).predict([0.0]) == "a"

    def test_with_injected_index(self):
        X = [[0.0], [0.0], [0.0], [0.0], [0.0]]
        y = [2, 1, 1, 2, 3]
        clf = KNeighborsClassifier(k=5, index_cls=ScriptedIndex).fit(X, y)
        assert clf.predict([7.0]) == 1
        assert clf.index.queries == [[7.0]]


class TestSerialization:
    def test_to_json_shape(self):
        clf = KNeighborsClassifier().fit([[0, 0], [1, 1], [2, 2]], ["A", "B", "C"])
        data = clf.to_json()
        assert set(data) == {"name", "index", "k", "classes", "usesDefaultMetric"}
        assert data["name"] == "KNN"
        assert data["k"] == 4
        assert sorted(data["classes"]) == ["A", "B", "C"]
        assert data["usesDefaultMetric"] is True

    def test_to_json_before_fit(self):
        with pytest.raises(NotTrainedError):
            KNeighborsClassifier().to_json()

    def test_round_trip_default_metric(self):
        X, y = _clusters(seed=3)
        clf = KNeighborsClassifier(k=7).fit(X, y)
        restored = KNeighborsClassifier.load(json.loads(json.dumps(clf.to_json())))
        queries = np.random.default_rng(5).uniform(-12, 12, size=(40, 2))
        assert restored.predict(queries) == clf.predict(queries)
        assert restored.k == 7
        assert restored.classes == {"a", "b", "c"}
        assert restored.is_trained

    def test_round_trip_custom_metric(self):
        X, y = _clusters(seed=4)
        clf = KNeighborsClassifier(distance=manhattan_distance).fit(X, y)
        restored = KNeighborsClassifier.load(clf.to_json(), manhattan_distance)
        queries = np.random.default_rng(6).uniform(-12, 12, size=(40, 2))
        assert restored.predict(queries) == clf.predict(queries)
        assert not restored.uses_default_metric

    def test_round_trip_brute_force_index(self):
        clf = KNeighborsClassifier(k=1, index_cls=BruteForceIndex).fit([[0], [9]], ["a", "b"])
        restored = KNeighborsClassifier.load(clf.to_json(), index_cls=BruteForceIndex)
        assert restored.predict([[1], [8]]) == ["a", "b"]

    def test_wrong_name(self):
        data = KNeighborsClassifier().fit([[0]], ["a"]).to_json()
        data["name"] = "SVM"
        with pytest.raises(ModelValidationError, match="invalid model: SVM"):
            KNeighborsClassifier.load(data)

    def test_custom_metric_model_without_distance(self):
        data = KNeighborsClassifier(distance=manhattan_distance).fit([[0]], ["a"]).to_json()
        with pytest.raises(ModelValidationError, match="custom distance function"):
            KNeighborsClassifier.load(data)
        with pytest.raises(ModelValidationError, match="custom distance function"):
            KNeighborsClassifier.load(data, euclidean_distance)

    def test_default_metric_model_with_custom_distance(self):
        data = KNeighborsClassifier().fit([[0]], ["a"]).to_json()
        with pytest.raises(ModelValidationError, match="default distance function"):
            KNeighborsClassifier.load(data, manhattan_distance)

    def test_lookalike_metric_is_rejected(self):
        """Only the very same function object counts as the default."""

        def euclidean_copy(a, b):
            return euclidean_distance(a, b)

        data = KNeighborsClassifier().fit([[0]], ["a"]).to_json()
        with pytest.raises(ModelValidationError):
            KNeighborsClassifier.load(data, euclidean_copy)

    def test_invalid_k_in_payload(self):
        data = KNeighborsClassifier().fit([[0]], ["a"]).to_json()
        data["k"] = 0
        with pytest.raises(ModelValidationError, match="k must be a positive integer"):
            KNeighborsClassifier.load(data)

    def test_validation_error_is_value_error(self):
        with pytest.raises(ValueError):
            KNeighborsClassifier.load({"name": "nope"})

    @pytest.mark.parametrize("key", ["index", "classes"])
    def test_missing_field_in_payload(self, key):
        data = KNeighborsClassifier().fit([[0]], ["a"]).to_json()
        del data[key]
        with pytest.raises(ModelValidationError, match=f"missing {key}"):
            KNeighborsClassifier.load(data)

    def test_distance_by_name_on_load(self):
        data = KNeighborsClassifier(k=1).fit([[0], [9]], ["a", "b"]).to_json()
        assert KNeighborsClassifier.load(data, "euclidean").predict([8]) == "b"
        custom = KNeighborsClassifier(k=1, distance="manhattan").fit([[0], [9]], ["a", "b"]).to_json()
        restored = KNeighborsClassifier.load(custom, "manhattan")
        assert restored.distance is manhattan_distance
        assert restored.predict([1]) == "a"
        with pytest.raises(ModelValidationError, match="default distance function"):
            KNeighborsClassifier.load(data, "chebyshev")

    def test_tuple_labels_survive_json(self):
        X = [[0.0, 0.0], [0.5, 0.0], [10.0, 10.0], [10.5, 10.0]]
        y = [("a", 1), ("a", 1), ("b", (2, 3)), ("b", (2, 3))]
        clf = KNeighborsClassifier(k=2).fit(X, y)
        restored = KNeighborsClassifier.load(json.loads(json.dumps(clf.to_json())))
        assert restored.classes == {("a", 1), ("b", (2, 3))}
        assert restored.predict([0.2, 0.1]) == ("a", 1)
        assert restored.predict([[10.2, 9.9]]) == [("b", (2, 3))]
        assert restored.kneighbors([10.2, 9.9])[0][1] == ("b", (2, 3))
