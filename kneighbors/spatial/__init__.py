"""
Spatial indexes for nearest-neighbour queries.

The classifier only talks to :class:`SpatialIndex`; the KD-tree is the
default implementation and the brute-force index is a drop-in alternative.
"""

from kneighbors.spatial.base_index import SpatialIndex  # noqa: F401
from kneighbors.spatial.kd_tree import KDTree  # noqa: F401
from kneighbors.spatial.brute_force import BruteForceIndex  # noqa: F401
