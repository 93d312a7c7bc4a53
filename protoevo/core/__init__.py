"""Distance oracle, nearest-neighbour baseline and run-report storage."""

from .distance import euclidean_distance, pairwise_distances
from .nearest_neighbour import (
    nearest_neighbour_labels,
    nearest_neighbour_correct,
    nearest_neighbour_two_fold,
)
from .persistence import RunStore

__all__ = [
    'euclidean_distance',
    'pairwise_distances',
    'nearest_neighbour_labels',
    'nearest_neighbour_correct',
    'nearest_neighbour_two_fold',
    'RunStore',
]
