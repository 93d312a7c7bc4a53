"""
Plain nearest-neighbour classifier, used as a baseline for the evolved
prototypes.

Every test row takes the label of its nearest training row (earliest row on
ties). No evolution is involved.
"""

import numpy as np

from ..datasets.digits import Dataset, DatasetError
from .distance import pairwise_distances


def nearest_neighbour_labels(train: Dataset, test: Dataset) -> np.ndarray:
    """Predicted label for each test row."""
    if len(train) == 0:
        raise DatasetError(f"Training dataset '{train.name}' is empty")
    nearest = np.argmin(pairwise_distances(test.features, train.features), axis=1)
    return train.labels[nearest]


def nearest_neighbour_correct(train: Dataset, test: Dataset) -> int:
    """Number of test rows whose nearest training row has the same label."""
    if len(test) == 0:
        return 0
    return int(np.sum(nearest_neighbour_labels(train, test) == test.labels))


def nearest_neighbour_two_fold(dataset_a: Dataset, dataset_b: Dataset) -> float:
    """
    Two-fold nearest-neighbour accuracy in percent.

    Classifies A using B and B using A, and divides the total correct count by
    |A| + |B|.
    """
    total_rows = len(dataset_a) + len(dataset_b)
    if total_rows == 0:
        raise DatasetError("Both datasets are empty")
    total_correct = (
        nearest_neighbour_correct(dataset_b, dataset_a)
        + nearest_neighbour_correct(dataset_a, dataset_b)
    )
    return 100.0 * total_correct / total_rows
