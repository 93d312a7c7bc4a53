"""
Labeled digit feature data for prototype learning.

Rows follow the UCI optical digits layout: 64 integer features in [0, 16]
followed by a class label in [0, 9]. The fitness evaluator scores data in
blocks of BLOCK_SIZE consecutive rows, so datasets are expected to hold one
row of each class per block.

Also provides a synthetic generator with the same layout, for demos and tests
that should not depend on the CSV files.
"""

import csv
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Tuple, Any

import numpy as np

from ..constants import FEATURE_LEN, NUM_CLASSES, MAX_FEATURE_VAL, BLOCK_SIZE


DEFAULT_DATA_FILES = ('data/cw2DataSet1.csv', 'data/cw2DataSet2.csv')


class DatasetError(ValueError):
    """Raised when a dataset is malformed or unusable for evolution."""


def _as_int_array(values: Any, what: str) -> np.ndarray:
    """Cast to int64, rejecting values that are not whole numbers."""
    arr = np.asarray(values)
    if arr.size and arr.dtype.kind not in 'iub':
        try:
            numeric = arr.astype(np.float64)
        except (TypeError, ValueError) as e:
            raise DatasetError(f"{what} must be integers") from e
        if not (np.all(np.isfinite(numeric)) and np.array_equal(numeric, np.rint(numeric))):
            raise DatasetError(f"{what} must be integers")
    return arr.astype(np.int64)


@dataclass(frozen=True)
class FeatureRow:
    """One labeled row: FEATURE_LEN feature values plus a class label."""
    features: Tuple[int, ...]
    label: int

    def __post_init__(self):
        features = tuple(int(v) for v in _as_int_array(self.features, 'Features').ravel())
        object.__setattr__(self, 'features', features)
        object.__setattr__(self, 'label', int(_as_int_array(self.label, 'Label')))
        if len(features) != FEATURE_LEN:
            raise DatasetError(f"Row must have {FEATURE_LEN} features, got {len(features)}")
        if min(features) < 0 or max(features) > MAX_FEATURE_VAL:
            raise DatasetError(f"Feature values must lie in [0, {MAX_FEATURE_VAL}]")
        if not 0 <= self.label < NUM_CLASSES:
            raise DatasetError(f"Label must lie in [0, {NUM_CLASSES}), got {self.label}")

    @classmethod
    def from_values(cls, values: Iterable[int]) -> 'FeatureRow':
        """Build a row from FEATURE_LEN features followed by the label."""
        values = list(values)
        if len(values) != FEATURE_LEN + 1:
            raise DatasetError(
                f"Row must have {FEATURE_LEN + 1} values (features + label), got {len(values)}"
            )
        return cls(features=tuple(values[:FEATURE_LEN]), label=values[FEATURE_LEN])


class Dataset:
    """
    Read-only collection of labeled rows.

    Stores features as an (N, FEATURE_LEN) int array and labels as an (N,)
    int array. Both arrays are marked non-writeable.
    """

    def __init__(self, features: Any, labels: Any, name: str = 'unnamed'):
        features = _as_int_array(features, 'Features')
        labels = _as_int_array(labels, 'Labels')
        if features.size == 0:
            features = features.reshape(0, FEATURE_LEN)
        if features.ndim != 2 or features.shape[1] != FEATURE_LEN:
            raise DatasetError(
                f"Features must have shape (N, {FEATURE_LEN}), got {features.shape}"
            )
        if labels.shape != (features.shape[0],):
            raise DatasetError(
                f"Expected {features.shape[0]} labels, got shape {labels.shape}"
            )
        if features.size and (features.min() < 0 or features.max() > MAX_FEATURE_VAL):
            raise DatasetError(f"Feature values must lie in [0, {MAX_FEATURE_VAL}]")
        if labels.size and (labels.min() < 0 or labels.max() >= NUM_CLASSES):
            raise DatasetError(f"Labels must lie in [0, {NUM_CLASSES})")

        self.features = features.copy()
        self.labels = labels.copy()
        self.features.flags.writeable = False
        self.labels.flags.writeable = False
        self.name = name

    @classmethod
    def from_rows(cls, rows: Iterable[Any], name: str = 'unnamed') -> 'Dataset':
        """Create from FeatureRow objects or sequences of FEATURE_LEN + 1 values."""
        parsed = [r if isinstance(r, FeatureRow) else FeatureRow.from_values(r) for r in rows]
        features = [r.features for r in parsed]
        labels = [r.label for r in parsed]
        return cls(features, labels, name=name)

    @classmethod
    def from_array(cls, data: Any, name: str = 'unnamed') -> 'Dataset':
        """Create from an (N, FEATURE_LEN + 1) array with the label last."""
        arr = _as_int_array(data, 'Rows')
        if arr.size == 0:
            return cls(np.empty((0, FEATURE_LEN)), np.empty(0), name=name)
        if arr.ndim != 2 or arr.shape[1] != FEATURE_LEN + 1:
            raise DatasetError(
                f"Expected shape (N, {FEATURE_LEN + 1}), got {arr.shape}"
            )
        return cls(arr[:, :FEATURE_LEN], arr[:, FEATURE_LEN], name=name)

    def __len__(self) -> int:
        return self.features.shape[0]

    def __getitem__(self, index: int) -> FeatureRow:
        return FeatureRow(features=tuple(self.features[index]), label=self.labels[index])

    def __iter__(self) -> Iterator[FeatureRow]:
        for i in range(len(self)):
            yield self[i]

    def __repr__(self) -> str:
        return f"Dataset(name={self.name!r}, rows={len(self)})"

    @property
    def n_blocks(self) -> int:
        """Number of complete blocks of BLOCK_SIZE rows."""
        return len(self) // BLOCK_SIZE

    def blocks(self) -> Iterator[Tuple[np.ndarray, np.ndarray]]:
        """Yield (features, labels) for each complete block."""
        for start in range(0, self.n_blocks * BLOCK_SIZE, BLOCK_SIZE):
            yield (
                self.features[start:start + BLOCK_SIZE],
                self.labels[start:start + BLOCK_SIZE],
            )

    def as_array(self) -> np.ndarray:
        """Rows as an (N, FEATURE_LEN + 1) array with the label last."""
        return np.column_stack([self.features, self.labels])

    def class_counts(self) -> List[int]:
        """Row count per class label."""
        return np.bincount(self.labels, minlength=NUM_CLASSES).tolist()


def find_misaligned_blocks(dataset: Dataset) -> List[int]:
    """Indices of blocks that do not hold exactly one row of each class."""
    expected = np.arange(NUM_CLASSES)
    bad = []
    for i, (_, labels) in enumerate(dataset.blocks()):
        if not np.array_equal(np.sort(labels), expected):
            bad.append(i)
    return bad


def validate_dataset(dataset: Dataset, strict_blocks: bool = True) -> List[int]:
    """
    Check that a dataset can be scored block by block.

    Args:
        dataset: Dataset to check
        strict_blocks: Reject blocks that are not one row of each class

    Returns:
        Indices of misaligned blocks (always empty when strict_blocks is True)

    Raises:
        DatasetError: If the dataset is empty, its length is not a multiple of
            BLOCK_SIZE, or (strict) a block is misaligned
    """
    if len(dataset) == 0:
        raise DatasetError(f"Dataset '{dataset.name}' is empty")
    if len(dataset) % BLOCK_SIZE != 0:
        raise DatasetError(
            f"Dataset '{dataset.name}' has {len(dataset)} rows, "
            f"not a multiple of the block size {BLOCK_SIZE}"
        )
    misaligned = find_misaligned_blocks(dataset)
    if misaligned and strict_blocks:
        shown = ', '.join(str(i) for i in misaligned[:5])
        more = f" (+{len(misaligned) - 5} more)" if len(misaligned) > 5 else ''
        raise DatasetError(
            f"Dataset '{dataset.name}': blocks {shown}{more} do not contain "
            f"one row of each class"
        )
    return misaligned


def load_csv(path: Any, name: Optional[str] = None) -> Dataset:
    """
    Load a comma-separated digits file.

    Each non-blank line holds FEATURE_LEN feature values and a label.

    Raises:
        DatasetError: On a malformed line (reported with its line number)
        FileNotFoundError: If the file does not exist
    """
    path = Path(path)
    rows = []
    with open(path, 'r', newline='') as f:
        reader = csv.reader(f)
        for lineno, fields in enumerate(reader, start=1):
            if not fields or all(not v.strip() for v in fields):
                continue
            try:
                rows.append(FeatureRow.from_values(int(v) for v in fields))
            except ValueError as e:
                raise DatasetError(f"{path}:{lineno}: {e}") from e

    return Dataset.from_rows(rows, name=name or path.name)


def class_templates(rng: np.random.Generator) -> np.ndarray:
    """Random per-class feature templates of shape (NUM_CLASSES, FEATURE_LEN)."""
    return rng.integers(0, MAX_FEATURE_VAL + 1, size=(NUM_CLASSES, FEATURE_LEN))


def _sample_blocks(
    templates: np.ndarray,
    n_blocks: int,
    noise: float,
    rng: np.random.Generator,
    name: str,
) -> Dataset:
    features = []
    labels = []
    for _ in range(n_blocks):
        order = rng.permutation(NUM_CLASSES)
        block = templates[order] + rng.normal(0, noise, size=(NUM_CLASSES, FEATURE_LEN))
        features.append(np.clip(np.rint(block), 0, MAX_FEATURE_VAL))
        labels.append(order)

    if not features:
        return Dataset(np.empty((0, FEATURE_LEN)), np.empty(0), name=name)
    return Dataset(np.vstack(features), np.concatenate(labels), name=name)


def make_synthetic_digits(
    n_blocks: int = 50,
    noise: float = 2.0,
    seed: Optional[int] = None,
    name: str = 'synthetic',
) -> Dataset:
    """
    Block-aligned synthetic digits data.

    Each class is a random template; rows are the template plus Gaussian
    noise, rounded and clipped to [0, MAX_FEATURE_VAL]. Every block is a
    random permutation of the ten classes.

    Args:
        n_blocks: Number of blocks (rows = n_blocks * BLOCK_SIZE)
        noise: Standard deviation of the per-feature noise
        seed: Random seed

    Returns:
        Dataset with n_blocks * BLOCK_SIZE rows
    """
    rng = np.random.default_rng(seed)
    return _sample_blocks(class_templates(rng), n_blocks, noise, rng, name)


def make_synthetic_pair(
    n_blocks: int = 50,
    noise: float = 2.0,
    seed: Optional[int] = None,
) -> Tuple[Dataset, Dataset]:
    """Two synthetic datasets drawn from the same class templates."""
    rng = np.random.default_rng(seed)
    templates = class_templates(rng)
    return (
        _sample_blocks(templates, n_blocks, noise, rng, 'synthetic_a'),
        _sample_blocks(templates, n_blocks, noise, rng, 'synthetic_b'),
    )
