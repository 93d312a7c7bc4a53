"""Digit feature datasets: loading, validation and synthetic generation."""

from .digits import (
    FeatureRow,
    Dataset,
    DatasetError,
    DEFAULT_DATA_FILES,
    validate_dataset,
    find_misaligned_blocks,
    load_csv,
    make_synthetic_digits,
    make_synthetic_pair,
)

__all__ = [
    'FeatureRow',
    'Dataset',
    'DatasetError',
    'DEFAULT_DATA_FILES',
    'validate_dataset',
    'find_misaligned_blocks',
    'load_csv',
    'make_synthetic_digits',
    'make_synthetic_pair',
]
