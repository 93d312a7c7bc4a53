"""
Nearest-prototype fitness for evolved genomes.

For each class c, the prototype row decoded from the genome is compared with
every row of each block of BLOCK_SIZE dataset rows. The block row nearest to
the prototype (the earliest one on ties) earns a point when its label is c.

    fitness = sum over classes c, blocks b of [label(nearest_b(prototype_c)) == c]

The score lies in [0, NUM_CLASSES * n_blocks]. It is a pure function of the
genes and the dataset, so it can be computed in worker processes.
"""

from multiprocessing import Pool
from typing import Any, List, Optional, TYPE_CHECKING

import numpy as np

from ..constants import NUM_CLASSES, BLOCK_SIZE
from ..core.distance import pairwise_distances
from ..datasets.digits import Dataset, DatasetError
from .genome import decode_prototypes

if TYPE_CHECKING:
    from .genome import Genome


def max_fitness(dataset: Dataset) -> int:
    """Upper bound of the fitness score on a dataset."""
    return NUM_CLASSES * dataset.n_blocks


def compute_fitness(genes: Any, dataset: Dataset) -> int:
    """
    Score a gene vector against a dataset.

    Args:
        genes: Genome or flat gene vector of length GENE_LENGTH
        dataset: Dataset whose length is a multiple of BLOCK_SIZE

    Returns:
        Number of (class, block) pairs where the nearest block row to the
        class prototype carries that class's label
    """
    if len(dataset) % BLOCK_SIZE != 0:
        raise DatasetError(
            f"Dataset length {len(dataset)} is not a multiple of {BLOCK_SIZE}"
        )
    n_blocks = dataset.n_blocks
    if n_blocks == 0:
        return 0

    prototypes = decode_prototypes(getattr(genes, 'genes', genes))

    # (classes, blocks, rows in block)
    distances = pairwise_distances(prototypes, dataset.features).reshape(
        NUM_CLASSES, n_blocks, BLOCK_SIZE
    )
    # argmin returns the first minimum, matching a strict '<' scan
    nearest = np.argmin(distances, axis=2)

    block_labels = dataset.labels.reshape(n_blocks, BLOCK_SIZE)
    nearest_labels = block_labels[np.arange(n_blocks)[np.newaxis, :], nearest]

    correct = nearest_labels == np.arange(NUM_CLASSES)[:, np.newaxis]
    return int(correct.sum())


# =============================================================================
# Population evaluation
# =============================================================================

_worker_dataset: Optional[Dataset] = None


def _init_worker(dataset: Dataset) -> None:
    """Pool initializer: keep the dataset in the worker process."""
    global _worker_dataset
    _worker_dataset = dataset


def _fitness_worker(genes: np.ndarray) -> int:
    """
    Worker function for parallel fitness evaluation.

    This is a module-level function to enable pickling for multiprocessing.
    """
    return compute_fitness(genes, _worker_dataset)


def create_fitness_pool(dataset: Dataset, n_workers: int) -> Pool:
    """Process pool whose workers score genes against dataset."""
    return Pool(n_workers, initializer=_init_worker, initargs=(dataset,))


def evaluate_population(
    population: List['Genome'],
    dataset: Dataset,
    pool: Optional[Pool] = None,
) -> int:
    """
    Fill in fitness for all unevaluated genomes.

    Args:
        population: Genomes to evaluate (modified in place)
        dataset: Training dataset
        pool: Optional pool from create_fitness_pool bound to the same dataset

    Returns:
        Number of evaluations performed
    """
    to_evaluate = [g for g in population if g.fitness is None]
    if not to_evaluate:
        return 0

    if pool is not None:
        scores = pool.map(_fitness_worker, [g.genes for g in to_evaluate])
    else:
        scores = [compute_fitness(g.genes, dataset) for g in to_evaluate]

    for genome, score in zip(to_evaluate, scores):
        genome.fitness = int(score)

    return len(to_evaluate)


def best_fitness_on(population: List['Genome'], dataset: Dataset) -> int:
    """
    Highest fitness any genome reaches on a (held-out) dataset.

    Stored training fitness is ignored; every genome is scored afresh.
    """
    if not population:
        return 0
    return max(compute_fitness(g.genes, dataset) for g in population)
