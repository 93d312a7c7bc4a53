"""
Evolutionary operators: selection, crossover, and mutation.

These operators drive the evolutionary search by:
- Selecting the two fittest genomes as parents for the whole next generation
- Combining the parent gene vectors through crossover
- Introducing variation through per-element mutation

Selection returns a staging population of the same size as the input, where
slots 2k and 2k+1 hold copies of the first and second winner. Breeding reads
only the staging population, never the live one.
"""

from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..constants import MAX_FEATURE_VAL
from ..datasets.digits import Dataset
from .genome import Genome, generate_genome_id
from .fitness import evaluate_population
from .population import shuffle_in_place


# =============================================================================
# Selection Operators
# =============================================================================

def find_best_pair(fitnesses: Sequence[int]) -> Tuple[int, int]:
    """
    Indices of the best and second-best fitness in one scan.

    Uses '>=' for both slots, so on ties the later index wins:
    fitnesses [5, 5, 5] give (2, 1).

    Args:
        fitnesses: Fitness values in scan order

    Returns:
        (best_index, second_index)
    """
    if len(fitnesses) == 0:
        raise ValueError("Cannot select from an empty population")

    best_idx, second_idx = 0, 0
    best, second = -1, -1

    for i, current in enumerate(fitnesses):
        if current >= best:
            second, second_idx = best, best_idx
            best, best_idx = current, i
        elif current >= second:
            second, second_idx = current, i

    return best_idx, second_idx


def _fill_staging(first: Genome, second: Genome, size: int) -> List[Genome]:
    staging = []
    for _ in range(size // 2):
        staging.append(first.copy())
        staging.append(second.copy())
    return staging


def best_pair_selection(
    population: List[Genome],
    dataset: Dataset,
    rng: np.random.Generator,
    pool=None,
) -> List[Genome]:
    """
    Pick the two fittest genomes of the whole population.

    Every staging pair holds copies of (best, second best). rng is unused
    and accepted so all selection strategies share one signature.

    Args:
        population: Current population
        dataset: Training dataset for fitness
        rng: Random generator
        pool: Optional fitness pool bound to dataset

    Returns:
        Staging population of len(population) genomes
    """
    evaluate_population(population, dataset, pool=pool)
    best_idx, second_idx = find_best_pair([g.fitness for g in population])
    return _fill_staging(population[best_idx], population[second_idx], len(population))


def tournament_selection(
    population: List[Genome],
    dataset: Dataset,
    rng: np.random.Generator,
    pool=None,
    tournament_size: int = 10,
) -> List[Genome]:
    """
    Tournament selection over a shuffled population.

    The population is shuffled in place, then every staging pair is won by
    the best pair among the first tournament_size genomes. All pairs in one
    generation therefore see the same contestants.

    Args:
        population: Current population (shuffled in place)
        dataset: Training dataset for fitness
        rng: Random generator
        pool: Optional fitness pool bound to dataset
        tournament_size: Number of contestants per tournament

    Returns:
        Staging population of len(population) genomes
    """
    evaluate_population(population, dataset, pool=pool)
    shuffle_in_place(population, rng)

    size = min(tournament_size, len(population))
    staging = []
    for _ in range(len(population) // 2):
        contestants = population[:size]
        best_idx, second_idx = find_best_pair([g.fitness for g in contestants])
        staging.append(contestants[best_idx].copy())
        staging.append(contestants[second_idx].copy())

    return staging


SELECTION_STRATEGIES: Dict[str, Callable[..., List[Genome]]] = {
    'best_pair': best_pair_selection,
    'tournament': tournament_selection,
}


# =============================================================================
# Crossover Operators
# =============================================================================

def uniform_crossover(
    parent1: np.ndarray,
    parent2: np.ndarray,
    rng: np.random.Generator,
    swap_threshold: float = 50.0,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Uniform crossover with element-by-element swapping.

    A percentage is drawn per position; positions where it is >= swap_threshold
    are exchanged between the two children.

    Args:
        parent1: First parent gene vector
        parent2: Second parent gene vector
        rng: Random generator
        swap_threshold: Percentage at or above which a position swaps

    Returns:
        Tuple of two new child gene vectors
    """
    swap = rng.random(len(parent1)) * 100.0 >= swap_threshold
    child1 = np.where(swap, parent2, parent1)
    child2 = np.where(swap, parent1, parent2)
    return child1, child2


def two_point_cut(rng: np.random.Generator, length: int) -> Tuple[int, int]:
    """Draw cut points p1 <= p2 in [0, length) from two uniform ratios."""
    ratio1, ratio2 = rng.random(2)
    p1 = int(ratio1 * length)
    p2 = p1 + int(ratio2 * (length - p1))
    return p1, p2


def two_point_crossover(
    parent1: np.ndarray,
    parent2: np.ndarray,
    rng: np.random.Generator,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Two-point crossover.

    Example (cut points 2 and 4):
        Parent 1: [a a a a a a]
        Parent 2: [b b b b b b]
        Child 1:  [a a b b a a]
        Child 2:  [b b a a b b]

    Returns:
        Tuple of two new child gene vectors
    """
    p1, p2 = two_point_cut(rng, len(parent1))
    child1 = parent1.copy()
    child2 = parent2.copy()
    child1[p1:p2] = parent2[p1:p2]
    child2[p1:p2] = parent1[p1:p2]
    return child1, child2


def section_bounds(length: int, n_sections: int) -> List[Tuple[int, int]]:
    """
    Split [0, length) into n_sections equal-width sections.

    Width is length // n_sections; the remainder goes to the last section.
    """
    if not 1 <= n_sections <= length:
        raise ValueError(f"n_sections must be in [1, {length}], got {n_sections}")
    width = length // n_sections
    bounds = [(i * width, (i + 1) * width) for i in range(n_sections)]
    bounds[-1] = (bounds[-1][0], length)
    return bounds


def multi_point_crossover(
    parent1: np.ndarray,
    parent2: np.ndarray,
    rng: np.random.Generator,
    max_points: int = 64,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    k-point crossover over equal-width sections.

    Draws k uniformly from [1, max_points], splits the gene into k sections
    and, inside each section, swaps one random sub-range between the
    children. The rest of each section is left untouched.

    Returns:
        Tuple of two new child gene vectors
    """
    n_points = int(rng.integers(1, max_points + 1))
    child1 = parent1.copy()
    child2 = parent2.copy()

    for start, end in section_bounds(len(parent1), n_points):
        ratio1, ratio2 = rng.random(2)
        cross1 = start + int(ratio1 * (end - start))
        cross2 = cross1 + int(ratio2 * (end - cross1))
        child1[cross1:cross2] = parent2[cross1:cross2]
        child2[cross1:cross2] = parent1[cross1:cross2]

    return child1, child2


CROSSOVER_OPERATORS: Dict[str, Callable[..., Tuple[np.ndarray, np.ndarray]]] = {
    'uniform': uniform_crossover,
    'two_point': two_point_crossover,
    'multi_point': multi_point_crossover,
}


# =============================================================================
# Mutation Operators
# =============================================================================

def mutate_element(value: int, rng: np.random.Generator, mutation_rate: float) -> int:
    """
    With probability mutation_rate / 100, replace value by a fresh draw
    from [0, MAX_FEATURE_VAL]; otherwise return it unchanged.

    Single-element form of mutate_genes, consuming the same draws.
    """
    genes = np.array([value], dtype=np.int64)
    return int(mutate_genes(genes, rng, mutation_rate)[0])


def mutate_genes(
    genes: np.ndarray,
    rng: np.random.Generator,
    mutation_rate: float,
) -> np.ndarray:
    """
    Apply mutate_element independently to every position, in place.

    One percentage is drawn per position, then one replacement value per
    mutated position.

    Args:
        genes: Gene vector (modified in place)
        rng: Random generator
        mutation_rate: Per-element mutation probability in percent

    Returns:
        The same array, for chaining
    """
    mask = rng.random(len(genes)) * 100.0 < mutation_rate
    n_mutated = int(mask.sum())
    if n_mutated:
        genes[mask] = rng.integers(0, MAX_FEATURE_VAL + 1, size=n_mutated)
    return genes


# =============================================================================
# Breeding
# =============================================================================

def breed_population(
    staging: List[Genome],
    crossover: Callable[..., Tuple[np.ndarray, np.ndarray]],
    rng: np.random.Generator,
    mutation_rate: float,
    generation: int,
    crossover_kwargs: Optional[dict] = None,
) -> List[Genome]:
    """
    Build the next generation from a staging population.

    Slots (2k, 2k+1) of staging are crossed over; both children are mutated
    and stored at the same slots of the new population.

    Args:
        staging: Staging population from a selection strategy
        crossover: Crossover operator taking (genes1, genes2, rng, **kwargs)
        rng: Random generator
        mutation_rate: Per-element mutation probability in percent
        generation: Generation number for the children
        crossover_kwargs: Extra keyword arguments for the crossover operator

    Returns:
        New population of len(staging) genomes
    """
    if len(staging) % 2 != 0:
        raise ValueError(f"Staging population size must be even, got {len(staging)}")
    crossover_kwargs = crossover_kwargs or {}

    offspring = []
    for i in range(0, len(staging), 2):
        parent1, parent2 = staging[i], staging[i + 1]
        genes1, genes2 = crossover(parent1.genes, parent2.genes, rng, **crossover_kwargs)

        for genes in (genes1, genes2):
            offspring.append(Genome(
                genes=mutate_genes(np.array(genes, dtype=np.int64), rng, mutation_rate),
                genome_id=generate_genome_id(generation, 'cross'),
                generation=generation,
                parents=(parent1.genome_id, parent2.genome_id),
            ))

    return offspring
