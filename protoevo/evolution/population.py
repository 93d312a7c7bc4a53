"""
Population management for evolutionary search.

Handles:
- Initial population creation (uniformly random genomes)
- In-place Fisher-Yates shuffling for tournament draws
- Population statistics
"""

from typing import List, Dict, Any

import numpy as np

from .genome import Genome, create_random_genome, unique_gene_count


def create_initial_population(
    population_size: int,
    rng: np.random.Generator,
    generation: int = 0,
) -> List[Genome]:
    """
    Create a population of independently random genomes.

    Args:
        population_size: Number of genomes
        rng: Random generator
        generation: Generation number stamped on each genome

    Returns:
        List of Genome objects forming the initial population
    """
    if population_size < 1:
        raise ValueError(f"population_size must be positive, got {population_size}")

    return [
        create_random_genome(rng, generation=generation, prefix='rand')
        for _ in range(population_size)
    ]


def shuffle_in_place(population: List[Any], rng: np.random.Generator) -> None:
    """
    Fisher-Yates shuffle.

    For i in 0..n-1, draw j uniformly from [i, n) and swap elements i and j.
    """
    n = len(population)
    for i in range(n):
        j = int(rng.integers(i, n))
        population[i], population[j] = population[j], population[i]


def get_population_stats(population: List[Genome]) -> Dict[str, Any]:
    """
    Compute statistics about the population.

    Args:
        population: List of genomes

    Returns:
        Dictionary with population statistics
    """
    if not population:
        return {'size': 0}

    genes = np.stack([g.genes for g in population])

    evaluated = [g for g in population if g.fitness is not None]
    if evaluated:
        fitnesses = [g.fitness for g in evaluated]
        fitness_stats = {
            'min_fitness': min(fitnesses),
            'max_fitness': max(fitnesses),
            'mean_fitness': float(np.mean(fitnesses)),
            'evaluated_count': len(evaluated),
        }
    else:
        fitness_stats = {'evaluated_count': 0}

    return {
        'size': len(population),
        'unique_genomes': unique_gene_count(population),
        'mean_gene_value': float(genes.mean()),
        # Mean per-position spread across the population
        'gene_diversity': float(genes.std(axis=0).mean()),
        **fitness_stats,
    }
