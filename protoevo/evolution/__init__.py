"""
Evolutionary prototype learning.

This module evolves one synthetic feature row per class so that a
nearest-neighbour rule over those prototypes classifies a labeled dataset
well.

Key components:
- Genome: Flat vector of NUM_CLASSES concatenated prototype rows
- compute_fitness: Nearest-prototype score over blocks of the dataset
- Operators: Best-pair / tournament selection, uniform / two-point /
  multi-point crossover, per-element mutation
- EvolutionEngine: Generation loop for one fold
- run_two_fold / run_until_threshold: Two-fold protocol and bounded retry

Example usage:
    from protoevo.datasets import make_synthetic_pair
    from protoevo.evolution import EvolutionConfig, two_fold_evaluation

    dataset_a, dataset_b = make_synthetic_pair(n_blocks=20, seed=1)
    config = EvolutionConfig(n_generations=50, crossover='two_point')

    result = two_fold_evaluation(dataset_a, dataset_b, config, seed=7)
    print(result.summary())
"""

from .genome import (
    Genome,
    create_random_genome,
    genome_from_prototypes,
    decode_segment,
    decode_prototypes,
    random_gene,
)
from .fitness import compute_fitness, evaluate_population, max_fitness
from .operators import (
    find_best_pair,
    best_pair_selection,
    tournament_selection,
    uniform_crossover,
    two_point_crossover,
    multi_point_crossover,
    mutate_element,
    mutate_genes,
    breed_population,
    SELECTION_STRATEGIES,
    CROSSOVER_OPERATORS,
)
from .population import create_initial_population, shuffle_in_place, get_population_stats
from .history import EvolutionHistory, GenerationStats
from .engine import (
    ConfigurationError,
    EngineState,
    EvolutionConfig,
    EvolutionEngine,
    FoldResult,
    TwoFoldResult,
    RetryResult,
    two_fold_evaluation,
    run_two_fold,
    run_until_threshold,
)

__all__ = [
    # Core classes
    'Genome',
    'EvolutionEngine',
    'EvolutionConfig',
    'EngineState',
    'EvolutionHistory',
    'GenerationStats',
    'FoldResult',
    'TwoFoldResult',
    'RetryResult',
    'ConfigurationError',
    # Genome helpers
    'create_random_genome',
    'genome_from_prototypes',
    'decode_segment',
    'decode_prototypes',
    'random_gene',
    # Fitness
    'compute_fitness',
    'evaluate_population',
    'max_fitness',
    # Operators
    'find_best_pair',
    'best_pair_selection',
    'tournament_selection',
    'uniform_crossover',
    'two_point_crossover',
    'multi_point_crossover',
    'mutate_element',
    'mutate_genes',
    'breed_population',
    'SELECTION_STRATEGIES',
    'CROSSOVER_OPERATORS',
    # Population
    'create_initial_population',
    'shuffle_in_place',
    'get_population_stats',
    # Protocol
    'two_fold_evaluation',
    'run_two_fold',
    'run_until_threshold',
]
