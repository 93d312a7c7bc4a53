"""
Generation history for evolutionary runs.

Records per-generation training fitness statistics for reporting and
plotting. Populations themselves are never stored.
"""

from dataclasses import dataclass, asdict
from datetime import datetime
from typing import List, Dict, Any, Optional

import numpy as np

from .genome import Genome, unique_gene_count


@dataclass
class GenerationStats:
    """Statistics for a single generation."""
    generation: int
    best_fitness: int
    mean_fitness: float
    min_fitness: int
    std_fitness: float
    population_size: int
    unique_genomes: int
    evaluations_this_gen: int
    timestamp: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _population_stats(
    generation: int,
    population: List[Genome],
    evaluations: int,
) -> GenerationStats:
    fitnesses = [g.fitness for g in population if g.fitness is not None] or [0]
    return GenerationStats(
        generation=generation,
        best_fitness=int(max(fitnesses)),
        mean_fitness=float(np.mean(fitnesses)),
        min_fitness=int(min(fitnesses)),
        std_fitness=float(np.std(fitnesses)),
        population_size=len(population),
        unique_genomes=unique_gene_count(population),
        evaluations_this_gen=evaluations,
        timestamp=datetime.now().isoformat(),
    )


class EvolutionHistory:
    """
    Tracks evolution progress over generations.

    Records per-generation statistics for analysis and visualization.
    Row g describes the population that entered generation g; the offspring
    bred by the last generation are kept in `final`.
    """

    def __init__(self):
        self.generations: List[GenerationStats] = []
        self.fitness_trajectory: List[int] = []
        self.mean_trajectory: List[float] = []
        self.final: Optional[GenerationStats] = None

    def __len__(self) -> int:
        return len(self.generations)

    def record_generation(
        self,
        generation: int,
        population: List[Genome],
        evaluations: int,
    ) -> GenerationStats:
        """
        Record statistics for a generation whose fitness has been evaluated.

        Args:
            generation: Generation number
            population: Population with training fitness filled in
            evaluations: Number of fitness evaluations this generation

        Returns:
            GenerationStats for this generation
        """
        stats = _population_stats(generation, population, evaluations)

        self.generations.append(stats)
        self.fitness_trajectory.append(stats.best_fitness)
        self.mean_trajectory.append(stats.mean_fitness)

        return stats

    def record_final(
        self,
        generation: int,
        population: List[Genome],
        evaluations: int,
    ) -> GenerationStats:
        """Record the evaluated offspring left after the last generation."""
        self.final = _population_stats(generation, population, evaluations)
        return self.final

    def best_fitness(self) -> int:
        """Best training fitness over all generations and the final population (0 if none)."""
        values = list(self.fitness_trajectory)
        if self.final is not None:
            values.append(self.final.best_fitness)
        return max(values) if values else 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert history to dictionary for serialization."""
        return {
            'generations': [g.to_dict() for g in self.generations],
            'fitness_trajectory': self.fitness_trajectory,
            'mean_trajectory': self.mean_trajectory,
            'final': self.final.to_dict() if self.final is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EvolutionHistory':
        """Restore history from dictionary."""
        history = cls()
        history.generations = [
            GenerationStats(**g) for g in data.get('generations', [])
        ]
        history.fitness_trajectory = data.get('fitness_trajectory', [])
        history.mean_trajectory = data.get('mean_trajectory', [])
        if data.get('final'):
            history.final = GenerationStats(**data['final'])
        return history
