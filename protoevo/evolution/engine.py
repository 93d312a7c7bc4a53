"""
Main evolutionary optimization engine.

Orchestrates prototype evolution and its evaluation protocol:
1. Initialize a random population                       (INIT)
2. For each generation: select parents, breed, mutate   (EVOLVING)
3. Score the final population on held-out data          (EVALUATING)
4. Repeat with the datasets swapped (two-fold)
5. Retry the two-fold run until the accuracy threshold
   is exceeded or max_retries is reached                (DONE / RETRY)
"""

from dataclasses import dataclass, asdict, field
from enum import Enum
from functools import partial
from typing import List, Dict, Any, Optional, Callable, Tuple
import logging
import time

import numpy as np

from ..constants import GENE_LENGTH
from ..datasets.digits import Dataset, validate_dataset
from .genome import Genome
from .fitness import (
    compute_fitness,
    create_fitness_pool,
    evaluate_population,
    max_fitness,
)
from .operators import (
    SELECTION_STRATEGIES,
    CROSSOVER_OPERATORS,
    breed_population,
)
from .population import create_initial_population
from .history import EvolutionHistory, GenerationStats

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, Dict[str, Any]], None]


class ConfigurationError(ValueError):
    """Raised for an invalid evolution configuration."""


class EngineState(Enum):
    INIT = 'init'
    EVOLVING = 'evolving'
    EVALUATING = 'evaluating'
    DONE = 'done'
    RETRY = 'retry'


@dataclass
class EvolutionConfig:
    """Configuration for an evolution run."""
    # Population parameters
    population_size: int = 40
    n_generations: int = 300
    tournament_size: int = 10

    # Operators
    selection: str = 'best_pair'     # 'best_pair', 'tournament'
    crossover: str = 'uniform'       # 'uniform', 'two_point', 'multi_point'
    max_crossover_points: int = 64  # upper bound of k for multi_point
    mutation_rate: float = 1.5       # percent per element

    # Retry policy
    accuracy_threshold: float = 64.0  # percent, must be exceeded
    max_retries: int = 10

    # Dataset checks
    strict_blocks: bool = True

    # Parallelization
    n_workers: int = 1

    def __post_init__(self):
        """Reject configurations the engine cannot run."""
        if self.population_size < 2 or self.population_size % 2 != 0:
            raise ConfigurationError(
                f"population_size must be an even number >= 2, got {self.population_size}"
            )
        if self.n_generations < 0:
            raise ConfigurationError(f"n_generations must be >= 0, got {self.n_generations}")
        if not 2 <= self.tournament_size <= self.population_size:
            raise ConfigurationError(
                f"tournament_size must be in [2, {self.population_size}], "
                f"got {self.tournament_size}"
            )
        if self.selection not in SELECTION_STRATEGIES:
            available = ', '.join(SELECTION_STRATEGIES)
            raise ConfigurationError(f"Unknown selection '{self.selection}'. Available: {available}")
        if self.crossover not in CROSSOVER_OPERATORS:
            available = ', '.join(CROSSOVER_OPERATORS)
            raise ConfigurationError(f"Unknown crossover '{self.crossover}'. Available: {available}")
        if not 1 <= self.max_crossover_points <= GENE_LENGTH:
            raise ConfigurationError(
                f"max_crossover_points must be in [1, {GENE_LENGTH}], "
                f"got {self.max_crossover_points}"
            )
        if not 0.0 <= self.mutation_rate <= 100.0:
            raise ConfigurationError(f"mutation_rate must be in [0, 100], got {self.mutation_rate}")
        if not 0.0 <= self.accuracy_threshold <= 100.0:
            raise ConfigurationError(
                f"accuracy_threshold must be in [0, 100], got {self.accuracy_threshold}"
            )
        if self.max_retries < 1:
            raise ConfigurationError(f"max_retries must be >= 1, got {self.max_retries}")
        if self.n_workers < 1:
            raise ConfigurationError(f"n_workers must be >= 1, got {self.n_workers}")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class FoldResult:
    """Outcome of one train/evaluate fold."""
    train_name: str
    test_name: str
    correct: int                # best test fitness across the final population
    test_rows: int
    max_score: int
    best_train_fitness: int     # includes the final offspring
    best_genome: Genome         # genome reaching `correct` on the test set
    history: EvolutionHistory
    runtime_seconds: float

    @property
    def accuracy(self) -> float:
        return self.correct / self.max_score if self.max_score else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'train_name': self.train_name,
            'test_name': self.test_name,
            'correct': self.correct,
            'test_rows': self.test_rows,
            'max_score': self.max_score,
            'best_train_fitness': self.best_train_fitness,
            'best_genome': self.best_genome.to_dict(),
            'history': self.history.to_dict(),
            'runtime_seconds': self.runtime_seconds,
        }


@dataclass
class TwoFoldResult:
    """Both folds of a two-fold run and the combined percentage."""
    folds: Tuple[FoldResult, FoldResult]
    total_correct: int
    total_rows: int
    percentage: float
    outcome: EngineState = EngineState.DONE   # RETRY when another attempt followed

    def summary(self) -> str:
        """Generate summary string."""
        lines = []
        for fold in self.folds:
            lines.append(f"Training set: {fold.train_name}, test set: {fold.test_name}")
            lines.append(f"Correct categorisations = {fold.correct}/{fold.test_rows}")
        lines.append(
            f"Total correct: {self.total_correct}/{self.total_rows} = {self.percentage:.2f}%"
        )
        return '\n'.join(lines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'folds': [f.to_dict() for f in self.folds],
            'total_correct': self.total_correct,
            'total_rows': self.total_rows,
            'percentage': self.percentage,
            'outcome': self.outcome.value,
        }


@dataclass
class RetryResult:
    """All two-fold attempts made while chasing the accuracy threshold."""
    attempts: List[TwoFoldResult]
    accuracy_threshold: float
    threshold_met: bool
    config: Dict[str, Any] = field(default_factory=dict)

    @property
    def final(self) -> TwoFoldResult:
        return self.attempts[-1]

    @property
    def best(self) -> TwoFoldResult:
        return max(self.attempts, key=lambda r: r.percentage)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'config': self.config,
            'accuracy_threshold': self.accuracy_threshold,
            'threshold_met': self.threshold_met,
            'attempts': [a.to_dict() for a in self.attempts],
        }


def make_rng(seed: Optional[int] = None) -> np.random.Generator:
    """Random generator threaded through every operator of a run."""
    return np.random.default_rng(seed)


def check_dataset(dataset: Dataset, strict_blocks: bool = True) -> None:
    """Validate a dataset, warning about misaligned blocks when not strict."""
    misaligned = validate_dataset(dataset, strict_blocks=strict_blocks)
    if misaligned:
        logger.warning(
            "Dataset '%s': %d of %d blocks do not hold one row of each class; "
            "fitness still scores per block",
            dataset.name, len(misaligned), dataset.n_blocks,
        )


class EvolutionEngine:
    """
    Evolves class prototypes on one training dataset.

    Owns the population for the duration of a fold. Every random draw goes
    through self.rng.
    """

    def __init__(
        self,
        config: EvolutionConfig,
        train: Dataset,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
    ):
        """
        Initialize evolution engine.

        Args:
            config: Evolution configuration
            train: Training dataset (validated here)
            rng: Random generator shared with the caller
            seed: Seed for a new generator when rng is not given
        """
        check_dataset(train, strict_blocks=config.strict_blocks)

        self.config = config
        self.train = train
        self.rng = rng if rng is not None else make_rng(seed)

        self.population: List[Genome] = []
        self.history = EvolutionHistory()
        self.generation = 0
        self.total_evaluations = 0
        self.state = EngineState.INIT

        self._select = SELECTION_STRATEGIES[config.selection]
        if config.selection == 'tournament':
            self._select = partial(self._select, tournament_size=config.tournament_size)
        self._crossover = CROSSOVER_OPERATORS[config.crossover]
        self._crossover_kwargs = (
            {'max_points': config.max_crossover_points}
            if config.crossover == 'multi_point' else {}
        )

    def initialize_population(self) -> None:
        """Create a fresh random population and reset run state."""
        self.population = create_initial_population(
            self.config.population_size, self.rng
        )
        self.generation = 0
        self.total_evaluations = 0
        self.history = EvolutionHistory()
        self.state = EngineState.INIT

    def run_generation(self, pool=None) -> GenerationStats:
        """Execute one generation: evaluate, select, breed."""
        if not self.population:
            raise RuntimeError("Population is empty; call initialize_population() first")

        self.state = EngineState.EVOLVING
        self.generation += 1

        # 1. Evaluate fitness on the training set
        evaluations = evaluate_population(self.population, self.train, pool=pool)
        self.total_evaluations += evaluations

        # 2. Record statistics
        stats = self.history.record_generation(
            generation=self.generation,
            population=self.population,
            evaluations=evaluations,
        )

        # 3. Selection into a staging population
        staging = self._select(self.population, self.train, self.rng, pool=pool)

        # 4. Crossover + mutation replace the population
        self.population = breed_population(
            staging,
            self._crossover,
            self.rng,
            mutation_rate=self.config.mutation_rate,
            generation=self.generation,
            crossover_kwargs=self._crossover_kwargs,
        )

        logger.debug(
            "Generation %d: best=%d mean=%.2f unique=%d",
            stats.generation, stats.best_fitness, stats.mean_fitness, stats.unique_genomes,
        )
        return stats

    def evolve(
        self,
        n_generations: Optional[int] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> EvolutionHistory:
        """
        Run the generation loop.

        Args:
            n_generations: Number of generations (default: config.n_generations)
            progress_callback: Optional callback(gen, total_gens, stats)

        Returns:
            EvolutionHistory of the run
        """
        if n_generations is None:
            n_generations = self.config.n_generations
        if not self.population:
            self.initialize_population()

        if self.config.n_workers > 1:
            with create_fitness_pool(self.train, self.config.n_workers) as pool:
                self._generation_loop(n_generations, progress_callback, pool)
        else:
            self._generation_loop(n_generations, progress_callback, None)

        return self.history

    def _generation_loop(
        self,
        n_generations: int,
        progress_callback: Optional[ProgressCallback],
        pool,
    ) -> None:
        for _ in range(n_generations):
            stats = self.run_generation(pool=pool)

            if progress_callback:
                progress_callback(self.generation, n_generations, {
                    'generation': self.generation,
                    'best_fitness': stats.best_fitness,
                    'mean_fitness': stats.mean_fitness,
                    'max_fitness': max_fitness(self.train),
                    'evaluations': self.total_evaluations,
                    'train_name': self.train.name,
                })

        # The last offspring are what evaluate() scores
        evaluations = evaluate_population(self.population, self.train, pool=pool)
        self.total_evaluations += evaluations
        self.history.record_final(self.generation, self.population, evaluations)

    def evaluate(self, test: Dataset) -> Tuple[int, Genome]:
        """
        Score the final population on a held-out dataset.

        Returns:
            (best test fitness, genome that reached it); the first genome
            wins ties
        """
        if not self.population:
            raise RuntimeError("Population is empty; nothing to evaluate")

        self.state = EngineState.EVALUATING
        scores = [compute_fitness(g.genes, test) for g in self.population]
        best_idx = int(np.argmax(scores))
        self.state = EngineState.DONE
        return int(scores[best_idx]), self.population[best_idx].copy()

    def run_fold(
        self,
        test: Dataset,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> FoldResult:
        """Full INIT -> EVOLVING -> EVALUATING cycle against one test set."""
        check_dataset(test, strict_blocks=self.config.strict_blocks)
        start_time = time.time()

        self.initialize_population()
        self.evolve(progress_callback=progress_callback)
        correct, best_genome = self.evaluate(test)

        result = FoldResult(
            train_name=self.train.name,
            test_name=test.name,
            correct=correct,
            test_rows=len(test),
            max_score=max_fitness(test),
            best_train_fitness=self.history.best_fitness(),
            best_genome=best_genome,
            history=self.history,
            runtime_seconds=time.time() - start_time,
        )
        logger.info(
            "Fold %s -> %s: %d/%d correct (best training fitness %d)",
            result.train_name, result.test_name, result.correct,
            result.test_rows, result.best_train_fitness,
        )
        return result


def two_fold_evaluation(
    dataset_a: Dataset,
    dataset_b: Dataset,
    config: Optional[EvolutionConfig] = None,
    rng: Optional[np.random.Generator] = None,
    seed: Optional[int] = None,
    progress_callback: Optional[ProgressCallback] = None,
) -> TwoFoldResult:
    """
    Train on A / test on B, then train on B / test on A.

    Each dataset is validated before any evolution on it starts.

    Returns:
        TwoFoldResult with percentage = 100 * total_correct / (|A| + |B|)
    """
    config = config or EvolutionConfig()
    rng = rng if rng is not None else make_rng(seed)
    result, _ = _run_folds(dataset_a, dataset_b, config, rng, progress_callback)
    return result


def _run_folds(
    dataset_a: Dataset,
    dataset_b: Dataset,
    config: EvolutionConfig,
    rng: np.random.Generator,
    progress_callback: Optional[ProgressCallback],
) -> Tuple[TwoFoldResult, Tuple[EvolutionEngine, EvolutionEngine]]:
    engines = (
        EvolutionEngine(config, dataset_a, rng=rng),
        EvolutionEngine(config, dataset_b, rng=rng),
    )
    first = engines[0].run_fold(dataset_b, progress_callback)
    second = engines[1].run_fold(dataset_a, progress_callback)

    total_correct = first.correct + second.correct
    total_rows = len(dataset_a) + len(dataset_b)

    result = TwoFoldResult(
        folds=(first, second),
        total_correct=total_correct,
        total_rows=total_rows,
        percentage=100.0 * total_correct / total_rows,
    )
    return result, engines


def run_two_fold(
    dataset_a: Dataset,
    dataset_b: Dataset,
    config: Optional[EvolutionConfig] = None,
    rng: Optional[np.random.Generator] = None,
    seed: Optional[int] = None,
) -> float:
    """Percentage of correct categorisations over a two-fold run."""
    return two_fold_evaluation(dataset_a, dataset_b, config, rng=rng, seed=seed).percentage


def run_until_threshold(
    dataset_a: Dataset,
    dataset_b: Dataset,
    config: Optional[EvolutionConfig] = None,
    rng: Optional[np.random.Generator] = None,
    seed: Optional[int] = None,
    progress_callback: Optional[ProgressCallback] = None,
    attempt_callback: Optional[Callable[[int, TwoFoldResult], None]] = None,
) -> RetryResult:
    """
    Repeat two-fold runs until the percentage exceeds the threshold.

    At most config.max_retries attempts are made. When none succeeds, the
    result has threshold_met=False and a warning is logged.

    Args:
        dataset_a, dataset_b: The two dataset halves
        config: Evolution configuration
        rng: Random generator shared by all attempts
        seed: Seed for a new generator when rng is not given
        progress_callback: Per-generation callback passed to each fold
        attempt_callback: Optional callback(attempt_number, result)

    Returns:
        RetryResult with every attempt made
    """
    config = config or EvolutionConfig()
    rng = rng if rng is not None else make_rng(seed)

    attempts: List[TwoFoldResult] = []
    for attempt in range(1, config.max_retries + 1):
        result, engines = _run_folds(dataset_a, dataset_b, config, rng, progress_callback)
        met = result.percentage > config.accuracy_threshold
        if not met and attempt < config.max_retries:
            result.outcome = EngineState.RETRY
            for engine in engines:
                engine.state = EngineState.RETRY

        attempts.append(result)
        if attempt_callback:
            attempt_callback(attempt, result)

        if met:
            logger.info(
                "Attempt %d reached %.2f%% (> %.2f%%)",
                attempt, result.percentage, config.accuracy_threshold,
            )
            return RetryResult(attempts, config.accuracy_threshold, True, config.to_dict())

        logger.info(
            "Attempt %d reached %.2f%% (<= %.2f%%)",
            attempt, result.percentage, config.accuracy_threshold,
        )

    logger.warning(
        "Accuracy threshold %.2f%% not exceeded after %d attempts (best %.2f%%)",
        config.accuracy_threshold, len(attempts), max(a.percentage for a in attempts),
    )
    return RetryResult(attempts, config.accuracy_threshold, False, config.to_dict())
