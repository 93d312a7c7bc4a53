"""
Tests for the evolutionary prototype-learning engine.

Run with: python -m pytest tests/test_evolution.py -v
"""

import logging

import numpy as np
import pytest

from protoevo.constants import (
    FEATURE_LEN,
    NUM_CLASSES,
    MAX_FEATURE_VAL,
    BLOCK_SIZE,
    GENE_LENGTH,
)
from protoevo.datasets.digits import Dataset, DatasetError, make_synthetic_digits
from protoevo.evolution.genome import (
    Genome,
    create_random_genome,
    genome_from_prototypes,
    decode_segment,
    decode_prototypes,
    random_gene,
)
from protoevo.evolution.fitness import (
    compute_fitness,
    evaluate_population,
    best_fitness_on,
    max_fitness,
)
from protoevo.evolution.operators import (
    find_best_pair,
    best_pair_selection,
    tournament_selection,
    uniform_crossover,
    two_point_crossover,
    two_point_cut,
    multi_point_crossover,
    section_bounds,
    mutate_element,
    mutate_genes,
    breed_population,
    CROSSOVER_OPERATORS,
)
from protoevo.evolution.population import (
    create_initial_population,
    shuffle_in_place,
    get_population_stats,
)
from protoevo.evolution.history import EvolutionHistory
from protoevo.evolution.engine import (
    ConfigurationError,
    EngineState,
    EvolutionConfig,
    EvolutionEngine,
    two_fold_evaluation,
    run_two_fold,
    run_until_threshold,
)

from conftest import one_hot_rows


def small_config(**overrides):
    params = dict(
        population_size=6,
        n_generations=3,
        tournament_size=4,
        max_retries=2,
    )
    params.update(overrides)
    return EvolutionConfig(**params)


def genomes_with_fitness(fitnesses, rng):
    population = []
    for f in fitnesses:
        genome = create_random_genome(rng)
        genome.fitness = f
        population.append(genome)
    return population


class TestGenome:
    """Tests for Genome and gene decoding."""

    def test_random_gene_range(self, rng):
        """Random genes cover [0, MAX_FEATURE_VAL] inclusive."""
        genes = np.concatenate([random_gene(rng) for _ in range(10)])
        assert genes.min() == 0
        assert genes.max() == MAX_FEATURE_VAL
        assert random_gene(rng).shape == (GENE_LENGTH,)

    def test_decode_segment(self):
        """Segment c is genes[c * FEATURE_LEN:(c + 1) * FEATURE_LEN]."""
        genes = np.repeat(np.arange(NUM_CLASSES), FEATURE_LEN)
        for c in range(NUM_CLASSES):
            segment = decode_segment(genes, c)
            assert segment.shape == (FEATURE_LEN,)
            assert np.all(segment == c)

    def test_decode_segment_is_a_copy(self, rng):
        """Changing a decoded segment leaves the gene untouched."""
        genome = create_random_genome(rng)
        before = genome.genes.copy()
        genome.prototype(0)[:] = 0
        assert np.array_equal(genome.genes, before)

    def test_decode_segment_bounds(self, rng):
        """Class indices outside [0, NUM_CLASSES) are rejected."""
        with pytest.raises(ValueError):
            decode_segment(random_gene(rng), NUM_CLASSES)
        with pytest.raises(ValueError):
            decode_segment(random_gene(rng), -1)

    def test_prototypes_round_trip(self):
        """Prototype rows encode to a gene and decode back."""
        genome = genome_from_prototypes(one_hot_rows())
        assert np.array_equal(genome.prototypes(), one_hot_rows())
        assert np.array_equal(decode_prototypes(genome.genes), one_hot_rows())

    def test_genome_validation(self):
        """Wrong length or out-of-range values raise."""
        with pytest.raises(ValueError):
            Genome(genes=np.zeros(GENE_LENGTH - 1), genome_id='g', generation=0, parents=('a', 'b'))
        with pytest.raises(ValueError):
            Genome(
                genes=np.full(GENE_LENGTH, MAX_FEATURE_VAL + 1),
                genome_id='g', generation=0, parents=('a', 'b'),
            )

    def test_copy_is_independent(self, rng):
        """Copies do not share gene storage."""
        genome = create_random_genome(rng)
        clone = genome.copy()
        clone.genes[0] = (clone.genes[0] + 1) % (MAX_FEATURE_VAL + 1)
        assert clone.genes[0] != genome.genes[0]

    def test_serialization(self, rng):
        """Genome to/from dict."""
        genome = create_random_genome(rng, generation=4)
        genome.fitness = 12
        restored = Genome.from_dict(genome.to_dict())
        assert np.array_equal(restored.genes, genome.genes)
        assert restored.fitness == 12
        assert restored.generation == 4


class TestFitness:
    """Tests for the nearest-prototype fitness."""

    def test_perfect_prototypes(self, one_hot_dataset):
        """Prototypes equal to e_0..e_9 classify the one-hot block perfectly."""
        genome = genome_from_prototypes(one_hot_rows())
        assert compute_fitness(genome, one_hot_dataset) == 10
        assert compute_fitness(genome.genes, one_hot_dataset) == 10

    def test_scores_each_block_separately(self):
        """Two identical one-hot blocks double the score."""
        rows = np.vstack([one_hot_rows(), one_hot_rows()])
        labels = np.concatenate([np.arange(NUM_CLASSES)] * 2)
        dataset = Dataset(rows, labels)
        genome = genome_from_prototypes(one_hot_rows())
        assert compute_fitness(genome, dataset) == 20

    def test_ties_keep_first_row(self):
        """When every block row is equally near, the first row's label counts."""
        dataset = Dataset(np.zeros((BLOCK_SIZE, FEATURE_LEN)), np.arange(NUM_CLASSES))
        genes = np.zeros(GENE_LENGTH, dtype=np.int64)
        # Only class 0 matches the label of row 0
        assert compute_fitness(genes, dataset) == 1

    def test_bounds(self, rng):
        """0 <= fitness <= NUM_CLASSES * n_blocks for random genes."""
        dataset = make_synthetic_digits(n_blocks=4, seed=5)
        for _ in range(20):
            score = compute_fitness(random_gene(rng), dataset)
            assert 0 <= score <= NUM_CLASSES * (len(dataset) // BLOCK_SIZE)
        assert max_fitness(dataset) == 40

    def test_pure(self, rng):
        """Identical inputs give identical outputs."""
        dataset = make_synthetic_digits(n_blocks=3, seed=6)
        genes = random_gene(rng)
        before = genes.copy()
        assert compute_fitness(genes, dataset) == compute_fitness(genes, dataset)
        assert np.array_equal(genes, before)

    def test_partial_block_rejected(self):
        """Datasets with a trailing partial block raise DatasetError."""
        dataset = Dataset(np.zeros((15, FEATURE_LEN)), np.arange(15) % NUM_CLASSES)
        with pytest.raises(DatasetError):
            compute_fitness(np.zeros(GENE_LENGTH), dataset)

    def test_evaluate_population(self, rng, one_hot_dataset):
        """Only unevaluated genomes are scored."""
        population = create_initial_population(4, rng)
        population[0].fitness = 99

        evaluated = evaluate_population(population, one_hot_dataset)

        assert evaluated == 3
        assert population[0].fitness == 99
        assert all(isinstance(g.fitness, int) for g in population)

    def test_best_fitness_on_ignores_stored_fitness(self, rng, one_hot_dataset):
        """Held-out scoring recomputes fitness."""
        population = create_initial_population(3, rng)
        for g in population:
            g.fitness = 1000
        population.append(genome_from_prototypes(one_hot_rows()))
        assert best_fitness_on(population, one_hot_dataset) == 10


class TestSelection:
    """Tests for selection strategies."""

    def test_ties_favor_later_index(self):
        """[5, 5, 5] selects (2, 1)."""
        assert find_best_pair([5, 5, 5]) == (2, 1)

    def test_best_pair_scan(self):
        """Best and second best by value, later index on ties."""
        assert find_best_pair([1, 7, 3, 7, 2, 0]) == (3, 1)
        assert find_best_pair([9, 1, 4]) == (0, 2)
        assert find_best_pair([0, 0]) == (1, 0)

    def test_empty_population(self):
        """Selecting from nothing is an error."""
        with pytest.raises(ValueError):
            find_best_pair([])

    def test_best_pair_selection(self, rng, one_hot_dataset):
        """Every staging pair holds copies of the best two genomes."""
        population = genomes_with_fitness([1, 7, 3, 7, 2, 0], rng)

        staging = best_pair_selection(population, one_hot_dataset, rng)

        assert len(staging) == len(population)
        for i in range(0, len(staging), 2):
            assert staging[i].genome_id == population[3].genome_id
            assert staging[i + 1].genome_id == population[1].genome_id
        # Staging holds copies, not references
        original = population[3].genes.copy()
        staging[0].genes[:] = 0
        assert np.array_equal(population[3].genes, original)

    def test_tournament_uses_first_window(self, rng, one_hot_dataset):
        """Winners come from the first tournament_size genomes after shuffling."""
        population = genomes_with_fitness(list(range(10)), rng)
        ids_before = sorted(g.genome_id for g in population)

        staging = tournament_selection(population, one_hot_dataset, rng, tournament_size=4)

        # Population was shuffled in place, not replaced
        assert sorted(g.genome_id for g in population) == ids_before
        window = population[:4]
        best_idx, second_idx = find_best_pair([g.fitness for g in window])
        assert len(staging) == 10
        for i in range(0, len(staging), 2):
            assert staging[i].genome_id == window[best_idx].genome_id
            assert staging[i + 1].genome_id == window[second_idx].genome_id

    def test_selection_evaluates_population(self, rng, one_hot_dataset):
        """Unevaluated genomes are scored before selection."""
        population = create_initial_population(4, rng)
        best_pair_selection(population, one_hot_dataset, rng)
        assert all(g.fitness is not None for g in population)


class TestCrossover:
    """Tests for crossover operators."""

    @pytest.mark.parametrize('name', sorted(CROSSOVER_OPERATORS))
    def test_preserves_length_and_range(self, name):
        """Children keep GENE_LENGTH and [0, MAX_FEATURE_VAL] for many seeds."""
        crossover = CROSSOVER_OPERATORS[name]
        for seed in range(25):
            rng = np.random.default_rng(seed)
            parent1, parent2 = random_gene(rng), random_gene(rng)
            child1, child2 = crossover(parent1, parent2, rng)
            for child in (child1, child2):
                assert child.shape == (GENE_LENGTH,)
                assert child.min() >= 0
                assert child.max() <= MAX_FEATURE_VAL

    @pytest.mark.parametrize('name', sorted(CROSSOVER_OPERATORS))
    def test_children_exchange_positions(self, name, rng):
        """Each position of the children is the parents' pair, possibly swapped."""
        parent1 = np.zeros(GENE_LENGTH, dtype=np.int64)
        parent2 = np.full(GENE_LENGTH, MAX_FEATURE_VAL, dtype=np.int64)

        child1, child2 = CROSSOVER_OPERATORS[name](parent1, parent2, rng)

        assert np.all(child1 + child2 == MAX_FEATURE_VAL)
        # Parents are not modified
        assert not parent1.any()
        assert np.all(parent2 == MAX_FEATURE_VAL)

    def test_uniform_swaps_about_half(self, rng):
        """Uniform crossover swaps roughly half the positions."""
        parent1 = np.zeros(GENE_LENGTH, dtype=np.int64)
        parent2 = np.ones(GENE_LENGTH, dtype=np.int64)
        child1, _ = uniform_crossover(parent1, parent2, rng)
        assert 0.35 < child1.mean() < 0.65

    def test_two_point_cut(self, rng):
        """Cut points satisfy 0 <= p1 <= p2 < length."""
        for _ in range(200):
            p1, p2 = two_point_cut(rng, GENE_LENGTH)
            assert 0 <= p1 <= p2 < GENE_LENGTH

    def test_two_point_swaps_one_range(self, rng):
        """Two-point children differ from their first parent in one contiguous range."""
        parent1 = np.zeros(GENE_LENGTH, dtype=np.int64)
        parent2 = np.ones(GENE_LENGTH, dtype=np.int64)
        for _ in range(20):
            child1, _ = two_point_crossover(parent1, parent2, rng)
            transitions = np.count_nonzero(np.diff(child1))
            assert transitions <= 2

    def test_section_bounds(self):
        """Equal-width sections, remainder in the last one."""
        assert section_bounds(640, 3) == [(0, 213), (213, 426), (426, 640)]
        assert section_bounds(640, 1) == [(0, 640)]
        assert section_bounds(640, 64)[-1] == (630, 640)
        with pytest.raises(ValueError):
            section_bounds(640, 0)

    def test_multi_point_single_section(self, rng):
        """With one section, multi-point swaps a single contiguous range."""
        parent1 = np.zeros(GENE_LENGTH, dtype=np.int64)
        parent2 = np.ones(GENE_LENGTH, dtype=np.int64)
        for _ in range(20):
            child1, _ = multi_point_crossover(parent1, parent2, rng, max_points=1)
            assert np.count_nonzero(np.diff(child1)) <= 2


class TestMutation:
    """Tests for mutation."""

    def test_zero_rate_is_identity(self, rng):
        """Mutation rate 0 never changes a gene."""
        genes = random_gene(rng)
        before = genes.copy()
        mutate_genes(genes, rng, mutation_rate=0.0)
        assert np.array_equal(genes, before)
        assert mutate_element(7, rng, 0.0) == 7

    def test_full_rate_replaces_every_element(self, rng):
        """Mutation rate 100 redraws every element from the feature range."""
        genes = np.zeros(GENE_LENGTH, dtype=np.int64)
        mutate_genes(genes, rng, mutation_rate=100.0)
        # A fresh draw is zero with probability 1/17
        assert np.count_nonzero(genes == 0) < GENE_LENGTH // 5
        assert genes.max() <= MAX_FEATURE_VAL

    def test_mutates_in_place(self, rng):
        """The same array is returned."""
        genes = random_gene(rng)
        assert mutate_genes(genes, rng, 50.0) is genes

    def test_mutate_element_range(self, rng):
        """Mutated elements stay in range."""
        values = [mutate_element(0, rng, 100.0) for _ in range(200)]
        assert min(values) >= 0
        assert max(values) <= MAX_FEATURE_VAL
        assert len(set(values)) > 1

    def test_element_matches_vector_form(self):
        """mutate_element and a one-element mutate_genes agree draw for draw."""
        for seed in range(50):
            scalar = mutate_element(8, np.random.default_rng(seed), 50.0)
            vector = mutate_genes(np.array([8]), np.random.default_rng(seed), 50.0)
            assert scalar == vector[0]


class TestBreeding:
    """Tests for breed_population."""

    def test_breed(self, rng):
        """Children fill the staging slots and record their parents."""
        first, second = create_random_genome(rng), create_random_genome(rng)
        staging = [first.copy(), second.copy()] * 3

        offspring = breed_population(staging, uniform_crossover, rng, mutation_rate=1.5, generation=2)

        assert len(offspring) == 6
        for child in offspring:
            assert child.generation == 2
            assert child.parents == (first.genome_id, second.genome_id)
            assert child.fitness is None

    def test_children_are_independent(self, rng):
        """Children never share storage with parents or each other."""
        staging = [create_random_genome(rng), create_random_genome(rng)]
        offspring = breed_population(staging, two_point_crossover, rng, 0.0, generation=1)
        arrays = [g.genes for g in staging + offspring]
        for i in range(len(arrays)):
            for j in range(i + 1, len(arrays)):
                assert not np.shares_memory(arrays[i], arrays[j])

    def test_odd_staging(self, rng):
        """Odd staging populations are rejected."""
        with pytest.raises(ValueError):
            breed_population([create_random_genome(rng)], uniform_crossover, rng, 1.0, 1)


class TestPopulation:
    """Tests for population management."""

    def test_create_initial_population(self, rng):
        """Population has the requested size and valid genes."""
        population = create_initial_population(40, rng)
        assert len(population) == 40
        assert all(len(g) == GENE_LENGTH for g in population)

    def test_seeded_population(self):
        """The same seed gives the same genes."""
        a = create_initial_population(4, np.random.default_rng(1))
        b = create_initial_population(4, np.random.default_rng(1))
        assert all(np.array_equal(x.genes, y.genes) for x, y in zip(a, b))

    def test_shuffle_in_place(self):
        """Shuffling permutes the list in place, deterministically per seed."""
        items = list(range(20))
        shuffle_in_place(items, np.random.default_rng(3))
        assert sorted(items) == list(range(20))
        assert items != list(range(20))

        again = list(range(20))
        shuffle_in_place(again, np.random.default_rng(3))
        assert again == items

    def test_population_stats(self, rng):
        """Stats report size and fitness range."""
        population = genomes_with_fitness([2, 4, 6], rng)
        stats = get_population_stats(population)
        assert stats['size'] == 3
        assert stats['max_fitness'] == 6
        assert stats['mean_fitness'] == pytest.approx(4.0)
        assert get_population_stats([]) == {'size': 0}


class TestHistory:
    """Tests for generation history."""

    def test_record_generation(self, rng):
        """Stats are computed from population fitness."""
        history = EvolutionHistory()
        stats = history.record_generation(1, genomes_with_fitness([3, 9, 6], rng), evaluations=3)

        assert stats.best_fitness == 9
        assert stats.min_fitness == 3
        assert stats.mean_fitness == pytest.approx(6.0)
        assert history.fitness_trajectory == [9]
        assert history.best_fitness() == 9

    def test_round_trip(self, rng):
        """History to/from dict."""
        history = EvolutionHistory()
        history.record_generation(1, genomes_with_fitness([1, 2], rng), evaluations=2)
        history.record_final(1, genomes_with_fitness([5, 4], rng), evaluations=2)
        restored = EvolutionHistory.from_dict(history.to_dict())
        assert restored.fitness_trajectory == [2]
        assert restored.generations[0].evaluations_this_gen == 2
        assert restored.final.best_fitness == 5
        assert restored.best_fitness() == 5
        assert len(restored) == 1


class TestConfig:
    """Tests for EvolutionConfig validation."""

    def test_defaults(self):
        """Defaults match the reference settings."""
        config = EvolutionConfig()
        assert config.population_size == 40
        assert config.n_generations == 300
        assert config.tournament_size == 10
        assert config.accuracy_threshold == 64.0
        assert config.to_dict()['selection'] == 'best_pair'

    @pytest.mark.parametrize('overrides', [
        {'population_size': 41},
        {'population_size': 0},
        {'n_generations': -1},
        {'tournament_size': 1},
        {'tournament_size': 50},
        {'selection': 'roulette'},
        {'crossover': 'single_point'},
        {'mutation_rate': 101.0},
        {'accuracy_threshold': -1.0},
        {'max_retries': 0},
        {'max_crossover_points': 0},
        {'n_workers': 0},
    ])
    def test_invalid(self, overrides):
        """Invalid settings raise ConfigurationError."""
        with pytest.raises(ConfigurationError):
            EvolutionConfig(**overrides)


class TestEngine:
    """Tests for the evolution controller."""

    def test_run_generation(self, synthetic_pair):
        """A generation keeps the population size and records stats."""
        train, _ = synthetic_pair
        engine = EvolutionEngine(small_config(), train, seed=1)
        engine.initialize_population()

        stats = engine.run_generation()

        assert len(engine.population) == 6
        assert stats.generation == 1
        assert engine.state == EngineState.EVOLVING
        assert engine.total_evaluations == 6
        assert all(g.fitness is None for g in engine.population)

    def test_run_fold(self, synthetic_pair):
        """A fold evolves for n_generations and scores the test set."""
        train, test = synthetic_pair
        engine = EvolutionEngine(small_config(), train, seed=1)
        calls = []

        result = engine.run_fold(test, progress_callback=lambda g, t, s: calls.append(g))

        assert calls == [1, 2, 3]
        assert len(result.history) == 3
        assert 0 <= result.correct <= max_fitness(test)
        assert result.correct == compute_fitness(result.best_genome, test)
        assert engine.state == EngineState.DONE

    def test_final_offspring_recorded(self, synthetic_pair):
        """The population scored on the test set is part of the training history."""
        train, test = synthetic_pair
        engine = EvolutionEngine(small_config(), train, seed=1)

        result = engine.run_fold(test)

        final = result.history.final
        assert final is not None
        assert final.generation == 3
        assert final.best_fitness == max(compute_fitness(g, train) for g in engine.population)
        assert result.best_train_fitness == max(result.history.fitness_trajectory + [final.best_fitness])
        assert engine.total_evaluations == 4 * 6

    @pytest.mark.parametrize('selection', ['best_pair', 'tournament'])
    @pytest.mark.parametrize('crossover', ['uniform', 'two_point', 'multi_point'])
    def test_strategy_pairings(self, synthetic_pair, selection, crossover):
        """Every selection/crossover pairing runs."""
        train, test = synthetic_pair
        config = small_config(selection=selection, crossover=crossover, n_generations=2)
        result = EvolutionEngine(config, train, seed=2).run_fold(test)
        assert 0 <= result.correct <= max_fitness(test)

    def test_evolve_without_mutation(self, synthetic_pair):
        """Evolution runs with mutation switched off."""
        train, _ = synthetic_pair
        config = small_config(mutation_rate=0.0, n_generations=5, crossover='two_point')
        engine = EvolutionEngine(config, train, seed=4)
        engine.evolve()
        assert len(engine.history) == 5

    def test_rejects_bad_training_data(self):
        """Malformed datasets fail before evolution starts."""
        bad = Dataset(np.zeros((15, FEATURE_LEN)), np.arange(15) % NUM_CLASSES)
        with pytest.raises(DatasetError):
            EvolutionEngine(small_config(), bad)

    def test_non_strict_blocks_warns(self, caplog):
        """Misaligned blocks only warn when strict_blocks is off."""
        labels = np.arange(NUM_CLASSES)
        labels[9] = 0
        dataset = Dataset(one_hot_rows(), labels, name='skewed')

        with caplog.at_level(logging.WARNING):
            EvolutionEngine(small_config(strict_blocks=False), dataset)

        assert 'skewed' in caplog.text
        with pytest.raises(DatasetError):
            EvolutionEngine(small_config(), dataset)

    def test_parallel_matches_serial(self, synthetic_pair):
        """A worker pool gives the same result as serial evaluation."""
        train, test = synthetic_pair
        serial = EvolutionEngine(small_config(), train, seed=8).run_fold(test)
        parallel = EvolutionEngine(small_config(n_workers=2), train, seed=8).run_fold(test)
        assert serial.history.fitness_trajectory == parallel.history.fitness_trajectory
        assert serial.correct == parallel.correct


class TestTwoFold:
    """Tests for the two-fold protocol and retry policy."""

    def test_two_fold(self, synthetic_pair):
        """Percentage lies in [0, 100] and counts stay below the ceiling."""
        dataset_a, dataset_b = synthetic_pair
        result = two_fold_evaluation(dataset_a, dataset_b, small_config(), seed=3)

        assert 0.0 <= result.percentage <= 100.0
        assert result.total_correct == sum(f.correct for f in result.folds)
        assert result.total_correct <= max_fitness(dataset_a) + max_fitness(dataset_b)
        assert result.total_rows == len(dataset_a) + len(dataset_b)
        assert result.folds[0].train_name == dataset_a.name
        assert result.folds[1].train_name == dataset_b.name
        assert 'Total correct' in result.summary()

    def test_deterministic_with_seed(self, synthetic_pair):
        """The same seed reproduces the same run."""
        dataset_a, dataset_b = synthetic_pair
        first = run_two_fold(dataset_a, dataset_b, small_config(), seed=11)
        second = run_two_fold(dataset_a, dataset_b, small_config(), seed=11)
        assert first == second

    def test_rejects_malformed_dataset(self, synthetic_pair):
        """A bad test dataset fails before the first fold evolves."""
        dataset_a, _ = synthetic_pair
        empty = Dataset(np.empty((0, FEATURE_LEN)), np.empty(0), name='empty')
        with pytest.raises(DatasetError):
            two_fold_evaluation(dataset_a, empty, small_config(), seed=1)

    def test_retry_stops_when_threshold_met(self, synthetic_pair):
        """A reachable threshold ends after the first attempt."""
        dataset_a, dataset_b = synthetic_pair
        result = run_until_threshold(
            dataset_a, dataset_b, small_config(accuracy_threshold=0.0), seed=5
        )
        assert result.threshold_met
        assert len(result.attempts) == 1

    def test_retry_is_bounded(self, synthetic_pair, caplog):
        """An unreachable threshold stops after max_retries attempts."""
        dataset_a, dataset_b = synthetic_pair
        seen = []
        with caplog.at_level(logging.WARNING):
            result = run_until_threshold(
                dataset_a, dataset_b,
                small_config(accuracy_threshold=100.0, max_retries=2, n_generations=1),
                seed=5,
                attempt_callback=lambda n, r: seen.append(n),
            )

        assert not result.threshold_met
        assert len(result.attempts) == 2
        assert seen == [1, 2]
        assert result.best.percentage == max(a.percentage for a in result.attempts)
        assert 'not exceeded' in caplog.text
        assert result.to_dict()['threshold_met'] is False

    def test_attempt_outcomes(self, synthetic_pair):
        """Attempts followed by another are marked RETRY, the last one DONE."""
        dataset_a, dataset_b = synthetic_pair
        result = run_until_threshold(
            dataset_a, dataset_b,
            small_config(accuracy_threshold=100.0, max_retries=3, n_generations=1),
            seed=9,
        )

        outcomes = [a.outcome for a in result.attempts]
        assert outcomes == [EngineState.RETRY, EngineState.RETRY, EngineState.DONE]
        assert result.to_dict()['attempts'][0]['outcome'] == 'retry'

        met = run_until_threshold(
            dataset_a, dataset_b, small_config(accuracy_threshold=0.0), seed=9
        )
        assert met.final.outcome == EngineState.DONE
