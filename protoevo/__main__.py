"""
Evolve digit prototypes with a two-fold train/test protocol.

Usage:
    python -m protoevo [DATASET_A DATASET_B] [options]

Examples:
    python -m protoevo data/cw2DataSet1.csv data/cw2DataSet2.csv
    python -m protoevo --synthetic 30 --generations 50 --seed 1
    python -m protoevo --selection tournament --crossover multi_point --baseline
"""

import argparse
import logging
import sys
import time
from typing import List, Optional

from .datasets.digits import (
    DEFAULT_DATA_FILES,
    DatasetError,
    load_csv,
    make_synthetic_pair,
)
from .evolution.engine import (
    ConfigurationError,
    EvolutionConfig,
    RetryResult,
    TwoFoldResult,
    two_fold_evaluation,
    run_until_threshold,
)
from .evolution.operators import SELECTION_STRATEGIES, CROSSOVER_OPERATORS

def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog='protoevo',
        description='Evolve one prototype per digit class and evaluate it two-fold'
    )
    parser.add_argument(
        'datasets', nargs='*', default=list(DEFAULT_DATA_FILES),
        help='Two CSV files (default: %(default)s)'
    )
    parser.add_argument(
        '--synthetic', type=int, default=None, metavar='N_BLOCKS',
        help='Use two generated datasets of N_BLOCKS blocks instead of CSV files'
    )
    parser.add_argument(
        '--population', type=int, default=40,
        help='Population size (default: 40)'
    )
    parser.add_argument(
        '--generations', type=int, default=300,
        help='Number of generations per fold (default: 300)'
    )
    parser.add_argument(
        '--mutation-rate', type=float, default=1.5,
        help='Per-element mutation chance in percent (default: 1.5)'
    )
    parser.add_argument(
        '--tournament-size', type=int, default=10,
        help='Contestants per tournament (default: 10)'
    )
    parser.add_argument(
        '--selection', choices=sorted(SELECTION_STRATEGIES), default='best_pair',
        help='Selection strategy (default: best_pair)'
    )
    parser.add_argument(
        '--crossover', choices=sorted(CROSSOVER_OPERATORS), default='uniform',
        help='Crossover operator (default: uniform)'
    )
    parser.add_argument(
        '--threshold', type=float, default=64.0,
        help='Accuracy in percent that a run must exceed (default: 64)'
    )
    parser.add_argument(
        '--max-retries', type=int, default=10,
        help='Maximum number of two-fold attempts (default: 10)'
    )
    parser.add_argument(
        '--no-retry', action='store_true',
        help='Run the two-fold protocol once and ignore the threshold'
    )
    parser.add_argument(
        '--workers', type=int, default=1,
        help='Processes for fitness evaluation (default: 1)'
    )
    parser.add_argument(
        '--no-strict-blocks', action='store_true',
        help='Warn instead of failing when a block is not one row of each class'
    )
    parser.add_argument(
        '--seed', type=int, default=None,
        help='Random seed for reproducibility'
    )
    parser.add_argument(
        '--baseline', action='store_true',
        help='Also report plain nearest-neighbour accuracy'
    )
    parser.add_argument(
        '--plot-dir', type=str, default=None,
        help='Write fitness and prototype plots to this directory'
    )
    parser.add_argument(
        '--save-dir', type=str, default=None,
        help='Store a JSON run report in this directory'
    )
    parser.add_argument(
        '-v', '--verbose', action='store_true',
        help='Log per-generation statistics'
    )
    return parser.parse_args(argv)


def print_banner():
    print("=" * 70)
    print("   PROTOEVO - Evolutionary prototype learning")
    print("=" * 70)


def print_config(config: EvolutionConfig):
    print("\nConfiguration:")
    print(f"   Population size:    {config.population_size}")
    print(f"   Generations:        {config.n_generations}")
    print(f"   Selection:          {config.selection}")
    print(f"   Crossover:          {config.crossover}")
    print(f"   Mutation rate:      {config.mutation_rate}%")
    if config.selection == 'tournament':
        print(f"   Tournament size:    {config.tournament_size}")
    print(f"   Threshold:          {config.accuracy_threshold}%")
    print(f"   Max attempts:       {config.max_retries}")
    print(f"   Workers:            {config.n_workers}")


def progress_callback(gen: int, total: int, stats: dict):
    """Print progress during evolution."""
    pct = 100 * gen / total
    print(
        f"\r   [{stats['train_name']}] Gen {gen:3d}/{total} ({pct:5.1f}%) | "
        f"Best fitness: {stats['best_fitness']}/{stats['max_fitness']} | "
        f"Mean: {stats['mean_fitness']:.1f}",
        end='', flush=True
    )


def attempt_callback(attempt: int, result: TwoFoldResult):
    print()  # New line after progress
    print(f"\n   Attempt {attempt}:")
    for line in result.summary().splitlines():
        print(f"   {line}")


def run_once(dataset_a, dataset_b, config: EvolutionConfig, seed: Optional[int]) -> RetryResult:
    """Single two-fold run; the threshold is reported but not enforced."""
    result = two_fold_evaluation(
        dataset_a, dataset_b, config, seed=seed, progress_callback=progress_callback
    )
    attempt_callback(1, result)
    met = result.percentage > config.accuracy_threshold
    return RetryResult([result], config.accuracy_threshold, met, config.to_dict())


def load_datasets(args: argparse.Namespace):
    if args.synthetic is not None:
        return make_synthetic_pair(n_blocks=args.synthetic, seed=args.seed)
    if len(args.datasets) != 2:
        raise DatasetError(f"Expected two dataset files, got {len(args.datasets)}")
    return load_csv(args.datasets[0]), load_csv(args.datasets[1])


def write_plots(result: RetryResult, plot_dir: str):
    from .visualization.plots import plot_fitness_history, plot_prototypes, save_figure

    best = result.best
    for i, fold in enumerate(best.folds, 1):
        title = f"Train {fold.train_name} / test {fold.test_name}"
        save_figure(
            plot_fitness_history(fold.history, max_score=fold.max_score, title=title),
            f"{plot_dir}/fold{i}_fitness.png",
        )
        save_figure(
            plot_prototypes(fold.best_genome, title=title),
            f"{plot_dir}/fold{i}_prototypes.png",
        )
    print(f"   Plots saved to: {plot_dir}")


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    print_banner()

    try:
        config = EvolutionConfig(
            population_size=args.population,
            n_generations=args.generations,
            tournament_size=args.tournament_size,
            selection=args.selection,
            crossover=args.crossover,
            mutation_rate=args.mutation_rate,
            accuracy_threshold=args.threshold,
            max_retries=1 if args.no_retry else args.max_retries,
            strict_blocks=not args.no_strict_blocks,
            n_workers=args.workers,
        )
        dataset_a, dataset_b = load_datasets(args)
    except (ConfigurationError, DatasetError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    print_config(config)
    print(f"\n   Datasets: {dataset_a.name} ({len(dataset_a)} rows), "
          f"{dataset_b.name} ({len(dataset_b)} rows)")

    if args.baseline:
        from .core.nearest_neighbour import nearest_neighbour_two_fold
        baseline = nearest_neighbour_two_fold(dataset_a, dataset_b)
        print(f"\n   Nearest neighbour baseline: {baseline:.2f}%")

    print("\n   Starting evolution...")
    start_time = time.time()
    try:
        if args.no_retry:
            result = run_once(dataset_a, dataset_b, config, args.seed)
        else:
            result = run_until_threshold(
                dataset_a, dataset_b, config,
                seed=args.seed,
                progress_callback=progress_callback,
                attempt_callback=attempt_callback,
            )
    except DatasetError as e:
        print()
        print(f"Error: {e}", file=sys.stderr)
        return 2
    elapsed = time.time() - start_time

    print("\n" + "=" * 70)
    print(f"   Attempts:       {len(result.attempts)}")
    print(f"   Best accuracy:  {result.best.percentage:.2f}%")
    print(f"   Runtime:        {elapsed:.1f}s")
    if not args.no_retry:
        status = 'met' if result.threshold_met else 'NOT met'
        print(f"   Threshold {config.accuracy_threshold}%: {status}")

    if args.plot_dir:
        write_plots(result, args.plot_dir)

    if args.save_dir:
        from .core.persistence import RunStore
        run_id = RunStore(args.save_dir).save_report(result.to_dict())
        print(f"   Report saved as: {run_id}")

    if args.no_retry or result.threshold_met:
        return 0
    return 1


if __name__ == '__main__':
    sys.exit(main())
