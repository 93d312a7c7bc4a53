#!/usr/bin/env python3
"""
Quick start: evolve prototypes on synthetic digits data.

Usage:
    python examples/quick_start.py
"""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from protoevo.core.nearest_neighbour import nearest_neighbour_two_fold
from protoevo.datasets import make_synthetic_pair
from protoevo.evolution import EvolutionConfig, two_fold_evaluation


def main():
    dataset_a, dataset_b = make_synthetic_pair(n_blocks=20, noise=3.0, seed=0)
    print(f"Datasets: {dataset_a} / {dataset_b}")

    print(f"Nearest neighbour baseline: {nearest_neighbour_two_fold(dataset_a, dataset_b):.2f}%")

    for selection in ('best_pair', 'tournament'):
        for crossover in ('uniform', 'two_point', 'multi_point'):
            config = EvolutionConfig(
                n_generations=60,
                selection=selection,
                crossover=crossover,
            )
            result = two_fold_evaluation(dataset_a, dataset_b, config, seed=42)
            print(f"{selection:10s} + {crossover:12s}: {result.percentage:6.2f}%")


if __name__ == '__main__':
    main()
