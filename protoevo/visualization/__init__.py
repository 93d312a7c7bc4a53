"""Visualization utilities for evolved prototypes."""

from .plots import (
    plot_fitness_history,
    plot_prototypes,
    save_figure,
)

__all__ = [
    'plot_fitness_history',
    'plot_prototypes',
    'save_figure',
]
