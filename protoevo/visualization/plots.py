"""
Matplotlib-based visualization for evolved prototypes.

These functions create static plots for analysis and documentation.
"""

from pathlib import Path
from typing import Optional, Tuple, Any
import numpy as np

# Matplotlib imports with non-GUI backend
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

from ..constants import NUM_CLASSES, MAX_FEATURE_VAL
from ..evolution.genome import decode_prototypes
from ..evolution.history import EvolutionHistory


def plot_fitness_history(
    history: EvolutionHistory,
    max_score: Optional[int] = None,
    figsize: Tuple[int, int] = (8, 4),
    title: Optional[str] = None,
    ax: Optional[plt.Axes] = None,
) -> plt.Figure:
    """
    Plot best and mean training fitness per generation.

    Args:
        history: Evolution history of one fold
        max_score: Optional fitness ceiling drawn as a dashed line
        figsize: Figure size
        title: Plot title
        ax: Existing axes to plot on

    Returns:
        matplotlib Figure
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)
    else:
        fig = ax.figure

    generations = [g.generation for g in history.generations]
    ax.plot(generations, history.fitness_trajectory, 'g-', linewidth=2, label='Best')
    ax.plot(generations, history.mean_trajectory, 'b-', alpha=0.6, label='Mean')
    if max_score is not None:
        ax.axhline(max_score, color='gray', linestyle='--', linewidth=1, label='Maximum')

    ax.set_xlabel('Generation')
    ax.set_ylabel('Training fitness')
    ax.grid(True, alpha=0.3)
    ax.legend(loc='lower right')
    if title:
        ax.set_title(title)

    plt.tight_layout()
    return fig


def plot_prototypes(
    genes: Any,
    image_shape: Tuple[int, int] = (8, 8),
    figsize: Tuple[int, int] = (10, 2.5),
    title: Optional[str] = None,
) -> plt.Figure:
    """
    Show each class prototype as a grayscale image.

    The 64 features of the digits data are an 8x8 grid of pixel counts.

    Args:
        genes: Genome or flat gene vector
        image_shape: Reshape applied to each prototype row
        figsize: Figure size
        title: Plot title

    Returns:
        matplotlib Figure
    """
    prototypes = decode_prototypes(getattr(genes, 'genes', genes))
    fig, axes = plt.subplots(1, NUM_CLASSES, figsize=figsize)

    for class_index, ax in enumerate(axes):
        ax.imshow(
            prototypes[class_index].reshape(image_shape),
            cmap='gray_r', vmin=0, vmax=MAX_FEATURE_VAL,
        )
        ax.set_title(str(class_index))
        ax.axis('off')

    if title:
        fig.suptitle(title)

    plt.tight_layout()
    return fig


def save_figure(fig: plt.Figure, path: Any, dpi: int = 120) -> Path:
    """Save a figure (creating parent directories) and close it."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=dpi)
    plt.close(fig)
    return path
