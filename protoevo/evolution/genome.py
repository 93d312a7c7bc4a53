"""
Genome representation for evolutionary prototype learning.

A Genome encodes one synthetic prototype row per class, concatenated into a
single flat vector of feature values. The label of each prototype is implicit:
segment c of the vector is the prototype for class c.

Layout (NUM_CLASSES = 10, FEATURE_LEN = 64):
    [ class 0 features | class 1 features | ... | class 9 features ]
      0 .. 63            64 .. 127                576 .. 639
"""

from dataclasses import dataclass
from typing import List, Dict, Optional, Tuple, Any
import uuid

import numpy as np

from ..constants import (
    FEATURE_LEN,
    NUM_CLASSES,
    MAX_FEATURE_VAL,
    BLOCK_SIZE,
    GENE_LENGTH,
)


def generate_genome_id(generation: int = 0, prefix: str = '') -> str:
    """Generate a unique genome identifier."""
    short_uuid = uuid.uuid4().hex[:8]
    if prefix:
        return f"{prefix}_gen{generation}_{short_uuid}"
    return f"gen{generation}_{short_uuid}"


def _as_gene_array(genes: Any) -> np.ndarray:
    arr = np.asarray(genes, dtype=np.int64)
    if arr.shape != (GENE_LENGTH,):
        raise ValueError(f"Gene must have shape ({GENE_LENGTH},), got {arr.shape}")
    return arr


@dataclass
class Genome:
    """
    Genetic representation of a set of class prototypes.

    Attributes:
        genes: Flat int vector of length GENE_LENGTH, values in [0, MAX_FEATURE_VAL]
        genome_id: Unique identifier for this genome
        generation: Generation number when this genome was created
        parents: Tuple of parent genome IDs (for lineage tracking)
        fitness: Training fitness once evaluated (None until then)
    """
    genes: np.ndarray
    genome_id: str
    generation: int
    parents: Tuple[str, str]
    fitness: Optional[int] = None  # Populated after evaluation

    def __post_init__(self):
        """Validate gene shape and value range."""
        self.genes = _as_gene_array(self.genes)
        if self.genes.min() < 0 or self.genes.max() > MAX_FEATURE_VAL:
            raise ValueError(
                f"Gene values must lie in [0, {MAX_FEATURE_VAL}], "
                f"got [{self.genes.min()}, {self.genes.max()}]"
            )

    def __len__(self) -> int:
        return len(self.genes)

    def prototype(self, class_index: int) -> np.ndarray:
        """Prototype feature row for one class."""
        return decode_segment(self.genes, class_index)

    def prototypes(self) -> np.ndarray:
        """All prototypes as a (NUM_CLASSES, FEATURE_LEN) array."""
        return decode_prototypes(self.genes)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            'genes': self.genes.tolist(),
            'genome_id': self.genome_id,
            'generation': self.generation,
            'parents': list(self.parents),
            'fitness': self.fitness,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Genome':
        """Create Genome from dictionary (e.g., loaded from JSON)."""
        return cls(
            genes=np.asarray(data['genes'], dtype=np.int64),
            genome_id=data['genome_id'],
            generation=data['generation'],
            parents=tuple(data['parents']),
            fitness=data.get('fitness'),
        )

    def copy(self) -> 'Genome':
        """Create an independent copy of this genome."""
        return Genome(
            genes=self.genes.copy(),
            genome_id=self.genome_id,
            generation=self.generation,
            parents=self.parents,
            fitness=self.fitness,
        )

    def __repr__(self) -> str:
        fitness_str = f", fitness={self.fitness}" if self.fitness is not None else ""
        return f"Genome(id={self.genome_id}, gen={self.generation}{fitness_str})"


def decode_segment(genes: Any, class_index: int) -> np.ndarray:
    """
    Extract the prototype row for one class from a gene vector.

    Returns a copy of genes[class_index * FEATURE_LEN:(class_index + 1) * FEATURE_LEN].
    """
    if not 0 <= class_index < NUM_CLASSES:
        raise ValueError(f"class_index must be in [0, {NUM_CLASSES}), got {class_index}")
    arr = _as_gene_array(genes)
    start = class_index * FEATURE_LEN
    return arr[start:start + FEATURE_LEN].copy()


def decode_prototypes(genes: Any) -> np.ndarray:
    """Reshape a gene vector into (NUM_CLASSES, FEATURE_LEN) prototype rows."""
    return _as_gene_array(genes).reshape(NUM_CLASSES, FEATURE_LEN).copy()


def encode_prototypes(rows: Any) -> np.ndarray:
    """Concatenate NUM_CLASSES prototype rows into a flat gene vector."""
    arr = np.asarray(rows, dtype=np.int64)
    if arr.shape != (NUM_CLASSES, FEATURE_LEN):
        raise ValueError(
            f"Expected prototypes of shape ({NUM_CLASSES}, {FEATURE_LEN}), got {arr.shape}"
        )
    return arr.reshape(GENE_LENGTH).copy()


def random_gene(rng: np.random.Generator) -> np.ndarray:
    """Draw every element uniformly from [0, MAX_FEATURE_VAL] inclusive."""
    return rng.integers(0, MAX_FEATURE_VAL + 1, size=GENE_LENGTH, dtype=np.int64)


def create_random_genome(
    rng: np.random.Generator,
    generation: int = 0,
    prefix: str = 'rand',
) -> Genome:
    """
    Create a genome with uniformly random genes.

    Args:
        rng: Random generator
        generation: Generation number for this genome
        prefix: Prefix for genome ID

    Returns:
        A randomly initialized Genome
    """
    return Genome(
        genes=random_gene(rng),
        genome_id=generate_genome_id(generation, prefix),
        generation=generation,
        parents=('random', 'random'),
    )


def genome_from_prototypes(
    rows: Any,
    generation: int = 0,
    prefix: str = 'seed',
) -> Genome:
    """
    Create a Genome from explicit prototype rows.

    Useful for seeding known prototypes (e.g. class means) or for tests.
    """
    return Genome(
        genes=encode_prototypes(rows),
        genome_id=generate_genome_id(generation, prefix),
        generation=generation,
        parents=('seed', 'seed'),
    )


def unique_gene_count(genomes: List[Genome]) -> int:
    """Number of distinct gene vectors among genomes."""
    return len({g.genes.tobytes() for g in genomes})
