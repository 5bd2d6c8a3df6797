"""Genome <-> phenotype and genome <-> bytes conversions.

A genome is a fixed-length tuple of tag indices. On the wire every gene is a
big-endian unsigned 16-bit integer, so a tag table can hold at most
``MAX_GENE_COUNT`` entries.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

__all__ = [
    "Genome",
    "GENE_DTYPE",
    "GENE_WIDTH",
    "MAX_GENE_COUNT",
    "PHENOTYPE_SEPARATOR",
    "decode_phenotype",
    "genome_to_bytes",
    "genome_from_bytes",
    "genome_to_hex",
    "genome_from_hex",
    "random_genome",
]

Genome = tuple[int, ...]

GENE_DTYPE = np.dtype(">u2")
GENE_WIDTH = GENE_DTYPE.itemsize
MAX_GENE_COUNT = int(np.iinfo(GENE_DTYPE).max) + 1

PHENOTYPE_SEPARATOR = ", "


def decode_phenotype(
    genome: Sequence[int],
    tags: Sequence[str],
    prefix: str | None = None,
    suffix: str | None = None,
) -> str:
    """Render a genome as the prompt text the generator sees."""
    parts: list[str] = []
    if prefix:
        parts.append(prefix)
    for gene in genome:
        if not 0 <= gene < len(tags):
            raise IndexError(f"gene {gene} outside tag table of size {len(tags)}")
        parts.append(tags[gene])
    if suffix:
        parts.append(suffix)
    return PHENOTYPE_SEPARATOR.join(parts)


def genome_to_bytes(genome: Sequence[int]) -> bytes:
    if any(not 0 <= gene < MAX_GENE_COUNT for gene in genome):
        raise ValueError(f"genome {tuple(genome)} does not fit in {GENE_WIDTH} bytes per gene")
    return np.asarray(genome, dtype=GENE_DTYPE).tobytes()


def genome_from_bytes(raw: bytes) -> Genome:
    if len(raw) % GENE_WIDTH:
        raise ValueError(
            f"genome payload of {len(raw)} bytes is not a multiple of {GENE_WIDTH}"
        )
    return tuple(int(gene) for gene in np.frombuffer(raw, dtype=GENE_DTYPE))


def genome_to_hex(genome: Sequence[int]) -> str:
    return genome_to_bytes(genome).hex()


def genome_from_hex(text: str) -> Genome:
    return genome_from_bytes(bytes.fromhex(text))


def random_genome(length: int, gene_count: int, rng: np.random.Generator) -> Genome:
    """Uniformly random genome with every gene in ``[0, gene_count)``."""
    return tuple(int(gene) for gene in rng.integers(0, gene_count, size=length))
