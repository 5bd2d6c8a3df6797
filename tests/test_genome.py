import numpy as np
import pytest

from wirehead.genome import (
    MAX_GENE_COUNT,
    decode_phenotype,
    genome_from_bytes,
    genome_from_hex,
    genome_to_bytes,
    genome_to_hex,
    random_genome,
)


def test_phenotype_joins_tags_in_gene_order():
    assert decode_phenotype((0, 1, 2), ["a", "b", "c"]) == "a, b, c"
    assert decode_phenotype((2, 2, 0), ["a", "b", "c"]) == "c, c, a"


def test_phenotype_wraps_with_prefix_and_suffix():
    text = decode_phenotype((1, 0), ["cat", "dog"], prefix="photo", suffix="4k")
    assert text == "photo, dog, cat, 4k"
    # n genes plus prefix and suffix give n + 1 separators
    assert text.count(", ") == 3


def test_phenotype_ignores_empty_prefix():
    assert decode_phenotype((0,), ["cat"], prefix="", suffix=None) == "cat"


def test_phenotype_rejects_gene_outside_table():
    with pytest.raises(IndexError):
        decode_phenotype((0, 3), ["a", "b", "c"])


def test_genes_are_big_endian_u16():
    assert genome_to_bytes((1, 258)) == b"\x00\x01\x01\x02"
    assert genome_to_hex((1, 258)) == "00010102"
    assert genome_from_hex("00010102") == (1, 258)


def test_largest_gene_survives_bytes():
    genome = (0, MAX_GENE_COUNT - 1)
    assert genome_from_bytes(genome_to_bytes(genome)) == genome


def test_gene_too_large_for_wire_format():
    with pytest.raises(ValueError):
        genome_to_bytes((MAX_GENE_COUNT,))


def test_odd_payload_length_rejected():
    with pytest.raises(ValueError):
        genome_from_bytes(b"\x00\x01\x02")


def test_random_genome_stays_in_range():
    rng = np.random.default_rng(0)
    genome = random_genome(50, 4, rng)
    assert len(genome) == 50
    assert all(0 <= g < 4 for g in genome)
    assert all(isinstance(g, int) for g in genome)


@pytest.mark.parametrize("seed", range(5))
@pytest.mark.parametrize("gene_count", [1, 3, 1000, MAX_GENE_COUNT])
@pytest.mark.parametrize("length", [1, 2, 10, 64])
def test_random_genomes_survive_bytes_and_hex(seed, gene_count, length):
    genome = random_genome(length, gene_count, np.random.default_rng(seed))
    assert genome_from_bytes(genome_to_bytes(genome)) == genome
    assert genome_from_hex(genome_to_hex(genome)) == genome
