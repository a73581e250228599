"""
Tests for the base-4 odometer enumeration and index to kmer mapping.
"""

import itertools
import pytest

from barcode_generator import IndexEnumerator, index_to_kmer


def test_enumerates_all_indices_in_odometer_order():
    indices = list(IndexEnumerator(4))

    assert len(indices) == 4 ** 4
    assert len(set(indices)) == 4 ** 4
    assert indices[0] == (0, 0, 0, 0)
    assert indices[1] == (0, 0, 0, 1)
    assert indices[4] == (0, 0, 1, 0)
    assert indices[-1] == (3, 3, 3, 3)
    assert indices == sorted(indices)


def test_matches_cartesian_product():
    assert list(IndexEnumerator(3)) == list(itertools.product(range(4), repeat=3))


@pytest.mark.parametrize("k", [4, 5, 6, 7])
def test_count_is_four_to_the_k(k):
    enumerator = IndexEnumerator(k)
    assert len(enumerator) == 4 ** k
    assert sum(1 for _ in enumerator) == 4 ** k


def test_exhausted_enumerator_stays_exhausted():
    enumerator = IndexEnumerator(2)
    assert len(list(enumerator)) == 16
    assert list(enumerator) == []
    with pytest.raises(StopIteration):
        next(enumerator)


def test_yielded_indices_are_independent():
    enumerator = IndexEnumerator(4)
    first = next(enumerator)
    second = next(enumerator)
    assert first == (0, 0, 0, 0)
    assert second == (0, 0, 0, 1)


def test_smaller_alphabet():
    assert list(IndexEnumerator(2, alphabet_size=2)) == [(0, 0), (0, 1), (1, 0), (1, 1)]


def test_invalid_word_size():
    with pytest.raises(ValueError):
        IndexEnumerator(0)


def test_index_to_kmer():
    assert index_to_kmer((0, 1, 2, 3)) == "ACGT"
    assert index_to_kmer((3, 3, 0, 0)) == "TTAA"
    assert index_to_kmer((0, 1, 2, 3), ('T', 'G', 'C', 'A')) == "TGCA"


def test_enumeration_order_is_lexicographic_for_default_alphabet(all_4mers):
    kmers = [index_to_kmer(index) for index in IndexEnumerator(4)]
    assert kmers == all_4mers
