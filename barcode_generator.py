#! /usr/bin/env python3

'''LEXICODE BARCODE GENERATOR
   Systematically generates DNA barcodes with a minimum pairwise Hamming distance
   using greedy lexicographic code construction'''

import sys
import re
import random
import logging
import argparse
from pathlib import Path
from typing import List, Tuple, Optional, Iterator, Sequence, TextIO
from Bio.SeqUtils import gc_fraction
from tqdm import tqdm
from dataclasses import dataclass


BASES = ('A', 'C', 'G', 'T')
MIN_KMER_SIZE = 4
MAX_KMER_SIZE = 10


class ConfigurationError(ValueError):
    """Raised when generator parameters are out of range"""


class LengthMismatchError(ValueError):
    """Raised when comparing sequences of different lengths"""


@dataclass
class GeneratorConfig:
    """Configuration for a barcode generation run"""
    kmer_size: int = 6
    dist_value: int = 3
    list_size: int = -1
    output_path: Optional[Path] = None
    min_gc: float = 0.3
    max_gc: float = 0.7
    alphabet: Tuple[str, ...] = BASES
    seeded: bool = True
    shuffle_seed: Optional[int] = None

    def __post_init__(self):
        self.alphabet = tuple(self.alphabet)
        if not MIN_KMER_SIZE <= self.kmer_size <= MAX_KMER_SIZE:
            raise ConfigurationError(
                f"kmer size is restricted to [{MIN_KMER_SIZE}, {MAX_KMER_SIZE}], got {self.kmer_size}")
        if not 0 <= self.dist_value <= self.kmer_size:
            raise ConfigurationError(
                f"distance should be a non-negative number not larger than kmer size, got {self.dist_value}")
        if not 0 <= self.min_gc <= self.max_gc <= 1:
            raise ConfigurationError("GC bounds must satisfy 0 <= min_gc <= max_gc <= 1")
        if sorted(self.alphabet) != sorted(BASES):
            raise ConfigurationError(f"alphabet must be a permutation of {''.join(BASES)}")


@dataclass
class GenerationResult:
    """Accepted barcodes of a run, in acceptance order"""
    barcodes: List[str]
    pool_size: int
    seeded: bool


class IndexEnumerator:
    """Base-N odometer over all indices of a given word size.

    Yields tuples from (0, ..., 0) to (N-1, ..., N-1); the last position
    varies fastest. Once exhausted it stays exhausted.
    """

    def __init__(self, k: int, alphabet_size: int = len(BASES)):
        if k < 1:
            raise ValueError("word size must be positive")
        if alphabet_size < 1:
            raise ValueError("alphabet size must be positive")
        self.k = k
        self.alphabet_size = alphabet_size
        self._index: Optional[List[int]] = None
        self._exhausted = False

    def __len__(self) -> int:
        return self.alphabet_size ** self.k

    def __iter__(self) -> 'IndexEnumerator':
        return self

    def __next__(self) -> Tuple[int, ...]:
        if self._exhausted:
            raise StopIteration

        if self._index is None:
            self._index = [0] * self.k
            return tuple(self._index)

        # Increment with carry, right to left
        for i in range(self.k - 1, -1, -1):
            self._index[i] += 1
            if self._index[i] < self.alphabet_size:
                return tuple(self._index)
            self._index[i] = 0

        # First position overflowed
        self._exhausted = True
        raise StopIteration


def index_to_kmer(index: Sequence[int], alphabet: Sequence[str] = BASES) -> str:
    """Convert an index to a kmer via the alphabet"""
    return ''.join(alphabet[i] for i in index)


def hamming_distance(seq1: str, seq2: str) -> int:
    """Number of positions at which two equal-length sequences differ"""
    if len(seq1) != len(seq2):
        raise LengthMismatchError(
            f"Cannot compare sequences of different lengths: {seq1} ({len(seq1)}) vs {seq2} ({len(seq2)})")
    return sum(1 for a, b in zip(seq1, seq2) if a != b)


class SequenceFilter:
    """Rejects candidate sequences with undesirable properties"""

    # Single base repeated 3+ times, dinucleotide 3+ times, trinucleotide 2+ times
    MONO_REPEAT = re.compile(r'(.)\1{2,}')
    DI_REPEAT = re.compile(r'(..)\1{2,}')
    TRI_REPEAT = re.compile(r'(...)\1{1,}')

    def __init__(self, min_gc: float = 0.3, max_gc: float = 0.7):
        self.min_gc = min_gc
        self.max_gc = max_gc

    @staticmethod
    def is_dinucleotide_periodic(sequence: str) -> bool:
        """Check if the whole sequence is one dinucleotide repeated, e.g. ACAC"""
        if len(sequence) < 4:
            return False
        return sequence == (sequence[:2] * len(sequence))[:len(sequence)]

    @staticmethod
    def is_repeat(sequence: str) -> bool:
        """Check for mono-, di- and trinucleotide repeats"""
        if SequenceFilter.MONO_REPEAT.search(sequence):
            return True
        if SequenceFilter.DI_REPEAT.search(sequence) or SequenceFilter.is_dinucleotide_periodic(sequence):
            return True
        if SequenceFilter.TRI_REPEAT.search(sequence):
            return True
        return False

    @staticmethod
    def is_palindrome(sequence: str) -> bool:
        """Forward equals backwards (not reverse complement)"""
        return sequence == sequence[::-1]

    @staticmethod
    def gc_cont(sequence: str) -> float:
        """Calculate GC content of a sequence"""
        return gc_fraction(sequence, ambiguous="ignore")

    def is_gc_biased(self, sequence: str) -> bool:
        """Check if GC content falls outside [min_gc, max_gc]"""
        gc = self.gc_cont(sequence)
        return gc < self.min_gc or self.max_gc < gc

    def passes(self, sequence: str) -> bool:
        """Run all checks, cheap ones first"""
        if self.is_repeat(sequence):
            return False
        if self.is_palindrome(sequence):
            return False
        if self.is_gc_biased(sequence):
            return False
        return True


class LexicodeGenerator:
    """Builds a barcode set with Conway's lexicode algorithm"""

    def __init__(self, config: GeneratorConfig, show_progress: bool = False):
        self.config = config
        self.show_progress = show_progress
        self.sequence_filter = SequenceFilter(config.min_gc, config.max_gc)

    @property
    def seed_kmer(self) -> str:
        """The zero word: every position holds the first alphabet symbol"""
        return self.config.alphabet[0] * self.config.kmer_size

    def iter_candidates(self) -> Iterator[str]:
        """Yield kmers passing all filters, in enumeration order"""
        enumerator = IndexEnumerator(self.config.kmer_size, len(self.config.alphabet))
        for index in tqdm(enumerator, total=len(enumerator), desc="Enumerating k-mers",
                          disable=not self.show_progress):
            kmer = index_to_kmer(index, self.config.alphabet)
            if self.sequence_filter.passes(kmer):
                yield kmer

    def build_pool(self) -> List[str]:
        """Enumerate all kmers of the configured size and keep those passing the filters"""
        pool = list(self.iter_candidates())
        logging.info(f"Checked {len(self.config.alphabet) ** self.config.kmer_size:,} k-mers, "
                     f"pool size: {len(pool):,}")

        if self.config.shuffle_seed is not None:
            logging.debug(f"Shuffling pool with seed {self.config.shuffle_seed}")
            random.Random(self.config.shuffle_seed).shuffle(pool)

        return pool

    @staticmethod
    def is_compatible(candidate: str,
                      accepted: Sequence[str],
                      dist_value: int) -> Tuple[bool, int]:
        """
        Check if a candidate keeps the minimum distance to every accepted kmer
        Returns (is_compatible, index_of_conflict) where index_of_conflict is -1 if compatible
        """
        for i, existing in enumerate(accepted):
            if hamming_distance(candidate, existing) < dist_value:
                return False, i
        return True, -1

    def find_set(self, pool: Sequence[str]) -> List[str]:
        """Greedy pass over the pool; returns accepted kmers in acceptance order"""
        dist_value = self.config.dist_value
        accepted: List[str] = []

        if self.config.seeded:
            logging.debug(f"Seeding barcode set with {self.seed_kmer}")
            accepted.append(self.seed_kmer)

        pbar = tqdm(pool, desc="Building barcode set", disable=not self.show_progress)
        for candidate in pbar:
            compatible, _ = self.is_compatible(candidate, accepted, dist_value)
            if compatible:
                accepted.append(candidate)
                pbar.set_postfix({'found': len(accepted)}, refresh=False)
        pbar.close()

        if self.config.seeded:
            accepted.pop(0)

        logging.info(f"Set size: {len(accepted):,}")
        return accepted

    def generate(self) -> GenerationResult:
        """Build the pool and the barcode set"""
        pool = self.build_pool()
        barcodes = self.find_set(pool)
        return GenerationResult(barcodes=barcodes, pool_size=len(pool), seeded=self.config.seeded)


def truncate_set(barcodes: Sequence[str], list_size: int) -> List[str]:
    """First list_size barcodes; the whole set when list_size <= 0 or exceeds it"""
    if 0 < list_size <= len(barcodes):
        return list(barcodes[:list_size])
    return list(barcodes)


def distance_matrix(barcodes: Sequence[str]) -> List[List[int]]:
    """Pairwise Hamming distances, rows and columns in list order"""
    return [[hamming_distance(qry, ref) for ref in barcodes] for qry in barcodes]


def write_barcodes(barcodes: Sequence[str], output: TextIO) -> None:
    """Write one barcode per line"""
    for barcode in barcodes:
        output.write(f"{barcode}\n")


def write_distance_matrix(barcodes: Sequence[str], output_path: Path) -> None:
    """Write each barcode followed by its comma-separated distances to all barcodes"""
    matrix = distance_matrix(barcodes)
    with open(output_path, 'w') as f:
        for barcode, row in zip(barcodes, matrix):
            f.write(f"{barcode}\t{','.join(str(d) for d in row)}\n")


def setup_logging(debug: bool = False) -> None:
    """Configure logging settings"""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Generate a list of DNA barcodes with a minimum pairwise Hamming distance, '
                    'written to stdout',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    parser.add_argument(
        '-k', '--kmer',
        type=int,
        default=6,
        help=f'Size of DNA kmer, restricted to [{MIN_KMER_SIZE}, {MAX_KMER_SIZE}]'
    )
    parser.add_argument(
        '-d', '--dist',
        type=int,
        default=3,
        help='Minimum Hamming distance between accepted kmers, restricted to [0, kmer]'
    )
    parser.add_argument(
        '-l', '--list',
        type=int,
        default=-1,
        help='Size of final kmer list (non-positive: all accepted)'
    )
    parser.add_argument(
        '-o', '--output',
        type=Path,
        help='File to write the distance matrix of accepted kmers to (default: skip)'
    )
    parser.add_argument(
        '--min-gc',
        type=float,
        default=0.3,
        help='Minimum GC content (0-1)'
    )
    parser.add_argument(
        '--max-gc',
        type=float,
        default=0.7,
        help='Maximum GC content (0-1)'
    )
    parser.add_argument(
        '--alphabet',
        default=''.join(BASES),
        help='Symbol order used for enumeration; the first symbol forms the seed word'
    )
    parser.add_argument(
        '--no-seed',
        action='store_true',
        help='Start from an empty set instead of the all-zero seed word'
    )
    parser.add_argument(
        '--shuffle-seed',
        type=int,
        default=None,
        help='Shuffle the candidate pool with this random seed before the greedy pass'
    )
    parser.add_argument(
        '--no-progress',
        action='store_true',
        help='Hide progress bars'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging'
    )
    return parser


def parse_arguments(argv: Optional[List[str]] = None) -> Tuple[argparse.Namespace, GeneratorConfig]:
    """Parse command line arguments into a validated configuration"""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = GeneratorConfig(
            kmer_size=args.kmer,
            dist_value=args.dist,
            list_size=args.list,
            output_path=args.output,
            min_gc=args.min_gc,
            max_gc=args.max_gc,
            alphabet=tuple(args.alphabet.upper()),
            seeded=not args.no_seed,
            shuffle_seed=args.shuffle_seed
        )
    except ConfigurationError as e:
        parser.error(str(e))

    return args, config


def main(argv: Optional[List[str]] = None) -> int:
    args, config = parse_arguments(argv)
    setup_logging(args.debug)

    generator = LexicodeGenerator(config, show_progress=not args.no_progress)

    try:
        result = generator.generate()
    except KeyboardInterrupt:
        logging.info("Interrupted by user")
        return 130

    barcodes = truncate_set(result.barcodes, config.list_size)
    write_barcodes(barcodes, sys.stdout)

    if config.output_path is not None:
        try:
            write_distance_matrix(barcodes, config.output_path)
        except OSError as e:
            logging.error(f"Failed to write distance matrix to {config.output_path}: {e}")
            return 1
        logging.info(f"Distance matrix written to {config.output_path}")

    logging.info('Complete')
    return 0


if __name__ == '__main__':
    sys.exit(main())
