"""
Pytest configuration for barcode generator tests.
"""
import sys
import os
import itertools
import pytest

# Add repository root to Python path so tests can import barcode_generator
root_path = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, root_path)

from barcode_generator import GeneratorConfig, LexicodeGenerator


@pytest.fixture
def make_generator():
    """Build a generator from keyword overrides of the default configuration."""
    def _make(**kwargs):
        return LexicodeGenerator(GeneratorConfig(**kwargs))
    return _make


@pytest.fixture
def all_4mers():
    """Every 4-mer over ACGT in lexicographic order."""
    return [''.join(p) for p in itertools.product('ACGT', repeat=4)]
