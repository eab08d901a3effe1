"""
Search модуль - леммы, индексация и поиск
"""
from .morphology import RussianMorphology, EnglishMorphology, MorphologyChain
from .lemmas import LemmasFinder, html_to_text, title_of
from .snippet import SnippetBuilder
from .indexer import IndexMaintainer, compute_index_diff
from .engine import SearchEngine

__all__ = [
    "RussianMorphology",
    "EnglishMorphology",
    "MorphologyChain",
    "LemmasFinder",
    "html_to_text",
    "title_of",
    "SnippetBuilder",
    "IndexMaintainer",
    "compute_index_diff",
    "SearchEngine",
]
