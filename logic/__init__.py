"""Logic primitives: sorts, terms, clauses, parsing and resolution."""

from logic.parser import TermParseError, parse_attribute, parse_sentence, parse_term
from logic.resolution import InterruptibleResolution, ResolutionResult
from logic.sentences import Sentence
from logic.sorts import Ontology, Sort
from logic.terms import (
    Bindings,
    ConstantTermAttribute,
    Term,
    TermAttribute,
    TermTermAttribute,
    VariableTermAttribute,
    elements_in_list,
    terms_in_list,
    unify_attribute,
)

__all__ = [
    "Bindings",
    "ConstantTermAttribute",
    "InterruptibleResolution",
    "Ontology",
    "ResolutionResult",
    "Sentence",
    "Sort",
    "Term",
    "TermAttribute",
    "TermParseError",
    "TermTermAttribute",
    "VariableTermAttribute",
    "elements_in_list",
    "parse_attribute",
    "parse_sentence",
    "parse_term",
    "terms_in_list",
    "unify_attribute",
]
