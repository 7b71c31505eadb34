"""Clauses: disjunctions of signed literals."""

from __future__ import annotations

from logic.sorts import Sort
from logic.terms import Bindings, Term, TermTermAttribute, VariableTermAttribute, terms_in_list


class Sentence:
    """``terms[0] or terms[1] or ...`` where ``signs[i]`` False means negated."""

    def __init__(self, terms: list[Term], signs: list[bool]) -> None:
        if len(terms) != len(signs):
            raise ValueError("Sentence terms and signs must have the same length")
        self.terms = list(terms)
        self.signs = list(signs)

    @classmethod
    def from_term(cls, term: Term, sign: bool = True) -> Sentence:
        return cls([term], [sign])

    @classmethod
    def from_conjunction(cls, term: Term, not_sort_name: str = "#not") -> list[Sentence]:
        """Split ``#and(a, #and(b, ...))`` into one unit clause per conjunct."""
        sentences: list[Sentence] = []
        for element in terms_in_list(term, "#and"):
            literal, sign = split_negation(element, not_sort_name)
            sentences.append(cls([literal], [sign]))
        return sentences

    @classmethod
    def negated_conjunction(cls, term: Term, not_sort_name: str = "#not") -> Sentence:
        """The single clause equivalent to ``not (a and b and ...)``."""
        terms: list[Term] = []
        signs: list[bool] = []
        for element in terms_in_list(term, "#and"):
            literal, sign = split_negation(element, not_sort_name)
            terms.append(literal)
            signs.append(not sign)
        return cls(terms, signs)

    def is_empty(self) -> bool:
        return not self.terms

    def is_single_positive_literal(self) -> bool:
        return len(self.terms) == 1 and self.signs[0]

    def apply_bindings(self, bindings: Bindings) -> Sentence:
        return Sentence([t.apply_bindings(bindings) for t in self.terms], self.signs)

    def clone(self, mapping: dict[int, VariableTermAttribute] | None = None) -> Sentence:
        if mapping is None:
            mapping = {}
        return Sentence([t.clone(mapping) for t in self.terms], self.signs)

    def equals_no_bindings(self, other: Sentence) -> bool:
        if len(self.terms) != len(other.terms) or self.signs != other.signs:
            return False
        wrapped_self = [TermTermAttribute(t) for t in self.terms]
        wrapped_other = [TermTermAttribute(t) for t in other.terms]
        # Compare as one term so variables shared across literals are respected.
        joined_sort = Sort("#clause")
        return Term(joined_sort, wrapped_self).equals_no_bindings(Term(joined_sort, wrapped_other))

    def get_all_variables(self) -> list[VariableTermAttribute]:
        found: list[VariableTermAttribute] = []
        for term in self.terms:
            for var in term.get_all_variables():
                if all(v is not var for v in found):
                    found.append(var)
        return found

    def to_string_internal(
        self, variables: list[VariableTermAttribute], names: list[str]
    ) -> str:
        parts = []
        for term, sign in zip(self.terms, self.signs):
            text = term.to_string_internal(variables, names)
            parts.append(text if sign else "~" + text)
        return ";".join(parts)

    def to_string(self) -> str:
        return self.to_string_internal([], [])

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"Sentence({self.to_string()!r})"


def split_negation(term: Term, not_sort_name: str = "#not") -> tuple[Term, bool]:
    """``#not(x)`` becomes ``(x, False)``; anything else ``(term, True)``."""
    if (
        term.functor.name == not_sort_name
        and len(term.attributes) == 1
        and isinstance(term.attributes[0], TermTermAttribute)
    ):
        return term.attributes[0].term, False
    return term, True
