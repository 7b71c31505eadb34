"""Builders for the action and performative terms a character produces."""

from __future__ import annotations

from logic.sorts import Ontology, Sort
from logic.terms import ConstantTermAttribute, Term, TermAttribute, TermTermAttribute


class UtteranceBuilder:
    """Creates ``action.talk(self, perf.x(listener, ...))`` style terms."""

    def __init__(self, ontology: Ontology, self_id: str) -> None:
        self.o = ontology
        self.self_id = self_id

    def sort(self, name: str) -> Sort:
        sort = self.o.get_sort(name)
        if sort is None:
            raise ValueError(f"Ontology is missing required sort: {name}")
        return sort

    def id(self, value: str) -> ConstantTermAttribute:
        return ConstantTermAttribute(value, self.sort("#id"))

    def me(self) -> ConstantTermAttribute:
        return self.id(self.self_id)

    def symbol(self, value: str) -> ConstantTermAttribute:
        return ConstantTermAttribute(value, self.sort("symbol"))

    def term(self, functor: str, *attributes: TermAttribute | Term) -> Term:
        return Term(self.sort(functor), [_wrap(a) for a in attributes])

    def perf(self, functor: str, listener: str, *attributes: TermAttribute | Term) -> Term:
        return self.term(functor, self.id(listener), *attributes)

    def talk(self, performative: Term) -> Term:
        return self.term("action.talk", self.me(), performative)

    def say(self, functor: str, listener: str, *attributes: TermAttribute | Term) -> Term:
        """Shorthand for ``talk(perf(functor, listener, ...))``."""
        return self.talk(self.perf(functor, listener, *attributes))

    def memorize(self, speaker: str, content: TermAttribute | Term) -> Term:
        return self.term("action.memorize", self.me(), self.id(speaker), content)


def _wrap(attribute: TermAttribute | Term) -> TermAttribute:
    if isinstance(attribute, Term):
        return TermTermAttribute(attribute)
    return attribute
