"""Text syntax for terms and sentences.

Grammar::

    sentence  := literal (';' literal)*
    literal   := ['~'] term
    term      := functor '(' [attribute (',' attribute)*] ')' | functor
    attribute := constant | variable | term
    constant  := "'" text "'" '[' sort ']'
    variable  := NAME [':' '[' sort ']'] | '[' sort ']'

Functors and sorts start with a lowercase letter or ``#``; variable names
start with an uppercase letter or ``_``.  Variable tables are passed in so
that several strings belonging to the same record share variables.
"""

from __future__ import annotations

from logic.sentences import Sentence
from logic.sorts import Ontology, Sort
from logic.terms import (
    ConstantTermAttribute,
    Term,
    TermAttribute,
    TermTermAttribute,
    VariableTermAttribute,
)

DEFAULT_VARIABLE_SORT = "any"
_SYMBOL_CHARS = set("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789_.#-")


class TermParseError(ValueError):
    """Raised when text cannot be parsed into a term or sentence."""


class _Reader:
    def __init__(
        self,
        text: str,
        ontology: Ontology,
        variable_names: list[str],
        variables: list[VariableTermAttribute],
    ) -> None:
        self.text = text
        self.pos = 0
        self.ontology = ontology
        self.variable_names = variable_names
        self.variables = variables

    # ── low level ────────────────────────────────────────────────────

    def skip_ws(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1

    def peek(self) -> str:
        self.skip_ws()
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def expect(self, char: str) -> None:
        if self.peek() != char:
            found = self.peek() or "end of input"
            raise TermParseError(f"Expected {char!r} at {self.pos} in {self.text!r}, found {found!r}")
        self.pos += 1

    def symbol(self) -> str:
        self.skip_ws()
        start = self.pos
        while self.pos < len(self.text) and self.text[self.pos] in _SYMBOL_CHARS:
            self.pos += 1
        if start == self.pos:
            raise TermParseError(f"Expected a symbol at {start} in {self.text!r}")
        return self.text[start:self.pos]

    def at_end(self) -> bool:
        return self.peek() == ""

    def sort(self, name: str) -> Sort:
        sort = self.ontology.get_sort(name)
        if sort is None:
            raise TermParseError(f"Unknown sort {name!r} in {self.text!r}")
        return sort

    # ── grammar ──────────────────────────────────────────────────────

    def bracketed_sort(self) -> Sort:
        self.expect("[")
        name = self.symbol()
        self.expect("]")
        return self.sort(name)

    def constant(self) -> ConstantTermAttribute:
        self.expect("'")
        chars: list[str] = []
        while True:
            if self.pos >= len(self.text):
                raise TermParseError(f"Unterminated constant in {self.text!r}")
            char = self.text[self.pos]
            self.pos += 1
            if char == "\\" and self.pos < len(self.text):
                chars.append(self.text[self.pos])
                self.pos += 1
            elif char == "'":
                break
            else:
                chars.append(char)
        return ConstantTermAttribute("".join(chars), self.bracketed_sort())

    def variable(self, name: str | None) -> VariableTermAttribute:
        sort: Sort | None = None
        if name is None:
            sort = self.bracketed_sort()
        elif self.peek() == ":":
            self.pos += 1
            sort = self.bracketed_sort()
        if name is not None and name != "_" and name in self.variable_names:
            existing = self.variables[self.variable_names.index(name)]
            if sort is not None and existing.sort.name != sort.name:
                raise TermParseError(f"Variable {name} used with two sorts in {self.text!r}")
            return existing
        variable = VariableTermAttribute(sort or self.sort(DEFAULT_VARIABLE_SORT), name)
        if name is not None and name != "_":
            self.variable_names.append(name)
            self.variables.append(variable)
        return variable

    def attribute(self) -> TermAttribute:
        char = self.peek()
        if char == "'":
            return self.constant()
        if char == "[":
            return self.variable(None)
        name = self.symbol()
        if name[0].isupper() or name[0] == "_":
            return self.variable(name)
        return TermTermAttribute(self.term_after_functor(name))

    def term(self) -> Term:
        name = self.symbol()
        if name[0].isupper() or name[0] == "_":
            raise TermParseError(f"Expected a functor, found variable {name!r} in {self.text!r}")
        return self.term_after_functor(name)

    def term_after_functor(self, name: str) -> Term:
        term = Term(self.sort(name))
        if self.peek() != "(":
            return term
        self.pos += 1
        if self.peek() == ")":
            self.pos += 1
            return term
        while True:
            term.add_attribute(self.attribute())
            if self.peek() == ",":
                self.pos += 1
                continue
            self.expect(")")
            return term

    def sentence(self) -> Sentence:
        terms: list[Term] = []
        signs: list[bool] = []
        while True:
            sign = True
            if self.peek() == "~":
                self.pos += 1
                sign = False
            terms.append(self.term())
            signs.append(sign)
            if self.peek() != ";":
                return Sentence(terms, signs)
            self.pos += 1


def parse_term(
    text: str,
    ontology: Ontology,
    variable_names: list[str] | None = None,
    variables: list[VariableTermAttribute] | None = None,
) -> Term:
    reader = _Reader(text, ontology, [] if variable_names is None else variable_names,
                     [] if variables is None else variables)
    term = reader.term()
    if not reader.at_end():
        raise TermParseError(f"Trailing text at {reader.pos} in {text!r}")
    return term


def parse_attribute(
    text: str,
    ontology: Ontology,
    variable_names: list[str] | None = None,
    variables: list[VariableTermAttribute] | None = None,
) -> TermAttribute:
    reader = _Reader(text, ontology, [] if variable_names is None else variable_names,
                     [] if variables is None else variables)
    attribute = reader.attribute()
    if not reader.at_end():
        raise TermParseError(f"Trailing text at {reader.pos} in {text!r}")
    return attribute


def parse_sentence(
    text: str,
    ontology: Ontology,
    variable_names: list[str] | None = None,
    variables: list[VariableTermAttribute] | None = None,
) -> Sentence:
    reader = _Reader(text, ontology, [] if variable_names is None else variable_names,
                     [] if variables is None else variables)
    sentence = reader.sentence()
    if not reader.at_end():
        raise TermParseError(f"Trailing text at {reader.pos} in {text!r}")
    return sentence
