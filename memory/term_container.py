"""Short-term memory: decaying term entries."""

from __future__ import annotations

from collections.abc import Iterator

from logic.terms import Bindings, Term, attributes_equal_no_bindings
from memory.entries import EntryIdCounter, Provenance, TermEntry


class TermContainer:
    """Holds ground-ish terms whose activation decays every tick."""

    def __init__(self, ids: EntryIdCounter) -> None:
        self.ids = ids
        self.plain_term_list: list[TermEntry] = []
        self.plain_previous_term_list: list[TermEntry] = []

    def add_term(self, term: Term, provenance: Provenance, activation: int, time: int) -> TermEntry:
        entry = TermEntry(term, provenance, activation, time, entry_id=self.ids.next())
        self.plain_term_list.append(entry)
        return entry

    def add_term_if_new(
        self, term: Term, provenance: Provenance, activation: int, time: int
    ) -> bool:
        """Insert unless an equal term is present, in which case its activation is refreshed."""
        existing = self.contains(term)
        if existing is not None:
            existing.activation = max(existing.activation, activation)
            return False
        self.add_term(term, provenance, activation, time)
        return True

    def add_state_term_if_new(
        self, term: Term, provenance: Provenance, activation: int, time: int
    ) -> bool:
        """Like add_term_if_new, but a new value for the same subject supersedes the old one."""
        for entry in self.plain_term_list:
            if not same_state_subject(entry.term, term):
                continue
            if entry.term.equals_no_bindings(term):
                entry.activation = max(entry.activation, activation)
                return False
            self.plain_term_list.remove(entry)
            self.plain_previous_term_list.append(entry)
            break
        self.add_term(term, provenance, activation, time)
        return True

    def activation_update(self) -> None:
        """Superseded entries fade at the same rate as current ones."""
        for entries in (self.plain_term_list, self.plain_previous_term_list):
            for entry in list(entries):
                entry.activation -= 1
                if entry.activation <= 0:
                    entries.remove(entry)

    def contains(self, term: Term) -> TermEntry | None:
        for entry in self.plain_term_list:
            if entry.term.equals_no_bindings(term):
                return entry
        return None

    def first_match(self, query: Term) -> tuple[TermEntry, Bindings] | None:
        for match in self.all_matches(query):
            return match
        return None

    def all_matches(self, query: Term) -> Iterator[tuple[TermEntry, Bindings]]:
        for entry in self.plain_term_list:
            bindings = Bindings()
            if query.unify(entry.term, True, bindings):
                yield entry, bindings

    def remove(self, entry: TermEntry) -> None:
        self.plain_term_list.remove(entry)

    def __len__(self) -> int:
        return len(self.plain_term_list)

    def __iter__(self) -> Iterator[TermEntry]:
        return iter(self.plain_term_list)


def same_state_subject(a: Term, b: Term) -> bool:
    if a.functor.name != b.functor.name or not a.attributes or not b.attributes:
        return False
    return attributes_equal_no_bindings(a.attributes[0], b.attributes[0])
