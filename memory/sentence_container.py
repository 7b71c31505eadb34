"""Long-term memory: permanent sentences plus their superseded history."""

from __future__ import annotations

from collections.abc import Iterator

from logic.sentences import Sentence
from logic.terms import Bindings, Term
from memory.entries import EntryIdCounter, Provenance, SentenceEntry
from memory.term_container import same_state_subject


class SentenceContainer:
    """Current sentences, plus previous sentences linked by ``[time, time_end)``."""

    def __init__(self, ids: EntryIdCounter) -> None:
        self.ids = ids
        self.plain_sentence_list: list[SentenceEntry] = []
        self.plain_previous_sentence_list: list[SentenceEntry] = []
        self.previous_sentences_with_no_current_sentence: list[SentenceEntry] = []

    def add_sentence(
        self, sentence: Sentence, provenance: Provenance, activation: int, time: int
    ) -> SentenceEntry:
        entry = SentenceEntry(sentence, provenance, activation, time, entry_id=self.ids.next())
        self.plain_sentence_list.append(entry)
        return entry

    def add_sentence_if_new(
        self, sentence: Sentence, provenance: Provenance, activation: int, time: int
    ) -> bool:
        if self.contains(sentence) is not None:
            return False
        self.add_sentence(sentence, provenance, activation, time)
        return True

    def add_state_sentence_if_new(
        self, sentence: Sentence, provenance: Provenance, activation: int, time: int
    ) -> bool:
        """Supersede the current sentence about the same subject, keeping it as history."""
        if not sentence.is_single_positive_literal():
            return self.add_sentence_if_new(sentence, provenance, activation, time)
        term = sentence.terms[0]
        previous: SentenceEntry | None = None
        for entry in self.plain_sentence_list:
            if not entry.sentence.is_single_positive_literal():
                continue
            if not same_state_subject(entry.sentence.terms[0], term):
                continue
            if entry.sentence.equals_no_bindings(sentence):
                return False
            previous = entry
            break
        new_entry = self.add_sentence(sentence, provenance, activation, time)
        if previous is not None:
            self.plain_sentence_list.remove(previous)
            previous.time_end = time
            self.plain_previous_sentence_list.append(previous)
            new_entry.previous = previous
        return True

    def add_previous_sentence(
        self,
        sentence: Sentence,
        provenance: Provenance,
        activation: int,
        time: int,
        time_end: int,
        successor: SentenceEntry | None,
    ) -> SentenceEntry:
        """Restore a superseded sentence, linking it behind ``successor`` when given."""
        entry = SentenceEntry(
            sentence, provenance, activation, time, entry_id=self.ids.next(), time_end=time_end
        )
        if successor is None:
            self.previous_sentences_with_no_current_sentence.append(entry)
        else:
            successor.previous = entry
            self.plain_previous_sentence_list.append(entry)
        return entry

    def remove_sentence(self, entry: SentenceEntry) -> None:
        self.plain_sentence_list.remove(entry)

    def contains(self, sentence: Sentence) -> SentenceEntry | None:
        for entry in self.plain_sentence_list:
            if entry.sentence.equals_no_bindings(sentence):
                return entry
        return None

    def single_term_matches(self, query: Term) -> Iterator[tuple[SentenceEntry, Bindings]]:
        for entry in self.plain_sentence_list:
            if not entry.sentence.is_single_positive_literal():
                continue
            bindings = Bindings()
            if query.unify(entry.sentence.terms[0], True, bindings):
                yield entry, bindings

    def contains_unifying_term(self, query: Term) -> bool:
        for _ in self.single_term_matches(query):
            return True
        return False

    def current_sentences(self) -> list[Sentence]:
        return [entry.sentence for entry in self.plain_sentence_list]

    def sentences_including_past(self) -> list[Sentence]:
        """Snapshot used for questions about the past: current plus superseded sentences."""
        return (
            self.current_sentences()
            + [entry.sentence for entry in self.plain_previous_sentence_list]
            + [entry.sentence for entry in self.previous_sentences_with_no_current_sentence]
        )

    def __len__(self) -> int:
        return len(self.plain_sentence_list)

    def __iter__(self) -> Iterator[SentenceEntry]:
        return iter(self.plain_sentence_list)
